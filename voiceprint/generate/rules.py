"""
voiceprint.generate.rules - Rules engine for generated scripts.

Enforces the caller's strict rules (phrases that must never or must always
appear), tops up signature elements, validates generation parameters, and
turns an excessive authenticity deviation into a hard failure.
"""

from __future__ import annotations

import re

from voiceprint.exceptions import PersonaInvalidError, RuleViolationError
from voiceprint.logging import logger
from voiceprint.models import (
    AuthenticityMetrics,
    PersonaProfile,
    RulesConfig,
    ScriptStructure,
)
from voiceprint.text import capitalize_first, ensure_terminal, split_sentences

HOOK_RATIO_TOLERANCE = 0.15


def _contains(text: str, phrase: str) -> bool:
    return phrase.lower() in text.lower()


def _count_occurrences(text: str, phrase: str) -> int:
    pattern = rf"(?<!\w){re.escape(phrase)}(?!\w)"
    return len(re.findall(pattern, text, flags=re.IGNORECASE))


def _lower_first(sentence: str) -> str:
    if sentence.startswith(("I ", "I'")) or sentence[:2].isupper():
        return sentence
    return sentence[:1].lower() + sentence[1:]


class RulesEngine:
    """Validates and repairs generated text against a RulesConfig."""

    def __init__(self, rules: RulesConfig | None = None) -> None:
        self.rules = rules or RulesConfig()

    @property
    def never(self) -> list[str]:
        return [p for p in self.rules.strict_rules.never if p.strip()]

    @property
    def always(self) -> list[str]:
        return [p for p in self.rules.strict_rules.always if p.strip()]

    def never_violations(self, text: str) -> list[str]:
        """Banned phrases present in text (case-insensitive substring match)."""
        return [phrase for phrase in self.never if _contains(text, phrase)]

    def missing_always(self, text: str) -> list[str]:
        return [phrase for phrase in self.always if not _contains(text, phrase)]

    def apply_always(self, structure: ScriptStructure) -> ScriptStructure:
        """Append missing required phrases to the close, then recheck.

        Raises:
            RuleViolationError: If a required phrase is still missing or the
                corrective append introduced a banned phrase
        """
        missing = self.missing_always(structure.joined())
        if not missing:
            return structure

        close = structure.close
        for phrase in missing:
            close = f"{ensure_terminal(close)} {ensure_terminal(capitalize_first(phrase))}"
        repaired = structure.model_copy(update={"close": close})
        logger.debug("Appended required phrases to close: %s", missing)

        still_missing = self.missing_always(repaired.joined())
        banned = self.never_violations(repaired.joined())
        if still_missing or banned:
            raise RuleViolationError(
                "Required phrases could not be placed without breaking the rules",
                details={"missing": still_missing, "banned": banned},
            )
        return repaired

    def count_signature_elements(self, text: str, profile: PersonaProfile) -> int:
        return sum(
            _count_occurrences(text, element)
            for element in profile.voice_profile.signature_elements
        )

    def inject_signature_elements(
        self, structure: ScriptStructure, profile: PersonaProfile
    ) -> tuple[ScriptStructure, list[str]]:
        """Prefix core sentences with signature elements until the quota is met.

        Returns:
            The (possibly) updated structure and any warnings
        """
        required = self.rules.pattern_constraints.signature_elements_required
        present = self.count_signature_elements(structure.joined(), profile)
        needed = required - present
        if needed <= 0:
            return structure, []

        elements = [
            e for e in profile.voice_profile.signature_elements if not self.never_violations(e)
        ]
        if not elements:
            return structure, [
                f"Persona has no usable signature elements; {present}/{required} present"
            ]

        sentences = split_sentences(structure.core_message)
        injected = 0
        for i, sentence in enumerate(sentences):
            if injected >= needed:
                break
            element = elements[injected % len(elements)]
            sentences[i] = f"{capitalize_first(element)}, {_lower_first(sentence)}"
            injected += 1

        updated = structure.model_copy(update={"core_message": " ".join(sentences)})
        warnings = []
        if injected < needed:
            warnings.append(
                f"Only {present + injected}/{required} signature elements could be placed"
            )
        return updated, warnings

    def deviation_message(self, metrics: AuthenticityMetrics) -> str | None:
        limit = self.rules.quality_thresholds.max_deviation_from_original
        deviation = 100.0 - metrics.overall_score
        if deviation <= limit:
            return None
        return (
            f"Authenticity {metrics.overall_score:.1f} deviates {deviation:.1f} points "
            f"from the original voice (limit {limit:.0f})"
        )

    def check_deviation(self, metrics: AuthenticityMetrics) -> None:
        """Raise when the score strays further than maxDeviationFromOriginal allows."""
        message = self.deviation_message(metrics)
        if message is not None:
            raise RuleViolationError(
                message,
                details={
                    "overallScore": metrics.overall_score,
                    "maxDeviation": self.rules.quality_thresholds.max_deviation_from_original,
                },
            )

    def validate_content(
        self,
        text: str,
        profile: PersonaProfile,
        metrics: AuthenticityMetrics,
        threshold: float | None = None,
    ) -> list[str]:
        """Every rule the text breaks, as readable messages.

        Unlike generation, nothing is repaired here: banned and missing
        phrases, a signature-element shortfall, excessive deviation, and a
        score under ``threshold`` (when given) are all just reported.
        """
        violations = [f"Contains banned phrase \"{p}\"" for p in self.never_violations(text)]
        violations.extend(
            f"Missing required phrase \"{p}\"" for p in self.missing_always(text)
        )

        required = self.rules.pattern_constraints.signature_elements_required
        present = self.count_signature_elements(text, profile)
        if present < required:
            violations.append(f"Only {present}/{required} signature elements present")

        deviation = self.deviation_message(metrics)
        if deviation is not None:
            violations.append(deviation)
        if threshold is not None and metrics.overall_score < threshold:
            violations.append(
                f"Authenticity {metrics.overall_score:.1f} is below the threshold "
                f"{threshold:.0f}"
            )
        return violations

    def validate_persona(self, profile: PersonaProfile) -> None:
        """Reject profiles that cannot drive generation.

        Raises:
            PersonaInvalidError: If required components are missing
        """
        problems = []
        if not profile.voice_profile.hooks:
            problems.append("no hooks")
        params = profile.generation_parameters
        if params.hook_ratio.primary + params.hook_ratio.secondary > 1.0 + 1e-6:
            problems.append("hook ratio exceeds 1.0")
        distribution = params.sentence_distribution
        if abs(distribution.short + distribution.medium + distribution.long - 1.0) > 1e-6:
            problems.append("sentence distribution does not sum to 1.0")
        if problems:
            raise PersonaInvalidError(
                f"Persona {profile.persona_id} cannot be used for generation: "
                + ", ".join(problems),
                details={"personaId": profile.persona_id, "problems": problems},
            )

    def validate_parameters(self, profile: PersonaProfile) -> list[str]:
        """Advisory notes where the persona departs from the configured constraints."""
        notes = []
        expected_primary, expected_secondary = self.rules.pattern_constraints.hook_rotation_ratio
        ratio = profile.generation_parameters.hook_ratio
        total = ratio.primary + ratio.secondary
        if total > 0:
            primary_share = ratio.primary / total
            expected_share = expected_primary / (expected_primary + expected_secondary or 1.0)
            if abs(primary_share - expected_share) > HOOK_RATIO_TOLERANCE:
                notes.append(
                    f"Primary hook share {primary_share:.0%} differs from the configured "
                    f"rotation ratio {expected_share:.0%}"
                )

        threshold = profile.generation_parameters.authenticity_threshold * 100
        minimum = self.rules.quality_thresholds.min_authenticity_score
        if threshold < minimum:
            notes.append(
                f"Persona threshold {threshold:.0f} is below the minimum score {minimum:.0f}; "
                "the minimum applies"
            )
        for note in notes:
            logger.info(note)
        return notes
