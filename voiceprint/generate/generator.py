"""
voiceprint.generate.generator - Five-phase script generation.

Given a persona, a topic, and the persona's rotation state, selects the
hook, bridge, excited marker, and sign-off, writes each phase through a
PhaseWriter, enforces the rules, scores the draft, and keeps the most
authentic of a bounded number of drafts. Rotation state is passed in and
returned; nothing here mutates shared state.
"""

from __future__ import annotations

import random
import time
import uuid
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from datetime import datetime, timezone

import numpy as np
from pydantic import BaseModel, Field

from voiceprint.analyze.extractor import sentence_energy
from voiceprint.config import VoiceprintConfig
from voiceprint.exceptions import (
    GenerationTimeoutError,
    PersonaInvalidError,
    RuleViolationError,
    TopicEmptyError,
)
from voiceprint.generate.rotation import PatternRotator, advance_rotation, derive_seed, hook_weights
from voiceprint.generate.rules import RulesEngine
from voiceprint.generate.template import PhaseWindow, build_phase_windows, phase_durations
from voiceprint.generate.writers import GENERIC_MARKER, PhaseRequest, PhaseWriter, TemplateWriter
from voiceprint.logging import logger
from voiceprint.models import (
    AuthenticityMetrics,
    GeneratedScript,
    PersonaProfile,
    RotationState,
    ScriptGenerationInput,
    ScriptMetadata,
    ScriptStructure,
)
from voiceprint.scoring import effective_threshold, score_authenticity
from voiceprint.text import split_sentences


class PatternSelection(BaseModel):
    """Persona patterns chosen for one draft."""

    hook: str
    hook_index: int
    bridge: str | None = None
    bridge_index: int | None = None
    marker: str
    closing: str | None = None
    warnings: list[str] = Field(default_factory=list)


class Draft(BaseModel):
    structure: ScriptStructure
    selection: PatternSelection
    metrics: AuthenticityMetrics
    warnings: list[str] = Field(default_factory=list)


class GenerationOutcome(BaseModel):
    """A generated script and the rotation state to persist after it."""

    script: GeneratedScript
    rotation: RotationState


def _mean_energy(text: str) -> float:
    sentences = split_sentences(text)
    if not sentences:
        return 0.0
    return float(np.mean([sentence_energy(s)[0] for s in sentences]))


class ScriptGenerator:
    """Produces persona-faithful five-phase scripts."""

    def __init__(
        self,
        writer: PhaseWriter | None = None,
        config: VoiceprintConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.writer = writer or TemplateWriter()
        self.config = config or VoiceprintConfig()
        self.rules = RulesEngine(self.config.rules)
        self.clock = clock

    def generate(
        self,
        request: ScriptGenerationInput,
        profile: PersonaProfile,
        rotation: RotationState | None = None,
        now: datetime | None = None,
    ) -> GenerationOutcome:
        """Generate one script.

        Args:
            request: Topic, target length, style, and instructions
            profile: Persona to write as
            rotation: Current rotation state (fresh state when omitted)
            now: Timestamp for the script metadata

        Returns:
            GenerationOutcome with the script and the advanced rotation state

        Raises:
            TopicEmptyError: If the topic is blank
            PersonaInvalidError: If the persona cannot drive generation
            GenerationTimeoutError: If text production exceeds the time budget
            RuleViolationError: If the rules cannot be satisfied
        """
        settings = self.config.generation
        deadline = self.clock() + settings.timeout_seconds

        if not request.topic.strip():
            raise TopicEmptyError("Topic must not be empty")
        if request.persona_id != profile.persona_id:
            raise PersonaInvalidError(
                f"Request targets persona {request.persona_id} but profile is {profile.persona_id}",
                details={"requested": request.persona_id, "profile": profile.persona_id},
            )
        self.rules.validate_persona(profile)
        advisories = self.rules.validate_parameters(profile)

        rotation = rotation or RotationState(persona_id=profile.persona_id)
        windows = build_phase_windows(request.target_length, settings.words_per_second)
        seed = (
            settings.seed
            if settings.seed is not None
            else derive_seed(profile.persona_id, request.topic, rotation.generations)
        )
        threshold = effective_threshold(profile, self.config.rules)

        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="writer")
        try:
            drafts: list[Draft] = []
            tried_hooks: set[str] = set()
            tried_bridges: set[str] = set()
            for regeneration in range(settings.max_regenerations + 1):
                draft_seed = seed + regeneration
                selection = self._select(
                    profile, rotation, random.Random(draft_seed), tried_hooks, tried_bridges
                )
                draft = self._compose(
                    request, profile, windows, selection, draft_seed, deadline, executor
                )
                drafts.append(draft)
                if draft.metrics.overall_score >= threshold:
                    break
                logger.info(
                    "Draft %d scored %.1f (threshold %.0f); regenerating",
                    len(drafts),
                    draft.metrics.overall_score,
                    threshold,
                )
                tried_hooks.add(selection.hook)
                if selection.bridge:
                    tried_bridges.add(selection.bridge)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        best = max(drafts, key=lambda d: d.metrics.overall_score)
        self.rules.check_deviation(best.metrics)

        warnings = advisories + best.selection.warnings + best.warnings
        if best.metrics.overall_score < threshold:
            warnings.append(
                f"Authenticity {best.metrics.overall_score:.1f} is below threshold {threshold:.0f}"
            )

        script_text = best.structure.joined()
        words = len(script_text.split())
        script = GeneratedScript(
            id=f"script_{uuid.uuid4().hex[:12]}",
            persona_id=profile.persona_id,
            topic=request.topic.strip(),
            script=script_text,
            structure=best.structure,
            authenticity=best.metrics,
            warnings=warnings,
            metadata=ScriptMetadata(
                generated_at=now or datetime.now(timezone.utc),
                target_length=request.target_length,
                actual_length=round(words / settings.words_per_second, 1),
                word_count=words,
                attempts=len(drafts),
                phase_durations=phase_durations(windows),
            ),
        )
        selection = best.selection
        new_rotation = advance_rotation(
            rotation, selection.hook, selection.hook_index, selection.bridge, selection.bridge_index
        )
        logger.info(
            "Generated %s for %s: %d words, authenticity %.1f after %d draft(s)",
            script.id,
            profile.persona_id,
            words,
            best.metrics.overall_score,
            len(drafts),
        )
        return GenerationOutcome(script=script, rotation=new_rotation)

    def _select(
        self,
        profile: PersonaProfile,
        rotation: RotationState,
        rng: random.Random,
        tried_hooks: set[str],
        tried_bridges: set[str],
    ) -> PatternSelection:
        rotator = PatternRotator(profile.generation_parameters.pattern_rotation, rng)
        warnings: list[str] = []

        hooks = profile.voice_profile.hooks
        banned_hooks = {h for h in hooks if self.rules.never_violations(h)}
        weights = hook_weights(profile)
        usable = set(hooks) - banned_hooks
        if rotator.policy == "sequential" and rotation.last_hook in usable and len(usable) >= 2:
            # Retries must not fall back onto the previous generation's hook
            banned_hooks = banned_hooks | {rotation.last_hook}
        picked = rotator.pick(
            hooks, weights, rotation.hook_cursor, rotation.last_hook, banned_hooks | tried_hooks
        ) or rotator.pick(hooks, weights, rotation.hook_cursor, rotation.last_hook, banned_hooks)
        if picked is None:
            raise RuleViolationError(
                "Every known hook contains a banned phrase",
                details={"hooks": hooks, "never": self.rules.never},
            )
        hook, hook_index = picked

        bridges = profile.voice_profile.bridges
        total = sum(bridges.values())
        minimum = self.config.rules.pattern_constraints.bridge_frequency_min
        eligible = [
            b
            for b, count in bridges.items()
            if total and count / total >= minimum and not self.rules.never_violations(b)
        ]
        bridge = bridge_index = None
        if eligible:
            bridge_weights = [float(bridges[b]) for b in eligible]
            cursor, last = rotation.bridge_cursor, rotation.last_bridge
            picked_bridge = rotator.pick(
                eligible, bridge_weights, cursor, last, tried_bridges
            ) or rotator.pick(eligible, bridge_weights, cursor, last)
            if picked_bridge:
                bridge, bridge_index = picked_bridge
        else:
            warnings.append(
                "No bridge phrase meets the minimum frequency; using a generic transition"
            )

        markers = [
            m
            for m in profile.speech_patterns.emotional_states.excited.marker_phrases
            if not self.rules.never_violations(m)
        ]
        if markers:
            marker = markers[rotation.generations % len(markers)]
        else:
            marker = GENERIC_MARKER
            warnings.append("Persona has no excited markers; using a generic escalation")

        closings = [
            c
            for c in profile.speech_patterns.unique_markers.catchphrases.closing
            if not self.rules.never_violations(c)
        ]
        return PatternSelection(
            hook=hook,
            hook_index=hook_index,
            bridge=bridge,
            bridge_index=bridge_index,
            marker=marker,
            closing=closings[0] if closings else None,
            warnings=warnings,
        )

    def _compose(
        self,
        request: ScriptGenerationInput,
        profile: PersonaProfile,
        windows: list[PhaseWindow],
        selection: PatternSelection,
        seed: int,
        deadline: float,
        executor: ThreadPoolExecutor,
    ) -> Draft:
        texts: dict[str, str] = {}
        for window in windows:
            phase_request = PhaseRequest(
                phase=window.name,
                topic=request.topic,
                word_budget=window.word_budget,
                profile=profile,
                style=request.style,
                custom_instructions=request.custom_instructions,
                seed=seed,
                banned=self.rules.never,
                hook=selection.hook,
                bridge=selection.bridge,
                marker=selection.marker,
                closing=selection.closing,
            )
            texts[window.name] = self._write_phase(phase_request, deadline, executor)

        warnings: list[str] = []
        texts["escalation"] = self._repair_escalation(
            texts["escalation"], texts["core_message"], selection.marker, warnings
        )
        structure = ScriptStructure(**texts)
        structure, injection_warnings = self.rules.inject_signature_elements(structure, profile)
        warnings.extend(injection_warnings)
        structure = self.rules.apply_always(structure)

        violations = self.rules.never_violations(structure.joined())
        if violations:
            raise RuleViolationError(
                f"Script still contains banned phrases: {', '.join(violations)}",
                details={"banned": violations},
            )

        metrics = score_authenticity(
            structure.joined(), profile, self.config.rules, topic=request.topic
        )
        return Draft(structure=structure, selection=selection, metrics=metrics, warnings=warnings)

    def _write_phase(
        self, request: PhaseRequest, deadline: float, executor: ThreadPoolExecutor
    ) -> str:
        """Write a phase, rewriting while it contains banned phrases."""
        attempts = self.config.generation.max_rule_attempts
        violations: list[str] = []
        for attempt in range(attempts):
            attempt_request = request.model_copy(update={"attempt": attempt})
            text = self._call_writer(attempt_request, deadline, executor)
            violations = self.rules.never_violations(text)
            if not violations:
                return text
            logger.info(
                "%s phase contained banned phrase(s) %s; rewriting (%d/%d)",
                request.phase,
                violations,
                attempt + 1,
                attempts,
            )
        raise RuleViolationError(
            f"{request.phase} phase kept using banned phrases after {attempts} attempts",
            details={"phase": request.phase, "banned": violations},
        )

    def _call_writer(
        self, request: PhaseRequest, deadline: float, executor: ThreadPoolExecutor
    ) -> str:
        remaining = deadline - self.clock()
        if remaining <= 0:
            raise GenerationTimeoutError(
                f"Generation budget of {self.config.generation.timeout_seconds:.0f}s exhausted "
                f"before the {request.phase} phase",
                details={"phase": request.phase},
            )
        if not getattr(self.writer, "external", False):
            return self.writer.write(request)

        future = executor.submit(self.writer.write, request)
        try:
            return future.result(timeout=remaining)
        except FuturesTimeoutError as e:
            future.cancel()
            raise GenerationTimeoutError(
                f"Writing the {request.phase} phase exceeded the generation budget",
                details={"phase": request.phase, "timeoutSeconds": round(remaining, 2)},
            ) from e

    def _repair_escalation(
        self, escalation: str, core: str, marker: str, warnings: list[str]
    ) -> str:
        """Ensure the escalation carries an excited marker and out-energizes the core."""
        if marker.lower() not in escalation.lower():
            escalation = f"{marker if marker.isupper() else marker.capitalize()}! {escalation}"
        core_energy = _mean_energy(core)
        if _mean_energy(escalation) <= core_energy:
            escalation = " ".join(
                s[:-1] + "!" if s.endswith(".") else s for s in split_sentences(escalation)
            )
        if _mean_energy(escalation) <= core_energy:
            warnings.append("Escalation energy does not exceed the core message")
        return escalation
