"""
voiceprint.scoring - Authenticity scoring of a script against a persona.

Five checks, each scored 0-100 and weighted 0.2: hook accuracy, bridge
frequency, sentence-length distribution, vocabulary match, and rhythm
replication. The overall score is the weighted sum.
"""

from __future__ import annotations

from voiceprint.analyze.extractor import hook_candidate
from voiceprint.models import (
    AuthenticityMetrics,
    MetricScore,
    PersonaProfile,
    RulesConfig,
)
from voiceprint.text import (
    cadence_signature,
    length_distribution,
    lower_words,
    sequence_edit_distance,
    significant_tokens,
    similarity,
    split_sentences,
)

WEIGHTS: dict[str, float] = {
    "hook_accuracy": 0.2,
    "bridge_frequency": 0.2,
    "sentence_patterns": 0.2,
    "vocabulary_match": 0.2,
    "rhythm_replication": 0.2,
}
HOOK_DISTANCE_PENALTY = 20.0
GENERIC_BRIDGE_SCORE = 25.0
NO_BRIDGES_SCORE = 50.0
HOOK_MAX_WORDS = 12


def effective_threshold(profile: PersonaProfile, rules: RulesConfig | None = None) -> float:
    """Soft authenticity threshold on the 0-100 scale."""
    threshold = profile.generation_parameters.authenticity_threshold * 100
    if rules is not None:
        threshold = max(threshold, rules.quality_thresholds.min_authenticity_score)
    return threshold


def score_hook(sentences: list[str], profile: PersonaProfile) -> tuple[float, str]:
    hooks = profile.voice_profile.hooks
    candidate = hook_candidate(sentences, HOOK_MAX_WORDS)
    if not hooks:
        return 0.0, "Persona has no known hooks"
    if candidate is None:
        return 0.0, "Script has no opening sentence"

    normalized = candidate[0]
    if normalized in hooks:
        return 100.0, f"Opens with known hook '{normalized}'"

    tokens = normalized.split()
    distance, closest = min(
        (sequence_edit_distance(tokens, hook.split()), hook) for hook in hooks
    )
    score = max(0.0, 100.0 - HOOK_DISTANCE_PENALTY * distance)
    return score, f"Closest known hook '{closest}' is {distance} word edits away"


def find_bridge(sentences: list[str], bridges: dict[str, int]) -> str | None:
    """First known bridge that opens a sentence after the hook sentence."""
    ordered = sorted(bridges, key=len, reverse=True)
    for sentence in sentences[1:]:
        opening = lower_words(sentence)
        for bridge in ordered:
            if opening == bridge or opening.startswith(bridge + " "):
                return bridge
    return None


def score_bridge(
    sentences: list[str], profile: PersonaProfile, rules: RulesConfig
) -> tuple[float, str]:
    bridges = profile.voice_profile.bridges
    if not bridges:
        return NO_BRIDGES_SCORE, "Persona has no bridge phrases to match"

    used = find_bridge(sentences, bridges)
    if used is None:
        return GENERIC_BRIDGE_SCORE, "No signature bridge phrase used"

    share = bridges[used] / sum(bridges.values())
    minimum = rules.pattern_constraints.bridge_frequency_min
    if minimum <= 0 or share >= minimum:
        return 100.0, f"Bridge '{used}' carries {share:.0%} of the creator's transitions"
    return (
        100.0 * share / minimum,
        f"Bridge '{used}' carries {share:.0%} of transitions (minimum {minimum:.0%})",
    )


def score_sentence_patterns(sentences: list[str], profile: PersonaProfile) -> tuple[float, str]:
    target = profile.generation_parameters.sentence_distribution.as_dict()
    actual = length_distribution(sentences)
    deviation = 0.5 * sum(abs(actual[name] - target[name]) for name in target)
    score = 100.0 * (1.0 - deviation)
    return score, (
        f"Short/medium/long {actual['short']:.0%}/{actual['medium']:.0%}/{actual['long']:.0%} "
        f"vs {target['short']:.0%}/{target['medium']:.0%}/{target['long']:.0%}"
    )


def score_vocabulary(text: str, topic: str, profile: PersonaProfile) -> tuple[float, str]:
    fingerprint = set(profile.voice_profile.vocabulary_fingerprint)
    tokens = significant_tokens(text, exclude=significant_tokens(topic))
    if not fingerprint or not tokens:
        return 0.0, "No comparable vocabulary"
    matched = sum(1 for token in tokens if token in fingerprint)
    return 100.0 * matched / len(tokens), f"{matched}/{len(tokens)} content words from fingerprint"


def score_rhythm(sentences: list[str], profile: PersonaProfile) -> tuple[float, str]:
    target = profile.voice_profile.rhythm_pattern
    signature = cadence_signature(sentences)
    if not target or not signature:
        return 0.0, "No cadence to compare"
    ratio = similarity(signature.split("-"), target.split("-"))
    return 100.0 * ratio, f"Cadence '{signature}' vs '{target}'"


def score_authenticity(
    text: str,
    profile: PersonaProfile,
    rules: RulesConfig | None = None,
    topic: str = "",
) -> AuthenticityMetrics:
    """Score how closely a script imitates the persona.

    Args:
        text: Full script text
        profile: Persona to compare against
        rules: Rules config (bridge frequency minimum); defaults apply if omitted
        topic: Script topic; its words are left out of the vocabulary check

    Returns:
        AuthenticityMetrics with five weighted checks and the overall score
    """
    rules = rules or RulesConfig()
    sentences = split_sentences(text)

    results = {
        "hook_accuracy": score_hook(sentences, profile),
        "bridge_frequency": score_bridge(sentences, profile, rules),
        "sentence_patterns": score_sentence_patterns(sentences, profile),
        "vocabulary_match": score_vocabulary(text, topic, profile),
        "rhythm_replication": score_rhythm(sentences, profile),
    }
    components = {
        name: MetricScore(
            weight=WEIGHTS[name],
            score=round(min(100.0, max(0.0, score)), 2),
            check=check,
        )
        for name, (score, check) in results.items()
    }
    overall = sum(c.score * c.weight for c in components.values())
    return AuthenticityMetrics(
        **components,
        overall_score=round(min(100.0, max(0.0, overall)), 2),
    )


def is_passing(metrics: AuthenticityMetrics, threshold: float) -> bool:
    return metrics.overall_score >= threshold


def score_breakdown(metrics: AuthenticityMetrics, threshold: float) -> str:
    """Human-readable breakdown of a score."""
    lines = [f"Overall authenticity: {metrics.overall_score:.1f}/100"]
    for name, component in metrics.components().items():
        lines.append(f"  {name}: {component.score:.1f} ({component.check})")
    status = "PASSING" if is_passing(metrics, threshold) else "NEEDS IMPROVEMENT"
    lines.append(f"Status: {status} (threshold {threshold:.0f})")
    return "\n".join(lines)
