"""
voiceprint.analyze.builder - Aggregate per-video extractions into a persona.

Reduces the accepted VideoExtraction records of one creator into a single
immutable PersonaProfile. Every ranked list uses the same ordering: higher
count first, then the candidate whose latest occurrence is in the more
recent video, then lexical order.
"""

from __future__ import annotations

import hashlib
from collections import Counter
from collections.abc import Sequence
from datetime import datetime, timezone

import numpy as np

from voiceprint.analyze.extractor import (
    EXCITED_DESCRIPTIONS,
    SlotTally,
    VideoExtraction,
    build_pattern_element,
    choose_explaining_structure,
    energy_level,
    rhythm_description,
    sentence_structure,
)
from voiceprint.analyze.lexicon import FILLER_WORDS, MATRIX_CONTEXTS, MATRIX_RES
from voiceprint.config import VoiceprintConfig
from voiceprint.exceptions import InsufficientContentError
from voiceprint.logging import logger
from voiceprint.models import (
    MAX_TARGET_LENGTH,
    MIN_TARGET_LENGTH,
    Catchphrases,
    EmotionalStates,
    EnergyBaseline,
    ExcitedState,
    ExplainingState,
    GenerationParameters,
    HookRatio,
    PatternElement,
    PatternMappingMatrix,
    PersonaProfile,
    ProfileMetadata,
    SentenceDistribution,
    SpeechPatterns,
    UniqueMarkers,
    UserIdentifier,
    VoiceProfile,
)
from voiceprint.text import cadence_ngrams, near_match

ANALYSIS_VERSION = "1.0.0"


def order_extractions(extractions: Sequence[VideoExtraction]) -> list[VideoExtraction]:
    """Oldest first; stable for equal capture times."""
    return sorted(extractions, key=lambda e: e.captured_at)


def rank_counts(
    counts: dict[str, int], last_seen: dict[str, int], min_count: int = 1
) -> list[str]:
    """Rank keys by count, then recency of last occurrence, then lexically."""
    eligible = [key for key, count in counts.items() if count >= min_count]
    return sorted(eligible, key=lambda key: (-counts[key], -last_seen.get(key, -1), key))


class Tally:
    """Counter that remembers the index of the latest video each key came from."""

    def __init__(self) -> None:
        self.counts: Counter[str] = Counter()
        self.last_seen: dict[str, int] = {}

    def add(self, key: str, count: int, video_index: int) -> None:
        if count <= 0:
            return
        self.counts[key] += count
        self.last_seen[key] = max(video_index, self.last_seen.get(key, -1))

    def update(self, counts: dict[str, int], video_index: int) -> None:
        for key, count in counts.items():
            self.add(key, count, video_index)

    def ranked(self, limit: int | None = None, min_count: int = 1) -> list[str]:
        keys = rank_counts(dict(self.counts), self.last_seen, min_count)
        return keys[:limit] if limit is not None else keys


def corpus_digest(transcripts: dict[str, str]) -> str:
    """Short SHA-256 over accepted video ids and their transcripts."""
    sha256 = hashlib.sha256()
    for video_id in sorted(transcripts):
        sha256.update(video_id.encode("utf-8"))
        sha256.update(b"\x00")
        sha256.update(transcripts[video_id].encode("utf-8"))
        sha256.update(b"\x00")
    return sha256.hexdigest()[:12]


def make_persona_id(identifier: UserIdentifier, transcripts: dict[str, str]) -> str:
    return f"{identifier.platform}-{identifier.handle.lower()}-{corpus_digest(transcripts)}"


def classify_energy_wave(means: np.ndarray, stds: np.ndarray, builds: np.ndarray) -> str:
    """Label the creator's energy shape from per-video energy statistics."""
    mean_energy = float(np.mean(means))
    mean_spread = float(np.mean(stds))
    mean_build = float(np.mean(builds))
    if mean_spread >= 1.0:
        return "spiky"
    if mean_energy >= 1.5:
        return "consistently-high"
    if mean_build > 0.25:
        return "steady-building"
    if mean_energy < 0.3:
        return "low-and-level"
    return "moderate-steady"


def sentence_distribution(histogram: dict[str, int]) -> SentenceDistribution:
    total = sum(histogram.values())
    if total == 0:
        return SentenceDistribution(short=0.3, medium=0.4, long=0.3)
    short = round(histogram.get("short", 0) / total, 4)
    medium = round(histogram.get("medium", 0) / total, 4)
    long = max(0.0, 1.0 - short - medium)
    return SentenceDistribution(short=short, medium=medium, long=long)


def choose_rotation(distinct_hooks: int, override: str | None) -> str:
    if override:
        return override
    if distinct_hooks >= 5:
        return "weighted"
    if distinct_hooks >= 2:
        return "sequential"
    return "random"


def recurring_across_videos(
    phrases_by_video: list[str | None], max_distance: int, min_videos: int = 2
) -> list[str]:
    """Phrases (near-exact) appearing in at least ``min_videos`` videos, latest form first."""
    clusters: list[tuple[str, set[int]]] = []
    for index, phrase in enumerate(phrases_by_video):
        if not phrase:
            continue
        for representative, videos in clusters:
            if near_match(phrase, representative, max_distance):
                videos.add(index)
                break
        else:
            clusters.append((phrase, {index}))
    recurring = [(rep, videos) for rep, videos in clusters if len(videos) >= min_videos]
    recurring.sort(key=lambda item: (-len(item[1]), -max(item[1]), item[0]))
    return [rep for rep, _ in recurring]


def _sentence_pattern_notes(
    extractions: list[VideoExtraction], starters: Tally, mean_length: float
) -> list[str]:
    notes = []
    if mean_length < 8:
        notes.append("Short, punchy sentences")
    elif mean_length > 15:
        notes.append("Complex, detailed sentences")
    else:
        notes.append("Balanced sentence length")

    top_starters = starters.ranked(limit=3, min_count=2)
    if top_starters:
        notes.append(f"Common starters: {', '.join(top_starters)}")

    total_sentences = sum(e.sentence_count for e in extractions)
    if total_sentences:
        exclamation_ratio = sum(e.exclamation_count for e in extractions) / total_sentences
        question_ratio = sum(e.question_count for e in extractions) / total_sentences
        if exclamation_ratio > 0.3:
            notes.append("Frequent exclamations")
        if question_ratio > 0.2:
            notes.append("Uses questions to engage the audience")
    return notes


def build_persona_profile(
    identifier: UserIdentifier,
    extractions: Sequence[VideoExtraction],
    transcripts: dict[str, str],
    config: VoiceprintConfig | None = None,
    videos_failed: int = 0,
    now: datetime | None = None,
) -> PersonaProfile:
    """Reduce per-video extractions into a PersonaProfile.

    Args:
        identifier: The creator being profiled
        extractions: Accepted per-video extractions
        transcripts: Transcript text by video id, for the corpus digest
        config: Resolved configuration (defaults apply when omitted)
        videos_failed: Count of videos rejected upstream, recorded in metadata
        now: Timestamp for analysisDate/lastUpdated

    Returns:
        Immutable PersonaProfile

    Raises:
        InsufficientContentError: If the corpus is below the minimum floors
    """
    config = config or VoiceprintConfig()
    analysis = config.analysis
    now = now or datetime.now(timezone.utc)

    ordered = order_extractions(extractions)
    total_length = sum(e.transcript_length for e in ordered)

    if len(ordered) < analysis.min_videos or total_length < analysis.min_total_transcript_length:
        raise InsufficientContentError(
            f"Need at least {analysis.min_videos} usable videos and "
            f"{analysis.min_total_transcript_length} transcript characters; "
            f"got {len(ordered)} videos and {total_length} characters",
            details={
                "videosAnalyzed": len(ordered),
                "videosFailed": videos_failed,
                "totalTranscriptLength": total_length,
                "minVideos": analysis.min_videos,
                "minTotalTranscriptLength": analysis.min_total_transcript_length,
            },
        )

    hooks = Tally()
    verbatim_hooks: dict[str, str] = {}
    bridges = Tally()
    markers = Tally()
    transitions = Tally()
    fillers = Tally()
    fragments = Tally()
    starters = Tally()
    vocabulary = Tally()
    cadence = Tally()
    votes: Counter[str] = Counter()
    histogram: Counter[str] = Counter()
    slot_tallies = {slot: SlotTally() for slot in MATRIX_RES}

    for index, extraction in enumerate(ordered):
        if extraction.hook:
            hooks.add(extraction.hook, 1, index)
            verbatim_hooks[extraction.hook] = extraction.hook_verbatim or extraction.hook
        bridges.update(extraction.bridges, index)
        markers.update(extraction.excited_markers, index)
        transitions.update(extraction.transition_words, index)
        fillers.update(extraction.fillers, index)
        fragments.update(extraction.boundary_fragments, index)
        starters.update(extraction.starters, index)
        vocabulary.update(extraction.vocabulary, index)
        for window in cadence_ngrams(extraction.cadence):
            cadence.add(window, 1, index)
        votes.update(extraction.explaining_votes)
        histogram.update(extraction.length_histogram)
        for slot, tally in extraction.matrix.items():
            merged = slot_tallies[slot]
            for key, count in tally.counts.items():
                merged.counts[key] = merged.counts.get(key, 0) + count
            merged.matched_sentences += tally.matched_sentences
            merged.examples.extend(tally.examples[: max(0, 3 - len(merged.examples))])

    settings = config.extraction
    ranked_hooks = hooks.ranked(limit=analysis.hook_limit)
    videos = len(ordered)
    total_sentences = sum(e.sentence_count for e in ordered)
    total_words = sum(e.word_count for e in ordered)
    mean_length = total_words / total_sentences if total_sentences else 0.0

    means = np.array([e.energy_mean for e in ordered], dtype=float)
    stds = np.array([e.energy_std for e in ordered], dtype=float)
    builds = np.array([e.energy_build for e in ordered], dtype=float)
    all_energies = np.array([s for e in ordered for s in e.energy_scores], dtype=float)
    all_lengths_cv = float(np.mean([e.sentence_length_cv for e in ordered]))

    filler_set = set(FILLER_WORDS)
    filler_patterns = fillers.ranked(limit=10, min_count=settings.min_frequency)
    random_insertions = [
        phrase
        for phrase in fragments.ranked(limit=10, min_count=settings.min_frequency)
        if phrase not in filler_set
    ]
    opening = recurring_across_videos(
        [e.opening_phrase for e in ordered], settings.filler_max_distance
    )
    closing = recurring_across_videos(
        [e.closing_phrase for e in ordered], settings.filler_max_distance
    )

    signature_elements: list[str] = []
    for phrase in random_insertions + filler_patterns + opening + closing:
        if phrase not in signature_elements:
            signature_elements.append(phrase)

    level = energy_level(float(np.mean(all_energies)) if all_energies.size else 0.0)
    top_hook_count = hooks.counts[ranked_hooks[0]] if ranked_hooks else 0
    secondary_count = sum(hooks.counts[h] for h in ranked_hooks[1:3])
    durations = [e.duration for e in ordered if e.duration > 0]
    mean_duration = float(np.mean(durations)) if durations else 30.0
    rhythm = cadence.ranked(limit=1)

    voice_profile = VoiceProfile(
        hooks=ranked_hooks,
        hook_frequencies={h: hooks.counts[h] for h in ranked_hooks},
        bridges={b: bridges.counts[b] for b in bridges.ranked()},
        energy_wave=classify_energy_wave(means, stds, builds),
        sentence_patterns=_sentence_pattern_notes(ordered, starters, mean_length),
        signature_elements=signature_elements,
        vocabulary_fingerprint=vocabulary.ranked(limit=analysis.vocabulary_size, min_count=2),
        rhythm_pattern=rhythm[0] if rhythm else "",
    )

    speech_patterns = SpeechPatterns(
        baseline=EnergyBaseline(
            typical_energy=level,
            sentence_structure=sentence_structure(mean_length),
            default_rhythm=rhythm_description(all_lengths_cv),
        ),
        emotional_states=EmotionalStates(
            excited=ExcitedState(
                description=EXCITED_DESCRIPTIONS[level],
                marker_phrases=markers.ranked(limit=10),
            ),
            explaining=ExplainingState(
                structure=choose_explaining_structure(dict(votes)),
                transition_words=transitions.ranked(limit=8),
            ),
        ),
        unique_markers=UniqueMarkers(
            filler_patterns=filler_patterns,
            catchphrases=Catchphrases(opening=opening, closing=closing),
            random_insertions=random_insertions,
        ),
    )

    if ranked_hooks:
        primary_hook = PatternElement(
            element=ranked_hooks[0],
            frequency=round(top_hook_count / videos, 4),
            examples=[verbatim_hooks[h] for h in ranked_hooks[:3]],
            context=MATRIX_CONTEXTS["primary_hook"],
        )
    else:
        primary_hook = build_pattern_element(
            "primary_hook", slot_tallies["primary_hook"], total_sentences
        )
    pattern_mapping = PatternMappingMatrix(
        primary_hook=primary_hook,
        bridge_phrase=build_pattern_element(
            "bridge_phrase", slot_tallies["bridge_phrase"], total_sentences
        ),
        energy_escalator=build_pattern_element(
            "energy_escalator", slot_tallies["energy_escalator"], total_sentences
        ),
        personal_reference=build_pattern_element(
            "personal_reference", slot_tallies["personal_reference"], total_sentences
        ),
        audience_address=build_pattern_element(
            "audience_address", slot_tallies["audience_address"], total_sentences
        ),
        question_pattern=build_pattern_element(
            "question_pattern", slot_tallies["question_pattern"], total_sentences
        ),
    )

    generation_parameters = GenerationParameters(
        optimal_length=int(round(min(MAX_TARGET_LENGTH, max(MIN_TARGET_LENGTH, mean_duration)))),
        authenticity_threshold=analysis.authenticity_threshold,
        pattern_rotation=choose_rotation(len(ranked_hooks), analysis.pattern_rotation),
        hook_ratio=HookRatio(
            primary=round(top_hook_count / videos, 4),
            secondary=round(secondary_count / videos, 4),
        ),
        sentence_distribution=sentence_distribution(dict(histogram)),
    )

    accepted_transcripts = {e.video_id: transcripts.get(e.video_id, "") for e in ordered}
    profile = PersonaProfile(
        persona_id=make_persona_id(identifier, accepted_transcripts),
        user_identifier=identifier,
        analysis_date=now,
        voice_profile=voice_profile,
        speech_patterns=speech_patterns,
        pattern_mapping=pattern_mapping,
        generation_parameters=generation_parameters,
        metadata=ProfileMetadata(
            videos_analyzed=videos,
            videos_failed=videos_failed,
            total_transcript_length=total_length,
            total_word_count=total_words,
            analysis_version=ANALYSIS_VERSION,
            last_updated=now,
            source_video_ids=[e.video_id for e in ordered],
        ),
    )

    logger.info(
        "Built persona %s from %d videos (%d failed): %d hooks, %d bridges, rotation=%s",
        profile.persona_id,
        videos,
        videos_failed,
        len(ranked_hooks),
        len(voice_profile.bridges),
        generation_parameters.pattern_rotation,
    )
    return profile
