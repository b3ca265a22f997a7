"""
voiceprint.analyze.extractor - Per-video speech pattern extraction.

Reads a single transcript and produces a VideoExtraction: the hook
candidate, bridge cue tallies, sentence energy, explaining-style votes,
boundary interjections, matrix slot tallies, and the video's own
SpeechPatterns. Short transcripts are skipped and reported as None rather
than raised, so one bad video never fails a whole corpus.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime

import numpy as np
from pydantic import BaseModel, Field

from voiceprint.analyze.lexicon import (
    BRANCH_RE,
    CAPS_EXCLUDED,
    CAPS_RUN_RE,
    CAUSAL_RE,
    EXCITEMENT_RE,
    FILLER_RE,
    FILLER_WORDS,
    LOOP_RE,
    MATRIX_CONTEXTS,
    MATRIX_RES,
    ORDINAL_RE,
    match_transition_cue,
)
from voiceprint.config import ExtractionSettings
from voiceprint.logging import logger
from voiceprint.models import (
    Catchphrases,
    EmotionalStates,
    EnergyBaseline,
    ExcitedState,
    ExplainingState,
    PatternElement,
    SpeechPatterns,
    UniqueMarkers,
    VideoAnalysisData,
)
from voiceprint.text import (
    cadence_tokens,
    cluster_phrases,
    jaccard,
    leading_clause,
    length_class,
    lower_words,
    normalize_phrase,
    significant_tokens,
    split_sentences,
    tokenize,
    trailing_clause,
    truncate_words,
    word_count,
)

EXPLAINING_ORDER = ("step-by-step", "circular", "branching")
EXCITED_DESCRIPTIONS = {
    "high": "High energy with frequent emphasis and exclamations",
    "medium": "Moderate energy with occasional peaks",
    "low": "Calm delivery with rare emphasis",
}
CLOSING_MAX_WORDS = 8
TOPIC_RETURN_OVERLAP = 0.5
NO_MATCH = "none detected"


class SlotTally(BaseModel):
    """Sentence-level matches for one pattern matrix slot."""

    counts: dict[str, int] = Field(default_factory=dict)
    matched_sentences: int = 0
    examples: list[str] = Field(default_factory=list)


class VideoExtraction(BaseModel):
    """Everything the profile builder needs from one transcript."""

    video_id: str
    captured_at: datetime
    duration: float
    transcript_length: int
    word_count: int
    sentence_count: int

    hook: str | None = None
    hook_verbatim: str | None = None
    bridges: dict[str, int] = Field(default_factory=dict)

    energy_scores: list[float] = Field(default_factory=list)
    energy_mean: float = 0.0
    energy_std: float = 0.0
    energy_build: float = 0.0
    excited_markers: dict[str, int] = Field(default_factory=dict)

    explaining_votes: dict[str, int] = Field(default_factory=dict)
    transition_words: dict[str, int] = Field(default_factory=dict)

    fillers: dict[str, int] = Field(default_factory=dict)
    boundary_fragments: dict[str, int] = Field(default_factory=dict)
    opening_phrase: str | None = None
    closing_phrase: str | None = None

    length_histogram: dict[str, int] = Field(default_factory=dict)
    cadence: list[str] = Field(default_factory=list)
    sentence_length_mean: float = 0.0
    sentence_length_cv: float = 0.0
    starters: dict[str, int] = Field(default_factory=dict)
    exclamation_count: int = 0
    question_count: int = 0
    vocabulary: dict[str, int] = Field(default_factory=dict)

    matrix: dict[str, SlotTally] = Field(default_factory=dict)
    speech_patterns: SpeechPatterns


def sentence_energy(sentence: str) -> tuple[float, list[str]]:
    """Score a sentence's energy and return the phrases that triggered it.

    Exclamation marks (capped at 3) count 1 each, all-caps words 0.75 each,
    and excitement-lexicon phrases 1 each.
    """
    exclamations = min(sentence.count("!"), 3)
    caps_runs = [
        m.group(0) for m in CAPS_RUN_RE.finditer(sentence) if m.group(0) not in CAPS_EXCLUDED
    ]
    caps_words = sum(len(run.split()) for run in caps_runs)
    excitement = [m.group(0) for m in EXCITEMENT_RE.finditer(sentence)]

    triggers = list(caps_runs)
    for phrase in excitement:
        if not any(phrase.lower() in run.lower() for run in caps_runs):
            triggers.append(phrase.lower())

    score = exclamations + 0.75 * caps_words + len(excitement)
    return float(score), triggers


def hook_candidate(sentences: list[str], max_words: int) -> tuple[str, str] | None:
    """Return (normalized, verbatim) hook from the opening sentence."""
    if not sentences:
        return None
    first = sentences[0]
    clause = leading_clause(first)
    text = clause if word_count(clause) >= 2 else first
    verbatim = " ".join(tokenize(text)[:max_words])
    normalized = normalize_phrase(verbatim)
    if not normalized:
        return None
    return normalized, verbatim


def energy_level(mean_energy: float) -> str:
    if mean_energy < 0.5:
        return "low"
    if mean_energy < 1.2:
        return "medium"
    return "high"


def sentence_structure(mean_length: float) -> str:
    if mean_length < 8:
        return "short"
    if mean_length > 15:
        return "complex"
    return "varied"


def rhythm_description(length_cv: float) -> str:
    if length_cv > 0.5:
        return "variable pacing with dynamic rhythm"
    return "consistent, steady rhythm"


def choose_explaining_structure(votes: dict[str, int]) -> str:
    """Majority vote; ties resolve in step-by-step, circular, branching order."""
    best = "step-by-step"
    best_votes = 0
    for structure in EXPLAINING_ORDER:
        if votes.get(structure, 0) > best_votes:
            best = structure
            best_votes = votes[structure]
    return best


def top_keys(counts: dict[str, int], limit: int, min_count: int = 1) -> list[str]:
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return [key for key, count in ranked if count >= min_count][:limit]


def build_pattern_element(slot: str, tally: SlotTally, total_sentences: int) -> PatternElement:
    """Collapse a slot tally into its dominant pattern element."""
    element = top_keys(tally.counts, 1)
    frequency = tally.matched_sentences / total_sentences if total_sentences else 0.0
    return PatternElement(
        element=element[0] if element else NO_MATCH,
        frequency=round(min(frequency, 1.0), 4),
        examples=tally.examples[:3],
        context=MATRIX_CONTEXTS[slot],
    )


def _explaining_votes(sentences: list[str]) -> dict[str, int]:
    votes: Counter[str] = Counter()
    token_sets = [set(significant_tokens(s)) for s in sentences]
    for i, sentence in enumerate(sentences):
        opening = lower_words(sentence)
        if ORDINAL_RE.match(opening):
            votes["step-by-step"] += 1
        elif LOOP_RE.search(sentence) or _returns_to_topic(i, token_sets):
            votes["circular"] += 1
        elif BRANCH_RE.search(sentence) or "(" in sentence:
            votes["branching"] += 1
    return dict(votes)


def _returns_to_topic(index: int, token_sets: list[set[str]]) -> bool:
    current = token_sets[index]
    if len(current) < 2:
        return False
    return any(
        jaccard(current, token_sets[j]) >= TOPIC_RETURN_OVERLAP for j in range(index - 1)
    )


def _boundary_fragments(sentences: list[str], settings: ExtractionSettings) -> dict[str, int]:
    fragments: list[str] = []
    for sentence in sentences:
        lead = leading_clause(sentence)
        candidates = [sentence] if lead == sentence else [lead, trailing_clause(sentence)]
        for candidate in candidates:
            words = word_count(candidate)
            if 1 <= words <= settings.filler_max_words:
                fragments.append(lower_words(candidate))
    return cluster_phrases(fragments, max_distance=settings.filler_max_distance)


def _closing_phrase(sentences: list[str]) -> str | None:
    last = sentences[-1]
    if word_count(last) > CLOSING_MAX_WORDS:
        last = trailing_clause(last)
    if not 1 <= word_count(last) <= CLOSING_MAX_WORDS:
        return None
    return lower_words(last)


def _matrix_tallies(sentences: list[str]) -> dict[str, SlotTally]:
    tallies = {}
    for slot, regex in MATRIX_RES.items():
        counts: Counter[str] = Counter()
        examples: list[str] = []
        matched = 0
        for sentence in sentences:
            found = {
                m.group(0) if slot == "energy_escalator" else m.group(0).lower()
                for m in regex.finditer(sentence)
            }
            if not found:
                continue
            matched += 1
            counts.update(found)
            if len(examples) < 3:
                examples.append(truncate_words(sentence, 20))
        tallies[slot] = SlotTally(counts=dict(counts), matched_sentences=matched, examples=examples)
    return tallies


def extract_video(
    video: VideoAnalysisData, settings: ExtractionSettings | None = None
) -> VideoExtraction | None:
    """Extract speech patterns from one video transcript.

    Args:
        video: Video with transcript and metadata
        settings: Extraction thresholds (defaults to medium sensitivity)

    Returns:
        VideoExtraction, or None if the transcript is too short to analyze
    """
    settings = settings or ExtractionSettings()
    transcript = video.transcript.strip()

    if len(transcript) < settings.min_transcript_length:
        logger.info(
            "Skipping %s: transcript has %d chars (minimum %d)",
            video.video_id,
            len(transcript),
            settings.min_transcript_length,
        )
        return None

    sentences = split_sentences(transcript)
    if not sentences:
        logger.info("Skipping %s: no sentences found", video.video_id)
        return None

    lengths = np.array([word_count(s) for s in sentences], dtype=float)
    length_mean = float(np.mean(lengths))
    length_cv = float(np.std(lengths) / length_mean) if length_mean > 0 else 0.0

    hook = hook_candidate(sentences, settings.hook_max_words)

    bridges: Counter[str] = Counter()
    for sentence in sentences[1:]:
        cue = match_transition_cue(lower_words(sentence))
        if cue:
            bridges[cue] += 1

    energies = []
    markers: Counter[str] = Counter()
    for sentence in sentences:
        score, triggers = sentence_energy(sentence)
        energies.append(score)
        if settings.enable_emotional_analysis and score >= settings.excited_threshold:
            if triggers:
                markers[triggers[0]] += 1
            else:
                markers[lower_words(truncate_words(leading_clause(sentence), 4))] += 1

    energy_array = np.array(energies, dtype=float)
    half = len(energies) // 2
    energy_build = (
        float(np.mean(energy_array[half:]) - np.mean(energy_array[:half])) if half else 0.0
    )

    votes = _explaining_votes(sentences)
    transition_words: Counter[str] = Counter(
        m.group(0).lower() for s in sentences for m in ORDINAL_RE.finditer(s)
    )
    transition_words.update(m.group(0).lower() for s in sentences for m in CAUSAL_RE.finditer(s))

    fillers = Counter(m.group(0).lower() for m in FILLER_RE.finditer(transcript))
    fragments = _boundary_fragments(sentences, settings)
    opening = hook[0] if hook else None
    closing = _closing_phrase(sentences)

    histogram = Counter(length_class(int(n)) for n in lengths)
    starters = Counter(lower_words(s).split(" ")[0] for s in sentences)

    extraction = VideoExtraction(
        video_id=video.video_id,
        captured_at=video.captured_at,
        duration=video.duration,
        transcript_length=len(transcript),
        word_count=int(lengths.sum()),
        sentence_count=len(sentences),
        hook=hook[0] if hook else None,
        hook_verbatim=hook[1] if hook else None,
        bridges=dict(bridges),
        energy_scores=energies,
        energy_mean=float(np.mean(energy_array)),
        energy_std=float(np.std(energy_array)),
        energy_build=energy_build,
        excited_markers=dict(markers),
        explaining_votes=votes,
        transition_words=dict(transition_words),
        fillers=dict(fillers),
        boundary_fragments=fragments,
        opening_phrase=opening,
        closing_phrase=closing,
        length_histogram={name: histogram.get(name, 0) for name in ("short", "medium", "long")},
        cadence=cadence_tokens(sentences),
        sentence_length_mean=length_mean,
        sentence_length_cv=length_cv,
        starters=dict(starters),
        exclamation_count=sum(1 for s in sentences if s.endswith("!")),
        question_count=sum(1 for s in sentences if s.endswith("?")),
        vocabulary=dict(Counter(significant_tokens(transcript))),
        matrix=_matrix_tallies(sentences),
        speech_patterns=_video_speech_patterns(
            settings, energy_array, length_mean, length_cv, markers, votes,
            transition_words, fillers, fragments, opening, closing,
        ),
    )

    logger.debug(
        "Extracted %s: %d sentences, hook=%r, %d bridge cues",
        video.video_id,
        len(sentences),
        extraction.hook,
        sum(bridges.values()),
    )
    return extraction


def _video_speech_patterns(
    settings: ExtractionSettings,
    energy_array: np.ndarray,
    length_mean: float,
    length_cv: float,
    markers: Counter[str],
    votes: dict[str, int],
    transition_words: Counter[str],
    fillers: Counter[str],
    fragments: dict[str, int],
    opening: str | None,
    closing: str | None,
) -> SpeechPatterns:
    level = energy_level(float(np.mean(energy_array)))
    filler_set = set(FILLER_WORDS)
    return SpeechPatterns(
        baseline=EnergyBaseline(
            typical_energy=level,
            sentence_structure=sentence_structure(length_mean),
            default_rhythm=rhythm_description(length_cv),
        ),
        emotional_states=EmotionalStates(
            excited=ExcitedState(
                description=EXCITED_DESCRIPTIONS[level],
                marker_phrases=top_keys(dict(markers), 5),
            ),
            explaining=ExplainingState(
                structure=choose_explaining_structure(votes),
                transition_words=top_keys(dict(transition_words), 8),
            ),
        ),
        unique_markers=UniqueMarkers(
            filler_patterns=top_keys(dict(fillers), 10, settings.min_frequency),
            catchphrases=Catchphrases(
                opening=[opening] if opening else [],
                closing=[closing] if closing else [],
            ),
            random_insertions=[
                phrase
                for phrase in top_keys(fragments, 10, settings.min_frequency)
                if phrase not in filler_set
            ],
        ),
    )
