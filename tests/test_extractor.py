"""Tests for voiceprint.analyze.extractor module."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from voiceprint.analyze.extractor import (
    choose_explaining_structure,
    energy_level,
    extract_video,
    hook_candidate,
    sentence_energy,
)
from voiceprint.analyze.lexicon import match_transition_cue
from voiceprint.config import ExtractionSettings
from voiceprint.models import VideoAnalysisData

from .conftest import make_transcript


def _video(transcript: str, video_id: str = "v1") -> VideoAnalysisData:
    return VideoAnalysisData(
        video_id=video_id,
        transcript=transcript,
        duration=30.0,
        captured_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        platform="tiktok",
    )


class TestSentenceEnergy:
    def test_exclamation_caps_and_excitement(self) -> None:
        score, triggers = sentence_energy("This is HUGE!")
        assert score == pytest.approx(2.75)
        assert triggers == ["HUGE"]

    def test_excitement_phrase_outside_caps(self) -> None:
        score, triggers = sentence_energy("That was amazing.")
        assert score == pytest.approx(1.0)
        assert triggers == ["amazing"]

    def test_exclamations_capped(self) -> None:
        score, _ = sentence_energy("Go!!!!!!")
        assert score == pytest.approx(3.0)

    def test_excluded_acronyms_do_not_count(self) -> None:
        score, triggers = sentence_energy("I told my DM about it.")
        assert score == 0.0
        assert triggers == []

    def test_energy_levels(self) -> None:
        assert energy_level(0.2) == "low"
        assert energy_level(0.8) == "medium"
        assert energy_level(2.0) == "high"


class TestHookCandidate:
    def test_leading_clause_used_when_long_enough(self) -> None:
        hook = hook_candidate(["Okay so, let me explain this.", "More."], 12)
        assert hook == ("okay so", "Okay so")

    def test_single_word_clause_falls_back_to_sentence(self) -> None:
        hook = hook_candidate(["Guys, you need this."], 12)
        assert hook is not None
        assert hook[0] == "guys you need this"

    def test_truncates_to_max_words(self) -> None:
        hook = hook_candidate(["one two three four five six."], 3)
        assert hook == ("one two three", "one two three")

    def test_empty(self) -> None:
        assert hook_candidate([], 12) is None


class TestTransitionCues:
    def test_longest_cue_wins(self) -> None:
        assert match_transition_cue("so here's the thing you need") == "so here's the thing"

    def test_cue_must_be_whole_words(self) -> None:
        assert match_transition_cue("sometimes it works") is None
        assert match_transition_cue("so it works") == "so"


class TestExtractVideo:
    def test_extracts_voice_patterns(self) -> None:
        extraction = extract_video(_video(make_transcript("mornings")))
        assert extraction is not None
        assert extraction.hook == "okay so here's the thing"
        assert extraction.bridges == {"so": 1, "basically": 1}
        assert extraction.closing_phrase == "like and follow for more"
        assert extraction.excited_markers == {"HUGE": 1}
        assert extraction.sentence_count == 8

    def test_length_histogram(self) -> None:
        extraction = extract_video(_video(make_transcript("mornings")))
        assert extraction is not None
        assert extraction.length_histogram == {"short": 6, "medium": 1, "long": 1}
        assert sum(extraction.length_histogram.values()) == extraction.sentence_count

    def test_boundary_fragments_and_fillers(self) -> None:
        extraction = extract_video(_video(make_transcript("mornings")))
        assert extraction is not None
        assert extraction.boundary_fragments["first"] == 1
        assert extraction.boundary_fragments["this is huge"] == 1
        assert extraction.fillers == {"basically": 1, "honestly": 1, "like": 1}

    def test_ordinal_openings_vote_step_by_step(self) -> None:
        extraction = extract_video(_video(make_transcript("mornings")))
        assert extraction is not None
        assert extraction.explaining_votes.get("step-by-step") == 1
        assert extraction.speech_patterns.emotional_states.explaining.structure == "step-by-step"

    def test_short_transcript_skipped(self) -> None:
        assert extract_video(_video("Too short.")) is None

    def test_min_length_setting(self) -> None:
        settings = ExtractionSettings(min_transcript_length=5)
        extraction = extract_video(_video("Hey there. You again."), settings)
        assert extraction is not None
        assert extraction.hook == "hey there"

    def test_emotional_analysis_can_be_disabled(self) -> None:
        settings = ExtractionSettings(enable_emotional_analysis=False)
        extraction = extract_video(_video(make_transcript("mornings")), settings)
        assert extraction is not None
        assert extraction.excited_markers == {}

    def test_matrix_tallies(self) -> None:
        extraction = extract_video(_video(make_transcript("mornings")))
        assert extraction is not None
        hook_slot = extraction.matrix["primary_hook"]
        assert hook_slot.counts.get("okay so") == 1
        assert hook_slot.counts.get("here's the thing") == 1
        assert extraction.matrix["audience_address"].counts.get("you need to") == 1


class TestExplainingStructure:
    def test_majority_vote(self) -> None:
        assert choose_explaining_structure({"circular": 3, "step-by-step": 1}) == "circular"

    def test_tie_prefers_step_by_step(self) -> None:
        votes = {"branching": 2, "circular": 2, "step-by-step": 2}
        assert choose_explaining_structure(votes) == "step-by-step"

    def test_no_votes(self) -> None:
        assert choose_explaining_structure({}) == "step-by-step"
