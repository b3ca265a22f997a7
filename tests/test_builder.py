"""Tests for voiceprint.analyze.builder module."""

from __future__ import annotations

import numpy as np
import pytest
from pydantic import ValidationError

from voiceprint.analyze.builder import (
    build_persona_profile,
    choose_rotation,
    classify_energy_wave,
    corpus_digest,
    rank_counts,
    recurring_across_videos,
    sentence_distribution,
)
from voiceprint.analyze.extractor import extract_video
from voiceprint.config import VoiceprintConfig
from voiceprint.exceptions import ErrorCode, InsufficientContentError
from voiceprint.models import PersonaProfile, UserIdentifier, VideoAnalysisData

from .conftest import ANALYSIS_TIME, make_videos


def _build(
    identifier: UserIdentifier,
    videos: list[VideoAnalysisData],
    config: VoiceprintConfig | None = None,
) -> PersonaProfile:
    extractions = [e for e in (extract_video(v) for v in videos) if e]
    transcripts = {v.video_id: v.transcript for v in videos}
    return build_persona_profile(identifier, extractions, transcripts, config, now=ANALYSIS_TIME)


class TestPrimaryHook:
    def test_shared_opening_becomes_primary_hook(self, profile: PersonaProfile) -> None:
        """Five videos opening the same way yield one hook seen in every video."""
        assert profile.voice_profile.hooks[0] == "okay so here's the thing"
        assert profile.voice_profile.hook_frequencies["okay so here's the thing"] == 5
        assert profile.pattern_mapping.primary_hook.element == "okay so here's the thing"
        assert profile.pattern_mapping.primary_hook.frequency == pytest.approx(1.0)

    def test_single_hook_rotates_randomly(self, profile: PersonaProfile) -> None:
        assert profile.generation_parameters.pattern_rotation == "random"
        assert profile.generation_parameters.hook_ratio.primary == pytest.approx(1.0)
        assert profile.generation_parameters.hook_ratio.secondary == 0.0

    def test_two_hooks_rotate_sequentially(self, multi_hook_profile: PersonaProfile) -> None:
        assert multi_hook_profile.voice_profile.hooks == ["okay so here's the thing", "listen up"]
        assert multi_hook_profile.generation_parameters.pattern_rotation == "sequential"
        ratio = multi_hook_profile.generation_parameters.hook_ratio
        assert ratio.primary == pytest.approx(0.6)
        assert ratio.secondary == pytest.approx(0.4)


class TestProfileContents:
    def test_bridges_and_markers(self, profile: PersonaProfile) -> None:
        assert profile.voice_profile.bridges == {"basically": 5, "so": 5}
        assert profile.speech_patterns.emotional_states.excited.marker_phrases == ["HUGE"]

    def test_catchphrases_and_signature_elements(self, profile: PersonaProfile) -> None:
        catchphrases = profile.speech_patterns.unique_markers.catchphrases
        assert catchphrases.opening == ["okay so here's the thing"]
        assert catchphrases.closing == ["like and follow for more"]
        assert profile.speech_patterns.unique_markers.random_insertions == [
            "first",
            "this is huge",
        ]
        assert profile.voice_profile.signature_elements == [
            "first",
            "this is huge",
            "basically",
            "honestly",
            "like",
            "okay so here's the thing",
            "like and follow for more",
        ]

    def test_sentence_distribution_sums_to_one(self, profile: PersonaProfile) -> None:
        distribution = profile.generation_parameters.sentence_distribution
        assert distribution.short + distribution.medium + distribution.long == pytest.approx(1.0)
        assert distribution.short == pytest.approx(0.75)

    def test_vocabulary_excludes_stop_words(self, profile: PersonaProfile) -> None:
        fingerprint = profile.voice_profile.vocabulary_fingerprint
        assert "consistent" in fingerprint
        assert "this" not in fingerprint
        assert "okay" not in fingerprint

    def test_metadata(self, profile: PersonaProfile, videos: list[VideoAnalysisData]) -> None:
        assert profile.metadata.videos_analyzed == 5
        assert profile.metadata.source_video_ids == ["v1", "v2", "v3", "v4", "v5"]
        assert profile.metadata.total_transcript_length == sum(
            len(v.transcript) for v in videos
        )
        assert profile.analysis_date == ANALYSIS_TIME
        assert profile.generation_parameters.optimal_length == 30

    def test_persona_id_format(self, profile: PersonaProfile) -> None:
        platform, handle, digest = profile.persona_id.split("-")
        assert platform == "tiktok"
        assert handle == "creator"
        assert len(digest) == 12

    def test_profile_is_immutable(self, profile: PersonaProfile) -> None:
        with pytest.raises(ValidationError):
            profile.persona_id = "changed"


class TestDeterminism:
    def test_rebuild_is_identical(self, identifier: UserIdentifier) -> None:
        first = _build(identifier, make_videos())
        second = _build(identifier, make_videos())
        assert first.to_wire() == second.to_wire()

    def test_input_order_does_not_matter(self, identifier: UserIdentifier) -> None:
        videos = make_videos()
        assert _build(identifier, videos) == _build(identifier, list(reversed(videos)))

    def test_handle_case_does_not_change_id(self) -> None:
        upper = _build(UserIdentifier(handle="Creator", platform="tiktok"), make_videos())
        lower = _build(UserIdentifier(handle="creator", platform="tiktok"), make_videos())
        assert upper.persona_id == lower.persona_id

    def test_digest_depends_on_transcripts(self) -> None:
        assert corpus_digest({"a": "one"}) != corpus_digest({"a": "two"})
        assert corpus_digest({"a": "one", "b": "x"}) == corpus_digest({"b": "x", "a": "one"})


class TestContentFloors:
    def test_minimum_videos_accepted(self, identifier: UserIdentifier) -> None:
        profile = _build(identifier, make_videos()[:3])
        assert profile.metadata.videos_analyzed == 3

    def test_one_below_minimum_rejected(self, identifier: UserIdentifier) -> None:
        with pytest.raises(InsufficientContentError) as exc_info:
            _build(identifier, make_videos()[:2])
        assert exc_info.value.code == ErrorCode.INSUFFICIENT_CONTENT
        assert exc_info.value.details["videosAnalyzed"] == 2

    def test_total_length_floor(self, identifier: UserIdentifier) -> None:
        config = VoiceprintConfig(analysis={"min_total_transcript_length": 100_000})
        with pytest.raises(InsufficientContentError):
            _build(identifier, make_videos(), config)

    def test_rotation_override(self, identifier: UserIdentifier) -> None:
        config = VoiceprintConfig(analysis={"pattern_rotation": "weighted"})
        profile = _build(identifier, make_videos(), config)
        assert profile.generation_parameters.pattern_rotation == "weighted"


class TestHelpers:
    def test_rank_counts_orders_by_count_recency_then_text(self) -> None:
        counts = {"b": 2, "a": 2, "c": 3, "d": 2}
        last_seen = {"a": 1, "b": 1, "c": 0, "d": 4}
        assert rank_counts(counts, last_seen) == ["c", "d", "a", "b"]

    def test_rank_counts_min_count(self) -> None:
        assert rank_counts({"a": 1, "b": 2}, {}, min_count=2) == ["b"]

    def test_choose_rotation(self) -> None:
        assert choose_rotation(1, None) == "random"
        assert choose_rotation(2, None) == "sequential"
        assert choose_rotation(5, None) == "weighted"
        assert choose_rotation(5, "random") == "random"

    def test_sentence_distribution_defaults_when_empty(self) -> None:
        distribution = sentence_distribution({})
        assert (distribution.short, distribution.medium, distribution.long) == (0.3, 0.4, 0.3)

    def test_recurring_phrases_need_two_videos(self) -> None:
        phrases = ["see you soon", None, "see you son", "bye now"]
        assert recurring_across_videos(phrases, max_distance=2) == ["see you soon"]

    def test_energy_wave_labels(self) -> None:
        zeros = np.zeros(3)
        assert classify_energy_wave(zeros, np.full(3, 1.2), zeros) == "spiky"
        assert classify_energy_wave(np.full(3, 2.0), zeros, zeros) == "consistently-high"
        assert classify_energy_wave(np.full(3, 0.5), zeros, np.full(3, 0.5)) == "steady-building"
        assert classify_energy_wave(zeros, zeros, zeros) == "low-and-level"
        assert classify_energy_wave(np.full(3, 0.8), zeros, zeros) == "moderate-steady"
