"""Tests for voiceprint.analyze.corpus module."""

from __future__ import annotations

import json
import time
from pathlib import Path

import pytest

from voiceprint.analyze import corpus
from voiceprint.analyze.corpus import CollectorFailure, DirectoryCollector, extract_corpus
from voiceprint.analyze.extractor import extract_video
from voiceprint.config import ExtractionSettings, VoiceprintConfig
from voiceprint.exceptions import AnalysisTimeoutError, ErrorCode, UserNotFoundError
from voiceprint.models import UserIdentifier, VideoAnalysisData

from .conftest import ListCollector, make_transcript, make_videos


class TestDirectoryCollector:
    def test_reads_text_transcripts(
        self, transcripts_dir: Path, identifier: UserIdentifier
    ) -> None:
        items = list(DirectoryCollector(transcripts_dir).collect(identifier, 25))
        assert len(items) == 5
        assert all(isinstance(item, VideoAnalysisData) for item in items)
        assert items[0].video_id == "video_01"
        assert items[0].platform == "tiktok"
        assert items[0].duration > 0

    def test_respects_max_videos(self, transcripts_dir: Path, identifier: UserIdentifier) -> None:
        items = list(DirectoryCollector(transcripts_dir).collect(identifier, 2))
        assert [item.video_id for item in items] == ["video_01", "video_02"]

    def test_reads_json_records(self, tmp_path: Path, identifier: UserIdentifier) -> None:
        record = {
            "transcript": make_transcript("mornings"),
            "duration": 42.5,
            "capturedAt": "2026-01-05T10:00:00+00:00",
            "engagement": {"views": 1200, "likes": 80},
        }
        (tmp_path / "clip.json").write_text(json.dumps(record))
        items = list(DirectoryCollector(tmp_path).collect(identifier, 25))
        assert len(items) == 1
        video = items[0]
        assert isinstance(video, VideoAnalysisData)
        assert video.video_id == "clip"
        assert video.duration == 42.5
        assert video.engagement is not None
        assert video.engagement.views == 1200

    def test_bad_file_becomes_failure(self, tmp_path: Path, identifier: UserIdentifier) -> None:
        (tmp_path / "broken.json").write_text("{not json")
        (tmp_path / "other.json").write_text(
            json.dumps({"transcript": "x", "duration": 1, "platform": "instagram"})
        )
        items = list(DirectoryCollector(tmp_path).collect(identifier, 25))
        assert all(isinstance(item, CollectorFailure) for item in items)
        assert [item.video_id for item in items] == ["broken", "other"]

    def test_missing_directory(self, tmp_path: Path, identifier: UserIdentifier) -> None:
        collector = DirectoryCollector(tmp_path / "nope")
        with pytest.raises(UserNotFoundError):
            list(collector.collect(identifier, 25))

    def test_empty_directory(self, tmp_path: Path, identifier: UserIdentifier) -> None:
        with pytest.raises(UserNotFoundError):
            list(DirectoryCollector(tmp_path).collect(identifier, 25))


class TestExtractCorpus:
    def test_extracts_in_collection_order(self, identifier: UserIdentifier) -> None:
        videos = make_videos()
        config = VoiceprintConfig(analysis={"batch_size": 2})
        report = extract_corpus(identifier, ListCollector(videos), config)
        assert [e.video_id for e in report.extractions] == [v.video_id for v in videos]
        assert set(report.transcripts) == {v.video_id for v in videos}
        assert report.videos_failed == 0

    def test_failures_are_tallied(self, identifier: UserIdentifier) -> None:
        short = make_videos()[0].model_copy(update={"video_id": "short", "transcript": "Hi."})
        items = [
            *make_videos(),
            short,
            CollectorFailure(video_id="gone", message="download failed"),
        ]
        report = extract_corpus(identifier, ListCollector(items))
        assert len(report.extractions) == 5
        assert report.videos_failed == 2
        assert report.failure_codes() == {
            ErrorCode.INSUFFICIENT_CONTENT.value: 1,
            ErrorCode.TRANSCRIPTION_FAILED.value: 1,
        }

    def test_max_videos_limits_collection(self, identifier: UserIdentifier) -> None:
        config = VoiceprintConfig(analysis={"max_videos": 3})
        report = extract_corpus(identifier, ListCollector(make_videos()), config)
        assert len(report.extractions) == 3

    def test_slow_video_times_out(
        self, identifier: UserIdentifier, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def slow_on_v3(video: VideoAnalysisData, settings: ExtractionSettings):
            if video.video_id == "v3":
                time.sleep(1.0)
            return extract_video(video, settings)

        monkeypatch.setattr(corpus, "extract_video", slow_on_v3)
        config = VoiceprintConfig(analysis={"video_timeout_seconds": 0.2})
        report = extract_corpus(identifier, ListCollector(make_videos()), config)
        assert report.failure_codes() == {ErrorCode.ANALYSIS_TIMEOUT.value: 1}
        assert len(report.extractions) == 4
        assert "v3" not in report.transcripts

    def test_overall_budget_checked_between_batches(
        self, identifier: UserIdentifier, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def slow(video: VideoAnalysisData, settings: ExtractionSettings):
            time.sleep(0.3)
            return extract_video(video, settings)

        monkeypatch.setattr(corpus, "extract_video", slow)
        config = VoiceprintConfig(analysis={"batch_size": 2, "analysis_timeout_seconds": 0.1})
        with pytest.raises(AnalysisTimeoutError) as exc_info:
            extract_corpus(identifier, ListCollector(make_videos()), config)
        assert exc_info.value.code == ErrorCode.ANALYSIS_TIMEOUT
        assert exc_info.value.details["videosProcessed"] == 2
