"""
Test configuration and shared fixtures.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from voiceprint.analyze.builder import build_persona_profile
from voiceprint.analyze.corpus import CollectorFailure
from voiceprint.analyze.extractor import extract_video
from voiceprint.models import PersonaProfile, UserIdentifier, VideoAnalysisData
from voiceprint.workspace import Workspace

TOPICS = ("mornings", "budgets", "workouts", "habits", "emails")
DEFAULT_OPENER = "Okay so here's the thing."
ANALYSIS_TIME = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_transcript(topic: str, opener: str = DEFAULT_OPENER) -> str:
    """A short-form transcript in the fixture creator's voice."""
    return (
        f"{opener} Most people get their {topic} completely wrong. "
        "So you need to start small and stay consistent. "
        f"Basically your {topic} need a simple system. "
        "First, write down one goal. "
        "And honestly the reason this works is that your brain loves routine "
        "and it stops fighting you after a couple of weeks. "
        "This is HUGE! Like and follow for more."
    )


def make_videos(
    openers: list[str] | None = None, platform: str = "tiktok"
) -> list[VideoAnalysisData]:
    openers = openers or [DEFAULT_OPENER] * len(TOPICS)
    start = datetime(2026, 1, 1, tzinfo=timezone.utc)
    return [
        VideoAnalysisData(
            video_id=f"v{i + 1}",
            url=f"https://example.com/v{i + 1}",
            transcript=make_transcript(TOPICS[i % len(TOPICS)], opener),
            duration=30.0,
            captured_at=start + timedelta(days=i),
            platform=platform,
        )
        for i, opener in enumerate(openers)
    ]


def build_profile(videos: list[VideoAnalysisData], handle: str = "creator") -> PersonaProfile:
    identifier = UserIdentifier(handle=handle, platform=videos[0].platform)
    extractions = [extract_video(v) for v in videos]
    transcripts = {v.video_id: v.transcript for v in videos}
    return build_persona_profile(
        identifier, [e for e in extractions if e], transcripts, now=ANALYSIS_TIME
    )


class ListCollector:
    """Collector over an in-memory list of videos and failures."""

    def __init__(self, items: list[VideoAnalysisData | CollectorFailure]) -> None:
        self.items = items
        self.requests: list[UserIdentifier] = []

    def collect(
        self, identifier: UserIdentifier, max_videos: int
    ) -> Iterator[VideoAnalysisData | CollectorFailure]:
        self.requests.append(identifier)
        yield from self.items[:max_videos]


@pytest.fixture
def identifier() -> UserIdentifier:
    """Return the fixture creator's identifier."""
    return UserIdentifier(handle="creator", platform="tiktok")


@pytest.fixture
def videos() -> list[VideoAnalysisData]:
    """Return five videos that all open with the same hook."""
    return make_videos()


@pytest.fixture
def profile(videos: list[VideoAnalysisData]) -> PersonaProfile:
    """Return a persona built from the five single-hook videos."""
    return build_profile(videos)


@pytest.fixture
def multi_hook_profile() -> PersonaProfile:
    """Return a persona with two hooks, which rotates sequentially."""
    openers = [DEFAULT_OPENER, "Listen up.", DEFAULT_OPENER, "Listen up.", DEFAULT_OPENER]
    return build_profile(make_videos(openers), handle="rotator")


@pytest.fixture
def transcripts_dir(tmp_path: Path) -> Path:
    """Create a transcripts directory with one .txt file per video for @creator."""
    root = tmp_path / "transcripts"
    creator_dir = root / "creator"
    creator_dir.mkdir(parents=True)
    for i, topic in enumerate(TOPICS):
        (creator_dir / f"video_{i + 1:02d}.txt").write_text(make_transcript(topic))
    return root


@pytest.fixture
def tmp_workspace(tmp_path: Path) -> Workspace:
    """Create a temporary workspace with default configuration."""
    workspace = Workspace(tmp_path / "test_workspace")
    workspace.create()
    return workspace
