"""
voiceprint.analyze.corpus - Video collection and parallel extraction.

Defines the collector contract the analysis pipeline consumes, a collector
that reads transcripts from a local directory, and the bounded worker pool
that runs the pattern extractor over a creator's videos in batches.
"""

from __future__ import annotations

import itertools
import json
import time
from collections.abc import Iterable, Iterator
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, Field

from voiceprint.analyze.extractor import VideoExtraction, extract_video
from voiceprint.config import VoiceprintConfig
from voiceprint.exceptions import AnalysisTimeoutError, ErrorCode, UserNotFoundError
from voiceprint.io import read_json, read_text
from voiceprint.logging import logger
from voiceprint.models import UserIdentifier, VideoAnalysisData

TRANSCRIPT_SUFFIXES = {".json", ".txt"}
ESTIMATED_WORDS_PER_SECOND = 2.5


class CollectorFailure(BaseModel):
    """A single video the collector could not deliver."""

    video_id: str
    code: str = ErrorCode.TRANSCRIPTION_FAILED.value
    message: str = ""


class VideoCorpusCollector(Protocol):
    """Source of a creator's recent videos with transcripts.

    Per-video problems are yielded as CollectorFailure items. Problems that
    affect the whole request (unknown user, rate limits, network) are raised
    as the matching AnalysisError subclass.
    """

    def collect(
        self, identifier: UserIdentifier, max_videos: int
    ) -> Iterable[VideoAnalysisData | CollectorFailure]: ...


class DirectoryCollector:
    """Reads transcripts from ``<root>/<handle>/`` (or ``<root>`` itself).

    ``*.json`` files hold a VideoAnalysisData record (camelCase keys; the
    platform, video id, and capture time default from the identifier, file
    name, and file mtime). ``*.txt`` files hold a bare transcript.
    """

    def __init__(self, root: Path) -> None:
        self.root = root

    def source_dir(self, identifier: UserIdentifier) -> Path:
        handle_dir = self.root / identifier.handle
        return handle_dir if handle_dir.is_dir() else self.root

    def collect(
        self, identifier: UserIdentifier, max_videos: int
    ) -> Iterator[VideoAnalysisData | CollectorFailure]:
        base = self.source_dir(identifier)
        if not base.is_dir():
            raise UserNotFoundError(
                f"No transcripts directory for @{identifier.handle}: {base}",
                details={"handle": identifier.handle, "path": str(base)},
            )

        files = sorted(p for p in base.iterdir() if p.suffix in TRANSCRIPT_SUFFIXES)
        if not files:
            raise UserNotFoundError(
                f"No transcripts found for @{identifier.handle} in {base}",
                details={"handle": identifier.handle, "path": str(base)},
            )

        for path in files[:max_videos]:
            try:
                yield self._load(path, identifier)
            except (OSError, ValueError) as e:
                logger.warning("Could not load %s: %s", path.name, e)
                yield CollectorFailure(video_id=path.stem, message=str(e))

    def _load(self, path: Path, identifier: UserIdentifier) -> VideoAnalysisData:
        mtime = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
        if path.suffix == ".txt":
            transcript = read_text(path)
            words = len(transcript.split())
            return VideoAnalysisData(
                video_id=path.stem,
                transcript=transcript,
                duration=round(words / ESTIMATED_WORDS_PER_SECOND, 1),
                captured_at=mtime,
                platform=identifier.platform,
            )

        data = read_json(path)
        data.setdefault("videoId", path.stem)
        data.setdefault("platform", identifier.platform)
        data.setdefault("capturedAt", mtime.isoformat())
        video = VideoAnalysisData.model_validate(data)
        if video.platform != identifier.platform:
            raise ValueError(
                f"video platform '{video.platform}' does not match '{identifier.platform}'"
            )
        return video


class CorpusReport(BaseModel):
    """Outcome of running extraction over a collected corpus."""

    extractions: list[VideoExtraction] = Field(default_factory=list)
    transcripts: dict[str, str] = Field(default_factory=dict)
    failures: list[CollectorFailure] = Field(default_factory=list)

    @property
    def videos_failed(self) -> int:
        return len(self.failures)

    def failure_codes(self) -> dict[str, int]:
        codes: dict[str, int] = {}
        for failure in self.failures:
            codes[failure.code] = codes.get(failure.code, 0) + 1
        return codes


def _batches(items: Iterable, size: int) -> Iterator[list]:
    iterator = iter(items)
    while batch := list(itertools.islice(iterator, size)):
        yield batch


def extract_corpus(
    identifier: UserIdentifier,
    collector: VideoCorpusCollector,
    config: VoiceprintConfig | None = None,
) -> CorpusReport:
    """Collect a creator's videos and extract patterns with bounded concurrency.

    Videos are consumed lazily in batches of ``analysis.batch_size``; each
    batch runs on a pool of that many workers and every video gets its own
    timeout. Failed, timed-out, or too-short videos are tallied in the
    report instead of failing the run. Results keep collection order.

    Raises:
        AnalysisTimeoutError: If the overall analysis budget is exhausted
        AnalysisError: Collector-level failures (unknown user, rate limit, ...)
    """
    config = config or VoiceprintConfig()
    analysis = config.analysis
    started = time.monotonic()
    report = CorpusReport()

    executor = ThreadPoolExecutor(max_workers=analysis.batch_size, thread_name_prefix="extract")
    try:
        items = collector.collect(identifier, analysis.max_videos)
        for batch_number, batch in enumerate(_batches(items, analysis.batch_size), start=1):
            elapsed = time.monotonic() - started
            if elapsed > analysis.analysis_timeout_seconds:
                raise AnalysisTimeoutError(
                    f"Analysis exceeded {analysis.analysis_timeout_seconds:.0f}s "
                    f"after {len(report.extractions)} videos",
                    details={
                        "elapsedSeconds": round(elapsed, 2),
                        "videosProcessed": len(report.extractions),
                    },
                )

            futures: list[tuple[VideoAnalysisData, Future]] = []
            for item in batch:
                if isinstance(item, CollectorFailure):
                    report.failures.append(item)
                    continue
                futures.append((item, executor.submit(extract_video, item, config.extraction)))

            deadline = time.monotonic() + analysis.video_timeout_seconds
            for video, future in futures:
                remaining = max(0.0, deadline - time.monotonic())
                try:
                    extraction = future.result(timeout=remaining)
                except FuturesTimeoutError:
                    future.cancel()
                    logger.warning("Extraction timed out for %s", video.video_id)
                    report.failures.append(
                        CollectorFailure(
                            video_id=video.video_id,
                            code=ErrorCode.ANALYSIS_TIMEOUT.value,
                            message=f"extraction exceeded {analysis.video_timeout_seconds:.0f}s",
                        )
                    )
                    continue
                except Exception as e:
                    logger.exception("Extraction failed for %s", video.video_id)
                    report.failures.append(
                        CollectorFailure(
                            video_id=video.video_id,
                            code=ErrorCode.TRANSCRIPTION_FAILED.value,
                            message=str(e),
                        )
                    )
                    continue

                if extraction is None:
                    report.failures.append(
                        CollectorFailure(
                            video_id=video.video_id,
                            code=ErrorCode.INSUFFICIENT_CONTENT.value,
                            message="transcript too short to analyze",
                        )
                    )
                    continue

                report.extractions.append(extraction)
                report.transcripts[video.video_id] = video.transcript.strip()

            logger.info(
                "Batch %d: %d/%d videos extracted so far (%d failed)",
                batch_number,
                len(report.extractions),
                len(report.extractions) + report.videos_failed,
                report.videos_failed,
            )
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    return report
