"""
voiceprint.utils - Shared formatting helpers for the CLI.
"""

from __future__ import annotations


def format_duration(seconds: float) -> str:
    """Format seconds as M:SS.

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted string, e.g. "0:30" or "1:05"
    """
    minutes = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{minutes}:{secs:02d}"


def score_style(score: float, threshold: float = 75.0) -> str:
    """Rich style for an authenticity score (0-100).

    Returns:
        "green" at or above threshold, "yellow" within 15 points, else "red"
    """
    if score >= threshold:
        return "green"
    elif score >= threshold - 15:
        return "yellow"
    return "red"


def truncate(text: str, width: int = 60) -> str:
    if len(text) <= width:
        return text
    return text[: width - 1].rstrip() + "…"
