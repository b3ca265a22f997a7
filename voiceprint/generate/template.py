"""
voiceprint.generate.template - Five-phase timing template.

The canonical 30-second script runs hook 0-3s, bridge 3-5s, core 5-20s,
escalation 20-25s, close 25-30s. Other targets scale the phase boundaries
proportionally; boundaries are rounded (not durations) so the phases always
add up to the target exactly.
"""

from __future__ import annotations

from pydantic import BaseModel

from voiceprint.models import PHASE_NAMES

CANONICAL_LENGTH = 30
CANONICAL_BOUNDARIES = (0, 3, 5, 20, 25, 30)


class PhaseWindow(BaseModel):
    name: str
    start: int
    end: int
    word_budget: int

    @property
    def duration(self) -> int:
        return self.end - self.start


def scale_boundaries(target_length: int) -> list[int]:
    """Phase boundaries in whole seconds for a target length, halves rounded up."""
    return [
        int(boundary * target_length / CANONICAL_LENGTH + 0.5)
        for boundary in CANONICAL_BOUNDARIES
    ]


def build_phase_windows(target_length: int, words_per_second: float = 2.5) -> list[PhaseWindow]:
    """Scale the canonical template to ``target_length`` seconds.

    Args:
        target_length: Script length in seconds (already clamped)
        words_per_second: Speaking rate used for each phase's word budget

    Returns:
        One PhaseWindow per phase, in script order
    """
    boundaries = scale_boundaries(target_length)
    windows = []
    for name, start, end in zip(PHASE_NAMES, boundaries, boundaries[1:]):
        windows.append(
            PhaseWindow(
                name=name,
                start=start,
                end=end,
                word_budget=max(3, int(round((end - start) * words_per_second))),
            )
        )
    return windows


def phase_durations(windows: list[PhaseWindow]) -> dict[str, int]:
    return {window.name: window.duration for window in windows}
