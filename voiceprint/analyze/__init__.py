"""
voiceprint.analyze - Persona analysis.

Stage 1: Extract speech patterns per video transcript (in parallel).
Stage 2: Aggregate the extractions into one immutable persona profile.
"""

from __future__ import annotations
