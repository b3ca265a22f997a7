"""
voiceprint.generate - Five-phase script generation.

Stage 3: Scale the timing template, rotate hooks and bridges, write each
phase, enforce the rules, and keep the most authentic attempt.
"""

from __future__ import annotations
