"""
Voiceprint - creator voice persona analysis and script generation.

Builds a linguistic fingerprint from a creator's short-form video transcripts
through a three-stage pipeline: per-video pattern extraction → persona
profile aggregation → five-phase script generation with authenticity scoring.
"""

__version__ = "0.1.0"
