"""
voiceprint.llm - Language model access for phase writing.

Client (litellm), Jinja2 prompt templates, and reply parsing/validation.
"""

from __future__ import annotations
