"""
voiceprint.llm.parsing - LLM output JSON parsing with validation.

Model replies are parsed into JSON with light repair, then validated into
the exact value the caller expects before anything downstream sees them.
"""

from __future__ import annotations

import json
import re
from typing import Any

from voiceprint.exceptions import LLMResponseError

MAX_PHASE_CHARS = 2000


def extract_json_from_response(response: str) -> str:
    """Pull the JSON object out of a reply that may carry prose or code fences.

    Raises:
        LLMResponseError: If no JSON object is present
    """
    text = response.strip()
    if "```" in text:
        text = re.sub(r"```(?:json)?\s*", "", text).strip()

    match = re.search(r"\{[\s\S]*\}", text)
    if match:
        return match.group(0)
    raise LLMResponseError("No JSON object found in response")


def repair_json(text: str) -> str:
    """Fix trailing commas and unbalanced closing braces/brackets."""
    text = re.sub(r",(\s*[}\]])", r"\1", text)
    open_brackets = text.count("[") - text.count("]")
    open_braces = text.count("{") - text.count("}")
    if open_brackets > 0:
        text += "]" * open_brackets
    if open_braces > 0:
        text += "}" * open_braces
    return text


def parse_llm_json(response: str) -> dict[str, Any]:
    """Parse JSON from an LLM reply, repairing common defects once.

    Raises:
        LLMResponseError: If the reply cannot be parsed into an object
    """
    text = extract_json_from_response(response)
    for candidate in (text, repair_json(text)):
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            return data
        break

    raise LLMResponseError(
        "Failed to parse LLM response as a JSON object.\n\n"
        f"Response (first 300 chars):\n{text[:300]}"
    )


def validate_phase_response(data: dict[str, Any], phase: str) -> str:
    """Validate a phase reply of the form ``{"text": "..."}``.

    Args:
        data: Parsed JSON from the model
        phase: Phase name, for error messages

    Returns:
        The phase text, whitespace-normalized

    Raises:
        LLMResponseError: If the text is missing, not a string, empty, or oversized
    """
    text = data.get("text")
    if not isinstance(text, str):
        raise LLMResponseError(f"Missing 'text' string for {phase} phase")
    text = " ".join(text.split())
    if not text:
        raise LLMResponseError(f"Empty text for {phase} phase")
    if len(text) > MAX_PHASE_CHARS:
        raise LLMResponseError(
            f"{phase} phase text is {len(text)} chars (limit {MAX_PHASE_CHARS})"
        )
    return text
