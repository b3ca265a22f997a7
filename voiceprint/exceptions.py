"""
voiceprint.exceptions - Custom exception classes and error codes.

All Voiceprint-specific exceptions inherit from VoiceprintError and carry a
stable ErrorCode that the public API reports back to callers.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Machine-readable failure codes surfaced in result envelopes."""

    USER_NOT_FOUND = "USER_NOT_FOUND"
    INSUFFICIENT_CONTENT = "INSUFFICIENT_CONTENT"
    TRANSCRIPTION_FAILED = "TRANSCRIPTION_FAILED"
    ANALYSIS_TIMEOUT = "ANALYSIS_TIMEOUT"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    INVALID_PLATFORM = "INVALID_PLATFORM"
    NETWORK_ERROR = "NETWORK_ERROR"

    TOPIC_EMPTY = "TOPIC_EMPTY"
    CONTENT_EMPTY = "CONTENT_EMPTY"
    PERSONA_INVALID = "PERSONA_INVALID"
    PERSONA_NOT_FOUND = "PERSONA_NOT_FOUND"
    GENERATION_TIMEOUT = "GENERATION_TIMEOUT"
    RULE_VIOLATION = "RULE_VIOLATION"
    MODEL_OUTPUT_INVALID = "MODEL_OUTPUT_INVALID"

    CONFIG_ERROR = "CONFIG_ERROR"


class VoiceprintError(Exception):
    """Base exception for all Voiceprint errors."""

    code: ErrorCode = ErrorCode.CONFIG_ERROR

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        code: ErrorCode | None = None,
    ) -> None:
        self.message = message
        self.details = details or {}
        if code is not None:
            self.code = code
        super().__init__(message)


class ConfigError(VoiceprintError):
    """Configuration loading or validation error."""

    code = ErrorCode.CONFIG_ERROR


# Analysis


class AnalysisError(VoiceprintError):
    """Persona analysis error."""

    pass


class UserNotFoundError(AnalysisError):
    """No content could be located for the requested creator."""

    code = ErrorCode.USER_NOT_FOUND


class InvalidPlatformError(AnalysisError):
    """Platform outside the supported set."""

    code = ErrorCode.INVALID_PLATFORM


class InsufficientContentError(AnalysisError):
    """Too few usable videos or too little transcript text."""

    code = ErrorCode.INSUFFICIENT_CONTENT


class TranscriptionError(AnalysisError):
    """Transcripts could not be obtained for the creator."""

    code = ErrorCode.TRANSCRIPTION_FAILED


class AnalysisTimeoutError(AnalysisError):
    """Analysis exceeded its overall time budget."""

    code = ErrorCode.ANALYSIS_TIMEOUT


class RateLimitError(AnalysisError):
    """Upstream collector refused the request due to rate limits."""

    code = ErrorCode.RATE_LIMIT_EXCEEDED


class NetworkError(AnalysisError):
    """Upstream collector could not be reached."""

    code = ErrorCode.NETWORK_ERROR


# Generation


class GenerationError(VoiceprintError):
    """Script generation error."""

    pass


class TopicEmptyError(GenerationError):
    """Generation requested with a blank topic."""

    code = ErrorCode.TOPIC_EMPTY


class ContentEmptyError(GenerationError):
    """Validation requested for blank content."""

    code = ErrorCode.CONTENT_EMPTY


class PersonaInvalidError(GenerationError):
    """Persona profile is missing components required for generation."""

    code = ErrorCode.PERSONA_INVALID


class GenerationTimeoutError(GenerationError):
    """Text production exceeded the generation time budget."""

    code = ErrorCode.GENERATION_TIMEOUT


class RuleViolationError(GenerationError):
    """Generated text could not be brought into compliance with the rules."""

    code = ErrorCode.RULE_VIOLATION


# Storage


class StoreError(VoiceprintError):
    """Persistence error."""

    pass


class PersonaNotFoundError(StoreError):
    """Persona id not present in the store."""

    code = ErrorCode.PERSONA_NOT_FOUND


class RotationConflictError(StoreError):
    """Rotation state changed since it was read."""

    code = ErrorCode.CONFIG_ERROR

    def __init__(self, persona_id: str, expected: int, actual: int) -> None:
        self.persona_id = persona_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Rotation state for {persona_id} is at version {actual}, expected {expected}",
            details={"personaId": persona_id, "expected": expected, "actual": actual},
        )


# LLM


class LLMError(GenerationError):
    """LLM backend or prompt error."""

    code = ErrorCode.NETWORK_ERROR


class LLMPrivacyError(LLMError):
    """Attempted to use cloud LLM in local privacy mode."""

    code = ErrorCode.CONFIG_ERROR


class LLMResponseError(LLMError):
    """LLM returned malformed or unexpected response."""

    code = ErrorCode.MODEL_OUTPUT_INVALID
