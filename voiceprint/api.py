"""
voiceprint.api - Request/response entry points.

analyze_voice_persona, generate_script_with_persona and validate_content
never raise VoiceprintError across this boundary: failures come back as
``success=False`` results carrying an ErrorInfo with a stable code.
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Callable, Sequence
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from voiceprint.analyze.builder import build_persona_profile
from voiceprint.analyze.corpus import CorpusReport, VideoCorpusCollector, extract_corpus
from voiceprint.config import VoiceprintConfig
from voiceprint.exceptions import (
    ConfigError,
    ContentEmptyError,
    ErrorCode,
    InvalidPlatformError,
    PersonaInvalidError,
    RotationConflictError,
    TopicEmptyError,
    TranscriptionError,
    UserNotFoundError,
    VoiceprintError,
)
from voiceprint.generate.generator import ScriptGenerator
from voiceprint.generate.rules import RulesEngine
from voiceprint.generate.writers import LLMWriter, PhaseWriter, TemplateWriter
from voiceprint.logging import logger
from voiceprint.models import (
    AnalysisMetadata,
    AnalysisResult,
    AuthenticityMetrics,
    ContentValidationResult,
    ErrorInfo,
    GeneratedScript,
    GenerationMetadata,
    PersonaProfile,
    PersonaSummary,
    RotationState,
    ScriptGenerationInput,
    ScriptResult,
    UserIdentifier,
    ValidationMetadata,
)
from voiceprint.scoring import effective_threshold, score_authenticity
from voiceprint.store import PersonaStore

SUPPORTED_PLATFORMS = ("tiktok", "instagram")
MAX_ROTATION_RETRIES = 3
RECOMMENDATION_FLOOR = 70.0
COMPONENT_ADVICE = {
    "hook_accuracy": "Consider using more of the persona's signature hooks and opening phrases",
    "bridge_frequency": "Increase usage of the persona's bridge phrases and transition words",
    "vocabulary_match": "Incorporate more words from the persona's vocabulary fingerprint",
    "sentence_patterns": (
        "Adjust sentence length and structure to better match the persona's patterns"
    ),
    "rhythm_replication": "Modify energy level and pacing to match the persona's rhythm pattern",
}
OVERALL_BANDS = (
    (90.0, "Excellent authenticity - content closely matches persona voice"),
    (80.0, "Good authenticity - minor adjustments could improve alignment"),
    (70.0, "Moderate authenticity - consider reviewing persona patterns more carefully"),
)
VIOLATION_ADVICE = (
    ("hook", "Review hook usage to ensure it follows persona patterns"),
    ("bridge", "Check bridge phrase frequency and placement"),
    ("signature", "Include more signature elements from the persona profile"),
)


def new_request_id() -> str:
    return f"req_{uuid.uuid4().hex[:12]}"


def error_info(error: VoiceprintError) -> ErrorInfo:
    return ErrorInfo(code=error.code.value, message=error.message, details=error.details)


def _messages(error: ValidationError) -> list[str]:
    return [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in error.errors()]


def parse_identifier(identifier: UserIdentifier | dict[str, Any]) -> UserIdentifier:
    """Validate a caller-supplied identifier.

    Raises:
        InvalidPlatformError: If the platform is not supported
        UserNotFoundError: If the handle is missing or blank
    """
    if isinstance(identifier, UserIdentifier):
        return identifier
    try:
        return UserIdentifier.model_validate(identifier)
    except ValidationError as e:
        if any(err["loc"][:1] == ("platform",) for err in e.errors()):
            raise InvalidPlatformError(
                f"Unsupported platform: {identifier.get('platform')!r}",
                details={
                    "platform": identifier.get("platform"),
                    "supported": list(SUPPORTED_PLATFORMS),
                },
            ) from e
        raise UserNotFoundError(
            "A creator handle is required", details={"errors": _messages(e)}
        ) from e


def _analysis_metadata(
    started: float, report: CorpusReport | None, request_id: str
) -> AnalysisMetadata:
    return AnalysisMetadata(
        processing_time=round(time.monotonic() - started, 3),
        videos_processed=len(report.extractions) if report else 0,
        videos_failed=report.videos_failed if report else 0,
        request_id=request_id,
    )


def analyze_voice_persona(
    identifier: UserIdentifier | dict[str, Any],
    collector: VideoCorpusCollector,
    config: VoiceprintConfig | None = None,
    store: PersonaStore | None = None,
    request_id: str | None = None,
    now: datetime | None = None,
) -> AnalysisResult:
    """Build a persona profile from a creator's videos.

    Args:
        identifier: Creator handle and platform (model or camelCase dict)
        collector: Source of the creator's videos
        config: Resolved configuration (defaults apply when omitted)
        store: When given, the new profile is persisted
        request_id: Caller correlation token; generated when omitted
        now: Timestamp recorded on the profile

    Returns:
        AnalysisResult with the profile on success or an ErrorInfo on failure
    """
    request_id = request_id or new_request_id()
    config = config or VoiceprintConfig()
    started = time.monotonic()
    report: CorpusReport | None = None

    try:
        user = parse_identifier(identifier)
        logger.info("Analysis %s: @%s on %s", request_id, user.handle, user.platform)
        report = extract_corpus(user, collector, config)

        codes = report.failure_codes()
        only_transcription = set(codes) == {ErrorCode.TRANSCRIPTION_FAILED.value}
        if not report.extractions and only_transcription:
            raise TranscriptionError(
                f"No transcripts could be obtained for @{user.handle}",
                details={"videosFailed": report.videos_failed},
            )

        profile = build_persona_profile(
            user,
            report.extractions,
            report.transcripts,
            config,
            videos_failed=report.videos_failed,
            now=now,
        )
        if store is not None:
            store.save_profile(profile)
    except VoiceprintError as e:
        logger.warning("Analysis %s failed: [%s] %s", request_id, e.code.value, e.message)
        return AnalysisResult(
            success=False,
            error=error_info(e),
            metadata=_analysis_metadata(started, report, request_id),
        )

    logger.info("Analysis %s produced %s", request_id, profile.persona_id)
    return AnalysisResult(
        success=True,
        persona_profile=profile,
        metadata=_analysis_metadata(started, report, request_id),
    )


def create_writer(config: VoiceprintConfig, prompts_dir: Path | None = None) -> PhaseWriter:
    """Writer selected by ``generation.writer`` in the config."""
    if config.generation.writer == "llm":
        from voiceprint.llm.client import create_client_from_config
        from voiceprint.llm.templates import PromptTemplateManager

        return LLMWriter(create_client_from_config(config), PromptTemplateManager(prompts_dir))
    return TemplateWriter()


def _parse_generation_input(data: ScriptGenerationInput | dict[str, Any]) -> ScriptGenerationInput:
    if isinstance(data, ScriptGenerationInput):
        return data
    try:
        return ScriptGenerationInput.model_validate(data)
    except ValidationError as e:
        if any(err["loc"][:1] == ("topic",) for err in e.errors()):
            raise TopicEmptyError("Topic must be provided", details={"errors": _messages(e)}) from e
        raise ConfigError("Invalid generation input", details={"errors": _messages(e)}) from e


def _parse_profile(data: PersonaProfile | dict[str, Any]) -> PersonaProfile:
    if isinstance(data, PersonaProfile):
        return data
    try:
        return PersonaProfile.model_validate(data)
    except ValidationError as e:
        raise PersonaInvalidError(
            "Persona profile failed validation", details={"errors": _messages(e)}
        ) from e


def _generate_with_rotation(
    generator: ScriptGenerator,
    request: ScriptGenerationInput,
    profile: PersonaProfile,
    store: PersonaStore | None,
    rotation: RotationState | None,
) -> GeneratedScript:
    if store is None:
        return generator.generate(request, profile, rotation).script

    attempt = 0
    while True:
        attempt += 1
        state = store.load_rotation(profile.persona_id)
        outcome = generator.generate(request, profile, state)
        try:
            store.save_rotation(outcome.rotation, expected_version=state.version)
        except RotationConflictError as e:
            if attempt >= MAX_ROTATION_RETRIES:
                raise
            logger.info(
                "Rotation for %s changed during generation (attempt %d/%d); regenerating: %s",
                profile.persona_id,
                attempt,
                MAX_ROTATION_RETRIES,
                e,
            )
            continue
        store.save_script(outcome.script)
        return outcome.script


def generate_script_with_persona(
    input: ScriptGenerationInput | dict[str, Any],
    persona_profile: PersonaProfile | dict[str, Any],
    config: VoiceprintConfig | None = None,
    store: PersonaStore | None = None,
    writer: PhaseWriter | None = None,
    rotation: RotationState | None = None,
    request_id: str | None = None,
) -> ScriptResult:
    """Generate a five-phase script in a persona's voice.

    Args:
        input: Topic, target length, style, and instructions
        persona_profile: Persona to write as
        config: Resolved configuration (defaults apply when omitted)
        store: When given, rotation state is loaded from and saved to it
            (with optimistic retries) and the script is persisted
        writer: Phase writer; chosen from the config when omitted
        rotation: Rotation state to start from when no store is given
        request_id: Caller correlation token; generated when omitted

    Returns:
        ScriptResult with the script on success or an ErrorInfo on failure
    """
    request_id = request_id or new_request_id()
    config = config or VoiceprintConfig()
    started = time.monotonic()

    try:
        request = _parse_generation_input(input)
        profile = _parse_profile(persona_profile)
        generator = ScriptGenerator(writer or create_writer(config), config)
        script = _generate_with_rotation(generator, request, profile, store, rotation)
    except VoiceprintError as e:
        logger.warning("Generation %s failed: [%s] %s", request_id, e.code.value, e.message)
        return ScriptResult(
            success=False,
            error=error_info(e),
            metadata=GenerationMetadata(
                generation_time=round(time.monotonic() - started, 3), request_id=request_id
            ),
        )

    return ScriptResult(
        success=True,
        script=script,
        metadata=GenerationMetadata(
            generation_time=round(time.monotonic() - started, 3), request_id=request_id
        ),
    )


def score_script(
    text: str,
    persona_profile: PersonaProfile,
    config: VoiceprintConfig | None = None,
    topic: str = "",
) -> AuthenticityMetrics:
    """Score arbitrary text against a persona."""
    config = config or VoiceprintConfig()
    return score_authenticity(text, persona_profile, config.rules, topic=topic)


def content_recommendations(metrics: AuthenticityMetrics, violations: list[str]) -> list[str]:
    """Advice for bringing content closer to the persona's voice."""
    recommendations = [
        advice
        for name, advice in COMPONENT_ADVICE.items()
        if getattr(metrics, name).score < RECOMMENDATION_FLOOR
    ]
    recommendations.append(
        next(
            (text for floor, text in OVERALL_BANDS if metrics.overall_score >= floor),
            "Low authenticity - significant revision needed to match persona voice",
        )
    )
    if violations:
        recommendations.append(f"Rule violations detected: {len(violations)} issues to address")
        lowered = [v.lower() for v in violations]
        for keyword, advice in VIOLATION_ADVICE:
            if any(keyword in v for v in lowered):
                recommendations.append(advice)
    return recommendations


def validate_content(
    content: str,
    persona_profile: PersonaProfile | dict[str, Any],
    config: VoiceprintConfig | None = None,
    topic: str = "",
    request_id: str | None = None,
) -> ContentValidationResult:
    """Check existing content against a persona and the configured rules.

    Nothing is rewritten. The content is scored, every broken rule is listed,
    and recommendations are attached. ``valid`` is True only when there are
    no violations.

    Returns:
        ContentValidationResult on success or an ErrorInfo on failure
    """
    request_id = request_id or new_request_id()
    config = config or VoiceprintConfig()
    started = time.monotonic()
    word_count = len(content.split())

    try:
        if not content.strip():
            raise ContentEmptyError("Content must be provided")
        profile = _parse_profile(persona_profile)
        metrics = score_authenticity(content, profile, config.rules, topic=topic)
        engine = RulesEngine(config.rules)
        threshold = effective_threshold(profile, config.rules)
        violations = engine.validate_content(content, profile, metrics, threshold)
    except VoiceprintError as e:
        logger.warning("Validation %s failed: [%s] %s", request_id, e.code.value, e.message)
        return ContentValidationResult(
            success=False,
            error=error_info(e),
            metadata=ValidationMetadata(
                processing_time=round(time.monotonic() - started, 3),
                word_count=word_count,
                request_id=request_id,
            ),
        )

    logger.info(
        "Validation %s: %.1f authenticity, %d violations",
        request_id,
        metrics.overall_score,
        len(violations),
    )
    return ContentValidationResult(
        success=True,
        valid=not violations,
        violations=violations,
        authenticity=metrics,
        recommendations=content_recommendations(metrics, violations),
        metadata=ValidationMetadata(
            processing_time=round(time.monotonic() - started, 3),
            word_count=word_count,
            request_id=request_id,
        ),
    )


def summarize_persona(profile: PersonaProfile) -> PersonaSummary:
    """Plain-language overview of a persona for display."""
    voice = profile.voice_profile
    speech = profile.speech_patterns
    baseline = speech.baseline
    handle = profile.user_identifier.handle

    overview = (
        f"Voice persona for @{handle} analyzed from {profile.metadata.videos_analyzed} videos. "
        f"{baseline.typical_energy.capitalize()} energy with {baseline.sentence_structure} "
        f"sentence structure and a {speech.emotional_states.explaining.structure} explaining style."
    )

    key_characteristics = [
        f"{len(voice.hooks)} signature hooks identified",
        f"{len(voice.bridges)} bridge patterns",
        f"{baseline.typical_energy} energy baseline ({voice.energy_wave})",
        f"{len(voice.vocabulary_fingerprint)} word vocabulary fingerprint",
        f"{len(voice.signature_elements)} signature elements",
    ]
    if voice.hooks:
        key_characteristics.append(f"Primary hook: \"{voice.hooks[0]}\"")

    strengths = []
    if len(voice.hooks) >= 5:
        strengths.append("Rich hook variety")
    if len(voice.bridges) >= 4:
        strengths.append("Strong transition patterns")
    if len(voice.signature_elements) >= 6:
        strengths.append("Distinctive signature elements")
    if baseline.typical_energy == "high":
        strengths.append("High-energy engagement")
    if speech.emotional_states.excited.marker_phrases:
        strengths.append("Clear excitement cues")

    recommendations = []
    if profile.metadata.videos_analyzed < 10:
        recommendations.append("Analyze more content for better pattern consistency")
    if len(voice.hooks) < 3:
        recommendations.append("Experiment with more hook variations")
    if not speech.unique_markers.catchphrases.closing:
        recommendations.append("Develop a consistent sign-off")
    if baseline.sentence_structure == "varied":
        recommendations.append("Leverage sentence variety for dynamic content")

    return PersonaSummary(
        overview=overview,
        key_characteristics=key_characteristics,
        strengths=strengths or ["Consistent voice patterns"],
        recommendations=recommendations or ["Profile ready for script generation"],
    )


def analyze_batch(
    identifiers: Sequence[UserIdentifier | dict[str, Any]],
    collector: VideoCorpusCollector,
    config: VoiceprintConfig | None = None,
    store: PersonaStore | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> list[AnalysisResult]:
    """Analyze several creators in turn, pausing between them.

    The pause is ``60 / analysis.requests_per_minute`` seconds (none when the
    rate is 0).
    """
    config = config or VoiceprintConfig()
    rate = config.analysis.requests_per_minute
    delay = 60.0 / rate if rate > 0 else 0.0

    results: list[AnalysisResult] = []
    for position, identifier in enumerate(identifiers):
        if position > 0 and delay > 0:
            logger.debug("Rate limiting: sleeping %.1fs before next creator", delay)
            sleep(delay)
        results.append(analyze_voice_persona(identifier, collector, config, store))

    successful = sum(1 for r in results if r.success)
    logger.info("Batch analysis completed: %d/%d successful", successful, len(results))
    return results
