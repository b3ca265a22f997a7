"""
voiceprint.models - Pydantic records for profiles, scripts, and results.

Attributes are snake_case in Python; JSON produced with ``by_alias=True``
uses camelCase field names so persisted profiles and API envelopes keep a
stable wire format. Profile-side records are frozen.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

Platform = Literal["tiktok", "instagram"]
EnergyLevel = Literal["low", "medium", "high"]
SentenceStructure = Literal["short", "varied", "complex"]
ExplainingStructure = Literal["step-by-step", "circular", "branching"]
PatternRotation = Literal["sequential", "weighted", "random"]
ScriptStyle = Literal["hook-heavy", "educational", "conversational", "energetic"]

PHASE_NAMES: tuple[str, ...] = ("hook", "bridge", "core_message", "escalation", "close")
MIN_TARGET_LENGTH = 15
MAX_TARGET_LENGTH = 90
DISTRIBUTION_EPSILON = 1e-6


class WireModel(BaseModel):
    """Base for records exchanged as camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class FrozenWireModel(WireModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# Inputs


class UserIdentifier(FrozenWireModel):
    handle: str
    platform: Platform
    user_id: str | None = None

    @field_validator("handle")
    @classmethod
    def normalize_handle(cls, v: str) -> str:
        v = v.strip().lstrip("@")
        if not v:
            raise ValueError("handle must not be empty")
        return v


class Engagement(FrozenWireModel):
    views: int = 0
    likes: int = 0
    comments: int = 0


class VideoAnalysisData(FrozenWireModel):
    video_id: str
    url: str = ""
    transcript: str
    duration: float = Field(ge=0.0)
    engagement: Engagement | None = None
    captured_at: datetime
    platform: Platform


# Profile components


class EnergyBaseline(FrozenWireModel):
    typical_energy: EnergyLevel
    sentence_structure: SentenceStructure
    default_rhythm: str


class ExcitedState(FrozenWireModel):
    description: str
    marker_phrases: list[str] = Field(default_factory=list)


class ExplainingState(FrozenWireModel):
    structure: ExplainingStructure = "step-by-step"
    transition_words: list[str] = Field(default_factory=list)


class EmotionalStates(FrozenWireModel):
    excited: ExcitedState
    explaining: ExplainingState


class Catchphrases(FrozenWireModel):
    opening: list[str] = Field(default_factory=list)
    closing: list[str] = Field(default_factory=list)


class UniqueMarkers(FrozenWireModel):
    filler_patterns: list[str] = Field(default_factory=list)
    catchphrases: Catchphrases = Field(default_factory=Catchphrases)
    random_insertions: list[str] = Field(default_factory=list)


class SpeechPatterns(FrozenWireModel):
    baseline: EnergyBaseline
    emotional_states: EmotionalStates
    unique_markers: UniqueMarkers


class PatternElement(FrozenWireModel):
    element: str
    frequency: float = Field(ge=0.0, le=1.0)
    examples: list[str] = Field(default_factory=list, max_length=3)
    context: str


class PatternMappingMatrix(FrozenWireModel):
    primary_hook: PatternElement
    bridge_phrase: PatternElement
    energy_escalator: PatternElement
    personal_reference: PatternElement
    audience_address: PatternElement
    question_pattern: PatternElement


class VoiceProfile(FrozenWireModel):
    hooks: list[str] = Field(default_factory=list)
    hook_frequencies: dict[str, int] = Field(default_factory=dict)
    bridges: dict[str, int] = Field(default_factory=dict)
    energy_wave: str
    sentence_patterns: list[str] = Field(default_factory=list)
    signature_elements: list[str] = Field(default_factory=list)
    vocabulary_fingerprint: list[str] = Field(default_factory=list)
    rhythm_pattern: str


class HookRatio(FrozenWireModel):
    primary: float = Field(ge=0.0, le=1.0)
    secondary: float = Field(ge=0.0, le=1.0)

    @model_validator(mode="after")
    def check_total(self) -> HookRatio:
        if self.primary + self.secondary > 1.0 + DISTRIBUTION_EPSILON:
            raise ValueError("hookRatio primary + secondary must not exceed 1.0")
        return self


class SentenceDistribution(FrozenWireModel):
    short: float = Field(ge=0.0, le=1.0)
    medium: float = Field(ge=0.0, le=1.0)
    long: float = Field(ge=0.0, le=1.0)

    @model_validator(mode="after")
    def check_sum(self) -> SentenceDistribution:
        if abs(self.short + self.medium + self.long - 1.0) > DISTRIBUTION_EPSILON:
            raise ValueError("sentenceDistribution must sum to 1.0")
        return self

    def as_dict(self) -> dict[str, float]:
        return {"short": self.short, "medium": self.medium, "long": self.long}


class GenerationParameters(FrozenWireModel):
    optimal_length: int = Field(ge=MIN_TARGET_LENGTH, le=MAX_TARGET_LENGTH)
    authenticity_threshold: float = Field(default=0.75, ge=0.0, le=1.0)
    pattern_rotation: PatternRotation
    hook_ratio: HookRatio
    sentence_distribution: SentenceDistribution


class ProfileMetadata(FrozenWireModel):
    videos_analyzed: int
    videos_failed: int = 0
    total_transcript_length: int
    total_word_count: int = 0
    analysis_version: str
    last_updated: datetime
    source_video_ids: list[str] = Field(default_factory=list)


class PersonaProfile(FrozenWireModel):
    persona_id: str
    user_identifier: UserIdentifier
    analysis_date: datetime
    voice_profile: VoiceProfile
    speech_patterns: SpeechPatterns
    pattern_mapping: PatternMappingMatrix
    generation_parameters: GenerationParameters
    metadata: ProfileMetadata


# Rules


class StrictRules(WireModel):
    never: list[str] = Field(
        default_factory=lambda: [
            "furthermore",
            "moreover",
            "consequently",
            "nevertheless",
            "pursuant to",
            "in accordance with",
            "notwithstanding",
            "henceforth",
            "heretofore",
        ]
    )
    always: list[str] = Field(default_factory=list)


class PatternConstraints(WireModel):
    hook_rotation_ratio: tuple[float, float] = (0.8, 0.2)
    bridge_frequency_min: float = Field(default=0.1, ge=0.0, le=1.0)
    signature_elements_required: int = Field(default=2, ge=0)


class QualityThresholds(WireModel):
    min_authenticity_score: float = Field(default=75.0, ge=0.0, le=100.0)
    max_deviation_from_original: float = Field(default=60.0, ge=0.0, le=100.0)


class RulesConfig(WireModel):
    strict_rules: StrictRules = Field(default_factory=StrictRules)
    pattern_constraints: PatternConstraints = Field(default_factory=PatternConstraints)
    quality_thresholds: QualityThresholds = Field(default_factory=QualityThresholds)


# Generation


class ScriptGenerationInput(WireModel):
    persona_id: str
    topic: str
    target_length: int = 30
    style: ScriptStyle | None = None
    custom_instructions: str | None = None

    @field_validator("target_length", mode="before")
    @classmethod
    def clamp_target_length(cls, v: Any) -> int:
        if v is None:
            return 30
        try:
            seconds = int(round(float(v)))
        except (TypeError, ValueError, OverflowError) as e:
            raise ValueError(f"target_length must be a number of seconds, got {v!r}") from e
        return max(MIN_TARGET_LENGTH, min(MAX_TARGET_LENGTH, seconds))


class ScriptStructure(WireModel):
    hook: str
    bridge: str
    core_message: str
    escalation: str
    close: str

    def phases(self) -> list[str]:
        return [self.hook, self.bridge, self.core_message, self.escalation, self.close]

    def joined(self) -> str:
        return " ".join(self.phases())


class MetricScore(WireModel):
    weight: float = Field(ge=0.0, le=1.0)
    score: float = Field(ge=0.0, le=100.0)
    check: str


class AuthenticityMetrics(WireModel):
    hook_accuracy: MetricScore
    bridge_frequency: MetricScore
    sentence_patterns: MetricScore
    vocabulary_match: MetricScore
    rhythm_replication: MetricScore
    overall_score: float = Field(ge=0.0, le=100.0)

    def components(self) -> dict[str, MetricScore]:
        return {
            "hookAccuracy": self.hook_accuracy,
            "bridgeFrequency": self.bridge_frequency,
            "sentencePatterns": self.sentence_patterns,
            "vocabularyMatch": self.vocabulary_match,
            "rhythmReplication": self.rhythm_replication,
        }


class ScriptMetadata(WireModel):
    generated_at: datetime
    target_length: int
    actual_length: float
    word_count: int
    attempts: int = 1
    phase_durations: dict[str, int] = Field(default_factory=dict)


class GeneratedScript(WireModel):
    id: str
    persona_id: str
    topic: str
    script: str
    structure: ScriptStructure
    authenticity: AuthenticityMetrics
    warnings: list[str] = Field(default_factory=list)
    metadata: ScriptMetadata


class RotationState(WireModel):
    persona_id: str
    version: int = 0
    hook_cursor: int = 0
    bridge_cursor: int = 0
    last_hook: str | None = None
    last_bridge: str | None = None
    generations: int = 0


# Results


class ErrorInfo(WireModel):
    code: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


class AnalysisMetadata(WireModel):
    processing_time: float
    videos_processed: int = 0
    videos_failed: int = 0
    request_id: str


class AnalysisResult(WireModel):
    success: bool
    persona_profile: PersonaProfile | None = None
    error: ErrorInfo | None = None
    metadata: AnalysisMetadata


class GenerationMetadata(WireModel):
    generation_time: float
    request_id: str


class ScriptResult(WireModel):
    success: bool
    script: GeneratedScript | None = None
    error: ErrorInfo | None = None
    metadata: GenerationMetadata


class PersonaSummary(WireModel):
    overview: str
    key_characteristics: list[str]
    strengths: list[str]
    recommendations: list[str]


class ValidationMetadata(WireModel):
    processing_time: float
    word_count: int = 0
    request_id: str


class ContentValidationResult(WireModel):
    success: bool
    valid: bool = False
    violations: list[str] = Field(default_factory=list)
    authenticity: AuthenticityMetrics | None = None
    recommendations: list[str] = Field(default_factory=list)
    error: ErrorInfo | None = None
    metadata: ValidationMetadata
