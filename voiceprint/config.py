"""
voiceprint.config - YAML config loading, sensitivity profiles, validation.

Handles loading voiceprint.yaml from a workspace directory, applying
pattern-sensitivity defaults, and validating all parameters.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

from voiceprint.models import RulesConfig

CONFIG_FILENAME = "voiceprint.yaml"


class ExtractionSettings(BaseModel):
    """Thresholds used by the per-video pattern extractor."""

    min_transcript_length: int = Field(default=50, ge=0)
    hook_max_words: int = Field(default=12, gt=0)
    min_frequency: int = Field(default=2, ge=1)
    excited_threshold: float = Field(default=1.5, gt=0.0)
    filler_max_words: int = Field(default=3, gt=0)
    filler_max_distance: int = Field(default=2, ge=0)
    enable_emotional_analysis: bool = True


class AnalysisSettings(BaseModel):
    """Corpus collection and profile aggregation settings."""

    batch_size: int = Field(default=5, gt=0)
    max_videos: int = Field(default=25, gt=0)
    min_videos: int = Field(default=3, gt=0)
    min_total_transcript_length: int = Field(default=300, ge=0)
    video_timeout_seconds: float = Field(default=60.0, gt=0.0)
    analysis_timeout_seconds: float = Field(default=600.0, gt=0.0)
    hook_limit: int = Field(default=10, gt=0)
    vocabulary_size: int = Field(default=50, gt=0)
    authenticity_threshold: float = Field(default=0.75, ge=0.0, le=1.0)
    pattern_rotation: str | None = None
    requests_per_minute: int = Field(default=8, ge=0)

    @field_validator("pattern_rotation")
    @classmethod
    def validate_rotation(cls, v: str | None) -> str | None:
        valid = {"sequential", "weighted", "random"}
        if v is not None and v not in valid:
            raise ValueError(f"pattern_rotation must be one of: {valid}")
        return v


class GenerationSettings(BaseModel):
    """Script generation budget and writer selection."""

    default_target_length: int = Field(default=30, ge=15, le=90)
    timeout_seconds: float = Field(default=120.0, gt=0.0)
    words_per_second: float = Field(default=2.5, gt=0.0)
    max_rule_attempts: int = Field(default=3, gt=0)
    max_regenerations: int = Field(default=2, ge=0)
    seed: int | None = None
    writer: str = "template"

    @field_validator("writer")
    @classmethod
    def validate_writer(cls, v: str) -> str:
        valid = {"template", "llm"}
        if v not in valid:
            raise ValueError(f"writer must be one of: {valid}")
        return v


class VoiceprintConfig(BaseModel):
    """Resolved configuration for a Voiceprint workspace."""

    project_name: str = "untitled"
    pattern_sensitivity: str = "medium"

    privacy_mode: str = "local"
    llm_backend: str = "ollama"
    llm_model: str = "llama3.1:8b-instruct-q4_K_M"

    extraction: ExtractionSettings = Field(default_factory=ExtractionSettings)
    analysis: AnalysisSettings = Field(default_factory=AnalysisSettings)
    generation: GenerationSettings = Field(default_factory=GenerationSettings)
    rules: RulesConfig = Field(default_factory=RulesConfig)

    config_path: Path | None = None

    @field_validator("privacy_mode")
    @classmethod
    def validate_privacy_mode(cls, v: str) -> str:
        valid = {"local", "hybrid"}
        if v not in valid:
            raise ValueError(f"privacy_mode must be one of: {valid}")
        return v

    @field_validator("llm_backend")
    @classmethod
    def validate_llm_backend(cls, v: str) -> str:
        valid = {"ollama", "lmstudio", "claude", "openai"}
        if v not in valid:
            raise ValueError(f"llm_backend must be one of: {valid}")
        return v

    @field_validator("pattern_sensitivity")
    @classmethod
    def validate_sensitivity(cls, v: str) -> str:
        valid = {"low", "medium", "high"}
        if v not in valid:
            raise ValueError(f"pattern_sensitivity must be one of: {valid}")
        return v


BUILTIN_PROFILES: dict[str, dict[str, Any]] = {
    "low": {
        "extraction": {
            "min_frequency": 3,
            "excited_threshold": 2.0,
            "filler_max_distance": 1,
        },
    },
    "medium": {
        "extraction": {
            "min_frequency": 2,
            "excited_threshold": 1.5,
            "filler_max_distance": 2,
        },
    },
    "high": {
        "extraction": {
            "min_frequency": 2,
            "excited_threshold": 1.0,
            "filler_max_distance": 2,
        },
    },
}

NESTED_SECTIONS = ("extraction", "analysis", "generation", "rules")


def load_profile(name: str, profiles_dir: Path | None = None) -> dict[str, Any]:
    """Load a sensitivity profile by name, checking custom profiles first."""
    if profiles_dir and profiles_dir.exists():
        profile_file = profiles_dir / f"{name}.yaml"
        if profile_file.exists():
            with open(profile_file) as f:
                return yaml.safe_load(f) or {}
    if name in BUILTIN_PROFILES:
        return {key: dict(value) for key, value in BUILTIN_PROFILES[name].items()}
    raise ValueError(f"Unknown profile: {name}")


def merge_config(project_config: dict[str, Any], profile: dict[str, Any]) -> dict[str, Any]:
    """Merge project config with profile defaults. Project config takes precedence.

    Nested sections are merged key by key so a project can override a single
    threshold without restating the whole section.
    """
    merged = {
        key: dict(value) if isinstance(value, dict) else value for key, value in profile.items()
    }
    for key, value in project_config.items():
        if key in NESTED_SECTIONS and isinstance(value, dict):
            merged.setdefault(key, {})
            merged[key].update(value)
        elif value is not None:
            merged[key] = value
    return merged


def load_config(workspace_dir: Path) -> VoiceprintConfig:
    """Load and validate configuration from a workspace directory."""
    config_file = workspace_dir / CONFIG_FILENAME
    if not config_file.exists():
        raise FileNotFoundError(f"No {CONFIG_FILENAME} found in {workspace_dir}")

    with open(config_file) as f:
        raw_config = yaml.safe_load(f) or {}

    profile_name = raw_config.get("pattern_sensitivity", "medium")
    profiles_dir = workspace_dir / "profiles"
    profile = load_profile(profile_name, profiles_dir if profiles_dir.exists() else None)

    merged = merge_config(raw_config, profile)
    merged["config_path"] = config_file

    return VoiceprintConfig(**merged)


def config_for_sensitivity(sensitivity: str = "medium", **overrides: Any) -> VoiceprintConfig:
    """Build a config in memory from a builtin sensitivity profile."""
    project_config = {"pattern_sensitivity": sensitivity, **overrides}
    merged = merge_config(project_config, load_profile(sensitivity))
    return VoiceprintConfig(**merged)


def create_default_config(project_name: str, sensitivity: str = "medium") -> dict[str, Any]:
    """Create a default config for a new workspace."""
    defaults: dict[str, Any] = {
        "project_name": project_name,
        "pattern_sensitivity": sensitivity,
        "privacy_mode": "local",
        "llm_backend": "ollama",
        "llm_model": "llama3.1:8b-instruct-q4_K_M",
        "analysis": {
            "batch_size": 5,
            "max_videos": 25,
            "min_videos": 3,
        },
        "generation": {
            "default_target_length": 30,
            "writer": "template",
        },
        "rules": {
            "strict_rules": {"never": list(RulesConfig().strict_rules.never), "always": []},
        },
    }
    if sensitivity in BUILTIN_PROFILES:
        defaults = merge_config(defaults, load_profile(sensitivity))
    return defaults


def write_config(config: dict[str, Any], path: Path) -> None:
    """Write configuration to a YAML file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.dump(config, f, default_flow_style=False, sort_keys=False)
