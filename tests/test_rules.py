"""Tests for voiceprint.generate.rules module."""

from __future__ import annotations

import pytest

from voiceprint.exceptions import ErrorCode, PersonaInvalidError, RuleViolationError
from voiceprint.generate.rules import RulesEngine
from voiceprint.models import (
    AuthenticityMetrics,
    MetricScore,
    PersonaProfile,
    RulesConfig,
    ScriptStructure,
    StrictRules,
)


def _structure(**overrides: str) -> ScriptStructure:
    phases = {
        "hook": "Okay so here's the thing, let's talk about tea.",
        "bridge": "So, this is where tea gets interesting.",
        "core_message": "Start with the water. Keep the leaves fresh. Steep it for three minutes.",
        "escalation": "HUGE! This is where tea changes everything!",
        "close": "Give it a try.",
    }
    phases.update(overrides)
    return ScriptStructure(**phases)


def _metrics(overall: float) -> AuthenticityMetrics:
    component = MetricScore(weight=0.2, score=overall, check="test")
    return AuthenticityMetrics(
        hook_accuracy=component,
        bridge_frequency=component,
        sentence_patterns=component,
        vocabulary_match=component,
        rhythm_replication=component,
        overall_score=overall,
    )


def _engine(never: list[str] | None = None, always: list[str] | None = None) -> RulesEngine:
    strict = StrictRules(never=never or [], always=always or [])
    return RulesEngine(RulesConfig(strict_rules=strict))


class TestNeverRules:
    def test_default_list_bans_formal_words(self) -> None:
        engine = RulesEngine()
        assert engine.never_violations("Furthermore, this works.") == ["furthermore"]
        assert engine.never_violations("This works.") == []

    def test_case_insensitive_substring(self) -> None:
        assert _engine(never=["link"]).never_violations("Check the LINKS") == ["link"]

    def test_blank_phrases_ignored(self) -> None:
        assert _engine(never=["", "  "]).never == []


class TestAlwaysRules:
    def test_missing_phrase_appended_to_close(self) -> None:
        repaired = _engine(always=["link in bio"]).apply_always(_structure())
        assert repaired.close == "Give it a try. Link in bio."

    def test_present_phrase_left_alone(self) -> None:
        structure = _structure(close="Tea time, link in bio!")
        assert _engine(always=["link in bio"]).apply_always(structure) == structure

    def test_append_that_breaks_never_rule_raises(self) -> None:
        engine = _engine(never=["moreover"], always=["moreover tea"])
        with pytest.raises(RuleViolationError) as exc_info:
            engine.apply_always(_structure())
        assert exc_info.value.code == ErrorCode.RULE_VIOLATION


class TestSignatureElements:
    def test_injects_until_quota(self, profile: PersonaProfile) -> None:
        engine = RulesEngine()
        structure = _structure()
        assert engine.count_signature_elements(structure.joined(), profile) == 1

        updated, warnings = engine.inject_signature_elements(structure, profile)
        assert warnings == []
        assert engine.count_signature_elements(updated.joined(), profile) >= 2
        assert updated.core_message.startswith("First, start with the water.")

    def test_quota_already_met(self, profile: PersonaProfile) -> None:
        structure = _structure(close="Honestly, like and follow for more.")
        updated, warnings = RulesEngine().inject_signature_elements(structure, profile)
        assert updated == structure
        assert warnings == []

    def test_warns_when_core_too_short(self, profile: PersonaProfile) -> None:
        rules = RulesConfig(pattern_constraints={"signature_elements_required": 5})
        structure = _structure(core_message="Start with the water.")
        _, warnings = RulesEngine(rules).inject_signature_elements(structure, profile)
        assert warnings == ["Only 2/5 signature elements could be placed"]


class TestDeviation:
    def test_within_limit(self) -> None:
        RulesEngine().check_deviation(_metrics(40.0))

    def test_beyond_limit_raises(self) -> None:
        with pytest.raises(RuleViolationError):
            RulesEngine().check_deviation(_metrics(39.0))


class TestContentValidation:
    def test_compliant_text_has_no_violations(self, profile: PersonaProfile) -> None:
        text = _structure(close="Honestly, like and follow for more.").joined()
        assert RulesEngine().validate_content(text, profile, _metrics(80.0), threshold=75) == []

    def test_reports_every_broken_rule(self, profile: PersonaProfile) -> None:
        engine = _engine(never=["tea"], always=["link in bio"])
        violations = engine.validate_content(
            _structure().joined(), profile, _metrics(30.0), threshold=75
        )
        assert violations == [
            'Contains banned phrase "tea"',
            'Missing required phrase "link in bio"',
            "Only 1/2 signature elements present",
            "Authenticity 30.0 deviates 70.0 points from the original voice (limit 60)",
            "Authenticity 30.0 is below the threshold 75",
        ]

    def test_threshold_is_optional(self, profile: PersonaProfile) -> None:
        text = _structure(close="Honestly, like and follow for more.").joined()
        assert RulesEngine().validate_content(text, profile, _metrics(50.0)) == []


class TestPersonaValidation:
    def test_valid_persona(self, profile: PersonaProfile) -> None:
        RulesEngine().validate_persona(profile)

    def test_persona_without_hooks_rejected(self, profile: PersonaProfile) -> None:
        voice = profile.voice_profile.model_copy(update={"hooks": []})
        broken = profile.model_copy(update={"voice_profile": voice})
        with pytest.raises(PersonaInvalidError) as exc_info:
            RulesEngine().validate_persona(broken)
        assert exc_info.value.details["problems"] == ["no hooks"]

    def test_hook_ratio_advisory(self, profile: PersonaProfile) -> None:
        notes = RulesEngine().validate_parameters(profile)
        assert len(notes) == 1
        assert "Primary hook share 100%" in notes[0]

    def test_low_persona_threshold_advisory(self, multi_hook_profile: PersonaProfile) -> None:
        params = multi_hook_profile.generation_parameters.model_copy(
            update={"authenticity_threshold": 0.5}
        )
        persona = multi_hook_profile.model_copy(update={"generation_parameters": params})
        notes = RulesEngine().validate_parameters(persona)
        assert any("below the minimum score 75" in note for note in notes)
