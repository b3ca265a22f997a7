"""Tests for voiceprint.generate.writers module."""

from __future__ import annotations

from collections import Counter

from voiceprint.generate.writers import (
    GENERIC_BRIDGE,
    PhaseRequest,
    TemplateWriter,
    allocate_sentence_classes,
)
from voiceprint.models import PersonaProfile
from voiceprint.text import length_class, split_sentences, word_count


def _request(profile: PersonaProfile, phase: str, **kwargs) -> PhaseRequest:
    values = {"topic": "morning routines", "word_budget": 38, "seed": 11}
    values.update(kwargs)
    return PhaseRequest(phase=phase, profile=profile, **values)


class TestAllocateSentenceClasses:
    def test_counts_follow_distribution(self) -> None:
        distribution = {"short": 0.5, "medium": 0.5, "long": 0.0}
        classes = allocate_sentence_classes(36, distribution)
        counts = Counter(classes)
        assert len(classes) == 4
        assert counts["short"] == 2
        assert counts["medium"] == 2
        assert counts["long"] == 0

    def test_at_least_two_sentences(self) -> None:
        classes = allocate_sentence_classes(3, {"short": 0.0, "medium": 0.0, "long": 1.0})
        assert classes == ["long", "long"]

    def test_follows_rhythm_order(self) -> None:
        distribution = {"short": 0.5, "medium": 0.5, "long": 0.0}
        classes = allocate_sentence_classes(36, distribution, "medium-short!-medium")
        assert classes == ["medium", "short", "medium", "short"]


class TestTemplateWriter:
    def test_hook_opens_with_persona_hook(self, profile: PersonaProfile) -> None:
        text = TemplateWriter().write(_request(profile, "hook", hook="okay so here's the thing"))
        assert text.startswith("Okay so here's the thing, ")
        assert "morning routines" in text

    def test_one_word_hook_leads_clause(self, profile: PersonaProfile) -> None:
        text = TemplateWriter().write(_request(profile, "hook", hook="guys"))
        assert text.startswith("Guys, ")
        assert len(split_sentences(text)) == 1

    def test_hook_avoids_banned_phrase(self, profile: PersonaProfile) -> None:
        request = _request(
            profile, "hook", hook="okay so", style="educational", banned=["break down"]
        )
        assert "break down" not in TemplateWriter().write(request)

    def test_bridge_uses_selected_phrase(self, profile: PersonaProfile) -> None:
        text = TemplateWriter().write(_request(profile, "bridge", bridge="basically"))
        assert text.startswith("Basically, ")

    def test_bridge_falls_back_to_generic(self, profile: PersonaProfile) -> None:
        text = TemplateWriter().write(_request(profile, "bridge"))
        assert text.lower().startswith(GENERIC_BRIDGE)

    def test_core_message_is_deterministic(self, profile: PersonaProfile) -> None:
        writer = TemplateWriter()
        first = writer.write(_request(profile, "core_message"))
        second = writer.write(_request(profile, "core_message"))
        assert first == second
        assert first != writer.write(_request(profile, "core_message", attempt=1))

    def test_core_message_sentence_classes(self, profile: PersonaProfile) -> None:
        text = TemplateWriter().write(_request(profile, "core_message", word_budget=60))
        classes = {length_class(word_count(s)) for s in split_sentences(text)}
        assert "short" in classes
        assert word_count(text) > 0

    def test_core_message_step_by_step_uses_ordinals(self, profile: PersonaProfile) -> None:
        text = TemplateWriter().write(_request(profile, "core_message"))
        assert text.startswith("First, ")

    def test_core_message_avoids_banned_vocabulary(self, profile: PersonaProfile) -> None:
        text = TemplateWriter().write(_request(profile, "core_message", banned=["consistent"]))
        assert "consistent" not in text.lower()

    def test_escalation_carries_marker(self, profile: PersonaProfile) -> None:
        text = TemplateWriter().write(_request(profile, "escalation", marker="HUGE"))
        assert text.startswith("HUGE! ")
        assert text.endswith("!")

    def test_close_uses_sign_off(self, profile: PersonaProfile) -> None:
        text = TemplateWriter().write(
            _request(profile, "close", closing="like and follow for more")
        )
        assert text.endswith("Like and follow for more.")
