"""Tests for voiceprint.store module."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from voiceprint.exceptions import PersonaNotFoundError, RotationConflictError
from voiceprint.generate.generator import ScriptGenerator
from voiceprint.models import PersonaProfile, RotationState, ScriptGenerationInput, UserIdentifier
from voiceprint.store import PersonaStore, creator_key

from .conftest import build_profile, make_videos


class TestProfiles:
    def test_save_and_load_round_trip(self, tmp_path: Path, profile: PersonaProfile) -> None:
        store = PersonaStore(tmp_path)
        assert store.save_profile(profile) is True
        assert store.get_profile(profile.persona_id) == profile

    def test_saved_json_uses_camel_case(self, tmp_path: Path, profile: PersonaProfile) -> None:
        store = PersonaStore(tmp_path)
        store.save_profile(profile)
        data = json.loads(store.profile_path(profile.persona_id).read_text())
        assert data["personaId"] == profile.persona_id
        assert "voiceProfile" in data
        assert "hookRatio" in data["generationParameters"]

    def test_existing_profile_not_rewritten(self, tmp_path: Path, profile: PersonaProfile) -> None:
        store = PersonaStore(tmp_path)
        store.save_profile(profile)
        path = store.profile_path(profile.persona_id)
        before = path.read_text()

        assert store.save_profile(profile) is False
        assert path.read_text() == before
        assert store.versions(profile.user_identifier) == [profile.persona_id]

    def test_new_analysis_adds_version(self, tmp_path: Path, profile: PersonaProfile) -> None:
        store = PersonaStore(tmp_path)
        store.save_profile(profile)
        newer = build_profile(make_videos()[:4])
        store.save_profile(newer)

        assert store.versions(profile.user_identifier) == [profile.persona_id, newer.persona_id]
        assert store.latest_persona(profile.user_identifier) == newer
        assert store.get_profile(profile.persona_id) == profile

    def test_missing_profile(self, tmp_path: Path) -> None:
        with pytest.raises(PersonaNotFoundError):
            PersonaStore(tmp_path).get_profile("tiktok-nobody-000000000000")

    def test_unknown_creator(self, tmp_path: Path) -> None:
        with pytest.raises(PersonaNotFoundError):
            PersonaStore(tmp_path).latest_persona(UserIdentifier(handle="x", platform="tiktok"))

    def test_list_personas_latest_per_creator(
        self, tmp_path: Path, profile: PersonaProfile, multi_hook_profile: PersonaProfile
    ) -> None:
        store = PersonaStore(tmp_path)
        store.save_profile(profile)
        store.save_profile(multi_hook_profile)
        listed = store.list_personas()
        assert [p.persona_id for p in listed] == [
            profile.persona_id,
            multi_hook_profile.persona_id,
        ]

    def test_creator_key_is_case_insensitive(self) -> None:
        assert creator_key(UserIdentifier(handle="@Creator", platform="tiktok")) == (
            "tiktok:creator"
        )


class TestScripts:
    def test_save_and_list(self, tmp_path: Path, profile: PersonaProfile) -> None:
        store = PersonaStore(tmp_path)
        request = ScriptGenerationInput(persona_id=profile.persona_id, topic="tea")
        generator = ScriptGenerator()
        first = generator.generate(
            request, profile, now=datetime(2026, 3, 1, tzinfo=timezone.utc)
        ).script
        second = generator.generate(
            request, profile, now=datetime(2026, 3, 2, tzinfo=timezone.utc)
        ).script
        store.save_script(second)
        store.save_script(first)

        assert store.get_script(first.id) == first
        assert [s.id for s in store.list_scripts(profile.persona_id)] == [first.id, second.id]
        assert store.list_scripts("someone-else") == []

    def test_missing_script(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            PersonaStore(tmp_path).get_script("script_missing")


class TestRotation:
    def test_fresh_state(self, tmp_path: Path) -> None:
        state = PersonaStore(tmp_path).load_rotation("p")
        assert state == RotationState(persona_id="p")

    def test_save_bumps_version(self, tmp_path: Path) -> None:
        store = PersonaStore(tmp_path)
        state = RotationState(persona_id="p", hook_cursor=1, last_hook="okay so")
        stored = store.save_rotation(state, expected_version=0)
        assert stored.version == 1
        assert store.load_rotation("p") == stored

    def test_stale_writer_conflicts(self, tmp_path: Path) -> None:
        store = PersonaStore(tmp_path)
        read_a = store.load_rotation("p")
        read_b = store.load_rotation("p")
        store.save_rotation(read_a.model_copy(update={"hook_cursor": 1}), read_a.version)

        with pytest.raises(RotationConflictError) as exc_info:
            store.save_rotation(read_b.model_copy(update={"hook_cursor": 2}), read_b.version)
        assert exc_info.value.expected == 0
        assert exc_info.value.actual == 1
        assert store.load_rotation("p").hook_cursor == 1
