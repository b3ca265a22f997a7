"""
voiceprint.store - JSON file store for personas, scripts, and rotation state.

Layout under the store root:

    personas/{persona_id}.json   immutable profiles
    index.json                   "platform:handle" -> persona ids, oldest first
    scripts/{script_id}.json     generated scripts
    rotation/{persona_id}.json   versioned rotation state

Writes are atomic (temp file + rename). Rotation state uses optimistic
versioning so concurrent generators never silently overwrite each other.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any

from voiceprint.exceptions import PersonaNotFoundError, RotationConflictError
from voiceprint.io import read_json, read_model, write_json, write_model
from voiceprint.logging import logger
from voiceprint.models import GeneratedScript, PersonaProfile, RotationState, UserIdentifier


def creator_key(identifier: UserIdentifier) -> str:
    return f"{identifier.platform}:{identifier.handle.lower()}"


class PersonaStore:
    """Persists voiceprint records as JSON files under a root directory."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.personas_dir = root / "personas"
        self.scripts_dir = root / "scripts"
        self.rotation_dir = root / "rotation"
        self.index_path = root / "index.json"
        self._index_lock = threading.Lock()
        self._locks_guard = threading.Lock()
        self._rotation_locks: dict[str, threading.Lock] = {}

    # Profiles

    def profile_path(self, persona_id: str) -> Path:
        return self.personas_dir / f"{persona_id}.json"

    def has_profile(self, persona_id: str) -> bool:
        return self.profile_path(persona_id).exists()

    def save_profile(self, profile: PersonaProfile) -> bool:
        """Store a profile and register it as the creator's newest version.

        Profiles are immutable: an id that is already stored is left as is.

        Returns:
            True if the profile was written, False if it already existed
        """
        with self._index_lock:
            index = self._load_index()
            key = creator_key(profile.user_identifier)
            versions = index.setdefault(key, [])

            if self.has_profile(profile.persona_id):
                logger.info(
                    "Persona %s already stored; keeping existing record", profile.persona_id
                )
                if profile.persona_id in versions:
                    return False
                versions.append(profile.persona_id)
                write_json(self.index_path, index)
                return False

            write_model(self.profile_path(profile.persona_id), profile)
            versions.append(profile.persona_id)
            write_json(self.index_path, index)
            logger.info(
                "Stored persona %s (version %d for %s)", profile.persona_id, len(versions), key
            )
            return True

    def get_profile(self, persona_id: str) -> PersonaProfile:
        """Load a profile by id.

        Raises:
            PersonaNotFoundError: If no profile with that id is stored
        """
        path = self.profile_path(persona_id)
        if not path.exists():
            raise PersonaNotFoundError(
                f"Persona not found: {persona_id}", details={"personaId": persona_id}
            )
        return read_model(path, PersonaProfile)

    def versions(self, identifier: UserIdentifier) -> list[str]:
        """Persona ids recorded for a creator, oldest first."""
        return list(self._load_index().get(creator_key(identifier), []))

    def latest_persona(self, identifier: UserIdentifier) -> PersonaProfile:
        """Most recently stored profile for a creator.

        Raises:
            PersonaNotFoundError: If the creator has never been analyzed
        """
        versions = self.versions(identifier)
        if not versions:
            raise PersonaNotFoundError(
                f"No persona stored for @{identifier.handle} on {identifier.platform}",
                details={"handle": identifier.handle, "platform": identifier.platform},
            )
        return self.get_profile(versions[-1])

    def list_personas(self) -> list[PersonaProfile]:
        """Latest profile for every known creator, sorted by creator key."""
        index = self._load_index()
        profiles = []
        for key in sorted(index):
            if index[key] and self.has_profile(index[key][-1]):
                profiles.append(self.get_profile(index[key][-1]))
        return profiles

    def _load_index(self) -> dict[str, list[str]]:
        if not self.index_path.exists():
            return {}
        data: dict[str, Any] = read_json(self.index_path)
        return {key: list(value) for key, value in data.items()}

    # Scripts

    def save_script(self, script: GeneratedScript) -> Path:
        path = self.scripts_dir / f"{script.id}.json"
        write_model(path, script)
        return path

    def get_script(self, script_id: str) -> GeneratedScript:
        path = self.scripts_dir / f"{script_id}.json"
        if not path.exists():
            raise FileNotFoundError(f"Script not found: {script_id}")
        return read_model(path, GeneratedScript)

    def list_scripts(self, persona_id: str | None = None) -> list[GeneratedScript]:
        if not self.scripts_dir.exists():
            return []
        scripts = [read_model(p, GeneratedScript) for p in sorted(self.scripts_dir.glob("*.json"))]
        if persona_id is not None:
            scripts = [s for s in scripts if s.persona_id == persona_id]
        return sorted(scripts, key=lambda s: s.metadata.generated_at)

    # Rotation

    def _rotation_lock(self, persona_id: str) -> threading.Lock:
        with self._locks_guard:
            return self._rotation_locks.setdefault(persona_id, threading.Lock())

    def load_rotation(self, persona_id: str) -> RotationState:
        """Current rotation state, or a fresh version-0 state."""
        path = self.rotation_dir / f"{persona_id}.json"
        if not path.exists():
            return RotationState(persona_id=persona_id)
        return read_model(path, RotationState)

    def save_rotation(self, state: RotationState, expected_version: int) -> RotationState:
        """Persist rotation state if nobody else has written since it was read.

        Args:
            state: New state to store
            expected_version: Version the caller read before generating

        Returns:
            The stored state, at version ``expected_version + 1``

        Raises:
            RotationConflictError: If the stored version moved on
        """
        with self._rotation_lock(state.persona_id):
            current = self.load_rotation(state.persona_id)
            if current.version != expected_version:
                raise RotationConflictError(state.persona_id, expected_version, current.version)
            stored = state.model_copy(update={"version": expected_version + 1})
            write_model(self.rotation_dir / f"{state.persona_id}.json", stored)
            return stored
