"""
voiceprint.workspace - Workspace directory management.

A workspace holds voiceprint.yaml, the transcripts to analyze, the
persona store, and editable copies of the prompt templates.
"""

from __future__ import annotations

import shutil
from pathlib import Path

from voiceprint.config import CONFIG_FILENAME, create_default_config, write_config
from voiceprint.llm.templates import PACKAGE_PROMPTS_DIR
from voiceprint.store import PersonaStore


class Workspace:
    """Represents a Voiceprint workspace directory."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self.config_path = path / CONFIG_FILENAME
        self.transcripts_dir = path / "transcripts"
        self.data_dir = path / "data"
        self.prompts_dir = path / "prompts"
        self.profiles_dir = path / "profiles"

    def exists(self) -> bool:
        return self.config_path.exists()

    def store(self) -> PersonaStore:
        return PersonaStore(self.data_dir)

    def create(self, sensitivity: str = "medium") -> list[Path]:
        """Create the directory structure, default config, and prompt copies.

        Returns:
            Prompt template files copied into the workspace
        """
        self.path.mkdir(parents=True, exist_ok=True)
        for directory in (self.transcripts_dir, self.data_dir, self.prompts_dir):
            directory.mkdir(exist_ok=True)

        config = create_default_config(self.path.name, sensitivity)
        write_config(config, self.config_path)

        copied = []
        for prompt_file in sorted(PACKAGE_PROMPTS_DIR.glob("*.txt")):
            dest = self.prompts_dir / prompt_file.name
            shutil.copy(prompt_file, dest)
            copied.append(dest)
        return copied


def find_workspace_dir(start: Path | None = None) -> Path | None:
    """Walk up from start (or the cwd) looking for voiceprint.yaml."""
    current = (start or Path.cwd()).resolve()
    while True:
        if (current / CONFIG_FILENAME).exists():
            return current
        if current == current.parent:
            return None
        current = current.parent
