"""
voiceprint.llm.templates - Prompt template loading and rendering.

Uses Jinja2 to render prompt templates from a workspace's prompts/
directory, falling back to the templates shipped with the package.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, Template

from voiceprint.models import PersonaProfile

PACKAGE_PROMPTS_DIR = Path(__file__).resolve().parent.parent / "prompts"


class PromptTemplateManager:
    """Manages loading and rendering of prompt templates."""

    def __init__(self, prompts_dir: Path | None = None) -> None:
        self.prompts_dir = prompts_dir or PACKAGE_PROMPTS_DIR
        search_path = [str(self.prompts_dir)]
        if self.prompts_dir != PACKAGE_PROMPTS_DIR:
            search_path.append(str(PACKAGE_PROMPTS_DIR))
        self.env = Environment(
            loader=FileSystemLoader(search_path),
            autoescape=False,
            keep_trailing_newline=True,
        )
        self._cache: dict[str, Template] = {}

    def get_template(self, name: str) -> Template:
        """Load a template by name (e.g. "phase.txt").

        Raises:
            FileNotFoundError: If no directory on the search path has it
        """
        if name not in self._cache:
            if name not in self.list_templates():
                raise FileNotFoundError(f"Template not found: {name}")
            self._cache[name] = self.env.get_template(name)
        return self._cache[name]

    def render(self, template_name: str, variables: dict[str, Any]) -> str:
        return self.get_template(template_name).render(**variables)

    def list_templates(self) -> list[str]:
        names: set[str] = set()
        for directory in (self.prompts_dir, PACKAGE_PROMPTS_DIR):
            if directory.exists():
                names.update(f.name for f in directory.glob("*.txt"))
        return sorted(names)


def format_persona_for_prompt(profile: PersonaProfile) -> str:
    """Summarize a persona as plain text for a generation prompt."""
    voice = profile.voice_profile
    speech = profile.speech_patterns
    params = profile.generation_parameters
    lines = [
        f"CREATOR: @{profile.user_identifier.handle} ({profile.user_identifier.platform})",
        f"ENERGY: {speech.baseline.typical_energy}, wave {voice.energy_wave}",
        f"SENTENCES: {speech.baseline.sentence_structure}; {speech.baseline.default_rhythm}",
        f"CADENCE: {voice.rhythm_pattern}",
        f"EXPLAINING STYLE: {speech.emotional_states.explaining.structure}",
    ]

    if voice.hooks:
        lines.append(f"HOOKS: {'; '.join(voice.hooks[:5])}")
    if voice.bridges:
        lines.append(f"BRIDGES: {'; '.join(list(voice.bridges)[:5])}")
    if speech.emotional_states.excited.marker_phrases:
        lines.append(
            f"EXCITED MARKERS: {'; '.join(speech.emotional_states.excited.marker_phrases[:5])}"
        )
    if voice.signature_elements:
        lines.append(f"SIGNATURE ELEMENTS: {'; '.join(voice.signature_elements[:8])}")
    if voice.vocabulary_fingerprint:
        lines.append(f"VOCABULARY: {', '.join(voice.vocabulary_fingerprint[:20])}")
    for note in voice.sentence_patterns:
        lines.append(f"NOTE: {note}")

    distribution = params.sentence_distribution
    lines.append(
        f"SENTENCE MIX: {distribution.short:.0%} short, "
        f"{distribution.medium:.0%} medium, {distribution.long:.0%} long"
    )
    return "\n".join(lines)
