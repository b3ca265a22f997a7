"""
voiceprint.generate.writers - Phase text producers.

A writer turns one PhaseRequest into the text of a single script phase. The
TemplateWriter is deterministic (seeded) and builds phases from the persona's
own hooks, bridges, markers, and vocabulary. The LLMWriter renders a prompt
template and asks a language model, validating its JSON reply.
"""

from __future__ import annotations

import random
from typing import Any, Protocol

from pydantic import BaseModel, Field

from voiceprint.llm.client import LLMClient
from voiceprint.llm.parsing import parse_llm_json, validate_phase_response
from voiceprint.llm.templates import PromptTemplateManager, format_persona_for_prompt
from voiceprint.models import PersonaProfile
from voiceprint.text import (
    LONG_SENTENCE_MIN,
    SHORT_SENTENCE_MAX,
    capitalize_first,
    ensure_terminal,
    word_count,
)

GENERIC_BRIDGE = "here's the deal"
GENERIC_MARKER = "this is huge"
NEUTRAL_SIGN_OFF = "see you in the next one"
FALLBACK_VOCABULARY = ("basics", "details", "process", "habit", "results", "mistakes")
DEFAULT_ORDINALS = ("first", "next", "then", "finally")
ORDINAL_SEQUENCE = ("first", "second", "third", "next", "then", "lastly", "finally")

HOOK_CLAUSES: dict[str | None, tuple[str, ...]] = {
    None: ("let's talk about {topic}", "this is about {topic}", "{topic} is not what you think"),
    "conversational": (
        "let's talk about {topic}",
        "can we talk about {topic} for a second",
        "this is about {topic}",
    ),
    "educational": (
        "let's break down {topic}",
        "here's how {topic} actually works",
        "{topic} in under a minute",
    ),
    "hook-heavy": (
        "nobody is talking about {topic}",
        "{topic} is not what you think",
        "you've been doing {topic} wrong",
    ),
    "energetic": (
        "{topic} is about to change everything",
        "get ready, because {topic} is next",
        "{topic} just got interesting",
    ),
}

BRIDGE_TAILS = (
    "this is where {topic} gets interesting.",
    "{topic} is simpler than it looks.",
    "most people get {topic} backwards.",
)

CORE_LINES = (
    "{topic} really comes down to the {w1}",
    "the {w1} is what makes {topic} work",
    "start with the {w1} and keep the {w2} simple",
    "most people skip the {w1} part completely",
    "think about the {w1} before you worry about the {w2}",
    "that's where the {w1} comes in",
)

CORE_EXTENSIONS = (
    " and honestly the {w1} matters more than you think",
    " because the {w1} and the {w2} go hand in hand",
    " which is exactly why I keep coming back to the {w1}",
    " so give the {w1} a real shot before you move on",
)

ESCALATION_LINES = (
    "this is where {topic} changes everything",
    "once this clicks, {topic} gets so much easier",
    "this is the part nobody tells you about {topic}",
)

CALLS_TO_ACTION = {
    "high": "Drop a comment below if you're trying this!",
    "medium": "Try it this week and tell me how it goes.",
    "low": "Give it a try and see how it feels.",
}


class PhaseRequest(BaseModel):
    """Everything a writer needs to produce one phase."""

    phase: str
    topic: str
    word_budget: int
    profile: PersonaProfile
    style: str | None = None
    custom_instructions: str | None = None
    attempt: int = 0
    seed: int = 0
    banned: list[str] = Field(default_factory=list)
    hook: str | None = None
    bridge: str | None = None
    marker: str | None = None
    closing: str | None = None


class PhaseWriter(Protocol):
    """Produces the text of one phase.

    ``external`` writers call out to a remote service; the generator bounds
    those calls with its time budget.
    """

    external: bool

    def write(self, request: PhaseRequest) -> str: ...


def _is_banned(text: str, banned: list[str]) -> bool:
    lowered = text.lower()
    return any(phrase.lower() in lowered for phrase in banned if phrase)


def _pick_variant(options: tuple[str, ...], request: PhaseRequest, **fields: str) -> str:
    """First variant (rotated by attempt) that is free of banned phrases."""
    count = len(options)
    for step in range(count):
        text = options[(request.attempt + step) % count].format(**fields)
        if not _is_banned(text, request.banned):
            return text
    return options[request.attempt % count].format(**fields)


def _topic(request: PhaseRequest) -> str:
    return request.topic.strip().rstrip(".!?")


def _present_marker(marker: str) -> str:
    return marker if marker.isupper() else capitalize_first(marker)


class TemplateWriter:
    """Deterministic writer built from the persona's own patterns."""

    external = False

    def write(self, request: PhaseRequest) -> str:
        handler = getattr(self, f"_write_{request.phase}")
        return handler(request)

    def _write_hook(self, request: PhaseRequest) -> str:
        options = HOOK_CLAUSES.get(request.style, HOOK_CLAUSES[None])
        clause = _pick_variant(options, request, topic=_topic(request))
        hook = capitalize_first(request.hook or "okay")
        return f"{hook}, {clause}."

    def _write_bridge(self, request: PhaseRequest) -> str:
        tail = _pick_variant(BRIDGE_TAILS, request, topic=_topic(request))
        bridge = capitalize_first(request.bridge or GENERIC_BRIDGE)
        return f"{bridge}, {tail}"

    def _write_core_message(self, request: PhaseRequest) -> str:
        rng = random.Random(request.seed + request.attempt)
        profile = request.profile
        vocabulary = [
            w
            for w in profile.voice_profile.vocabulary_fingerprint
            if not _is_banned(w, request.banned)
        ]
        topic_words = {w.lower() for w in _topic(request).split()}
        vocabulary = [w for w in vocabulary if w not in topic_words] or list(FALLBACK_VOCABULARY)
        rng.shuffle(vocabulary)
        words = _WordCycle(vocabulary)

        classes = allocate_sentence_classes(
            request.word_budget,
            profile.generation_parameters.sentence_distribution.as_dict(),
            profile.voice_profile.rhythm_pattern,
        )
        structure = profile.speech_patterns.emotional_states.explaining.structure
        ordinals = sorted(
            (
                w
                for w in profile.speech_patterns.emotional_states.explaining.transition_words
                if w in ORDINAL_SEQUENCE
            ),
            key=ORDINAL_SEQUENCE.index,
        )
        if len(ordinals) < 2:
            ordinals = list(DEFAULT_ORDINALS)

        sentences = []
        for i, size in enumerate(classes):
            opener = None
            if structure == "step-by-step":
                last = i == len(classes) - 1 and i > 0
                opener = ordinals[-1] if last else ordinals[i % len(ordinals)]
            elif structure == "branching" and i == len(classes) // 2 and i > 0:
                opener = "side note"
            elif structure == "circular" and i == len(classes) - 1 and i > 0:
                sentences.append(f"And that brings it all back to {_topic(request)}.")
                continue
            sentences.append(
                _sized_sentence(size, opener, _topic(request), words, rng, request)
            )
        return " ".join(sentences)

    def _write_escalation(self, request: PhaseRequest) -> str:
        marker = _present_marker(request.marker or GENERIC_MARKER)
        line = _pick_variant(ESCALATION_LINES, request, topic=_topic(request))
        return f"{marker}! {capitalize_first(line)}!"

    def _write_close(self, request: PhaseRequest) -> str:
        level = request.profile.speech_patterns.baseline.typical_energy
        parts = [CALLS_TO_ACTION[level]]
        closing = request.closing or NEUTRAL_SIGN_OFF
        parts.append(ensure_terminal(capitalize_first(closing)))
        text = " ".join(parts)
        if _is_banned(text, request.banned) and request.attempt > 0:
            text = ensure_terminal(capitalize_first(closing))
        return text


class _WordCycle:
    def __init__(self, words: list[str]) -> None:
        self.words = words
        self.position = 0

    def next(self) -> str:
        word = self.words[self.position % len(self.words)]
        self.position += 1
        return word


def allocate_sentence_classes(
    word_budget: int, distribution: dict[str, float], rhythm_pattern: str = ""
) -> list[str]:
    """Sentence length classes for a phase, ordered to follow the rhythm.

    The number of sentences comes from the budget and the expected sentence
    length; classes are allocated by largest remainder, then ordered to follow
    the persona's cadence tokens where counts allow.
    """
    expected = 5 * distribution["short"] + 13 * distribution["medium"] + 24 * distribution["long"]
    count = max(2, int(round(word_budget / max(expected, 1.0))))

    raw = {name: distribution[name] * count for name in ("short", "medium", "long")}
    allocated = {name: int(value) for name, value in raw.items()}
    leftovers = sorted(raw, key=lambda name: (-(raw[name] - allocated[name]), name))
    for name in leftovers[: count - sum(allocated.values())]:
        allocated[name] += 1

    rhythm = [token.rstrip("!?") for token in rhythm_pattern.split("-") if token]
    rhythm = rhythm or ["short", "medium", "long"]
    ordered = []
    for i in range(count):
        wanted = rhythm[i % len(rhythm)]
        if allocated.get(wanted, 0) <= 0:
            wanted = max(allocated, key=lambda name: (allocated[name], name))
        allocated[wanted] -= 1
        ordered.append(wanted)
    return ordered


def _sized_sentence(
    size: str,
    opener: str | None,
    topic: str,
    words: _WordCycle,
    rng: random.Random,
    request: PhaseRequest,
) -> str:
    prefix = f"{capitalize_first(opener)}, " if opener else ""

    if size == "short":
        sentence = f"{prefix}focus on the {words.next()}."
        if word_count(sentence) > SHORT_SENTENCE_MAX:
            sentence = f"Focus on the {words.next()}."
        return capitalize_first(sentence)

    line = rng.choice(CORE_LINES).format(topic=topic, w1=words.next(), w2=words.next())
    sentence = prefix + line
    target = 12 if size == "medium" else LONG_SENTENCE_MIN
    extensions = list(CORE_EXTENSIONS)
    rng.shuffle(extensions)
    for extension in extensions:
        if word_count(sentence) >= target:
            break
        candidate = extension.format(w1=words.next(), w2=words.next())
        if not _is_banned(candidate, request.banned):
            sentence += candidate
    while size == "long" and word_count(sentence) < LONG_SENTENCE_MIN:
        sentence += f" and the {words.next()}"
    return ensure_terminal(capitalize_first(sentence))


class LLMWriter:
    """Writer backed by a language model through LLMClient."""

    external = True

    def __init__(
        self,
        client: LLMClient,
        templates: PromptTemplateManager,
        template_name: str = "phase.txt",
        max_tokens: int = 512,
        temperature: float = 0.8,
    ) -> None:
        self.client = client
        self.templates = templates
        self.template_name = template_name
        self.max_tokens = max_tokens
        self.temperature = temperature

    def build_variables(self, request: PhaseRequest) -> dict[str, Any]:
        profile = request.profile
        return {
            "persona": format_persona_for_prompt(profile),
            "phase": request.phase.replace("_", " "),
            "topic": _topic(request),
            "style": request.style or "the creator's natural style",
            "custom_instructions": request.custom_instructions or "",
            "word_budget": request.word_budget,
            "hook": request.hook,
            "bridge": request.bridge,
            "marker": request.marker,
            "closing": request.closing,
            "banned": request.banned,
            "attempt": request.attempt,
        }

    def write(self, request: PhaseRequest) -> str:
        prompt = self.templates.render(self.template_name, self.build_variables(request))
        response = self.client.complete(
            prompt, max_tokens=self.max_tokens, temperature=self.temperature
        )
        data = parse_llm_json(response)
        return validate_phase_response(data, request.phase)
