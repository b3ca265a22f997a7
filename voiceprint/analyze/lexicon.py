"""
voiceprint.analyze.lexicon - Cue lexicons for pattern extraction.

Phrase lists are lowercase except the energy escalators, which match
case-sensitively. Matching is done against lowercased sentence openings or
word-boundary regexes built from these lists.
"""

from __future__ import annotations

import re

# Sentence-opening transition cues. Longer cues are matched first.
TRANSITION_CUES: tuple[str, ...] = (
    "but here's the kicker",
    "so here's the thing",
    "but here's the thing",
    "and here's the thing",
    "here's the thing",
    "what i'm saying is",
    "long story short",
    "in other words",
    "the point is",
    "the thing is",
    "which means",
    "and that's why",
    "that's why",
    "here's why",
    "but seriously",
    "but wait",
    "and then",
    "basically",
    "anyway",
    "now",
    "look",
    "so",
)

EXCITEMENT_PHRASES: tuple[str, ...] = (
    "oh my god",
    "game changer",
    "mind blown",
    "no way",
    "let's go",
    "amazing",
    "incredible",
    "unbelievable",
    "insane",
    "wow",
    "omg",
    "crazy",
    "boom",
    "bam",
    "huge",
    "wild",
)

ORDINAL_MARKERS: tuple[str, ...] = (
    "first",
    "firstly",
    "second",
    "secondly",
    "third",
    "thirdly",
    "next",
    "then",
    "finally",
    "lastly",
    "step one",
    "step two",
    "step three",
    "number one",
    "number two",
    "number three",
)

CAUSAL_MARKERS: tuple[str, ...] = ("because", "since", "so that", "which means")

LOOP_MARKERS: tuple[str, ...] = (
    "like i said",
    "as i said",
    "back to",
    "coming back",
    "again",
    "anyway",
    "full circle",
)

BRANCH_MARKERS: tuple[str, ...] = (
    "side note",
    "by the way",
    "which reminds me",
    "on a tangent",
    "tangent",
    "fun fact",
    "quick aside",
    "on top of that",
)

FILLER_WORDS: tuple[str, ...] = (
    "um",
    "uh",
    "like",
    "you know",
    "i mean",
    "actually",
    "obviously",
    "literally",
    "basically",
    "honestly",
    "seriously",
    "kind of",
    "sort of",
)

# Matrix slots: category patterns, sentence-level.
MATRIX_PATTERNS: dict[str, tuple[str, ...]] = {
    "primary_hook": (
        "listen up",
        "okay so",
        "here's the thing",
        "check this out",
        "wait for it",
        "hold up",
        "you know what",
        "let me tell you",
        "i just realized",
        "here's what",
        "guys",
        "hey",
    ),
    "bridge_phrase": (
        "which means",
        "basically",
        "so here's the thing",
        "the point is",
        "in other words",
        "what i'm saying is",
        "long story short",
        "but here's the kicker",
        "but wait",
        "but seriously",
    ),
    "energy_escalator": (
        "THIS is",
        "THAT'S",
        "OH MY GOD",
        "BOOM",
        "BAM",
        "WAIT",
        "!!!",
    ),
    "personal_reference": (
        "i think",
        "in my opinion",
        "my experience",
        "i believe",
        "i feel",
        "when i was",
        "i remember",
        "i used to",
        "i always",
    ),
    "audience_address": (
        "you guys",
        "you need to",
        "you should",
        "you have to",
        "you can",
        "let me ask you",
        "think about it",
        "imagine this",
    ),
    "question_pattern": (
        "right?",
        "you know?",
        "have you ever",
        "did you know",
        "can you believe",
        "what if",
        "why do",
    ),
}

MATRIX_CONTEXTS: dict[str, str] = {
    "primary_hook": "Video openings and attention grabbers",
    "bridge_phrase": "Transitions between topics",
    "energy_escalator": "Peak moments and emphasis",
    "personal_reference": "Storytelling and credibility",
    "audience_address": "Direct engagement",
    "question_pattern": "Audience interaction and confirmation",
}


def phrase_regex(phrases: tuple[str, ...], ignore_case: bool = True) -> re.Pattern[str]:
    """Alternation with word boundaries, longest phrase first."""
    parts = []
    for phrase in sorted(phrases, key=len, reverse=True):
        escaped = re.escape(phrase)
        prefix = r"\b" if phrase[0].isalnum() else ""
        suffix = r"\b" if phrase[-1].isalnum() else ""
        parts.append(f"{prefix}{escaped}{suffix}")
    return re.compile("|".join(parts), re.IGNORECASE if ignore_case else 0)


EXCITEMENT_RE = phrase_regex(EXCITEMENT_PHRASES)
ORDINAL_RE = phrase_regex(ORDINAL_MARKERS)
CAUSAL_RE = phrase_regex(CAUSAL_MARKERS)
LOOP_RE = phrase_regex(LOOP_MARKERS)
BRANCH_RE = phrase_regex(BRANCH_MARKERS)
FILLER_RE = phrase_regex(FILLER_WORDS)
MATRIX_RES: dict[str, re.Pattern[str]] = {
    slot: phrase_regex(patterns, ignore_case=slot != "energy_escalator")
    for slot, patterns in MATRIX_PATTERNS.items()
}
CAPS_RUN_RE = re.compile(r"\b[A-Z]{2,}(?:\s+[A-Z]{2,})*\b")
CAPS_EXCLUDED = frozenset({"I", "OK", "TV", "AI", "US", "UK", "DM", "DIY", "FAQ"})


def match_transition_cue(normalized_sentence: str) -> str | None:
    """Return the longest transition cue the normalized sentence opens with."""
    for cue in sorted(TRANSITION_CUES, key=len, reverse=True):
        if normalized_sentence == cue or normalized_sentence.startswith(cue + " "):
            return cue
    return None
