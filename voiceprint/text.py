"""
voiceprint.text - Sentence, token, and phrase helpers shared across stages.

Covers sentence splitting (terminal punctuation retained), tokenizing,
phrase normalization, edit distance, sentence length classes, and cadence
signatures.
"""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Iterable, Sequence
from difflib import SequenceMatcher

SENTENCE_RE = re.compile(r"[^.!?]+(?:[.!?]+|$)")
WORD_RE = re.compile(r"[A-Za-z0-9]+(?:'[A-Za-z]+)?")
CLAUSE_BOUNDARY_RE = re.compile(r"\s*(?:,|:|;|\s-\s|\s--\s|–|—)\s*")
LEADING_ARTICLES = ("the ", "a ", "an ")

SHORT_SENTENCE_MAX = 7
LONG_SENTENCE_MIN = 21

STOP_WORDS = frozenset(
    """
    about above after again against also always another because been before being
    below between both could does doing down during each even every from further
    going gonna have having here hers herself himself into itself just know like
    more most much must myself never only other ours ourselves over really same
    should some such than that that's their theirs them themselves then there
    these they they're thing things this those through together under until very
    want wanna were what what's when where which while will with would your yours
    yourself yourselves you're it's i'm don't can't didn't isn't that'll there's
    here's let's okay yeah well right
    """.split()
)


def split_sentences(text: str) -> list[str]:
    """Split text into sentences, keeping terminal punctuation.

    Args:
        text: Raw transcript or script text

    Returns:
        Stripped, non-empty sentences in order
    """
    sentences = []
    for match in SENTENCE_RE.finditer(text):
        sentence = " ".join(match.group(0).split())
        if WORD_RE.search(sentence):
            sentences.append(sentence)
    return sentences


def tokenize(text: str) -> list[str]:
    """Return word tokens in their original case."""
    return WORD_RE.findall(text.replace("\u2019", "'"))


def lower_words(text: str) -> str:
    """Lowercased tokens joined by single spaces, punctuation dropped."""
    return " ".join(t.lower() for t in tokenize(text))


def word_count(text: str) -> int:
    return len(tokenize(text))


def significant_tokens(text: str, exclude: Iterable[str] = ()) -> list[str]:
    """Lowercased tokens longer than three characters, minus stop words."""
    excluded = {word.lower() for word in exclude}
    return [
        token
        for token in (t.lower() for t in tokenize(text))
        if len(token) > 3 and token not in STOP_WORDS and token not in excluded
    ]


def normalize_phrase(text: str) -> str:
    """Lowercase, strip punctuation (apostrophes kept), drop leading articles."""
    normalized = lower_words(text)
    for article in LEADING_ARTICLES:
        if normalized.startswith(article):
            normalized = normalized[len(article) :]
            break
    return normalized


def leading_clause(sentence: str) -> str:
    """Return the text before the first clause boundary (comma, colon, dash)."""
    return CLAUSE_BOUNDARY_RE.split(sentence, maxsplit=1)[0]


def trailing_clause(sentence: str) -> str:
    """Return the text after the last clause boundary."""
    return CLAUSE_BOUNDARY_RE.split(sentence)[-1]


def truncate_words(text: str, max_words: int) -> str:
    return " ".join(text.split()[:max_words])


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance between two strings (or token sequences)."""
    return sequence_edit_distance(list(a), list(b))


def sequence_edit_distance(a: Sequence[str], b: Sequence[str]) -> int:
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, item_a in enumerate(a, start=1):
        current = [i]
        for j, item_b in enumerate(b, start=1):
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + (item_a != item_b),
                )
            )
        previous = current
    return previous[-1]


def near_match(a: str, b: str, max_distance: int = 2, min_length: int = 4) -> bool:
    """True when two normalized phrases are the same or nearly the same.

    Phrases shorter than ``min_length`` characters must match exactly.
    """
    if a == b:
        return True
    if len(a) < min_length or len(b) < min_length:
        return False
    return edit_distance(a, b) <= max_distance


def similarity(a: Sequence[str] | str, b: Sequence[str] | str) -> float:
    """difflib ratio in [0, 1] between two strings or token sequences."""
    if not a and not b:
        return 1.0
    return SequenceMatcher(None, a, b).ratio()


def length_class(words: int) -> str:
    if words <= SHORT_SENTENCE_MAX:
        return "short"
    if words >= LONG_SENTENCE_MIN:
        return "long"
    return "medium"


def sentence_token(sentence: str) -> str:
    """Cadence token: length class plus terminal ``!`` or ``?``."""
    token = length_class(word_count(sentence))
    stripped = sentence.rstrip()
    if stripped.endswith("!"):
        token += "!"
    elif stripped.endswith("?"):
        token += "?"
    return token


def cadence_tokens(sentences: Sequence[str]) -> list[str]:
    return [sentence_token(s) for s in sentences]


def cadence_ngrams(tokens: Sequence[str], width: int = 3) -> list[str]:
    """Dash-joined windows over a token sequence.

    Sequences shorter than ``width`` yield themselves as a single entry.
    """
    if not tokens:
        return []
    if len(tokens) < width:
        return ["-".join(tokens)]
    return ["-".join(tokens[i : i + width]) for i in range(len(tokens) - width + 1)]


def cadence_signature(sentences: Sequence[str], width: int = 3) -> str:
    """Most frequent cadence window of a single text; earliest wins ties."""
    windows = cadence_ngrams(cadence_tokens(sentences), width)
    if not windows:
        return ""
    counts = Counter(windows)
    best = max(counts.values())
    return next(w for w in windows if counts[w] == best)


def length_distribution(sentences: Sequence[str]) -> dict[str, float]:
    """Share of short, medium, and long sentences."""
    counts = Counter(length_class(word_count(s)) for s in sentences)
    total = sum(counts.values())
    if total == 0:
        return {"short": 0.0, "medium": 0.0, "long": 0.0}
    return {name: counts.get(name, 0) / total for name in ("short", "medium", "long")}


def capitalize_first(text: str) -> str:
    return text[:1].upper() + text[1:] if text else text


def ensure_terminal(text: str, mark: str = ".") -> str:
    text = text.rstrip()
    if not text or text[-1] in ".!?":
        return text
    return text + mark


def cluster_phrases(
    phrases: Iterable[str], max_distance: int = 2, min_length: int = 4
) -> dict[str, int]:
    """Count phrases, folding near-exact variants into the first form seen."""
    clusters: dict[str, int] = {}
    for phrase in phrases:
        if not phrase:
            continue
        for representative in clusters:
            if near_match(phrase, representative, max_distance, min_length):
                clusters[representative] += 1
                break
        else:
            clusters[phrase] = 1
    return clusters


def jaccard(a: set[str], b: set[str]) -> float:
    if not a or not b:
        return 0.0
    return len(a & b) / len(a | b)
