"""Text normalization for bag-of-words field comparison."""

from __future__ import annotations

import html
import re
from collections.abc import Iterable
from typing import Any

STOP_WORDS: frozenset[str] = frozenset(
    {
        "a", "about", "also", "an", "and", "are", "as", "at", "be", "but",
        "by", "can", "each", "either", "for", "from", "has", "he", "her",
        "here", "hers", "him", "his", "how", "i", "if", "in", "include",
        "into", "is", "it", "its", "me", "neither", "no", "nor", "not",
        "of", "on", "or", "so", "she", "than", "that", "the", "their",
        "them", "then", "there", "these", "they", "this", "those",
        "through", "to", "too", "very", "what", "when", "where", "while",
        "who", "why", "will", "you", "",
    }
)

_TAG_RE = re.compile(r"<[^>]*>")
_PUNCT_RE = re.compile(r"[^\w\s]|_")
_SPACE_RE = re.compile(r"\s+")


def to_text(value: Any) -> str:
    """Flatten a field value to a single string (lists joined by spaces)."""
    if value is None:
        return ""
    if isinstance(value, (list, tuple, set, frozenset)):
        return " ".join(to_text(v) for v in value)
    return str(value)


def tokenize(value: Any, stop_words: Iterable[str] = STOP_WORDS) -> list[str]:
    """Normalize a value into its list of significant words.

    Strips markup, turns punctuation into spaces, collapses whitespace,
    lower-cases and drops stop words. Duplicates are kept.

    >>> tokenize("<b>The</b> Quick, quick fox!")
    ['quick', 'quick', 'fox']
    """
    text = _TAG_RE.sub(" ", to_text(value))
    text = html.unescape(text)
    text = _PUNCT_RE.sub(" ", text)
    text = _SPACE_RE.sub(" ", text).strip().lower()
    stop = stop_words if isinstance(stop_words, (set, frozenset)) else frozenset(stop_words)
    return [word for word in text.split(" ") if word not in stop]


def word_overlap(words_a: list[str], words_b: Iterable[str]) -> int:
    """Number of words in ``words_a`` (with repeats) found in ``words_b``."""
    present = set(words_b)
    return sum(1 for word in words_a if word in present)


__all__ = ["STOP_WORDS", "to_text", "tokenize", "word_overlap"]
