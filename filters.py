"""Topical relevance filter for fallback search results (no hardcoded synonyms)."""

from __future__ import annotations

import os
import re
from collections.abc import Iterable

# Tokens longer than this are cut to a prefix stem ("allergy" -> "aller").
STEM_LENGTH = int(os.getenv("FALLBACK_STEM_LENGTH", "5"))

_TOKEN_RE = re.compile(r"[a-z][a-z\-]{2,}")

_STOPWORDS: frozenset[str] = frozenset({
    "and",
    "or",
    "of",
    "the",
    "a",
    "an",
    "for",
    "to",
    "from",
    "by",
    "on",
    "in",
    "with",
    "group",
    "topic",
})


def tokenize_topic(topic: str) -> list[str]:
    """Lower-case word tokens of length >= 3, stopwords dropped, first occurrence kept."""
    tokens: list[str] = []
    for raw in _TOKEN_RE.findall(topic.lower()):
        word = raw.strip("-")
        if len(word) < 3 or word in _STOPWORDS or word in tokens:
            continue
        tokens.append(word)
    return tokens


def build_include_patterns(tokens: Iterable[str], stem_length: int = STEM_LENGTH) -> list[re.Pattern[str]]:
    """One loose prefix pattern per token, e.g. ``\\bintol\\w{0,12}\\b``."""
    patterns: list[re.Pattern[str]] = []
    for token in tokens:
        stem = token[:stem_length] if len(token) > stem_length else token
        patterns.append(re.compile(rf"\b{re.escape(stem)}\w{{0,12}}\b", re.IGNORECASE))
    return patterns


def matches_topic(title: str, subjects: Iterable[str], patterns: list[re.Pattern[str]]) -> bool:
    """Return True if the title or any subject tag matches at least one pattern."""
    if title and any(p.search(title) for p in patterns):
        return True
    return any(p.search(subject) for subject in subjects if subject for p in patterns)
