"""Keyword extraction for the catalog and keyword index.

Tokens are lowercase alphanumeric runs longer than two characters with common
English function words removed. There is no stemming and no camelCase splitting:
``addNoteOn`` stays a single token ``addnoteon``.
"""

from __future__ import annotations

import re


_WORD_PATTERN = re.compile(r"[a-z0-9]+")

MIN_TOKEN_LENGTH = 3

STOPWORDS = frozenset(
    {
        "the",
        "a",
        "an",
        "is",
        "are",
        "was",
        "were",
        "be",
        "been",
        "being",
        "have",
        "has",
        "had",
        "do",
        "does",
        "did",
        "will",
        "would",
        "could",
        "should",
        "may",
        "might",
        "must",
        "can",
        "to",
        "of",
        "in",
        "for",
        "on",
        "with",
        "at",
        "by",
        "from",
        "as",
        "into",
        "through",
        "during",
        "before",
        "after",
        "above",
        "below",
        "between",
        "under",
        "again",
        "further",
        "then",
        "once",
        "here",
        "there",
        "when",
        "where",
        "why",
        "how",
        "all",
        "each",
        "few",
        "more",
        "most",
        "other",
        "some",
        "such",
        "no",
        "nor",
        "not",
        "only",
        "own",
        "same",
        "so",
        "than",
        "too",
        "very",
        "just",
        "and",
        "but",
        "if",
        "or",
        "because",
        "until",
        "while",
        "this",
        "that",
        "these",
        "those",
        "it",
        "its",
    }
)


def extract_keywords(*texts: str | None) -> tuple[str, ...]:
    """Extract searchable tokens from one or more free-text strings.

    Args:
        *texts: Strings to tokenize. ``None`` and empty strings are skipped.

    Returns:
        Unique tokens in first-occurrence order. Callers should treat the result
        as a set; the order only exists so repeated runs are reproducible.

    Examples:
        >>> extract_keywords("Adds a note-on event", "Synth")
        ('adds', 'note', 'event', 'synth')
    """
    seen: dict[str, None] = {}
    for text in texts:
        if not text:
            continue
        for word in _WORD_PATTERN.findall(text.lower()):
            if len(word) >= MIN_TOKEN_LENGTH and word not in STOPWORDS:
                seen.setdefault(word, None)
    return tuple(seen)
