"""Similarity scoring for fuzzy search and "did you mean" suggestions.

A single scorer is shared by the fuzzy stage of search and by suggestion lookup so
both agree on what "close" means. Rules upgrade the score; they never add up:

- id or display name equals the query: 1.0 (terminal)
- id or display name starts with the query: 0.8
- id or display name contains the query: 0.6
- a dotted query segment is contained in a dotted id segment: 0.5
- a query keyword is one of the candidate's keywords: 0.4
"""

from __future__ import annotations

from collections.abc import Collection

from hise_mcp_server.search.tokenizer import extract_keywords


EXACT_SCORE = 1.0
PREFIX_SCORE = 0.8
SUBSTRING_SCORE = 0.6
SEGMENT_SCORE = 0.5
KEYWORD_SCORE = 0.4


def score_similarity(
    query: str,
    candidate_id: str,
    candidate_name: str,
    candidate_keywords: Collection[str],
) -> float:
    """Score how closely a normalized query matches a catalog entry.

    Args:
        query: Normalized (lowercase, trimmed) query.
        candidate_id: Canonical id of the entry.
        candidate_name: Lowercased display name of the entry.
        candidate_keywords: Keyword set of the entry.

    Returns:
        Score in [0.0, 1.0]; 0.0 when no rule applies.
    """
    if not query:
        return 0.0
    if candidate_id == query or candidate_name == query:
        return EXACT_SCORE

    score = 0.0
    if candidate_id.startswith(query) or candidate_name.startswith(query):
        score = max(score, PREFIX_SCORE)
    if query in candidate_id or query in candidate_name:
        score = max(score, SUBSTRING_SCORE)
    if score >= SEGMENT_SCORE:
        return score

    id_segments = candidate_id.split(".")
    for query_segment in query.split("."):
        if query_segment and any(query_segment in segment for segment in id_segments):
            return SEGMENT_SCORE

    if any(token in candidate_keywords for token in extract_keywords(query)):
        score = max(score, KEYWORD_SCORE)
    return score


def edit_distance(source: str, target: str, max_distance: int | None = None) -> int:
    """Levenshtein distance with an optional early-exit bound.

    When ``max_distance`` is given and the distance is certain to exceed it,
    ``max_distance + 1`` is returned without finishing the table.

    Examples:
        >>> edit_distance("synth.addnoton", "synth.addnoteon")
        1
        >>> edit_distance("", "abc")
        3
    """
    if not source:
        return len(target)
    if not target:
        return len(source)
    if len(source) > len(target):
        source, target = target, source
    if max_distance is not None and len(target) - len(source) > max_distance:
        return max_distance + 1

    previous = list(range(len(source) + 1))
    for row, target_char in enumerate(target, start=1):
        current = [row]
        for col, source_char in enumerate(source, start=1):
            cost = 0 if source_char == target_char else 1
            current.append(min(previous[col] + 1, current[col - 1] + 1, previous[col - 1] + cost))
        if max_distance is not None and min(current) > max_distance:
            return max_distance + 1
        previous = current
    return previous[-1]
