"""Staged ranked search over a ``CorpusIndex``.

Stages run from cheapest to most expensive and the pipeline returns as soon as
enough results are collected:

1. exact     - canonical id lookup per domain                (score 1.0)
2. prefix    - ``*`` wildcard patterns over ids and names     (score 0.9)
3. keyword   - inverted keyword index, coverage-scored        (score 0.3-0.8)
4. fuzzy     - similarity scorer over remaining entries       (score >= 0.4)

Each stage caps its own accumulation (2x, 3x, 5x the limit) so broad queries on a
large corpus stay bounded.
"""

from __future__ import annotations

import logging
import re

from hise_mcp_server.domain.model import RECORD_DOMAINS, SearchDomain
from hise_mcp_server.domain.search import SearchResult
from hise_mcp_server.search.index import CorpusIndex
from hise_mcp_server.search.similarity import edit_distance, score_similarity
from hise_mcp_server.search.tokenizer import extract_keywords


logger = logging.getLogger(__name__)

WILDCARD = "*"

PREFIX_SCORE = 0.9
KEYWORD_BASE_SCORE = 0.3
KEYWORD_COVERAGE_WEIGHT = 0.5
KEYWORD_MAX_SCORE = 0.8
FUZZY_THRESHOLD = 0.4
SUGGESTION_THRESHOLD = 0.3

PREFIX_CAP_FACTOR = 2
KEYWORD_CAP_FACTOR = 3
FUZZY_CAP_FACTOR = 5

_EMPTY_CALL_SUFFIX = re.compile(r"\(\)$")
_ARGUMENT_SUFFIX = re.compile(r"\(.*\)$", re.DOTALL)


def normalize_query(query: str) -> str:
    """Normalize a query for lookup.

    Strips a trailing ``()`` or parenthesized argument list, lowercases and trims.
    Normalizing an already normalized query is a no-op.

    Examples:
        >>> normalize_query("Synth.addNoteOn(channel, note, velocity)")
        'synth.addnoteon'
        >>> normalize_query("  Math.round() ")
        'math.round'
    """
    text = query.strip()
    text = _EMPTY_CALL_SUFFIX.sub("", text).rstrip()
    text = _ARGUMENT_SUFFIX.sub("", text)
    return text.lower().strip()


def compile_wildcard(pattern: str) -> re.Pattern[str] | None:
    """Compile a ``*`` wildcard pattern into an anchored, case-insensitive regex.

    Every other character is matched literally. Returns ``None`` when the pattern
    cannot be compiled so callers can fall back to non-wildcard matching.
    """
    body = ".*".join(re.escape(part) for part in pattern.split(WILDCARD))
    try:
        return re.compile(f"^{body}$", re.IGNORECASE)
    except re.error as exc:
        logger.debug("Wildcard pattern %r did not compile: %s", pattern, exc)
        return None


def _ranked(results: list[SearchResult], limit: int) -> list[SearchResult]:
    # sorted() is stable, so equal scores keep first-seen order
    return sorted(results, key=lambda result: result.score, reverse=True)[:limit]


class SearchEngine:
    """Query executor bound to one immutable index snapshot."""

    def __init__(self, index: CorpusIndex):
        self.index = index

    def search(self, query: str, domain: SearchDomain = "all", limit: int = 10) -> list[SearchResult]:
        """Run the staged search.

        Args:
            query: Raw user query (ids, wildcard patterns, or free text).
            domain: Domain to search, or ``"all"``.
            limit: Strict cap on the number of results.

        Returns:
            Results sorted by score descending, at most ``limit`` long.
        """
        normalized = normalize_query(query)
        if not normalized or limit <= 0:
            return []

        results: list[SearchResult] = []
        seen: set[str] = set()

        self._exact_stage(normalized, domain, results, seen)
        if len(results) >= limit:
            return _ranked(results, limit)

        if WILDCARD in normalized:
            self._prefix_stage(normalized, domain, limit, results, seen)
            if len(results) >= limit:
                return _ranked(results, limit)

        self._keyword_stage(normalized, domain, limit, results, seen)
        if len(results) >= limit:
            return _ranked(results, limit)

        self._fuzzy_stage(normalized, domain, limit, results, seen)
        return _ranked(results, limit)

    def _exact_stage(
        self,
        normalized: str,
        domain: SearchDomain,
        results: list[SearchResult],
        seen: set[str],
    ) -> None:
        for record_domain in RECORD_DOMAINS:
            if domain not in ("all", record_domain):
                continue
            entry = self.index.exact_lookup(record_domain, normalized)
            if entry is not None:
                results.append(SearchResult.from_entry(entry, 1.0, "exact"))
                seen.add(entry.id)

    def _prefix_stage(
        self,
        normalized: str,
        domain: SearchDomain,
        limit: int,
        results: list[SearchResult],
        seen: set[str],
    ) -> None:
        regex = compile_wildcard(normalized)
        if regex is None:
            return

        cap = limit * PREFIX_CAP_FACTOR
        for entry in self.index.entries_for(domain):
            if entry.id in seen:
                continue
            if regex.match(entry.id) or regex.match(entry.display_name.lower()):
                results.append(SearchResult.from_entry(entry, PREFIX_SCORE, "prefix"))
                seen.add(entry.id)
                if len(results) >= cap:
                    break

    def _keyword_stage(
        self,
        normalized: str,
        domain: SearchDomain,
        limit: int,
        results: list[SearchResult],
        seen: set[str],
    ) -> None:
        tokens = extract_keywords(normalized)
        if not tokens:
            return

        match_counts: dict[str, int] = {}
        for token in tokens:
            for entry_id in self.index.keyword_index.get(token, ()):
                match_counts[entry_id] = match_counts.get(entry_id, 0) + 1

        cap = limit * KEYWORD_CAP_FACTOR
        for entry_id, match_count in match_counts.items():
            if entry_id in seen:
                continue
            entry = next(
                (e for e in self.index.entries_by_id(entry_id) if domain in ("all", e.domain)),
                None,
            )
            if entry is None:
                continue

            coverage = match_count / len(tokens)
            score = min(KEYWORD_MAX_SCORE, KEYWORD_BASE_SCORE + coverage * KEYWORD_COVERAGE_WEIGHT)
            results.append(SearchResult.from_entry(entry, score, "keyword"))
            seen.add(entry_id)
            if len(results) >= cap:
                break

    def _fuzzy_stage(
        self,
        normalized: str,
        domain: SearchDomain,
        limit: int,
        results: list[SearchResult],
        seen: set[str],
    ) -> None:
        cap = limit * FUZZY_CAP_FACTOR
        for entry in self.index.entries_for(domain):
            if entry.id in seen:
                continue
            score = score_similarity(normalized, entry.id, entry.display_name.lower(), entry.keywords)
            if score >= FUZZY_THRESHOLD:
                results.append(SearchResult.from_entry(entry, score, "fuzzy"))
                seen.add(entry.id)
                if len(results) >= cap:
                    break

    def find_similar(self, query: str, limit: int = 3, domain: SearchDomain | None = None) -> list[str]:
        """Suggest display names close to ``query`` for "did you mean" prompts.

        Candidates scoring above 0.3 are ranked by score; equal scores are ordered
        by edit distance to the query so the closest spelling comes first.
        """
        normalized = normalize_query(query)
        if not normalized or limit <= 0:
            return []

        scored: list[tuple[float, int, int, str]] = []
        for position, entry in enumerate(self.index.entries_for(domain or "all")):
            score = score_similarity(normalized, entry.id, entry.display_name.lower(), entry.keywords)
            if score > SUGGESTION_THRESHOLD:
                distance = edit_distance(normalized, entry.id)
                scored.append((-score, distance, position, entry.display_name))

        scored.sort()
        return [name for _, _, _, name in scored[:limit]]
