"""Related-item discovery by keyword overlap."""

from __future__ import annotations

from hise_mcp_server.search.engine import normalize_query
from hise_mcp_server.search.index import CorpusIndex


SAME_DOMAIN_BONUS = 0.2
RELATED_API_SCORE = 0.9
RELATED_COMPONENT_SCORE = 0.85


def related_items(index: CorpusIndex, item_id: str, limit: int = 5) -> list[str]:
    """Return display names of entries related to ``item_id``.

    Every other catalog entry sharing at least one keyword with the subject is
    scored by the share of the subject's keywords it covers, plus a bonus when it
    lives in the same domain. Snippets also pull in the API methods and UI
    components they reference explicitly.

    Args:
        index: Index snapshot to search.
        item_id: Canonical id of the subject (normalized before lookup).
        limit: Maximum number of names to return.

    Returns:
        Display names ordered by relatedness; empty for an unknown subject.
    """
    subject_id = normalize_query(item_id)
    candidates = index.entries_by_id(subject_id)
    if not candidates:
        return []
    subject = candidates[0]

    keyword_total = max(len(subject.keywords), 1)
    related: list[tuple[str, float]] = []
    for other in index.catalog:
        if other.id == subject_id:
            continue
        overlap = len(subject.keywords & other.keywords)
        if overlap == 0:
            continue
        bonus = SAME_DOMAIN_BONUS if other.domain == subject.domain else 0.0
        related.append((other.display_name, overlap / keyword_total + bonus))

    if subject.domain == "snippets":
        snippet = index.snippets.get(subject_id)
        if snippet is not None:
            present = {name.lower() for name, _ in related}
            for references, score in (
                (snippet.related_apis, RELATED_API_SCORE),
                (snippet.related_components, RELATED_COMPONENT_SCORE),
            ):
                for reference in references:
                    if reference.lower() not in present:
                        related.append((reference, score))
                        present.add(reference.lower())

    related.sort(key=lambda pair: pair[1], reverse=True)
    return [name for name, _ in related[:limit]]
