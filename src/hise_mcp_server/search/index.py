"""In-memory corpus index.

``CorpusIndex`` is an immutable snapshot: exact-lookup dictionaries per domain, the
flat catalog used by every search stage, and the inverted keyword index. Builders
always return a new snapshot so the owning service can swap it in with a single
assignment; queries never observe a half-built index.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
import logging
from types import MappingProxyType

from hise_mcp_server.domain.model import (
    ApiMethod,
    CanonicalCorpus,
    CodeSnippet,
    ModuleParameter,
    RecordDomain,
    SearchDomain,
    UIProperty,
)
from hise_mcp_server.domain.search import CatalogEntry
from hise_mcp_server.search.tokenizer import extract_keywords


logger = logging.getLogger(__name__)

# Catalog ids for one token. A dict is used as an insertion-ordered set so that
# candidate iteration, and therefore tie order, is reproducible.
Postings = dict[str, None]


@dataclass(frozen=True)
class CorpusIndex:
    """Read-only view over the indexed corpus."""

    api: Mapping[str, ApiMethod]
    ui: Mapping[str, UIProperty]
    modules: Mapping[str, ModuleParameter]
    snippets: Mapping[str, CodeSnippet]
    catalog: tuple[CatalogEntry, ...]
    keyword_index: Mapping[str, Postings]
    snippets_loaded: bool = False
    id_lookup: Mapping[str, tuple[CatalogEntry, ...]] = field(default_factory=dict, repr=False)
    domain_lookup: Mapping[str, tuple[CatalogEntry, ...]] = field(default_factory=dict, repr=False)

    def entries_for(self, domain: SearchDomain) -> Sequence[CatalogEntry]:
        """Catalog entries restricted to ``domain`` (all entries for ``"all"``)."""
        if domain == "all":
            return self.catalog
        return self.domain_lookup.get(domain, ())

    def entries_by_id(self, entry_id: str) -> tuple[CatalogEntry, ...]:
        """All catalog entries with this id, in catalog order."""
        return self.id_lookup.get(entry_id, ())

    def exact_lookup(self, domain: RecordDomain, entry_id: str) -> CatalogEntry | None:
        for entry in self.entries_by_id(entry_id):
            if entry.domain == domain:
                return entry
        return None

    def stats(self) -> dict[str, int | bool]:
        return {
            "api": len(self.api),
            "ui": len(self.ui),
            "modules": len(self.modules),
            "snippets": len(self.snippets),
            "catalog_entries": len(self.catalog),
            "keywords": len(self.keyword_index),
            "snippets_loaded": self.snippets_loaded,
        }


class _IndexAccumulator:
    """Mutable scratch space used while a new snapshot is assembled."""

    def __init__(self, base: CorpusIndex | None = None) -> None:
        self.api: dict[str, ApiMethod] = dict(base.api) if base else {}
        self.ui: dict[str, UIProperty] = dict(base.ui) if base else {}
        self.modules: dict[str, ModuleParameter] = dict(base.modules) if base else {}
        self.snippets: dict[str, CodeSnippet] = dict(base.snippets) if base else {}
        self.catalog: list[CatalogEntry] = list(base.catalog) if base else []
        self.keyword_index: dict[str, Postings] = (
            {token: dict(ids) for token, ids in base.keyword_index.items()} if base else {}
        )

    def add(
        self,
        entry_id: str,
        domain: RecordDomain,
        display_name: str,
        description: str,
        *keyword_sources: str,
    ) -> None:
        keywords = extract_keywords(*keyword_sources)
        self.catalog.append(
            CatalogEntry(
                id=entry_id,
                domain=domain,
                display_name=display_name,
                description=description,
                keywords=frozenset(keywords),
            )
        )
        for token in keywords:
            self.keyword_index.setdefault(token, {})[entry_id] = None

    def freeze(self, *, snippets_loaded: bool) -> CorpusIndex:
        by_id: dict[str, list[CatalogEntry]] = {}
        by_domain: dict[str, list[CatalogEntry]] = {}
        for entry in self.catalog:
            by_id.setdefault(entry.id, []).append(entry)
            by_domain.setdefault(entry.domain, []).append(entry)
        return CorpusIndex(
            api=MappingProxyType(self.api),
            ui=MappingProxyType(self.ui),
            modules=MappingProxyType(self.modules),
            snippets=MappingProxyType(self.snippets),
            catalog=tuple(self.catalog),
            keyword_index=MappingProxyType(self.keyword_index),
            snippets_loaded=snippets_loaded,
            id_lookup=MappingProxyType({key: tuple(value) for key, value in by_id.items()}),
            domain_lookup=MappingProxyType({key: tuple(value) for key, value in by_domain.items()}),
        )


def build_index(corpus: CanonicalCorpus) -> CorpusIndex:
    """Build a fresh snapshot from the eagerly loaded records.

    Any previous index state is discarded; snippets start out unloaded.
    """
    acc = _IndexAccumulator()

    for prop in corpus.ui:
        key = prop.canonical_id
        acc.ui[key] = prop
        acc.add(
            key,
            "ui",
            prop.display_name,
            prop.description,
            prop.property_name,
            prop.description,
            prop.component_type,
        )

    for method in corpus.api:
        key = method.canonical_id
        acc.api[key] = method
        acc.add(
            key,
            "api",
            method.display_name,
            method.description,
            method.method_name,
            method.description,
            method.namespace,
        )

    for param in corpus.modules:
        key = param.canonical_id
        acc.modules[key] = param
        acc.add(
            key,
            "modules",
            param.display_name,
            param.description,
            param.parameter_id,
            param.description,
            param.module_type,
        )

    index = acc.freeze(snippets_loaded=False)
    logger.debug("Built index: %d catalog entries, %d keywords", len(index.catalog), len(index.keyword_index))
    return index


def append_snippets(index: CorpusIndex, snippets: Iterable[CodeSnippet]) -> CorpusIndex:
    """Return a new snapshot with snippet entries appended to ``index``.

    The api/ui/modules state of ``index`` is carried over untouched.
    """
    acc = _IndexAccumulator(index)
    added = 0
    for snippet in snippets:
        acc.snippets[snippet.id] = snippet
        acc.add(
            snippet.id,
            "snippets",
            snippet.title,
            snippet.description,
            snippet.title,
            snippet.description,
            snippet.category,
            *snippet.tags,
        )
        added += 1
    logger.debug("Appended %d snippet entries to index", added)
    return acc.freeze(snippets_loaded=True)
