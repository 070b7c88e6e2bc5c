"""Documentation service - the single context object behind every tool.

Owns the current ``CorpusIndex`` snapshot and orchestrates startup:

    snapshot cache hit?  -> canonical records
    otherwise            -> read sources -> canonicalize -> save snapshot
    then                 -> build index

Snippets are loaded lazily the first time a snippet-domain operation runs. The
load is guarded by a lock so concurrent callers share a single load, and the new
index snapshot replaces the old one in a single assignment.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from itertools import islice
import logging
import time

from hise_mcp_server.adapters.source_repository import SourceRepository
from hise_mcp_server.config import Settings
from hise_mcp_server.domain.errors import CorpusNotLoadedError
from hise_mcp_server.domain.model import (
    ApiMethod,
    CanonicalCorpus,
    CodeSnippet,
    Difficulty,
    ModuleParameter,
    SearchDomain,
    SnippetSummary,
    UIProperty,
)
from hise_mcp_server.domain.search import SearchResult
from hise_mcp_server.observability.metrics import INDEX_ENTRY_COUNT, SEARCH_LATENCY, track_latency
from hise_mcp_server.search.engine import SearchEngine, normalize_query
from hise_mcp_server.search.index import CorpusIndex, append_snippets, build_index
from hise_mcp_server.search.relations import related_items
from hise_mcp_server.services.cache_service import SnapshotCache
from hise_mcp_server.services.canonicalizer import canonicalize_corpus, canonicalize_snippets
from hise_mcp_server.utils.models import EnrichedResult, RecordT


logger = logging.getLogger(__name__)


class DocumentationService:
    """Query facade over the HISE documentation corpus.

    Construct it, ``await load()`` once, then share the instance with every caller.
    ``create()`` does both.
    """

    def __init__(
        self,
        settings: Settings,
        sources: SourceRepository | None = None,
        cache: SnapshotCache | None = None,
    ):
        self.settings = settings
        self.sources = sources or SourceRepository(settings.data_dir)
        self.cache = cache or SnapshotCache(settings.cache_path, self.sources, enabled=settings.cache_enabled)
        self._corpus: CanonicalCorpus | None = None
        self._engine: SearchEngine | None = None
        self._snippet_lock = asyncio.Lock()
        self.loaded_from_cache = False

    @classmethod
    async def create(cls, settings: Settings) -> DocumentationService:
        service = cls(settings)
        await service.load()
        return service

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def load(self) -> None:
        """Establish canonical records and build the index.

        Raises:
            CorpusLoadError: A source file is missing or is not valid JSON.
            CorpusFormatError: A source file has an unexpected shape.
        """
        started = time.perf_counter()
        corpus = await self.cache.load()
        from_cache = corpus is not None
        if corpus is None:
            logger.info("Building HISE data indexes from %s", self.sources.data_dir)
            raw = await self.sources.read_corpus()
            corpus = canonicalize_corpus(raw.ui, raw.api, raw.processors)

        self._swap(build_index(corpus))
        self._corpus = corpus
        self.loaded_from_cache = from_cache

        if not from_cache:
            await self.cache.save(corpus)

        logger.info(
            "Loaded HISE data (%s): %d api, %d ui, %d module records in %.3fs",
            "cache" if from_cache else "sources",
            len(corpus.api),
            len(corpus.ui),
            len(corpus.modules),
            time.perf_counter() - started,
        )

    async def ensure_snippets_loaded(self) -> None:
        """Load and index snippets once per process.

        A failed load leaves snippets unloaded so the next call retries.

        Raises:
            CorpusLoadError: The snippet file is missing or is not valid JSON.
            CorpusFormatError: The snippet file has an unexpected shape.
        """
        if self.index.snippets_loaded:
            return
        async with self._snippet_lock:
            if self.index.snippets_loaded:
                return
            raw = await self.sources.read_snippets()
            snippets = canonicalize_snippets(raw)
            self._swap(append_snippets(self.index, snippets))
            logger.info("Lazy-loaded %d snippets", len(snippets))

    def _swap(self, index: CorpusIndex) -> None:
        self._engine = SearchEngine(index)
        INDEX_ENTRY_COUNT.labels(source="catalog").set(len(index.catalog))

    @property
    def index(self) -> CorpusIndex:
        return self.engine.index

    @property
    def engine(self) -> SearchEngine:
        if self._engine is None:
            raise CorpusNotLoadedError("DocumentationService.load() has not been awaited")
        return self._engine

    @property
    def corpus(self) -> CanonicalCorpus:
        if self._corpus is None:
            raise CorpusNotLoadedError("DocumentationService.load() has not been awaited")
        return self._corpus

    def stats(self) -> dict[str, int | bool]:
        return {**self.index.stats(), "loaded_from_cache": self.loaded_from_cache}

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def _prepare(self, domain: SearchDomain | None) -> SearchEngine:
        if domain in (None, "all", "snippets"):
            await self.ensure_snippets_loaded()
        return self.engine

    async def search(self, query: str, domain: SearchDomain = "all", limit: int = 10) -> list[SearchResult]:
        """Ranked search across one or all domains (exact, prefix, keyword, fuzzy)."""
        engine = await self._prepare(domain)
        with track_latency(SEARCH_LATENCY, domain=domain):
            results = engine.search(query, domain, limit)
        logger.debug("search query=%r domain=%s limit=%d -> %d results", query[:100], domain, limit, len(results))
        return results

    async def find_similar(self, query: str, limit: int = 3, domain: SearchDomain | None = None) -> list[str]:
        """Display names of entries resembling ``query``, for "did you mean" prompts."""
        engine = await self._prepare(domain)
        return engine.find_similar(query, limit, domain)

    # ------------------------------------------------------------------
    # Exact lookups
    # ------------------------------------------------------------------

    def query_scripting_api(self, api_call: str) -> ApiMethod | None:
        return self.index.api.get(normalize_query(api_call))

    def query_ui_property(self, component_property: str) -> UIProperty | None:
        return self.index.ui.get(normalize_query(component_property))

    def query_module_parameter(self, module_parameter: str) -> ModuleParameter | None:
        return self.index.modules.get(normalize_query(module_parameter))

    def query_scripting_api_enriched(self, api_call: str) -> EnrichedResult[ApiMethod] | None:
        return self._enrich(self.query_scripting_api(api_call))

    def query_ui_property_enriched(self, component_property: str) -> EnrichedResult[UIProperty] | None:
        return self._enrich(self.query_ui_property(component_property))

    def query_module_parameter_enriched(self, module_parameter: str) -> EnrichedResult[ModuleParameter] | None:
        return self._enrich(self.query_module_parameter(module_parameter))

    def _enrich(self, record: RecordT | None) -> EnrichedResult[RecordT] | None:
        if record is None:
            return None
        return EnrichedResult(
            result=record,
            related=self.get_related_items(record.canonical_id, self.settings.related_limit),
        )

    def get_related_items(self, item_id: str, limit: int = 5) -> list[str]:
        """Display names of items sharing keywords with ``item_id``."""
        return related_items(self.index, item_id, limit)

    # ------------------------------------------------------------------
    # Snippets
    # ------------------------------------------------------------------

    async def list_snippets(
        self,
        category: str | None = None,
        difficulty: Difficulty | None = None,
        tags: Sequence[str] | None = None,
    ) -> list[SnippetSummary]:
        """Snippet summaries, optionally filtered.

        Args:
            category: Case-insensitive category name
            difficulty: Exact difficulty level
            tags: Keep snippets carrying any of these tags (case-insensitive)
        """
        await self.ensure_snippets_loaded()
        snippets: list[CodeSnippet] = list(self.index.snippets.values())

        if category:
            wanted_category = category.lower()
            snippets = [s for s in snippets if s.category.lower() == wanted_category]
        if difficulty:
            snippets = [s for s in snippets if s.difficulty == difficulty]
        if tags:
            wanted_tags = {tag.lower() for tag in tags}
            snippets = [s for s in snippets if any(tag.lower() in wanted_tags for tag in s.tags)]

        return [snippet.summary() for snippet in snippets]

    async def get_snippet(self, snippet_id: str) -> CodeSnippet | None:
        """Look up a snippet by id, falling back to the first partial id/title match."""
        await self.ensure_snippets_loaded()
        snippets = self.index.snippets
        direct = snippets.get(snippet_id)
        if direct is not None:
            return direct

        needle = snippet_id.lower()
        if not needle:
            return None
        for snippet in snippets.values():
            if snippet_id in snippet.id or needle in snippet.title.lower():
                return snippet
        return None

    async def get_snippet_enriched(self, snippet_id: str) -> EnrichedResult[CodeSnippet] | None:
        return self._enrich(await self.get_snippet(snippet_id))

    async def similar_snippet_ids(self, snippet_id: str, limit: int = 3) -> list[str]:
        """Ids of snippets whose id contains ``snippet_id`` or whose title contains it case-insensitively."""
        await self.ensure_snippets_loaded()
        needle = snippet_id.lower()
        matches = (
            snippet.id
            for snippet in self.index.snippets.values()
            if snippet_id in snippet.id or needle in snippet.title.lower()
        )
        return list(islice(matches, limit))

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    def list_ui_components(self) -> list[str]:
        return sorted({prop.component_type for prop in self.corpus.ui})

    def list_scripting_namespaces(self) -> list[str]:
        return sorted({method.namespace for method in self.corpus.api})

    def list_module_types(self) -> list[str]:
        return sorted({param.module_type for param in self.corpus.modules})

