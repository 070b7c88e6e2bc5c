"""Domain layer - canonical records, search value objects and errors.

No infrastructure dependencies: nothing here touches the filesystem or the network.
"""

from hise_mcp_server.domain.errors import CorpusError, CorpusFormatError, CorpusLoadError, CorpusNotLoadedError
from hise_mcp_server.domain.model import (
    ApiMethod,
    ApiParameter,
    CanonicalCorpus,
    CodeSnippet,
    ModuleParameter,
    SnippetSummary,
    UIProperty,
)
from hise_mcp_server.domain.search import CatalogEntry, SearchResult


__all__ = [
    "ApiMethod",
    "ApiParameter",
    "CanonicalCorpus",
    "CatalogEntry",
    "CodeSnippet",
    "CorpusError",
    "CorpusFormatError",
    "CorpusLoadError",
    "CorpusNotLoadedError",
    "ModuleParameter",
    "SearchResult",
    "SnippetSummary",
    "UIProperty",
]
