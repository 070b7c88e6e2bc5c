"""Service layer - orchestrates loading, indexing and querying the corpus."""

from .docs_service import DocumentationService


__all__ = [
    "DocumentationService",
]
