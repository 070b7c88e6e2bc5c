"""Stateless transforms and persistence helpers used by the service layer."""

from .cache_service import SnapshotCache
from .canonicalizer import canonicalize_corpus, canonicalize_snippets


__all__ = [
    "SnapshotCache",
    "canonicalize_corpus",
    "canonicalize_snippets",
]
