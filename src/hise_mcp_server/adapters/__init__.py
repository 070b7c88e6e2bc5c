"""Adapters layer - access to the raw HISE JSON sources on disk."""

from .source_repository import RawCorpus, SourceMtimes, SourceRepository


__all__ = [
    "RawCorpus",
    "SourceMtimes",
    "SourceRepository",
]
