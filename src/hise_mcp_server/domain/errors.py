"""Exceptions raised while loading and serving the documentation corpus."""

from __future__ import annotations

from pathlib import Path


class CorpusError(Exception):
    """Base class for corpus failures."""


class CorpusLoadError(CorpusError):
    """A source file is missing, unreadable, or not valid JSON."""

    def __init__(self, path: Path | str, reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Failed to load {self.path.name}: {reason}")


class CorpusFormatError(CorpusError):
    """A source file parsed as JSON but does not have the expected shape."""

    def __init__(self, source: str, detail: str):
        self.source = source
        self.detail = detail
        super().__init__(f"Malformed {source} data: {detail}")


class CorpusNotLoadedError(CorpusError):
    """The documentation service was queried before ``load()`` completed."""
