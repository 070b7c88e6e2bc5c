"""Snapshot cache for the canonicalized corpus.

The snapshot stores the canonical api/ui/module records together with the
modification times of the source files they came from. A snapshot is only used
when its schema version and all three mtimes still match; anything else is a cache
miss and the caller rebuilds from the sources. Neither reading nor writing the cache
can fail startup.
"""

from __future__ import annotations

from contextlib import suppress
import logging
from pathlib import Path

import anyio
import orjson
from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from hise_mcp_server.adapters.source_repository import SourceMtimes, SourceRepository
from hise_mcp_server.domain.model import CanonicalCorpus


logger = logging.getLogger(__name__)

CACHE_SCHEMA_VERSION = "2.0"


class SnapshotMtimes(BaseModel):
    ui: int
    api: int
    proc: int

    @classmethod
    def from_sources(cls, mtimes: SourceMtimes) -> SnapshotMtimes:
        return cls(ui=mtimes.ui, api=mtimes.api, proc=mtimes.proc)


class CacheSnapshot(BaseModel):
    """On-disk shape: ``{version, sourceMtimes: {ui, api, proc}, canonicalRecords}``."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    version: str
    source_mtimes: SnapshotMtimes
    canonical_records: CanonicalCorpus


class SnapshotCache:
    """Persist and restore the canonical corpus keyed by source mtimes."""

    def __init__(self, cache_path: Path, sources: SourceRepository, *, enabled: bool = True):
        """Initialize the cache.

        Args:
            cache_path: Location of the snapshot file.
            sources: Repository whose files the snapshot is validated against.
            enabled: When False, ``load`` always misses and ``save`` is a no-op.
        """
        self.cache_path = Path(cache_path)
        self.sources = sources
        self.enabled = enabled

    async def load(self) -> CanonicalCorpus | None:
        """Return the cached corpus, or None when the snapshot is missing or stale."""
        if not self.enabled:
            return None

        try:
            async with await anyio.open_file(self.cache_path, "rb") as fp:
                content = await fp.read()
        except FileNotFoundError:
            logger.info("No corpus cache at %s", self.cache_path)
            return None
        except OSError as exc:
            logger.warning("Failed to read corpus cache %s: %s", self.cache_path, exc)
            return None

        try:
            snapshot = CacheSnapshot.model_validate_json(content)
        except ValidationError as exc:
            logger.warning("Discarding unreadable corpus cache %s: %s", self.cache_path, exc.errors()[0]["msg"])
            return None

        if snapshot.version != CACHE_SCHEMA_VERSION:
            logger.info(
                "Corpus cache invalidated: schema version %s != %s", snapshot.version, CACHE_SCHEMA_VERSION
            )
            return None

        current = SnapshotMtimes.from_sources(self.sources.source_mtimes())
        if snapshot.source_mtimes != current:
            logger.info("Corpus cache invalidated due to data file changes")
            return None

        logger.debug("Corpus cache hit: %d records", snapshot.canonical_records.record_count())
        return snapshot.canonical_records

    async def save(self, corpus: CanonicalCorpus) -> bool:
        """Write a snapshot of ``corpus``.

        Returns:
            True when the snapshot was written, False when caching is disabled or
            the write failed (the failure is logged, never raised).
        """
        if not self.enabled:
            return False

        snapshot = CacheSnapshot(
            version=CACHE_SCHEMA_VERSION,
            source_mtimes=SnapshotMtimes.from_sources(self.sources.source_mtimes()),
            canonical_records=corpus,
        )
        tmp_path = self.cache_path.with_suffix(self.cache_path.suffix + ".tmp")
        try:
            payload = orjson.dumps(snapshot.model_dump(mode="json", by_alias=True))
            self.cache_path.parent.mkdir(parents=True, exist_ok=True)
            async with await anyio.open_file(tmp_path, "wb") as fp:
                await fp.write(payload)
            await anyio.to_thread.run_sync(tmp_path.replace, self.cache_path)
        except (OSError, orjson.JSONEncodeError) as exc:
            logger.warning("Failed to save corpus cache %s: %s", self.cache_path, exc)
            with suppress(OSError):
                tmp_path.unlink(missing_ok=True)
            return False

        logger.debug("Saved corpus cache to %s (%d bytes)", self.cache_path, len(payload))
        return True

    async def clear(self) -> None:
        """Remove the snapshot file if present."""
        await anyio.to_thread.run_sync(lambda: self.cache_path.unlink(missing_ok=True))
