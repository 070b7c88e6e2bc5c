"""Filesystem access to the raw HISE documentation sources."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Any

import anyio
import orjson

from hise_mcp_server.domain.errors import CorpusLoadError


logger = logging.getLogger(__name__)

UI_PROPERTIES_FILE = "ui_component_properties.json"
SCRIPTING_API_FILE = "scripting_api.json"
PROCESSORS_FILE = "processors.json"
SNIPPETS_FILE = "snippet_dataset.json"


@dataclass(frozen=True)
class SourceMtimes:
    """Modification times (ns) of the eagerly loaded source files; 0 when missing."""

    ui: int
    api: int
    proc: int


@dataclass(frozen=True)
class RawCorpus:
    """Parsed but not yet canonicalized JSON of the three eager sources."""

    ui: Any
    api: Any
    processors: Any


class SourceRepository:
    """Read the four JSON source files from one data directory."""

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)

    @property
    def ui_path(self) -> Path:
        return self.data_dir / UI_PROPERTIES_FILE

    @property
    def api_path(self) -> Path:
        return self.data_dir / SCRIPTING_API_FILE

    @property
    def processors_path(self) -> Path:
        return self.data_dir / PROCESSORS_FILE

    @property
    def snippets_path(self) -> Path:
        return self.data_dir / SNIPPETS_FILE

    def source_mtimes(self) -> SourceMtimes:
        return SourceMtimes(
            ui=self._mtime(self.ui_path),
            api=self._mtime(self.api_path),
            proc=self._mtime(self.processors_path),
        )

    async def read_corpus(self) -> RawCorpus:
        """Read the UI, API and processor sources.

        Raises:
            CorpusLoadError: If any file is missing, unreadable, or not valid JSON.
        """
        ui = await self._read_json(self.ui_path)
        api = await self._read_json(self.api_path)
        processors = await self._read_json(self.processors_path)
        return RawCorpus(ui=ui, api=api, processors=processors)

    async def read_snippets(self) -> Any:
        """Read the snippet dataset.

        Raises:
            CorpusLoadError: If the file is missing, unreadable, or not valid JSON.
        """
        return await self._read_json(self.snippets_path)

    @staticmethod
    def _mtime(path: Path) -> int:
        try:
            return path.stat().st_mtime_ns
        except OSError:
            return 0

    async def _read_json(self, path: Path) -> Any:
        try:
            async with await anyio.open_file(path, "rb") as fp:
                content = await fp.read()
        except FileNotFoundError as exc:
            raise CorpusLoadError(path, "file not found") from exc
        except OSError as exc:
            raise CorpusLoadError(path, f"unreadable ({exc.strerror or exc})") from exc

        try:
            data = orjson.loads(content)
        except orjson.JSONDecodeError as exc:
            raise CorpusLoadError(path, f"invalid JSON ({exc})") from exc

        logger.debug("Read %s (%d bytes)", path.name, len(content))
        return data
