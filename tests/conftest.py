"""Shared test fixtures: a small HISE corpus written to a temporary data directory."""

import copy
import os
from pathlib import Path
from typing import Any

import orjson
import pytest
import pytest_asyncio

from hise_mcp_server.adapters.source_repository import (
    PROCESSORS_FILE,
    SCRIPTING_API_FILE,
    SNIPPETS_FILE,
    UI_PROPERTIES_FILE,
)
from hise_mcp_server.config import Settings
from hise_mcp_server.domain.model import CanonicalCorpus
from hise_mcp_server.search.index import CorpusIndex, append_snippets, build_index
from hise_mcp_server.service_layer.docs_service import DocumentationService
from hise_mcp_server.services.canonicalizer import canonicalize_corpus, canonicalize_snippets


UI_DATA = {
    "ScriptButton": {
        "filmstripImage": {
            "type": "String",
            "defaultValue": "",
            "description": "The image used for the button filmstrip",
            "options": ["Load new File"],
        },
        "enabled": {
            "type": "bool",
            "defaultValue": True,
            "description": "Enables user interaction with the button",
        },
    },
    "ScriptSlider": {
        "mode": {
            "type": "String",
            "defaultValue": "Linear",
            "description": "The slider value mode",
            "options": ["Frequency", "Decibel", "Linear"],
        },
    },
}

API_DATA = {
    "Synth": [
        {
            "name": "addNoteOn",
            "returnType": "int",
            "arguments": "(int channel, int noteNumber, int velocity, int timeStampSamples)",
            "description": "Adds a note on event to the buffer",
            "example": "Synth.addNoteOn(1, 64, 127, 0);",
        },
        {
            "name": "addNoteOff",
            "arguments": "(int channel, int noteNumber, int timeStampSamples)",
            "description": "Adds a note off event to the buffer",
        },
    ],
    "Math": {
        "0": {
            "name": "round",
            "returnType": "int",
            "arguments": "(var value)",
            "description": "Rounds the value to the next integer",
        },
    },
    "Engine": [
        {
            "name": "getSampleRate",
            "returnType": "double",
            "arguments": "()",
            "description": "Returns the current sample rate",
        },
    ],
}

PROCESSOR_DATA = {
    "SimpleEnvelope": {
        "parameters": {
            "Attack": {
                "min": 0,
                "max": 20000,
                "step": 1,
                "defaultValue": 5,
                "description": "The attack time in milliseconds",
            },
            "Release": {
                "min": 0,
                "max": 20000,
                "step": 1,
                "defaultValue": 10,
                "description": "The release time in milliseconds",
            },
        },
    },
    "SimpleGain": {
        "parameters": {
            "Gain": {"min": -100, "max": 0, "step": 0.1, "defaultValue": 0, "description": "The gain in decibels"},
        },
    },
    "Container": {"id": "no parameters here"},
}

SNIPPET_DATA = [
    {
        "title": "Basic Synth",
        "description": "A simple synthesizer that plays note on events",
        "category": "Modules",
        "tags": ["Featured", "Best Practice"],
        "code": "Synth.addNoteOn(1, 60, 127, 0);\r\nConsole.print(Engine.getSampleRate());\r\n",
        "relatedAPIs": ["Synth.addNoteOn", "Engine.getSampleRate"],
        "relatedComponents": ["ScriptButton"],
        "difficulty": "beginner",
    },
    {
        "title": "MIDI CC Control",
        "description": "Map MIDI controller messages to a slider",
        "category": "MIDI",
        "tags": ["MIDI"],
        "code": "function onController() {}",
        "relatedAPIs": [],
        "relatedComponents": ["ScriptSlider"],
        "difficulty": "advanced",
    },
]


def write_json(path: Path, payload: object) -> None:
    path.write_bytes(orjson.dumps(payload))


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep HISE_* variables and any .env file from leaking into Settings."""
    for key in list(os.environ):
        if key.upper().startswith("HISE_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def hise_data_dir(tmp_path: Path) -> Path:
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    write_json(data_dir / UI_PROPERTIES_FILE, UI_DATA)
    write_json(data_dir / SCRIPTING_API_FILE, API_DATA)
    write_json(data_dir / PROCESSORS_FILE, PROCESSOR_DATA)
    write_json(data_dir / SNIPPETS_FILE, SNIPPET_DATA)
    return data_dir


@pytest.fixture
def raw_sources() -> dict[str, Any]:
    """Fresh copies of the raw source payloads, safe to mutate."""
    return copy.deepcopy({"ui": UI_DATA, "api": API_DATA, "processors": PROCESSOR_DATA, "snippets": SNIPPET_DATA})


@pytest.fixture
def settings(hise_data_dir: Path) -> Settings:
    return Settings(data_dir=hise_data_dir, log_json=False)


@pytest.fixture
def corpus() -> CanonicalCorpus:
    return canonicalize_corpus(UI_DATA, API_DATA, PROCESSOR_DATA)


@pytest.fixture
def base_index(corpus: CanonicalCorpus) -> CorpusIndex:
    return build_index(corpus)


@pytest.fixture
def full_index(base_index: CorpusIndex) -> CorpusIndex:
    return append_snippets(base_index, canonicalize_snippets(SNIPPET_DATA))


@pytest_asyncio.fixture
async def service(settings: Settings) -> DocumentationService:
    docs = DocumentationService(settings)
    await docs.load()
    return docs
