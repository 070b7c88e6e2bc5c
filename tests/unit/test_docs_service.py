"""Unit tests for DocumentationService orchestration."""

import asyncio
from pathlib import Path
from typing import Any

import orjson
import pytest

from hise_mcp_server.config import Settings
from hise_mcp_server.domain.errors import CorpusLoadError, CorpusNotLoadedError
from hise_mcp_server.service_layer.docs_service import DocumentationService


@pytest.mark.unit
class TestLoad:
    @pytest.mark.asyncio
    async def test_first_load_builds_from_sources_and_writes_cache(
        self, service: DocumentationService, settings: Settings
    ) -> None:
        assert service.loaded_from_cache is False
        assert settings.cache_path.exists()
        assert service.stats()["catalog_entries"] == 10

    @pytest.mark.asyncio
    async def test_second_load_uses_cache(self, service: DocumentationService, settings: Settings) -> None:
        second = await DocumentationService.create(settings)

        assert second.loaded_from_cache is True
        assert second.stats() == {**service.stats(), "loaded_from_cache": True}

    @pytest.mark.asyncio
    async def test_cache_disabled_always_reads_sources(self, hise_data_dir: Path) -> None:
        settings = Settings(data_dir=hise_data_dir, cache_enabled=False)

        first = await DocumentationService.create(settings)
        second = await DocumentationService.create(settings)

        assert not settings.cache_path.exists()
        assert (first.loaded_from_cache, second.loaded_from_cache) == (False, False)

    @pytest.mark.asyncio
    async def test_missing_source_fails_load(self, settings: Settings) -> None:
        (settings.data_dir / "scripting_api.json").unlink()

        with pytest.raises(CorpusLoadError, match="scripting_api.json"):
            await DocumentationService.create(settings)

    @pytest.mark.asyncio
    async def test_queries_before_load_raise(self, settings: Settings) -> None:
        docs = DocumentationService(settings)

        with pytest.raises(CorpusNotLoadedError):
            await docs.search("Synth.addNoteOn")
        with pytest.raises(CorpusNotLoadedError):
            docs.query_scripting_api("Synth.addNoteOn")
        with pytest.raises(CorpusNotLoadedError):
            docs.list_ui_components()


@pytest.mark.unit
class TestLazySnippets:
    @pytest.mark.asyncio
    async def test_record_domains_do_not_load_snippets(self, service: DocumentationService) -> None:
        await service.search("note", "api")
        await service.find_similar("Synth.addNotOn", 3, "api")
        service.query_scripting_api_enriched("Synth.addNoteOn")

        assert service.index.snippets_loaded is False

    @pytest.mark.asyncio
    async def test_search_all_loads_snippets(self, service: DocumentationService) -> None:
        results = await service.search("note event", "all")

        assert service.index.snippets_loaded is True
        assert "basic-synth" in [r.id for r in results]

    @pytest.mark.asyncio
    async def test_suggestions_without_domain_cover_snippets(self, service: DocumentationService) -> None:
        suggestions = await service.find_similar("midi cc")

        assert service.index.snippets_loaded is True
        assert suggestions == ["MIDI CC Control"]

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_load(
        self, service: DocumentationService, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        calls = 0
        original = service.sources.read_snippets

        async def counting_read() -> Any:
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.01)
            return await original()

        monkeypatch.setattr(service.sources, "read_snippets", counting_read)

        await asyncio.gather(*(service.ensure_snippets_loaded() for _ in range(5)))

        assert calls == 1
        assert len(service.index.snippets) == 2

    @pytest.mark.asyncio
    async def test_failed_load_is_retried(
        self, service: DocumentationService, settings: Settings, raw_sources: dict[str, Any]
    ) -> None:
        snippets_file = settings.data_dir / "snippet_dataset.json"
        snippets_file.unlink()

        with pytest.raises(CorpusLoadError):
            await service.list_snippets()
        assert service.index.snippets_loaded is False
        assert service.index.api

        snippets_file.write_bytes(orjson.dumps(raw_sources["snippets"]))

        assert len(await service.list_snippets()) == 2
        assert service.index.snippets_loaded is True


@pytest.mark.unit
class TestLookups:
    def test_exact_lookup_normalizes_input(self, service: DocumentationService) -> None:
        assert service.query_scripting_api("Math.round()").display_name == "Math.round"
        assert service.query_ui_property("scriptslider.MODE").default_value == "Linear"
        assert service.query_module_parameter(" SimpleGain.Gain ").min == -100
        assert service.query_scripting_api("Synth.addNoteOn*") is None

    def test_enriched_lookup_attaches_related_items(self, service: DocumentationService) -> None:
        enriched = service.query_scripting_api_enriched("Synth.addNoteOn")

        assert enriched is not None
        assert enriched.result.method_name == "addNoteOn"
        assert enriched.related == ["Synth.addNoteOff"]

    def test_enriched_miss_is_none(self, service: DocumentationService) -> None:
        assert service.query_ui_property_enriched("ScriptButton.nope") is None
        assert service.query_module_parameter_enriched("Nope.Attack") is None

    @pytest.mark.asyncio
    async def test_related_limit_comes_from_settings(self, hise_data_dir: Path) -> None:
        docs = await DocumentationService.create(Settings(data_dir=hise_data_dir, related_limit=0))

        assert docs.query_module_parameter_enriched("SimpleEnvelope.Attack").related == []


@pytest.mark.unit
class TestSnippets:
    @pytest.mark.asyncio
    async def test_list_without_filters(self, service: DocumentationService) -> None:
        summaries = await service.list_snippets()

        assert [s.id for s in summaries] == ["basic-synth", "midi-cc-control"]
        assert summaries[0].tags == ["Featured", "Best Practice"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("filters", "expected"),
        [
            ({"category": "midi"}, ["midi-cc-control"]),
            ({"difficulty": "beginner"}, ["basic-synth"]),
            ({"tags": ["featured"]}, ["basic-synth"]),
            ({"tags": ["midi", "best practice"]}, ["basic-synth", "midi-cc-control"]),
            ({"category": "Modules", "difficulty": "advanced"}, []),
            ({"tags": ["reverb"]}, []),
        ],
    )
    async def test_filters(self, service: DocumentationService, filters: dict[str, Any], expected: list[str]) -> None:
        assert [s.id for s in await service.list_snippets(**filters)] == expected

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("snippet_id", "expected"),
        [
            ("basic-synth", "basic-synth"),
            ("cc", "midi-cc-control"),
            ("Basic", "basic-synth"),
            ("reverb", None),
            ("", None),
        ],
    )
    async def test_get_snippet(self, service: DocumentationService, snippet_id: str, expected: str | None) -> None:
        snippet = await service.get_snippet(snippet_id)

        assert (snippet.id if snippet else None) == expected

    @pytest.mark.asyncio
    async def test_get_snippet_enriched(self, service: DocumentationService) -> None:
        enriched = await service.get_snippet_enriched("basic-synth")

        assert enriched is not None
        assert "\r" not in enriched.result.code
        assert enriched.related[:2] == ["Engine.getSampleRate", "ScriptButton"]

    @pytest.mark.asyncio
    async def test_similar_snippet_ids(self, service: DocumentationService) -> None:
        assert await service.similar_snippet_ids("synth") == ["basic-synth"]
        assert await service.similar_snippet_ids("") == ["basic-synth", "midi-cc-control"]
        assert await service.similar_snippet_ids("", 1) == ["basic-synth"]
        assert await service.similar_snippet_ids("reverb") == []


@pytest.mark.unit
class TestListings:
    def test_listings_are_sorted_and_unique(self, service: DocumentationService) -> None:
        assert service.list_ui_components() == ["ScriptButton", "ScriptSlider"]
        assert service.list_scripting_namespaces() == ["Engine", "Math", "Synth"]
        assert service.list_module_types() == ["SimpleEnvelope", "SimpleGain"]
