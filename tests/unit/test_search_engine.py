"""Unit tests for the staged search engine and suggestions."""

import pytest

from hise_mcp_server.search.engine import SearchEngine, compile_wildcard, normalize_query
from hise_mcp_server.search.index import CorpusIndex


@pytest.fixture
def engine(full_index: CorpusIndex) -> SearchEngine:
    return SearchEngine(full_index)


@pytest.mark.unit
class TestNormalizeQuery:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("Synth.addNoteOn", "synth.addnoteon"),
            ("  Math.round()  ", "math.round"),
            ("Synth.addNoteOn(1, 60, 127, 0)", "synth.addnoteon"),
            ("Synth.*", "synth.*"),
            ("()", ""),
            ("   ", ""),
            ("Synth.addNoteOn(a) ()", "synth.addnoteon"),
            ("a() ()", "a"),
        ],
    )
    def test_normalize(self, raw: str, expected: str) -> None:
        assert normalize_query(raw) == expected

    @pytest.mark.parametrize(
        "raw",
        ["Synth.addNoteOn(a)", "  X.y()  ", "f(g(h))", "Engine.*", "MIDI note", "Synth.addNoteOn(a) ()", "a() ()"],
    )
    def test_idempotent(self, raw: str) -> None:
        once = normalize_query(raw)

        assert normalize_query(once) == once


@pytest.mark.unit
class TestCompileWildcard:
    def test_star_matches_any_run(self) -> None:
        regex = compile_wildcard("synth.*")

        assert regex is not None
        assert regex.match("synth.addnoteon")
        assert not regex.match("engine.synth.x")

    def test_other_metacharacters_are_literal(self) -> None:
        regex = compile_wildcard("a.b*")

        assert regex.match("a.bc")
        assert not regex.match("axbc")

    def test_brackets_and_parens_do_not_break_compilation(self) -> None:
        regex = compile_wildcard("foo[(+*")

        assert regex is not None
        assert regex.match("foo[(+bar")

    def test_match_is_case_insensitive_and_anchored(self) -> None:
        regex = compile_wildcard("*.setvalue")

        assert regex.match("Knob.setValue")
        assert not regex.match("knob.setvalueX")


@pytest.mark.unit
class TestSearchStages:
    def test_exact_match_scores_one(self, engine: SearchEngine) -> None:
        results = engine.search("Synth.addNoteOn", "api")

        assert results[0].id == "synth.addnoteon"
        assert results[0].score == 1.0
        assert results[0].match_type == "exact"
        assert results[0].display_name == "Synth.addNoteOn"

    def test_exact_match_ignores_call_syntax(self, engine: SearchEngine) -> None:
        for query in ("Math.round()", "Math.round(value)", "  MATH.ROUND "):
            assert engine.search(query, "api", 1)[0].id == "math.round"

    def test_exact_stage_is_followed_by_keyword_matches(self, engine: SearchEngine) -> None:
        results = engine.search("Synth.addNoteOn", "api")

        assert [(r.id, r.match_type) for r in results] == [
            ("synth.addnoteon", "exact"),
            ("synth.addnoteoff", "keyword"),
        ]
        assert results[1].score == pytest.approx(0.55)

    def test_wildcard_prefix(self, engine: SearchEngine) -> None:
        results = engine.search("Synth.*", "api")

        assert [r.id for r in results] == ["synth.addnoteon", "synth.addnoteoff"]
        assert {r.match_type for r in results} == {"prefix"}
        assert {r.score for r in results} == {0.9}

    def test_wildcard_suffix(self, engine: SearchEngine) -> None:
        results = engine.search("*.mode")

        assert results[0].id == "scriptslider.mode"
        assert results[0].match_type == "prefix"

    def test_wildcard_falls_through_to_keyword_stage_when_short_of_limit(self) -> None:
        from hise_mcp_server.domain.model import ApiMethod, CanonicalCorpus
        from hise_mcp_server.search.index import build_index

        corpus = CanonicalCorpus(
            api=[
                ApiMethod(namespace="Synth", method_name="addNoteOn"),
                ApiMethod(namespace="Engine", method_name="getVoices", description="Returns the voices of the synth"),
            ]
        )
        results = SearchEngine(build_index(corpus)).search("Synth.*", "api", 10)

        assert [(r.id, r.match_type) for r in results] == [
            ("synth.addnoteon", "prefix"),
            ("engine.getvoices", "keyword"),
        ]

    def test_wildcard_with_metacharacters_never_raises(self, engine: SearchEngine) -> None:
        results = engine.search("Synth.(*")

        assert results
        assert all(r.match_type == "keyword" for r in results)

    def test_keyword_coverage_score(self, engine: SearchEngine) -> None:
        results = engine.search("note event", "api")

        assert [r.id for r in results] == ["synth.addnoteon", "synth.addnoteoff"]
        assert all(r.match_type == "keyword" and r.score == pytest.approx(0.8) for r in results)

    def test_partial_keyword_coverage_ranks_lower(self, engine: SearchEngine) -> None:
        results = engine.search("note event", "all")

        assert [r.id for r in results] == ["synth.addnoteon", "synth.addnoteoff", "basic-synth"]
        assert results[2].score == pytest.approx(0.55)

    def test_fuzzy_substring(self, engine: SearchEngine) -> None:
        results = engine.search("addnote", "api")

        assert [(r.id, r.match_type) for r in results] == [
            ("synth.addnoteon", "fuzzy"),
            ("synth.addnoteoff", "fuzzy"),
        ]
        assert results[0].score == pytest.approx(0.6)

    def test_domain_filter_applies_to_every_stage(self, engine: SearchEngine) -> None:
        assert engine.search("button", "api") == []
        assert {r.domain for r in engine.search("button", "ui")} == {"ui"}
        assert engine.search("*", "modules", 50) and all(
            r.domain == "modules" for r in engine.search("*", "modules", 50)
        )

    def test_limit_is_strict(self, engine: SearchEngine) -> None:
        results = engine.search("*", "all", 3)

        assert [r.id for r in results] == ["scriptbutton.filmstripimage", "scriptbutton.enabled", "scriptslider.mode"]

    def test_same_id_in_two_domains_yields_two_exact_hits(self) -> None:
        from hise_mcp_server.domain.model import ApiMethod, CanonicalCorpus, UIProperty
        from hise_mcp_server.search.index import build_index

        corpus = CanonicalCorpus(
            api=[ApiMethod(namespace="Panel", method_name="data")],
            ui=[UIProperty(component_type="Panel", property_name="data")],
        )
        results = SearchEngine(build_index(corpus)).search("Panel.data")

        assert [(r.domain, r.match_type) for r in results] == [("api", "exact"), ("ui", "exact")]

    @pytest.mark.parametrize("query", ["", "   ", "()"])
    def test_empty_query_returns_nothing(self, engine: SearchEngine, query: str) -> None:
        assert engine.search(query) == []

    def test_non_positive_limit_returns_nothing(self, engine: SearchEngine) -> None:
        assert engine.search("Synth.addNoteOn", "all", 0) == []

    def test_unknown_text_returns_nothing(self, engine: SearchEngine) -> None:
        assert engine.search("zzzzqqq") == []
        assert engine.search("xyznonexistent123", "all", 10) == []

    def test_case_insensitive(self, engine: SearchEngine) -> None:
        upper = engine.search("SYNTH.ADDNOTEON", "all", 5)
        lower = engine.search("synth.addnoteon", "all", 5)

        assert upper[0] == lower[0]
        assert upper[0].match_type == "exact"

    @pytest.mark.parametrize(
        "record_id", ["ScriptSlider.mode", "Math.round", "SimpleGain.Gain", "Engine.getSampleRate"]
    )
    def test_every_known_id_ranks_itself_first(self, engine: SearchEngine, record_id: str) -> None:
        top = engine.search(record_id, "all", 1)[0]

        assert (top.display_name, top.score, top.match_type) == (record_id, 1.0, "exact")

    @pytest.mark.parametrize(
        ("query", "domain"),
        [("Synth.*", "all"), ("note", "all"), ("slider", "all"), ("add", "api"), ("time", "modules"), ("*", "all")],
    )
    def test_results_are_sorted_bounded_and_unique(self, engine: SearchEngine, query: str, domain: str) -> None:
        results = engine.search(query, domain, 4)
        scores = [r.score for r in results]

        assert len(results) <= 4
        assert scores == sorted(scores, reverse=True)
        assert all(0.0 <= s <= 1.0 for s in scores)
        assert len({(r.domain, r.id) for r in results}) == len(results)


@pytest.mark.unit
class TestFindSimilar:
    def test_typo_suggests_closest_spelling_first(self, engine: SearchEngine) -> None:
        suggestions = engine.find_similar("Synth.addNotOn", 5, "api")

        assert suggestions == ["Synth.addNoteOn", "Synth.addNoteOff"]

    def test_returns_display_names_across_domains(self, engine: SearchEngine) -> None:
        suggestions = engine.find_similar("slider", 5)

        assert "ScriptSlider.mode" in suggestions
        assert "MIDI CC Control" in suggestions

    def test_limit_and_threshold(self, engine: SearchEngine) -> None:
        assert len(engine.find_similar("simple", 1, "modules")) == 1
        assert engine.find_similar("zzzzqqq", 5) == []

    def test_empty_query(self, engine: SearchEngine) -> None:
        assert engine.find_similar("   ") == []
