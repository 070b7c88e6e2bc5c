"""Unit tests for keyword extraction and the similarity scorer."""

import pytest

from hise_mcp_server.search.similarity import (
    KEYWORD_SCORE,
    PREFIX_SCORE,
    SEGMENT_SCORE,
    SUBSTRING_SCORE,
    edit_distance,
    score_similarity,
)
from hise_mcp_server.search.tokenizer import STOPWORDS, extract_keywords


@pytest.mark.unit
class TestExtractKeywords:
    def test_lowercases_and_drops_short_tokens(self) -> None:
        assert extract_keywords("Adds a note-on event", "Synth") == ("adds", "note", "event", "synth")

    def test_drops_stopwords(self) -> None:
        tokens = extract_keywords("The value of this slider should be between these bounds")

        assert tokens == ("value", "slider", "bounds")
        assert not set(tokens) & STOPWORDS

    def test_deduplicates_in_first_occurrence_order(self) -> None:
        assert extract_keywords("gain GAIN filter", "filter gain") == ("gain", "filter")

    def test_no_camel_case_splitting(self) -> None:
        assert extract_keywords("Synth.addNoteOn") == ("synth", "addnoteon")

    def test_none_and_empty_inputs_are_ignored(self) -> None:
        assert extract_keywords(None, "", "midi") == ("midi",)
        assert extract_keywords() == ()

    def test_digits_count_as_word_characters(self) -> None:
        assert extract_keywords("setValue 127 ab 12") == ("setvalue", "127")

    def test_output_is_deterministic(self) -> None:
        text = "Sets the envelope attack time in milliseconds"

        assert extract_keywords(text) == extract_keywords(text)


@pytest.mark.unit
class TestScoreSimilarity:
    ID = "synth.addnoteon"
    KEYWORDS = frozenset({"addnoteon", "adds", "note", "event", "buffer", "synth"})

    def _score(self, query: str) -> float:
        return score_similarity(query, self.ID, self.ID, self.KEYWORDS)

    def test_exact_match_is_terminal(self) -> None:
        assert self._score("synth.addnoteon") == 1.0

    def test_prefix_beats_substring(self) -> None:
        assert self._score("synth.add") == PREFIX_SCORE

    def test_substring(self) -> None:
        assert self._score("addnote") == SUBSTRING_SCORE

    def test_segment_containment(self) -> None:
        assert self._score("synth.addnoton") == SEGMENT_SCORE

    def test_empty_segments_are_ignored(self) -> None:
        assert score_similarity("..", "math.round", "math.round", frozenset()) == 0.0

    def test_keyword_membership(self) -> None:
        assert self._score("buffer overflow") == KEYWORD_SCORE

    def test_no_rule_applies(self) -> None:
        assert self._score("reverb") == 0.0

    def test_empty_query_scores_zero(self) -> None:
        assert self._score("") == 0.0

    def test_scores_are_not_additive(self) -> None:
        # prefix, substring and keyword rules all hold; the best one wins
        assert score_similarity("synth", "synth.addnoteon", "synth.addnoteon", self.KEYWORDS) == PREFIX_SCORE

    def test_display_name_is_also_matched(self) -> None:
        assert score_similarity("round", "math.round", "round", frozenset()) == 1.0


@pytest.mark.unit
class TestEditDistance:
    @pytest.mark.parametrize(
        ("source", "target", "expected"),
        [
            ("", "", 0),
            ("", "abc", 3),
            ("abc", "", 3),
            ("kitten", "sitting", 3),
            ("synth.addnoton", "synth.addnoteon", 1),
            ("same", "same", 0),
        ],
    )
    def test_distance(self, source: str, target: str, expected: int) -> None:
        assert edit_distance(source, target) == expected

    def test_is_symmetric(self) -> None:
        assert edit_distance("flaw", "lawn") == edit_distance("lawn", "flaw") == 2

    def test_early_exit_bound(self) -> None:
        assert edit_distance("a", "abcdef", max_distance=2) == 3
        assert edit_distance("abcdef", "uvwxyz", max_distance=1) == 2
