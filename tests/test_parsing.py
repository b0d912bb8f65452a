"""Tests for response_analyzer.llm.parsing."""

from __future__ import annotations

from response_analyzer.llm.parsing import (
    extract_dash_list,
    extract_summary_and_ideas,
    extract_theme_numbers,
    numbers_to_themes,
    parse_batch_results,
    strip_header_markup,
)

THEMES = ["Price", "Quality", "Service"]


class TestExtractDashList:
    def test_ignores_non_bullet_lines(self) -> None:
        text = "Here are the themes:\n- Price\n-  Quality \nnot a theme\n- Service\n"
        assert extract_dash_list(text) == ["Price", "Quality", "Service"]

    def test_strips_leading_header_hashes(self) -> None:
        assert extract_dash_list("## Themes\n## - Price\n") == ["Price"]

    def test_hashes_inside_theme_names_kept(self) -> None:
        text = "- C# tooling\n- Issue #42 follow-up\n"
        assert extract_dash_list(text) == ["C# tooling", "Issue #42 follow-up"]

    def test_skips_empty_bullets(self) -> None:
        assert extract_dash_list("-\n- A\n") == ["A"]

    def test_strip_header_markup(self) -> None:
        assert strip_header_markup("# SUMMARY:\n  ## x #1") == "SUMMARY:\nx #1"


class TestThemeNumbers:
    def test_leading_integers(self) -> None:
        assert extract_theme_numbers("- 1\n- 3 (service)\n- none\n") == [1, 3]

    def test_out_of_range_dropped(self) -> None:
        assert numbers_to_themes([0, 1, 4, 2], THEMES) == ["Price", "Quality"]

    def test_duplicates_dropped(self) -> None:
        assert numbers_to_themes([2, 2, 1], THEMES) == ["Quality", "Price"]


class TestParseBatchResults:
    def test_results_aligned_by_position(self) -> None:
        completion = "RESPONSE 2: 3\nRESPONSE 1: 1, 2\n"
        assert parse_batch_results(completion, 2, THEMES) == [["Price", "Quality"], ["Service"]]

    def test_missing_line_leaves_empty(self) -> None:
        assert parse_batch_results("RESPONSE 1: 1", 3, THEMES) == [["Price"], [], []]

    def test_out_of_range_position_ignored(self) -> None:
        completion = "RESPONSE 0: 1\nRESPONSE 4: 2\nRESPONSE 1: 3"
        assert parse_batch_results(completion, 1, THEMES) == [["Service"]]

    def test_malformed_lines_ignored(self) -> None:
        completion = "Sure!\nRESPONSE one: 1\nRESPONSE 1 1, 2\nRESPONSE 2: x, 2"
        assert parse_batch_results(completion, 2, THEMES) == [[], ["Quality"]]

    def test_out_of_range_theme_numbers_dropped(self) -> None:
        assert parse_batch_results("RESPONSE 1: 0, 2, 9", 1, THEMES) == [["Quality"]]

    def test_bracketed_numbers(self) -> None:
        assert parse_batch_results("RESPONSE 1: [1, 3]", 1, THEMES) == [["Price", "Service"]]

    def test_bold_numbers(self) -> None:
        assert parse_batch_results("RESPONSE 1: **2**, 3", 1, THEMES) == [["Quality", "Service"]]

    def test_header_markup_tolerated(self) -> None:
        completion = "## RESPONSE 1: 1,3"
        assert parse_batch_results(completion, 1, THEMES) == [["Price", "Service"]]


class TestExtractSummaryAndIdeas:
    def test_summary_and_ideas(self) -> None:
        result = extract_summary_and_ideas("SUMMARY:\nFoo bar.\n\nUNIQUE IDEAS:\nIDEA: one\n- two\n")
        assert result.summary == "Foo bar."
        assert result.unique_ideas == ["one", "two"]

    def test_without_ideas_marker(self) -> None:
        result = extract_summary_and_ideas("  Just a summary.  ")
        assert result.summary == "Just a summary."
        assert result.unique_ideas == []

    def test_header_hashes_removed(self) -> None:
        result = extract_summary_and_ideas("# SUMMARY:\nText\n## UNIQUE IDEAS:\nIDEA: a\n")
        assert result.summary == "Text"
        assert result.unique_ideas == ["a"]

    def test_other_lines_in_ideas_ignored(self) -> None:
        result = extract_summary_and_ideas("S\nUNIQUE IDEAS:\nintro\nIDEA: \n- b\n")
        assert result.summary == "S"
        assert result.unique_ideas == ["b"]
