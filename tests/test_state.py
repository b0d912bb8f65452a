"""Tests for response_analyzer.state."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest
import yaml

from response_analyzer.analyzer import build_theme_analyses
from response_analyzer.exceptions import StateError
from response_analyzer.models import (
    AnalysisResult,
    ResponseAnalysis,
    ResponseRecord,
    ThemeSummary,
)
from response_analyzer.state import (
    build_audit_log,
    compute_theme_stats,
    load_state,
    save_audit_log,
    save_state,
    save_summary,
    save_theme_stats,
    save_themes,
)


@pytest.fixture
def result() -> AnalysisResult:
    responses = [
        ResponseRecord.from_text("Price too high", 3),
        ResponseRecord.from_text("Bad quality, high price", 2),
        ResponseRecord.from_text("Fine", 5),
    ]
    matched = [["Price"], ["Price", "Quality"], []]
    analyses = {
        r.id: ResponseAnalysis(response=r, themes=t, analyzed=datetime(2024, 5, 1, 10, 0))
        for r, t in zip(responses, matched)
    }
    themes = ["Quality", "Price", "Service"]
    return AnalysisResult(
        themes=themes,
        response_analyses=analyses,
        theme_analyses=build_theme_analyses(analyses, themes),
        theme_summaries={"Price": ThemeSummary(summary="Too pricey.", unique_ideas=["Discounts"])},
        summary="Overall.",
        global_summary="Overall.",
        analysis_timestamp=datetime(2024, 5, 1, 10, 5),
        column_title="Feedback",
    )


class TestStateFile:
    def test_round_trip(self, tmp_path: Path, result: AnalysisResult) -> None:
        path = tmp_path / "out" / "survey.state.yaml"
        save_state(result, path)

        loaded = load_state(path)

        assert loaded == result

    def test_missing_file_returns_none(self, tmp_path: Path) -> None:
        assert load_state(tmp_path / "none.yaml") is None

    def test_invalid_yaml_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "state.yaml"
        path.write_text("themes: [oops\n")
        with pytest.raises(StateError):
            load_state(path)

    def test_invalid_structure_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "state.yaml"
        path.write_text("themes: 5\n")
        with pytest.raises(StateError):
            load_state(path)

    def test_empty_file_is_empty_result(self, tmp_path: Path) -> None:
        path = tmp_path / "state.yaml"
        path.write_text("")
        assert load_state(path).response_analyses == {}


class TestOutputs:
    def test_audit_log_in_row_order(self, result: AnalysisResult) -> None:
        log = build_audit_log(result)
        assert [entry["id"] for entry in log] == ["R2", "R3", "R5"]
        assert log[0] == {
            "id": "R2",
            "text": "Bad quality, high price",
            "themes": ["Price", "Quality"],
            "row_index": 2,
        }

    def test_theme_stats_sorted_by_count(self, result: AnalysisResult) -> None:
        stats = compute_theme_stats(result)
        assert stats == [
            {"theme": "Price", "count": 2, "percentage": 66.67},
            {"theme": "Quality", "count": 1, "percentage": 33.33},
            {"theme": "Service", "count": 0, "percentage": 0.0},
        ]

    def test_theme_stats_empty_result(self) -> None:
        stats = compute_theme_stats(AnalysisResult(themes=["A"]))
        assert stats == [{"theme": "A", "count": 0, "percentage": 0.0}]

    def test_files_written(self, tmp_path: Path, result: AnalysisResult) -> None:
        save_themes(["A", "B"], tmp_path / "themes.yaml")
        save_audit_log(result, tmp_path / "audit.yaml")
        save_theme_stats(result, tmp_path / "theme_stats.yaml")
        save_summary("Overall.", tmp_path / "summary.txt")

        assert yaml.safe_load((tmp_path / "themes.yaml").read_text()) == {"themes": ["A", "B"]}
        assert len(yaml.safe_load((tmp_path / "audit.yaml").read_text())) == 3
        assert yaml.safe_load((tmp_path / "theme_stats.yaml").read_text())[0]["theme"] == "Price"
        assert (tmp_path / "summary.txt").read_text() == "Overall."
