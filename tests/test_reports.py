"""Tests for response_analyzer.reports."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest

from response_analyzer.analyzer import build_theme_analyses
from response_analyzer.exceptions import ReportError
from response_analyzer.models import AnalysisResult, ResponseAnalysis, ResponseRecord, ThemeSummary
from response_analyzer.reports import ReportRenderer, prepare_template_data


@pytest.fixture
def result() -> AnalysisResult:
    record = ResponseRecord.from_text("Too expensive", 2)
    analyses = {record.id: ResponseAnalysis(response=record, themes=["Price"])}
    themes = ["Price", "Service"]
    return AnalysisResult(
        themes=themes,
        response_analyses=analyses,
        theme_analyses=build_theme_analyses(analyses, themes),
        theme_summaries={"Price": ThemeSummary(summary="Costs worry people.", unique_ideas=["Coupons"])},
        summary="Price dominates.",
        global_summary="Price dominates.",
        analysis_timestamp=datetime(2024, 3, 4, 15, 30),
    )


class TestPrepareTemplateData:
    def test_fields(self, result: AnalysisResult) -> None:
        data = prepare_template_data(result)
        assert data["column_title"] == "Survey Responses"
        assert data["response_count"] == 1
        assert data["responses"][0]["themes"] == ["Price"]
        assert data["theme_summaries"]["Price"]["unique_ideas"] == ["Coupons"]
        assert data["theme_stats"][0] == {"theme": "Price", "count": 1, "percentage": 100.0}

    def test_column_title_from_result(self, result: AnalysisResult) -> None:
        result.column_title = "Feedback"
        assert prepare_template_data(result)["column_title"] == "Feedback"


class TestReportRenderer:
    def test_default_template(self, result: AnalysisResult) -> None:
        text = ReportRenderer().render_string(result)
        assert text.startswith("# Survey Responses")
        assert "Analysis date: 2024-03-04 15:30" in text
        assert "| Price | 1 | 100.0% |" in text
        assert "Price dominates." in text
        assert "### Price" in text
        assert "- Coupons" in text
        assert "### Service" not in text

    def test_custom_template(self, tmp_path: Path, result: AnalysisResult) -> None:
        template = tmp_path / "report.txt.j2"
        template.write_text("{{ themes|join(', ') }} / {{ summary }}")
        output = tmp_path / "out" / "report.txt"

        ReportRenderer(template).render(result, output)

        assert output.read_text() == "Price, Service / Price dominates."

    def test_missing_template(self, tmp_path: Path, result: AnalysisResult) -> None:
        with pytest.raises(ReportError):
            ReportRenderer(tmp_path / "missing.j2").render_string(result)

    def test_broken_template(self, tmp_path: Path, result: AnalysisResult) -> None:
        template = tmp_path / "broken.j2"
        template.write_text("{% for x in %}")
        with pytest.raises(ReportError):
            ReportRenderer(template).render_string(result)
