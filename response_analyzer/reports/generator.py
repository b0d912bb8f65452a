"""
response_analyzer.reports.generator - Jinja2-based report renderer.

Renders an analysis result through a user-supplied template, or the
built-in Markdown template when none is configured.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, TemplateError

from response_analyzer.exceptions import ReportError
from response_analyzer.io import write_text
from response_analyzer.models import AnalysisResult
from response_analyzer.state import compute_theme_stats

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"
DEFAULT_TEMPLATE = "report.md.j2"
DEFAULT_COLUMN_TITLE = "Survey Responses"


def prepare_template_data(result: AnalysisResult) -> dict[str, Any]:
    """Flatten an analysis result into template variables."""
    responses = [
        {
            "id": analysis.response.id,
            "text": analysis.response.text,
            "themes": list(analysis.themes),
            "row_index": analysis.response.row_index,
        }
        for analysis in result.ordered_analyses()
    ]

    return {
        "themes": list(result.themes),
        "theme_stats": compute_theme_stats(result),
        "theme_summaries": {
            theme: summary.model_dump() for theme, summary in result.theme_summaries.items()
        },
        "summary": result.summary,
        "global_summary": result.global_summary,
        "responses": responses,
        "response_count": len(responses),
        "analysis_date": result.analysis_timestamp,
        "column_title": result.column_title or DEFAULT_COLUMN_TITLE,
    }


class ReportRenderer:
    """Jinja2 report renderer."""

    def __init__(self, template_path: Path | None = None) -> None:
        if template_path is None:
            template_dir, template_name = DEFAULT_TEMPLATE_DIR, DEFAULT_TEMPLATE
        else:
            template_dir, template_name = template_path.parent, template_path.name

        self.template_name = template_name
        self.env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=False,
            keep_trailing_newline=True,
        )

    def render_string(self, result: AnalysisResult) -> str:
        """Render the report to a string.

        Raises:
            ReportError: If the template is missing or fails to render
        """
        try:
            template = self.env.get_template(self.template_name)
            return template.render(**prepare_template_data(result))
        except TemplateError as e:
            raise ReportError(f"Failed to render template {self.template_name}: {e}") from e

    def render(self, result: AnalysisResult, output_path: Path) -> Path:
        """Render the report to a file.

        Args:
            result: Analysis result to report on
            output_path: Path to write the report

        Returns:
            Path to the generated file
        """
        logger.info("Rendering report %s -> %s", self.template_name, output_path)
        write_text(output_path, self.render_string(result))
        return output_path
