"""
response_analyzer.state - Persisted analysis state and derived output files.

The state file is the YAML form of an AnalysisResult; the next run reads it
back to reuse unchanged analyses and summaries. The audit log, theme
statistics and summary files are write-only outputs for operators.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from response_analyzer.exceptions import StateError
from response_analyzer.io import read_yaml, write_text, write_yaml
from response_analyzer.models import AnalysisResult

logger = logging.getLogger(__name__)


def save_state(result: AnalysisResult, path: Path) -> None:
    """Write an analysis result to the state file."""
    logger.info("Saving state to %s", path)
    try:
        write_yaml(path, result.model_dump(mode="json"))
    except (OSError, yaml.YAMLError) as e:
        raise StateError(f"Failed to write state file {path}: {e}") from e


def load_state(path: Path) -> AnalysisResult | None:
    """Read an analysis result from the state file.

    Returns:
        The stored result, or None if the file does not exist

    Raises:
        StateError: If the file exists but cannot be parsed
    """
    if not path.exists():
        logger.info("State file does not exist: %s", path)
        return None

    try:
        data = read_yaml(path) or {}
        result = AnalysisResult.model_validate(data)
    except (OSError, yaml.YAMLError, ValidationError) as e:
        raise StateError(f"Failed to load state file {path}: {e}") from e

    logger.info(
        "Loaded previous state: %d themes, %d responses",
        len(result.themes),
        len(result.response_analyses),
    )
    return result


def save_themes(themes: list[str], path: Path) -> None:
    """Write a theme list in the format accepted by the config file."""
    logger.info("Saving %d themes to %s", len(themes), path)
    write_yaml(path, {"themes": list(themes)})


def save_summary(summary: str, path: Path) -> None:
    logger.info("Saving summary to %s", path)
    write_text(path, summary)


def build_audit_log(result: AnalysisResult) -> list[dict[str, Any]]:
    """One entry per response: id, text, matched themes, row."""
    return [
        {
            "id": analysis.response.id,
            "text": analysis.response.text,
            "themes": list(analysis.themes),
            "row_index": analysis.response.row_index,
        }
        for analysis in result.ordered_analyses()
    ]


def save_audit_log(result: AnalysisResult, path: Path) -> None:
    logger.info("Saving audit log to %s", path)
    write_yaml(path, build_audit_log(result))


def compute_theme_stats(result: AnalysisResult) -> list[dict[str, Any]]:
    """Response count and share per theme, most frequent first.

    Ties keep theme-list order.
    """
    total = len(result.response_analyses)
    stats = []
    for theme in result.themes:
        analysis = result.theme_analyses.get(theme)
        count = len(analysis.response_ids) if analysis else 0
        percentage = count / total * 100.0 if total else 0.0
        stats.append({"theme": theme, "count": count, "percentage": round(percentage, 2)})

    stats.sort(key=lambda s: s["count"], reverse=True)
    return stats


def save_theme_stats(result: AnalysisResult, path: Path) -> None:
    logger.info("Saving theme statistics to %s", path)
    write_yaml(path, compute_theme_stats(result))
