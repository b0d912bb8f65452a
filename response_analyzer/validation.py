"""
response_analyzer.validation - Pre-flight checks before an analysis run.

Validates input files, credentials and output directories so that a run
fails before any API call is made.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from response_analyzer.config import AnalyzerConfig
from response_analyzer.exceptions import IngestionError, ValidationError
from response_analyzer.ingest import validate_excel_file

logger = logging.getLogger(__name__)


def resolve_path(value: str, config: AnalyzerConfig) -> Path:
    """Resolve a config path relative to the config file's directory."""
    path = Path(value).expanduser()
    if path.is_absolute() or config.config_path is None:
        return path
    return config.config_path.parent / path


def _ensure_directory(path: Path, label: str) -> None:
    if path.exists():
        return
    logger.info("Creating %s directory: %s", label, path)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ValidationError(f"Failed to create {label} directory {path}: {e}") from e


def validate_config(config: AnalyzerConfig) -> None:
    """Check that everything the run needs is in place.

    Creates missing cache, state and report directories. A cache directory
    that cannot be created only logs a warning.

    Raises:
        ValidationError: On the first failed check
    """
    logger.info("Validating configuration")

    excel_path = resolve_path(config.excel_file_path, config)
    if not excel_path.exists():
        raise ValidationError(f"Excel file does not exist: {excel_path}")

    if not config.response_column:
        raise ValidationError("response_column is required")

    if not config.claude_api_key and not os.environ.get("ANTHROPIC_API_KEY"):
        raise ValidationError("claude_api_key is required (or set ANTHROPIC_API_KEY)")

    try:
        validate_excel_file(excel_path, config.response_column)
    except IngestionError as e:
        raise ValidationError(f"Excel file validation failed: {e}") from e

    if config.report_template_path:
        template_path = resolve_path(config.report_template_path, config)
        if not template_path.exists():
            raise ValidationError(f"report template file does not exist: {template_path}")

    if config.cache_enabled and config.cache_dir:
        try:
            _ensure_directory(resolve_path(config.cache_dir, config), "cache")
        except ValidationError as e:
            logger.warning("%s; completions will be cached in memory only", e)

    if config.state_file_path:
        _ensure_directory(resolve_path(config.state_file_path, config).parent, "state file")

    if config.report_output_path:
        _ensure_directory(resolve_path(config.report_output_path, config).parent, "report output")

    logger.info("Configuration validation successful")
