"""
response_analyzer.config - YAML config loading, defaults, validation.

Handles loading the analyzer YAML config file, deriving path defaults
relative to the config file, and validating all parameters.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from response_analyzer.exceptions import ConfigError
from response_analyzer.llm.language import SUPPORTED_LANGUAGES

DEFAULT_CONTEXT_PROMPT = (
    "Analyze the following survey responses and identify the main themes or topics discussed."
)


class AnalyzerConfig(BaseModel):
    """Resolved configuration for an analysis run."""

    excel_file_path: str
    response_column: str

    claude_api_key: str = ""
    claude_model: str = "claude-3-opus-20240229"
    context_prompt: str = DEFAULT_CONTEXT_PROMPT
    summary_prompt: str = ""
    global_summary_length: int = Field(default=500, ge=0)

    theme_summary_prompt: str = ""
    global_summary_prompt: str = ""

    output_language: str = "en"

    themes: list[str] = Field(default_factory=list)

    state_file_path: str = ""

    cache_enabled: bool = True
    cache_dir: str = ".cache"
    cache_ttl_hours: float = Field(default=24.0, gt=0.0)

    # milliseconds
    rate_limit_delay: int = Field(default=1000, ge=0)

    batch_size: int = Field(default=10, ge=0)
    parallel_workers: int = Field(default=4, ge=0)
    use_parallel: bool = True

    report_template_path: str = ""
    report_output_path: str = ""

    config_path: Path | None = None

    @field_validator("output_language")
    @classmethod
    def validate_output_language(cls, v: str) -> str:
        v = (v or "en").strip().lower()
        if v not in SUPPORTED_LANGUAGES:
            raise ValueError(f"output_language must be one of: {', '.join(SUPPORTED_LANGUAGES)}")
        return v

    @field_validator("response_column")
    @classmethod
    def validate_response_column(cls, v: str) -> str:
        v = v.strip().upper()
        if not v or not v.isalpha():
            raise ValueError("response_column must be a column letter such as 'C'")
        return v

    @field_validator("themes")
    @classmethod
    def validate_themes(cls, v: list[str]) -> list[str]:
        cleaned: list[str] = []
        for theme in v:
            theme = str(theme).strip()
            if theme and theme not in cleaned:
                cleaned.append(theme)
        return cleaned


def default_state_path(config_path: Path) -> Path:
    """State file beside the config: <stem>.state.yaml."""
    return config_path.with_name(f"{config_path.stem}.state.yaml")


def load_config(path: Path) -> AnalyzerConfig:
    """Load and validate configuration from a YAML file.

    Raises:
        FileNotFoundError: If the config file does not exist
        ConfigError: If the file is not valid YAML or fails validation
    """
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            raw_config = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse config file: {e}") from e

    if not isinstance(raw_config, dict):
        raise ConfigError("Config file must contain a mapping")

    # Accept the older key name for the summary length
    if "summary_length" in raw_config and "global_summary_length" not in raw_config:
        raw_config["global_summary_length"] = raw_config.pop("summary_length")

    merged = {key: value for key, value in raw_config.items() if value is not None}
    merged["config_path"] = path

    try:
        config = AnalyzerConfig(**merged)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}:\n{e}") from e

    if not config.state_file_path:
        config.state_file_path = str(default_state_path(path))

    return config


def create_default_config() -> dict[str, Any]:
    """Create a sample config for a new analysis."""
    return {
        "excel_file_path": "responses.xlsx",
        "response_column": "C",
        "claude_api_key": "your-claude-api-key-here",
        "claude_model": "claude-3-opus-20240229",
        "context_prompt": (
            "Analyze these survey responses about our product. Identify key themes, "
            "issues, and suggestions mentioned by users."
        ),
        "global_summary_length": 1000,
        "theme_summary_prompt": (
            "For this theme, provide a detailed summary of the main points discussed "
            "in the responses and extract any unique ideas or suggestions."
        ),
        "global_summary_prompt": (
            "Based on the theme summaries, provide a comprehensive overview of the survey "
            "responses, highlighting the most important findings across all themes."
        ),
        "output_language": "en",
        "themes": [],
        "cache_enabled": True,
        "cache_dir": ".cache",
        "rate_limit_delay": 1000,
        "batch_size": 10,
        "parallel_workers": 4,
        "use_parallel": True,
    }


def write_config(config: dict[str, Any], path: Path) -> None:
    """Write configuration to a YAML file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(config, f, default_flow_style=False, sort_keys=False, allow_unicode=True)
