"""
Test configuration and shared fixtures.
"""

from __future__ import annotations

import re
import threading
from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest
import yaml

from response_analyzer.config import AnalyzerConfig
from response_analyzer.models import ResponseRecord

THEMES = ["Price", "Quality", "Service"]

_RESPONSE_LINE = re.compile(r"^RESPONSE (\d+): (.*)$")


def make_completion(text: str, prompt_tokens: int = 100, completion_tokens: int = 20) -> Any:
    """Build an object shaped like a litellm ModelResponse."""
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=text))],
        usage=SimpleNamespace(prompt_tokens=prompt_tokens, completion_tokens=completion_tokens),
    )


class ThrottleError(Exception):
    """Stand-in for a 429 from the completion API."""

    status_code = 429


class FakeBackend:
    """Deterministic stand-in for litellm.completion.

    Answers each kind of analysis prompt in the expected tagged-line format.
    Responses are matched to themes by keyword.
    """

    def __init__(self, themes: list[str] | None = None) -> None:
        self.themes = themes or list(THEMES)
        self.calls: list[dict[str, Any]] = []
        self._lock = threading.Lock()

    @property
    def prompts(self) -> list[str]:
        return [call["messages"][-1]["content"] for call in self.calls]

    def __call__(self, **kwargs: Any) -> Any:
        with self._lock:
            self.calls.append(kwargs)
        prompt = kwargs["messages"][-1]["content"]
        return make_completion(self.answer(prompt))

    def match_numbers(self, text: str) -> list[int]:
        lowered = text.lower()
        return [i for i, theme in enumerate(self.themes, start=1) if theme.lower() in lowered]

    def answer(self, prompt: str) -> str:
        if prompt.startswith("Identify main themes"):
            return "Here are the themes:\n" + "".join(f"- {t}\n" for t in self.themes)

        if prompt.startswith("Analyze multiple survey responses"):
            lines = []
            for line in prompt.splitlines():
                match = _RESPONSE_LINE.match(line)
                if not match or match.group(2).startswith("[comma-separated"):
                    continue
                numbers = self.match_numbers(match.group(2))
                lines.append(f"RESPONSE {match.group(1)}: {', '.join(map(str, numbers))}")
            return "\n".join(lines)

        if prompt.startswith("Theme: "):
            theme = prompt.split("\n", 1)[0][len("Theme: ") :]
            return (
                f"# SUMMARY:\nPeople talk about {theme.lower()}.\n\n"
                f"UNIQUE IDEAS:\nIDEA: {theme} idea one\n- {theme} idea two\n"
            )

        if prompt.startswith("Theme summaries from survey responses"):
            return "Global summary of all themes."

        if prompt.startswith("Here are the themes and their associated responses"):
            return "Legacy summary."

        return "- 1"


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def sample_responses() -> list[ResponseRecord]:
    """Five responses covering every theme, one matching none."""
    texts = [
        "The price is far too high for what you get.",
        "Quality has gone down since last year.",
        "Customer service answered quickly and was friendly.",
        "Good quality but the price hurts.",
        "I have nothing else to add.",
    ]
    return [ResponseRecord.from_text(text, row) for row, text in enumerate(texts, start=2)]


@pytest.fixture
def base_config() -> AnalyzerConfig:
    return AnalyzerConfig(
        excel_file_path="responses.xlsx",
        response_column="C",
        claude_api_key="test-key",
        themes=list(THEMES),
        theme_summary_prompt="Summarize this theme.",
        global_summary_prompt="Summarize everything.",
        global_summary_length=500,
        rate_limit_delay=0,
    )


@pytest.fixture
def sample_config_dict() -> dict:
    """Return a sample configuration dictionary."""
    return {
        "excel_file_path": "responses.xlsx",
        "response_column": "c",
        "claude_api_key": "test-key",
        "claude_model": "claude-3-haiku-20240307",
        "context_prompt": "Survey about our product.",
        "theme_summary_prompt": "Summarize this theme.",
        "global_summary_prompt": "Summarize everything.",
        "global_summary_length": 800,
        "output_language": "de-ch",
        "themes": ["Price", "Quality", "Service"],
        "cache_enabled": True,
        "cache_dir": ".cache",
        "rate_limit_delay": 0,
        "batch_size": 2,
        "parallel_workers": 2,
        "use_parallel": True,
    }


@pytest.fixture
def write_xlsx():
    """Write rows to a one-sheet workbook and return its path."""
    from openpyxl import Workbook

    def _write(path: Path, rows: list[list[Any]]) -> Path:
        wb = Workbook()
        ws = wb.active
        for row in rows:
            ws.append(row)
        wb.save(path)
        return path

    return _write


@pytest.fixture
def tmp_analysis(tmp_path: Path, sample_config_dict: dict, write_xlsx) -> Path:
    """A directory with a config file and a matching workbook. Returns the config path."""
    write_xlsx(
        tmp_path / "responses.xlsx",
        [
            ["Timestamp", "Name", "What do you think?"],
            ["2024-01-01", "Ann", "The price is far too high."],
            ["2024-01-02", "Ben", "Quality has gone down."],
            ["2024-01-03", "Cy", None],
            ["2024-01-04", "Di", "Service was friendly, quality fine."],
        ],
    )
    config_path = tmp_path / "survey.yaml"
    with open(config_path, "w") as f:
        yaml.dump(sample_config_dict, f)
    return config_path
