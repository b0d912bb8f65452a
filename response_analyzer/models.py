"""
response_analyzer.models - Data model for responses and analysis results.

AnalysisResult is the aggregate root. It is rebuilt on every run, but its
response analyses and theme summaries may be inherited from a prior result.
"""

from __future__ import annotations

import hashlib
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


def compute_text_hash(text: str) -> str:
    """SHA-256 hex digest of a response text, used for change detection."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class ResponseRecord(BaseModel):
    """A single survey response as read from the spreadsheet."""

    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    row_index: int = 0
    hash: str = ""

    @classmethod
    def from_text(cls, text: str, row_index: int) -> ResponseRecord:
        """Build a record whose id is derived from its spreadsheet row."""
        return cls(
            id=f"R{row_index}",
            text=text,
            row_index=row_index,
            hash=compute_text_hash(text),
        )


class ResponseAnalysis(BaseModel):
    """Themes matched to one response, and when that happened."""

    response: ResponseRecord
    themes: list[str] = Field(default_factory=list)
    analyzed: datetime = Field(default_factory=datetime.now)


class ThemeAnalysis(BaseModel):
    """Response ids that matched a theme, in input order."""

    theme: str
    response_ids: list[str] = Field(default_factory=list)


class ThemeSummary(BaseModel):
    """Summary text and unique ideas generated for one theme."""

    summary: str = ""
    unique_ideas: list[str] = Field(default_factory=list)


class AnalysisResult(BaseModel):
    """Result of one analysis run."""

    themes: list[str] = Field(default_factory=list)
    response_analyses: dict[str, ResponseAnalysis] = Field(default_factory=dict)
    theme_analyses: dict[str, ThemeAnalysis] = Field(default_factory=dict)
    theme_summaries: dict[str, ThemeSummary] = Field(default_factory=dict)
    # Legacy field name, kept equal to global_summary
    summary: str = ""
    global_summary: str = ""
    # Legacy field, read from old state files but never populated
    unique_ideas: list[str] = Field(default_factory=list)
    analysis_timestamp: datetime = Field(default_factory=datetime.now)
    column_title: str = ""

    def ordered_analyses(self) -> list[ResponseAnalysis]:
        """Response analyses sorted by spreadsheet row."""
        return sorted(
            self.response_analyses.values(),
            key=lambda a: (a.response.row_index, a.response.id),
        )
