"""
response_analyzer.reports - Template-based report rendering.
"""

from __future__ import annotations

from response_analyzer.reports.generator import ReportRenderer, prepare_template_data

__all__ = ["ReportRenderer", "prepare_template_data"]
