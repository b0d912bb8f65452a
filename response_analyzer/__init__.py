"""
Response Analyzer - incremental LLM analysis of free-text survey responses.

Reads a spreadsheet column of responses and produces theme-grouped summaries
through a staged workflow: theme identification → response-to-theme
matching → theme summaries → global summary. Unchanged responses and
completions are reused across runs.
"""

__version__ = "0.1.0"
