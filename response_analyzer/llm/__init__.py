"""
response_analyzer.llm - LLM client, prompt construction, and output parsing.

- client: completion requests with caching, rate limiting, retry and cost tracking
- prompts: deterministic prompt builders
- parsing: tagged-line extraction from free-text completions
"""

from __future__ import annotations
