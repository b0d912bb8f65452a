"""
response_analyzer.llm.client - LLM client built on litellm.

Cache-first completions with a minimum delay before every request,
exponential backoff on throttling, and process-wide token/cost totals.
Also hosts the domain operations (theme identification, matching,
summaries) that turn analysis requests into prompts and parse the answers.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from response_analyzer.cache import CompletionCache, make_fingerprint
from response_analyzer.exceptions import (
    CacheIOError,
    LLMError,
    LLMResponseError,
    RateLimitExhaustedError,
    UpstreamRequestError,
)
from response_analyzer.llm.language import language_instruction
from response_analyzer.llm.parsing import (
    extract_dash_list,
    extract_summary_and_ideas,
    extract_theme_numbers,
    numbers_to_themes,
    parse_batch_results,
)
from response_analyzer.llm.pricing import calculate_cost
from response_analyzer.llm.prompts import (
    build_batch_match_prompt,
    build_global_summary_prompt,
    build_identify_themes_prompt,
    build_legacy_summary_prompt,
    build_match_prompt,
    build_theme_summary_prompt,
)
from response_analyzer.models import ThemeSummary

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-3-opus-20240229"
DEFAULT_TIMEOUT = 60
DEFAULT_MAX_TOKENS = 4096
DEFAULT_RATE_LIMIT_DELAY = 1.0
DEFAULT_BATCH_SIZE = 10
MAX_RETRIES = 3
TEMPERATURE = 0.7


@dataclass(frozen=True)
class RetryStats:
    """Attempts and total backoff delay of the most recent request."""

    attempts: int = 0
    total_delay: float = 0.0


@dataclass
class UsageTotals:
    """Cumulative usage for the lifetime of a client."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    cost: float = 0.0


def is_rate_limit_error(error: Exception) -> bool:
    """True if an exception from the completion backend means throttling."""
    if getattr(error, "status_code", None) == 429:
        return True
    return "rate limit" in str(error).lower()


class LLMClient:
    """LLM client wrapper with caching, rate limiting and retry logic."""

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        api_key: str | None = None,
        cache: CompletionCache | None = None,
        output_language: str = "en",
        rate_limit_delay: float = DEFAULT_RATE_LIMIT_DELAY,
        timeout: int = DEFAULT_TIMEOUT,
        max_retries: int = MAX_RETRIES,
        completion_fn: Callable[..., Any] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.model = model or DEFAULT_MODEL
        self.api_key = api_key
        self.cache = cache
        self.output_language = output_language
        self.rate_limit_delay = rate_limit_delay
        self.timeout = timeout
        self.max_retries = max_retries
        self._completion_fn = completion_fn
        self._sleep = sleep
        self._usage = UsageTotals()
        self._usage_lock = threading.Lock()
        self._retry_local = threading.local()

    def _get_model_string(self) -> str:
        """Get the model string for litellm."""
        if "/" in self.model:
            return self.model
        if self.model.startswith("claude"):
            return f"anthropic/{self.model}"
        return self.model

    def _get_completion_fn(self) -> Callable[..., Any]:
        if self._completion_fn is not None:
            return self._completion_fn
        try:
            import litellm
        except ImportError as e:
            raise LLMError("litellm not installed. Install with: pip install litellm") from e

        litellm.telemetry = False
        return litellm.completion

    @property
    def language_instruction(self) -> str:
        return language_instruction(self.output_language)

    @property
    def last_retry(self) -> RetryStats:
        """Retry statistics of the last request made from the calling thread."""
        return getattr(self._retry_local, "stats", RetryStats())

    def complete(
        self,
        prompt: str,
        system_prompt: str = "",
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> str:
        """Get a completion, from the cache when possible.

        Args:
            prompt: The user prompt
            system_prompt: Optional system prompt
            max_tokens: Maximum tokens in response

        Returns:
            Completion text

        Raises:
            RateLimitExhaustedError: If throttling persists after all retries
            UpstreamRequestError: If the backend fails for any other reason
            LLMResponseError: If the backend answers without content
        """
        key = make_fingerprint(self.model, system_prompt, max_tokens, prompt)
        if self.cache is not None:
            cached, found = self.cache.get(key)
            if found:
                logger.info("Using cached response")
                return cached

        logger.info(
            "Sending request: model=%s prompt_length=%d system_prompt_length=%d max_tokens=%d",
            self.model,
            len(prompt),
            len(system_prompt),
            max_tokens,
        )

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        response = self._request_with_retry(messages, max_tokens)
        content = self._extract_content(response)
        self._record_usage(response, len(content))

        if self.cache is not None:
            try:
                self.cache.set(key, content)
            except CacheIOError as e:
                logger.warning("Failed to cache response: %s", e)

        return content

    def _request_with_retry(self, messages: list[dict[str, str]], max_tokens: int) -> Any:
        """Issue the request, backing off exponentially while throttled."""
        completion = self._get_completion_fn()

        if self.rate_limit_delay > 0:
            logger.debug("Applying rate limit delay: %.2fs", self.rate_limit_delay)
            self._sleep(self.rate_limit_delay)

        kwargs: dict[str, Any] = {
            "model": self._get_model_string(),
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": TEMPERATURE,
            "timeout": self.timeout,
        }
        if self.api_key:
            kwargs["api_key"] = self.api_key

        total_delay = 0.0
        attempt = 0
        while True:
            attempt += 1
            try:
                response = completion(**kwargs)
            except Exception as e:
                if not is_rate_limit_error(e):
                    self._retry_local.stats = RetryStats(attempt, total_delay)
                    raise UpstreamRequestError(f"LLM request failed: {e}") from e

                if attempt > self.max_retries:
                    self._retry_local.stats = RetryStats(attempt, total_delay)
                    raise RateLimitExhaustedError(attempt, str(e)) from e

                delay = self.rate_limit_delay * (2 ** (attempt - 1))
                logger.warning(
                    "Rate limit exceeded, retrying after backoff: retry=%d/%d delay=%.2fs",
                    attempt,
                    self.max_retries,
                    delay,
                )
                self._sleep(delay)
                total_delay += delay
                continue

            self._retry_local.stats = RetryStats(attempt, total_delay)
            return response

    def _extract_content(self, response: Any) -> str:
        choices = getattr(response, "choices", None)
        if not choices:
            raise LLMResponseError("Empty response from LLM")

        message = getattr(choices[0], "message", None)
        if message is None:
            raise LLMResponseError("No message in LLM response")

        content = getattr(message, "content", None)
        if content is None:
            raise LLMResponseError("No content in LLM message")

        return content

    def _record_usage(self, response: Any, response_length: int) -> None:
        usage = getattr(response, "usage", None)
        input_tokens = getattr(usage, "prompt_tokens", 0) or 0
        output_tokens = getattr(usage, "completion_tokens", 0) or 0
        cost = calculate_cost(self.model, input_tokens, output_tokens)

        with self._usage_lock:
            self._usage.input_tokens += cost.input_tokens
            self._usage.output_tokens += cost.output_tokens
            self._usage.total_tokens += cost.total_tokens
            self._usage.cost += cost.cost
            total_cost = self._usage.cost

        logger.info(
            "Received response: input_tokens=%d output_tokens=%d cost=$%.4f "
            "total_cost=$%.4f response_length=%d",
            cost.input_tokens,
            cost.output_tokens,
            cost.cost,
            total_cost,
            response_length,
        )

    def get_token_usage(self) -> dict[str, int]:
        """Get cumulative token usage."""
        with self._usage_lock:
            return {
                "prompt_tokens": self._usage.input_tokens,
                "completion_tokens": self._usage.output_tokens,
                "total_tokens": self._usage.total_tokens,
            }

    def get_total_cost(self) -> float:
        with self._usage_lock:
            return self._usage.cost

    def get_total_tokens(self) -> int:
        with self._usage_lock:
            return self._usage.total_tokens

    def reset_token_usage(self) -> None:
        """Reset token and cost counters."""
        with self._usage_lock:
            self._usage = UsageTotals()

    # Domain operations

    def identify_themes(self, responses: Sequence[str], context_prompt: str = "") -> list[str]:
        """Ask the model for the main themes in a set of responses."""
        prompt = build_identify_themes_prompt(responses, self.language_instruction)
        completion = self.complete(prompt, context_prompt)
        themes = extract_dash_list(completion)
        logger.info("Identified %d themes", len(themes))
        return themes

    def match_response_to_themes(
        self,
        response: str,
        themes: Sequence[str],
        context_prompt: str = "",
    ) -> list[str]:
        """Match one response to themes. Out-of-range numbers are dropped."""
        prompt = build_match_prompt(response, themes)
        completion = self.complete(prompt, context_prompt)
        matched = numbers_to_themes(extract_theme_numbers(completion), themes)
        logger.debug("Matched response to themes: %s", matched)
        return matched

    def match_responses_to_themes_batch(
        self,
        responses: Sequence[str],
        themes: Sequence[str],
        context_prompt: str = "",
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> list[list[str]]:
        """Match responses to themes, one request per contiguous batch.

        Returns:
            Theme lists aligned with responses
        """
        if batch_size <= 0:
            batch_size = DEFAULT_BATCH_SIZE

        results: list[list[str]] = []
        for start in range(0, len(responses), batch_size):
            batch = responses[start : start + batch_size]
            prompt = build_batch_match_prompt(batch, themes)
            try:
                completion = self.complete(prompt, context_prompt)
            except LLMError:
                logger.error("Failed to process batch %d-%d", start, start + len(batch))
                raise
            results.extend(parse_batch_results(completion, len(batch), themes))

        return results

    def generate_theme_summary(
        self,
        theme: str,
        responses: Sequence[str],
        theme_summary_prompt: str = "",
    ) -> ThemeSummary:
        """Summarize one theme and extract its unique ideas."""
        prompt = build_theme_summary_prompt(theme, responses, self.language_instruction)
        completion = self.complete(prompt, theme_summary_prompt)
        return extract_summary_and_ideas(completion)

    def generate_global_summary(
        self,
        theme_summaries: Mapping[str, ThemeSummary],
        themes: Sequence[str],
        global_summary_prompt: str,
        summary_length: int,
    ) -> str:
        """Synthesize the theme summaries into one global summary."""
        prompt = build_global_summary_prompt(
            theme_summaries, themes, summary_length, self.language_instruction
        )
        return self.complete(prompt, global_summary_prompt).strip()

    def generate_summary(
        self,
        theme_responses: Mapping[str, Sequence[str]],
        themes: Sequence[str],
        summary_prompt: str,
        summary_length: int,
    ) -> str:
        """Single-prompt summary over the raw responses of every theme."""
        prompt = build_legacy_summary_prompt(
            theme_responses, themes, summary_length, self.language_instruction
        )
        return self.complete(prompt, summary_prompt).strip()


def create_client_from_config(config: Any, cache: CompletionCache | None = None) -> LLMClient:
    """Create LLM client from AnalyzerConfig.

    Args:
        config: AnalyzerConfig instance
        cache: Optional completion cache

    Returns:
        Configured LLMClient
    """
    return LLMClient(
        model=config.claude_model,
        api_key=config.claude_api_key or os.environ.get("ANTHROPIC_API_KEY"),
        cache=cache,
        output_language=config.output_language,
        rate_limit_delay=config.rate_limit_delay / 1000.0,
    )
