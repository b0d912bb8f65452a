"""
response_analyzer.exceptions - Custom exception classes.

All Response Analyzer exceptions inherit from ResponseAnalyzerError.
"""

from __future__ import annotations


class ResponseAnalyzerError(Exception):
    """Base exception for all Response Analyzer errors."""

    pass


class ConfigError(ResponseAnalyzerError):
    """Configuration loading or validation error."""

    pass


class ValidationError(ResponseAnalyzerError):
    """Input or environment validation error."""

    pass


class IngestionError(ResponseAnalyzerError):
    """Spreadsheet could not be read."""

    pass


class StateError(ResponseAnalyzerError):
    """Persisted analysis state could not be read or written."""

    pass


class ReportError(ResponseAnalyzerError):
    """Report template rendering error."""

    pass


class CacheIOError(ResponseAnalyzerError):
    """Completion cache persistence error. Never aborts a run."""

    pass


class LLMError(ResponseAnalyzerError):
    """LLM backend or prompt error."""

    pass


class UpstreamRequestError(LLMError):
    """The completion API answered with a non-throttling failure."""

    pass


class RateLimitExhaustedError(LLMError):
    """The completion API kept throttling after all retries."""

    def __init__(self, attempts: int, message: str = ""):
        self.attempts = attempts
        detail = f": {message}" if message else ""
        super().__init__(
            f"LLM request failed after {attempts} attempts: rate limit exceeded{detail}"
        )


class LLMResponseError(LLMError):
    """LLM returned malformed or unexpected response."""

    pass


class BatchProcessingError(LLMError):
    """One or more parallel matching batches failed."""

    def __init__(self, errors: list[Exception]):
        self.errors = list(errors)
        messages = "; ".join(str(e) for e in self.errors)
        super().__init__(f"errors occurred during parallel processing: {messages}")


class AnalysisStageError(ResponseAnalyzerError):
    """A workflow stage failed; the run was aborted."""

    def __init__(self, stage: str, cause: Exception):
        self.stage = stage
        self.cause = cause
        super().__init__(f"failed to {stage}: {cause}")
