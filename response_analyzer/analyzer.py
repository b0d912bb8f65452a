"""
response_analyzer.analyzer - Incremental analysis workflow.

Each run:
1. Identify themes if none are configured
2. Split responses into unchanged (same id and hash as last run, analysis
   copied verbatim) and dirty (new or edited)
3. Match dirty responses to themes in batches, serially or on a bounded
   worker pool
4. Rebuild theme -> response id lists from all analyses
5. Generate theme and global summaries, or copy them forward when no
   response changed
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any

from response_analyzer.exceptions import (
    AnalysisStageError,
    BatchProcessingError,
    ResponseAnalyzerError,
)
from response_analyzer.llm.prompts import DEFAULT_GLOBAL_SUMMARY_PROMPT
from response_analyzer.models import (
    AnalysisResult,
    ResponseAnalysis,
    ResponseRecord,
    ThemeAnalysis,
    ThemeSummary,
)

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10
LARGE_INPUT_BATCH_SIZE = 20
LARGE_INPUT_THRESHOLD = 100
DEFAULT_WORKERS = 4


def resolve_batch_size(batch_size: int, count: int) -> int:
    """Batch size to use for count dirty responses.

    An explicit positive size wins. Otherwise small inputs go in a single
    batch and large inputs use bigger batches.
    """
    if batch_size > 0:
        return batch_size
    if count > LARGE_INPUT_THRESHOLD:
        return LARGE_INPUT_BATCH_SIZE
    if count < DEFAULT_BATCH_SIZE:
        return max(count, 1)
    return DEFAULT_BATCH_SIZE


def resolve_worker_count(workers: int, count: int, batch_size: int) -> int:
    """Worker pool size; never more workers than batches."""
    if workers > 0:
        return workers
    batches = -(-count // batch_size)
    return max(1, min(DEFAULT_WORKERS, batches))


def split_batches(items: Sequence[Any], batch_size: int) -> list[list[Any]]:
    """Contiguous slices of at most batch_size items."""
    return [list(items[i : i + batch_size]) for i in range(0, len(items), batch_size)]


def partition_responses(
    responses: Sequence[ResponseRecord],
    previous_analyses: Mapping[str, ResponseAnalysis],
) -> tuple[dict[str, ResponseAnalysis], list[ResponseRecord]]:
    """Separate reusable analyses from responses that need matching.

    Returns:
        (analyses reused from the previous run keyed by id, dirty responses in input order)
    """
    reused: dict[str, ResponseAnalysis] = {}
    dirty: list[ResponseRecord] = []
    for response in responses:
        previous = previous_analyses.get(response.id)
        if previous is not None and previous.response.hash == response.hash:
            logger.debug("Reusing previous analysis for %s", response.id)
            reused[response.id] = previous
        else:
            dirty.append(response)
    return reused, dirty


def build_theme_analyses(
    response_analyses: Mapping[str, ResponseAnalysis],
    themes: Sequence[str],
) -> dict[str, ThemeAnalysis]:
    """Theme -> matched response ids, rebuilt from scratch.

    Themes not in the theme list are ignored.
    """
    result = {theme: ThemeAnalysis(theme=theme) for theme in themes}
    for response_id, analysis in response_analyses.items():
        # Each response id is visited once, so deduplicating its themes is enough
        for theme in dict.fromkeys(analysis.themes):
            theme_analysis = result.get(theme)
            if theme_analysis is not None:
                theme_analysis.response_ids.append(response_id)
    return result


def responses_changed(
    previous_analyses: Mapping[str, ResponseAnalysis],
    current_analyses: Mapping[str, ResponseAnalysis],
) -> bool:
    """True if the set of analysed responses differs from the previous run."""
    if len(previous_analyses) != len(current_analyses):
        return True
    for response_id, analysis in current_analyses.items():
        previous = previous_analyses.get(response_id)
        if previous is None or previous.response.hash != analysis.response.hash:
            return True
    return False


def _known_themes(matched: Sequence[str], themes: Sequence[str]) -> list[str]:
    return [theme for theme in themes if theme in matched]


class Analyzer:
    """Orchestrates theme identification, matching and summarization."""

    def __init__(
        self,
        client: Any,
        batch_size: int = DEFAULT_BATCH_SIZE,
        parallel_workers: int = DEFAULT_WORKERS,
        use_parallel: bool = True,
    ) -> None:
        self.client = client
        self.batch_size = batch_size
        self.parallel_workers = parallel_workers
        self.use_parallel = use_parallel

    def identify_themes(self, responses: Sequence[ResponseRecord], context_prompt: str) -> list[str]:
        """Identify themes across all responses."""
        logger.info("Identifying themes in %d responses", len(responses))
        themes = self.client.identify_themes([r.text for r in responses], context_prompt)
        logger.info("Identified %d themes", len(themes))
        return themes

    def _analyses_from_batch(
        self,
        batch: Sequence[ResponseRecord],
        matched: Sequence[list[str]],
        themes: Sequence[str],
    ) -> dict[str, ResponseAnalysis]:
        analyses = {}
        now = datetime.now()
        for i, response in enumerate(batch):
            response_themes = matched[i] if i < len(matched) else []
            analyses[response.id] = ResponseAnalysis(
                response=response,
                themes=_known_themes(response_themes, themes),
                analyzed=now,
            )
        return analyses

    def match_responses_to_themes(
        self,
        responses: Sequence[ResponseRecord],
        themes: Sequence[str],
        context_prompt: str,
        previous_analyses: Mapping[str, ResponseAnalysis],
    ) -> dict[str, ResponseAnalysis]:
        """Match new or changed responses to themes, one batch after another.

        Returns:
            Analyses for every response, keyed by id
        """
        logger.info("Matching %d responses to %d themes", len(responses), len(themes))

        result, dirty = partition_responses(responses, previous_analyses)
        logger.info("New or changed responses: %d", len(dirty))
        if not dirty:
            return result

        batch_size = resolve_batch_size(self.batch_size, len(dirty))
        matched = self.client.match_responses_to_themes_batch(
            [r.text for r in dirty], themes, context_prompt, batch_size
        )
        result.update(self._analyses_from_batch(dirty, matched, themes))

        logger.info("Matched %d responses to themes", len(result))
        return result

    def match_responses_to_themes_parallel(
        self,
        responses: Sequence[ResponseRecord],
        themes: Sequence[str],
        context_prompt: str,
        previous_analyses: Mapping[str, ResponseAnalysis],
        batch_size: int = 0,
        workers: int = 0,
    ) -> dict[str, ResponseAnalysis]:
        """Match new or changed responses to themes on a worker pool.

        Every batch runs to completion. If any batch failed, nothing is
        returned and all failures are reported together.

        Raises:
            BatchProcessingError: If one or more batches failed
        """
        logger.info(
            "Matching %d responses to %d themes in parallel", len(responses), len(themes)
        )

        reused, dirty = partition_responses(responses, previous_analyses)
        logger.info("New or changed responses: %d", len(dirty))
        if not dirty:
            return reused

        batch_size = resolve_batch_size(batch_size, len(dirty))
        workers = resolve_worker_count(workers, len(dirty), batch_size)
        batches = split_batches(dirty, batch_size)

        matched: dict[str, ResponseAnalysis] = {}
        result_lock = threading.Lock()
        errors: list[tuple[int, Exception]] = []
        errors_lock = threading.Lock()
        semaphore = threading.BoundedSemaphore(workers)

        def process_batch(index: int, batch: list[ResponseRecord]) -> None:
            with semaphore:
                logger.debug("Processing batch %d (%d responses)", index, len(batch))
                try:
                    batch_matches = self.client.match_responses_to_themes_batch(
                        [r.text for r in batch], themes, context_prompt, len(batch)
                    )
                except Exception as e:
                    logger.warning("Batch %d failed: %s", index, e)
                    with errors_lock:
                        errors.append((index, e))
                    return

                analyses = self._analyses_from_batch(batch, batch_matches, themes)
                with result_lock:
                    matched.update(analyses)
                logger.debug("Batch %d processed", index)

        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [
                executor.submit(process_batch, index, batch)
                for index, batch in enumerate(batches)
            ]
            for future in futures:
                future.result()

        if errors:
            errors.sort(key=lambda item: item[0])
            raise BatchProcessingError(
                [
                    ResponseAnalyzerError(f"failed to process batch {index}: {error}")
                    for index, error in errors
                ]
            )

        result = dict(reused)
        result.update(matched)
        logger.info("Matched %d responses to themes in parallel", len(result))
        return result

    def _theme_responses(
        self,
        response_analyses: Mapping[str, ResponseAnalysis],
        theme_analysis: ThemeAnalysis,
    ) -> list[str]:
        return [
            response_analyses[response_id].response.text
            for response_id in theme_analysis.response_ids
            if response_id in response_analyses
        ]

    def generate_theme_summaries(
        self,
        response_analyses: Mapping[str, ResponseAnalysis],
        theme_analyses: Mapping[str, ThemeAnalysis],
        themes: Sequence[str],
        theme_summary_prompt: str,
    ) -> dict[str, ThemeSummary]:
        """Summarize every theme that has at least one matched response."""
        logger.info("Generating theme summaries")
        result: dict[str, ThemeSummary] = {}
        for theme in themes:
            analysis = theme_analyses.get(theme)
            if analysis is None or not analysis.response_ids:
                continue
            responses = self._theme_responses(response_analyses, analysis)
            logger.debug("Generating summary for theme %r (%d responses)", theme, len(responses))
            result[theme] = self.client.generate_theme_summary(
                theme, responses, theme_summary_prompt
            )
        logger.info("Generated %d theme summaries", len(result))
        return result

    def generate_global_summary(
        self,
        theme_summaries: Mapping[str, ThemeSummary],
        themes: Sequence[str],
        global_summary_prompt: str,
        summary_length: int,
    ) -> str:
        logger.info("Generating global summary")
        summary = self.client.generate_global_summary(
            theme_summaries, themes, global_summary_prompt, summary_length
        )
        logger.info("Generated global summary (%d chars)", len(summary))
        return summary

    def generate_summary(
        self,
        response_analyses: Mapping[str, ResponseAnalysis],
        theme_analyses: Mapping[str, ThemeAnalysis],
        themes: Sequence[str],
        summary_prompt: str,
        summary_length: int,
    ) -> str:
        """Legacy single-prompt summary over the raw responses of each theme."""
        logger.info("Generating summary")
        theme_responses = {
            theme: self._theme_responses(response_analyses, theme_analyses[theme])
            for theme in themes
            if theme in theme_analyses
        }
        summary = self.client.generate_summary(
            theme_responses, themes, summary_prompt, summary_length
        )
        logger.info("Generated summary (%d chars)", len(summary))
        return summary

    def _run_stage(self, stage: str, func: Any, *args: Any) -> Any:
        try:
            return func(*args)
        except Exception as e:
            raise AnalysisStageError(stage, e) from e

    def analyze_responses(
        self,
        responses: Sequence[ResponseRecord],
        config: Any,
        previous: AnalysisResult | None = None,
        column_title: str = "",
    ) -> AnalysisResult:
        """Run the full incremental workflow.

        Args:
            responses: Responses in input order
            config: AnalyzerConfig (themes, prompts and summary length are read)
            previous: Result of the previous run, if any
            column_title: Header of the analysed column

        Returns:
            A new AnalysisResult. previous is never modified.

        Raises:
            AnalysisStageError: If any stage fails; no partial result is returned
        """
        logger.info("Analyzing %d responses", len(responses))

        themes = list(config.themes)
        if not themes and previous is not None and previous.themes:
            themes = list(previous.themes)
        if not themes:
            themes = self._run_stage(
                "identify themes", self.identify_themes, responses, config.context_prompt
            )

        previous_analyses = previous.response_analyses if previous is not None else {}

        if self.use_parallel:
            response_analyses = self._run_stage(
                "match responses to themes in parallel",
                self.match_responses_to_themes_parallel,
                responses,
                themes,
                config.context_prompt,
                previous_analyses,
                self.batch_size,
                self.parallel_workers,
            )
        else:
            response_analyses = self._run_stage(
                "match responses to themes",
                self.match_responses_to_themes,
                responses,
                themes,
                config.context_prompt,
                previous_analyses,
            )

        # Keep input order in the result mapping
        response_analyses = {
            r.id: response_analyses[r.id] for r in responses if r.id in response_analyses
        }
        theme_analyses = build_theme_analyses(response_analyses, themes)

        result = AnalysisResult(
            themes=themes,
            response_analyses=response_analyses,
            theme_analyses=theme_analyses,
            column_title=column_title,
        )

        changed = responses_changed(previous_analyses, response_analyses)
        if not changed and previous is not None and previous.theme_summaries:
            logger.info(
                "Reusing %d theme summaries from previous result", len(previous.theme_summaries)
            )
            result.theme_summaries = {
                theme: summary.model_copy(deep=True)
                for theme, summary in previous.theme_summaries.items()
            }
            result.global_summary = previous.global_summary
            result.summary = previous.summary
        else:
            self._summarize(result, config)

        logger.info(
            "Analysis completed: %d themes, %d responses, global summary %d chars",
            len(result.themes),
            len(result.response_analyses),
            len(result.global_summary),
        )
        return result

    def _summarize(self, result: AnalysisResult, config: Any) -> None:
        """Fill theme summaries and the global summary according to config."""
        if not result.themes:
            return

        if config.theme_summary_prompt:
            result.theme_summaries = self._run_stage(
                "generate theme summaries",
                self.generate_theme_summaries,
                result.response_analyses,
                result.theme_analyses,
                result.themes,
                config.theme_summary_prompt,
            )

        length = config.global_summary_length
        if length <= 0:
            return

        if config.global_summary_prompt:
            result.global_summary = self._run_stage(
                "generate global summary",
                self.generate_global_summary,
                result.theme_summaries,
                result.themes,
                config.global_summary_prompt,
                length,
            )
        elif config.summary_prompt:
            result.global_summary = self._run_stage(
                "generate summary",
                self.generate_summary,
                result.response_analyses,
                result.theme_analyses,
                result.themes,
                config.summary_prompt,
                length,
            )
        else:
            result.global_summary = self._run_stage(
                "generate global summary",
                self.generate_global_summary,
                result.theme_summaries,
                result.themes,
                DEFAULT_GLOBAL_SUMMARY_PROMPT,
                length,
            )
        result.summary = result.global_summary


def create_analyzer_from_config(client: Any, config: Any) -> Analyzer:
    """Create an Analyzer with the performance settings from AnalyzerConfig."""
    return Analyzer(
        client=client,
        batch_size=config.batch_size,
        parallel_workers=config.parallel_workers,
        use_parallel=config.use_parallel,
    )
