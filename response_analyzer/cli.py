"""
response_analyzer.cli - Typer CLI entry point.

Provides the analyze, themes, cache-clear and init-config commands.
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from response_analyzer import __version__
from response_analyzer.analyzer import create_analyzer_from_config
from response_analyzer.cache import CompletionCache
from response_analyzer.config import AnalyzerConfig, create_default_config, load_config, write_config
from response_analyzer.exceptions import ResponseAnalyzerError, StateError
from response_analyzer.ingest import read_responses
from response_analyzer.llm.client import LLMClient, create_client_from_config
from response_analyzer.logging import configure_logging, logger
from response_analyzer.models import AnalysisResult
from response_analyzer.reports import ReportRenderer
from response_analyzer.state import (
    compute_theme_stats,
    load_state,
    save_audit_log,
    save_state,
    save_summary,
    save_theme_stats,
    save_themes,
)
from response_analyzer.validation import resolve_path, validate_config

app = typer.Typer(
    name="response-analyzer",
    help="Theme analysis of free-text survey responses.\n\n"
    "Identifies themes, matches every response to them and summarizes each theme "
    "with an LLM. Unchanged responses and completions are reused across runs.",
    add_completion=False,
)
console = Console()


def version_callback(value: bool) -> None:
    if value:
        console.print(f"response-analyzer {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """Response Analyzer - theme analysis of survey responses."""
    pass


def _load_config_or_exit(config_path: Path) -> AnalyzerConfig:
    try:
        return load_config(config_path)
    except (FileNotFoundError, ResponseAnalyzerError) as e:
        console.print(f"[red]Error loading configuration: {e}[/red]")
        raise typer.Exit(1)


def build_cache(config: AnalyzerConfig) -> CompletionCache:
    """Completion cache for a config; in-memory only when caching is disabled."""
    return CompletionCache(
        cache_dir=resolve_path(config.cache_dir or ".cache", config),
        ttl=timedelta(hours=config.cache_ttl_hours),
        persisted=config.cache_enabled,
    )


def print_themes(themes: list[str]) -> None:
    console.print("\n[bold]Identified themes:[/bold]")
    for i, theme in enumerate(themes, start=1):
        console.print(f"  {i}. {theme}")


def print_theme_table(result: AnalysisResult) -> None:
    table = Table(title="Theme Analysis")
    table.add_column("Theme", style="cyan")
    table.add_column("Responses", style="green", justify="right")
    table.add_column("Share", style="yellow", justify="right")
    table.add_column("Summary", style="dim")

    for stat in compute_theme_stats(result):
        has_summary = "✓" if stat["theme"] in result.theme_summaries else "-"
        table.add_row(stat["theme"], str(stat["count"]), f"{stat['percentage']:.1f}%", has_summary)

    console.print(table)


def print_usage(client: LLMClient) -> None:
    console.print(f"\nTotal tokens used: {client.get_total_tokens():,}")
    console.print(f"Total cost: ${client.get_total_cost():.4f}")


def run_workflow(config: AnalyzerConfig, identify_themes_only: bool = False) -> LLMClient:
    """Run validation, ingestion, analysis and output writing.

    Returns:
        The LLM client, for usage reporting

    Raises:
        ResponseAnalyzerError: If any step fails
    """
    validate_config(config)

    cache = build_cache(config)
    client = create_client_from_config(config, cache)
    analyzer = create_analyzer_from_config(client, config)

    if config.use_parallel:
        logger.info(
            "Using parallel processing: workers=%d batch_size=%d",
            config.parallel_workers,
            config.batch_size,
        )
    else:
        logger.info("Using batch processing: batch_size=%d", config.batch_size)

    excel_path = resolve_path(config.excel_file_path, config)
    responses, column_title = read_responses(excel_path, config.response_column)
    console.print(f"Read [cyan]{len(responses)}[/cyan] responses from {excel_path.name}")

    state_path = resolve_path(config.state_file_path, config)
    output_dir = state_path.parent

    previous: AnalysisResult | None = None
    try:
        previous = load_state(state_path)
    except StateError as e:
        logger.warning("Failed to load previous state: %s", e)

    has_themes = bool(config.themes) or (previous is not None and bool(previous.themes))
    if identify_themes_only or not has_themes:
        logger.info("Running in identify-themes-only mode")
        themes = analyzer.identify_themes(responses, config.context_prompt)
        print_themes(themes)

        themes_path = output_dir / "themes.yaml"
        save_themes(themes, themes_path)
        console.print(f"\nThemes saved to: {themes_path}")
        console.print(
            "\n[bold]Themes identification completed.[/bold] To perform the full analysis:\n"
            "  1. Add these themes to your config file under the 'themes:' section\n"
            "  2. Run the analysis again without --identify-themes-only"
        )
        return client

    if config.themes:
        logger.info("Using %d themes from configuration", len(config.themes))
    else:
        logger.info("Using %d themes from previous state", len(previous.themes))

    result = analyzer.analyze_responses(responses, config, previous, column_title)

    save_state(result, state_path)
    console.print(f"[green]✓[/green] State saved to: {state_path}")

    audit_path = output_dir / "audit.yaml"
    save_audit_log(result, audit_path)
    console.print(f"[green]✓[/green] Audit log saved to: {audit_path}")

    stats_path = output_dir / "theme_stats.yaml"
    save_theme_stats(result, stats_path)
    console.print(f"[green]✓[/green] Theme statistics saved to: {stats_path}")

    if result.summary:
        summary_path = output_dir / "summary.txt"
        save_summary(result.summary, summary_path)
        console.print(f"[green]✓[/green] Summary saved to: {summary_path}")

    if config.report_template_path or config.report_output_path:
        template_path = None
        if config.report_template_path:
            template_path = resolve_path(config.report_template_path, config)
        if config.report_output_path:
            report_path = resolve_path(config.report_output_path, config)
        else:
            report_path = output_dir / "report.txt"
        try:
            ReportRenderer(template_path).render(result, report_path)
            console.print(f"[green]✓[/green] Report generated at: {report_path}")
        except ResponseAnalyzerError as e:
            logger.warning("Failed to generate report: %s", e)

    print_theme_table(result)
    return client


@app.command("analyze")
def analyze(
    config_path: Path = typer.Argument(..., help="Path to the YAML configuration file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    identify_themes_only: bool = typer.Option(
        False,
        "--identify-themes-only",
        "-t",
        help="Only identify themes without performing full analysis",
    ),
) -> None:
    """Analyze survey responses.

    Reuses the previous state file so that only new or changed responses are
    sent to the model.
    """
    configure_logging(verbose)
    config = _load_config_or_exit(config_path)

    try:
        client = run_workflow(config, identify_themes_only)
    except (ResponseAnalyzerError, OSError) as e:
        logger.error("Workflow failed: %s", e)
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    print_usage(client)


@app.command("themes")
def identify_themes(
    config_path: Path = typer.Argument(..., help="Path to the YAML configuration file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Identify themes only and write them to themes.yaml."""
    analyze(config_path=config_path, verbose=verbose, identify_themes_only=True)


@app.command("cache-clear")
def clear_cache(
    config_path: Path = typer.Argument(..., help="Path to the YAML configuration file"),
) -> None:
    """Delete all cached completions."""
    config = _load_config_or_exit(config_path)
    if not config.cache_enabled:
        console.print("[dim]Cache is disabled in this configuration; nothing to clear.[/dim]")
        return

    try:
        cache = build_cache(config)
        count = len(cache)
        cache.clear()
    except ResponseAnalyzerError as e:
        console.print(f"[red]Error clearing cache: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✓[/green] Cleared {count} cached completions")


@app.command("init-config")
def init_config(
    path: Path = typer.Argument(Path("config.yaml"), help="Where to write the sample config"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing file"),
) -> None:
    """Write a sample configuration file."""
    if path.exists() and not force:
        console.print(f"[red]Error: '{path}' already exists (use --force to overwrite)[/red]")
        raise typer.Exit(1)

    write_config(create_default_config(), path)
    console.print(f"[green]✓[/green] Wrote sample configuration to {path}")
    console.print("\nNext steps:")
    console.print("  1. Set excel_file_path, response_column and claude_api_key")
    console.print(f"  2. response-analyzer analyze {path}")


if __name__ == "__main__":
    app()
