"""Command-line interface for lab usage analysis."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

from .analysis import AnalysisResult, run_analysis
from .config import AnalysisSettings
from .db import clear_cache, database_connection
from .errors import LabUsageError
from .loaders import read_areas, read_session_csv
from .paths import get_cache_path
from .reporting import SummaryPrinter, print_rejections

app = typer.Typer(help="Computer-lab utilization statistics.")


@app.callback(no_args_is_help=True)
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs.")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


@app.command()
def summary(
    sessions: Path = typer.Option(
        ...,
        "--sessions",
        "-s",
        exists=True,
        dir_okay=False,
        path_type=Path,
        help="CSV export with area,start,duration_minutes columns.",
    ),
    areas: Path = typer.Option(
        ...,
        "--areas",
        "-a",
        exists=True,
        dir_okay=False,
        path_type=Path,
        help="CSV or JSON table of area capacities.",
    ),
    open_minutes: int = typer.Option(
        720,
        "--open-minutes",
        min=1,
        max=1440,
        help="Minutes per day the facility is open.",
    ),
    workers: int = typer.Option(1, "--workers", min=1, help="Areas built in parallel."),
    use_cache: bool = typer.Option(
        True, "--cache/--no-cache", help="Reuse timelines cached for identical input."
    ),
    cache_path: Optional[Path] = typer.Option(
        None, "--cache-db", path_type=Path, help="Location of the timeline cache."
    ),
) -> None:
    """Print peak and capacity statistics per area and building."""
    settings = AnalysisSettings.from_options(open_minutes, workers=workers, use_cache=use_cache)
    result = _analyze(sessions, areas, settings, cache_path)
    SummaryPrinter(result).print_summary()
    if result.normalization.rejected:
        typer.echo("")
        typer.echo("Rejected records:")
        print_rejections(result.normalization.rejected)


@app.command()
def timeline(
    area: str = typer.Argument(..., help="Area label to print."),
    sessions: Path = typer.Option(
        ...,
        "--sessions",
        "-s",
        exists=True,
        dir_okay=False,
        path_type=Path,
        help="CSV export with area,start,duration_minutes columns.",
    ),
    areas: Path = typer.Option(
        ...,
        "--areas",
        "-a",
        exists=True,
        dir_okay=False,
        path_type=Path,
        help="CSV or JSON table of area capacities.",
    ),
    include_idle: bool = typer.Option(
        False, "--include-idle", help="Also print minutes with no sessions."
    ),
) -> None:
    """Print the minute-by-minute concurrency of a single area."""
    settings = AnalysisSettings.from_options(720, use_cache=False)
    result = _analyze(sessions, areas, settings, None)
    if not result.has_data:
        typer.echo("No sessions with a non-zero duration; nothing to show.")
        return
    try:
        selected = result.timelines.get(area)
    except LabUsageError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    SummaryPrinter(result).print_timeline(selected, include_idle=include_idle)


@app.command()
def serve(
    sessions: Optional[Path] = typer.Option(
        None,
        "--sessions",
        "-s",
        exists=True,
        dir_okay=False,
        path_type=Path,
        help="Session CSV to analyze at startup.",
    ),
    areas: Optional[Path] = typer.Option(
        None,
        "--areas",
        "-a",
        exists=True,
        dir_okay=False,
        path_type=Path,
        help="Area capacity table to analyze at startup.",
    ),
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind the API."),
    port: int = typer.Option(8766, "--port", min=1, max=65535, help="TCP port for the API."),
    open_minutes: int = typer.Option(
        720, "--open-minutes", min=1, max=1440, help="Minutes per day the facility is open."
    ),
    use_cache: bool = typer.Option(
        True, "--cache/--no-cache", help="Reuse timelines cached for identical input."
    ),
    cache_path: Optional[Path] = typer.Option(
        None, "--cache-db", path_type=Path, help="Location of the timeline cache."
    ),
    open_browser: bool = typer.Option(
        False,
        "--open-browser/--no-open-browser",
        help="Open the API docs in your default browser.",
    ),
) -> None:
    """Serve analysis results over a local JSON API."""
    from .server_runner import run_server

    if bool(sessions) != bool(areas):
        typer.echo("Error: --sessions and --areas must be given together.", err=True)
        raise typer.Exit(code=2)
    # Also applies to analyses submitted later through the API.
    settings = AnalysisSettings.from_options(open_minutes, use_cache=use_cache)
    result: Optional[AnalysisResult] = None
    if sessions and areas:
        result = _analyze(sessions, areas, settings, cache_path)
    run_server(
        result=result,
        settings=settings,
        host=host,
        port=port,
        cache_path=(cache_path or get_cache_path()) if settings.use_cache else None,
        open_browser=open_browser,
    )


@app.command("clear-cache")
def clear_cache_command(
    cache_path: Optional[Path] = typer.Option(
        None, "--cache-db", path_type=Path, help="Location of the timeline cache."
    ),
) -> None:
    """Delete every cached timeline."""
    with database_connection(cache_path or get_cache_path()) as conn:
        removed = clear_cache(conn)
    typer.echo(f"Removed {removed} cached result(s).")


def _analyze(
    sessions: Path,
    areas: Path,
    settings: AnalysisSettings,
    cache_path: Optional[Path],
) -> AnalysisResult:
    try:
        registry = read_areas(areas)
        raws = read_session_csv(sessions)
        return run_analysis(
            raws,
            registry,
            settings,
            cache_path=(cache_path or get_cache_path()) if settings.use_cache else None,
        )
    except (LabUsageError, ValueError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
