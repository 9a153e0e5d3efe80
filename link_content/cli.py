"""
Command-line interface for link content extraction.

Uses Typer to expose the pipeline as ``link-content fetch URL``. Loads a
``.env`` file so API keys (FIRECRAWL_API_KEY, YOUTUBE_COOKIE) can live there.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table
import typer

from .client import fetch_link
from .config import load_config
from .core.types import ProgressEvent
from .errors import LinkFetchError
from .logging_utils import setup_logging

app = typer.Typer(add_completion=False)
console = Console()
err_console = Console(stderr=True)


@app.callback()
def main() -> None:
    """Turn URLs into normalized text content."""


@app.command()
def fetch(
    url: str = typer.Argument(..., help="URL to extract content from."),
    config: Path | None = typer.Option(None, "--config", "-c", exists=True),
    max_characters: int | None = typer.Option(
        None, "--max-characters", "-m", help="Character budget for the content."
    ),
    cache_mode: str | None = typer.Option(
        None, "--cache-mode", help="Transcript cache mode: default or bypass."
    ),
    timestamps: bool | None = typer.Option(
        None, "--timestamps/--no-timestamps", help="Request timed transcript segments."
    ),
    firecrawl: str | None = typer.Option(None, "--firecrawl", help="Firecrawl mode: auto or off."),
    youtube_mode: str | None = typer.Option(
        None, "--youtube-mode", help="YouTube transcript mode: auto, web, or no-auto."
    ),
    no_cache: bool = typer.Option(False, "--no-cache", help="Disable the on-disk transcript cache."),
    log_level: str | None = typer.Option(None, "--log-level", help="Logging level."),
    progress: bool = typer.Option(True, "--progress/--no-progress"),
    as_json: bool = typer.Option(False, "--json", help="Print the full result as JSON."),
):
    """Fetch a URL and print its extracted content.

    Args:
        url: The link to process
        config: Optional path to YAML config file
        max_characters: Character budget override
        cache_mode: Cache mode override (default, bypass)
        timestamps: Whether to request timed transcript segments
        firecrawl: Firecrawl mode override (auto, off)
        youtube_mode: YouTube transcript mode override
        no_cache: Disable the transcript cache entirely
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        progress: Whether to show transcript progress hints
        as_json: Print the result as JSON instead of a summary
    """
    load_dotenv()

    cfg = load_config(str(config) if config else None)

    if max_characters is not None:
        cfg.content.max_characters = max_characters
    if cache_mode:
        cfg.cache.mode = cache_mode
    if timestamps is not None:
        cfg.transcript.timestamps = timestamps
    if firecrawl:
        cfg.firecrawl.mode = firecrawl
    if youtube_mode:
        cfg.transcript.youtube_mode = youtube_mode
    if no_cache:
        cfg.cache.enabled = False
    if log_level:
        cfg.logging.level = log_level

    setup_logging(cfg.logging)

    def on_progress(event: ProgressEvent) -> None:
        if event.kind == "transcript-done":
            status = "ok" if event.ok else "no transcript"
            err_console.print(f"[dim]{event.hint or event.service}: {status}[/dim]")
        elif event.hint:
            err_console.print(f"[dim]{event.hint}[/dim]")

    try:
        result = asyncio.run(fetch_link(url, cfg, on_progress if progress else None))
    except LinkFetchError as exc:
        err_console.print(f"[red]Failed to fetch {exc.url}: {exc}[/red]")
        raise typer.Exit(code=1) from exc

    if as_json:
        console.print_json(json.dumps(result.to_dict(), ensure_ascii=False, default=str))
        return

    table = Table(show_header=False, box=None)
    table.add_row("Title", result.title or "-")
    table.add_row("Site", result.site_name or "-")
    table.add_row("Strategy", result.diagnostics.strategy)
    table.add_row("Transcript", result.transcript_source or "-")
    table.add_row("Cache", result.diagnostics.transcript.cache_status)
    table.add_row(
        "Characters",
        f"{len(result.content)} / {result.total_characters}" + (" (truncated)" if result.truncated else ""),
    )
    console.print(table)
    console.print()
    console.print(result.content, markup=False, highlight=False)


if __name__ == "__main__":
    app()
