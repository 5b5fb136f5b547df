"""Command-line interface for Fitfetch."""

from __future__ import annotations

import asyncio
import mimetypes
import sys
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from fitfetch import __version__
from fitfetch.acquisition import (
    ContentValidator,
    ExtractionExhaustedError,
    ExtractionResult,
    ImageExtractor,
    UrlValidationError,
)
from fitfetch.config import Config, load_config
from fitfetch.observability import configure_logging
from fitfetch.portfolio import JsonFilePortfolioBackend, PortfolioStore

console = Console()


def _portfolio_store(config: Config) -> PortfolioStore:
    return PortfolioStore(
        JsonFilePortfolioBackend(config.portfolio.path),
        ttl=timedelta(hours=config.portfolio.ttl_hours),
    )


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "-c", type=click.Path(exists=True, dir_okay=False), help="Configuration file path")
@click.option(
    "--log-level",
    default="WARNING",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Logging level",
)
@click.pass_context
def cli(ctx: click.Context, config: Optional[str], log_level: str) -> None:
    """Fitfetch - resilient image acquisition for fashion generation."""
    ctx.ensure_object(dict)
    loaded = load_config(Path(config) if config else None)
    loaded.monitoring.log_level = log_level
    configure_logging(loaded.monitoring)
    ctx.obj["config"] = loaded


@cli.command()
@click.argument("url")
@click.option("--output", "-o", type=click.Path(dir_okay=False, writable=True), help="Write the image bytes here")
@click.option("--timeout-ms", type=click.IntRange(min=1), help="Per-strategy timeout in milliseconds")
@click.option("--no-validate", is_flag=True, help="Skip content validation")
@click.option(
    "--retry-policy",
    type=click.Choice(["single_pass", "per_strategy"]),
    help="Retry each strategy on transient errors",
)
@click.pass_context
def extract(
    ctx: click.Context,
    url: str,
    output: Optional[str],
    timeout_ms: Optional[int],
    no_validate: bool,
    retry_policy: Optional[str],
) -> None:
    """Fetch the image behind URL using every acquisition strategy in turn."""
    config: Config = ctx.obj["config"]

    overrides: Dict[str, Any] = {}
    if timeout_ms is not None:
        overrides["timeout_ms"] = timeout_ms
    if no_validate:
        overrides["validate_content"] = False
    if retry_policy is not None:
        overrides["retry_policy"] = retry_policy
    options = config.extraction.model_copy(update=overrides)

    async def run_extraction() -> ExtractionResult:
        async with ImageExtractor(config) as extractor:
            return await extractor.extract(url, options)

    try:
        result = asyncio.run(run_extraction())
    except UrlValidationError as e:
        console.print(f"[red]Invalid URL ({e.kind.value}): {escape(e.message)}[/red]")
        sys.exit(1)
    except ExtractionExhaustedError as e:
        _print_failure(e)
        sys.exit(1)

    if output:
        Path(output).write_bytes(result.image_bytes)

    summary = Table(show_header=False, box=None)
    summary.add_column("Field", style="cyan")
    summary.add_column("Value")
    for key, value in result.metadata().items():
        summary.add_row(key, escape(str(value)))
    if output:
        summary.add_row("saved_to", escape(output))
    console.print(Panel(summary, title="[green]Image extracted[/green]", border_style="green"))


def _print_failure(error: ExtractionExhaustedError) -> None:
    failure = error.failure
    console.print(f"[red]{escape(failure.aggregate_message)}[/red]")

    table = Table(title="Attempts")
    table.add_column("Strategy", style="cyan", no_wrap=True)
    table.add_column("Kind")
    table.add_column("Tries", justify="right")
    table.add_column("Duration (ms)", justify="right")
    table.add_column("Error")
    for attempt in failure.attempts:
        table.add_row(
            attempt.strategy_name,
            attempt.error_kind.value if attempt.error_kind else "-",
            str(attempt.tries),
            f"{attempt.duration_ms:.0f}",
            escape(attempt.error_message or ""),
        )
    console.print(table)

    console.print("[bold]Suggestions:[/bold]")
    for suggestion in failure.suggestions:
        console.print(f"  - {escape(suggestion)}")


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--mime-type", help="Declared MIME type (guessed from the file name when omitted)")
@click.pass_context
def sniff(ctx: click.Context, file: str, mime_type: Optional[str]) -> None:
    """Run the content validator against a local FILE."""
    config: Config = ctx.obj["config"]
    path = Path(file)
    declared = mime_type or mimetypes.guess_type(path.name)[0]
    check = ContentValidator(config.validation).validate(path.read_bytes(), declared)

    if check.is_valid:
        console.print(f"[green]Valid {check.detected_format} image[/green] ({path.stat().st_size} bytes)")
        return
    console.print(f"[red]Invalid: {escape(check.error or '')}[/red]")
    sys.exit(1)


@cli.group()
def portfolio() -> None:
    """Inspect and maintain the saved portfolio."""


@portfolio.command("list")
@click.pass_context
def portfolio_list(ctx: click.Context) -> None:
    """List unexpired portfolio items, newest first."""
    store = _portfolio_store(ctx.obj["config"])
    try:
        items = store.list()
    except ValueError as e:
        raise click.ClickException(str(e)) from e

    if not items:
        console.print("[yellow]Portfolio is empty[/yellow]")
        return

    table = Table(title="Portfolio")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Saved")
    table.add_column("Expires")
    table.add_column("Source URL")
    for item in items:
        table.add_row(
            item.id,
            item.saved_at.isoformat(timespec="seconds"),
            item.expires_at.isoformat(timespec="seconds") if item.expires_at else "never",
            escape(str(item.payload.get("original_url", ""))),
        )
    console.print(table)


@portfolio.command("prune")
@click.pass_context
def portfolio_prune(ctx: click.Context) -> None:
    """Delete expired portfolio items."""
    store = _portfolio_store(ctx.obj["config"])
    try:
        report = store.prune()
    except ValueError as e:
        raise click.ClickException(str(e)) from e
    console.print(f"Pruned {report.deleted_count} expired item(s); {report.remaining_count} remaining")


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
