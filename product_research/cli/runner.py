# product_research/cli/runner.py

"""Headless CLI runner for research runs, batch stages and checks."""

import json
import logging
import sys

from rich.console import Console
from rich.table import Table

from product_research.config.settings import Settings
from product_research.errors import ResearchError
from product_research.models.listing import ProductListing
from product_research.services.pipeline import PipelineResult, ResearchPipeline
from product_research.storage.sheet_db import SheetDB

logger = logging.getLogger("product_research.cli")

# Stderr console for status messages so stdout stays clean for JSON
_err = Console(stderr=True)


def _progress(message: str) -> None:
    style = "red" if message.startswith("Error") else "dim"
    _err.print(f"[{style}]{message}[/{style}]")


def _listings_to_dicts(
    listings: list[ProductListing],
) -> list[dict[str, object]]:
    """Serialise listings to plain dicts for JSON output."""
    return [
        {
            "platform": item.platform.value,
            "rank": item.rank,
            "name": item.name,
            "price": item.price,
            "url": item.url,
            "shop": item.shop_name,
            "review_count": item.review_count,
            "review_avg": item.review_avg,
        }
        for item in listings
    ]


def _print_table(listings: list[ProductListing]) -> None:
    """Render a Rich table of listings to stdout."""
    table = Table(
        title="Search Results",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("Platform", style="magenta")
    table.add_column("#", style="dim", width=4)
    table.add_column("Name", max_width=50)
    table.add_column("Price", justify="right", style="green")
    table.add_column("Shop")
    table.add_column("URL", overflow="fold", style="dim")

    for item in listings:
        table.add_row(
            Settings.label_for(item.platform.value),
            str(item.rank),
            item.name[:50],
            f"{item.price:,.0f}" if item.price is not None else "—",
            item.shop_name or "—",
            item.url,
        )

    Console().print(table)


def _summarise(result: PipelineResult) -> None:
    """Print a one-line-per-stage summary to stderr."""
    if result.aggregation is not None:
        counts = ", ".join(
            f"{Settings.label_for(k)}={v}"
            for k, v in result.aggregation.counts.items()
        )
        _err.print(
            f"[green]✓ {result.aggregation.total} listings[/green] "
            f"[dim]({counts}) batch={result.batch_name}[/dim]"
        )
    if result.capture is not None:
        _err.print(
            f"[green]✓ {result.capture.captured} captures[/green]"
            f" [dim]{result.capture.failed} failed[/dim]"
        )
    if result.enrichment is not None:
        _err.print(
            f"[green]✓ {result.enrichment.enriched} detail pages[/green]"
            f" [dim]{result.enrichment.errored} errors,"
            f" {result.enrichment.skipped_fresh} fresh[/dim]"
        )
    if result.report is not None:
        _err.print(f"[green]✓ Report → {result.report.path}[/green]")
    if result.export is not None:
        _err.print(f"[green]✓ CSV → {result.export.path}[/green]")


def cli_research(
    keyword: str,
    capture: bool,
    enrich: bool,
    report: bool,
    memory: bool,
    output_format: str,
) -> int:
    """Run a full research pass and return an exit code (0=ok, 1=fail)."""
    workbook = None if memory else SheetDB()
    pipeline = ResearchPipeline(workbook=workbook, notify=_progress)
    _err.print(f"[bold]Researching:[/bold] {keyword}")
    try:
        result = pipeline.run(
            keyword, capture=capture, enrich=enrich, report=report,
        )
    except (ResearchError, ValueError) as exc:
        _err.print(f"[red]Run failed: {exc}[/red]")
        return 1
    finally:
        if workbook is not None:
            workbook.close()

    _summarise(result)
    listings = result.aggregation.listings if result.aggregation else []
    if not listings:
        _err.print("[yellow]No listings found.[/yellow]")
        return 1

    if output_format == "table":
        _print_table(listings)
    else:
        json.dump(
            _listings_to_dicts(listings),
            sys.stdout,
            ensure_ascii=False,
            indent=2,
        )
        sys.stdout.write("\n")
    return 0


def run_batch_stage(batch_name: str, stage: str) -> int:
    """Re-run one stage against a stored batch."""
    workbook = SheetDB()
    pipeline = ResearchPipeline(workbook=workbook, notify=_progress)
    try:
        if not workbook.has_sheet(batch_name):
            _err.print(f"[red]Unknown batch: {batch_name}[/red]")
            _err.print("[dim]Use --list-batches to see stored batches.[/dim]")
            return 1
        result = pipeline.run_stage(batch_name, stage)
    except (ResearchError, ValueError) as exc:
        _err.print(f"[red]Stage failed: {exc}[/red]")
        return 1
    finally:
        workbook.close()

    _summarise(result)
    return 0


def list_batches() -> int:
    """Print stored batches, newest first."""
    workbook = SheetDB()
    try:
        sheets = workbook.list_sheets()
    finally:
        workbook.close()

    if not sheets:
        _err.print("[yellow]No stored batches.[/yellow]")
        return 0

    table = Table(title="Stored Batches", title_style="bold cyan")
    table.add_column("Batch", style="bold")
    table.add_column("Created", style="dim")
    table.add_column("Rows", justify="right")
    for sheet in sheets:
        table.add_row(
            str(sheet["name"]), str(sheet["created_at"]), str(sheet["rows"]),
        )
    Console().print(table)
    return 0


def check_config() -> int:
    """Show which secrets are configured (never their values)."""
    status = Settings.config_status()
    table = Table(title="Configuration", title_style="bold cyan")
    table.add_column("Setting", style="bold")
    table.add_column("Status", justify="center")
    for name, is_set in status.items():
        table.add_row(
            name, "[green]set[/green]" if is_set else "[red]missing[/red]",
        )
    Console().print(table)

    required = [
        "RAKUTEN_APP_ID",
        "YAHOO_APP_ID",
        "SCREENSHOTONE_ACCESS_KEY",
        "DIFFBOT_TOKEN",
    ]
    missing = [name for name in required if not status.get(name)]
    if missing:
        _err.print(f"[yellow]Missing: {', '.join(missing)}[/yellow]")
        return 1
    _err.print("[green]✓ All required settings present[/green]")
    return 0


async def run_health_check() -> int:
    """Run a one-result search against every source."""
    from product_research.services.health_checker import HealthChecker

    _err.print("[bold]Running source health check...[/bold]")
    checker = HealthChecker()
    results = await checker.check_all()

    table = Table(
        title="Source Health Check",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("Source", style="bold")
    table.add_column("Status", justify="center")
    table.add_column("Latency", justify="right")
    table.add_column("Notes", style="dim")

    any_down = False
    for r in results:
        if r.status == "ok":
            status = "[green]✅ OK[/green]"
        elif r.status == "slow":
            status = "[yellow]⚠️  SLOW[/yellow]"
        elif r.status == "unconfigured":
            status = "[yellow]– UNCONFIGURED[/yellow]"
        else:
            status = "[red]❌ DOWN[/red]"
        any_down = any_down or r.is_down

        latency = (
            f"{r.latency_ms:.0f}ms"
            if r.latency_ms > 0
            else "—"
        )
        table.add_row(
            Settings.label_for(r.source_id), status, latency, r.message,
        )

    Console().print(table)
    return 1 if any_down else 0
