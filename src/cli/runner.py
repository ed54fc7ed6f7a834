# src/cli/runner.py

"""Headless check runner: drives the orchestrator and prints the report."""

import logging
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from src.config.settings import Settings
from src.config.tracking_config import load_tracking_config
from src.models.errors import ConfigurationError, PersistenceError
from src.models.tracked_item import TrackedItem
from src.scrapers.price_scraper import PriceScraper
from src.services.check_orchestrator import (
    CheckRunResult,
    PriceCheckOrchestrator,
)
from src.services.reconciler import ItemStatus
from src.storage.price_store import PriceStore

logger = logging.getLogger("pricy.cli")

# Stderr console for status messages
_err = Console(stderr=True)


def _report_fetch_start(item: TrackedItem) -> None:
    _err.print(f"[dim]Fetching {escape(item.url)}[/dim]")


def _print_run_report(result: CheckRunResult) -> None:
    """One line per new item, change and failure, in input order."""
    fmt = Settings.DISPLAY_DATE_FORMAT

    for record in result.reconciliation.records:
        if record.status is ItemStatus.NEW and record.observation:
            obs = record.observation
            _err.print(
                f'[green]Adding product "{escape(obs.title or obs.url)}"'
                f" with price {obs.price:.2f}[/green]"
            )
        elif record.status is ItemStatus.CHANGED and record.change:
            change = record.change
            _err.print(
                f'[bold]Updating price for product "'
                f'{escape(change.title or change.url)}": '
                f"{change.old_price:.2f} -> {change.new_price:.2f}"
                f" (last check at {change.old_checked_at.strftime(fmt)})"
                "[/bold]"
            )
        elif record.status is ItemStatus.FAILED and record.failure:
            _err.print(f"[red]Error: {escape(record.failure.reason)}[/red]")

    for error in result.notification_errors:
        _err.print(f"[yellow]Notification: {escape(str(error))}[/yellow]")

    recon = result.reconciliation
    _err.print(
        f"[dim]{len(recon.records)} checked, "
        f"{len(recon.new_items)} new, "
        f"{len(recon.changes)} changed, "
        f"{len(recon.failures)} failed, "
        f"{result.delivered_count} notified[/dim]"
    )


async def run_price_check(database: Path, config_path: Path) -> int:
    """Run one check and return an exit code (0=ok, 1=fatal error).

    Per-item failures are reported but still exit 0; only configuration
    and store errors abort the run.
    """
    try:
        config = load_tracking_config(config_path)
        orchestrator = PriceCheckOrchestrator(config, database)
        async with PriceScraper(
            max_clients=orchestrator.concurrency_limit,
            on_fetch_start=_report_fetch_start,
        ) as scraper:
            result = await orchestrator.run(scraper)
    except (ConfigurationError, PersistenceError) as exc:
        logger.critical("Check run aborted: %s", exc, exc_info=True)
        _err.print(f"[red]Error: {escape(str(exc))}[/red]")
        return 1

    _print_run_report(result)
    return 0


def show_store(database: Path) -> int:
    """Render the stored prices as a table without fetching anything."""
    try:
        store = PriceStore.load(database)
    except PersistenceError as exc:
        logger.critical("Cannot read price store: %s", exc, exc_info=True)
        _err.print(f"[red]Error: {escape(str(exc))}[/red]")
        return 1

    table = Table(
        title="Tracked Prices",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("#", style="dim", width=4)
    table.add_column("Title", max_width=60)
    table.add_column("Price", justify="right", style="green")
    table.add_column("Last check", style="magenta")
    table.add_column("URL", overflow="fold", style="dim")

    entries = sorted(store, key=lambda e: e.url.casefold())
    for idx, entry in enumerate(entries, 1):
        table.add_row(
            str(idx),
            escape(entry.title[:60]) or "—",
            f"{entry.price:,.2f}",
            entry.last_check_time.strftime(Settings.DISPLAY_DATE_FORMAT),
            escape(entry.url),
        )

    Console().print(table)
    return 0
