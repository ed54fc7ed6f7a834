# src/services/check_orchestrator.py

"""Orchestrates one price check run: fetch all, reconcile, notify, save."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path

from src.config.settings import Settings
from src.config.tracking_config import TrackingConfig
from src.models.errors import NotificationError, TransportError
from src.models.observation import (
    ChangeEvent,
    FailureKind,
    FetchFailure,
    FetchOutcome,
)
from src.models.tracked_item import TrackedItem, identity_key
from src.notifications.base import DisabledChannel, NotificationChannel
from src.notifications.smtp_channel import SmtpChannel
from src.scrapers.price_scraper import PriceScraper
from src.services.notifier import NotificationDecision, NotificationDispatcher
from src.services.reconciler import ReconcileResult, reconcile
from src.storage.price_store import PriceStore

logger = logging.getLogger("pricy.orchestrator")

FetchFn = Callable[[TrackedItem], Awaitable[FetchOutcome]]


@dataclass
class NotificationRecord:
    """What happened when a change event reached the dispatcher."""

    event: ChangeEvent
    decision: NotificationDecision | None = None
    error: NotificationError | None = None


@dataclass
class CheckRunResult:
    """Container for a completed check run."""

    reconciliation: ReconcileResult
    notifications: list[NotificationRecord] = field(
        default_factory=lambda: list[NotificationRecord]()
    )

    @property
    def notification_errors(self) -> list[NotificationError]:
        return [
            n.error for n in self.notifications if n.error is not None
        ]

    @property
    def delivered_count(self) -> int:
        return sum(
            1
            for n in self.notifications
            if n.error is None
            and n.decision is NotificationDecision.DELIVER
        )


async def run_all(
    items: list[TrackedItem],
    fetch: FetchFn,
    concurrency_limit: int = Settings.CONCURRENCY_LIMIT,
) -> list[FetchOutcome]:
    """Fetch every item with at most *concurrency_limit* in flight.

    Returns one outcome per item in input order, after all fetches
    finished.  An exception escaping *fetch* becomes a FETCH_FAILED
    outcome for that item only.
    """
    if concurrency_limit < 1:
        raise ValueError("concurrency_limit must be >= 1")

    semaphore = asyncio.Semaphore(concurrency_limit)

    async def run_one(item: TrackedItem) -> FetchOutcome:
        async with semaphore:
            return await fetch(item)

    results = await asyncio.gather(
        *(run_one(item) for item in items), return_exceptions=True,
    )

    outcomes: list[FetchOutcome] = []
    for item, result in zip(items, results):
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                raise result
            logger.error(
                "Unexpected error fetching %s: %s",
                item.url,
                result,
                exc_info=result,
            )
            outcomes.append(
                FetchFailure(
                    item.url,
                    FailureKind.FETCH_FAILED,
                    TransportError(item.url, cause=result),
                )
            )
        else:
            outcomes.append(result)
    return outcomes


def build_channel(config: TrackingConfig) -> NotificationChannel:
    """SMTP channel when ``[email]`` is configured, else disabled."""
    if config.email is None:
        return DisabledChannel()
    return SmtpChannel(config.email)


class PriceCheckOrchestrator:
    """Coordinates fetching, reconciliation, notification and persistence."""

    def __init__(
        self,
        config: TrackingConfig,
        store_path: Path,
        channel: NotificationChannel | None = None,
        concurrency_limit: int = Settings.CONCURRENCY_LIMIT,
    ) -> None:
        self.config = config
        self.store_path = Path(store_path)
        self.concurrency_limit = concurrency_limit
        self.dispatcher = NotificationDispatcher(
            channel if channel is not None else build_channel(config),
            config.email.recipients if config.email else [],
        )

    # ── Private helpers ──────────────────────────────────

    def _notify(
        self, reconciliation: ReconcileResult,
    ) -> list[NotificationRecord]:
        """Dispatch each change event; failures are recorded, not raised."""
        items = {item.identity_key: item for item in self.config.products}
        records: list[NotificationRecord] = []
        for event in reconciliation.changes:
            item = items[identity_key(event.url)]
            record = NotificationRecord(event=event)
            try:
                record.decision = self.dispatcher.maybe_notify(item, event)
            except NotificationError as exc:
                record.error = exc
                logger.error("%s", exc, exc_info=True)
            records.append(record)
        return records

    # ── Entry point ──────────────────────────────────────

    async def run(
        self, scraper: PriceScraper,
    ) -> CheckRunResult:
        """Run one full check with *scraper* (already entered).

        Raises:
            PersistenceError: The store could not be loaded or saved.
        """
        store = PriceStore.load(self.store_path)

        outcomes = await run_all(
            self.config.products,
            scraper.fetch_and_observe,
            self.concurrency_limit,
        )

        reconciliation = reconcile(outcomes, store)
        try:
            notifications = self._notify(reconciliation)
        finally:
            store.save()

        return CheckRunResult(
            reconciliation=reconciliation,
            notifications=notifications,
        )
