# src/services/reconciler.py

"""Diff fresh observations against the price store."""

import logging
from dataclasses import dataclass, field
from enum import Enum

from src.models.observation import (
    ChangeEvent,
    FetchFailure,
    FetchOutcome,
    FetchSuccess,
    Observation,
)
from src.models.stored_price import StoredPrice
from src.storage.price_store import PriceStore

logger = logging.getLogger("pricy.reconciler")


class ItemStatus(Enum):
    """What reconciliation did with one outcome."""

    NEW = "new"
    CHANGED = "changed"
    UNCHANGED = "unchanged"
    FAILED = "failed"


@dataclass
class ItemRecord:
    """Per-item reconciliation record, kept in input order."""

    url: str
    status: ItemStatus
    observation: Observation | None = None
    change: ChangeEvent | None = None
    failure: FetchFailure | None = None


@dataclass
class ReconcileResult:
    """Updated store plus one record per reconciled outcome."""

    store: PriceStore
    records: list[ItemRecord] = field(
        default_factory=lambda: list[ItemRecord]()
    )

    @property
    def changes(self) -> list[ChangeEvent]:
        return [r.change for r in self.records if r.change is not None]

    @property
    def new_items(self) -> list[Observation]:
        return [
            r.observation
            for r in self.records
            if r.status is ItemStatus.NEW and r.observation is not None
        ]

    @property
    def failures(self) -> list[FetchFailure]:
        return [r.failure for r in self.records if r.failure is not None]


def _reconcile_one(obs: Observation, store: PriceStore) -> ItemRecord:
    previous = store.get(obs.url)
    store.put(
        StoredPrice(
            url=obs.url,
            title=obs.title or (previous.title if previous else ""),
            price=obs.price,
            last_check_time=obs.observed_at,
        )
    )

    if previous is None:
        logger.info("New item tracked: %s at %.2f", obs.url, obs.price)
        return ItemRecord(obs.url, ItemStatus.NEW, observation=obs)

    # Exact comparison: parsed prices are discrete decimal quantities
    if previous.price != obs.price:
        change = ChangeEvent(
            url=obs.url,
            title=obs.title or previous.title,
            old_price=previous.price,
            new_price=obs.price,
            old_checked_at=previous.last_check_time,
            new_checked_at=obs.observed_at,
        )
        logger.info(
            "Price changed for %s: %.2f -> %.2f",
            obs.url,
            previous.price,
            obs.price,
        )
        return ItemRecord(
            obs.url, ItemStatus.CHANGED, observation=obs, change=change,
        )

    logger.debug("Price unchanged for %s at %.2f", obs.url, obs.price)
    return ItemRecord(obs.url, ItemStatus.UNCHANGED, observation=obs)


def reconcile(
    outcomes: list[FetchOutcome],
    store: PriceStore,
) -> ReconcileResult:
    """Fold *outcomes* into *store* and report what changed.

    Successful observations always refresh their entry, so the check
    time moves forward even when the price is unchanged.  Failed items
    leave any existing entry untouched.
    """
    result = ReconcileResult(store=store)
    for outcome in outcomes:
        if isinstance(outcome, FetchSuccess):
            result.records.append(
                _reconcile_one(outcome.observation, store)
            )
        else:
            result.records.append(
                ItemRecord(
                    outcome.url, ItemStatus.FAILED, failure=outcome,
                )
            )

    logger.info(
        "Reconciled %d outcomes: %d new, %d changed, %d failed",
        len(result.records),
        len(result.new_items),
        len(result.changes),
        len(result.failures),
    )
    return result
