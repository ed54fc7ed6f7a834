# src/models/observation.py

"""Per-run observations, fetch outcomes and change events."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from src.models.errors import PricyError


@dataclass
class Observation:
    """A single freshly fetched and parsed price for one product page."""

    url: str
    price: float
    title: str
    observed_at: datetime


class FailureKind(Enum):
    """Stage of the fetch pipeline at which an item failed."""

    FETCH_FAILED = "fetch failed"
    EXTRACTION_FAILED = "extraction failed"
    PRICE_NOT_NUMERIC = "price not numeric"


@dataclass
class FetchSuccess:
    """Outcome of a fetch that produced an observation."""

    observation: Observation

    @property
    def url(self) -> str:
        return self.observation.url


@dataclass
class FetchFailure:
    """Outcome of a fetch that failed; doubles as the failure report."""

    url: str
    kind: FailureKind
    error: PricyError

    @property
    def reason(self) -> str:
        """One-line human-readable reason naming the item."""
        return f"{self.kind.value} for {self.url}: {self.error}"


FetchOutcome = FetchSuccess | FetchFailure


@dataclass
class ChangeEvent:
    """A price difference detected for an already tracked product."""

    url: str
    title: str
    old_price: float
    new_price: float
    old_checked_at: datetime
    new_checked_at: datetime

    @property
    def is_drop(self) -> bool:
        return self.new_price < self.old_price
