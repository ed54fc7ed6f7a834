# src/models/tracked_item.py

"""Configured items to track, read-only input to a check run."""

from dataclasses import dataclass, field
from enum import Enum


class NotifyPolicy(Enum):
    """When a detected price change should be delivered."""

    ALWAYS = "always"
    ONLY_ON_DROP = "only_on_drop"


@dataclass(frozen=True)
class ExtractionRule:
    """CSS selector plus optional attribute holding the price."""

    selector: str
    attribute: str | None = None


@dataclass(frozen=True)
class TrackedItem:
    """One configured product page with its extraction rule and policy."""

    url: str
    rule: ExtractionRule
    policy: NotifyPolicy = NotifyPolicy.ALWAYS
    recipients: tuple[str, ...] = field(default_factory=tuple)

    @property
    def identity_key(self) -> str:
        """Case-insensitive key used to address the store."""
        return identity_key(self.url)


def identity_key(url: str) -> str:
    """Normalise a source address for identity comparisons."""
    return url.strip().casefold()
