# src/services/notifier.py

"""Decide whether a price change is worth a notification and send it."""

import logging
from enum import Enum

from src.models.errors import NotificationConfigMissing
from src.models.observation import ChangeEvent
from src.models.tracked_item import NotifyPolicy, TrackedItem
from src.notifications.base import (
    DisabledChannel,
    NotificationChannel,
    NotificationPayload,
)

logger = logging.getLogger("pricy.notifier")


class NotificationDecision(Enum):
    DELIVER = "deliver"
    SUPPRESS = "suppress"


def decide(
    policy: NotifyPolicy, event: ChangeEvent,
) -> NotificationDecision:
    """Apply the item's notification policy to a change event."""
    if policy is NotifyPolicy.ONLY_ON_DROP and not event.is_drop:
        return NotificationDecision.SUPPRESS
    return NotificationDecision.DELIVER


class NotificationDispatcher:
    """Routes change events to a channel according to item policy."""

    def __init__(
        self,
        channel: NotificationChannel | None = None,
        default_recipients: list[str] | None = None,
    ) -> None:
        self.channel = channel or DisabledChannel()
        self.default_recipients = list(default_recipients or [])

    def recipients_for(self, item: TrackedItem) -> list[str]:
        """Item override list when present, else the global recipients."""
        if item.recipients:
            return list(item.recipients)
        return self.default_recipients

    def maybe_notify(
        self, item: TrackedItem, event: ChangeEvent,
    ) -> NotificationDecision:
        """Deliver *event* unless the item's policy suppresses it.

        Raises:
            NotificationConfigMissing: No channel or no recipients.
            NotificationError: The channel failed to deliver.
        """
        decision = decide(item.policy, event)
        if decision is NotificationDecision.SUPPRESS:
            logger.info(
                "Suppressed notification for %s (%.2f -> %.2f, only on drop)",
                event.url,
                event.old_price,
                event.new_price,
            )
            return decision

        if not self.channel.enabled:
            raise NotificationConfigMissing(event.url)

        recipients = self.recipients_for(item)
        if not recipients:
            raise NotificationConfigMissing(
                event.url, "no notification recipients configured"
            )

        self.channel.deliver(
            NotificationPayload.from_change(event), recipients,
        )
        return decision
