# src/notifications/base.py

"""Notification payload and the channel interface it is delivered through."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from html import escape

from src.config.settings import Settings
from src.models.errors import NotificationConfigMissing
from src.models.observation import ChangeEvent

PRICE_UPDATE_SUBJECT = "Price update alert: {name}"

PRICE_UPDATE_TEXT = """\
Price updated: {old_price:.2f} -> {new_price:.2f}

Product: {name}
Link: {url}
Checked at: {checked_at}
"""

PRICE_UPDATE_HTML = """\
<!DOCTYPE html>
<html>
<body style="font-family: Arial, sans-serif; color: #333;">
    <h2>{name}</h2>
    <p>
        <span style="color: #999; text-decoration: line-through;">{old_price:.2f}</span>
        &rarr;
        <strong style="color: {color};">{new_price:.2f}</strong>
    </p>
    <p><a href="{url}">{url}</a></p>
    <p><small>Checked at {checked_at}</small></p>
</body>
</html>
"""


@dataclass
class NotificationPayload:
    """Everything a channel needs to describe one price change."""

    url: str
    title: str
    old_price: float
    new_price: float
    checked_at: str

    @classmethod
    def from_change(cls, event: ChangeEvent) -> "NotificationPayload":
        return cls(
            url=event.url,
            title=event.title,
            old_price=event.old_price,
            new_price=event.new_price,
            checked_at=event.new_checked_at.strftime(
                Settings.DISPLAY_DATE_FORMAT
            ),
        )

    @property
    def name(self) -> str:
        return " ".join((self.title or self.url).split())

    @property
    def subject(self) -> str:
        return PRICE_UPDATE_SUBJECT.format(name=self.name)

    def text_body(self) -> str:
        return PRICE_UPDATE_TEXT.format(
            name=self.name,
            url=self.url,
            old_price=self.old_price,
            new_price=self.new_price,
            checked_at=self.checked_at,
        )

    def html_body(self) -> str:
        return PRICE_UPDATE_HTML.format(
            name=escape(self.name),
            url=escape(self.url, quote=True),
            old_price=self.old_price,
            new_price=self.new_price,
            checked_at=escape(self.checked_at),
            color="#38a169" if self.new_price < self.old_price else "#c53030",
        )


class NotificationChannel(ABC):
    """Something that can deliver a payload to a list of recipients."""

    @property
    def enabled(self) -> bool:
        return True

    @abstractmethod
    def deliver(
        self, payload: NotificationPayload, recipients: list[str],
    ) -> None:
        """Deliver *payload* to every address in *recipients*.

        Raises:
            NotificationError: Delivery failed or is not configured.
        """
        ...


class DisabledChannel(NotificationChannel):
    """Default channel used when no email section is configured."""

    @property
    def enabled(self) -> bool:
        return False

    def deliver(
        self, payload: NotificationPayload, recipients: list[str],
    ) -> None:
        raise NotificationConfigMissing(payload.url)
