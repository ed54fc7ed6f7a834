# tests/test_check_orchestrator.py

"""Tests for the bounded fetch scheduler and the full check run."""

import asyncio
import json
import tempfile
import unittest
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

from src.config.tracking_config import EmailSettings, TrackingConfig
from src.models.errors import (
    NotificationConfigMissing,
    NotificationError,
    PersistenceError,
    TransportError,
)
from src.models.observation import (
    FailureKind,
    FetchFailure,
    FetchOutcome,
    FetchSuccess,
    Observation,
)
from src.models.stored_price import StoredPrice
from src.models.tracked_item import ExtractionRule, NotifyPolicy, TrackedItem
from src.notifications.base import DisabledChannel, NotificationChannel
from src.notifications.smtp_channel import SmtpChannel
from src.scrapers.price_scraper import PriceScraper
from src.services.check_orchestrator import (
    PriceCheckOrchestrator,
    build_channel,
    run_all,
)
from src.services.notifier import NotificationDecision
from src.storage.price_store import PriceStore

T0 = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)
NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def _item(url: str, policy: NotifyPolicy = NotifyPolicy.ALWAYS) -> TrackedItem:
    return TrackedItem(url, ExtractionRule(".price"), policy)


def _ok(item: TrackedItem, price: float) -> FetchSuccess:
    return FetchSuccess(Observation(item.url, price, "Title", NOW))


class FakeScraper:
    """Stub scraper returning canned prices; None means transport failure."""

    def __init__(self, prices: dict[str, float | None]) -> None:
        self.prices = prices

    async def fetch_and_observe(self, item: TrackedItem) -> FetchOutcome:
        price = self.prices[item.url]
        if price is None:
            return FetchFailure(
                item.url,
                FailureKind.FETCH_FAILED,
                TransportError(item.url, status_code=404),
            )
        return _ok(item, price)


class TestRunAll(unittest.IsolatedAsyncioTestCase):
    """Bounded fan-out with an order-preserving barrier."""

    async def test_order_stable_despite_completion_order(self) -> None:
        """B finishes first, C second, A last; output is still A, B, C."""
        delays = {"A": 0.03, "B": 0.0, "C": 0.015}
        completed: list[str] = []

        async def fetch(item: TrackedItem) -> FetchOutcome:
            await asyncio.sleep(delays[item.url])
            completed.append(item.url)
            return _ok(item, 1.0)

        items = [_item("A"), _item("B"), _item("C")]
        outcomes = await run_all(items, fetch, concurrency_limit=3)

        self.assertEqual(completed, ["B", "C", "A"])
        self.assertEqual([o.url for o in outcomes], ["A", "B", "C"])

    async def test_concurrency_ceiling(self) -> None:
        """Never more than the limit in flight, and the limit is reached."""
        in_flight = 0
        peak = 0

        async def fetch(item: TrackedItem) -> FetchOutcome:
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.005)
            in_flight -= 1
            return _ok(item, 1.0)

        items = [_item(f"http://{i}") for i in range(20)]
        outcomes = await run_all(items, fetch, concurrency_limit=4)

        self.assertEqual(len(outcomes), 20)
        self.assertEqual(peak, 4)

    async def test_escaping_exception_isolated(self) -> None:
        """An unexpected exception fails only its own item."""

        async def fetch(item: TrackedItem) -> FetchOutcome:
            if item.url == "bad":
                raise RuntimeError("boom")
            return _ok(item, 2.0)

        outcomes = await run_all(
            [_item("good1"), _item("bad"), _item("good2")], fetch,
        )

        self.assertIsInstance(outcomes[0], FetchSuccess)
        self.assertIsInstance(outcomes[2], FetchSuccess)
        failure = outcomes[1]
        assert isinstance(failure, FetchFailure)
        self.assertIs(failure.kind, FailureKind.FETCH_FAILED)
        self.assertEqual(failure.url, "bad")

    async def test_empty_item_list(self) -> None:
        self.assertEqual(await run_all([], AsyncMock()), [])

    async def test_invalid_limit(self) -> None:
        with self.assertRaises(ValueError):
            await run_all([_item("A")], AsyncMock(), concurrency_limit=0)


class TestPriceCheckOrchestrator(unittest.IsolatedAsyncioTestCase):
    """Full run: load, fetch, reconcile, notify, save."""

    def setUp(self) -> None:
        self.store_path = Path(tempfile.mkdtemp()) / "db.json"

    def _seed(self, url: str, price: float) -> None:
        store = PriceStore(self.store_path)
        store.put(StoredPrice(url, "Seeded", price, T0))
        store.save()

    def _orchestrator(
        self,
        items: list[TrackedItem],
        channel: NotificationChannel | None = None,
    ) -> PriceCheckOrchestrator:
        config = TrackingConfig(products=items)
        return PriceCheckOrchestrator(
            config, self.store_path, channel=channel,
        )

    def _channel(self) -> MagicMock:
        channel = MagicMock(spec=NotificationChannel)
        channel.enabled = True
        return channel

    async def test_first_run_creates_store(self) -> None:
        items = [_item("http://a"), _item("http://b")]
        orchestrator = self._orchestrator(items)
        scraper = FakeScraper({"http://a": 1.0, "http://b": 2.0})

        result = await orchestrator.run(scraper)  # type: ignore[arg-type]

        self.assertEqual(len(result.reconciliation.new_items), 2)
        self.assertEqual(result.notifications, [])
        data = json.loads(self.store_path.read_text())
        self.assertEqual(
            sorted(data["products"]), ["http://a", "http://b"],
        )

    async def test_change_is_delivered(self) -> None:
        self._seed("http://a", 10.0)
        channel = self._channel()
        orchestrator = self._orchestrator([_item("http://a")], channel)
        orchestrator.dispatcher.default_recipients = ["me@example.com"]

        result = await orchestrator.run(
            FakeScraper({"http://a": 8.0}),  # type: ignore[arg-type]
        )

        channel.deliver.assert_called_once()
        self.assertEqual(result.delivered_count, 1)
        self.assertIs(
            result.notifications[0].decision, NotificationDecision.DELIVER,
        )

    async def test_only_on_drop_suppresses_increase(self) -> None:
        self._seed("http://a", 10.0)
        channel = self._channel()
        orchestrator = self._orchestrator(
            [_item("http://a", NotifyPolicy.ONLY_ON_DROP)], channel,
        )
        orchestrator.dispatcher.default_recipients = ["me@example.com"]

        result = await orchestrator.run(
            FakeScraper({"http://a": 12.0}),  # type: ignore[arg-type]
        )

        channel.deliver.assert_not_called()
        self.assertIs(
            result.notifications[0].decision, NotificationDecision.SUPPRESS,
        )

    async def test_notification_failure_keeps_store_update(self) -> None:
        """A broken mail channel never holds the price update hostage."""
        self._seed("http://a", 10.0)
        channel = self._channel()
        channel.deliver.side_effect = NotificationError("http://a", "refused")
        orchestrator = self._orchestrator([_item("http://a")], channel)
        orchestrator.dispatcher.default_recipients = ["me@example.com"]

        result = await orchestrator.run(
            FakeScraper({"http://a": 8.0}),  # type: ignore[arg-type]
        )

        self.assertEqual(len(result.notification_errors), 1)
        entry = PriceStore.load(self.store_path).get("http://a")
        assert entry is not None
        self.assertEqual(entry.price, 8.0)

    async def test_unexpected_channel_error_still_saves(self) -> None:
        """The store is written even when delivery raises something unforeseen."""
        self._seed("http://a", 10.0)
        channel = self._channel()
        channel.deliver.side_effect = RuntimeError("mailer crashed")
        orchestrator = self._orchestrator([_item("http://a")], channel)
        orchestrator.dispatcher.default_recipients = ["me@example.com"]

        with self.assertRaises(RuntimeError):
            await orchestrator.run(
                FakeScraper({"http://a": 8.0}),  # type: ignore[arg-type]
            )

        entry = PriceStore.load(self.store_path).get("http://a")
        assert entry is not None
        self.assertEqual(entry.price, 8.0)

    @patch("src.notifications.smtp_channel.smtplib.SMTP_SSL")
    async def test_multi_line_title_through_smtp(
        self, ssl_cls: MagicMock,
    ) -> None:
        """A page title with line breaks is mailed and the price stored."""
        self._seed("https://shop.example/mug", 10.0)
        server = MagicMock()
        ssl_cls.return_value.__enter__.return_value = server
        server.send_message.side_effect = lambda m: m.as_string()
        resp = MagicMock()
        resp.status_code = 200
        resp.text = (
            "<html><head><title>Great Mug\nBcc: attacker@example.com</title>"
            "</head><body><span class='price'>8,00</span></body></html>"
        )
        session = MagicMock()
        session.get = AsyncMock(return_value=resp)
        email = EmailSettings("pricy@b.c", ["me@b.c"], "smtp.b.c")
        orchestrator = self._orchestrator(
            [_item("https://shop.example/mug")], SmtpChannel(email),
        )
        orchestrator.dispatcher.default_recipients = ["me@b.c"]

        async with PriceScraper(session=session) as scraper:
            result = await orchestrator.run(scraper)

        self.assertEqual(result.notification_errors, [])
        self.assertEqual(result.delivered_count, 1)
        sent = server.send_message.call_args.args[0]
        self.assertNotIn("\n", sent["Subject"])
        self.assertIsNone(sent["Bcc"])
        entry = PriceStore.load(self.store_path).get("https://shop.example/mug")
        assert entry is not None
        self.assertEqual(entry.price, 8.0)
        self.assertEqual(entry.title, "Great Mug Bcc: attacker@example.com")

    async def test_missing_notification_config_reported(self) -> None:
        self._seed("http://a", 10.0)
        orchestrator = self._orchestrator([_item("http://a")])

        result = await orchestrator.run(
            FakeScraper({"http://a": 8.0}),  # type: ignore[arg-type]
        )

        self.assertIsInstance(
            result.notification_errors[0], NotificationConfigMissing,
        )
        entry = PriceStore.load(self.store_path).get("http://a")
        assert entry is not None
        self.assertEqual(entry.price, 8.0)

    async def test_failed_item_keeps_previous_entry(self) -> None:
        self._seed("http://a", 10.0)
        orchestrator = self._orchestrator(
            [_item("http://a"), _item("http://b")],
        )

        result = await orchestrator.run(
            FakeScraper({"http://a": None, "http://b": 3.0}),  # type: ignore[arg-type]
        )

        self.assertEqual(len(result.reconciliation.failures), 1)
        store = PriceStore.load(self.store_path)
        entry = store.get("http://a")
        assert entry is not None
        self.assertEqual(entry.price, 10.0)
        self.assertEqual(entry.last_check_time, T0)
        self.assertIn("http://b", store)

    async def test_corrupt_store_aborts_before_fetch(self) -> None:
        self.store_path.write_text("garbage")
        scraper = MagicMock()
        scraper.fetch_and_observe = AsyncMock()
        orchestrator = self._orchestrator([_item("http://a")])

        with self.assertRaises(PersistenceError):
            await orchestrator.run(scraper)
        scraper.fetch_and_observe.assert_not_awaited()

    async def test_end_to_end_new_item_from_page(self) -> None:
        """Empty store + '12,50 EUR' page: one new entry, no event."""
        resp = MagicMock()
        resp.status_code = 200
        resp.text = (
            "<html><head><title>Mug</title></head>"
            "<body><span class='price'>12,50 EUR</span></body></html>"
        )
        session = MagicMock()
        session.get = AsyncMock(return_value=resp)
        channel = self._channel()
        orchestrator = self._orchestrator(
            [_item("https://shop.example/mug")], channel,
        )

        async with PriceScraper(session=session) as scraper:
            result = await orchestrator.run(scraper)

        self.assertEqual(result.reconciliation.changes, [])
        self.assertEqual(len(result.reconciliation.new_items), 1)
        channel.deliver.assert_not_called()
        entry = PriceStore.load(self.store_path).get("https://shop.example/mug")
        assert entry is not None
        self.assertEqual(entry.price, 12.50)
        self.assertEqual(entry.title, "Mug")


class TestBuildChannel(unittest.TestCase):
    """Channel selection from configuration."""

    def test_disabled_without_email(self) -> None:
        channel = build_channel(TrackingConfig(products=[]))
        self.assertIsInstance(channel, DisabledChannel)

    def test_smtp_with_email(self) -> None:
        email = EmailSettings("a@b.c", ["me@b.c"], "smtp.b.c")
        channel = build_channel(TrackingConfig(products=[], email=email))
        self.assertIsInstance(channel, SmtpChannel)


if __name__ == "__main__":
    unittest.main()
