# src/scrapers/price_scraper.py

"""Fetch worker: download one product page and observe its price."""

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from types import TracebackType

from curl_cffi.requests import AsyncSession

from src.config.settings import Settings
from src.models.errors import (
    ExtractionError,
    TransportError,
    ValueFormatError,
)
from src.models.observation import (
    FailureKind,
    FetchFailure,
    FetchOutcome,
    FetchSuccess,
    Observation,
)
from src.models.tracked_item import TrackedItem
from src.scrapers.extractor import evaluate

_PRICE_CHARS = frozenset("0123456789.,")


class PriceScraper:
    """Fetches product pages through one shared browser-impersonating session.

    The session is opened on ``__aenter__`` and closed on ``__aexit__``
    unless one was injected, in which case the caller owns it.
    """

    def __init__(
        self,
        session: AsyncSession | None = None,
        max_clients: int = Settings.CONCURRENCY_LIMIT,
        on_fetch_start: Callable[[TrackedItem], None] | None = None,
    ) -> None:
        self.logger = logging.getLogger("pricy.scraper")
        self.settings = Settings()
        self.session = session
        self._owns_session = session is None
        self._max_clients = max_clients
        self._request_timeout: int = self.settings.REQUEST_TIMEOUT
        self._on_fetch_start = on_fetch_start

    async def __aenter__(self) -> "PriceScraper":
        if self.session is None:
            self.session = AsyncSession(
                impersonate=self.settings.IMPERSONATE_BROWSER,
                headers=self.settings.DEFAULT_HEADERS,
                timeout=self._request_timeout,
                max_clients=self._max_clients,
            )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._owns_session and self.session is not None:
            await self.session.close()
            self.session = None

    # ── Value sanitizing ─────────────────────────────────

    @staticmethod
    def sanitize(text: str) -> str:
        """Keep digits and separators, unifying ',' into '.'.

        ``"12,50 EUR"`` becomes ``"12.50"``.  Multiple separators are
        left alone (``"1.234,56"`` becomes ``"1.234.56"``), so such input
        fails at parse time rather than being guessed at.
        """
        return "".join(
            "." if ch == "," else ch
            for ch in text
            if ch in _PRICE_CHARS
        )

    @staticmethod
    def parse_price(raw: str) -> float:
        """Sanitize *raw* and parse it as a float.

        Raises:
            ValueFormatError: The sanitized text is not a number.
        """
        sanitized = PriceScraper.sanitize(raw)
        try:
            return float(sanitized)
        except ValueError as exc:
            raise ValueFormatError(raw, sanitized) from exc

    # ── Fetching ─────────────────────────────────────────

    async def _get_page(self, url: str) -> str:
        """GET *url* and return the body text.

        Raises:
            TransportError: The request failed or returned HTTP >= 400.
        """
        if self.session is None:
            raise RuntimeError(
                "PriceScraper used outside 'async with'"
            )
        try:
            resp = await self.session.get(
                url, timeout=self._request_timeout,
            )
        except Exception as exc:
            raise TransportError(url, cause=exc) from exc

        if resp.status_code >= 400:
            raise TransportError(url, status_code=resp.status_code)
        text: str = resp.text
        return text

    async def fetch_and_observe(self, item: TrackedItem) -> FetchOutcome:
        """Fetch *item* and return its observation or a typed failure.

        Per-item errors never propagate; they become a ``FetchFailure``.
        """
        self.logger.info("Fetching %s", item.url)
        if self._on_fetch_start is not None:
            self._on_fetch_start(item)

        try:
            body = await self._get_page(item.url)
        except TransportError as exc:
            self.logger.warning(
                "[%s] fetch failed: %s",
                item.url,
                exc,
                exc_info=exc.cause is not None,
            )
            return FetchFailure(item.url, FailureKind.FETCH_FAILED, exc)

        try:
            extracted = evaluate(body, item.rule)
        except ExtractionError as exc:
            bound = exc.with_url(item.url)
            self.logger.warning("[%s] %s", item.url, bound)
            return FetchFailure(
                item.url, FailureKind.EXTRACTION_FAILED, bound,
            )

        try:
            price = self.parse_price(extracted.raw)
        except ValueFormatError as exc:
            exc.url = item.url
            self.logger.warning("[%s] %s", item.url, exc)
            return FetchFailure(
                item.url, FailureKind.PRICE_NOT_NUMERIC, exc,
            )

        observation = Observation(
            url=item.url,
            price=price,
            title=extracted.title,
            observed_at=datetime.now(timezone.utc),
        )
        self.logger.debug(
            "Observed %.2f for %s (%r)", price, item.url, extracted.title,
        )
        return FetchSuccess(observation)
