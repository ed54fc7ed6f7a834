# src/models/errors.py

"""Error taxonomy for a price check run.

Per-item errors (transport, extraction, value format) are caught by the
fetch worker and turned into failure outcomes.  Persistence and
configuration errors are fatal to the run.  Notification errors are
reported but never undo a store update.
"""

from enum import Enum
from pathlib import Path


class PricyError(Exception):
    """Base class for every error raised by pricy."""


# ── Per-item errors ──────────────────────────────────────


class TransportError(PricyError):
    """Network, DNS, TLS or HTTP-status level failure for one fetch."""

    def __init__(
        self,
        url: str,
        cause: BaseException | None = None,
        status_code: int | None = None,
    ) -> None:
        self.url = url
        self.cause = cause
        self.status_code = status_code
        if status_code is not None:
            detail = f"HTTP {status_code}"
        else:
            detail = str(cause) if cause else "unknown transport error"
        super().__init__(detail)


class ExtractionFailureKind(Enum):
    """Why a selector rule could not produce a raw value."""

    SELECTOR_INVALID = "selector invalid"
    ELEMENT_NOT_FOUND = "price element not found"
    ATTRIBUTE_NOT_FOUND = "price attribute not found"


class ExtractionError(PricyError):
    """The document did not yield a raw price value for the rule."""

    def __init__(
        self,
        kind: ExtractionFailureKind,
        selector: str,
        attribute: str | None = None,
        url: str = "",
        cause: BaseException | None = None,
    ) -> None:
        self.kind = kind
        self.selector = selector
        self.attribute = attribute
        self.url = url
        self.cause = cause
        target = f"'{selector}'"
        if attribute:
            target += f" [{attribute}]"
        super().__init__(f"{kind.value} for selector {target}")

    def with_url(self, url: str) -> "ExtractionError":
        """Return a copy of this error bound to *url*."""
        return ExtractionError(
            self.kind,
            self.selector,
            self.attribute,
            url=url,
            cause=self.cause,
        )


class ValueFormatError(PricyError):
    """The sanitized price text is not a number."""

    def __init__(self, raw: str, sanitized: str, url: str = "") -> None:
        self.raw = raw
        self.sanitized = sanitized
        self.url = url
        super().__init__(
            f"Failed parsing price from {raw.strip()[:40]!r}"
            f" (sanitized {sanitized!r})"
        )


# ── Run-level errors ─────────────────────────────────────


class PersistenceError(PricyError):
    """The price store could not be read or written."""

    def __init__(self, path: Path, cause: BaseException) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"Price store {path}: {cause}")


class ConfigurationError(PricyError):
    """The tracking configuration is missing or malformed."""

    def __init__(self, path: Path, cause: BaseException | str) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"Configuration {path}: {cause}")


# ── Notification errors ──────────────────────────────────


class NotificationError(PricyError):
    """A notification could not be delivered."""

    def __init__(
        self, url: str, cause: BaseException | str,
    ) -> None:
        self.url = url
        self.cause = cause
        super().__init__(f"Notification for {url} failed: {cause}")


class NotificationConfigMissing(NotificationError):
    """No channel or no recipient is configured for a notification."""

    def __init__(self, url: str, detail: str = "missing email configuration") -> None:
        super().__init__(url, detail)
