# src/config/tracking_config.py

"""Load the TOML file listing tracked products and the email channel."""

import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from src.config.settings import Settings
from src.models.errors import ConfigurationError
from src.models.tracked_item import (
    ExtractionRule,
    NotifyPolicy,
    TrackedItem,
    identity_key,
)

logger = logging.getLogger("pricy.config")


@dataclass
class EmailSettings:
    """SMTP channel settings from the ``[email]`` table."""

    sender: str
    recipients: list[str]
    smtp_host: str
    smtp_username: str = ""
    smtp_password: str = field(default="", repr=False)
    smtp_port: int = Settings.SMTP_PORT_SSL
    use_ssl: bool = True


@dataclass
class TrackingConfig:
    """Parsed configuration for one check run."""

    products: list[TrackedItem]
    email: EmailSettings | None = None


def _require_str(
    table: dict[str, Any], key: str, where: str, path: Path,
) -> str:
    value = table.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ConfigurationError(
            path, f"{where}: '{key}' must be a non-empty string"
        )
    return value.strip()


def _str_list(
    table: dict[str, Any], key: str, where: str, path: Path,
) -> list[str]:
    value = table.get(key, [])
    if not isinstance(value, list) or not all(
        isinstance(v, str) for v in value
    ):
        raise ConfigurationError(
            path, f"{where}: '{key}' must be a list of strings"
        )
    return [v.strip() for v in value if v.strip()]


def _parse_product(
    raw: Any, index: int, path: Path,
) -> TrackedItem:
    where = f"products[{index}]"
    if not isinstance(raw, dict):
        raise ConfigurationError(path, f"{where} must be a table")

    url = _require_str(raw, "url", where, path)
    selector = _require_str(raw, "selector", where, path)
    attribute = raw.get("use_selector_attr")
    if attribute is not None and not isinstance(attribute, str):
        raise ConfigurationError(
            path, f"{where}: 'use_selector_attr' must be a string"
        )

    only_drop = raw.get("notify_only_drop", False)
    if not isinstance(only_drop, bool):
        raise ConfigurationError(
            path, f"{where}: 'notify_only_drop' must be true or false"
        )

    return TrackedItem(
        url=url,
        rule=ExtractionRule(selector=selector, attribute=attribute or None),
        policy=(
            NotifyPolicy.ONLY_ON_DROP if only_drop else NotifyPolicy.ALWAYS
        ),
        recipients=tuple(_str_list(raw, "recipients", where, path)),
    )


def _parse_email(raw: Any, path: Path) -> EmailSettings:
    if not isinstance(raw, dict):
        raise ConfigurationError(path, "'email' must be a table")

    use_ssl = raw.get("use_ssl", True)
    port = raw.get(
        "smtp_port",
        Settings.SMTP_PORT_SSL if use_ssl else Settings.SMTP_PORT_STARTTLS,
    )
    if not isinstance(port, int) or not isinstance(use_ssl, bool):
        raise ConfigurationError(
            path, "email: 'smtp_port' must be an integer and 'use_ssl' a boolean"
        )

    password = raw.get("smtp_password") or Settings.SMTP_PASSWORD
    return EmailSettings(
        sender=_require_str(raw, "sender", "email", path),
        recipients=_str_list(raw, "recipients", "email", path),
        smtp_host=_require_str(raw, "smtp_host", "email", path),
        smtp_username=str(raw.get("smtp_username", "")),
        smtp_password=str(password),
        smtp_port=port,
        use_ssl=use_ssl,
    )


def load_tracking_config(path: Path) -> TrackingConfig:
    """Read and validate the configuration file at *path*.

    Raises:
        ConfigurationError: The file is missing, is not valid TOML, or
            describes no usable products.
    """
    path = Path(path)
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ConfigurationError(path, exc) from exc

    raw_products = data.get("products")
    if not isinstance(raw_products, list) or not raw_products:
        raise ConfigurationError(
            path, "at least one [[products]] entry is required"
        )

    products: list[TrackedItem] = []
    seen: set[str] = set()
    for index, raw in enumerate(raw_products):
        item = _parse_product(raw, index, path)
        if identity_key(item.url) in seen:
            raise ConfigurationError(
                path, f"duplicate product url {item.url}"
            )
        seen.add(identity_key(item.url))
        products.append(item)

    email = None
    if "email" in data:
        email = _parse_email(data["email"], path)

    logger.info(
        "Loaded %d products from %s (email %s)",
        len(products),
        path,
        "enabled" if email else "disabled",
    )
    return TrackingConfig(products=products, email=email)
