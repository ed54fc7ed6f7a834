# src/storage/price_store.py

"""JSON-file backed store of the last known price per product page."""

import json
import logging
import os
from collections.abc import Iterator
from datetime import datetime
from pathlib import Path
from typing import Any

from src.models.errors import PersistenceError
from src.models.stored_price import StoredPrice
from src.models.tracked_item import identity_key

logger = logging.getLogger("pricy.storage")


def _entry_to_dict(entry: StoredPrice) -> dict[str, Any]:
    return {
        "title": entry.title,
        "url": entry.url,
        "price": entry.price,
        "last_check_time": entry.last_check_time.isoformat(),
    }


def _entry_from_dict(url: str, data: dict[str, Any]) -> StoredPrice:
    checked = datetime.fromisoformat(str(data["last_check_time"]))
    return StoredPrice(
        url=str(data.get("url", url)),
        title=str(data.get("title", "")),
        price=float(data["price"]),
        last_check_time=checked,
    )


class PriceStore:
    """Maps product identity to its last stored price and check time.

    Identities compare case-insensitively.  The file keeps the original
    URL spelling as its key so it stays readable by hand.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._entries: dict[str, StoredPrice] = {}

    # ── Persistence ──────────────────────────────────────

    @classmethod
    def load(cls, path: Path) -> "PriceStore":
        """Load the store at *path*, creating an empty one if absent.

        Raises:
            PersistenceError: The file is unreadable or malformed, or an
                empty store could not be created.
        """
        store = cls(path)
        if not store.path.exists():
            logger.info(
                "Price store does not exist, creating one in %s",
                store.path,
            )
            store.save()
            return store

        try:
            with open(store.path, encoding="utf-8") as f:
                data = json.load(f)
            products: dict[str, Any] = data["products"]
            for url, raw in products.items():
                store.put(_entry_from_dict(url, raw))
        except (OSError, ValueError, KeyError, TypeError) as exc:
            raise PersistenceError(store.path, exc) from exc

        logger.debug(
            "Loaded %d stored prices from %s", len(store), store.path,
        )
        return store

    def save(self) -> None:
        """Write the whole store, replacing the file atomically.

        Raises:
            PersistenceError: The file could not be written.
        """
        data = {
            "products": {
                entry.url: _entry_to_dict(entry)
                for entry in self._entries.values()
            }
        }
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise PersistenceError(self.path, exc) from exc

        logger.info("Saved %d stored prices to %s", len(self), self.path)

    # ── Mapping access ───────────────────────────────────

    def get(self, url: str) -> StoredPrice | None:
        return self._entries.get(identity_key(url))

    def put(self, entry: StoredPrice) -> None:
        """Insert or replace the entry for ``entry.url``."""
        key = identity_key(entry.url)
        existing = self._entries.get(key)
        if existing is not None and existing.url != entry.url:
            logger.debug(
                "Replacing %s with case variant %s", existing.url, entry.url,
            )
        self._entries[key] = entry

    def __contains__(self, url: object) -> bool:
        return isinstance(url, str) and identity_key(url) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[StoredPrice]:
        return iter(list(self._entries.values()))
