# src/models/stored_price.py

"""Persisted last-known price for a tracked product."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class StoredPrice:
    """The last price observed for a product page and when it was checked."""

    url: str
    title: str
    price: float
    last_check_time: datetime
