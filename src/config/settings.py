# src/config/settings.py

"""Central configuration for the pricy price tracker."""

import os
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Central configuration for the pricy price tracker."""

    # --- Fetching ---
    CONCURRENCY_LIMIT: int = 32         # Max in-flight fetches per run
    REQUEST_TIMEOUT: int = 15           # Seconds before a request times out

    # --- Browser Impersonation ---
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"
    DEFAULT_HEADERS: dict[str, str] = {
        "User-Agent": (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/131.0.0.0 Safari/537.36"
        ),
        "Accept": (
            "text/html,application/xhtml+xml,"
            "application/xml;q=0.9,image/avif,"
            "image/webp,image/apng,*/*;q=0.8"
        ),
        "Accept-Language": "en-US,en;q=0.9",
        "sec-ch-ua": (
            '"Google Chrome";v="131", '
            '"Chromium";v="131", '
            '"Not_A Brand";v="24"'
        ),
        "sec-ch-ua-mobile": "?0",
        "sec-ch-ua-platform": '"Windows"',
        "sec-fetch-dest": "document",
        "sec-fetch-mode": "navigate",
        "sec-fetch-site": "none",
        "sec-fetch-user": "?1",
        "Upgrade-Insecure-Requests": "1",
    }

    # --- Formatting ---
    DISPLAY_DATE_FORMAT: str = "%Y-%m-%d %H:%M:%S UTC"

    # --- Notifications ---
    SMTP_PORT_SSL: int = 465
    SMTP_PORT_STARTTLS: int = 587
    SMTP_TIMEOUT: int = 30
    SMTP_PASSWORD: str = os.getenv("PRICY_SMTP_PASSWORD", "")

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    LOGS_DIR: Path = BASE_DIR / "logs"
    DEFAULT_DATABASE_PATH: Path = Path(
        os.getenv("PRICY_DATABASE", "db.json")
    )
    DEFAULT_CONFIG_PATH: Path = Path(
        os.getenv("PRICY_CONFIG", "config.toml")
    )
