# tests/conftest.py

"""Shared pytest fixtures for all pricy tests."""

import logging
from collections.abc import Generator
from pathlib import Path
from unittest.mock import patch

import pytest


@pytest.fixture(autouse=True)
def isolated_logs(tmp_path: Path) -> Generator[Path, None, None]:
    """Route per-run log files into a temp dir and reset handlers."""
    logs_dir = tmp_path / "logs"
    root_logger = logging.getLogger("pricy")
    saved = list(root_logger.handlers)
    root_logger.handlers.clear()
    with patch("src.config.settings.Settings.LOGS_DIR", logs_dir):
        yield logs_dir
    for handler in root_logger.handlers:
        handler.close()
    root_logger.handlers[:] = saved
