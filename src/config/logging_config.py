# src/config/logging_config.py

"""Per-run logging for pricy.

Every invocation writes its own file under ``logs/``, named after the
kind of run and its start time (``logs/check_20261018_153045.log`` for a
price check, ``logs/show_...`` for a store listing).  All ``pricy.*``
loggers share it, so one file holds the fetch, reconciliation and
notification records of one run.

User-facing progress lines are printed by :mod:`src.cli.runner` through
``rich``; the stderr log handler only adds warnings, or INFO with -v.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

from src.config.settings import Settings

_FILE_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s | "
    "%(module)s:%(funcName)s:%(lineno)d | %(message)s"
)
_CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _handler(
    handler: logging.Handler, level: int, fmt: str,
) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=_DATE_FORMAT))
    return handler


def run_log_path(run_name: str, started: datetime | None = None) -> Path:
    """Log file for a run named *run_name* started at *started*."""
    started = started or datetime.now()
    return Settings.LOGS_DIR / f"{run_name}_{started:%Y%m%d_%H%M%S}.log"


def setup_logging(verbose: bool = False, run_name: str = "check") -> Path:
    """Attach the per-run file and stderr handlers to the ``pricy`` logger.

    Repeated calls in one process keep the handlers from the first call.

    Args:
        verbose: Lower the stderr threshold from WARNING to INFO.
        run_name: Prefix of the log file name (``check`` or ``show``).

    Returns:
        The path of this run's log file.
    """
    log_file = run_log_path(run_name)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    pricy_logger = logging.getLogger("pricy")
    pricy_logger.setLevel(logging.DEBUG)
    if pricy_logger.handlers:
        return log_file

    pricy_logger.addHandler(
        _handler(
            logging.FileHandler(log_file, encoding="utf-8"),
            logging.DEBUG,
            _FILE_FORMAT,
        )
    )
    pricy_logger.addHandler(
        _handler(
            logging.StreamHandler(sys.stderr),
            logging.INFO if verbose else logging.WARNING,
            _CONSOLE_FORMAT,
        )
    )
    pricy_logger.info("%s run logging to %s", run_name, log_file)
    return log_file
