"""
Logging for the paper trader: one `paper_trader` logger tree, stdout plus an optional file.
"""

from __future__ import annotations
import logging
import sys
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Chatty at INFO/DEBUG during reconnects and kline polling
QUIET_LOGGERS = ("websockets", "urllib3", "binance")


def setup_logging(
    level: str = "INFO",
    log_dir: Optional[Path] = None,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """
    Configure the `paper_trader` logger. Calling again replaces the handlers.
    The file handler always records DEBUG so a run can be audited after the fact.
    Never log API keys or bot tokens.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    pkg = logging.getLogger("paper_trader")
    pkg.handlers.clear()
    pkg.propagate = False

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(log_level)
    console.setFormatter(formatter)
    pkg.addHandler(console)

    if log_dir and log_file:
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path / log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        pkg.addHandler(file_handler)
        pkg.setLevel(logging.DEBUG)
    else:
        pkg.setLevel(log_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return pkg
