# utils/logger.py
"""
Package logging.

Handlers hang off the ``production_volume`` logger only; module loggers
propagate to it. Partial queries run on ``pdvolume_*`` worker threads, so the
thread name is part of every line.
"""

import logging
import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

PACKAGE_LOGGER = "production_volume"

LOG_DIR = Path(os.getenv("LOG_DIR", "logs"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_CONSOLE_LEVEL = os.getenv("LOG_CONSOLE_LEVEL", "WARNING").upper()
LOG_FILE = os.getenv("LOG_FILE", str(LOG_DIR / "production_volume.log"))

formatter = logging.Formatter(
    fmt="%(asctime)s | %(levelname)-8s | %(threadName)-12s | %(name)s:%(lineno)d | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)


def _configure_package_logger() -> logging.Logger:
    root = logging.getLogger(PACKAGE_LOGGER)
    if root.handlers:
        return root

    Path(LOG_FILE).parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(LOG_FILE, encoding="utf-8")
    file_handler.setLevel(LOG_LEVEL)
    file_handler.setFormatter(formatter)

    # CLI output stays readable; warnings and failures still reach stderr
    console_handler = logging.StreamHandler()
    console_handler.setLevel(LOG_CONSOLE_LEVEL)
    console_handler.setFormatter(formatter)

    root.setLevel(LOG_LEVEL)
    root.addHandler(file_handler)
    root.addHandler(console_handler)
    return root


def get_logger(name: str = PACKAGE_LOGGER) -> logging.Logger:
    """Return a module logger under the package logger."""
    _configure_package_logger()
    if name != PACKAGE_LOGGER and not name.startswith(PACKAGE_LOGGER + "."):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)
