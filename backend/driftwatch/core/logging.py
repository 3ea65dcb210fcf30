"""
Logging configuration shared by the API server, Celery workers and scripts.
"""

import logging
import sys
from typing import Optional

from driftwatch.core.config import settings

# Third-party loggers and the level they are held to
LIBRARY_LEVELS = {
    "uvicorn": logging.INFO,
    "uvicorn.access": logging.WARNING,
    "sqlalchemy": logging.WARNING,
    "aiosqlite": logging.WARNING,
    "celery": logging.INFO,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "yfinance": logging.WARNING,
    "peewee": logging.WARNING,  # yfinance's tz cache
}


def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure the root logger to write to stdout.

    ``level`` overrides ``LOG_LEVEL``. Safe to call more than once: the
    handler is installed once and later calls only adjust levels.
    """
    root_level = getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO)

    logging.basicConfig(
        level=root_level,
        format=settings.LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )
    logging.getLogger().setLevel(root_level)

    for name, lib_level in LIBRARY_LEVELS.items():
        logging.getLogger(name).setLevel(lib_level)
