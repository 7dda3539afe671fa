# app/utils/logger.py
"""
Logging for the rental engine.

Handlers hang off the `app` package logger, so uvicorn and SQLAlchemy keep
their own output and every service module logs through one place.
Console always; a size-rotated file under LOG_DIR unless LOG_DIR is empty.
"""

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from app.config import settings

APP_LOGGER = "app"
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

_formatter = logging.Formatter(
    fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)


def log_file_path() -> Optional[str]:
    if not settings.LOG_DIR:
        return None
    log_dir = settings.LOG_DIR
    if not os.path.isabs(log_dir):
        log_dir = os.path.join(PROJECT_ROOT, log_dir)
    return os.path.join(log_dir, settings.LOG_FILE)


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """Attach handlers to the package logger once. Later calls only change the level."""
    base = logging.getLogger(APP_LOGGER)
    base.setLevel((level or settings.LOG_LEVEL).upper())
    if base.handlers:
        return base

    console = logging.StreamHandler()
    console.setFormatter(_formatter)
    base.addHandler(console)

    path = log_file_path()
    if path:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        rotating = RotatingFileHandler(path, maxBytes=settings.LOG_MAX_BYTES,
                                       backupCount=settings.LOG_BACKUP_COUNT, encoding="utf-8")
        rotating.setFormatter(_formatter)
        base.addHandler(rotating)
    return base


def get_logger(name: str) -> logging.Logger:
    """
    Named logger under the package logger.
    Scripts run as __main__ are filed under app.<name> so they share the handlers.
    """
    configure_logging()
    if name != APP_LOGGER and not name.startswith(APP_LOGGER + "."):
        name = f"{APP_LOGGER}.{name}"
    return logging.getLogger(name)
