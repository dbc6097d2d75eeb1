"""Application logging utilities.

Goals:
- Single, shared `partner_hub` logger; modules get children of it
- UTC timestamp at start of each log line
- Daily log rotation under ./logs/ (override with PARTNER_HUB_LOG_DIR)

Call `get_logger(__name__)` from any module to get a child logger.
"""

from __future__ import annotations

import logging
import os
import time
from logging.handlers import TimedRotatingFileHandler


class _UTCFormatter(logging.Formatter):
    """Formatter that forces UTC timestamps."""

    converter = staticmethod(time.gmtime)


_APP_LOGGER_NAME = "partner_hub"
_LOG_FORMAT = "%(asctime)sZ %(levelname)s pid=%(process)d %(name)s: %(message)s"


def _logs_dir() -> str:
    override = os.getenv("PARTNER_HUB_LOG_DIR")
    if override:
        return override
    return os.path.join(os.path.dirname(__file__), "logs")


def _formatter() -> logging.Formatter:
    return _UTCFormatter(fmt=_LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S")


def configure_app_logging(level_name: str = "INFO") -> logging.Logger:
    """Configure and return the application logger.

    Safe to call multiple times; only the level changes after the first call.
    """

    level = getattr(logging, (level_name or "INFO").upper(), logging.INFO)
    app_logger = logging.getLogger(_APP_LOGGER_NAME)
    app_logger.setLevel(level)

    if getattr(app_logger, "_configured", False):
        for handler in app_logger.handlers:
            handler.setLevel(level)
        return app_logger

    os.makedirs(_logs_dir(), exist_ok=True)

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(_formatter())

    file_handler = TimedRotatingFileHandler(
        os.path.join(_logs_dir(), "partner_hub.log"),
        when="midnight",
        interval=1,
        backupCount=14,
        utc=True,
        encoding="utf-8",
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(_formatter())

    app_logger.addHandler(console)
    app_logger.addHandler(file_handler)

    # Do not propagate to the global root logger (prevents double logging).
    app_logger.propagate = False

    app_logger._configured = True  # type: ignore[attr-defined]
    return app_logger


def get_logger(module_name: str | None = None) -> logging.Logger:
    """Return a child of the application logger.

    Example:
        logger = get_logger(__name__)

    Children propagate to the shared handlers, so every module ends up in the
    same rotating file.
    """

    configure_app_logging(os.getenv("LOG_LEVEL", "INFO"))
    return logging.getLogger(f"{_APP_LOGGER_NAME}.{module_name or 'app'}")
