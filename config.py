import logging
import os
from typing import Any, Callable, Dict

from logging_utils import get_logger


def _env_bool(raw: str) -> bool:
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(raw: str) -> int:
    return int(raw.strip())


def _env_str(raw: str) -> str:
    return raw.strip()


# Config key -> parser for its environment variable (same name).
ENV_OVERRIDES: Dict[str, Callable[[str], Any]] = {
    "SECRET_KEY": _env_str,
    "ENABLE_CATEGORIES": _env_bool,
    "DEFAULT_PAGE_LIMIT": _env_int,
    "MAX_PAGE_LIMIT": _env_int,
    "LOG_LEVEL": lambda raw: raw.strip().upper(),
}


def env_overrides() -> Dict[str, Any]:
    """Config values taken from environment variables that are actually set.

    Unset (or blank) variables are left out so the defaults from
    `settings.py` stay in effect. Unparsable values are ignored the same way.
    """

    overrides: Dict[str, Any] = {}
    for key, parse in ENV_OVERRIDES.items():
        raw = os.getenv(key)
        if raw is None or not raw.strip():
            continue
        try:
            overrides[key] = parse(raw)
        except ValueError:
            get_logger(__name__).warning("Ignoring invalid %s=%r", key, raw)
    return overrides


def configure_logging(app_logger: logging.Logger, level_name: str) -> None:
    """Route Flask's own logger through the level used by the app logger."""

    level = getattr(logging, level_name, logging.INFO)

    # Avoid duplicate handlers (e.g., in tests or reload scenarios)
    if app_logger.handlers:
        app_logger.setLevel(level)
        return

    handler = logging.StreamHandler()
    formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    handler.setFormatter(formatter)

    app_logger.addHandler(handler)
    app_logger.setLevel(level)
