"""App settings.

Flask loads this module on startup via ``app.config.from_pyfile(...)``;
environment variables listed in ``config.ENV_OVERRIDES`` replace these
defaults only when they are set.
"""

# Single source of truth for default app configuration.
SETTINGS: dict[str, object] = {
    # Flask
    "SECRET_KEY": "dev-not-secret",
    # Logging
    "LOG_LEVEL": "INFO",
    # Feature flags
    "ENABLE_CATEGORIES": True,
    # Paging for list endpoints
    "DEFAULT_PAGE_LIMIT": 20,
    "MAX_PAGE_LIMIT": 200,
}

# Flask's from_pyfile only picks up upper-case module attributes.
SECRET_KEY = SETTINGS["SECRET_KEY"]
LOG_LEVEL = SETTINGS["LOG_LEVEL"]
DEFAULT_PAGE_LIMIT = SETTINGS["DEFAULT_PAGE_LIMIT"]
MAX_PAGE_LIMIT = SETTINGS["MAX_PAGE_LIMIT"]
ENABLE_CATEGORIES = SETTINGS["ENABLE_CATEGORIES"]
