"""Configuration helpers for environment variables."""

from __future__ import annotations

import os
import logging

from dotenv import load_dotenv


logger = logging.getLogger(__name__)


_TRUE_VALUES = {"1", "true"}


def _should_load_dotenv() -> bool:
    """Return whether local dotenv loading should run."""
    app_env = os.getenv("APP_ENV", "dev").strip().lower()
    return app_env in {"dev", "local"}


if _should_load_dotenv():
    load_dotenv()


def get_env(name: str, default: str | None = None) -> str | None:
    """Return a raw environment value or default."""
    return os.getenv(name, default)


def app_env() -> str:
    """Return the current application environment."""
    return (get_env("APP_ENV", "dev") or "dev").strip() or "dev"


def cors_allow_origins() -> list[str]:
    """Return CORS allowed origins from env with safe environment defaults."""
    raw_origins = get_env("CORS_ALLOW_ORIGINS", "") or ""
    parsed_origins = [origin.strip() for origin in raw_origins.split(",") if origin.strip()]

    if parsed_origins:
        return parsed_origins

    if app_env().strip().lower() in {"dev", "local"}:
        return ["http://localhost:5173", "http://127.0.0.1:5173"]

    ui_origin = (get_env("UI_ORIGIN", "") or "").strip()
    if ui_origin:
        return [ui_origin]

    logger.warning(
        "cors_allow_origins_empty_in_prod app_env=%s; define CORS_ALLOW_ORIGINS or UI_ORIGIN",
        app_env(),
    )

    return []


def transactions_file() -> str:
    """Return the path of the JSON document holding all transactions."""
    return (get_env("TRANSACTIONS_FILE", "") or "").strip() or "transactions.json"


def transactions_date_format() -> str:
    """Return the strftime pattern used for the display `date` of new transactions."""
    return get_env("TRANSACTIONS_DATE_FORMAT") or "%d.%m.%Y"


def strict_persistence() -> bool:
    """Return whether a failed save should fail the create/delete operation."""
    raw_value = get_env("TRANSACTIONS_STRICT_PERSISTENCE", "") or ""
    return raw_value.strip().lower() in _TRUE_VALUES


def log_level() -> str:
    """Return the root log level name."""
    return (get_env("LOG_LEVEL", "INFO") or "INFO").strip().upper() or "INFO"
