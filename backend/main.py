"""Backend entrypoint helpers."""

import logging

from backend.factory import build_transaction_service
from shared import config


def configure_logging() -> None:
    """Apply the configured root log level."""
    logging.basicConfig(level=config.log_level())


def create_backend_services() -> dict[str, object]:
    """Factory for backend service objects used by API or local integrations."""
    return {"transaction_service": build_transaction_service()}
