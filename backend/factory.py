"""Composition root for backend services."""

from __future__ import annotations

import logging
from pathlib import Path

from backend.db.json_store import JsonDocumentStore, JsonStoreSettings
from backend.repositories.transactions_repository import JsonFileTransactionsRepository
from backend.services.transaction_service import TransactionService
from shared import config


logger = logging.getLogger(__name__)


def build_transaction_service() -> TransactionService:
    """Build the transaction service over the configured JSON document.

    The backing document is created on first use; a failure to create it is
    logged and the service still starts, reading as an empty list.
    """

    store = JsonDocumentStore(JsonStoreSettings(path=Path(config.transactions_file())))
    repository = JsonFileTransactionsRepository(store=store)

    init_result = repository.initialize()
    if not init_result.ok:
        logger.warning("transactions_store_unavailable path=%s error=%s", store.path, init_result.error)

    return TransactionService(
        store=repository,
        date_format=config.transactions_date_format(),
        strict_persistence=config.strict_persistence(),
    )
