"""Transactions repository adapters.

The whole transaction list is one unit of persistence: every load reads the
full document and every save rewrites it.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from pydantic import ValidationError

from backend.db.json_store import JsonDocumentStore
from shared.models import StoreResult, Transaction


logger = logging.getLogger(__name__)


class TransactionsStore(Protocol):
    def initialize(self) -> StoreResult:
        """Create an empty backing document when none exists. Safe to call repeatedly."""

    def load(self) -> list[Transaction]:
        """Return all stored transactions in stored order, or [] when unreadable."""

    def save(self, transactions: list[Transaction]) -> StoreResult:
        """Overwrite the stored sequence with `transactions`."""


class InMemoryTransactionsRepository:
    """In-memory store used by tests/dev."""

    def __init__(self, transactions: list[Transaction] | None = None) -> None:
        self._transactions: list[Transaction] | None = (
            list(transactions) if transactions is not None else None
        )

    def initialize(self) -> StoreResult:
        if self._transactions is None:
            self._transactions = []
        return StoreResult(ok=True)

    def load(self) -> list[Transaction]:
        return [transaction.model_copy() for transaction in self._transactions or []]

    def save(self, transactions: list[Transaction]) -> StoreResult:
        self._transactions = [transaction.model_copy() for transaction in transactions]
        return StoreResult(ok=True)


class JsonFileTransactionsRepository:
    """Fail-soft repository over a JSON array document.

    Records that do not match the transaction schema are skipped on load but
    kept as-is and written back after the readable ones on the next save.
    """

    def __init__(self, store: JsonDocumentStore) -> None:
        self._store = store
        self._unreadable_records: list[Any] = []

    def initialize(self) -> StoreResult:
        try:
            created = self._store.ensure_document([])
        except OSError as exc:
            logger.exception("transactions_store_initialize_failed path=%s", self._store.path)
            return StoreResult(ok=False, error=str(exc))

        if created:
            logger.info("transactions_store_created path=%s", self._store.path)
        return StoreResult(ok=True)

    def load(self) -> list[Transaction]:
        self._unreadable_records = []
        try:
            document = self._store.read_document()
        except Exception:
            logger.exception("transactions_store_read_failed path=%s", self._store.path)
            return []

        if not isinstance(document, list):
            logger.error(
                "transactions_store_read_failed path=%s reason=not_a_list type=%s",
                self._store.path,
                type(document).__name__,
            )
            return []

        transactions: list[Transaction] = []
        for index, record in enumerate(document):
            try:
                transactions.append(Transaction.model_validate(record))
            except ValidationError as exc:
                logger.warning(
                    "transactions_store_record_skipped path=%s index=%s errors=%s",
                    self._store.path,
                    index,
                    exc.errors(include_url=False),
                )
                self._unreadable_records.append(record)
        return transactions

    def save(self, transactions: list[Transaction]) -> StoreResult:
        document = [transaction.model_dump(mode="json") for transaction in transactions]
        document.extend(self._unreadable_records)
        try:
            self._store.write_document(document)
        except (OSError, TypeError, ValueError) as exc:
            logger.exception(
                "transactions_store_write_failed path=%s count=%s",
                self._store.path,
                len(transactions),
            )
            return StoreResult(ok=False, error=str(exc))
        return StoreResult(ok=True)
