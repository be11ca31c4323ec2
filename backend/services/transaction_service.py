"""Transaction service: validation, identity, ordering and list mutations.

Every operation reads the full list from the store, changes it in memory and
writes the full list back. There is no locking: two overlapping mutations can
lose one of the writes.
"""

from __future__ import annotations

import logging
import math
import re
import time
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable

from backend.repositories.transactions_repository import TransactionsStore
from shared.models import (
    ToolError,
    ToolErrorCode,
    Transaction,
    TransactionCreateResult,
    TransactionDeleteResult,
    TransactionValidation,
    ValidationIssue,
    ValidTransactionPayload,
    as_text,
)


logger = logging.getLogger(__name__)

DEFAULT_DATE_FORMAT = "%d.%m.%Y"

_ISSUE_MESSAGES = {
    ValidationIssue.DESCRIPTION_MISSING: "description is required",
    ValidationIssue.AMOUNT_MISSING: "amount is required",
    ValidationIssue.TYPE_MISSING: "type is required",
}

_LEADING_FLOAT_PATTERN = re.compile(r"[+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value == "")


def parse_amount(value: Any) -> float | None:
    """Read the longest leading number of `value`, or None when there is none.

    `"12abc"` gives 12.0 and `"abc"` gives None. Non-finite results are None
    since they cannot be written to JSON.
    """

    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        amount = float(value)
    elif isinstance(value, str):
        match = _LEADING_FLOAT_PATTERN.match(value.lstrip())
        if match is None:
            return None
        amount = float(match.group(0).replace("Infinity", "inf"))
    else:
        return None
    return amount if math.isfinite(amount) else None


def validate_transaction_payload(
    description: Any,
    amount: Any,
    type: Any,
) -> TransactionValidation:
    """Check presence of the create fields and coerce `amount` to float.

    Only presence is enforced. `description` and `type` are kept as given
    (non-string values in their JSON spelling), including types other than
    income/expense. Zero, negative and unparseable amounts are accepted; an
    amount with no leading number is stored as None.
    """

    issues: list[ValidationIssue] = []
    if _is_blank(description):
        issues.append(ValidationIssue.DESCRIPTION_MISSING)
    if _is_blank(amount):
        issues.append(ValidationIssue.AMOUNT_MISSING)
    if _is_blank(type):
        issues.append(ValidationIssue.TYPE_MISSING)

    if issues:
        return TransactionValidation(issues=issues)

    return TransactionValidation(
        payload=ValidTransactionPayload(
            description=as_text(description),
            amount=parse_amount(amount),
            type=as_text(type),
        )
    )


class TimestampIdGenerator:
    """Issue ids from the wall clock in milliseconds since epoch.

    Ids are bumped to `last + 1` when the clock has not advanced, so ids from
    one process are strictly increasing. Two processes writing the same store
    within the same millisecond can still collide.
    """

    def __init__(self, clock_ms: Callable[[], int] | None = None) -> None:
        self._clock_ms = clock_ms or (lambda: time.time_ns() // 1_000_000)
        self._last_id: int | None = None

    def __call__(self) -> int:
        candidate = int(self._clock_ms())
        if self._last_id is not None and candidate <= self._last_id:
            candidate = self._last_id + 1
        self._last_id = candidate
        return candidate


@dataclass(slots=True)
class TransactionService:
    store: TransactionsStore
    id_generator: Callable[[], int] = field(default_factory=TimestampIdGenerator)
    today: Callable[[], date] = date.today
    date_format: str = DEFAULT_DATE_FORMAT
    strict_persistence: bool = False

    def list_transactions(self) -> list[Transaction]:
        return self.store.load()

    def create_transaction(
        self,
        description: Any = None,
        amount: Any = None,
        type: Any = None,
    ) -> TransactionCreateResult | ToolError:
        validation = validate_transaction_payload(description, amount, type)
        if not validation.is_valid:
            logger.info(
                "transaction_create_rejected issues=%s",
                ",".join(issue.value for issue in validation.issues),
            )
            return ToolError(
                code=ToolErrorCode.VALIDATION_ERROR,
                message="Missing required fields: "
                + "; ".join(_ISSUE_MESSAGES[issue] for issue in validation.issues),
                details={"issues": [issue.value for issue in validation.issues]},
            )

        payload = validation.payload
        transaction = Transaction(
            id=self.id_generator(),
            description=payload.description,
            amount=payload.amount,
            type=payload.type,
            date=self.today().strftime(self.date_format),
        )

        transactions = self.list_transactions()
        transactions.insert(0, transaction)
        save_result = self.store.save(transactions)

        if not save_result.ok:
            if self.strict_persistence:
                return ToolError(
                    code=ToolErrorCode.BACKEND_ERROR,
                    message="Failed to persist transaction",
                    details={"id": transaction.id, "error": save_result.error},
                )
            logger.warning(
                "transaction_create_not_persisted id=%s error=%s",
                transaction.id,
                save_result.error,
            )

        logger.info("transaction_created id=%s type=%s", transaction.id, transaction.type)
        return TransactionCreateResult(transaction=transaction, persisted=save_result.ok)

    def remove_transaction(self, transaction_id: int) -> TransactionDeleteResult | ToolError:
        transactions = self.list_transactions()
        remaining = [transaction for transaction in transactions if transaction.id != transaction_id]

        if len(remaining) == len(transactions):
            return ToolError(
                code=ToolErrorCode.NOT_FOUND,
                message="Transaction not found",
                details={"id": transaction_id},
            )

        save_result = self.store.save(remaining)
        if not save_result.ok:
            if self.strict_persistence:
                return ToolError(
                    code=ToolErrorCode.BACKEND_ERROR,
                    message="Failed to persist deletion",
                    details={"id": transaction_id, "error": save_result.error},
                )
            logger.warning(
                "transaction_delete_not_persisted id=%s error=%s",
                transaction_id,
                save_result.error,
            )

        logger.info("transaction_deleted id=%s", transaction_id)
        return TransactionDeleteResult(id=transaction_id, persisted=save_result.ok)
