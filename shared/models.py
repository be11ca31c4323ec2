"""Pydantic contracts shared by the store, the service and the HTTP layer."""

from __future__ import annotations

import json
import math
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def as_text(value: Any) -> str:
    """Return strings unchanged and other JSON values in their JSON spelling."""

    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


class ToolErrorCode(str, Enum):
    """Stable error codes for service contracts across layers."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    BACKEND_ERROR = "BACKEND_ERROR"


class TransactionType(str, Enum):
    """Conventional transaction kinds. Stored `type` values are not restricted to these."""

    INCOME = "income"
    EXPENSE = "expense"


class ValidationIssue(str, Enum):
    """Reasons a create payload can be rejected."""

    DESCRIPTION_MISSING = "description_missing"
    AMOUNT_MISSING = "amount_missing"
    TYPE_MISSING = "type_missing"


class Transaction(BaseModel):
    """A stored transaction. `amount` is None when the submitted value was not a number."""

    model_config = ConfigDict(extra="ignore")

    id: int
    description: str
    amount: float | None
    type: str
    date: str

    @field_validator("description", "type", mode="before")
    @classmethod
    def normalize_text(cls, value: Any) -> Any:
        return value if value is None else as_text(value)

    @field_validator("amount")
    @classmethod
    def drop_non_finite_amount(cls, value: float | None) -> float | None:
        if value is None or math.isfinite(value):
            return value
        return None


class TransactionCreateRequest(BaseModel):
    """Raw create payload; presence and shape are checked by the service."""

    model_config = ConfigDict(extra="ignore")

    description: Any = None
    amount: Any = None
    type: Any = None


class ValidTransactionPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    description: str
    amount: float | None
    type: str


class TransactionValidation(BaseModel):
    """Tagged validation outcome: either `payload` or a non-empty `issues` list."""

    model_config = ConfigDict(extra="forbid")

    payload: ValidTransactionPayload | None = None
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.payload is not None and not self.issues


class StoreResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    ok: bool
    error: str | None = None


class TransactionCreateResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    transaction: Transaction
    persisted: bool


class TransactionDeleteResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: int
    persisted: bool


class ToolError(BaseModel):
    model_config = ConfigDict(extra="forbid")

    code: ToolErrorCode
    message: str
    details: dict[str, object] | None = None
