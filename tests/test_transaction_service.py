"""Contract tests for the transaction service."""

from __future__ import annotations

import json
from datetime import date

import pytest

from backend.db.json_store import JsonDocumentStore, JsonStoreSettings
from backend.repositories.transactions_repository import (
    InMemoryTransactionsRepository,
    JsonFileTransactionsRepository,
)
from backend.services.transaction_service import (
    TimestampIdGenerator,
    TransactionService,
    parse_amount,
    validate_transaction_payload,
)
from shared.models import (
    ToolError,
    ToolErrorCode,
    TransactionCreateResult,
    TransactionDeleteResult,
    ValidationIssue,
)
from tests.fakes import FIXED_TODAY, FailingSaveStore, FakeClockMs, RecordingStore


def _build_service(store=None, **kwargs) -> TransactionService:
    repository = store if store is not None else InMemoryTransactionsRepository()
    repository.initialize()
    return TransactionService(
        store=repository,
        id_generator=TimestampIdGenerator(clock_ms=FakeClockMs()),
        today=lambda: FIXED_TODAY,
        **kwargs,
    )


def test_create_then_list_scenario() -> None:
    service = _build_service()

    salary = service.create_transaction("Salary", 1000, "income")
    assert isinstance(salary, TransactionCreateResult)
    assert salary.persisted is True
    assert salary.transaction.description == "Salary"
    assert salary.transaction.amount == 1000.0
    assert isinstance(salary.transaction.amount, float)
    assert salary.transaction.type == "income"
    assert salary.transaction.date == "14.03.2025"

    coffee = service.create_transaction("Coffee", 4.5, "expense")
    assert isinstance(coffee, TransactionCreateResult)

    assert [t.description for t in service.list_transactions()] == ["Coffee", "Salary"]

    deleted = service.remove_transaction(salary.transaction.id)
    assert isinstance(deleted, TransactionDeleteResult)
    assert [t.description for t in service.list_transactions()] == ["Coffee"]


def test_sequential_creates_get_distinct_increasing_ids() -> None:
    service = _build_service()

    ids = [service.create_transaction(f"item {index}", index + 1, "expense").transaction.id for index in range(5)]

    assert len(set(ids)) == 5
    assert ids == sorted(ids)


def test_id_is_wall_clock_milliseconds() -> None:
    service = _build_service()

    result = service.create_transaction("Rent", 500, "expense")

    assert result.transaction.id == 1_741_900_000_000


def test_id_generator_never_repeats_when_clock_stalls() -> None:
    generator = TimestampIdGenerator(clock_ms=lambda: 1000)

    assert [generator(), generator(), generator()] == [1000, 1001, 1002]


def test_id_generator_does_not_go_backwards_when_clock_does() -> None:
    readings = iter([2000, 1500, 2500])
    generator = TimestampIdGenerator(clock_ms=lambda: next(readings))

    assert [generator(), generator(), generator()] == [2000, 2001, 2500]


def test_create_uses_configured_date_format() -> None:
    service = _build_service(date_format="%Y-%m-%d")

    result = service.create_transaction("Book", "12.50", "expense")

    assert result.transaction.date == "2025-03-14"
    assert result.transaction.amount == 12.5


def test_create_uses_real_today_by_default() -> None:
    repository = InMemoryTransactionsRepository()
    repository.initialize()
    service = TransactionService(store=repository)

    result = service.create_transaction("Lunch", 9, "expense")

    assert result.transaction.date == date.today().strftime("%d.%m.%Y")


@pytest.mark.parametrize(
    ("description", "amount", "type_", "issue"),
    [
        ("", 10, "income", ValidationIssue.DESCRIPTION_MISSING),
        (None, 10, "income", ValidationIssue.DESCRIPTION_MISSING),
        ("desc", None, "income", ValidationIssue.AMOUNT_MISSING),
        ("desc", "", "income", ValidationIssue.AMOUNT_MISSING),
        ("desc", 10, "", ValidationIssue.TYPE_MISSING),
        ("desc", 10, None, ValidationIssue.TYPE_MISSING),
    ],
)
def test_create_rejects_missing_fields_and_leaves_store_untouched(description, amount, type_, issue) -> None:
    store = RecordingStore()
    service = _build_service(store=store)
    service.create_transaction("Existing", 1, "income")
    before = service.list_transactions()

    result = service.create_transaction(description, amount, type_)

    assert isinstance(result, ToolError)
    assert result.code == ToolErrorCode.VALIDATION_ERROR
    assert result.details == {"issues": [issue.value]}
    assert service.list_transactions() == before
    assert store.save_calls == 1


def test_create_accepts_zero_negative_amounts_and_any_type() -> None:
    service = _build_service()

    zero = service.create_transaction("Adjustment", 0, "income")
    negative = service.create_transaction("Refund", "-15", "transfer")

    assert zero.transaction.amount == 0.0
    assert negative.transaction.amount == -15.0
    assert negative.transaction.type == "transfer"


def test_validate_reports_every_issue_at_once() -> None:
    validation = validate_transaction_payload(None, None, None)

    assert validation.is_valid is False
    assert validation.payload is None
    assert validation.issues == [
        ValidationIssue.DESCRIPTION_MISSING,
        ValidationIssue.AMOUNT_MISSING,
        ValidationIssue.TYPE_MISSING,
    ]


@pytest.mark.parametrize(
    ("amount", "expected"),
    [
        ("12abc", 12.0),
        ("  -3.5 euros", -3.5),
        (".5", 0.5),
        ("1e3x", 1000.0),
        ("1.", 1.0),
    ],
)
def test_parse_amount_reads_leading_number(amount, expected) -> None:
    assert parse_amount(amount) == expected


@pytest.mark.parametrize("amount", ["abc", "nan", "inf", "Infinity", "-Infinity", True, [1], {"v": 1}, float("nan")])
def test_parse_amount_returns_none_without_finite_leading_number(amount) -> None:
    assert parse_amount(amount) is None


@pytest.mark.parametrize("amount", ["abc", "Infinity", True])
def test_create_accepts_unparseable_amounts_and_stores_none(amount) -> None:
    service = _build_service()

    result = service.create_transaction("desc", amount, "income")

    assert isinstance(result, TransactionCreateResult)
    assert result.transaction.amount is None
    assert service.list_transactions()[0].amount is None


def test_create_keeps_leading_number_of_amount_text() -> None:
    service = _build_service()

    result = service.create_transaction("desc", "12abc", "income")

    assert isinstance(result, TransactionCreateResult)
    assert result.transaction.amount == 12.0


def test_create_stores_non_string_description_and_type_in_json_spelling() -> None:
    service = _build_service()

    result = service.create_transaction(1, 5, True)

    assert result.transaction.description == "1"
    assert result.transaction.type == "true"


def test_validate_keeps_description_and_type_verbatim() -> None:
    validation = validate_transaction_payload("  Taxi  ", " 7 ", "EXPENSE")

    assert validation.is_valid is True
    assert validation.payload.description == "  Taxi  "
    assert validation.payload.amount == 7.0
    assert validation.payload.type == "EXPENSE"


def test_list_returns_stored_order_without_resorting() -> None:
    service = _build_service()
    first = service.create_transaction("First", 1, "income").transaction
    second = service.create_transaction("Second", 2, "income").transaction
    store = service.store
    store.save([first, second])

    assert [t.id for t in service.list_transactions()] == [first.id, second.id]


def test_remove_twice_reports_not_found() -> None:
    service = _build_service()
    created = service.create_transaction("Taxi", 20, "expense").transaction

    assert isinstance(service.remove_transaction(created.id), TransactionDeleteResult)
    assert all(t.id != created.id for t in service.list_transactions())

    second = service.remove_transaction(created.id)
    assert isinstance(second, ToolError)
    assert second.code == ToolErrorCode.NOT_FOUND


def test_remove_unknown_id_does_not_write() -> None:
    store = RecordingStore()
    service = _build_service(store=store)
    service.create_transaction("Taxi", 20, "expense")

    result = service.remove_transaction(42)

    assert isinstance(result, ToolError)
    assert result.code == ToolErrorCode.NOT_FOUND
    assert store.save_calls == 1


def test_create_returns_transaction_when_save_fails(caplog) -> None:
    store = FailingSaveStore()
    service = _build_service(store=store)

    result = service.create_transaction("Salary", 1000, "income")

    assert isinstance(result, TransactionCreateResult)
    assert result.persisted is False
    assert result.transaction.description == "Salary"
    assert service.list_transactions() == []
    assert "transaction_create_not_persisted" in caplog.text


def test_create_fails_on_save_error_in_strict_mode() -> None:
    service = _build_service(store=FailingSaveStore(), strict_persistence=True)

    result = service.create_transaction("Salary", 1000, "income")

    assert isinstance(result, ToolError)
    assert result.code == ToolErrorCode.BACKEND_ERROR
    assert result.details["error"] == "disk full"


def test_remove_reports_unpersisted_deletion(caplog) -> None:
    salary = _build_service().create_transaction("Salary", 1000, "income").transaction
    store = FailingSaveStore(transactions=[salary])
    service = _build_service(store=store)

    result = service.remove_transaction(salary.id)

    assert isinstance(result, TransactionDeleteResult)
    assert result.persisted is False
    assert "transaction_delete_not_persisted" in caplog.text


def test_remove_fails_on_save_error_in_strict_mode() -> None:
    salary = _build_service().create_transaction("Salary", 1000, "income").transaction
    service = _build_service(store=FailingSaveStore(transactions=[salary]), strict_persistence=True)

    result = service.remove_transaction(salary.id)

    assert isinstance(result, ToolError)
    assert result.code == ToolErrorCode.BACKEND_ERROR


def test_create_keeps_existing_records_next_to_a_null_amount(tmp_path) -> None:
    (tmp_path / "transactions.json").write_text(
        json.dumps(
            [
                {"id": 1, "description": "Salary", "amount": 1000, "type": "income", "date": "01.01.2025"},
                {"id": 2, "description": "Bad", "amount": None, "type": "income", "date": "01.01.2025"},
            ]
        ),
        encoding="utf-8",
    )
    repository = JsonFileTransactionsRepository(
        store=JsonDocumentStore(JsonStoreSettings(path=tmp_path / "transactions.json"))
    )
    service = _build_service(store=repository)

    service.create_transaction("Coffee", 4.5, "expense")

    assert [t.description for t in service.list_transactions()] == ["Coffee", "Salary", "Bad"]
