"""FastAPI entrypoint for the transactions HTTP endpoints."""

from __future__ import annotations

import logging
import re
from functools import lru_cache
from typing import Any, NoReturn

from fastapi import FastAPI, HTTPException
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.requests import Request
from fastapi.responses import JSONResponse

from shared import config as _config
from backend.factory import build_transaction_service
from backend.main import configure_logging
from backend.services.transaction_service import TransactionService
from shared.models import ToolError, ToolErrorCode, TransactionCreateRequest


logger = logging.getLogger(__name__)

_ERROR_STATUS_CODES = {
    ToolErrorCode.VALIDATION_ERROR: 400,
    ToolErrorCode.NOT_FOUND: 404,
    ToolErrorCode.BACKEND_ERROR: 500,
}
_LEADING_INT_PATTERN = re.compile(r"\s*([+-]?\d+)")
_TRANSACTIONS_PATH = "/api/transactions"


@lru_cache(maxsize=1)
def get_transaction_service() -> TransactionService:
    """Create and cache the transaction service once per process."""

    service = build_transaction_service()
    logger.info("using_transactions_store=%s", service.store.__class__.__name__)
    return service


def _raise_for_tool_error(result: ToolError) -> NoReturn:
    raise HTTPException(
        status_code=_ERROR_STATUS_CODES.get(result.code, 500),
        detail=result.message,
    )


def _parse_transaction_id(raw_id: str) -> int | None:
    """Read the leading integer of a path id, so `"17abc"` gives 17."""

    match = _LEADING_INT_PATTERN.match(raw_id)
    return int(match.group(1)) if match else None


configure_logging()

app = FastAPI(title="Finance Tracker API")

ALLOW_ORIGINS = _config.cors_allow_origins()


@app.middleware("http")
async def log_http_requests(request: Request, call_next):
    """Log incoming requests, HTTP status codes and unexpected errors."""

    logger.info("http_request_received method=%s path=%s", request.method, request.url.path)
    try:
        response = await call_next(request)
    except Exception:
        logger.exception(
            "http_request_failed method=%s path=%s",
            request.method,
            request.url.path,
        )
        raise

    logger.info(
        "http_response_sent method=%s path=%s status_code=%s",
        request.method,
        request.url.path,
        response.status_code,
    )
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger.info("cors_allow_origins=%s", ALLOW_ORIGINS)


@app.exception_handler(Exception)
async def handle_unexpected_exception(request: Request, exc: Exception) -> JSONResponse:
    """Return a JSON 500 response for unhandled exceptions."""

    logger.exception(
        "unhandled_exception method=%s path=%s exception_type=%s message=%s",
        request.method,
        request.url.path,
        type(exc).__name__,
        str(exc),
        exc_info=exc,
    )
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


@app.exception_handler(RequestValidationError)
async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report unreadable create bodies as missing fields, like an empty body."""

    if request.method == "POST" and request.url.path == _TRANSACTIONS_PATH:
        logger.info("transaction_create_body_invalid errors=%s", exc.errors())
        return JSONResponse(status_code=400, content={"detail": "Missing required fields"})
    return await request_validation_exception_handler(request, exc)


@app.get("/health")
def health() -> dict[str, str]:
    """Healthcheck endpoint."""

    return {"status": "ok"}


@app.get("/api/transactions")
def list_transactions() -> Any:
    """Return all transactions, most recent first."""

    return jsonable_encoder(get_transaction_service().list_transactions())


@app.post("/api/transactions", status_code=201)
def create_transaction(payload: TransactionCreateRequest | None = None) -> JSONResponse:
    """Create a transaction and return it. A missing body counts as an empty one."""

    if payload is None:
        payload = TransactionCreateRequest()
    result = get_transaction_service().create_transaction(
        description=payload.description,
        amount=payload.amount,
        type=payload.type,
    )
    if isinstance(result, ToolError):
        _raise_for_tool_error(result)

    return JSONResponse(
        status_code=201,
        content=jsonable_encoder(result.transaction),
        headers={"X-Transaction-Persisted": "true" if result.persisted else "false"},
    )


@app.delete("/api/transactions/{transaction_id}")
def delete_transaction(transaction_id: str) -> dict[str, str]:
    """Delete one transaction by id."""

    parsed_id = _parse_transaction_id(transaction_id)
    if parsed_id is None:
        raise HTTPException(status_code=404, detail="Transaction not found")

    result = get_transaction_service().remove_transaction(parsed_id)
    if isinstance(result, ToolError):
        _raise_for_tool_error(result)

    return {"message": "Transaction deleted"}
