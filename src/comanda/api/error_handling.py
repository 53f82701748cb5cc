from __future__ import annotations

import logging
from typing import Any, cast

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from comanda.api.middleware.request_id import get_request_id
from comanda.application.ports.repositories import (
    OptimisticConcurrencyError,
    TableNumberTakenError,
)
from comanda.application.use_cases.board import InvalidBoardRequestError
from comanda.application.use_cases.close_table import NoOpenTableOrdersError
from comanda.application.use_cases.get_order import InvalidOrderStatusError, OrderNotFoundError
from comanda.application.use_cases.kitchen_queue import InvalidKitchenQueueStatusError
from comanda.application.use_cases.list_tables import InvalidTableListStatusError
from comanda.application.use_cases.open_table import TableNotAvailableError, TableNotFoundError
from comanda.application.use_cases.place_order import InvalidCouponError, InvalidPaymentMethodError
from comanda.application.use_cases.table_lifecycle import InvalidBillingError, SameTableTransferError
from comanda.application.use_cases.table_order_items import (
    InvalidItemStatusError,
    InvalidItemTransitionError,
    ItemRemovalNotAllowedError,
    TableOrderItemNotFoundError,
    TableOrderNotOpenError,
)
from comanda.application.use_cases.table_orders import InvalidDateRangeError
from comanda.application.use_cases.table_state import TableOrderNotFoundError
from comanda.application.use_cases.update_order_status import OrderConflictError
from comanda.domain.billing.totals import InvalidBillingOptionsError
from comanda.domain.order.entities import CouponNotApplicableError
from comanda.domain.table.entities import TableTransitionError
from comanda.domain.table_order.entities import ItemTransitionError, TableOrderTransitionError

logger = logging.getLogger(__name__)


def _error_response(
    *,
    status_code: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": code,
                "message": message,
                "details": details or {},
            },
            "requestId": get_request_id(),
        },
    )


def _exception_handler(status_code: int, code: str):
    async def handler(_: Request, exc: Exception) -> JSONResponse:
        details = getattr(exc, "details", None)
        return _error_response(
            status_code=status_code,
            code=code,
            message=str(exc),
            details=details if isinstance(details, dict) else None,
        )

    return handler


async def _http_exception_handler(_: Request, exc: Exception) -> JSONResponse:
    http_exc = cast(StarletteHTTPException, exc)
    message = str(http_exc.detail) if http_exc.detail else "request failed"
    code = "HTTP_ERROR"
    if http_exc.status_code == 404:
        code = "NOT_FOUND"
    elif http_exc.status_code == 400:
        code = "BAD_REQUEST"
    elif http_exc.status_code == 409:
        code = "CONFLICT"
    return _error_response(
        status_code=http_exc.status_code,
        code=code,
        message=message,
    )


async def _validation_exception_handler(_: Request, exc: Exception) -> JSONResponse:
    validation_exc = cast(RequestValidationError, exc)
    return _error_response(
        status_code=400,
        code="INVALID_REQUEST",
        message="request validation failed",
        details={"errors": jsonable_encoder(validation_exc.errors())},
    )


async def _model_validation_exception_handler(_: Request, exc: Exception) -> JSONResponse:
    validation_exc = cast(ValidationError, exc)
    return _error_response(
        status_code=400,
        code="INVALID_REQUEST",
        message="request validation failed",
        details={"errors": jsonable_encoder(validation_exc.errors(include_url=False))},
    )


async def _store_exception_handler(_: Request, exc: Exception) -> JSONResponse:
    logger.error("store_unavailable", extra={"error": type(exc).__name__})
    return _error_response(
        status_code=503,
        code="STORE_UNAVAILABLE",
        message="order store is unavailable, try again",
        details={"retryable": True},
    )


def register_exception_handlers(app: FastAPI) -> None:
    mappings: list[tuple[type[Exception], int, str]] = [
        (TableNotFoundError, 404, "TABLE_NOT_FOUND"),
        (TableOrderNotFoundError, 404, "TABLE_ORDER_NOT_FOUND"),
        (TableOrderItemNotFoundError, 404, "TABLE_ORDER_ITEM_NOT_FOUND"),
        (OrderNotFoundError, 404, "ORDER_NOT_FOUND"),
        (TableNotAvailableError, 409, "TABLE_NOT_AVAILABLE"),
        (TableNumberTakenError, 409, "TABLE_NUMBER_TAKEN"),
        (TableOrderNotOpenError, 409, "TABLE_ORDER_NOT_OPEN"),
        (NoOpenTableOrdersError, 409, "NO_OPEN_TABLE_ORDERS"),
        (SameTableTransferError, 409, "SAME_TABLE_TRANSFER"),
        (ItemRemovalNotAllowedError, 409, "ITEM_REMOVAL_NOT_ALLOWED"),
        (InvalidItemTransitionError, 409, "INVALID_ITEM_TRANSITION"),
        (ItemTransitionError, 409, "INVALID_ITEM_TRANSITION"),
        (TableOrderTransitionError, 409, "INVALID_TABLE_ORDER_TRANSITION"),
        (TableTransitionError, 409, "INVALID_TABLE_TRANSITION"),
        (OrderConflictError, 409, "CONFLICT"),
        (OptimisticConcurrencyError, 409, "CONFLICT"),
        (InvalidBillingError, 400, "INVALID_BILLING"),
        (InvalidBillingOptionsError, 400, "INVALID_BILLING"),
        (InvalidItemStatusError, 400, "INVALID_ITEM_STATUS"),
        (InvalidOrderStatusError, 400, "INVALID_ORDER_STATUS"),
        (InvalidPaymentMethodError, 400, "INVALID_PAYMENT_METHOD"),
        (InvalidCouponError, 400, "INVALID_COUPON"),
        (CouponNotApplicableError, 400, "COUPON_NOT_APPLICABLE"),
        (InvalidBoardRequestError, 400, "INVALID_BOARD_REQUEST"),
        (InvalidKitchenQueueStatusError, 400, "INVALID_KITCHEN_QUEUE_STATUS"),
        (InvalidTableListStatusError, 400, "INVALID_TABLE_STATUS"),
        (InvalidDateRangeError, 400, "INVALID_DATE_RANGE"),
    ]

    for exc_cls, status_code, code in mappings:
        app.add_exception_handler(exc_cls, _exception_handler(status_code, code))

    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(ValidationError, _model_validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, _store_exception_handler)
