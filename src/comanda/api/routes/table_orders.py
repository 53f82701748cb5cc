from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Response, status
from opentelemetry import trace

from comanda.api.middleware.request_id import get_request_id
from comanda.application.dto.requests import (
    AddTableOrderItemRequest,
    CloseTableOrderRequest,
    TransferTableRequest,
    UpdateItemStatusRequest,
)
from comanda.application.dto.responses import (
    AddTableOrderItemResponse,
    TableOrderItemResponse,
    TableOrderResponse,
    TableOrdersResponse,
    TransferTableResponse,
)
from comanda.application.use_cases.context import TraceContext
from comanda.application.use_cases.table_lifecycle import (
    CancelTableOrder,
    CloseTableOrder,
    ReopenTableOrder,
    RequestBill,
    TransferTable,
)
from comanda.application.use_cases.table_order_items import (
    AddTableOrderItem,
    RemoveTableOrderItem,
    UpdateItemStatus,
)
from comanda.application.use_cases.table_orders import (
    GetTableOrder,
    ListClosedTableOrders,
    ListTableOpenOrders,
)
from comanda.domain.common.ids import TableId, TableOrderId, TableOrderItemId
from comanda.infrastructure.db.repositories.table_repo import SqlAlchemyTableSessionRepository
from comanda.infrastructure.messaging.redis_publisher import RedisEventPublisher

router = APIRouter()


def _current_trace_id() -> str | None:
    span_context = trace.get_current_span().get_span_context()
    if not span_context.is_valid:
        return None
    return format(span_context.trace_id, "032x")


def _trace_ctx() -> TraceContext:
    return TraceContext(trace_id=_current_trace_id(), request_id=get_request_id())


def _repository() -> SqlAlchemyTableSessionRepository:
    return SqlAlchemyTableSessionRepository()


def _command(use_case_cls):
    return use_case_cls(_repository(), RedisEventPublisher())


@router.get("/v1/table-orders", response_model=TableOrdersResponse)
def list_open_table_orders() -> TableOrdersResponse:
    return ListTableOpenOrders(_repository()).execute()


@router.get("/v1/table-orders/closed", response_model=TableOrdersResponse)
def list_closed_table_orders(start: datetime, end: datetime) -> TableOrdersResponse:
    return ListClosedTableOrders(_repository()).execute(start, end)


@router.get("/v1/table-orders/{order_id}", response_model=TableOrderResponse)
def get_table_order(order_id: str) -> TableOrderResponse:
    return GetTableOrder(_repository()).execute(TableOrderId(order_id))


@router.post(
    "/v1/table-orders/{order_id}/items",
    response_model=AddTableOrderItemResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_table_order_item(
    order_id: str,
    request: AddTableOrderItemRequest,
) -> AddTableOrderItemResponse:
    return _command(AddTableOrderItem).execute(TableOrderId(order_id), request, _trace_ctx())


@router.patch("/v1/table-order-items/{item_id}", response_model=TableOrderItemResponse)
def update_item_status(item_id: str, request: UpdateItemStatusRequest) -> TableOrderItemResponse:
    return _command(UpdateItemStatus).execute(TableOrderItemId(item_id), request.status, _trace_ctx())


@router.delete("/v1/table-order-items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_item(item_id: str) -> Response:
    _command(RemoveTableOrderItem).execute(TableOrderItemId(item_id), _trace_ctx())
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/v1/table-orders/{order_id}/request-bill", response_model=TableOrderResponse)
def request_bill(order_id: str) -> TableOrderResponse:
    return _command(RequestBill).execute(TableOrderId(order_id), _trace_ctx())


@router.post("/v1/table-orders/{order_id}/reopen", response_model=TableOrderResponse)
def reopen_table_order(order_id: str) -> TableOrderResponse:
    return _command(ReopenTableOrder).execute(TableOrderId(order_id), _trace_ctx())


@router.post("/v1/table-orders/{order_id}/close", response_model=TableOrderResponse)
def close_table_order(order_id: str, request: CloseTableOrderRequest) -> TableOrderResponse:
    return _command(CloseTableOrder).execute(TableOrderId(order_id), request, _trace_ctx())


@router.post("/v1/table-orders/{order_id}/cancel", response_model=TableOrderResponse)
def cancel_table_order(order_id: str) -> TableOrderResponse:
    return _command(CancelTableOrder).execute(TableOrderId(order_id), _trace_ctx())


@router.post("/v1/table-orders/{order_id}/transfer", response_model=TransferTableResponse)
def transfer_table(order_id: str, request: TransferTableRequest) -> TransferTableResponse:
    return _command(TransferTable).execute(
        TableOrderId(order_id),
        TableId(request.to_table_id),
        _trace_ctx(),
    )
