from __future__ import annotations

from fastapi import APIRouter, Query
from opentelemetry import trace

from comanda.api.middleware.request_id import get_request_id
from comanda.application.dto.requests import BoardStatusRequest
from comanda.application.dto.responses import BoardOrderResponse, BoardResponse
from comanda.application.use_cases.board import (
    AdvanceBoardOrder,
    ListBoardOrders,
    UpdateBoardOrderStatus,
)
from comanda.application.use_cases.context import TraceContext
from comanda.infrastructure.db.repositories.order_repo import SqlAlchemyDeliveryOrderRepository
from comanda.infrastructure.db.repositories.table_repo import SqlAlchemyTableSessionRepository
from comanda.infrastructure.messaging.redis_publisher import RedisEventPublisher

router = APIRouter()


def _current_trace_id() -> str | None:
    span_context = trace.get_current_span().get_span_context()
    if not span_context.is_valid:
        return None
    return format(span_context.trace_id, "032x")


def _list_board_use_case() -> ListBoardOrders:
    return ListBoardOrders(
        order_repository=SqlAlchemyDeliveryOrderRepository(),
        session_repository=SqlAlchemyTableSessionRepository(),
    )


def _update_board_status_use_case() -> UpdateBoardOrderStatus:
    return UpdateBoardOrderStatus(
        order_repository=SqlAlchemyDeliveryOrderRepository(),
        session_repository=SqlAlchemyTableSessionRepository(),
        publisher=RedisEventPublisher(),
    )


def _advance_board_order_use_case() -> AdvanceBoardOrder:
    return AdvanceBoardOrder(
        order_repository=SqlAlchemyDeliveryOrderRepository(),
        session_repository=SqlAlchemyTableSessionRepository(),
        publisher=RedisEventPublisher(),
    )


@router.get("/v1/board", response_model=BoardResponse)
def list_board(kind: str = Query(default="ALL")) -> BoardResponse:
    return _list_board_use_case().execute(kind=kind)


@router.patch("/v1/board/{kind}/{order_id}/status", response_model=BoardOrderResponse)
def update_board_status(kind: str, order_id: str, request: BoardStatusRequest) -> BoardOrderResponse:
    return _update_board_status_use_case().execute(
        kind=kind,
        order_id=order_id,
        status=request.status,
        trace_ctx=TraceContext(trace_id=_current_trace_id(), request_id=get_request_id()),
    )


@router.post("/v1/board/{kind}/{order_id}/advance", response_model=BoardOrderResponse)
def advance_board_order(kind: str, order_id: str) -> BoardOrderResponse:
    return _advance_board_order_use_case().execute(
        kind=kind,
        order_id=order_id,
        trace_ctx=TraceContext(trace_id=_current_trace_id(), request_id=get_request_id()),
    )
