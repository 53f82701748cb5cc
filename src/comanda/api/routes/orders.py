from __future__ import annotations

from fastapi import APIRouter, Query, status
from opentelemetry import trace

from comanda.api.middleware.request_id import get_request_id
from comanda.application.dto.requests import PlaceDeliveryOrderRequest, UpdateOrderStatusRequest
from comanda.application.dto.responses import OrderResponse, OrdersResponse
from comanda.application.use_cases.context import TraceContext
from comanda.application.use_cases.get_order import (
    GetDeliveryOrder,
    ListDeliveryOrders,
    parse_order_status,
)
from comanda.application.use_cases.place_order import PlaceDeliveryOrder
from comanda.application.use_cases.update_order_status import UpdateDeliveryOrderStatus
from comanda.domain.common.ids import OrderId
from comanda.infrastructure.db.repositories.order_repo import SqlAlchemyDeliveryOrderRepository
from comanda.infrastructure.messaging.redis_publisher import RedisEventPublisher

router = APIRouter()


def _current_trace_id() -> str | None:
    span_context = trace.get_current_span().get_span_context()
    if not span_context.is_valid:
        return None
    return format(span_context.trace_id, "032x")


def _place_order_use_case() -> PlaceDeliveryOrder:
    return PlaceDeliveryOrder(
        order_repository=SqlAlchemyDeliveryOrderRepository(),
        publisher=RedisEventPublisher(),
    )


def _get_order_use_case() -> GetDeliveryOrder:
    return GetDeliveryOrder(order_repository=SqlAlchemyDeliveryOrderRepository())


def _list_orders_use_case() -> ListDeliveryOrders:
    return ListDeliveryOrders(order_repository=SqlAlchemyDeliveryOrderRepository())


def _update_order_status_use_case() -> UpdateDeliveryOrderStatus:
    return UpdateDeliveryOrderStatus(
        order_repository=SqlAlchemyDeliveryOrderRepository(),
        publisher=RedisEventPublisher(),
    )


@router.post("/v1/orders", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
def place_order(request: PlaceDeliveryOrderRequest) -> OrderResponse:
    return _place_order_use_case().execute(
        request_dto=request,
        trace_ctx=TraceContext(trace_id=_current_trace_id(), request_id=get_request_id()),
    )


@router.get("/v1/orders", response_model=OrdersResponse)
def list_orders(order_status: str = Query(default="ALL", alias="status")) -> OrdersResponse:
    return _list_orders_use_case().execute(status=order_status)


@router.get("/v1/orders/{order_id}", response_model=OrderResponse)
def get_order(order_id: str) -> OrderResponse:
    return _get_order_use_case().execute(OrderId(order_id))


@router.patch("/v1/orders/{order_id}/status", response_model=OrderResponse)
def update_order_status(order_id: str, request: UpdateOrderStatusRequest) -> OrderResponse:
    return _update_order_status_use_case().execute(
        order_id=OrderId(order_id),
        status=parse_order_status(request.status),
        trace_ctx=TraceContext(trace_id=_current_trace_id(), request_id=get_request_id()),
    )
