from __future__ import annotations

from fastapi import APIRouter, Query
from opentelemetry import trace

from comanda.api.middleware.request_id import get_request_id
from comanda.application.dto.requests import UpdateItemStatusRequest
from comanda.application.dto.responses import KitchenCardResponse, KitchenQueueResponse
from comanda.application.use_cases.context import TraceContext
from comanda.application.use_cases.kitchen_queue import KitchenQueue, UpdateKitchenItemStatus
from comanda.infrastructure.db.repositories.order_repo import SqlAlchemyDeliveryOrderRepository
from comanda.infrastructure.db.repositories.table_repo import SqlAlchemyTableSessionRepository
from comanda.infrastructure.messaging.redis_publisher import RedisEventPublisher

router = APIRouter()


def _current_trace_id() -> str | None:
    span_context = trace.get_current_span().get_span_context()
    if not span_context.is_valid:
        return None
    return format(span_context.trace_id, "032x")


def _kitchen_queue_use_case() -> KitchenQueue:
    return KitchenQueue(
        order_repository=SqlAlchemyDeliveryOrderRepository(),
        session_repository=SqlAlchemyTableSessionRepository(),
    )


def _update_kitchen_item_use_case() -> UpdateKitchenItemStatus:
    return UpdateKitchenItemStatus(
        order_repository=SqlAlchemyDeliveryOrderRepository(),
        session_repository=SqlAlchemyTableSessionRepository(),
        publisher=RedisEventPublisher(),
    )


@router.get("/v1/kitchen/queue", response_model=KitchenQueueResponse)
def kitchen_queue(
    item_status: str = Query(default="ALL", alias="status"),
    kind: str = Query(default="ALL"),
) -> KitchenQueueResponse:
    return _kitchen_queue_use_case().execute(status=item_status, kind=kind)


@router.patch("/v1/kitchen/{kind}/{target_id}/status", response_model=KitchenCardResponse | None)
def update_kitchen_item_status(
    kind: str,
    target_id: str,
    request: UpdateItemStatusRequest,
) -> KitchenCardResponse | None:
    return _update_kitchen_item_use_case().execute(
        kind=kind,
        target_id=target_id,
        status=request.status,
        trace_ctx=TraceContext(trace_id=_current_trace_id(), request_id=get_request_id()),
    )
