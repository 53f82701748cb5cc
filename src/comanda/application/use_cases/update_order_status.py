from __future__ import annotations

from datetime import datetime, timezone

from comanda.application.dto.responses import OrderResponse
from comanda.application.mappers.event_envelope import serialize_order_event
from comanda.application.mappers.order_mapper import to_order_response
from comanda.application.metrics.order_lifecycle import (
    record_delivery_order_status,
    record_transition,
)
from comanda.application.ports.publisher import EventPublisher
from comanda.application.ports.repositories import (
    DeliveryOrderRepository,
    OptimisticConcurrencyError,
)
from comanda.application.use_cases.context import TraceContext
from comanda.application.use_cases.get_order import OrderNotFoundError
from comanda.application.use_cases.notify import publish_event
from comanda.domain.common.ids import OrderId
from comanda.domain.order.entities import OrderStatus


class OrderConflictError(Exception):
    pass


class UpdateDeliveryOrderStatus:
    """Direct status write. The board allows any jump, so no flow is enforced here."""

    def __init__(self, order_repository: DeliveryOrderRepository, publisher: EventPublisher) -> None:
        self._order_repository = order_repository
        self._publisher = publisher

    def execute(
        self,
        order_id: OrderId,
        status: OrderStatus,
        trace_ctx: TraceContext,
    ) -> OrderResponse:
        order = self._order_repository.get(order_id)
        if order is None:
            raise OrderNotFoundError(f"order {order_id} not found")
        if order.status == status:
            return to_order_response(order)

        now = datetime.now(timezone.utc)
        updated = order.move_to(status, now)
        try:
            self._order_repository.update_status(updated, expected_status=order.status)
        except OptimisticConcurrencyError:
            current = self._order_repository.get(order_id)
            if current is None:
                raise OrderNotFoundError(f"order {order_id} not found")
            if current.status == status:
                return to_order_response(current)
            raise OrderConflictError(f"order {order_id} status update conflict")

        record_transition("delivery", order.status.value, updated.status.value)
        record_delivery_order_status(updated)
        publish_event(
            self._publisher,
            serialize_order_event(
                event_type="order.status_changed",
                occurred_at=now,
                order=updated,
                trace_id=trace_ctx.trace_id,
                request_id=trace_ctx.request_id,
            ),
        )
        return to_order_response(updated)
