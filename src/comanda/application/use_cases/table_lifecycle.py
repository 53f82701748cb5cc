from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone

from comanda.application.dto.requests import BillingRequest, CloseTableOrderRequest
from comanda.application.dto.responses import TableOrderResponse, TransferTableResponse
from comanda.application.mappers.event_envelope import (
    serialize_table_event,
    serialize_table_order_event,
)
from comanda.application.mappers.table_mapper import to_table_response
from comanda.application.mappers.table_order_mapper import to_table_order_response
from comanda.application.metrics.order_lifecycle import record_table_order_closed, record_transition
from comanda.application.ports.publisher import EventPublisher
from comanda.application.ports.repositories import (
    OptimisticConcurrencyError,
    TableSessionRepository,
)
from comanda.application.use_cases.context import TraceContext
from comanda.application.use_cases.notify import publish_event
from comanda.application.use_cases.open_table import TableNotAvailableError, TableNotFoundError
from comanda.application.use_cases.table_order_items import TableOrderNotOpenError
from comanda.application.use_cases.table_state import (
    TableOrderNotFoundError,
    settle_table,
)
from comanda.domain.billing.totals import BillingOptions, DiscountType, InvalidBillingOptionsError
from comanda.domain.common.ids import TableId, TableOrderId
from comanda.domain.table.entities import TableStatus
from comanda.domain.table_order.entities import (
    TableOrder,
    TableOrderStatus,
    TableOrderTransitionError,
)

logger = logging.getLogger(__name__)


class InvalidBillingError(Exception):
    pass


class SameTableTransferError(Exception):
    pass


def to_billing_options(request_dto: BillingRequest, fallback: BillingOptions) -> BillingOptions:
    try:
        discount_type = DiscountType(request_dto.discount_type.lower())
    except ValueError as exc:
        raise InvalidBillingError(f"invalid discount type: {request_dto.discount_type}") from exc
    percentage = request_dto.service_fee_percentage
    try:
        return BillingOptions(
            discount_type=discount_type,
            discount_value=request_dto.discount,
            service_fee_enabled=request_dto.service_fee_enabled,
            service_fee_percentage=(
                percentage if percentage is not None else fallback.service_fee_percentage
            ),
        )
    except InvalidBillingOptionsError as exc:
        raise InvalidBillingError(str(exc)) from exc


def load_table_order(tx: TableSessionRepository, order_id: TableOrderId) -> TableOrder:
    order = tx.get_table_order(order_id)
    if order is None:
        raise TableOrderNotFoundError(f"table order not found for order_id={order_id}")
    return order


class _TableOrderCommand:
    def __init__(self, repository: TableSessionRepository, publisher: EventPublisher) -> None:
        self._repository = repository
        self._publisher = publisher

    def _publish(
        self,
        event_type: str,
        order: TableOrder,
        now: datetime,
        trace_ctx: TraceContext,
    ) -> None:
        publish_event(
            self._publisher,
            serialize_table_order_event(
                event_type=event_type,
                occurred_at=now,
                order=order,
                trace_id=trace_ctx.trace_id,
                request_id=trace_ctx.request_id,
            ),
        )


class RequestBill(_TableOrderCommand):
    def execute(self, order_id: TableOrderId, trace_ctx: TraceContext) -> TableOrderResponse:
        now = datetime.now(timezone.utc)
        with self._repository.atomic() as tx:
            order = load_table_order(tx, order_id)
            try:
                updated = order.request_bill()
            except TableOrderTransitionError as exc:
                raise TableOrderNotOpenError(str(exc)) from exc
            tx.update_table_order(updated)

            table = tx.get_table(order.table_id)
            if table is not None and table.status != TableStatus.AVAILABLE:
                tx.update_table(
                    table.repoint(order_id).request_bill(),
                    expected_status=table.status,
                )

        record_transition("table", order.status.value, updated.status.value)
        self._publish("table_order.bill_requested", updated, now, trace_ctx)
        return to_table_order_response(updated)


class ReopenTableOrder(_TableOrderCommand):
    """Take a tab back from ``requesting_bill`` to ``open`` when the table keeps ordering."""

    def execute(self, order_id: TableOrderId, trace_ctx: TraceContext) -> TableOrderResponse:
        now = datetime.now(timezone.utc)
        with self._repository.atomic() as tx:
            order = load_table_order(tx, order_id)
            if order.status == TableOrderStatus.OPEN:
                return to_table_order_response(order)
            try:
                updated = order.reopen()
            except TableOrderTransitionError as exc:
                raise TableOrderNotOpenError(str(exc)) from exc
            tx.update_table_order(updated)
            settle_table(tx, order.table_id)

        record_transition("table", order.status.value, updated.status.value)
        self._publish("table_order.reopened", updated, now, trace_ctx)
        return to_table_order_response(updated)


class CloseTableOrder(_TableOrderCommand):
    """Pay a single tab. The table is freed once no other tab of it stays open."""

    def execute(
        self,
        order_id: TableOrderId,
        request_dto: CloseTableOrderRequest,
        trace_ctx: TraceContext,
    ) -> TableOrderResponse:
        now = datetime.now(timezone.utc)
        with self._repository.atomic() as tx:
            order = load_table_order(tx, order_id)
            billing = to_billing_options(request_dto, order.billing)
            try:
                paid = order.pay(
                    payment_method=request_dto.payment_method,
                    billing=billing,
                    totals=replace(order, billing=billing).compute_totals(),
                    now=now,
                )
            except TableOrderTransitionError as exc:
                raise TableOrderNotOpenError(str(exc)) from exc
            tx.update_table_order(paid)
            settle_table(tx, order.table_id)

        record_transition("table", order.status.value, paid.status.value)
        record_table_order_closed(paid, now)
        logger.info(
            "table_order_paid",
            extra={"order_id": str(order_id), "table_id": str(order.table_id)},
        )
        self._publish("table_order.paid", paid, now, trace_ctx)
        return to_table_order_response(paid)


class CancelTableOrder(_TableOrderCommand):
    def execute(self, order_id: TableOrderId, trace_ctx: TraceContext) -> TableOrderResponse:
        now = datetime.now(timezone.utc)
        with self._repository.atomic() as tx:
            order = load_table_order(tx, order_id)
            try:
                cancelled = order.cancel(now)
            except TableOrderTransitionError as exc:
                raise TableOrderNotOpenError(str(exc)) from exc
            tx.update_table_order(cancelled)
            settle_table(tx, order.table_id)

        record_transition("table", order.status.value, cancelled.status.value)
        record_table_order_closed(cancelled, now)
        logger.info(
            "table_order_cancelled",
            extra={"order_id": str(order_id), "table_id": str(order.table_id)},
        )
        self._publish("table_order.cancelled", cancelled, now, trace_ctx)
        return to_table_order_response(cancelled)


class TransferTable(_TableOrderCommand):
    """Move a seated party to another free table.

    Every open tab of the source table moves along, so split tabs never stay
    behind on a table that has just been freed.
    """

    def execute(
        self,
        order_id: TableOrderId,
        to_table_id: TableId,
        trace_ctx: TraceContext,
    ) -> TransferTableResponse:
        now = datetime.now(timezone.utc)
        try:
            with self._repository.atomic() as tx:
                order = load_table_order(tx, order_id)
                try:
                    order.ensure_active()
                except TableOrderTransitionError as exc:
                    raise TableOrderNotOpenError(str(exc)) from exc
                if order.table_id == to_table_id:
                    raise SameTableTransferError(f"order {order_id} is already at table {to_table_id}")

                destination = tx.get_table(to_table_id)
                if destination is None:
                    raise TableNotFoundError(f"table not found for table_id={to_table_id}")
                if destination.status != TableStatus.AVAILABLE:
                    raise TableNotAvailableError(f"table {to_table_id} is not available")

                moved = [
                    sibling.move_to_table(to_table_id)
                    for sibling in tx.list_open_orders_for_table(order.table_id)
                ]
                if order.order_id not in {sibling.order_id for sibling in moved}:
                    moved.append(order.move_to_table(to_table_id))
                for sibling in moved:
                    tx.update_table_order(sibling)

                source = settle_table(tx, order.table_id)
                target = settle_table(tx, to_table_id)
        except OptimisticConcurrencyError as exc:
            raise TableNotAvailableError(f"table {to_table_id} is not available") from exc

        logger.info(
            "table_transferred",
            extra={
                "order_id": str(order_id),
                "table_id": str(to_table_id),
                "previous_table_id": str(order.table_id),
            },
        )
        if target is not None:
            publish_event(
                self._publisher,
                serialize_table_event(
                    event_type="table.transferred",
                    occurred_at=now,
                    table=target,
                    trace_id=trace_ctx.trace_id,
                    request_id=trace_ctx.request_id,
                    extra={
                        "fromTableId": str(order.table_id),
                        "movedOrderIds": [str(sibling.order_id) for sibling in moved],
                    },
                ),
            )
        return TransferTableResponse(
            fromTable=to_table_response(source) if source is not None else None,
            toTable=to_table_response(target) if target is not None else None,
            movedOrderIds=[str(sibling.order_id) for sibling in moved],
        )
