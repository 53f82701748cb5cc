"""Line items on a tab: add with the kitchen split rule, move through the
kitchen flow, remove while still pending."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from uuid import uuid4

from comanda.application.dto.requests import AddTableOrderItemRequest
from comanda.application.dto.responses import AddTableOrderItemResponse, TableOrderItemResponse
from comanda.application.mappers.event_envelope import serialize_table_order_event
from comanda.application.mappers.table_order_mapper import to_item_response
from comanda.application.metrics.order_lifecycle import (
    record_item_transition,
    record_table_order_split,
)
from comanda.application.ports.publisher import EventPublisher
from comanda.application.ports.repositories import TableSessionRepository
from comanda.application.use_cases.context import TraceContext
from comanda.application.use_cases.notify import publish_event
from comanda.application.use_cases.table_state import TableOrderNotFoundError, refresh_totals
from comanda.domain.common.ids import ProductId, TableOrderId, TableOrderItemId
from comanda.domain.common.money import Money
from comanda.domain.table.entities import TableStatus
from comanda.domain.table_order.entities import (
    KITCHEN_ACCEPTED_STATUSES,
    ItemStatus,
    ItemTransitionError,
    TableOrder,
    TableOrderClosedError,
    TableOrderItem,
    TableOrderStatus,
    split_from,
)

logger = logging.getLogger(__name__)


class TableOrderNotOpenError(Exception):
    pass


class TableOrderItemNotFoundError(Exception):
    pass


class InvalidItemStatusError(Exception):
    pass


class InvalidItemTransitionError(Exception):
    pass


class ItemRemovalNotAllowedError(Exception):
    pass


def parse_item_status(raw: str) -> ItemStatus:
    try:
        return ItemStatus(raw.lower())
    except ValueError as exc:
        raise InvalidItemStatusError(f"invalid item status: {raw}") from exc


class AddTableOrderItem:
    """Add a line item, starting a new tab when the kitchen already took the current batch.

    Once any item of the target tab is ``preparing`` or ``ready`` the kitchen has
    accepted that batch, so the new item goes to another open tab of the same
    table: the table's current tab when it is still untouched by the kitchen,
    otherwise a freshly split one that the table is repointed to.
    """

    def __init__(self, repository: TableSessionRepository, publisher: EventPublisher) -> None:
        self._repository = repository
        self._publisher = publisher

    def execute(
        self,
        order_id: TableOrderId,
        request_dto: AddTableOrderItemRequest,
        trace_ctx: TraceContext,
    ) -> AddTableOrderItemResponse:
        now = datetime.now(timezone.utc)
        with self._repository.atomic() as tx:
            order = tx.get_table_order(order_id)
            if order is None:
                raise TableOrderNotFoundError(f"table order not found for order_id={order_id}")
            try:
                order.ensure_active()
            except TableOrderClosedError as exc:
                raise TableOrderNotOpenError(str(exc)) from exc

            target, created_new_order = self._resolve_target(tx, order, now)
            item = TableOrderItem(
                item_id=TableOrderItemId(f"toi_{uuid4().hex[:12]}"),
                order_id=target.order_id,
                product_id=ProductId(request_dto.product_id) if request_dto.product_id else None,
                product_name=request_dto.product_name,
                quantity=request_dto.quantity,
                unit_price=Money(amount_cents=request_dto.unit_price_cents, currency=target.currency),
                observation=request_dto.observation,
                status=ItemStatus.PENDING,
                ordered_at=now,
            )
            tx.insert_item(item)
            updated = refresh_totals(tx, target.order_id)

        event_type = "table_order.split" if created_new_order else "table_order.item_added"
        publish_event(
            self._publisher,
            serialize_table_order_event(
                event_type=event_type,
                occurred_at=now,
                order=updated,
                trace_id=trace_ctx.trace_id,
                request_id=trace_ctx.request_id,
                extra={"itemId": str(item.item_id), "previousOrderId": str(order_id)},
            ),
        )
        return AddTableOrderItemResponse(
            item=to_item_response(item),
            orderId=str(target.order_id),
            createdNewOrder=created_new_order,
        )

    def _resolve_target(
        self,
        tx: TableSessionRepository,
        order: TableOrder,
        now: datetime,
    ) -> tuple[TableOrder, bool]:
        if not tx.query_item_statuses(order.order_id, KITCHEN_ACCEPTED_STATUSES):
            return order, False

        table = tx.get_table(order.table_id)
        if table is not None and table.current_order_id not in (None, order.order_id):
            current = tx.get_table_order(table.current_order_id)
            if (
                current is not None
                and current.status == TableOrderStatus.OPEN
                and not tx.query_item_statuses(current.order_id, KITCHEN_ACCEPTED_STATUSES)
            ):
                return current, False

        split = split_from(order, order_id=TableOrderId(f"tor_{uuid4().hex[:12]}"), now=now)
        tx.create_table_order(split)
        if table is not None:
            if table.status == TableStatus.AVAILABLE:
                repointed = table.occupy(split.order_id)
            else:
                repointed = table.repoint(split.order_id)
            tx.update_table(repointed, expected_status=table.status)
        record_table_order_split()
        logger.info(
            "table_order_split",
            extra={
                "table_id": str(order.table_id),
                "order_id": str(split.order_id),
                "previous_order_id": str(order.order_id),
            },
        )
        return split, True


class UpdateItemStatus:
    def __init__(self, repository: TableSessionRepository, publisher: EventPublisher) -> None:
        self._repository = repository
        self._publisher = publisher

    def execute(
        self,
        item_id: TableOrderItemId,
        status: str,
        trace_ctx: TraceContext,
    ) -> TableOrderItemResponse:
        target_status = parse_item_status(status)
        now = datetime.now(timezone.utc)
        with self._repository.atomic() as tx:
            item = tx.get_item(item_id)
            if item is None:
                raise TableOrderItemNotFoundError(f"item not found for item_id={item_id}")
            try:
                updated = item.move_to(target_status, now)
            except ItemTransitionError as exc:
                raise InvalidItemTransitionError(str(exc)) from exc
            if updated == item:
                return to_item_response(item)

            if target_status == ItemStatus.CANCELLED:
                order = tx.get_table_order(item.order_id)
                if order is not None and not order.status.is_active:
                    raise TableOrderNotOpenError(
                        f"table order {order.order_id} is {order.status.value}"
                    )
            tx.update_item(updated)
            order = refresh_totals(tx, item.order_id)

        record_item_transition(item.status.value, updated.status.value)
        publish_event(
            self._publisher,
            serialize_table_order_event(
                event_type="table_order.item_status_changed",
                occurred_at=now,
                order=order,
                trace_id=trace_ctx.trace_id,
                request_id=trace_ctx.request_id,
                extra={
                    "itemId": str(item_id),
                    "itemStatus": updated.status.value,
                    "previousItemStatus": item.status.value,
                },
            ),
        )
        return to_item_response(updated)


class RemoveTableOrderItem:
    def __init__(self, repository: TableSessionRepository, publisher: EventPublisher) -> None:
        self._repository = repository
        self._publisher = publisher

    def execute(self, item_id: TableOrderItemId, trace_ctx: TraceContext) -> None:
        now = datetime.now(timezone.utc)
        with self._repository.atomic() as tx:
            item = tx.get_item(item_id)
            if item is None:
                raise TableOrderItemNotFoundError(f"item not found for item_id={item_id}")
            order = tx.get_table_order(item.order_id)
            if order is None:
                raise TableOrderNotFoundError(f"table order not found for order_id={item.order_id}")
            try:
                order.ensure_open()
            except TableOrderClosedError as exc:
                raise TableOrderNotOpenError(str(exc)) from exc
            if item.status != ItemStatus.PENDING:
                raise ItemRemovalNotAllowedError(
                    f"item {item_id} is {item.status.value}; cancel it instead"
                )
            tx.delete_item(item_id)
            updated = refresh_totals(tx, order.order_id)

        publish_event(
            self._publisher,
            serialize_table_order_event(
                event_type="table_order.item_removed",
                occurred_at=now,
                order=updated,
                trace_id=trace_ctx.trace_id,
                request_id=trace_ctx.request_id,
                extra={"itemId": str(item_id)},
            ),
        )
