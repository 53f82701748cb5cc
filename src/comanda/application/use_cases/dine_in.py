from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from uuid import uuid4

from comanda.application.dto.requests import PlaceDineInOrderRequest
from comanda.application.dto.responses import DineInOrderResponse
from comanda.application.mappers.event_envelope import serialize_table_order_event
from comanda.application.mappers.table_order_mapper import to_table_order_response
from comanda.application.metrics.order_lifecycle import record_table_opened, record_table_order_split
from comanda.application.ports.publisher import EventPublisher
from comanda.application.ports.repositories import TableSessionRepository
from comanda.application.use_cases.context import TraceContext
from comanda.application.use_cases.notify import publish_event
from comanda.application.use_cases.open_table import TableNotFoundError, default_currency
from comanda.application.use_cases.table_state import refresh_totals
from comanda.domain.billing.totals import BillingOptions
from comanda.domain.common.ids import ProductId, TableId, TableOrderId, TableOrderItemId
from comanda.domain.common.money import Money
from comanda.domain.table.entities import Table, TableStatus
from comanda.domain.table_order.entities import (
    KITCHEN_ACCEPTED_STATUSES,
    ItemStatus,
    TableOrder,
    TableOrderItem,
    open_table_order,
)

logger = logging.getLogger(__name__)


class PlaceDineInOrder:
    """Customer self-service order from the table.

    Items join the preferred tab, else the newest active tab of the table, as
    long as the kitchen has not accepted any of its items. Otherwise a new tab
    is opened for the customer and the table points at it.
    """

    def __init__(
        self,
        repository: TableSessionRepository,
        publisher: EventPublisher,
        currency: str | None = None,
    ) -> None:
        self._repository = repository
        self._publisher = publisher
        self._currency = currency or default_currency()

    def execute(
        self,
        table_id: TableId,
        request_dto: PlaceDineInOrderRequest,
        trace_ctx: TraceContext,
    ) -> DineInOrderResponse:
        now = datetime.now(timezone.utc)
        with self._repository.atomic() as tx:
            table = tx.get_table(table_id)
            if table is None:
                raise TableNotFoundError(f"table not found for table_id={table_id}")

            target = self._reusable_tab(tx, table_id, request_dto.existing_order_id)
            created_new_order = target is None
            if target is None:
                target = self._open_customer_tab(tx, table, request_dto, now)
            else:
                named = target.with_customer(request_dto.customer_name, request_dto.customer_phone)
                if named != target:
                    tx.update_table_order(named)
                    target = named

            items = [
                TableOrderItem(
                    item_id=TableOrderItemId(f"toi_{uuid4().hex[:12]}"),
                    order_id=target.order_id,
                    product_id=ProductId(line.product_id) if line.product_id else None,
                    product_name=line.product_name,
                    quantity=line.quantity,
                    unit_price=Money(amount_cents=line.unit_price_cents, currency=target.currency),
                    observation=line.observation,
                    status=ItemStatus.PENDING,
                    ordered_at=now,
                )
                for line in request_dto.items
            ]
            for item in items:
                tx.insert_item(item)
            updated = refresh_totals(tx, target.order_id)

        logger.info(
            "dine_in_order_placed",
            extra={
                "table_id": str(table_id),
                "order_id": str(updated.order_id),
                "created_new_order": created_new_order,
                "item_count": len(items),
            },
        )
        publish_event(
            self._publisher,
            serialize_table_order_event(
                event_type="table_order.dine_in_placed",
                occurred_at=now,
                order=updated,
                trace_id=trace_ctx.trace_id,
                request_id=trace_ctx.request_id,
                extra={
                    "createdNewOrder": created_new_order,
                    "customerName": request_dto.customer_name,
                    "itemIds": [str(item.item_id) for item in items],
                },
            ),
        )
        return DineInOrderResponse(
            order=to_table_order_response(updated),
            createdNewOrder=created_new_order,
            itemIds=[str(item.item_id) for item in items],
        )

    def _reusable_tab(
        self,
        tx: TableSessionRepository,
        table_id: TableId,
        preferred_order_id: str | None,
    ) -> TableOrder | None:
        candidates: list[TableOrder] = []
        if preferred_order_id:
            preferred = tx.get_table_order(TableOrderId(preferred_order_id))
            if preferred is not None and preferred.status.is_active and preferred.table_id == table_id:
                candidates.append(preferred)
        open_orders = sorted(
            tx.list_open_orders_for_table(table_id),
            key=lambda order: order.opened_at,
            reverse=True,
        )
        if open_orders:
            candidates.append(open_orders[0])

        for candidate in candidates:
            if not tx.query_item_statuses(candidate.order_id, KITCHEN_ACCEPTED_STATUSES):
                return candidate
        return None

    def _open_customer_tab(
        self,
        tx: TableSessionRepository,
        table: Table,
        request_dto: PlaceDineInOrderRequest,
        now: datetime,
    ) -> TableOrder:
        order = open_table_order(
            order_id=TableOrderId(f"tor_{uuid4().hex[:12]}"),
            table_id=table.table_id,
            customer_count=1,
            waiter_name=None,
            waiter_id=None,
            currency=self._currency,
            now=now,
            billing=BillingOptions(service_fee_enabled=False),
        )
        order = replace(
            order,
            customer_name=request_dto.customer_name,
            customer_phone=request_dto.customer_phone,
        )
        tx.create_table_order(order)
        if table.status == TableStatus.AVAILABLE:
            tx.update_table(table.occupy(order.order_id), expected_status=TableStatus.AVAILABLE)
            record_table_opened()
        else:
            tx.update_table(table.repoint(order.order_id), expected_status=table.status)
            record_table_order_split()
        return order
