from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal

from comanda.application.dto.requests import BillingRequest, CloseTableOrderRequest
from comanda.application.dto.responses import CloseTableResponse, TableCheckoutResponse
from comanda.application.mappers.event_envelope import (
    serialize_table_event,
    serialize_table_order_event,
)
from comanda.application.mappers.table_mapper import to_money_response, to_table_response
from comanda.application.mappers.table_order_mapper import (
    to_item_response,
    to_table_order_response,
    to_totals_response,
)
from comanda.application.metrics.order_lifecycle import record_table_order_closed, record_transition
from comanda.application.ports.publisher import EventPublisher
from comanda.application.ports.repositories import TableSessionRepository
from comanda.application.use_cases.context import TraceContext
from comanda.application.use_cases.notify import publish_event
from comanda.application.use_cases.open_table import TableNotFoundError
from comanda.application.use_cases.table_lifecycle import to_billing_options
from comanda.application.use_cases.table_state import settle_table
from comanda.domain.billing.totals import (
    BillingOptions,
    DiscountType,
    TotalsBreakdown,
    allocate_discount,
    allocate_totals,
    calculate_totals,
    split_evenly,
)
from comanda.domain.common.ids import TableId
from comanda.domain.common.money import to_cents
from comanda.domain.table.entities import Table
from comanda.domain.table_order.entities import TableOrder, TableOrderItem

logger = logging.getLogger(__name__)


class NoOpenTableOrdersError(Exception):
    pass


def checkout_totals(
    orders: list[TableOrder],
    billing: BillingOptions,
) -> tuple[int, list[TableOrderItem], TotalsBreakdown]:
    """Combined bill of every open tab of a table.

    Split tabs share the same party, so the head count is the largest one
    recorded on any tab rather than their sum.
    """
    customer_count = max(order.customer_count for order in orders)
    items = [item for order in orders for item in order.items]
    totals = calculate_totals(
        items,
        billing,
        currency=orders[0].currency,
        customer_count=customer_count,
    )
    return customer_count, items, totals


def per_order_billing(orders: list[TableOrder], billing: BillingOptions) -> list[BillingOptions]:
    if billing.discount_type != DiscountType.VALUE:
        return [billing for _ in orders]
    shares = allocate_discount(
        [order.compute_totals().subtotal.amount_cents for order in orders],
        to_cents(billing.discount_value),
    )
    return [replace(billing, discount_value=Decimal(share) / 100) for share in shares]


def _load_checkout(tx: TableSessionRepository, table_id: TableId) -> tuple[Table, list[TableOrder]]:
    table = tx.get_table(table_id)
    if table is None:
        raise TableNotFoundError(f"table not found for table_id={table_id}")
    orders = sorted(tx.list_open_orders_for_table(table_id), key=lambda order: order.opened_at)
    if not orders:
        raise NoOpenTableOrdersError(f"table {table_id} has no open orders")
    return table, orders


class GetTableCheckout:
    def __init__(self, repository: TableSessionRepository) -> None:
        self._repository = repository

    def execute(
        self,
        table_id: TableId,
        billing_request: BillingRequest | None = None,
    ) -> TableCheckoutResponse:
        table, orders = _load_checkout(self._repository, table_id)
        billing = orders[-1].billing
        if billing_request is not None:
            billing = to_billing_options(billing_request, billing)

        customer_count, items, totals = checkout_totals(orders, billing)
        shares = split_evenly(totals.total, customer_count) if customer_count > 1 else []
        return TableCheckoutResponse(
            tableId=str(table.table_id),
            label=table.label,
            orderIds=[str(order.order_id) for order in orders],
            customerCount=customer_count,
            items=[to_item_response(item) for item in items if item.is_billable],
            totals=to_totals_response(totals),
            perPersonShares=[to_money_response(share) for share in shares],
        )


class CloseTable:
    """Checkout: pay every open tab of the table at once and free it."""

    def __init__(self, repository: TableSessionRepository, publisher: EventPublisher) -> None:
        self._repository = repository
        self._publisher = publisher

    def execute(
        self,
        table_id: TableId,
        request_dto: CloseTableOrderRequest,
        trace_ctx: TraceContext,
    ) -> CloseTableResponse:
        now = datetime.now(timezone.utc)
        with self._repository.atomic() as tx:
            table, orders = _load_checkout(tx, table_id)
            billing = to_billing_options(request_dto, orders[-1].billing)
            _, _, totals = checkout_totals(orders, billing)

            order_billings = per_order_billing(orders, billing)
            order_totals = allocate_totals(
                [
                    replace(order, billing=order_billing).compute_totals()
                    for order, order_billing in zip(orders, order_billings)
                ],
                totals,
            )

            paid_orders: list[TableOrder] = []
            for order, order_billing, order_total in zip(orders, order_billings, order_totals):
                paid = order.pay(
                    payment_method=request_dto.payment_method,
                    billing=order_billing,
                    totals=order_total,
                    now=now,
                )
                tx.update_table_order(paid)
                paid_orders.append(paid)
            freed = settle_table(tx, table_id) or table

        for order, paid in zip(orders, paid_orders):
            record_transition("table", order.status.value, paid.status.value)
            record_table_order_closed(paid, now)
            publish_event(
                self._publisher,
                serialize_table_order_event(
                    event_type="table_order.paid",
                    occurred_at=now,
                    order=paid,
                    trace_id=trace_ctx.trace_id,
                    request_id=trace_ctx.request_id,
                ),
            )
        logger.info(
            "table_checked_out",
            extra={"table_id": str(table_id), "order_count": len(paid_orders)},
        )
        publish_event(
            self._publisher,
            serialize_table_event(
                event_type="table.freed",
                occurred_at=now,
                table=freed,
                trace_id=trace_ctx.trace_id,
                request_id=trace_ctx.request_id,
                extra={"total": {"amountCents": totals.total.amount_cents, "currency": totals.total.currency}},
            ),
        )
        return CloseTableResponse(
            table=to_table_response(freed),
            orders=[to_table_order_response(order) for order in paid_orders],
            totals=to_totals_response(totals),
        )
