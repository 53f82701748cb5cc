from __future__ import annotations

import json
from dataclasses import replace
from decimal import Decimal

import pytest

from comanda.application.dto.requests import (
    AddTableOrderItemRequest,
    BillingRequest,
    CloseTableOrderRequest,
    OpenTableRequest,
)
from comanda.application.use_cases.close_table import (
    CloseTable,
    GetTableCheckout,
    NoOpenTableOrdersError,
)
from comanda.application.use_cases.context import StaffContext
from comanda.application.use_cases.open_table import OpenTable, TableNotFoundError
from comanda.application.use_cases.table_lifecycle import InvalidBillingError
from comanda.application.use_cases.table_order_items import AddTableOrderItem, UpdateItemStatus
from comanda.domain.common.ids import TableId, TableOrderId, TableOrderItemId
from comanda.domain.table.entities import TableStatus
from comanda.domain.table_order.entities import TableOrderStatus


@pytest.fixture
def split_table(session_repository, publisher, trace_ctx, seed_table) -> tuple[str, str]:
    """Table 1 with two tabs: 2x 25.00 already in the kitchen, then 1x 12.90."""
    seed_table(1, name="Varanda")
    first_tab = OpenTable(session_repository, publisher, currency="BRL").execute(
        TableId("tbl_1"), OpenTableRequest(customer_count=3), StaffContext(), trace_ctx
    ).orderId
    add_item = AddTableOrderItem(session_repository, publisher)
    first = add_item.execute(
        TableOrderId(first_tab),
        AddTableOrderItemRequest(product_name="Moqueca", quantity=2, unit_price_cents=2500),
        trace_ctx,
    )
    UpdateItemStatus(session_repository, publisher).execute(
        TableOrderItemId(first.item.itemId), "preparing", trace_ctx
    )
    second_tab = add_item.execute(
        TableOrderId(first_tab),
        AddTableOrderItemRequest(product_name="Suco", unit_price_cents=1290),
        trace_ctx,
    ).orderId
    return first_tab, second_tab


def test_checkout_preview_combines_every_open_tab(session_repository, split_table) -> None:
    first_tab, second_tab = split_table

    checkout = GetTableCheckout(session_repository).execute(TableId("tbl_1"))

    assert checkout.label == "Mesa 1 - Varanda"
    assert checkout.orderIds == [first_tab, second_tab]
    assert checkout.customerCount == 3
    assert [item.productName for item in checkout.items] == ["Moqueca", "Suco"]
    assert checkout.totals.subtotal.amountCents == 6290
    assert checkout.totals.serviceFee.amountCents == 629
    assert checkout.totals.total.amountCents == 6919
    assert checkout.totals.perPerson.amountCents == 2306
    assert [share.amountCents for share in checkout.perPersonShares] == [2307, 2306, 2306]


def test_checkout_preview_with_billing_override(session_repository, split_table) -> None:
    checkout = GetTableCheckout(session_repository).execute(
        TableId("tbl_1"),
        BillingRequest(discount_type="percentage", discount=Decimal("10")),
    )

    assert checkout.totals.discountAmount.amountCents == 629
    assert checkout.totals.afterDiscount.amountCents == 5661
    assert checkout.totals.serviceFee.amountCents == 566
    assert checkout.totals.total.amountCents == 6227


def test_checkout_head_count_is_the_largest_tab(session_repository, split_table) -> None:
    _, second_tab = split_table
    order = session_repository.orders[TableOrderId(second_tab)]
    session_repository.orders[order.order_id] = replace(order, customer_count=5)

    checkout = GetTableCheckout(session_repository).execute(TableId("tbl_1"))

    assert checkout.customerCount == 5
    assert len(checkout.perPersonShares) == 5


def test_checkout_rejects_unknown_discount_type(session_repository, split_table) -> None:
    with pytest.raises(InvalidBillingError):
        GetTableCheckout(session_repository).execute(
            TableId("tbl_1"), BillingRequest(discount_type="coupon")
        )


def test_close_table_pays_every_tab_and_frees_the_table(
    session_repository, publisher, trace_ctx, split_table
) -> None:
    first_tab, second_tab = split_table

    response = CloseTable(session_repository, publisher).execute(
        TableId("tbl_1"),
        CloseTableOrderRequest(payment_method="pix", discount=Decimal("10")),
        trace_ctx,
    )

    assert response.table.status == "available"
    assert response.table.currentOrderId is None
    assert response.totals.total.amountCents == 5819
    assert [order.status for order in response.orders] == ["paid", "paid"]
    assert [order.discount for order in response.orders] == [Decimal("10"), Decimal("0")]
    assert sum(order.totalAmount.amountCents for order in response.orders) == 5819
    for order_id in (first_tab, second_tab):
        stored = session_repository.get_table_order(TableOrderId(order_id))
        assert stored.status == TableOrderStatus.PAID
        assert stored.payment_method == "pix"
    assert session_repository.get_table(TableId("tbl_1")).status == TableStatus.AVAILABLE

    last_event = json.loads(publisher.messages[-1][1])
    assert last_event["event_type"] == "table.freed"
    assert last_event["payload"]["total"] == {"amountCents": 5819, "currency": "BRL"}


def test_close_table_without_open_tabs_is_rejected(session_repository, publisher, trace_ctx, seed_table) -> None:
    seed_table(1)

    with pytest.raises(NoOpenTableOrdersError):
        CloseTable(session_repository, publisher).execute(
            TableId("tbl_1"), CloseTableOrderRequest(payment_method="pix"), trace_ctx
        )
    with pytest.raises(NoOpenTableOrdersError):
        GetTableCheckout(session_repository).execute(TableId("tbl_1"))
    with pytest.raises(TableNotFoundError):
        GetTableCheckout(session_repository).execute(TableId("tbl_404"))


def test_close_table_persisted_tab_totals_add_up_to_the_checkout(
    session_repository, publisher, trace_ctx, seed_table
) -> None:
    seed_table(2)
    first_tab = OpenTable(session_repository, publisher, currency="BRL").execute(
        TableId("tbl_2"), OpenTableRequest(), StaffContext(), trace_ctx
    ).orderId
    add_item = AddTableOrderItem(session_repository, publisher)
    first = add_item.execute(
        TableOrderId(first_tab),
        AddTableOrderItemRequest(product_name="Pastel", unit_price_cents=1005),
        trace_ctx,
    )
    UpdateItemStatus(session_repository, publisher).execute(
        TableOrderItemId(first.item.itemId), "preparing", trace_ctx
    )
    second = add_item.execute(
        TableOrderId(first_tab),
        AddTableOrderItemRequest(product_name="Pastel", unit_price_cents=1005),
        trace_ctx,
    )
    assert second.createdNewOrder is True

    checkout = GetTableCheckout(session_repository).execute(TableId("tbl_2"))
    assert checkout.totals.serviceFee.amountCents == 201
    assert checkout.totals.total.amountCents == 2211

    response = CloseTable(session_repository, publisher).execute(
        TableId("tbl_2"), CloseTableOrderRequest(payment_method="pix"), trace_ctx
    )

    assert response.totals == checkout.totals
    stored = [
        session_repository.get_table_order(TableOrderId(order_id))
        for order_id in (first_tab, second.orderId)
    ]
    assert sum(order.total_amount.amount_cents for order in stored) == 2211
    assert sorted(order.total_amount.amount_cents for order in stored) == [1105, 1106]
    assert sum(order.subtotal.amount_cents for order in stored) == 2010
