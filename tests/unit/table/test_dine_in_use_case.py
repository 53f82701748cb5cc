from __future__ import annotations

import json

import pytest

from comanda.application.dto.requests import (
    AddTableOrderItemRequest,
    OpenTableRequest,
    PlaceDineInOrderRequest,
)
from comanda.application.use_cases.context import StaffContext
from comanda.application.use_cases.dine_in import PlaceDineInOrder
from comanda.application.use_cases.open_table import OpenTable, TableNotFoundError
from comanda.application.use_cases.table_order_items import UpdateItemStatus
from comanda.domain.common.ids import TableId, TableOrderId, TableOrderItemId
from comanda.domain.table.entities import TableStatus


def _request(existing_order_id: str | None = None, cents: int = 3900) -> PlaceDineInOrderRequest:
    return PlaceDineInOrderRequest(
        customer_name="Joana",
        customer_phone="+55 21 98888-1111",
        existing_order_id=existing_order_id,
        items=[
            AddTableOrderItemRequest(product_name="Hambúrguer", unit_price_cents=cents),
            AddTableOrderItemRequest(product_name="Batata", quantity=2, unit_price_cents=1500),
        ],
    )


def _place(session_repository, publisher, trace_ctx, **kwargs):
    return PlaceDineInOrder(session_repository, publisher, currency="BRL").execute(
        TableId("tbl_1"), _request(**kwargs), trace_ctx
    )


def test_first_order_opens_a_customer_tab(session_repository, publisher, trace_ctx, seed_table) -> None:
    seed_table(1)

    response = _place(session_repository, publisher, trace_ctx)

    assert response.createdNewOrder is True
    assert len(response.itemIds) == 2
    order = response.order
    assert order.customerName == "Joana"
    assert order.customerPhone == "+55 21 98888-1111"
    assert order.customerCount == 1
    assert order.serviceFeeEnabled is False
    assert order.subtotal.amountCents == 6900
    assert order.totalAmount.amountCents == 6900
    assert [item.status for item in order.items] == ["pending", "pending"]

    table = session_repository.get_table(TableId("tbl_1"))
    assert table.status == TableStatus.OCCUPIED
    assert table.current_order_id == order.orderId

    envelope = json.loads(publisher.messages[-1][1])
    assert envelope["event_type"] == "table_order.dine_in_placed"
    assert envelope["payload"]["createdNewOrder"] is True


def test_follow_up_order_joins_the_tab_until_the_kitchen_accepts(
    session_repository, publisher, trace_ctx, seed_table
) -> None:
    seed_table(1)
    first = _place(session_repository, publisher, trace_ctx)

    second = _place(session_repository, publisher, trace_ctx, existing_order_id=first.order.orderId)

    assert second.createdNewOrder is False
    assert second.order.orderId == first.order.orderId
    assert second.order.subtotal.amountCents == 13800

    UpdateItemStatus(session_repository, publisher).execute(
        TableOrderItemId(first.itemIds[0]), "preparing", trace_ctx
    )
    third = _place(session_repository, publisher, trace_ctx, existing_order_id=first.order.orderId)

    assert third.createdNewOrder is True
    assert third.order.orderId != first.order.orderId
    assert third.order.subtotal.amountCents == 6900
    table = session_repository.get_table(TableId("tbl_1"))
    assert table.status == TableStatus.OCCUPIED
    assert table.current_order_id == third.order.orderId
    assert len(session_repository.list_open_orders_for_table(TableId("tbl_1"))) == 2


def test_waiter_tab_is_reused_and_named(session_repository, publisher, trace_ctx, seed_table) -> None:
    seed_table(1)
    waiter_tab = OpenTable(session_repository, publisher, currency="BRL").execute(
        TableId("tbl_1"), OpenTableRequest(customer_count=3, waiter_name="Ana"), StaffContext(), trace_ctx
    )

    response = _place(session_repository, publisher, trace_ctx)

    assert response.createdNewOrder is False
    assert response.order.orderId == waiter_tab.orderId
    assert response.order.waiterName == "Ana"
    assert response.order.customerCount == 3
    stored = session_repository.get_table_order(TableOrderId(waiter_tab.orderId))
    assert stored.customer_name == "Joana"
    assert stored.billing.service_fee_enabled is True


def test_preferred_tab_of_another_table_is_ignored(
    session_repository, publisher, trace_ctx, seed_table
) -> None:
    seed_table(1)
    seed_table(2)
    other_tab = OpenTable(session_repository, publisher, currency="BRL").execute(
        TableId("tbl_2"), OpenTableRequest(), StaffContext(), trace_ctx
    )

    response = _place(session_repository, publisher, trace_ctx, existing_order_id=other_tab.orderId)

    assert response.createdNewOrder is True
    assert response.order.tableId == "tbl_1"
    assert session_repository.get_table_order(TableOrderId(other_tab.orderId)).items == []


def test_unknown_table_is_rejected(session_repository, publisher, trace_ctx) -> None:
    with pytest.raises(TableNotFoundError):
        _place(session_repository, publisher, trace_ctx)
    assert session_repository.orders == {}
