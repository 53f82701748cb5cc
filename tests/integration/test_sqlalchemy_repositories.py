from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from comanda.application.dto.requests import (
    AddTableOrderItemRequest,
    CloseTableOrderRequest,
    OpenTableRequest,
)
from comanda.application.ports.repositories import (
    OptimisticConcurrencyError,
    TableNumberTakenError,
)
from comanda.application.use_cases.close_table import CloseTable
from comanda.application.use_cases.context import StaffContext, TraceContext
from comanda.application.use_cases.open_table import OpenTable
from comanda.application.use_cases.table_order_items import (
    AddTableOrderItem,
    RemoveTableOrderItem,
    UpdateItemStatus,
)
from comanda.domain.billing.totals import BillingOptions, DiscountType
from comanda.domain.common.ids import (
    OrderId,
    OrderItemId,
    TableId,
    TableOrderId,
    TableOrderItemId,
)
from comanda.domain.common.money import Money
from comanda.domain.order.entities import (
    Coupon,
    DeliveryAddress,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    create_pending_order,
)
from comanda.domain.table.entities import Table, TableStatus
from comanda.domain.table_order.entities import (
    KITCHEN_ACCEPTED_STATUSES,
    ItemStatus,
    TableOrderItem,
    TableOrderStatus,
    open_table_order,
)

NOW = datetime(2026, 10, 19, 21, 0, tzinfo=timezone.utc)


def _table(number: int = 1) -> Table:
    return Table(
        table_id=TableId(f"tbl_{number}"),
        number=number,
        name="Salão" if number == 1 else None,
        capacity=4,
        status=TableStatus.AVAILABLE,
        current_order_id=None,
    )


def test_tables_round_trip_and_numbers_are_unique(sql_session_repository) -> None:
    sql_session_repository.add_table(_table(1))
    sql_session_repository.add_table(_table(2))

    assert sql_session_repository.get_table(TableId("tbl_1")) == _table(1)
    assert [table.number for table in sql_session_repository.list_tables()] == [1, 2]
    with pytest.raises(TableNumberTakenError):
        sql_session_repository.add_table(
            Table(TableId("tbl_dup"), 1, None, 2, TableStatus.AVAILABLE, None)
        )


def test_update_table_checks_expected_status(sql_session_repository) -> None:
    sql_session_repository.add_table(_table())
    occupied = _table().occupy(TableOrderId("tor_1"))

    sql_session_repository.update_table(occupied, expected_status=TableStatus.AVAILABLE)

    with pytest.raises(OptimisticConcurrencyError):
        sql_session_repository.update_table(occupied, expected_status=TableStatus.AVAILABLE)
    assert sql_session_repository.get_table(TableId("tbl_1")).current_order_id == "tor_1"


def test_atomic_block_rolls_back_every_write(sql_session_repository) -> None:
    sql_session_repository.add_table(_table())
    order = open_table_order(
        order_id=TableOrderId("tor_1"),
        table_id=TableId("tbl_1"),
        customer_count=2,
        waiter_name=None,
        waiter_id=None,
        currency="BRL",
        now=NOW,
    )

    with pytest.raises(RuntimeError):
        with sql_session_repository.atomic() as tx:
            tx.create_table_order(order)
            tx.update_table(_table().occupy(order.order_id), expected_status=TableStatus.AVAILABLE)
            assert tx.get_table(TableId("tbl_1")).status == TableStatus.OCCUPIED
            raise RuntimeError("boom")

    assert sql_session_repository.get_table_order(TableOrderId("tor_1")) is None
    assert sql_session_repository.get_table(TableId("tbl_1")).status == TableStatus.AVAILABLE


def test_table_orders_and_items_round_trip(sql_session_repository) -> None:
    sql_session_repository.add_table(_table())
    billing = BillingOptions(
        discount_type=DiscountType.PERCENTAGE,
        discount_value=Decimal("12.5"),
        service_fee_enabled=False,
        service_fee_percentage=Decimal("8"),
    )
    order = open_table_order(
        order_id=TableOrderId("tor_1"),
        table_id=TableId("tbl_1"),
        customer_count=3,
        waiter_name="Ana",
        waiter_id=None,
        currency="BRL",
        now=NOW,
        billing=billing,
    )
    sql_session_repository.create_table_order(order)
    item = TableOrderItem(
        item_id=TableOrderItemId("toi_1"),
        order_id=order.order_id,
        product_id=None,
        product_name="Moqueca",
        quantity=2,
        unit_price=Money(amount_cents=6400, currency="BRL"),
        observation="sem coentro",
        status=ItemStatus.PENDING,
        ordered_at=NOW,
    )
    sql_session_repository.insert_item(item)
    sql_session_repository.update_item(item.move_to(ItemStatus.PREPARING, NOW))

    stored = sql_session_repository.get_table_order(order.order_id)

    assert stored.billing == billing
    assert stored.opened_at == NOW
    assert stored.customer_count == 3
    assert [line.status for line in stored.items] == [ItemStatus.PREPARING]
    assert sql_session_repository.query_item_statuses(order.order_id, KITCHEN_ACCEPTED_STATUSES) == [
        ItemStatus.PREPARING
    ]
    assert [tab.order_id for tab in sql_session_repository.list_open_orders_for_table(TableId("tbl_1"))] == [
        "tor_1"
    ]

    sql_session_repository.delete_item(item.item_id)
    assert sql_session_repository.get_item(item.item_id) is None


def test_closed_orders_are_listed_by_closing_time(sql_session_repository) -> None:
    sql_session_repository.add_table(_table())
    order = open_table_order(
        order_id=TableOrderId("tor_1"),
        table_id=TableId("tbl_1"),
        customer_count=1,
        waiter_name=None,
        waiter_id=None,
        currency="BRL",
        now=NOW,
    )
    sql_session_repository.create_table_order(order)
    sql_session_repository.update_table_order(order.cancel(NOW + timedelta(minutes=30)))

    inside = sql_session_repository.list_closed_table_orders(NOW, NOW + timedelta(hours=1))
    outside = sql_session_repository.list_closed_table_orders(NOW + timedelta(hours=1), NOW + timedelta(hours=2))

    assert [tab.status for tab in inside] == [TableOrderStatus.CANCELLED]
    assert outside == []
    assert sql_session_repository.list_open_table_orders() == []


def test_table_session_flow_on_sql_store(sql_session_repository, publisher) -> None:
    trace_ctx = TraceContext(trace_id=None, request_id="req-sql")
    sql_session_repository.add_table(_table())

    first_tab = OpenTable(sql_session_repository, publisher, currency="BRL").execute(
        TableId("tbl_1"), OpenTableRequest(customer_count=2), StaffContext(), trace_ctx
    ).orderId
    add_item = AddTableOrderItem(sql_session_repository, publisher)
    first = add_item.execute(
        TableOrderId(first_tab),
        AddTableOrderItemRequest(product_name="Picanha", unit_price_cents=8900),
        trace_ctx,
    )
    spare = add_item.execute(
        TableOrderId(first_tab),
        AddTableOrderItemRequest(product_name="Pão", unit_price_cents=600),
        trace_ctx,
    )
    RemoveTableOrderItem(sql_session_repository, publisher).execute(
        TableOrderItemId(spare.item.itemId), trace_ctx
    )
    UpdateItemStatus(sql_session_repository, publisher).execute(
        TableOrderItemId(first.item.itemId), "preparing", trace_ctx
    )
    split = add_item.execute(
        TableOrderId(first_tab),
        AddTableOrderItemRequest(product_name="Chopp", unit_price_cents=1400),
        trace_ctx,
    )

    assert split.createdNewOrder
    table = sql_session_repository.get_table(TableId("tbl_1"))
    assert table.current_order_id == split.orderId
    assert sql_session_repository.get_table_order(TableOrderId(first_tab)).subtotal.amount_cents == 8900

    closed = CloseTable(sql_session_repository, publisher).execute(
        TableId("tbl_1"), CloseTableOrderRequest(payment_method="card"), trace_ctx
    )

    assert closed.table.status == "available"
    assert closed.totals.total.amountCents == 11330
    assert sql_session_repository.list_open_table_orders() == []


def test_delivery_orders_round_trip_and_guard_status(sql_order_repository) -> None:
    order = create_pending_order(
        order_id=OrderId("ord_1"),
        customer_name="Gil",
        customer_phone=None,
        address=DeliveryAddress(street="Av. Brasil", number="55", neighborhood="Jardins", latitude=-23.5),
        payment_method=PaymentMethod.MONEY,
        change_for=Money(amount_cents=5000, currency="BRL"),
        items=[
            OrderItem(
                item_id=OrderItemId("ori_1"),
                order_id=OrderId("ord_1"),
                product_name="Esfiha",
                quantity=4,
                unit_price=Money(amount_cents=700, currency="BRL"),
                observation=None,
            )
        ],
        now=NOW,
        delivery_fee=Money(amount_cents=599, currency="BRL"),
        coupon=Coupon(code="esfiha10", discount_type=DiscountType.PERCENTAGE, discount_value=Decimal("10")),
    )
    sql_order_repository.add(order)

    assert sql_order_repository.get(OrderId("ord_1")) == order
    assert order.total_amount.amount_cents == 2800 + 599 - 280
    assert sql_order_repository.get(OrderId("ord_1")).coupon_code == "ESFIHA10"
    assert [stored.order_id for stored in sql_order_repository.list_orders()] == ["ord_1"]

    preparing = order.move_to(OrderStatus.PREPARING, NOW + timedelta(minutes=2))
    sql_order_repository.update_status(preparing, expected_status=OrderStatus.PENDING)
    assert sql_order_repository.get(OrderId("ord_1")).status == OrderStatus.PREPARING
    with pytest.raises(OptimisticConcurrencyError):
        sql_order_repository.update_status(preparing, expected_status=OrderStatus.PENDING)
