from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone

from comanda.domain.common.ids import TableId, TableOrderId
from comanda.domain.table.consistency import (
    CURRENT_ORDER_NOT_OPEN,
    OPEN_ORDERS_ON_FREE_TABLE,
    STATUS_POINTER_MISMATCH,
    derive_table_state,
    pairing_issue,
)
from comanda.domain.table.entities import Table, TableStatus
from comanda.domain.table_order.entities import TableOrderStatus, open_table_order

NOW = datetime(2026, 10, 19, 20, 0, tzinfo=timezone.utc)


def _table(status: TableStatus, current: str | None) -> Table:
    return Table(
        table_id=TableId("tbl_1"),
        number=1,
        name=None,
        capacity=4,
        status=status,
        current_order_id=TableOrderId(current) if current else None,
    )


def _tab(order_id: str, minutes: int = 0):
    return open_table_order(
        order_id=TableOrderId(order_id),
        table_id=TableId("tbl_1"),
        customer_count=1,
        waiter_name=None,
        waiter_id=None,
        currency="BRL",
        now=NOW + timedelta(minutes=minutes),
    )


def test_no_open_tabs_frees_the_table() -> None:
    derived = derive_table_state(_table(TableStatus.OCCUPIED, "tor_1"), [])

    assert derived.status == TableStatus.AVAILABLE
    assert derived.current_order_id is None


def test_pointer_kept_while_current_tab_is_open() -> None:
    table = _table(TableStatus.OCCUPIED, "tor_1")

    derived = derive_table_state(table, [_tab("tor_1"), _tab("tor_2", minutes=5)])

    assert derived == table


def test_pointer_moves_to_newest_open_tab() -> None:
    derived = derive_table_state(
        _table(TableStatus.OCCUPIED, "tor_gone"),
        [_tab("tor_1"), _tab("tor_2", minutes=5)],
    )

    assert derived.current_order_id == "tor_2"
    assert derived.status == TableStatus.OCCUPIED


def test_status_follows_pointed_tab_requesting_bill() -> None:
    billing = _tab("tor_1").request_bill()

    derived = derive_table_state(_table(TableStatus.AVAILABLE, None), [billing])

    assert derived.status == TableStatus.REQUESTING_BILL
    assert derived.current_order_id == "tor_1"


def test_pairing_issues() -> None:
    assert pairing_issue(_table(TableStatus.OCCUPIED, None), []) == STATUS_POINTER_MISMATCH
    assert pairing_issue(_table(TableStatus.OCCUPIED, "tor_1"), []) == CURRENT_ORDER_NOT_OPEN
    assert pairing_issue(_table(TableStatus.AVAILABLE, None), [_tab("tor_1")]) == OPEN_ORDERS_ON_FREE_TABLE
    assert pairing_issue(_table(TableStatus.OCCUPIED, "tor_1"), [_tab("tor_1")]) is None
    assert pairing_issue(_table(TableStatus.AVAILABLE, None), []) is None


def test_closed_tabs_are_ignored() -> None:
    paid = replace(_tab("tor_1"), status=TableOrderStatus.PAID, closed_at=NOW)

    assert pairing_issue(_table(TableStatus.OCCUPIED, "tor_1"), [paid]) == CURRENT_ORDER_NOT_OPEN
    assert derive_table_state(_table(TableStatus.OCCUPIED, "tor_1"), [paid]).status == TableStatus.AVAILABLE
