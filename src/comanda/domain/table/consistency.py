"""Derive a table's status and order pointer from the tabs that are still open.

Used after a tab leaves the active set (paid, cancelled, moved) and by the
admin reconcile action, so both produce the same table state.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Sequence

from comanda.domain.table.entities import Table, TableStatus
from comanda.domain.table_order.entities import TableOrder, TableOrderStatus

STATUS_POINTER_MISMATCH = "status_pointer_mismatch"
CURRENT_ORDER_NOT_OPEN = "current_order_not_open"
OPEN_ORDERS_ON_FREE_TABLE = "open_orders_on_free_table"


def derive_table_state(table: Table, open_orders: Sequence[TableOrder]) -> Table:
    active = [order for order in open_orders if order.status.is_active]
    if not active:
        return table.free()

    by_id = {order.order_id: order for order in active}
    current = by_id.get(table.current_order_id) if table.current_order_id else None
    if current is None:
        current = max(active, key=lambda order: order.opened_at)

    status = TableStatus.OCCUPIED
    if current.status == TableOrderStatus.REQUESTING_BILL:
        status = TableStatus.REQUESTING_BILL
    return replace(table, status=status, current_order_id=current.order_id)


def pairing_issue(table: Table, open_orders: Sequence[TableOrder]) -> str | None:
    """Return why ``table`` disagrees with its open tabs, or None when it is sound."""
    open_ids = {order.order_id for order in open_orders if order.status.is_active}
    if not table.is_paired:
        return STATUS_POINTER_MISMATCH
    if table.current_order_id is not None and table.current_order_id not in open_ids:
        return CURRENT_ORDER_NOT_OPEN
    if table.status == TableStatus.AVAILABLE and open_ids:
        return OPEN_ORDERS_ON_FREE_TABLE
    return None
