"""Read-only projection of delivery orders and table tabs onto one board.

Table tabs only know four statuses while the board speaks the six-state
delivery vocabulary, so the round trip through :func:`table_to_board_status`
and :func:`board_to_table_status` is lossy: writing ``preparing`` or
``delivery`` against a tab stores ``open``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterable, Mapping

from comanda.domain.common.ids import OrderId, TableId, TableOrderId
from comanda.domain.common.kinds import OrderKind
from comanda.domain.common.money import Money
from comanda.domain.kitchen.aggregation import coarsest_status
from comanda.domain.order.entities import DeliveryAddress, Order
from comanda.domain.table.entities import Table
from comanda.domain.table_order.entities import ItemStatus, TableOrder, TableOrderStatus


class BoardStatus(str, Enum):
    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"
    DELIVERY = "delivery"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


_TABLE_TO_BOARD: dict[TableOrderStatus, BoardStatus] = {
    TableOrderStatus.OPEN: BoardStatus.PENDING,
    TableOrderStatus.REQUESTING_BILL: BoardStatus.READY,
    TableOrderStatus.PAID: BoardStatus.COMPLETED,
    TableOrderStatus.CANCELLED: BoardStatus.CANCELLED,
}

_BOARD_TO_TABLE: dict[BoardStatus, TableOrderStatus] = {
    BoardStatus.COMPLETED: TableOrderStatus.PAID,
    BoardStatus.CANCELLED: TableOrderStatus.CANCELLED,
    BoardStatus.READY: TableOrderStatus.REQUESTING_BILL,
}


def table_to_board_status(status: TableOrderStatus) -> BoardStatus:
    return _TABLE_TO_BOARD[status]


def board_to_table_status(status: BoardStatus) -> TableOrderStatus:
    return _BOARD_TO_TABLE.get(status, TableOrderStatus.OPEN)


@dataclass(frozen=True)
class DeliveryBoardOrder:
    order_id: OrderId
    status: BoardStatus
    customer_name: str
    customer_phone: str | None
    address: DeliveryAddress | None
    total_amount: Money
    payment_method: str
    change_for: Money | None
    created_at: datetime
    updated_at: datetime
    kind: OrderKind = field(default=OrderKind.DELIVERY, init=False)


@dataclass(frozen=True)
class TableBoardOrder:
    order_id: TableOrderId
    status: BoardStatus
    customer_name: str
    table_id: TableId
    table_number: int | None
    table_name: str | None
    waiter_name: str | None
    customer_count: int
    total_amount: Money
    payment_method: str | None
    created_at: datetime
    kitchen_status: ItemStatus | None
    kind: OrderKind = field(default=OrderKind.TABLE, init=False)


UnifiedOrder = DeliveryBoardOrder | TableBoardOrder


def project_delivery_order(order: Order) -> DeliveryBoardOrder:
    return DeliveryBoardOrder(
        order_id=order.order_id,
        status=BoardStatus(order.status.value),
        customer_name=order.customer_name,
        customer_phone=order.customer_phone,
        address=order.address,
        total_amount=order.total_amount,
        payment_method=order.payment_method.value,
        change_for=order.change_for,
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


def project_table_order(order: TableOrder, table: Table | None) -> TableBoardOrder:
    return TableBoardOrder(
        order_id=order.order_id,
        status=table_to_board_status(order.status),
        customer_name=table.label if table is not None else "Mesa ?",
        table_id=order.table_id,
        table_number=table.number if table is not None else None,
        table_name=table.name if table is not None else None,
        waiter_name=order.waiter_name,
        customer_count=order.customer_count,
        total_amount=order.total_amount,
        payment_method=order.payment_method,
        created_at=order.opened_at,
        kitchen_status=coarsest_status(item.status for item in order.items),
    )


def build_board(
    delivery_orders: Iterable[Order],
    table_orders: Iterable[TableOrder],
    tables: Mapping[TableId, Table],
) -> list[UnifiedOrder]:
    """Merge both families, newest first. Closed tabs stay off the live board."""
    board: list[UnifiedOrder] = [project_delivery_order(order) for order in delivery_orders]
    board.extend(
        project_table_order(order, tables.get(order.table_id))
        for order in table_orders
        if order.status.is_active
    )
    board.sort(key=lambda entry: entry.created_at, reverse=True)
    return board
