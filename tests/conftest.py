from __future__ import annotations

import sys
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterator, Sequence

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from comanda.application.ports.repositories import (
    OptimisticConcurrencyError,
    TableNumberTakenError,
)
from comanda.application.use_cases.context import TraceContext
from comanda.domain.common.ids import OrderId, TableId, TableOrderId, TableOrderItemId
from comanda.domain.order.entities import Order, OrderStatus
from comanda.domain.table.entities import Table, TableStatus
from comanda.domain.table_order.entities import ItemStatus, TableOrder, TableOrderItem


class InMemoryTableSessionRepository:
    """Dict-backed port. ``atomic()`` snapshots state and restores it when the block raises."""

    def __init__(self) -> None:
        self.tables: dict[TableId, Table] = {}
        self.orders: dict[TableOrderId, TableOrder] = {}
        self.items: dict[TableOrderItemId, TableOrderItem] = {}
        self._depth = 0

    @contextmanager
    def atomic(self) -> Iterator[InMemoryTableSessionRepository]:
        if self._depth:
            yield self
            return
        snapshot = (dict(self.tables), dict(self.orders), dict(self.items))
        self._depth += 1
        try:
            yield self
        except Exception:
            self.tables, self.orders, self.items = snapshot
            raise
        finally:
            self._depth -= 1

    def get_table(self, table_id: TableId) -> Table | None:
        return self.tables.get(table_id)

    def list_tables(self) -> list[Table]:
        return sorted(self.tables.values(), key=lambda table: table.number)

    def add_table(self, table: Table) -> None:
        if any(existing.number == table.number for existing in self.tables.values()):
            raise TableNumberTakenError(f"table number {table.number} already exists")
        self.tables[table.table_id] = table

    def update_table(self, table: Table, expected_status: TableStatus | None = None) -> None:
        current = self.tables.get(table.table_id)
        if current is None or (expected_status is not None and current.status != expected_status):
            raise OptimisticConcurrencyError(f"table {table.table_id} changed concurrently")
        self.tables[table.table_id] = table

    def create_table_order(self, order: TableOrder) -> None:
        self.orders[order.order_id] = replace(order, items=[])
        for item in order.items:
            self.items[item.item_id] = item

    def get_table_order(self, order_id: TableOrderId) -> TableOrder | None:
        order = self.orders.get(order_id)
        if order is None:
            return None
        items = sorted(
            (item for item in self.items.values() if item.order_id == order_id),
            key=lambda item: item.ordered_at,
        )
        return replace(order, items=items)

    def update_table_order(self, order: TableOrder) -> None:
        if order.order_id not in self.orders:
            raise OptimisticConcurrencyError(f"table order {order.order_id} not found")
        self.orders[order.order_id] = replace(order, items=[])

    def list_open_table_orders(self) -> list[TableOrder]:
        return self._orders(lambda order: order.status.is_active)

    def list_open_orders_for_table(self, table_id: TableId) -> list[TableOrder]:
        return self._orders(lambda order: order.status.is_active and order.table_id == table_id)

    def list_closed_table_orders(self, start: datetime, end: datetime) -> list[TableOrder]:
        return self._orders(
            lambda order: order.closed_at is not None and start <= order.closed_at < end
        )

    def insert_item(self, item: TableOrderItem) -> None:
        self.items[item.item_id] = item

    def get_item(self, item_id: TableOrderItemId) -> TableOrderItem | None:
        return self.items.get(item_id)

    def update_item(self, item: TableOrderItem) -> None:
        if item.item_id not in self.items:
            raise OptimisticConcurrencyError(f"item {item.item_id} not found")
        self.items[item.item_id] = item

    def delete_item(self, item_id: TableOrderItemId) -> None:
        self.items.pop(item_id, None)

    def query_item_statuses(
        self,
        order_id: TableOrderId,
        statuses: Sequence[ItemStatus],
    ) -> list[ItemStatus]:
        return [
            item.status
            for item in self.items.values()
            if item.order_id == order_id and item.status in statuses
        ]

    def _orders(self, predicate: Callable[[TableOrder], bool]) -> list[TableOrder]:
        selected = [
            self.get_table_order(order.order_id)
            for order in self.orders.values()
            if predicate(order)
        ]
        return sorted(selected, key=lambda order: order.opened_at)


class InMemoryDeliveryOrderRepository:
    def __init__(self) -> None:
        self.orders: dict[OrderId, Order] = {}

    def add(self, order: Order) -> None:
        self.orders[order.order_id] = order

    def get(self, order_id: OrderId) -> Order | None:
        return self.orders.get(order_id)

    def list_orders(self) -> list[Order]:
        return sorted(self.orders.values(), key=lambda order: order.created_at, reverse=True)

    def update_status(self, order: Order, expected_status: OrderStatus) -> None:
        current = self.orders.get(order.order_id)
        if current is None or current.status != expected_status:
            raise OptimisticConcurrencyError(f"order {order.order_id} changed concurrently")
        self.orders[order.order_id] = order


class RecordingPublisher:
    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []

    def publish(self, channel: str, message: str) -> None:
        self.messages.append((channel, message))


class FailingPublisher:
    def publish(self, channel: str, message: str) -> None:
        raise ConnectionError("redis unavailable")


@pytest.fixture
def session_repository() -> InMemoryTableSessionRepository:
    return InMemoryTableSessionRepository()


@pytest.fixture
def order_repository() -> InMemoryDeliveryOrderRepository:
    return InMemoryDeliveryOrderRepository()


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def failing_publisher() -> FailingPublisher:
    return FailingPublisher()


@pytest.fixture
def trace_ctx() -> TraceContext:
    return TraceContext(trace_id="trace-test", request_id="req-test")


@pytest.fixture
def seed_table(session_repository: InMemoryTableSessionRepository) -> Callable[..., Table]:
    def _seed(number: int = 1, name: str | None = None, capacity: int = 4) -> Table:
        table = Table(
            table_id=TableId(f"tbl_{number}"),
            number=number,
            name=name,
            capacity=capacity,
            status=TableStatus.AVAILABLE,
            current_order_id=None,
        )
        session_repository.add_table(table)
        return table

    return _seed
