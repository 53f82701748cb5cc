from __future__ import annotations

from datetime import datetime
from typing import ContextManager, Protocol, Sequence

from comanda.domain.common.ids import OrderId, TableId, TableOrderId, TableOrderItemId
from comanda.domain.order.entities import Order, OrderStatus
from comanda.domain.table.entities import Table, TableStatus
from comanda.domain.table_order.entities import ItemStatus, TableOrder, TableOrderItem


class TableSessionRepository(Protocol):
    """Row store for tables, tabs and tab items.

    ``atomic()`` yields a repository bound to one transaction: every write made
    through it commits together when the block exits cleanly and is rolled back
    when it raises. Reads made through it see the transaction's own writes.
    """

    def atomic(self) -> ContextManager[TableSessionRepository]: ...

    def get_table(self, table_id: TableId) -> Table | None: ...

    def list_tables(self) -> list[Table]: ...

    def add_table(self, table: Table) -> None: ...

    def update_table(self, table: Table, expected_status: TableStatus | None = None) -> None: ...

    def create_table_order(self, order: TableOrder) -> None: ...

    def get_table_order(self, order_id: TableOrderId) -> TableOrder | None: ...

    def update_table_order(self, order: TableOrder) -> None: ...

    def list_open_table_orders(self) -> list[TableOrder]: ...

    def list_open_orders_for_table(self, table_id: TableId) -> list[TableOrder]: ...

    def list_closed_table_orders(self, start: datetime, end: datetime) -> list[TableOrder]: ...

    def insert_item(self, item: TableOrderItem) -> None: ...

    def get_item(self, item_id: TableOrderItemId) -> TableOrderItem | None: ...

    def update_item(self, item: TableOrderItem) -> None: ...

    def delete_item(self, item_id: TableOrderItemId) -> None: ...

    def query_item_statuses(
        self,
        order_id: TableOrderId,
        statuses: Sequence[ItemStatus],
    ) -> list[ItemStatus]: ...


class DeliveryOrderRepository(Protocol):
    def add(self, order: Order) -> None: ...

    def get(self, order_id: OrderId) -> Order | None: ...

    def list_orders(self) -> list[Order]: ...

    def update_status(self, order: Order, expected_status: OrderStatus) -> None: ...


class OptimisticConcurrencyError(Exception):
    pass


class TableNumberTakenError(Exception):
    pass
