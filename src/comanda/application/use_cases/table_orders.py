from __future__ import annotations

from datetime import datetime

from comanda.application.dto.responses import TableOrderResponse, TableOrdersResponse
from comanda.application.mappers.table_order_mapper import to_table_order_response
from comanda.application.ports.repositories import TableSessionRepository
from comanda.application.use_cases.open_table import TableNotFoundError
from comanda.application.use_cases.table_state import TableOrderNotFoundError
from comanda.domain.common.ids import TableId, TableOrderId


class InvalidDateRangeError(Exception):
    pass


class GetTableOrder:
    def __init__(self, repository: TableSessionRepository) -> None:
        self._repository = repository

    def execute(self, order_id: TableOrderId) -> TableOrderResponse:
        order = self._repository.get_table_order(order_id)
        if order is None:
            raise TableOrderNotFoundError(f"table order not found for order_id={order_id}")
        return to_table_order_response(order)


class ListTableOpenOrders:
    def __init__(self, repository: TableSessionRepository) -> None:
        self._repository = repository

    def execute(self, table_id: TableId | None = None) -> TableOrdersResponse:
        if table_id is None:
            orders = self._repository.list_open_table_orders()
        else:
            if self._repository.get_table(table_id) is None:
                raise TableNotFoundError(f"table not found for table_id={table_id}")
            orders = self._repository.list_open_orders_for_table(table_id)
        orders = sorted(orders, key=lambda order: order.opened_at)
        return TableOrdersResponse(orders=[to_table_order_response(order) for order in orders])


class ListClosedTableOrders:
    """Paid and cancelled tabs whose ``closed_at`` falls in ``[start, end)``."""

    def __init__(self, repository: TableSessionRepository) -> None:
        self._repository = repository

    def execute(self, start: datetime, end: datetime) -> TableOrdersResponse:
        if end <= start:
            raise InvalidDateRangeError("end must be after start")
        orders = self._repository.list_closed_table_orders(start, end)
        orders = sorted(orders, key=lambda order: order.closed_at or order.opened_at, reverse=True)
        return TableOrdersResponse(orders=[to_table_order_response(order) for order in orders])
