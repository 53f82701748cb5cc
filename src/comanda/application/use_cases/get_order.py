from __future__ import annotations

from comanda.application.dto.responses import OrderResponse, OrdersResponse
from comanda.application.mappers.order_mapper import to_order_response
from comanda.application.ports.repositories import DeliveryOrderRepository
from comanda.domain.common.ids import OrderId
from comanda.domain.order.entities import OrderStatus


class OrderNotFoundError(Exception):
    pass


class InvalidOrderStatusError(Exception):
    pass


def parse_order_status(raw: str) -> OrderStatus:
    try:
        return OrderStatus(raw.lower())
    except ValueError as exc:
        raise InvalidOrderStatusError(f"invalid order status: {raw}") from exc


class GetDeliveryOrder:
    def __init__(self, order_repository: DeliveryOrderRepository) -> None:
        self._order_repository = order_repository

    def execute(self, order_id: OrderId) -> OrderResponse:
        order = self._order_repository.get(order_id)
        if order is None:
            raise OrderNotFoundError(f"order {order_id} not found")
        return to_order_response(order)


class ListDeliveryOrders:
    def __init__(self, order_repository: DeliveryOrderRepository) -> None:
        self._order_repository = order_repository

    def execute(self, status: str = "ALL") -> OrdersResponse:
        wanted: OrderStatus | None = None
        if status.upper() != "ALL":
            wanted = parse_order_status(status)

        orders = [
            order
            for order in self._order_repository.list_orders()
            if wanted is None or order.status == wanted
        ]
        orders.sort(key=lambda order: order.created_at, reverse=True)
        return OrdersResponse(orders=[to_order_response(order) for order in orders])
