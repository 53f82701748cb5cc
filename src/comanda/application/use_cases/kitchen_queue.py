from __future__ import annotations

from comanda.application.dto.responses import KitchenCardResponse, KitchenQueueResponse
from comanda.application.mappers.board_mapper import to_kitchen_card_response
from comanda.application.metrics.order_lifecycle import record_kitchen_queue_size
from comanda.application.ports.publisher import EventPublisher
from comanda.application.ports.repositories import (
    DeliveryOrderRepository,
    TableSessionRepository,
)
from comanda.application.use_cases.board import InvalidBoardRequestError, parse_kind
from comanda.application.use_cases.context import TraceContext
from comanda.application.use_cases.table_order_items import UpdateItemStatus
from comanda.application.use_cases.update_order_status import UpdateDeliveryOrderStatus
from comanda.domain.common.ids import OrderId, TableOrderItemId
from comanda.domain.common.kinds import OrderKind
from comanda.domain.kitchen.aggregation import KitchenCard, KitchenItem, group_items_by_order
from comanda.domain.order.entities import OrderStatus
from comanda.domain.table_order.entities import ItemStatus

_STATUS_MAP: dict[str, ItemStatus | None] = {
    "ALL": None,
    "PENDING": ItemStatus.PENDING,
    "PREPARING": ItemStatus.PREPARING,
    "READY": ItemStatus.READY,
}

# A delivery order has no per-item status; its items follow the order.
_DELIVERY_KITCHEN_STATUSES: dict[OrderStatus, ItemStatus] = {
    OrderStatus.PENDING: ItemStatus.PENDING,
    OrderStatus.PREPARING: ItemStatus.PREPARING,
    OrderStatus.READY: ItemStatus.READY,
}

_DELIVERY_STATUS_WRITES: dict[ItemStatus, OrderStatus] = {
    ItemStatus.PENDING: OrderStatus.PENDING,
    ItemStatus.PREPARING: OrderStatus.PREPARING,
    ItemStatus.READY: OrderStatus.READY,
    ItemStatus.CANCELLED: OrderStatus.CANCELLED,
}


class InvalidKitchenQueueStatusError(Exception):
    pass


def collect_kitchen_items(
    order_repository: DeliveryOrderRepository,
    session_repository: TableSessionRepository,
) -> list[KitchenItem]:
    tables = {table.table_id: table for table in session_repository.list_tables()}
    items: list[KitchenItem] = []
    for tab in session_repository.list_open_table_orders():
        table = tables.get(tab.table_id)
        for item in tab.items:
            items.append(
                KitchenItem(
                    item_id=str(item.item_id),
                    kind=OrderKind.TABLE,
                    order_id=str(tab.order_id),
                    product_name=item.product_name,
                    quantity=item.quantity,
                    observation=item.observation,
                    status=item.status,
                    ordered_at=item.ordered_at,
                    table_number=table.number if table else None,
                    table_name=table.name if table else None,
                    waiter_name=tab.waiter_name,
                    customer_name=table.label if table else None,
                )
            )

    for order in order_repository.list_orders():
        kitchen_status = _DELIVERY_KITCHEN_STATUSES.get(order.status)
        if kitchen_status is None:
            continue
        for line in order.items:
            items.append(
                KitchenItem(
                    item_id=str(line.item_id),
                    kind=OrderKind.DELIVERY,
                    order_id=str(order.order_id),
                    product_name=line.product_name,
                    quantity=line.quantity,
                    observation=line.observation,
                    status=kitchen_status,
                    ordered_at=order.created_at,
                    customer_name=order.customer_name,
                )
            )
    return items


class KitchenQueue:
    """Kitchen display: one card per ticket, oldest first.

    ``status`` filters items before grouping, so ``status="READY", kind="table"``
    is the waiter's pick-up list.
    """

    def __init__(
        self,
        order_repository: DeliveryOrderRepository,
        session_repository: TableSessionRepository,
    ) -> None:
        self._order_repository = order_repository
        self._session_repository = session_repository

    def execute(self, status: str = "ALL", kind: str = "ALL") -> KitchenQueueResponse:
        normalized_status = status.upper()
        if normalized_status not in _STATUS_MAP:
            raise InvalidKitchenQueueStatusError(f"invalid kitchen queue status: {status}")
        try:
            wanted_kind = None if kind.upper() == "ALL" else parse_kind(kind)
        except InvalidBoardRequestError as exc:
            raise InvalidKitchenQueueStatusError(str(exc)) from exc
        wanted_status = _STATUS_MAP[normalized_status]

        items = [
            item
            for item in collect_kitchen_items(self._order_repository, self._session_repository)
            if (wanted_status is None or item.status == wanted_status)
            and (wanted_kind is None or item.kind == wanted_kind)
        ]
        cards = group_items_by_order(items)
        record_kitchen_queue_size(status=normalized_status, size=len(cards))
        return KitchenQueueResponse(cards=[to_kitchen_card_response(card) for card in cards])


class UpdateKitchenItemStatus:
    """Move one kitchen line. Table lines move alone; a delivery line moves its whole order.

    Returns the ticket's card afterwards, or None once the ticket left the kitchen.
    """

    def __init__(
        self,
        order_repository: DeliveryOrderRepository,
        session_repository: TableSessionRepository,
        publisher: EventPublisher,
    ) -> None:
        self._order_repository = order_repository
        self._session_repository = session_repository
        self._publisher = publisher

    def execute(
        self,
        kind: str,
        target_id: str,
        status: str,
        trace_ctx: TraceContext,
    ) -> KitchenCardResponse | None:
        order_kind = parse_kind(kind)
        if order_kind == OrderKind.TABLE:
            item = UpdateItemStatus(self._session_repository, self._publisher).execute(
                TableOrderItemId(target_id), status, trace_ctx
            )
            order_id = item.orderId
        else:
            try:
                order_status = _DELIVERY_STATUS_WRITES[ItemStatus(status.lower())]
            except (KeyError, ValueError) as exc:
                raise InvalidKitchenQueueStatusError(
                    f"invalid kitchen status for delivery order: {status}"
                ) from exc
            UpdateDeliveryOrderStatus(self._order_repository, self._publisher).execute(
                OrderId(target_id), order_status, trace_ctx
            )
            order_id = target_id

        card = self._find_card(f"{order_kind.value}_{order_id}")
        return to_kitchen_card_response(card) if card is not None else None

    def _find_card(self, card_key: str) -> KitchenCard | None:
        items = collect_kitchen_items(self._order_repository, self._session_repository)
        for card in group_items_by_order(items):
            if card.card_key == card_key:
                return card
        return None
