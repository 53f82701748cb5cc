from __future__ import annotations

from comanda.application.dto.responses import (
    BoardOrderResponse,
    KitchenCardResponse,
    KitchenItemResponse,
)
from comanda.application.mappers.order_mapper import to_address_response
from comanda.application.mappers.table_mapper import to_money_response
from comanda.domain.board.transitions import next_status, next_status_label
from comanda.domain.board.unified import DeliveryBoardOrder, TableBoardOrder, UnifiedOrder
from comanda.domain.kitchen.aggregation import KitchenCard


def to_board_order_response(entry: UnifiedOrder) -> BoardOrderResponse:
    upcoming = next_status(entry.kind, entry.status)
    common = {
        "kind": entry.kind.value,
        "orderId": str(entry.order_id),
        "status": entry.status.value,
        "customerName": entry.customer_name,
        "totalAmount": to_money_response(entry.total_amount),
        "paymentMethod": entry.payment_method,
        "createdAt": entry.created_at,
        "nextStatus": upcoming.value if upcoming else None,
        "nextStatusLabel": next_status_label(entry.kind, entry.status),
    }
    if isinstance(entry, DeliveryBoardOrder):
        return BoardOrderResponse(
            **common,
            customerPhone=entry.customer_phone,
            address=to_address_response(entry.address),
        )
    if isinstance(entry, TableBoardOrder):
        return BoardOrderResponse(
            **common,
            tableId=str(entry.table_id),
            tableNumber=entry.table_number,
            tableName=entry.table_name,
            waiterName=entry.waiter_name,
            customerCount=entry.customer_count,
            kitchenStatus=entry.kitchen_status.value if entry.kitchen_status else None,
        )
    raise TypeError(f"unsupported board entry: {type(entry).__name__}")


def to_kitchen_card_response(card: KitchenCard) -> KitchenCardResponse:
    return KitchenCardResponse(
        cardKey=card.card_key,
        kind=card.kind.value,
        orderId=card.order_id,
        status=card.status.value,
        tableNumber=card.table_number,
        tableName=card.table_name,
        waiterName=card.waiter_name,
        customerName=card.customer_name,
        oldestOrderedAt=card.oldest_ordered_at,
        items=[
            KitchenItemResponse(
                itemId=item.item_id,
                productName=item.product_name,
                quantity=item.quantity,
                observation=item.observation,
                status=item.status.value,
                orderedAt=item.ordered_at,
            )
            for item in card.items
        ],
    )
