from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from comanda.domain.common.kinds import OrderKind
from comanda.domain.table_order.entities import ItemStatus

# Lower index wins when several items of one ticket disagree.
_KITCHEN_PRIORITY = (ItemStatus.PENDING, ItemStatus.PREPARING, ItemStatus.READY)


@dataclass(frozen=True)
class KitchenItem:
    item_id: str
    kind: OrderKind
    order_id: str
    product_name: str
    quantity: int
    observation: str | None
    status: ItemStatus
    ordered_at: datetime
    table_number: int | None = None
    table_name: str | None = None
    waiter_name: str | None = None
    customer_name: str | None = None

    @property
    def card_key(self) -> str:
        return f"{self.kind.value}_{self.order_id}"


@dataclass(frozen=True)
class KitchenCard:
    card_key: str
    kind: OrderKind
    order_id: str
    status: ItemStatus
    items: tuple[KitchenItem, ...]
    oldest_ordered_at: datetime
    table_number: int | None
    table_name: str | None
    waiter_name: str | None
    customer_name: str | None


def coarsest_status(statuses: Iterable[ItemStatus]) -> ItemStatus | None:
    present = set(statuses)
    for status in _KITCHEN_PRIORITY:
        if status in present:
            return status
    return None


def group_items_by_order(items: Iterable[KitchenItem]) -> list[KitchenCard]:
    """Fold line items into one card per ticket, oldest ticket first.

    Cancelled and delivered items no longer concern the kitchen and are
    dropped before grouping, so a ticket whose items are all gone yields no card.
    """
    grouped: dict[str, list[KitchenItem]] = {}
    for item in items:
        if item.status not in _KITCHEN_PRIORITY:
            continue
        grouped.setdefault(item.card_key, []).append(item)

    cards: list[KitchenCard] = []
    for card_key, card_items in grouped.items():
        first = card_items[0]
        status = coarsest_status(item.status for item in card_items)
        if status is None:
            continue
        cards.append(
            KitchenCard(
                card_key=card_key,
                kind=first.kind,
                order_id=first.order_id,
                status=status,
                items=tuple(sorted(card_items, key=lambda item: item.ordered_at)),
                oldest_ordered_at=min(item.ordered_at for item in card_items),
                table_number=first.table_number,
                table_name=first.table_name,
                waiter_name=first.waiter_name,
                customer_name=first.customer_name,
            )
        )

    cards.sort(key=lambda card: card.oldest_ordered_at)
    return cards
