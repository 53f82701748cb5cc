from __future__ import annotations

import pytest

from comanda.application.dto.requests import (
    AddTableOrderItemRequest,
    OpenTableRequest,
    PlaceDeliveryOrderItemRequest,
    PlaceDeliveryOrderRequest,
)
from comanda.application.use_cases.context import StaffContext
from comanda.application.use_cases.kitchen_queue import (
    InvalidKitchenQueueStatusError,
    KitchenQueue,
    UpdateKitchenItemStatus,
)
from comanda.application.use_cases.open_table import OpenTable
from comanda.application.use_cases.place_order import PlaceDeliveryOrder
from comanda.application.use_cases.table_order_items import AddTableOrderItem
from comanda.application.use_cases.update_order_status import UpdateDeliveryOrderStatus
from comanda.domain.common.ids import OrderId, TableId, TableOrderId
from comanda.domain.order.entities import OrderStatus


@pytest.fixture
def kitchen(order_repository, session_repository, publisher, trace_ctx, seed_table) -> dict[str, str]:
    seed_table(2)
    tab_id = OpenTable(session_repository, publisher, currency="BRL").execute(
        TableId("tbl_2"), OpenTableRequest(waiter_name="Ana"), StaffContext(), trace_ctx
    ).orderId
    item = AddTableOrderItem(session_repository, publisher).execute(
        TableOrderId(tab_id),
        AddTableOrderItemRequest(product_name="Risoto", unit_price_cents=4800, observation="sem queijo"),
        trace_ctx,
    )
    delivery_id = PlaceDeliveryOrder(order_repository, publisher, currency="BRL").execute(
        PlaceDeliveryOrderRequest(
            customer_name="Fabio",
            payment_method="card",
            items=[
                PlaceDeliveryOrderItemRequest(product_name="Burger", quantity=2, unit_price_cents=3100),
                PlaceDeliveryOrderItemRequest(product_name="Fritas", unit_price_cents=1500),
            ],
        ),
        trace_ctx,
    ).orderId
    return {"tab": tab_id, "item": item.item.itemId, "delivery": delivery_id}


def test_queue_has_one_card_per_ticket_oldest_first(order_repository, session_repository, kitchen) -> None:
    queue = KitchenQueue(order_repository, session_repository).execute()

    assert [card.cardKey for card in queue.cards] == [
        f"table_{kitchen['tab']}",
        f"delivery_{kitchen['delivery']}",
    ]
    table_card, delivery_card = queue.cards
    assert table_card.tableNumber == 2
    assert table_card.waiterName == "Ana"
    assert table_card.items[0].observation == "sem queijo"
    assert delivery_card.customerName == "Fabio"
    assert [item.productName for item in delivery_card.items] == ["Burger", "Fritas"]


def test_queue_filters_before_grouping(order_repository, session_repository, publisher, trace_ctx, kitchen) -> None:
    update = UpdateKitchenItemStatus(order_repository, session_repository, publisher)
    update.execute("table", kitchen["item"], "preparing", trace_ctx)
    update.execute("table", kitchen["item"], "ready", trace_ctx)

    pickup = KitchenQueue(order_repository, session_repository).execute(status="READY", kind="table")

    assert [card.orderId for card in pickup.cards] == [kitchen["tab"]]
    assert pickup.cards[0].status == "ready"
    assert KitchenQueue(order_repository, session_repository).execute(kind="delivery").cards[0].orderId == kitchen["delivery"]


def test_orders_out_for_delivery_leave_the_queue(
    order_repository, session_repository, publisher, trace_ctx, kitchen
) -> None:
    UpdateDeliveryOrderStatus(order_repository, publisher).execute(
        OrderId(kitchen["delivery"]), OrderStatus.DELIVERY, trace_ctx
    )

    queue = KitchenQueue(order_repository, session_repository).execute()

    assert [card.kind for card in queue.cards] == ["table"]


def test_table_line_moves_alone_and_card_leaves_when_delivered(
    order_repository, session_repository, publisher, trace_ctx, kitchen
) -> None:
    update = UpdateKitchenItemStatus(order_repository, session_repository, publisher)

    card = update.execute("table", kitchen["item"], "preparing", trace_ctx)
    assert card.status == "preparing"
    update.execute("table", kitchen["item"], "ready", trace_ctx)

    assert update.execute("table", kitchen["item"], "delivered", trace_ctx) is None


def test_delivery_line_moves_its_whole_order(
    order_repository, session_repository, publisher, trace_ctx, kitchen
) -> None:
    update = UpdateKitchenItemStatus(order_repository, session_repository, publisher)

    card = update.execute("delivery", kitchen["delivery"], "preparing", trace_ctx)

    assert card.status == "preparing"
    assert {item.status for item in card.items} == {"preparing"}
    assert order_repository.get(OrderId(kitchen["delivery"])).status == OrderStatus.PREPARING
    with pytest.raises(InvalidKitchenQueueStatusError):
        update.execute("delivery", kitchen["delivery"], "delivered", trace_ctx)


def test_invalid_filters(order_repository, session_repository) -> None:
    queue = KitchenQueue(order_repository, session_repository)

    with pytest.raises(InvalidKitchenQueueStatusError):
        queue.execute(status="BURNT")
    with pytest.raises(InvalidKitchenQueueStatusError):
        queue.execute(kind="drone")
