from __future__ import annotations

import json

import pytest

from comanda.application.dto.requests import (
    CouponRequest,
    DeliveryAddressRequest,
    PlaceDeliveryOrderItemRequest,
    PlaceDeliveryOrderRequest,
)
from comanda.application.use_cases.get_order import (
    GetDeliveryOrder,
    InvalidOrderStatusError,
    ListDeliveryOrders,
    OrderNotFoundError,
)
from comanda.application.use_cases.place_order import (
    InvalidCouponError,
    InvalidPaymentMethodError,
    PlaceDeliveryOrder,
)
from comanda.domain.common.ids import OrderId
from comanda.domain.order.entities import CouponNotApplicableError


def _request(
    payment_method: str = "money",
    with_address: bool = True,
    coupon: CouponRequest | None = None,
) -> PlaceDeliveryOrderRequest:
    return PlaceDeliveryOrderRequest(
        customer_name="Carla",
        customer_phone="+55 11 99999-0000",
        address=(
            DeliveryAddressRequest(street="Rua das Flores", number="120", neighborhood="Centro")
            if with_address
            else None
        ),
        payment_method=payment_method,
        change_for_cents=10000,
        items=[
            PlaceDeliveryOrderItemRequest(product_name="Pizza Calabresa", quantity=2, unit_price_cents=3200),
            PlaceDeliveryOrderItemRequest(product_name="Refrigerante", unit_price_cents=900),
        ],
        coupon=coupon,
    )


def test_place_order_stores_pending_order_and_publishes(order_repository, publisher, trace_ctx) -> None:
    response = PlaceDeliveryOrder(
        order_repository, publisher, currency="BRL", delivery_fee_cents=500
    ).execute(_request(), trace_ctx)

    assert response.orderId.startswith("ord_")
    assert response.status == "pending"
    assert response.subtotal.amountCents == 7300
    assert response.deliveryFee.amountCents == 500
    assert response.totalAmount.amountCents == 7800
    assert response.changeFor.amountCents == 10000
    assert response.address.neighborhood == "Centro"
    assert OrderId(response.orderId) in order_repository.orders
    envelope = json.loads(publisher.messages[0][1])
    assert envelope["event_type"] == "order.placed"
    assert envelope["payload"]["kind"] == "delivery"


def test_pickup_order_has_no_address(order_repository, publisher, trace_ctx) -> None:
    response = PlaceDeliveryOrder(order_repository, publisher).execute(
        _request(payment_method="PIX", with_address=False), trace_ctx
    )

    assert response.address is None
    assert response.paymentMethod == "pix"
    assert response.deliveryFee.amountCents == 0
    assert response.totalAmount.amountCents == 7300


def test_unknown_payment_method_is_rejected(order_repository, publisher, trace_ctx) -> None:
    with pytest.raises(InvalidPaymentMethodError):
        PlaceDeliveryOrder(order_repository, publisher).execute(_request(payment_method="cheque"), trace_ctx)
    assert order_repository.orders == {}


def test_get_and_list_orders(order_repository, publisher, trace_ctx) -> None:
    placed = PlaceDeliveryOrder(order_repository, publisher).execute(_request(), trace_ctx)

    assert GetDeliveryOrder(order_repository).execute(OrderId(placed.orderId)).customerName == "Carla"
    assert len(ListDeliveryOrders(order_repository).execute().orders) == 1
    assert ListDeliveryOrders(order_repository).execute(status="ready").orders == []
    with pytest.raises(InvalidOrderStatusError):
        ListDeliveryOrders(order_repository).execute(status="lost")
    with pytest.raises(OrderNotFoundError):
        GetDeliveryOrder(order_repository).execute(OrderId("ord_missing"))


def test_coupon_discount_applies_to_the_items(order_repository, publisher, trace_ctx) -> None:
    coupon = CouponRequest(code="pizza10", discount_type="percentage", discount_value="10")

    response = PlaceDeliveryOrder(order_repository, publisher, delivery_fee_cents=599).execute(
        _request(coupon=coupon), trace_ctx
    )

    assert response.discountAmount.amountCents == 730
    assert response.couponCode == "PIZZA10"
    assert response.totalAmount.amountCents == 7300 + 599 - 730
    payload = json.loads(publisher.messages[0][1])["payload"]
    assert payload["deliveryFee"] == {"amountCents": 599, "currency": "BRL"}
    assert payload["couponCode"] == "PIZZA10"


def test_invalid_or_unmet_coupons_are_rejected(order_repository, publisher, trace_ctx) -> None:
    use_case = PlaceDeliveryOrder(order_repository, publisher)

    with pytest.raises(InvalidCouponError):
        use_case.execute(
            _request(coupon=CouponRequest(code="X", discount_type="bogo", discount_value="1")),
            trace_ctx,
        )
    with pytest.raises(CouponNotApplicableError):
        use_case.execute(
            _request(
                coupon=CouponRequest(
                    code="GRANDE", discount_type="fixed", discount_value="5", min_order_value_cents=10000
                )
            ),
            trace_ctx,
        )
    assert order_repository.orders == {}
