from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from uuid import uuid4

from comanda.application.dto.requests import CouponRequest, PlaceDeliveryOrderRequest
from comanda.application.dto.responses import OrderResponse
from comanda.application.mappers.event_envelope import serialize_order_event
from comanda.application.mappers.order_mapper import to_order_response
from comanda.application.metrics.order_lifecycle import record_delivery_order_status
from comanda.application.ports.publisher import EventPublisher
from comanda.application.ports.repositories import DeliveryOrderRepository
from comanda.application.use_cases.context import TraceContext
from comanda.application.use_cases.notify import publish_event
from comanda.application.use_cases.open_table import default_currency
from comanda.domain.billing.totals import DiscountType
from comanda.domain.common.ids import OrderId, OrderItemId
from comanda.domain.common.money import Money
from comanda.domain.order.entities import (
    Coupon,
    DeliveryAddress,
    OrderItem,
    PaymentMethod,
    create_pending_order,
)

logger = logging.getLogger(__name__)

# Storefront default when the store has no delivery fee configured.
_DEFAULT_DELIVERY_FEE_CENTS = 599

_COUPON_TYPES = {
    "percentage": DiscountType.PERCENTAGE,
    "fixed": DiscountType.VALUE,
    "value": DiscountType.VALUE,
}


def default_delivery_fee_cents() -> int:
    return int(os.getenv("COMANDA_DELIVERY_FEE_CENTS", str(_DEFAULT_DELIVERY_FEE_CENTS)))


class InvalidPaymentMethodError(Exception):
    pass


class InvalidCouponError(Exception):
    pass


def _to_coupon(request_dto: CouponRequest, currency: str) -> Coupon:
    discount_type = _COUPON_TYPES.get(request_dto.discount_type.lower())
    if discount_type is None:
        raise InvalidCouponError(f"invalid coupon discount type: {request_dto.discount_type}")
    min_order_value = None
    if request_dto.min_order_value_cents is not None:
        min_order_value = Money(amount_cents=request_dto.min_order_value_cents, currency=currency)
    try:
        return Coupon(
            code=request_dto.code,
            discount_type=discount_type,
            discount_value=request_dto.discount_value,
            min_order_value=min_order_value,
        )
    except ValueError as exc:
        raise InvalidCouponError(str(exc)) from exc


class PlaceDeliveryOrder:
    """Place a delivery or pickup order.

    Orders with an address pay the delivery fee; pickup orders do not.
    """

    def __init__(
        self,
        order_repository: DeliveryOrderRepository,
        publisher: EventPublisher,
        currency: str | None = None,
        delivery_fee_cents: int | None = None,
    ) -> None:
        self._order_repository = order_repository
        self._publisher = publisher
        self._currency = currency or default_currency()
        self._delivery_fee_cents = (
            delivery_fee_cents if delivery_fee_cents is not None else default_delivery_fee_cents()
        )

    def execute(
        self,
        request_dto: PlaceDeliveryOrderRequest,
        trace_ctx: TraceContext,
    ) -> OrderResponse:
        try:
            payment_method = PaymentMethod(request_dto.payment_method.lower())
        except ValueError as exc:
            raise InvalidPaymentMethodError(
                f"invalid payment method: {request_dto.payment_method}"
            ) from exc

        order_id = OrderId(f"ord_{uuid4().hex[:12]}")
        items = [
            OrderItem(
                item_id=OrderItemId(f"ori_{uuid4().hex[:12]}"),
                order_id=order_id,
                product_name=line.product_name,
                quantity=line.quantity,
                unit_price=Money(amount_cents=line.unit_price_cents, currency=self._currency),
                observation=line.observation,
            )
            for line in request_dto.items
        ]
        address = None
        delivery_fee = Money.zero(self._currency)
        if request_dto.address is not None:
            address = DeliveryAddress(**request_dto.address.model_dump())
            delivery_fee = Money(amount_cents=self._delivery_fee_cents, currency=self._currency)
        change_for = None
        if request_dto.change_for_cents is not None:
            change_for = Money(amount_cents=request_dto.change_for_cents, currency=self._currency)
        coupon = None
        if request_dto.coupon is not None:
            coupon = _to_coupon(request_dto.coupon, self._currency)

        now = datetime.now(timezone.utc)
        order = create_pending_order(
            order_id=order_id,
            customer_name=request_dto.customer_name,
            customer_phone=request_dto.customer_phone,
            address=address,
            payment_method=payment_method,
            change_for=change_for,
            items=items,
            now=now,
            delivery_fee=delivery_fee,
            coupon=coupon,
        )
        self._order_repository.add(order)

        record_delivery_order_status(order)
        logger.info(
            "delivery_order_placed",
            extra={"order_id": str(order.order_id), "coupon_code": order.coupon_code},
        )
        publish_event(
            self._publisher,
            serialize_order_event(
                event_type="order.placed",
                occurred_at=now,
                order=order,
                trace_id=trace_ctx.trace_id,
                request_id=trace_ctx.request_id,
            ),
        )
        return to_order_response(order)
