from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum

from comanda.domain.billing.totals import DiscountType
from comanda.domain.common.ids import OrderId, OrderItemId
from comanda.domain.common.money import Money, round_cents, to_cents

_HUNDRED = Decimal("100")


class OrderStatus(str, Enum):
    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"
    DELIVERY = "delivery"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    MONEY = "money"
    CARD = "card"
    PIX = "pix"


@dataclass(frozen=True)
class DeliveryAddress:
    street: str
    number: str
    neighborhood: str
    complement: str | None = None
    reference: str | None = None
    latitude: float | None = None
    longitude: float | None = None


@dataclass(frozen=True)
class Coupon:
    """A discount code already validated by the storefront.

    ``discount_value`` is in major units for VALUE coupons and in percentage
    points for PERCENTAGE ones.
    """

    code: str
    discount_type: DiscountType
    discount_value: Decimal
    min_order_value: Money | None = None

    def __post_init__(self) -> None:
        if not self.code.strip():
            raise ValueError("coupon code must not be blank")
        if self.discount_value < 0:
            raise ValueError("coupon discount_value must be >= 0")
        if self.discount_type == DiscountType.PERCENTAGE and self.discount_value > _HUNDRED:
            raise ValueError("percentage coupon must be <= 100")

    def discount_for(self, subtotal: Money) -> Money:
        if self.min_order_value is not None and subtotal.amount_cents < self.min_order_value.amount_cents:
            raise CouponNotApplicableError(
                f"coupon {self.code} requires a minimum order of {self.min_order_value.to_decimal()}"
            )
        if self.discount_type == DiscountType.PERCENTAGE:
            discount_cents = round_cents(Decimal(subtotal.amount_cents) * self.discount_value / _HUNDRED)
        else:
            discount_cents = to_cents(self.discount_value)
        return Money(amount_cents=min(discount_cents, subtotal.amount_cents), currency=subtotal.currency)


@dataclass(frozen=True)
class OrderItem:
    item_id: OrderItemId
    order_id: OrderId
    product_name: str
    quantity: int
    unit_price: Money
    observation: str | None

    def __post_init__(self) -> None:
        if self.quantity < 1:
            raise ValueError("quantity must be >= 1")

    @property
    def is_billable(self) -> bool:
        return True

    @property
    def line_total(self) -> Money:
        return self.unit_price.times(self.quantity)


@dataclass(frozen=True)
class Order:
    """A delivery or pickup order. Pickup orders carry no address."""

    order_id: OrderId
    customer_name: str
    customer_phone: str | None
    address: DeliveryAddress | None
    status: OrderStatus
    payment_method: PaymentMethod
    change_for: Money | None
    delivery_fee: Money
    discount_amount: Money
    coupon_code: str | None
    total_amount: Money
    items: list[OrderItem]
    created_at: datetime
    updated_at: datetime

    def __post_init__(self) -> None:
        if not self.customer_name.strip():
            raise ValueError("customer_name must not be blank")
        if not self.items:
            raise ValueError("order must contain at least one item")
        subtotal = self.subtotal.amount_cents
        if self.discount_amount.amount_cents > subtotal:
            raise ValueError("order discount must not exceed the item subtotal")
        expected_total = subtotal + self.delivery_fee.amount_cents - self.discount_amount.amount_cents
        if self.total_amount.amount_cents != expected_total:
            raise ValueError("order total must equal items plus delivery fee minus discount")

    @property
    def subtotal(self) -> Money:
        return Money(
            amount_cents=sum(item.line_total.amount_cents for item in self.items),
            currency=self.total_amount.currency,
        )

    def move_to(self, status: OrderStatus, now: datetime) -> Order:
        """Set the status directly; the board allows any jump as a manual override."""
        if status == self.status:
            return self
        return replace(self, status=status, updated_at=now)


def create_pending_order(
    *,
    order_id: OrderId,
    customer_name: str,
    customer_phone: str | None,
    address: DeliveryAddress | None,
    payment_method: PaymentMethod,
    change_for: Money | None,
    items: list[OrderItem],
    now: datetime,
    delivery_fee: Money | None = None,
    coupon: Coupon | None = None,
) -> Order:
    if not items:
        raise ValueError("order must contain at least one item")

    currency = items[0].unit_price.currency
    subtotal = Money(
        amount_cents=sum(item.line_total.amount_cents for item in items),
        currency=currency,
    )
    fee = delivery_fee or Money.zero(currency)
    discount = coupon.discount_for(subtotal) if coupon is not None else Money.zero(currency)
    total = Money(
        amount_cents=subtotal.amount_cents + fee.amount_cents - discount.amount_cents,
        currency=currency,
    )
    return Order(
        order_id=order_id,
        customer_name=customer_name,
        customer_phone=customer_phone,
        address=address,
        status=OrderStatus.PENDING,
        payment_method=payment_method,
        change_for=change_for,
        delivery_fee=fee,
        discount_amount=discount,
        coupon_code=coupon.code.upper() if coupon is not None else None,
        total_amount=total,
        items=items,
        created_at=now,
        updated_at=now,
    )


class CouponNotApplicableError(ValueError):
    pass
