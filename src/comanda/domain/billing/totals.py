"""Bill arithmetic shared by the checkout preview and the persisted order totals.

Both paths call :func:`calculate_totals` with the same inputs, so the amount a
customer is shown and the amount stored when the tab is closed cannot drift
apart. All money is handled in integer cents; percentages are ``Decimal`` and
fractional cents are rounded half-up.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Iterable, Protocol, Sequence

from comanda.domain.common.money import Money, round_cents, to_cents

DEFAULT_SERVICE_FEE_PERCENTAGE = Decimal("10")
_HUNDRED = Decimal("100")


class DiscountType(str, Enum):
    VALUE = "value"
    PERCENTAGE = "percentage"


class BillableLine(Protocol):
    @property
    def quantity(self) -> int: ...

    @property
    def unit_price(self) -> Money: ...

    @property
    def is_billable(self) -> bool: ...


@dataclass(frozen=True)
class BillingOptions:
    """Discount and service fee settings of a tab.

    ``discount_value`` is a currency amount in major units (``Decimal("5.00")``)
    for ``DiscountType.VALUE`` and percentage points for ``DiscountType.PERCENTAGE``.
    """

    discount_type: DiscountType = DiscountType.VALUE
    discount_value: Decimal = Decimal("0")
    service_fee_enabled: bool = True
    service_fee_percentage: Decimal = DEFAULT_SERVICE_FEE_PERCENTAGE

    def __post_init__(self) -> None:
        if self.discount_value < 0:
            raise InvalidBillingOptionsError("discount must be >= 0")
        if self.discount_type == DiscountType.PERCENTAGE and self.discount_value > _HUNDRED:
            raise InvalidBillingOptionsError("percentage discount must be <= 100")
        if not Decimal("0") <= self.service_fee_percentage <= _HUNDRED:
            raise InvalidBillingOptionsError("service fee percentage must be between 0 and 100")


@dataclass(frozen=True)
class TotalsBreakdown:
    subtotal: Money
    discount_amount: Money
    after_discount: Money
    service_fee: Money
    total: Money
    per_person: Money | None = None


def calculate_totals(
    lines: Iterable[BillableLine],
    options: BillingOptions,
    *,
    currency: str,
    customer_count: int = 1,
) -> TotalsBreakdown:
    subtotal_cents = sum(
        line.unit_price.amount_cents * line.quantity for line in lines if line.is_billable
    )

    if options.discount_type == DiscountType.PERCENTAGE:
        discount_cents = round_cents(Decimal(subtotal_cents) * options.discount_value / _HUNDRED)
    else:
        discount_cents = to_cents(options.discount_value)

    after_discount_cents = max(0, subtotal_cents - discount_cents)
    service_fee_cents = 0
    if options.service_fee_enabled:
        service_fee_cents = round_cents(
            Decimal(after_discount_cents) * options.service_fee_percentage / _HUNDRED
        )
    total_cents = after_discount_cents + service_fee_cents

    per_person: Money | None = None
    if customer_count > 1:
        per_person = Money(
            amount_cents=round_cents(Decimal(total_cents) / customer_count),
            currency=currency,
        )

    return TotalsBreakdown(
        subtotal=Money(amount_cents=subtotal_cents, currency=currency),
        discount_amount=Money(amount_cents=discount_cents, currency=currency),
        after_discount=Money(amount_cents=after_discount_cents, currency=currency),
        service_fee=Money(amount_cents=service_fee_cents, currency=currency),
        total=Money(amount_cents=total_cents, currency=currency),
        per_person=per_person,
    )


def split_evenly(total: Money, parts: int) -> list[Money]:
    """Split ``total`` into ``parts`` cent shares that add up to it exactly.

    The first ``total % parts`` shares carry the leftover cent.
    """
    if parts < 1:
        raise ValueError("parts must be >= 1")
    share, remainder = divmod(total.amount_cents, parts)
    return [
        Money(amount_cents=share + (1 if index < remainder else 0), currency=total.currency)
        for index in range(parts)
    ]


def allocate_discount(subtotals_cents: Sequence[int], discount_cents: int) -> list[int]:
    """Spread a fixed discount over several bills in order, never past a bill's subtotal.

    Used when one value discount covers every tab of a table, so the sum of the
    per-tab discounts equals the discount applied to the combined bill.
    """
    remaining = max(discount_cents, 0)
    shares: list[int] = []
    for subtotal in subtotals_cents:
        share = min(subtotal, remaining)
        shares.append(share)
        remaining -= share
    return shares


def _settle(values: Sequence[int], target: int, caps: Sequence[int] | None = None) -> list[int]:
    adjusted = list(values)
    remaining = target - sum(adjusted)
    for index in reversed(range(len(adjusted))):
        if remaining == 0:
            break
        if remaining > 0:
            room = remaining if caps is None else min(remaining, caps[index] - adjusted[index])
            change = max(room, 0)
        else:
            change = max(remaining, -adjusted[index])
        adjusted[index] += change
        remaining -= change
    return adjusted


def allocate_totals(
    parts: Sequence[TotalsBreakdown],
    combined: TotalsBreakdown,
) -> list[TotalsBreakdown]:
    """Adjust per-bill breakdowns so they add up to the combined bill to the cent.

    Each bill rounds its own discount and service fee, so their sum can be off
    by a cent or so per bill. The difference is moved onto the last bills, never
    taking a discount past a subtotal or a component below zero.
    """
    subtotals = [part.subtotal.amount_cents for part in parts]
    discounts = _settle(
        [part.subtotal.amount_cents - part.after_discount.amount_cents for part in parts],
        combined.subtotal.amount_cents - combined.after_discount.amount_cents,
        caps=subtotals,
    )
    fees = _settle(
        [part.service_fee.amount_cents for part in parts],
        combined.service_fee.amount_cents,
    )
    currency = combined.total.currency
    allocated: list[TotalsBreakdown] = []
    for part, subtotal, discount, fee in zip(parts, subtotals, discounts, fees):
        after_discount = subtotal - discount
        allocated.append(
            TotalsBreakdown(
                subtotal=part.subtotal,
                discount_amount=Money(amount_cents=discount, currency=currency),
                after_discount=Money(amount_cents=after_discount, currency=currency),
                service_fee=Money(amount_cents=fee, currency=currency),
                total=Money(amount_cents=after_discount + fee, currency=currency),
                per_person=part.per_person,
            )
        )
    return allocated


class InvalidBillingOptionsError(ValueError):
    pass
