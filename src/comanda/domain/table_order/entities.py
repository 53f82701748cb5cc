from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum

from comanda.domain.billing.totals import BillingOptions, TotalsBreakdown, calculate_totals
from comanda.domain.common.ids import (
    ProductId,
    TableId,
    TableOrderId,
    TableOrderItemId,
    WaiterId,
)
from comanda.domain.common.money import Money


class TableOrderStatus(str, Enum):
    OPEN = "open"
    REQUESTING_BILL = "requesting_bill"
    PAID = "paid"
    CANCELLED = "cancelled"

    @property
    def is_active(self) -> bool:
        return self in ACTIVE_TABLE_ORDER_STATUSES


ACTIVE_TABLE_ORDER_STATUSES = frozenset({TableOrderStatus.OPEN, TableOrderStatus.REQUESTING_BILL})


class ItemStatus(str, Enum):
    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


# Statuses that mean the kitchen already accepted the batch.
KITCHEN_ACCEPTED_STATUSES = (ItemStatus.PREPARING, ItemStatus.READY)

_ITEM_FLOW: dict[ItemStatus, ItemStatus] = {
    ItemStatus.PENDING: ItemStatus.PREPARING,
    ItemStatus.PREPARING: ItemStatus.READY,
    ItemStatus.READY: ItemStatus.DELIVERED,
}


@dataclass(frozen=True)
class TableOrderItem:
    item_id: TableOrderItemId
    order_id: TableOrderId
    product_id: ProductId | None
    product_name: str
    quantity: int
    unit_price: Money
    observation: str | None
    status: ItemStatus
    ordered_at: datetime
    delivered_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.quantity < 1:
            raise ValueError("quantity must be >= 1")
        if not self.product_name.strip():
            raise ValueError("product_name must not be blank")

    @property
    def line_total(self) -> Money:
        return self.unit_price.times(self.quantity)

    @property
    def is_billable(self) -> bool:
        return self.status != ItemStatus.CANCELLED

    @property
    def is_terminal(self) -> bool:
        return self.status in (ItemStatus.DELIVERED, ItemStatus.CANCELLED)

    def move_to(self, status: ItemStatus, now: datetime) -> TableOrderItem:
        if status == self.status:
            return self
        if status == ItemStatus.CANCELLED:
            if self.is_terminal:
                raise ItemTransitionError(
                    f"cannot cancel item from status={self.status.value}"
                )
            return replace(self, status=status)
        if _ITEM_FLOW.get(self.status) != status:
            raise ItemTransitionError(
                f"cannot move item from status={self.status.value} to {status.value}"
            )
        if status == ItemStatus.DELIVERED:
            return replace(self, status=status, delivered_at=now)
        return replace(self, status=status)


@dataclass(frozen=True)
class TableOrder:
    order_id: TableOrderId
    table_id: TableId
    status: TableOrderStatus
    customer_count: int
    waiter_name: str | None
    waiter_id: WaiterId | None
    billing: BillingOptions
    subtotal: Money
    total_amount: Money
    payment_method: str | None
    opened_at: datetime
    closed_at: datetime | None
    notes: str | None = None
    customer_name: str | None = None
    customer_phone: str | None = None
    items: list[TableOrderItem] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.customer_count < 1:
            raise ValueError("customer_count must be >= 1")
        if self.subtotal.currency != self.total_amount.currency:
            raise ValueError("subtotal and total_amount currency must match")
        if not self.status.is_active and self.closed_at is None:
            raise ValueError(f"closed_at must be set when status is {self.status.value}")

    @property
    def currency(self) -> str:
        return self.subtotal.currency

    @property
    def active_items(self) -> list[TableOrderItem]:
        return [item for item in self.items if item.is_billable]

    def compute_totals(self) -> TotalsBreakdown:
        return calculate_totals(
            self.items,
            self.billing,
            currency=self.currency,
            customer_count=self.customer_count,
        )

    def has_kitchen_accepted_items(self) -> bool:
        return any(item.status in KITCHEN_ACCEPTED_STATUSES for item in self.items)

    def ensure_open(self) -> None:
        if self.status != TableOrderStatus.OPEN:
            raise TableOrderClosedError(
                f"table order {self.order_id} is {self.status.value}"
            )

    def ensure_active(self) -> None:
        if not self.status.is_active:
            raise TableOrderClosedError(
                f"table order {self.order_id} is {self.status.value}"
            )

    def with_customer(self, name: str, phone: str | None) -> TableOrder:
        """Name the self-service customer on the tab unless it already names one."""
        if self.customer_name:
            return self
        return replace(self, customer_name=name, customer_phone=phone)

    def with_totals(self, totals: TotalsBreakdown) -> TableOrder:
        return replace(self, subtotal=totals.subtotal, total_amount=totals.total)

    def request_bill(self) -> TableOrder:
        if self.status != TableOrderStatus.OPEN:
            raise TableOrderTransitionError(
                f"cannot request bill from status={self.status.value}"
            )
        return replace(self, status=TableOrderStatus.REQUESTING_BILL)

    def reopen(self) -> TableOrder:
        self.ensure_active()
        return replace(self, status=TableOrderStatus.OPEN)

    def pay(
        self,
        *,
        payment_method: str | None,
        billing: BillingOptions,
        totals: TotalsBreakdown,
        now: datetime,
    ) -> TableOrder:
        self._ensure_closable("pay")
        return replace(
            self,
            status=TableOrderStatus.PAID,
            payment_method=payment_method,
            billing=billing,
            subtotal=totals.subtotal,
            total_amount=totals.total,
            closed_at=now,
        )

    def cancel(self, now: datetime) -> TableOrder:
        self._ensure_closable("cancel")
        return replace(self, status=TableOrderStatus.CANCELLED, closed_at=now)

    def move_to_table(self, table_id: TableId) -> TableOrder:
        self.ensure_active()
        return replace(self, table_id=table_id)

    def _ensure_closable(self, action: str) -> None:
        if not self.status.is_active:
            raise TableOrderTransitionError(
                f"cannot {action} table order from status={self.status.value}"
            )


def open_table_order(
    *,
    order_id: TableOrderId,
    table_id: TableId,
    customer_count: int,
    waiter_name: str | None,
    waiter_id: WaiterId | None,
    currency: str,
    now: datetime,
    billing: BillingOptions | None = None,
) -> TableOrder:
    return TableOrder(
        order_id=order_id,
        table_id=table_id,
        status=TableOrderStatus.OPEN,
        customer_count=customer_count,
        waiter_name=waiter_name,
        waiter_id=waiter_id,
        billing=billing or BillingOptions(),
        subtotal=Money.zero(currency),
        total_amount=Money.zero(currency),
        payment_method=None,
        opened_at=now,
        closed_at=None,
    )


def split_from(order: TableOrder, *, order_id: TableOrderId, now: datetime) -> TableOrder:
    """Start a fresh order for the same table, carrying over the tab settings."""
    split = open_table_order(
        order_id=order_id,
        table_id=order.table_id,
        customer_count=order.customer_count,
        waiter_name=order.waiter_name,
        waiter_id=order.waiter_id,
        currency=order.currency,
        now=now,
        billing=order.billing,
    )
    return replace(split, customer_name=order.customer_name, customer_phone=order.customer_phone)


class TableOrderTransitionError(Exception):
    pass


class TableOrderClosedError(TableOrderTransitionError):
    pass


class ItemTransitionError(Exception):
    pass
