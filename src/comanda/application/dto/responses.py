from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class MoneyResponse(BaseModel):
    amountCents: int
    currency: str


class TableResponse(BaseModel):
    tableId: str
    number: int
    name: str | None = None
    label: str
    capacity: int
    status: str
    currentOrderId: str | None = None


class TableListItemResponse(TableResponse):
    openOrderIds: list[str] = Field(default_factory=list)
    currentTotal: MoneyResponse | None = None
    consistency: str = "ok"
    consistencyIssue: str | None = None


class TableListResponse(BaseModel):
    tables: list[TableListItemResponse] = Field(default_factory=list)


class TableOrderItemResponse(BaseModel):
    itemId: str
    orderId: str
    productId: str | None = None
    productName: str
    quantity: int
    unitPrice: MoneyResponse
    lineTotal: MoneyResponse
    observation: str | None = None
    status: str
    orderedAt: datetime
    deliveredAt: datetime | None = None


class TableOrderResponse(BaseModel):
    orderId: str
    tableId: str
    status: str
    customerCount: int
    waiterName: str | None = None
    waiterId: str | None = None
    discountType: str
    discount: Decimal
    serviceFeeEnabled: bool
    serviceFeePercentage: Decimal
    subtotal: MoneyResponse
    totalAmount: MoneyResponse
    paymentMethod: str | None = None
    openedAt: datetime
    closedAt: datetime | None = None
    notes: str | None = None
    customerName: str | None = None
    customerPhone: str | None = None
    items: list[TableOrderItemResponse] = Field(default_factory=list)


class TableOrdersResponse(BaseModel):
    orders: list[TableOrderResponse] = Field(default_factory=list)


class AddTableOrderItemResponse(BaseModel):
    item: TableOrderItemResponse
    orderId: str
    createdNewOrder: bool


class DineInOrderResponse(BaseModel):
    order: TableOrderResponse
    createdNewOrder: bool
    itemIds: list[str] = Field(default_factory=list)


class TotalsResponse(BaseModel):
    subtotal: MoneyResponse
    discountAmount: MoneyResponse
    afterDiscount: MoneyResponse
    serviceFee: MoneyResponse
    total: MoneyResponse
    perPerson: MoneyResponse | None = None


class TableCheckoutResponse(BaseModel):
    tableId: str
    label: str
    orderIds: list[str] = Field(default_factory=list)
    customerCount: int
    items: list[TableOrderItemResponse] = Field(default_factory=list)
    totals: TotalsResponse
    perPersonShares: list[MoneyResponse] = Field(default_factory=list)


class CloseTableResponse(BaseModel):
    table: TableResponse
    orders: list[TableOrderResponse] = Field(default_factory=list)
    totals: TotalsResponse


class TransferTableResponse(BaseModel):
    fromTable: TableResponse | None = None
    toTable: TableResponse | None = None
    movedOrderIds: list[str] = Field(default_factory=list)


class DeliveryAddressResponse(BaseModel):
    street: str
    number: str
    neighborhood: str
    complement: str | None = None
    reference: str | None = None
    latitude: float | None = None
    longitude: float | None = None


class OrderItemResponse(BaseModel):
    itemId: str
    productName: str
    quantity: int
    unitPrice: MoneyResponse
    lineTotal: MoneyResponse
    observation: str | None = None


class OrderResponse(BaseModel):
    orderId: str
    status: str
    customerName: str
    customerPhone: str | None = None
    address: DeliveryAddressResponse | None = None
    paymentMethod: str
    changeFor: MoneyResponse | None = None
    subtotal: MoneyResponse
    deliveryFee: MoneyResponse
    discountAmount: MoneyResponse
    couponCode: str | None = None
    totalAmount: MoneyResponse
    items: list[OrderItemResponse] = Field(default_factory=list)
    createdAt: datetime
    updatedAt: datetime


class OrdersResponse(BaseModel):
    orders: list[OrderResponse] = Field(default_factory=list)


class BoardOrderResponse(BaseModel):
    kind: str
    orderId: str
    status: str
    customerName: str
    customerPhone: str | None = None
    address: DeliveryAddressResponse | None = None
    tableId: str | None = None
    tableNumber: int | None = None
    tableName: str | None = None
    waiterName: str | None = None
    customerCount: int | None = None
    kitchenStatus: str | None = None
    totalAmount: MoneyResponse
    paymentMethod: str | None = None
    createdAt: datetime
    nextStatus: str | None = None
    nextStatusLabel: str | None = None


class BoardResponse(BaseModel):
    orders: list[BoardOrderResponse] = Field(default_factory=list)


class KitchenItemResponse(BaseModel):
    itemId: str
    productName: str
    quantity: int
    observation: str | None = None
    status: str
    orderedAt: datetime


class KitchenCardResponse(BaseModel):
    cardKey: str
    kind: str
    orderId: str
    status: str
    tableNumber: int | None = None
    tableName: str | None = None
    waiterName: str | None = None
    customerName: str | None = None
    oldestOrderedAt: datetime
    items: list[KitchenItemResponse] = Field(default_factory=list)


class KitchenQueueResponse(BaseModel):
    cards: list[KitchenCardResponse] = Field(default_factory=list)
