from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


def _to_camel(value: str) -> str:
    parts = value.split("_")
    return parts[0] + "".join(part.capitalize() for part in parts[1:])


class CamelBaseModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=_to_camel,
        populate_by_name=True,
    )


class CreateTableRequest(CamelBaseModel):
    number: int = Field(ge=1)
    name: str | None = None
    capacity: int = Field(default=4, ge=1)


class OpenTableRequest(CamelBaseModel):
    customer_count: int = Field(default=1, ge=1)
    waiter_name: str | None = None
    waiter_id: str | None = None


class AddTableOrderItemRequest(CamelBaseModel):
    product_id: str | None = None
    product_name: str = Field(min_length=1)
    quantity: int = Field(default=1, ge=1)
    unit_price_cents: int = Field(ge=0)
    observation: str | None = None


class PlaceDineInOrderRequest(CamelBaseModel):
    customer_name: str = Field(min_length=1)
    customer_phone: str | None = None
    existing_order_id: str | None = None
    items: list[AddTableOrderItemRequest] = Field(min_length=1)


class UpdateItemStatusRequest(CamelBaseModel):
    status: str


class BillingRequest(CamelBaseModel):
    discount_type: str = "value"
    discount: Decimal = Field(default=Decimal("0"), ge=0)
    service_fee_enabled: bool = True
    service_fee_percentage: Decimal | None = Field(default=None, ge=0, le=100)


class CloseTableOrderRequest(BillingRequest):
    payment_method: str = Field(min_length=1)


class TransferTableRequest(CamelBaseModel):
    to_table_id: str = Field(min_length=1)


class DeliveryAddressRequest(CamelBaseModel):
    street: str = Field(min_length=1)
    number: str = Field(min_length=1)
    neighborhood: str = Field(min_length=1)
    complement: str | None = None
    reference: str | None = None
    latitude: float | None = None
    longitude: float | None = None


class PlaceDeliveryOrderItemRequest(CamelBaseModel):
    product_name: str = Field(min_length=1)
    quantity: int = Field(default=1, ge=1)
    unit_price_cents: int = Field(ge=0)
    observation: str | None = None


class CouponRequest(CamelBaseModel):
    code: str = Field(min_length=1, max_length=50)
    discount_type: str = "fixed"
    discount_value: Decimal = Field(ge=0)
    min_order_value_cents: int | None = Field(default=None, ge=0)


class PlaceDeliveryOrderRequest(CamelBaseModel):
    customer_name: str = Field(min_length=1)
    customer_phone: str | None = None
    address: DeliveryAddressRequest | None = None
    payment_method: str
    change_for_cents: int | None = Field(default=None, ge=0)
    items: list[PlaceDeliveryOrderItemRequest] = Field(min_length=1)
    coupon: CouponRequest | None = None


class BoardStatusRequest(CamelBaseModel):
    status: str


class UpdateOrderStatusRequest(CamelBaseModel):
    status: str
