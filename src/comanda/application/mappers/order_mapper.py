from __future__ import annotations

from comanda.application.dto.responses import (
    DeliveryAddressResponse,
    OrderItemResponse,
    OrderResponse,
)
from comanda.application.mappers.table_mapper import to_money_response
from comanda.domain.order.entities import DeliveryAddress, Order


def to_address_response(address: DeliveryAddress | None) -> DeliveryAddressResponse | None:
    if address is None:
        return None
    return DeliveryAddressResponse(
        street=address.street,
        number=address.number,
        neighborhood=address.neighborhood,
        complement=address.complement,
        reference=address.reference,
        latitude=address.latitude,
        longitude=address.longitude,
    )


def to_order_response(order: Order) -> OrderResponse:
    return OrderResponse(
        orderId=str(order.order_id),
        status=order.status.value,
        customerName=order.customer_name,
        customerPhone=order.customer_phone,
        address=to_address_response(order.address),
        paymentMethod=order.payment_method.value,
        changeFor=to_money_response(order.change_for) if order.change_for else None,
        subtotal=to_money_response(order.subtotal),
        deliveryFee=to_money_response(order.delivery_fee),
        discountAmount=to_money_response(order.discount_amount),
        couponCode=order.coupon_code,
        totalAmount=to_money_response(order.total_amount),
        items=[
            OrderItemResponse(
                itemId=str(item.item_id),
                productName=item.product_name,
                quantity=item.quantity,
                unitPrice=to_money_response(item.unit_price),
                lineTotal=to_money_response(item.line_total),
                observation=item.observation,
            )
            for item in order.items
        ],
        createdAt=order.created_at,
        updatedAt=order.updated_at,
    )
