from __future__ import annotations

from comanda.application.dto.responses import (
    TableOrderItemResponse,
    TableOrderResponse,
    TotalsResponse,
)
from comanda.application.mappers.table_mapper import to_money_response
from comanda.domain.billing.totals import TotalsBreakdown
from comanda.domain.table_order.entities import TableOrder, TableOrderItem


def to_item_response(item: TableOrderItem) -> TableOrderItemResponse:
    return TableOrderItemResponse(
        itemId=str(item.item_id),
        orderId=str(item.order_id),
        productId=str(item.product_id) if item.product_id else None,
        productName=item.product_name,
        quantity=item.quantity,
        unitPrice=to_money_response(item.unit_price),
        lineTotal=to_money_response(item.line_total),
        observation=item.observation,
        status=item.status.value,
        orderedAt=item.ordered_at,
        deliveredAt=item.delivered_at,
    )


def to_table_order_response(order: TableOrder) -> TableOrderResponse:
    return TableOrderResponse(
        orderId=str(order.order_id),
        tableId=str(order.table_id),
        status=order.status.value,
        customerCount=order.customer_count,
        waiterName=order.waiter_name,
        waiterId=str(order.waiter_id) if order.waiter_id else None,
        discountType=order.billing.discount_type.value,
        discount=order.billing.discount_value,
        serviceFeeEnabled=order.billing.service_fee_enabled,
        serviceFeePercentage=order.billing.service_fee_percentage,
        subtotal=to_money_response(order.subtotal),
        totalAmount=to_money_response(order.total_amount),
        paymentMethod=order.payment_method,
        openedAt=order.opened_at,
        closedAt=order.closed_at,
        notes=order.notes,
        customerName=order.customer_name,
        customerPhone=order.customer_phone,
        items=[to_item_response(item) for item in sorted(order.items, key=lambda i: i.ordered_at)],
    )


def to_totals_response(totals: TotalsBreakdown) -> TotalsResponse:
    return TotalsResponse(
        subtotal=to_money_response(totals.subtotal),
        discountAmount=to_money_response(totals.discount_amount),
        afterDiscount=to_money_response(totals.after_discount),
        serviceFee=to_money_response(totals.service_fee),
        total=to_money_response(totals.total),
        perPerson=to_money_response(totals.per_person) if totals.per_person else None,
    )
