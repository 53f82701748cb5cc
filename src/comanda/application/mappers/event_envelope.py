from __future__ import annotations

import json
from datetime import datetime
from typing import Any
from uuid import uuid4

from comanda.domain.common.money import Money
from comanda.domain.order.entities import Order
from comanda.domain.table.entities import Table
from comanda.domain.table_order.entities import TableOrder


def _money(money: Money) -> dict[str, Any]:
    return {"amountCents": money.amount_cents, "currency": money.currency}


def _serialize_event(
    *,
    event_type: str,
    occurred_at: datetime,
    payload: dict[str, Any],
    trace_id: str | None,
    request_id: str | None,
) -> str:
    envelope = {
        "event_id": str(uuid4()),
        "event_type": event_type,
        "occurred_at": occurred_at.isoformat(),
        "request_id": request_id,
        "trace_id": trace_id,
        "payload": payload,
    }
    return json.dumps(envelope, separators=(",", ":"), ensure_ascii=False)


def serialize_order_event(
    *,
    event_type: str,
    occurred_at: datetime,
    order: Order,
    trace_id: str | None,
    request_id: str | None,
) -> str:
    return _serialize_event(
        event_type=event_type,
        occurred_at=occurred_at,
        trace_id=trace_id,
        request_id=request_id,
        payload={
            "kind": "delivery",
            "orderId": str(order.order_id),
            "status": order.status.value,
            "customerName": order.customer_name,
            "deliveryFee": _money(order.delivery_fee),
            "discountAmount": _money(order.discount_amount),
            "couponCode": order.coupon_code,
            "totalAmount": _money(order.total_amount),
            "createdAt": order.created_at.isoformat(),
            "items": [
                {
                    "itemId": str(item.item_id),
                    "productName": item.product_name,
                    "quantity": item.quantity,
                    "unitPrice": _money(item.unit_price),
                    "observation": item.observation,
                }
                for item in order.items
            ],
        },
    )


def serialize_table_order_event(
    *,
    event_type: str,
    occurred_at: datetime,
    order: TableOrder,
    trace_id: str | None,
    request_id: str | None,
    extra: dict[str, Any] | None = None,
) -> str:
    payload: dict[str, Any] = {
        "kind": "table",
        "orderId": str(order.order_id),
        "tableId": str(order.table_id),
        "status": order.status.value,
        "subtotal": _money(order.subtotal),
        "totalAmount": _money(order.total_amount),
        "openedAt": order.opened_at.isoformat(),
        "closedAt": order.closed_at.isoformat() if order.closed_at else None,
    }
    if extra:
        payload.update(extra)
    return _serialize_event(
        event_type=event_type,
        occurred_at=occurred_at,
        trace_id=trace_id,
        request_id=request_id,
        payload=payload,
    )


def serialize_table_event(
    *,
    event_type: str,
    occurred_at: datetime,
    table: Table,
    trace_id: str | None,
    request_id: str | None,
    extra: dict[str, Any] | None = None,
) -> str:
    payload: dict[str, Any] = {
        "tableId": str(table.table_id),
        "number": table.number,
        "status": table.status.value,
        "currentOrderId": str(table.current_order_id) if table.current_order_id else None,
    }
    if extra:
        payload.update(extra)
    return _serialize_event(
        event_type=event_type,
        occurred_at=occurred_at,
        trace_id=trace_id,
        request_id=request_id,
        payload=payload,
    )
