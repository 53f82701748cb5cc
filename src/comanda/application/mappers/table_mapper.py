from __future__ import annotations

from comanda.application.dto.responses import MoneyResponse, TableResponse
from comanda.domain.common.money import Money
from comanda.domain.table.entities import Table


def to_money_response(money: Money) -> MoneyResponse:
    return MoneyResponse(amountCents=money.amount_cents, currency=money.currency)


def to_table_response(table: Table) -> TableResponse:
    return TableResponse(
        tableId=str(table.table_id),
        number=table.number,
        name=table.name,
        label=table.label,
        capacity=table.capacity,
        status=table.status.value,
        currentOrderId=str(table.current_order_id) if table.current_order_id else None,
    )
