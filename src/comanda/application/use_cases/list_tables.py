from __future__ import annotations

import logging

from comanda.application.dto.responses import TableListItemResponse, TableListResponse
from comanda.application.mappers.table_mapper import to_money_response, to_table_response
from comanda.application.metrics.order_lifecycle import record_tables_needing_reconciliation
from comanda.application.ports.repositories import TableSessionRepository
from comanda.domain.common.ids import TableId
from comanda.domain.table.consistency import pairing_issue
from comanda.domain.table.entities import TableStatus
from comanda.domain.table_order.entities import TableOrder

logger = logging.getLogger(__name__)

_STATUS_MAP: dict[str, TableStatus | None] = {
    "ALL": None,
    "AVAILABLE": TableStatus.AVAILABLE,
    "OCCUPIED": TableStatus.OCCUPIED,
    "REQUESTING_BILL": TableStatus.REQUESTING_BILL,
}


class InvalidTableListStatusError(Exception):
    pass


class ListTables:
    """Floor plan view. Inconsistent rows are flagged, never raised."""

    def __init__(self, repository: TableSessionRepository) -> None:
        self._repository = repository

    def execute(self, *, status: str = "ALL") -> TableListResponse:
        normalized_status = status.upper()
        if normalized_status not in _STATUS_MAP:
            raise InvalidTableListStatusError(f"invalid table status: {status}")
        wanted = _STATUS_MAP[normalized_status]

        open_by_table: dict[TableId, list[TableOrder]] = {}
        for order in self._repository.list_open_table_orders():
            open_by_table.setdefault(order.table_id, []).append(order)

        items: list[TableListItemResponse] = []
        flagged = 0
        for table in sorted(self._repository.list_tables(), key=lambda t: t.number):
            open_orders = open_by_table.get(table.table_id, [])
            issue = pairing_issue(table, open_orders)
            if issue is not None:
                flagged += 1
                logger.warning(
                    "table_needs_reconciliation",
                    extra={"table_id": str(table.table_id), "reason": issue},
                )
            if wanted is not None and table.status != wanted:
                continue

            current = next(
                (order for order in open_orders if order.order_id == table.current_order_id),
                None,
            )
            items.append(
                TableListItemResponse(
                    **to_table_response(table).model_dump(),
                    openOrderIds=[str(order.order_id) for order in open_orders],
                    currentTotal=to_money_response(current.total_amount) if current else None,
                    consistency="needs_reconciliation" if issue else "ok",
                    consistencyIssue=issue,
                )
            )

        record_tables_needing_reconciliation(flagged)
        return TableListResponse(tables=items)
