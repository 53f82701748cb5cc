from __future__ import annotations

import logging

from comanda.application.metrics.order_lifecycle import record_table_freed
from comanda.application.ports.repositories import TableSessionRepository
from comanda.domain.common.ids import TableId, TableOrderId
from comanda.domain.table.consistency import derive_table_state
from comanda.domain.table.entities import Table, TableStatus
from comanda.domain.table_order.entities import TableOrder

logger = logging.getLogger(__name__)


class TableOrderNotFoundError(Exception):
    pass


def refresh_totals(repository: TableSessionRepository, order_id: TableOrderId) -> TableOrder:
    """Recompute cached totals from a fresh read of the order's items and store them."""
    order = repository.get_table_order(order_id)
    if order is None:
        raise TableOrderNotFoundError(f"table order not found for order_id={order_id}")
    updated = order.with_totals(order.compute_totals())
    if updated != order:
        repository.update_table_order(updated)
    return updated


def settle_table(repository: TableSessionRepository, table_id: TableId) -> Table | None:
    """Point the table at its newest open tab, or free it when none remain."""
    table = repository.get_table(table_id)
    if table is None:
        logger.warning("table_missing_for_order", extra={"table_id": str(table_id)})
        return None

    settled = derive_table_state(table, repository.list_open_orders_for_table(table_id))
    if settled == table:
        return table

    repository.update_table(settled, expected_status=table.status)
    if settled.status == TableStatus.AVAILABLE:
        record_table_freed()
        logger.info("table_freed", extra={"table_id": str(table_id)})
    else:
        logger.info(
            "table_repointed",
            extra={"table_id": str(table_id), "order_id": str(settled.current_order_id)},
        )
    return settled
