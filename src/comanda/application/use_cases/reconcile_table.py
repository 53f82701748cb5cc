from __future__ import annotations

import logging
from datetime import datetime, timezone

from comanda.application.dto.responses import TableResponse
from comanda.application.mappers.event_envelope import serialize_table_event
from comanda.application.mappers.table_mapper import to_table_response
from comanda.application.metrics.order_lifecycle import record_table_reconciled
from comanda.application.ports.publisher import EventPublisher
from comanda.application.ports.repositories import TableSessionRepository
from comanda.application.use_cases.context import TraceContext
from comanda.application.use_cases.notify import publish_event
from comanda.application.use_cases.open_table import TableNotFoundError
from comanda.application.use_cases.table_state import settle_table
from comanda.domain.common.ids import TableId

logger = logging.getLogger(__name__)


class ReconcileTable:
    """Admin override: rebuild status and current order from the table's open tabs."""

    def __init__(self, repository: TableSessionRepository, publisher: EventPublisher) -> None:
        self._repository = repository
        self._publisher = publisher

    def execute(self, table_id: TableId, trace_ctx: TraceContext) -> TableResponse:
        now = datetime.now(timezone.utc)
        with self._repository.atomic() as tx:
            before = tx.get_table(table_id)
            if before is None:
                raise TableNotFoundError(f"table not found for table_id={table_id}")
            after = settle_table(tx, table_id) or before

        if after != before:
            record_table_reconciled()
            logger.warning(
                "table_reconciled",
                extra={
                    "table_id": str(table_id),
                    "previous_status": before.status.value,
                    "status": after.status.value,
                },
            )
            publish_event(
                self._publisher,
                serialize_table_event(
                    event_type="table.reconciled",
                    occurred_at=now,
                    table=after,
                    trace_id=trace_ctx.trace_id,
                    request_id=trace_ctx.request_id,
                ),
            )
        return to_table_response(after)
