from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from uuid import uuid4

from comanda.application.dto.requests import CreateTableRequest, OpenTableRequest
from comanda.application.dto.responses import TableOrderResponse, TableResponse
from comanda.application.mappers.event_envelope import serialize_table_order_event
from comanda.application.mappers.table_mapper import to_table_response
from comanda.application.mappers.table_order_mapper import to_table_order_response
from comanda.application.metrics.order_lifecycle import record_table_opened
from comanda.application.ports.publisher import EventPublisher
from comanda.application.ports.repositories import (
    OptimisticConcurrencyError,
    TableSessionRepository,
)
from comanda.application.use_cases.context import StaffContext, TraceContext
from comanda.application.use_cases.notify import publish_event
from comanda.domain.common.ids import TableId, TableOrderId, WaiterId
from comanda.domain.table.entities import Table, TableOccupiedError, TableStatus
from comanda.domain.table_order.entities import open_table_order

logger = logging.getLogger(__name__)


def default_currency() -> str:
    return os.getenv("COMANDA_CURRENCY", "BRL").upper()


class TableNotFoundError(Exception):
    pass


class TableNotAvailableError(Exception):
    pass


class OpenTable:
    def __init__(
        self,
        repository: TableSessionRepository,
        publisher: EventPublisher,
        currency: str | None = None,
    ) -> None:
        self._repository = repository
        self._publisher = publisher
        self._currency = currency or default_currency()

    def execute(
        self,
        table_id: TableId,
        request_dto: OpenTableRequest,
        staff: StaffContext,
        trace_ctx: TraceContext,
    ) -> TableOrderResponse:
        now = datetime.now(timezone.utc)
        waiter_id = request_dto.waiter_id or staff.waiter_id
        try:
            with self._repository.atomic() as tx:
                table = tx.get_table(table_id)
                if table is None:
                    raise TableNotFoundError(f"table not found for table_id={table_id}")

                order = open_table_order(
                    order_id=TableOrderId(f"tor_{uuid4().hex[:12]}"),
                    table_id=table_id,
                    customer_count=request_dto.customer_count,
                    waiter_name=request_dto.waiter_name or staff.waiter_name,
                    waiter_id=WaiterId(waiter_id) if waiter_id else None,
                    currency=self._currency,
                    now=now,
                )
                occupied = table.occupy(order.order_id)
                tx.create_table_order(order)
                tx.update_table(occupied, expected_status=TableStatus.AVAILABLE)
        except (TableOccupiedError, OptimisticConcurrencyError) as exc:
            raise TableNotAvailableError(f"table {table_id} is not available") from exc

        record_table_opened()
        logger.info(
            "table_opened",
            extra={"table_id": str(table_id), "order_id": str(order.order_id)},
        )
        publish_event(
            self._publisher,
            serialize_table_order_event(
                event_type="table.opened",
                occurred_at=now,
                order=order,
                trace_id=trace_ctx.trace_id,
                request_id=trace_ctx.request_id,
                extra={"customerCount": order.customer_count, "waiterName": order.waiter_name},
            ),
        )
        return to_table_order_response(order)


class GetTable:
    def __init__(self, repository: TableSessionRepository) -> None:
        self._repository = repository

    def execute(self, table_id: TableId) -> TableResponse:
        table = self._repository.get_table(table_id)
        if table is None:
            raise TableNotFoundError(f"table not found for table_id={table_id}")
        return to_table_response(table)


class CreateTable:
    def __init__(self, repository: TableSessionRepository) -> None:
        self._repository = repository

    def execute(self, request_dto: CreateTableRequest) -> TableResponse:
        table = Table(
            table_id=TableId(f"tbl_{uuid4().hex[:12]}"),
            number=request_dto.number,
            name=request_dto.name,
            capacity=request_dto.capacity,
            status=TableStatus.AVAILABLE,
            current_order_id=None,
        )
        self._repository.add_table(table)
        return to_table_response(table)
