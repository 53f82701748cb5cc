"""Unified order board over delivery orders and table tabs.

Writes against a tab never touch its status column directly: they go through
the tab lifecycle use cases so the table's status and current order pointer
move with it.
"""

from __future__ import annotations

import logging

from comanda.application.dto.requests import CloseTableOrderRequest
from comanda.application.dto.responses import BoardOrderResponse, BoardResponse
from comanda.application.mappers.board_mapper import to_board_order_response
from comanda.application.metrics.order_lifecycle import record_board_status_collapsed
from comanda.application.ports.publisher import EventPublisher
from comanda.application.ports.repositories import (
    DeliveryOrderRepository,
    TableSessionRepository,
)
from comanda.application.use_cases.context import TraceContext
from comanda.application.use_cases.get_order import OrderNotFoundError
from comanda.application.use_cases.table_lifecycle import (
    CancelTableOrder,
    CloseTableOrder,
    ReopenTableOrder,
    RequestBill,
)
from comanda.application.use_cases.table_state import TableOrderNotFoundError
from comanda.application.use_cases.update_order_status import UpdateDeliveryOrderStatus
from comanda.domain.board.transitions import next_status
from comanda.domain.board.unified import (
    BoardStatus,
    UnifiedOrder,
    board_to_table_status,
    build_board,
    project_delivery_order,
    project_table_order,
)
from comanda.domain.common.ids import OrderId, TableOrderId
from comanda.domain.common.kinds import OrderKind
from comanda.domain.order.entities import OrderStatus
from comanda.domain.table_order.entities import TableOrderStatus

logger = logging.getLogger(__name__)

# Board statuses with no tab equivalent; writing them stores ``open``.
_COLLAPSED_FOR_TABLES = frozenset({BoardStatus.PREPARING, BoardStatus.DELIVERY})

# Board completion does not carry a payment method; the cashier records it at checkout.
UNSPECIFIED_PAYMENT_METHOD = "unspecified"


class InvalidBoardRequestError(Exception):
    pass


def parse_kind(raw: str) -> OrderKind:
    try:
        return OrderKind(raw.lower())
    except ValueError as exc:
        raise InvalidBoardRequestError(f"invalid order kind: {raw}") from exc


def parse_board_status(raw: str) -> BoardStatus:
    try:
        return BoardStatus(raw.lower())
    except ValueError as exc:
        raise InvalidBoardRequestError(f"invalid board status: {raw}") from exc


class ListBoardOrders:
    def __init__(
        self,
        order_repository: DeliveryOrderRepository,
        session_repository: TableSessionRepository,
    ) -> None:
        self._order_repository = order_repository
        self._session_repository = session_repository

    def execute(self, kind: str = "ALL") -> BoardResponse:
        wanted = None if kind.upper() == "ALL" else parse_kind(kind)
        delivery_orders = self._order_repository.list_orders() if wanted != OrderKind.TABLE else []
        table_orders = (
            self._session_repository.list_open_table_orders() if wanted != OrderKind.DELIVERY else []
        )
        tables = {table.table_id: table for table in self._session_repository.list_tables()}
        board = build_board(delivery_orders, table_orders, tables)
        return BoardResponse(orders=[to_board_order_response(entry) for entry in board])


class _BoardCommand:
    def __init__(
        self,
        order_repository: DeliveryOrderRepository,
        session_repository: TableSessionRepository,
        publisher: EventPublisher,
    ) -> None:
        self._order_repository = order_repository
        self._session_repository = session_repository
        self._publisher = publisher

    def _load_entry(self, kind: OrderKind, order_id: str) -> UnifiedOrder:
        if kind == OrderKind.DELIVERY:
            order = self._order_repository.get(OrderId(order_id))
            if order is None:
                raise OrderNotFoundError(f"order {order_id} not found")
            return project_delivery_order(order)

        tab = self._session_repository.get_table_order(TableOrderId(order_id))
        if tab is None:
            raise TableOrderNotFoundError(f"table order not found for order_id={order_id}")
        return project_table_order(tab, self._session_repository.get_table(tab.table_id))


class UpdateBoardOrderStatus(_BoardCommand):
    """Drag-and-drop status write. Any target is accepted; no flow is enforced."""

    def execute(
        self,
        kind: str,
        order_id: str,
        status: str,
        trace_ctx: TraceContext,
    ) -> BoardOrderResponse:
        order_kind = parse_kind(kind)
        target = parse_board_status(status)
        if order_kind == OrderKind.DELIVERY:
            UpdateDeliveryOrderStatus(self._order_repository, self._publisher).execute(
                OrderId(order_id), OrderStatus(target.value), trace_ctx
            )
        else:
            self._write_table_status(TableOrderId(order_id), target, trace_ctx)
        return to_board_order_response(self._load_entry(order_kind, order_id))

    def _write_table_status(
        self,
        order_id: TableOrderId,
        target: BoardStatus,
        trace_ctx: TraceContext,
    ) -> None:
        tab = self._session_repository.get_table_order(order_id)
        if tab is None:
            raise TableOrderNotFoundError(f"table order not found for order_id={order_id}")

        tab_status = board_to_table_status(target)
        if target in _COLLAPSED_FOR_TABLES:
            record_board_status_collapsed(target.value)
            logger.warning(
                "board_status_collapsed",
                extra={"order_id": str(order_id), "requested": target.value, "stored": tab_status.value},
            )
        if tab_status == tab.status:
            return

        repository, publisher = self._session_repository, self._publisher
        if tab_status == TableOrderStatus.PAID:
            CloseTableOrder(repository, publisher).execute(
                order_id,
                CloseTableOrderRequest(
                    payment_method=tab.payment_method or UNSPECIFIED_PAYMENT_METHOD,
                    discount_type=tab.billing.discount_type.value,
                    discount=tab.billing.discount_value,
                    service_fee_enabled=tab.billing.service_fee_enabled,
                    service_fee_percentage=tab.billing.service_fee_percentage,
                ),
                trace_ctx,
            )
        elif tab_status == TableOrderStatus.CANCELLED:
            CancelTableOrder(repository, publisher).execute(order_id, trace_ctx)
        elif tab_status == TableOrderStatus.REQUESTING_BILL:
            RequestBill(repository, publisher).execute(order_id, trace_ctx)
        else:
            ReopenTableOrder(repository, publisher).execute(order_id, trace_ctx)


class AdvanceBoardOrder(_BoardCommand):
    """One-click progression along the kind's flow; a no-op at the end of it."""

    def execute(self, kind: str, order_id: str, trace_ctx: TraceContext) -> BoardOrderResponse:
        order_kind = parse_kind(kind)
        entry = self._load_entry(order_kind, order_id)
        upcoming = next_status(order_kind, entry.status)
        if upcoming is None:
            return to_board_order_response(entry)
        return UpdateBoardOrderStatus(
            self._order_repository, self._session_repository, self._publisher
        ).execute(order_kind.value, order_id, upcoming.value, trace_ctx)
