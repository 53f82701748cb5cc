from __future__ import annotations

from datetime import datetime, timezone

from prometheus_client import Counter, Gauge, Histogram

from comanda.domain.order.entities import Order
from comanda.domain.table_order.entities import TableOrder

DELIVERY_ORDERS_TOTAL = Counter(
    "comanda_delivery_orders_total",
    "Total number of delivery orders observed by status.",
    ["status"],
)

ORDER_TRANSITION_TOTAL = Counter(
    "comanda_order_transition_total",
    "Total number of order lifecycle transitions.",
    ["kind", "from", "to"],
)

ITEM_TRANSITION_TOTAL = Counter(
    "comanda_item_transition_total",
    "Total number of table order item status transitions.",
    ["from", "to"],
)

TABLES_OPENED_TOTAL = Counter(
    "comanda_tables_opened_total",
    "Total number of table sessions opened.",
)

TABLES_FREED_TOTAL = Counter(
    "comanda_tables_freed_total",
    "Total number of tables released back to available.",
)

TABLE_ORDER_SPLITS_TOTAL = Counter(
    "comanda_table_order_splits_total",
    "Total number of tabs started because the kitchen already accepted the previous batch.",
)

TABLE_ORDERS_CLOSED_TOTAL = Counter(
    "comanda_table_orders_closed_total",
    "Total number of table orders closed by final status.",
    ["status"],
)

TABLE_SESSION_DURATION_SECONDS = Histogram(
    "comanda_table_session_duration_seconds",
    "Time between a tab being opened and being paid or cancelled.",
    buckets=(300, 900, 1800, 3600, 5400, 7200, 10800, 14400),
)

KITCHEN_QUEUE_SIZE = Gauge(
    "comanda_kitchen_queue_size",
    "Current number of kitchen cards returned by queue queries.",
    ["status"],
)

TABLES_NEEDING_RECONCILIATION = Gauge(
    "comanda_tables_needing_reconciliation",
    "Tables whose status and current order pointer disagree.",
)

TABLES_RECONCILED_TOTAL = Counter(
    "comanda_tables_reconciled_total",
    "Total number of tables re-derived from their open orders.",
)

BOARD_STATUS_COLLAPSED_TOTAL = Counter(
    "comanda_board_status_collapsed_total",
    "Board writes against tabs whose requested status has no tab equivalent.",
    ["requested"],
)


def record_delivery_order_status(order: Order) -> None:
    DELIVERY_ORDERS_TOTAL.labels(status=order.status.value).inc()


def record_transition(kind: str, from_status: str, to_status: str) -> None:
    ORDER_TRANSITION_TOTAL.labels(**{"kind": kind, "from": from_status, "to": to_status}).inc()


def record_item_transition(from_status: str, to_status: str) -> None:
    ITEM_TRANSITION_TOTAL.labels(**{"from": from_status, "to": to_status}).inc()


def record_table_opened() -> None:
    TABLES_OPENED_TOTAL.inc()


def record_table_freed() -> None:
    TABLES_FREED_TOTAL.inc()


def record_table_order_split() -> None:
    TABLE_ORDER_SPLITS_TOTAL.inc()


def record_table_order_closed(order: TableOrder, now: datetime | None = None) -> None:
    current = now or datetime.now(timezone.utc)
    TABLE_ORDERS_CLOSED_TOTAL.labels(status=order.status.value).inc()
    TABLE_SESSION_DURATION_SECONDS.observe(
        max((current - order.opened_at).total_seconds(), 0.0)
    )


def record_kitchen_queue_size(status: str, size: int) -> None:
    KITCHEN_QUEUE_SIZE.labels(status=status).set(size)


def record_tables_needing_reconciliation(count: int) -> None:
    TABLES_NEEDING_RECONCILIATION.set(count)


def record_table_reconciled() -> None:
    TABLES_RECONCILED_TOTAL.inc()


def record_board_status_collapsed(requested: str) -> None:
    BOARD_STATUS_COLLAPSED_TOTAL.labels(requested=requested).inc()
