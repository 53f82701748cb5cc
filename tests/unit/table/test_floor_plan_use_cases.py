from __future__ import annotations

import json

import pytest

from comanda.application.dto.requests import OpenTableRequest
from comanda.application.use_cases.context import StaffContext
from comanda.application.use_cases.list_tables import InvalidTableListStatusError, ListTables
from comanda.application.use_cases.open_table import OpenTable, TableNotFoundError
from comanda.application.use_cases.reconcile_table import ReconcileTable
from comanda.domain.common.ids import TableId, TableOrderId
from comanda.domain.table.consistency import CURRENT_ORDER_NOT_OPEN, OPEN_ORDERS_ON_FREE_TABLE
from comanda.domain.table.entities import Table, TableStatus


@pytest.fixture
def floor(session_repository, publisher, trace_ctx, seed_table) -> str:
    seed_table(1)
    seed_table(2)
    session_repository.add_table(
        Table(
            table_id=TableId("tbl_3"),
            number=3,
            name=None,
            capacity=2,
            status=TableStatus.OCCUPIED,
            current_order_id=TableOrderId("tor_lost"),
        )
    )
    return OpenTable(session_repository, publisher, currency="BRL").execute(
        TableId("tbl_1"), OpenTableRequest(), StaffContext(), trace_ctx
    ).orderId


def test_list_tables_flags_inconsistent_rows(session_repository, floor) -> None:
    response = ListTables(session_repository).execute()

    rows = {row.number: row for row in response.tables}
    assert list(rows) == [1, 2, 3]
    assert rows[1].consistency == "ok"
    assert rows[1].openOrderIds == [floor]
    assert rows[1].currentTotal.amountCents == 0
    assert rows[2].status == "available"
    assert rows[3].consistency == "needs_reconciliation"
    assert rows[3].consistencyIssue == CURRENT_ORDER_NOT_OPEN


def test_list_tables_filters_by_status(session_repository, floor) -> None:
    occupied = ListTables(session_repository).execute(status="occupied")

    assert [row.number for row in occupied.tables] == [1, 3]
    with pytest.raises(InvalidTableListStatusError):
        ListTables(session_repository).execute(status="dirty")


def test_reconcile_frees_table_with_dangling_pointer(session_repository, publisher, trace_ctx, floor) -> None:
    publisher.messages.clear()

    response = ReconcileTable(session_repository, publisher).execute(TableId("tbl_3"), trace_ctx)

    assert response.status == "available"
    assert response.currentOrderId is None
    assert json.loads(publisher.messages[0][1])["event_type"] == "table.reconciled"
    assert ListTables(session_repository).execute().tables[2].consistency == "ok"


def test_reconcile_reattaches_open_tab_to_free_table(session_repository, publisher, trace_ctx, floor) -> None:
    table = session_repository.tables[TableId("tbl_1")]
    session_repository.tables[table.table_id] = table.free()
    row = ListTables(session_repository).execute().tables[0]
    assert row.consistencyIssue == OPEN_ORDERS_ON_FREE_TABLE

    response = ReconcileTable(session_repository, publisher).execute(TableId("tbl_1"), trace_ctx)

    assert response.status == "occupied"
    assert response.currentOrderId == floor


def test_reconcile_consistent_table_is_a_no_op(session_repository, publisher, trace_ctx, floor) -> None:
    publisher.messages.clear()

    response = ReconcileTable(session_repository, publisher).execute(TableId("tbl_1"), trace_ctx)

    assert response.currentOrderId == floor
    assert publisher.messages == []
    with pytest.raises(TableNotFoundError):
        ReconcileTable(session_repository, publisher).execute(TableId("tbl_9"), trace_ctx)
