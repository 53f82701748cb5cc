from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Header, Query, status
from opentelemetry import trace

from comanda.api.middleware.request_id import get_request_id
from comanda.application.dto.requests import (
    BillingRequest,
    CloseTableOrderRequest,
    CreateTableRequest,
    OpenTableRequest,
    PlaceDineInOrderRequest,
)
from comanda.application.dto.responses import (
    CloseTableResponse,
    DineInOrderResponse,
    TableCheckoutResponse,
    TableListResponse,
    TableOrderResponse,
    TableOrdersResponse,
    TableResponse,
)
from comanda.application.use_cases.close_table import CloseTable, GetTableCheckout
from comanda.application.use_cases.context import StaffContext, TraceContext
from comanda.application.use_cases.dine_in import PlaceDineInOrder
from comanda.application.use_cases.list_tables import ListTables
from comanda.application.use_cases.open_table import CreateTable, GetTable, OpenTable
from comanda.application.use_cases.reconcile_table import ReconcileTable
from comanda.application.use_cases.table_orders import ListTableOpenOrders
from comanda.domain.common.ids import TableId
from comanda.infrastructure.db.repositories.table_repo import SqlAlchemyTableSessionRepository
from comanda.infrastructure.messaging.redis_publisher import RedisEventPublisher

router = APIRouter()


def _current_trace_id() -> str | None:
    span_context = trace.get_current_span().get_span_context()
    if not span_context.is_valid:
        return None
    return format(span_context.trace_id, "032x")


def _trace_ctx() -> TraceContext:
    return TraceContext(trace_id=_current_trace_id(), request_id=get_request_id())


def _list_tables_use_case() -> ListTables:
    return ListTables(repository=SqlAlchemyTableSessionRepository())


def _create_table_use_case() -> CreateTable:
    return CreateTable(repository=SqlAlchemyTableSessionRepository())


def _get_table_use_case() -> GetTable:
    return GetTable(repository=SqlAlchemyTableSessionRepository())


def _open_table_use_case() -> OpenTable:
    return OpenTable(repository=SqlAlchemyTableSessionRepository(), publisher=RedisEventPublisher())


def _dine_in_use_case() -> PlaceDineInOrder:
    return PlaceDineInOrder(repository=SqlAlchemyTableSessionRepository(), publisher=RedisEventPublisher())


def _list_table_orders_use_case() -> ListTableOpenOrders:
    return ListTableOpenOrders(repository=SqlAlchemyTableSessionRepository())


def _checkout_use_case() -> GetTableCheckout:
    return GetTableCheckout(repository=SqlAlchemyTableSessionRepository())


def _close_table_use_case() -> CloseTable:
    return CloseTable(repository=SqlAlchemyTableSessionRepository(), publisher=RedisEventPublisher())


def _reconcile_table_use_case() -> ReconcileTable:
    return ReconcileTable(
        repository=SqlAlchemyTableSessionRepository(),
        publisher=RedisEventPublisher(),
    )


@router.get("/v1/tables", response_model=TableListResponse)
def list_tables(table_status: str = Query(default="ALL", alias="status")) -> TableListResponse:
    return _list_tables_use_case().execute(status=table_status)


@router.post("/v1/tables", response_model=TableResponse, status_code=status.HTTP_201_CREATED)
def create_table(request: CreateTableRequest) -> TableResponse:
    return _create_table_use_case().execute(request)


@router.get("/v1/tables/{table_id}", response_model=TableResponse)
def get_table(table_id: str) -> TableResponse:
    return _get_table_use_case().execute(TableId(table_id))


@router.post(
    "/v1/tables/{table_id}/open",
    response_model=TableOrderResponse,
    status_code=status.HTTP_201_CREATED,
)
def open_table(
    table_id: str,
    request: OpenTableRequest | None = None,
    x_waiter_id: str | None = Header(default=None),
    x_waiter_name: str | None = Header(default=None),
) -> TableOrderResponse:
    return _open_table_use_case().execute(
        table_id=TableId(table_id),
        request_dto=request or OpenTableRequest(),
        staff=StaffContext(waiter_id=x_waiter_id, waiter_name=x_waiter_name),
        trace_ctx=_trace_ctx(),
    )


@router.post(
    "/v1/tables/{table_id}/dine-in-orders",
    response_model=DineInOrderResponse,
    status_code=status.HTTP_201_CREATED,
)
def place_dine_in_order(table_id: str, request: PlaceDineInOrderRequest) -> DineInOrderResponse:
    return _dine_in_use_case().execute(TableId(table_id), request, _trace_ctx())


@router.get("/v1/tables/{table_id}/orders", response_model=TableOrdersResponse)
def list_table_orders(table_id: str) -> TableOrdersResponse:
    return _list_table_orders_use_case().execute(TableId(table_id))


@router.get("/v1/tables/{table_id}/checkout", response_model=TableCheckoutResponse)
def table_checkout(
    table_id: str,
    discount_type: str | None = Query(default=None, alias="discountType"),
    discount: Decimal | None = Query(default=None),
    service_fee_enabled: bool | None = Query(default=None, alias="serviceFeeEnabled"),
    service_fee_percentage: Decimal | None = Query(default=None, alias="serviceFeePercentage"),
) -> TableCheckoutResponse:
    billing_request = None
    if any(
        value is not None
        for value in (discount_type, discount, service_fee_enabled, service_fee_percentage)
    ):
        billing_request = BillingRequest(
            discount_type=discount_type or "value",
            discount=discount if discount is not None else Decimal("0"),
            service_fee_enabled=True if service_fee_enabled is None else service_fee_enabled,
            service_fee_percentage=service_fee_percentage,
        )
    return _checkout_use_case().execute(TableId(table_id), billing_request)


@router.post("/v1/tables/{table_id}/close", response_model=CloseTableResponse)
def close_table(table_id: str, request: CloseTableOrderRequest) -> CloseTableResponse:
    return _close_table_use_case().execute(TableId(table_id), request, _trace_ctx())


@router.post("/v1/tables/{table_id}/reconcile", response_model=TableResponse)
def reconcile_table(table_id: str) -> TableResponse:
    return _reconcile_table_use_case().execute(TableId(table_id), _trace_ctx())
