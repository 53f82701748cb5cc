from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterator, Sequence

from sqlalchemy import Engine, delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from comanda.application.ports.repositories import (
    OptimisticConcurrencyError,
    TableNumberTakenError,
    TableSessionRepository,
)
from comanda.domain.billing.totals import BillingOptions, DiscountType
from comanda.domain.common.ids import (
    ProductId,
    TableId,
    TableOrderId,
    TableOrderItemId,
    WaiterId,
)
from comanda.domain.common.money import Money
from comanda.domain.table.entities import Table, TableStatus
from comanda.domain.table_order.entities import (
    ACTIVE_TABLE_ORDER_STATUSES,
    ItemStatus,
    TableOrder,
    TableOrderItem,
    TableOrderStatus,
)
from comanda.infrastructure.db.models.table import TableModel, TableOrderItemModel, TableOrderModel
from comanda.infrastructure.db.session import get_engine

_ACTIVE = [status.value for status in ACTIVE_TABLE_ORDER_STATUSES]
_CLOSED = [TableOrderStatus.PAID.value, TableOrderStatus.CANCELLED.value]


def _aware(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SqlAlchemyTableSessionRepository(TableSessionRepository):
    """Tables, tabs and tab items.

    Outside ``atomic()`` every call runs in its own short transaction. Inside it,
    calls share one ``Session`` that commits when the block exits.
    """

    def __init__(self, engine: Engine | None = None, session: Session | None = None) -> None:
        self._engine = engine or get_engine()
        self._session = session

    @contextmanager
    def atomic(self) -> Iterator[SqlAlchemyTableSessionRepository]:
        if self._session is not None:
            yield self
            return
        with Session(self._engine) as session, session.begin():
            yield SqlAlchemyTableSessionRepository(self._engine, session=session)

    @contextmanager
    def _use(self) -> Iterator[Session]:
        if self._session is not None:
            yield self._session
            return
        with Session(self._engine) as session, session.begin():
            yield session

    def get_table(self, table_id: TableId) -> Table | None:
        statement = (
            select(TableModel)
            .where(TableModel.id == str(table_id))
            .execution_options(populate_existing=True)
        )
        with self._use() as session:
            model = session.execute(statement).scalar_one_or_none()
            return self._table_to_domain(model) if model is not None else None

    def list_tables(self) -> list[Table]:
        statement = select(TableModel).order_by(TableModel.number)
        with self._use() as session:
            models = session.execute(
                statement.execution_options(populate_existing=True)
            ).scalars().all()
            return [self._table_to_domain(model) for model in models]

    def add_table(self, table: Table) -> None:
        with self._use() as session:
            session.add(
                TableModel(
                    id=str(table.table_id),
                    number=table.number,
                    name=table.name,
                    capacity=table.capacity,
                    status=table.status.value,
                    current_order_id=table.current_order_id,
                )
            )
            try:
                session.flush()
            except IntegrityError as exc:
                raise TableNumberTakenError(f"table number {table.number} already exists") from exc

    def update_table(self, table: Table, expected_status: TableStatus | None = None) -> None:
        statement = update(TableModel).where(TableModel.id == str(table.table_id))
        if expected_status is not None:
            statement = statement.where(TableModel.status == expected_status.value)
        statement = statement.values(
            number=table.number,
            name=table.name,
            capacity=table.capacity,
            status=table.status.value,
            current_order_id=table.current_order_id,
        ).execution_options(synchronize_session=False)
        with self._use() as session:
            result = session.execute(statement)
            if result.rowcount != 1:
                raise OptimisticConcurrencyError(
                    f"table {table.table_id} changed concurrently "
                    f"(expected status={expected_status.value if expected_status else 'any'})"
                )

    def create_table_order(self, order: TableOrder) -> None:
        with self._use() as session:
            session.add(self._order_to_model(order))
            session.flush()

    def get_table_order(self, order_id: TableOrderId) -> TableOrder | None:
        statement = self._orders_query().where(TableOrderModel.id == str(order_id))
        with self._use() as session:
            model = session.execute(statement).scalar_one_or_none()
            return self._order_to_domain(model) if model is not None else None

    def update_table_order(self, order: TableOrder) -> None:
        statement = (
            update(TableOrderModel)
            .where(TableOrderModel.id == str(order.order_id))
            .values(
                table_id=str(order.table_id),
                status=order.status.value,
                customer_count=order.customer_count,
                waiter_name=order.waiter_name,
                waiter_id=order.waiter_id,
                discount_type=order.billing.discount_type.value,
                discount=order.billing.discount_value,
                service_fee_enabled=order.billing.service_fee_enabled,
                service_fee_percentage=order.billing.service_fee_percentage,
                subtotal_cents=order.subtotal.amount_cents,
                total_cents=order.total_amount.amount_cents,
                currency=order.currency,
                payment_method=order.payment_method,
                closed_at=order.closed_at,
                notes=order.notes,
                customer_name=order.customer_name,
                customer_phone=order.customer_phone,
            )
            .execution_options(synchronize_session=False)
        )
        with self._use() as session:
            result = session.execute(statement)
            if result.rowcount != 1:
                raise OptimisticConcurrencyError(f"table order {order.order_id} not found")

    def list_open_table_orders(self) -> list[TableOrder]:
        statement = self._orders_query().where(TableOrderModel.status.in_(_ACTIVE))
        return self._list_orders(statement)

    def list_open_orders_for_table(self, table_id: TableId) -> list[TableOrder]:
        statement = self._orders_query().where(
            TableOrderModel.table_id == str(table_id),
            TableOrderModel.status.in_(_ACTIVE),
        )
        return self._list_orders(statement)

    def list_closed_table_orders(self, start: datetime, end: datetime) -> list[TableOrder]:
        statement = self._orders_query().where(
            TableOrderModel.status.in_(_CLOSED),
            TableOrderModel.closed_at >= start,
            TableOrderModel.closed_at < end,
        )
        return self._list_orders(statement)

    def insert_item(self, item: TableOrderItem) -> None:
        with self._use() as session:
            session.add(self._item_to_model(item))
            session.flush()

    def get_item(self, item_id: TableOrderItemId) -> TableOrderItem | None:
        statement = (
            select(TableOrderItemModel)
            .where(TableOrderItemModel.id == str(item_id))
            .execution_options(populate_existing=True)
        )
        with self._use() as session:
            model = session.execute(statement).scalar_one_or_none()
            return self._item_to_domain(model) if model is not None else None

    def update_item(self, item: TableOrderItem) -> None:
        statement = (
            update(TableOrderItemModel)
            .where(TableOrderItemModel.id == str(item.item_id))
            .values(
                status=item.status.value,
                quantity=item.quantity,
                observation=item.observation,
                delivered_at=item.delivered_at,
            )
            .execution_options(synchronize_session=False)
        )
        with self._use() as session:
            result = session.execute(statement)
            if result.rowcount != 1:
                raise OptimisticConcurrencyError(f"item {item.item_id} not found")

    def delete_item(self, item_id: TableOrderItemId) -> None:
        statement = (
            delete(TableOrderItemModel)
            .where(TableOrderItemModel.id == str(item_id))
            .execution_options(synchronize_session=False)
        )
        with self._use() as session:
            session.execute(statement)

    def query_item_statuses(
        self,
        order_id: TableOrderId,
        statuses: Sequence[ItemStatus],
    ) -> list[ItemStatus]:
        statement = select(TableOrderItemModel.status).where(
            TableOrderItemModel.order_id == str(order_id),
            TableOrderItemModel.status.in_([status.value for status in statuses]),
        )
        with self._use() as session:
            return [ItemStatus(value) for value in session.execute(statement).scalars().all()]

    def _orders_query(self):
        return (
            select(TableOrderModel)
            .options(selectinload(TableOrderModel.items))
            .order_by(TableOrderModel.opened_at)
            .execution_options(populate_existing=True)
        )

    def _list_orders(self, statement) -> list[TableOrder]:
        with self._use() as session:
            models = session.execute(statement).scalars().all()
            return [self._order_to_domain(model) for model in models]

    def _table_to_domain(self, model: TableModel) -> Table:
        return Table(
            table_id=TableId(model.id),
            number=model.number,
            name=model.name,
            capacity=model.capacity,
            status=TableStatus(model.status),
            current_order_id=TableOrderId(model.current_order_id) if model.current_order_id else None,
        )

    def _order_to_model(self, order: TableOrder) -> TableOrderModel:
        model = TableOrderModel(
            id=str(order.order_id),
            table_id=str(order.table_id),
            status=order.status.value,
            customer_count=order.customer_count,
            waiter_name=order.waiter_name,
            waiter_id=order.waiter_id,
            discount_type=order.billing.discount_type.value,
            discount=order.billing.discount_value,
            service_fee_enabled=order.billing.service_fee_enabled,
            service_fee_percentage=order.billing.service_fee_percentage,
            subtotal_cents=order.subtotal.amount_cents,
            total_cents=order.total_amount.amount_cents,
            currency=order.currency,
            payment_method=order.payment_method,
            opened_at=order.opened_at,
            closed_at=order.closed_at,
            notes=order.notes,
            customer_name=order.customer_name,
            customer_phone=order.customer_phone,
        )
        model.items = [self._item_to_model(item) for item in order.items]
        return model

    def _order_to_domain(self, model: TableOrderModel) -> TableOrder:
        return TableOrder(
            order_id=TableOrderId(model.id),
            table_id=TableId(model.table_id),
            status=TableOrderStatus(model.status),
            customer_count=model.customer_count,
            waiter_name=model.waiter_name,
            waiter_id=WaiterId(model.waiter_id) if model.waiter_id else None,
            billing=BillingOptions(
                discount_type=DiscountType(model.discount_type),
                discount_value=Decimal(model.discount),
                service_fee_enabled=model.service_fee_enabled,
                service_fee_percentage=Decimal(model.service_fee_percentage),
            ),
            subtotal=Money(amount_cents=model.subtotal_cents, currency=model.currency),
            total_amount=Money(amount_cents=model.total_cents, currency=model.currency),
            payment_method=model.payment_method,
            opened_at=_aware(model.opened_at),
            closed_at=_aware(model.closed_at),
            notes=model.notes,
            customer_name=model.customer_name,
            customer_phone=model.customer_phone,
            items=[self._item_to_domain(item) for item in model.items],
        )

    def _item_to_model(self, item: TableOrderItem) -> TableOrderItemModel:
        return TableOrderItemModel(
            id=str(item.item_id),
            order_id=str(item.order_id),
            product_id=item.product_id,
            product_name=item.product_name,
            quantity=item.quantity,
            unit_price_cents=item.unit_price.amount_cents,
            currency=item.unit_price.currency,
            observation=item.observation,
            status=item.status.value,
            ordered_at=item.ordered_at,
            delivered_at=item.delivered_at,
        )

    def _item_to_domain(self, model: TableOrderItemModel) -> TableOrderItem:
        return TableOrderItem(
            item_id=TableOrderItemId(model.id),
            order_id=TableOrderId(model.order_id),
            product_id=ProductId(model.product_id) if model.product_id else None,
            product_name=model.product_name,
            quantity=model.quantity,
            unit_price=Money(amount_cents=model.unit_price_cents, currency=model.currency),
            observation=model.observation,
            status=ItemStatus(model.status),
            ordered_at=_aware(model.ordered_at),
            delivered_at=_aware(model.delivered_at),
        )
