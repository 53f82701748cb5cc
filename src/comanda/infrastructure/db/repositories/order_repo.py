from __future__ import annotations

from datetime import timezone

from sqlalchemy import Engine, select, update
from sqlalchemy.orm import Session, selectinload

from comanda.application.ports.repositories import (
    DeliveryOrderRepository,
    OptimisticConcurrencyError,
)
from comanda.domain.common.ids import OrderId, OrderItemId
from comanda.domain.common.money import Money
from comanda.domain.order.entities import (
    DeliveryAddress,
    Order,
    OrderItem,
    OrderStatus,
    PaymentMethod,
)
from comanda.infrastructure.db.models.order import OrderItemModel, OrderModel
from comanda.infrastructure.db.session import get_engine


class SqlAlchemyDeliveryOrderRepository(DeliveryOrderRepository):
    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine or get_engine()

    def add(self, order: Order) -> None:
        order_model = self._to_model(order)
        with Session(self._engine) as session:
            session.add(order_model)
            session.commit()

    def get(self, order_id: OrderId) -> Order | None:
        statement = (
            select(OrderModel)
            .options(selectinload(OrderModel.items))
            .where(OrderModel.id == str(order_id))
            .limit(1)
        )
        with Session(self._engine) as session:
            model = session.execute(statement).scalar_one_or_none()
            if model is None:
                return None
            return self._to_domain(model)

    def list_orders(self) -> list[Order]:
        statement = (
            select(OrderModel)
            .options(selectinload(OrderModel.items))
            .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
        )
        with Session(self._engine) as session:
            models = session.execute(statement).scalars().all()
            return [self._to_domain(model) for model in models]

    def update_status(self, order: Order, expected_status: OrderStatus) -> None:
        statement = (
            update(OrderModel)
            .where(
                OrderModel.id == str(order.order_id),
                OrderModel.status == expected_status.value,
            )
            .values(status=order.status.value, updated_at=order.updated_at)
        )
        with Session(self._engine) as session:
            result = session.execute(statement)
            if result.rowcount != 1:
                session.rollback()
                raise OptimisticConcurrencyError(
                    f"order {order.order_id} is no longer {expected_status.value}"
                )
            session.commit()

    def _to_model(self, order: Order) -> OrderModel:
        address = order.address
        order_model = OrderModel(
            id=str(order.order_id),
            customer_name=order.customer_name,
            customer_phone=order.customer_phone,
            address_street=address.street if address else None,
            address_number=address.number if address else None,
            address_neighborhood=address.neighborhood if address else None,
            address_complement=address.complement if address else None,
            address_reference=address.reference if address else None,
            latitude=address.latitude if address else None,
            longitude=address.longitude if address else None,
            status=order.status.value,
            payment_method=order.payment_method.value,
            change_for_cents=order.change_for.amount_cents if order.change_for else None,
            delivery_fee_cents=order.delivery_fee.amount_cents,
            discount_cents=order.discount_amount.amount_cents,
            coupon_code=order.coupon_code,
            total_cents=order.total_amount.amount_cents,
            currency=order.total_amount.currency,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )
        order_model.items = [
            OrderItemModel(
                id=str(item.item_id),
                order_id=str(order.order_id),
                product_name=item.product_name,
                quantity=item.quantity,
                unit_price_cents=item.unit_price.amount_cents,
                currency=item.unit_price.currency,
                observation=item.observation,
            )
            for item in order.items
        ]
        return order_model

    def _to_domain(self, model: OrderModel) -> Order:
        created_at = model.created_at
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        updated_at = model.updated_at
        if updated_at.tzinfo is None:
            updated_at = updated_at.replace(tzinfo=timezone.utc)

        address = None
        if model.address_street is not None:
            address = DeliveryAddress(
                street=model.address_street,
                number=model.address_number or "",
                neighborhood=model.address_neighborhood or "",
                complement=model.address_complement,
                reference=model.address_reference,
                latitude=model.latitude,
                longitude=model.longitude,
            )
        return Order(
            order_id=OrderId(model.id),
            customer_name=model.customer_name,
            customer_phone=model.customer_phone,
            address=address,
            status=OrderStatus(model.status),
            payment_method=PaymentMethod(model.payment_method),
            change_for=(
                Money(amount_cents=model.change_for_cents, currency=model.currency)
                if model.change_for_cents is not None
                else None
            ),
            delivery_fee=Money(amount_cents=model.delivery_fee_cents, currency=model.currency),
            discount_amount=Money(amount_cents=model.discount_cents, currency=model.currency),
            coupon_code=model.coupon_code,
            total_amount=Money(amount_cents=model.total_cents, currency=model.currency),
            items=[
                OrderItem(
                    item_id=OrderItemId(item.id),
                    order_id=OrderId(model.id),
                    product_name=item.product_name,
                    quantity=item.quantity,
                    unit_price=Money(amount_cents=item.unit_price_cents, currency=item.currency),
                    observation=item.observation,
                )
                for item in model.items
            ],
            created_at=created_at,
            updated_at=updated_at,
        )
