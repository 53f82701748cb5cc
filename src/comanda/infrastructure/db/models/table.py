from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from comanda.infrastructure.db.models.base import Base


class TableModel(Base):
    __tablename__ = "tables"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    number: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)
    name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False, server_default="4")
    status: Mapped[str] = mapped_column(String(20), nullable=False, server_default="available")
    # No FK: the pointer and the tab rows are written in the same transaction.
    current_order_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )


class TableOrderModel(Base):
    __tablename__ = "table_orders"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    table_id: Mapped[str] = mapped_column(
        String(50),
        ForeignKey("tables.id", ondelete="RESTRICT"),
        nullable=False,
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    customer_count: Mapped[int] = mapped_column(Integer, nullable=False, server_default="1")
    waiter_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    waiter_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    discount_type: Mapped[str] = mapped_column(String(20), nullable=False, server_default="value")
    discount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, server_default="0")
    service_fee_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default="true"
    )
    service_fee_percentage: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, server_default="10"
    )
    subtotal_cents: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    total_cents: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    payment_method: Mapped[str | None] = mapped_column(String(30), nullable=True)
    opened_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    customer_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    customer_phone: Mapped[str | None] = mapped_column(String(30), nullable=True)

    items: Mapped[list["TableOrderItemModel"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="TableOrderItemModel.ordered_at",
    )

    __table_args__ = (
        Index("ix_table_orders_table_status", "table_id", "status"),
        Index("ix_table_orders_status_closed_at", "status", "closed_at"),
    )


class TableOrderItemModel(Base):
    __tablename__ = "table_order_items"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    order_id: Mapped[str] = mapped_column(
        String(50),
        ForeignKey("table_orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    observation: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, server_default="pending")
    ordered_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    order: Mapped[TableOrderModel] = relationship(back_populates="items")
