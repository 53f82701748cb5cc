"""delivery fee, coupon discount and dine-in customer contact

Revision ID: 202610191400
Revises: 202610190900
Create Date: 2026-10-19 14:00:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "202610191400"
down_revision = "202610190900"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column(
        "orders",
        sa.Column("delivery_fee_cents", sa.Integer(), nullable=False, server_default="0"),
    )
    op.add_column(
        "orders",
        sa.Column("discount_cents", sa.Integer(), nullable=False, server_default="0"),
    )
    op.add_column(
        "orders",
        sa.Column("coupon_code", sa.String(length=50), nullable=True),
    )
    op.add_column(
        "table_orders",
        sa.Column("customer_name", sa.String(length=255), nullable=True),
    )
    op.add_column(
        "table_orders",
        sa.Column("customer_phone", sa.String(length=30), nullable=True),
    )
    op.alter_column("orders", "delivery_fee_cents", server_default=None)
    op.alter_column("orders", "discount_cents", server_default=None)


def downgrade() -> None:
    op.drop_column("table_orders", "customer_phone")
    op.drop_column("table_orders", "customer_name")
    op.drop_column("orders", "coupon_code")
    op.drop_column("orders", "discount_cents")
    op.drop_column("orders", "delivery_fee_cents")
