"""create_shipping_rules_and_buyer_profiles

Revision ID: 3f9c1a2b7d10
Revises:
Create Date: 2026-10-16 10:12:40.118204

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3f9c1a2b7d10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


RULES = "shipping_rules"
PROFILES = "buyer_profiles"


def upgrade() -> None:
    op.create_table(
        RULES,
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("seller_id", sa.String(length=64), nullable=False),
        sa.Column("province", sa.String(length=120), nullable=False),
        # NULL = 全省规则
        sa.Column("city", sa.String(length=120), nullable=True),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("note", sa.String(length=120), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint(
            "price >= 0 AND price <= 9999.99",
            name="ck_shipping_rules_price_range",
        ),
    )
    op.create_index("ix_shipping_rules_seller_id", RULES, ["seller_id"])

    op.create_table(
        PROFILES,
        sa.Column("user_id", sa.String(length=64), primary_key=True),
        sa.Column("province", sa.String(length=120), nullable=True),
        sa.Column("city", sa.String(length=120), nullable=True),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )


def downgrade() -> None:
    op.drop_table(PROFILES)
    op.drop_index("ix_shipping_rules_seller_id", table_name=RULES)
    op.drop_table(RULES)
