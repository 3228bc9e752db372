# app/models/shipping_rule.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    func,
    true,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class ShippingRuleRow(Base):
    """
    卖家运费规则（按目的地定价）

    - city 为 NULL / 空串：该规则覆盖整个 province
    - 同卖家同 (province, city) 理论上只应有一条 active 规则；
      不加唯一约束，重复属于数据质量问题，解析层按 id asc 取第一条
    - price 单位 USD，范围 0 ~ 9999.99
    """

    __tablename__ = "shipping_rules"
    __table_args__ = (
        CheckConstraint(
            "price >= 0 AND price <= 9999.99",
            name="ck_shipping_rules_price_range",
        ),
        Index("ix_shipping_rules_seller_id", "seller_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    seller_id: Mapped[str] = mapped_column(String(64), nullable=False)

    province: Mapped[str] = mapped_column(String(120), nullable=False)
    city: Mapped[str | None] = mapped_column(String(120), nullable=True)

    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=true(),
    )

    note: Mapped[str | None] = mapped_column(String(120), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        return (
            f"<ShippingRuleRow id={self.id} seller_id={self.seller_id!r} "
            f"province={self.province!r} city={self.city!r} "
            f"price={self.price} active={self.active}>"
        )
