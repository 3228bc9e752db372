# app/models/buyer_profile.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class BuyerProfile(Base):
    """
    买家档案里与运费相关的部分（province / city）。
    账户本身由外部认证系统维护，这里只按 user_id 只读。
    """

    __tablename__ = "buyer_profiles"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)

    province: Mapped[str | None] = mapped_column(String(120), nullable=True)
    city: Mapped[str | None] = mapped_column(String(120), nullable=True)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        return f"<BuyerProfile user_id={self.user_id!r} province={self.province!r} city={self.city!r}>"
