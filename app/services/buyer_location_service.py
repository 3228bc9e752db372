# app/services/buyer_location_service.py
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.buyer_profile import BuyerProfile
from app.services.shipping_estimate.types import BuyerLocation

log = logging.getLogger("tienda.shipping")


class BuyerLocationService:
    """
    买家收货地（province / city）读取。

    - user_id 为空 / 档案不存在：返回空 BuyerLocation（→ 估算走 warning 分支）
    - 只读，不做任何写入
    """

    @staticmethod
    async def load(session: AsyncSession, user_id: Optional[str]) -> BuyerLocation:
        uid = (user_id or "").strip()
        if not uid:
            return BuyerLocation()

        row = (
            await session.execute(select(BuyerProfile).where(BuyerProfile.user_id == uid))
        ).scalar_one_or_none()

        if row is None:
            log.info("buyer profile not found: user_id=%s", uid)
            return BuyerLocation()

        return BuyerLocation(province=row.province, city=row.city)
