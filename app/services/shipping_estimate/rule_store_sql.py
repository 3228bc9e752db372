# app/services/shipping_estimate/rule_store_sql.py
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Dict, List, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.shipping_rule import ShippingRuleRow

from .errors import RuleStoreError
from .rule_store import RuleStore
from .types import ShippingRule

log = logging.getLogger("tienda.rules")


def _to_rule(row: ShippingRuleRow) -> ShippingRule:
    return ShippingRule(
        seller_id=row.seller_id,
        province=row.province,
        city=row.city,
        price=Decimal(row.price) if row.price is not None else Decimal("0"),
        active=bool(row.active),
        note=row.note,
    )


class SqlRuleStore(RuleStore):
    """
    shipping_rules 表读取：
    - 每次调用独立 AsyncSession（同一请求内的并发拉取互不共享连接）
    - 稳定顺序：id asc（重复规则“先到先得”的口径）
    - get_rules_for_sellers：一条 IN 查询批量取回
    """

    backend = "sql"
    supports_batch = True

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self._session_maker = session_maker

    async def get_rules_for_seller(self, seller_id: str) -> List[ShippingRule]:
        stmt = (
            select(ShippingRuleRow)
            .where(ShippingRuleRow.seller_id == seller_id)
            .order_by(ShippingRuleRow.id.asc())
        )
        try:
            async with self._session_maker() as session:
                rows = (await session.execute(stmt)).scalars().all()
        except SQLAlchemyError as e:
            log.error("shipping rules query failed: seller=%s err=%s", seller_id, e)
            raise RuleStoreError(
                f"rule store query failed for seller {seller_id!r}",
                seller_id=seller_id,
                backend=self.backend,
            ) from e

        return [_to_rule(r) for r in rows]

    async def get_rules_for_sellers(self, seller_ids: Sequence[str]) -> Dict[str, List[ShippingRule]]:
        ids = list(dict.fromkeys(seller_ids))
        out: Dict[str, List[ShippingRule]] = {sid: [] for sid in ids}
        if not ids:
            return out

        stmt = (
            select(ShippingRuleRow)
            .where(ShippingRuleRow.seller_id.in_(ids))
            .order_by(ShippingRuleRow.id.asc())
        )
        try:
            async with self._session_maker() as session:
                rows = (await session.execute(stmt)).scalars().all()
        except SQLAlchemyError as e:
            log.error("shipping rules batch query failed: sellers=%d err=%s", len(ids), e)
            raise RuleStoreError(
                "rule store batch query failed",
                backend=self.backend,
            ) from e

        for r in rows:
            out.setdefault(r.seller_id, []).append(_to_rule(r))
        return out
