# app/api/deps.py
from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import AppSettings, get_settings
from app.db.session import AsyncSessionLocal, get_session
from app.services.buyer_location_service import BuyerLocationService
from app.services.shipping_estimate import RuleStore, ShippingEstimateService
from app.services.shipping_estimate.cart_snapshot import parse_cart_snapshot
from app.services.shipping_estimate.rule_store_json import JsonFileRuleStore
from app.services.shipping_estimate.rule_store_sql import SqlRuleStore
from app.services.shipping_estimate.types import BuyerLocation, CartLineItem

# ---------------------------
# 规则仓库 / 估算服务（进程级单例，无请求状态）
# ---------------------------


def build_rule_store(settings: AppSettings) -> RuleStore:
    backend = (settings.SHIPPING_RULES_BACKEND or "sql").strip().lower()
    if backend == "json":
        return JsonFileRuleStore(settings.SHIPPING_RULES_DIR)
    if backend == "sql":
        return SqlRuleStore(AsyncSessionLocal)
    raise ValueError(f"unknown SHIPPING_RULES_BACKEND: {settings.SHIPPING_RULES_BACKEND!r}")


@lru_cache
def get_rule_store() -> RuleStore:
    return build_rule_store(get_settings())


def get_shipping_estimate_service(
    store: RuleStore = Depends(get_rule_store),
) -> ShippingEstimateService:
    """
    ShippingEstimateService 不持有请求状态；单请求缓存（CachedRuleStore）在每次调用内部创建。
    """
    settings = get_settings()
    return ShippingEstimateService(
        store,
        max_concurrency=settings.SHIPPING_RULES_MAX_CONCURRENCY,
        timeout_s=settings.SHIPPING_RULES_FETCH_TIMEOUT_S,
    )


# ---------------------------
# 请求边界：用户 / 购物车 / 收货地
# ---------------------------


def get_current_user_id(request: Request) -> Optional[str]:
    """认证在网关完成，这里只读网关注入的用户头；缺失视为匿名。"""
    raw = request.headers.get(get_settings().USER_ID_HEADER)
    uid = (raw or "").strip()
    return uid or None


def get_cart_snapshot(request: Request) -> List[CartLineItem]:
    return parse_cart_snapshot(request.cookies.get(get_settings().CART_COOKIE_NAME))


async def get_buyer_location(
    user_id: Optional[str] = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
) -> BuyerLocation:
    return await BuyerLocationService.load(session, user_id)


__all__ = (
    "build_rule_store",
    "get_rule_store",
    "get_shipping_estimate_service",
    "get_current_user_id",
    "get_cart_snapshot",
    "get_buyer_location",
)
