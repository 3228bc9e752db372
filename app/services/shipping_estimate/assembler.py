# app/services/shipping_estimate/assembler.py
from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from .aggregator import fetch_rules_for_sellers, group_by_seller, lookup_seller_ids
from .errors import RuleStoreError
from .metrics import shipping_estimates_total, shipping_tariff_level_total
from .normalize import is_blank
from .resolver import explain
from .rule_store import CachedRuleStore, RuleStore
from .types import (
    LEVEL_NONE,
    ZERO,
    BuyerLocation,
    CartLineItem,
    SellerShippingEstimate,
    SellerTariffExplanation,
    ShippingEstimateResult,
    ShippingRule,
)

log = logging.getLogger("tienda.shipping")

NO_PROVINCE_WARNING = "El usuario no tiene provincia configurada en su perfil."


def missing_tariff_message(seller_id: str, province: str, city: Optional[str]) -> str:
    dest = province if is_blank(city) else f"{province} / {city}"
    return f"El vendedor {seller_id} no tiene tarifa configurada para {dest}."


async def _resolve_groups(
    groups: Dict[str, int],
    buyer: BuyerLocation,
    store: RuleStore,
    *,
    max_concurrency: int,
    timeout_s: Optional[float],
) -> List[SellerTariffExplanation]:
    rules_by_seller: Dict[str, List[ShippingRule]] = await fetch_rules_for_sellers(
        store,
        lookup_seller_ids(groups),
        max_concurrency=max_concurrency,
        timeout_s=timeout_s,
    )

    out: List[SellerTariffExplanation] = []
    for sid, item_count in groups.items():
        resolution = explain(rules_by_seller.get(sid, []), buyer.province, buyer.city)
        if is_blank(sid):
            resolution.reasons.insert(0, "tariff_blank_seller: no rules looked up")
        shipping_tariff_level_total.labels(resolution.level).inc()
        out.append(SellerTariffExplanation(seller_id=sid, item_count=item_count, resolution=resolution))
    return out


async def estimate(
    cart: Sequence[CartLineItem],
    buyer: BuyerLocation,
    store: RuleStore,
    *,
    max_concurrency: int = 8,
    timeout_s: Optional[float] = None,
) -> ShippingEstimateResult:
    """
    购物车运费估算（顶层编排）：

    1) 买家没有 province → total=0 / 空明细 / warning（不查任何规则）
    2) 购物车为空 → total=0 / 空明细 / 无 warning
    3) 按卖家分组 → 拉规则 → 逐卖家裁决 → 汇总
    4) 有卖家没配到目的地规则 → 运费记 0，warning 里逐个列出该卖家

    只有规则仓库的 I/O 失败会抛错（RuleStoreError）；缺规则 / 缺 city 一律降级为 0。
    """
    if is_blank(buyer.province):
        shipping_estimates_total.labels("no_province").inc()
        log.info("shipping estimate skipped: buyer has no province")
        return ShippingEstimateResult(total=ZERO, breakdown=[], warning=NO_PROVINCE_WARNING)

    if not cart:
        shipping_estimates_total.labels("empty_cart").inc()
        return ShippingEstimateResult(total=ZERO, breakdown=[], warning=None)

    groups = group_by_seller(cart)

    try:
        explained = await _resolve_groups(
            groups,
            buyer,
            store,
            max_concurrency=max_concurrency,
            timeout_s=timeout_s,
        )
    except RuleStoreError:
        shipping_estimates_total.labels("error").inc()
        raise

    result = ShippingEstimateResult()
    province = (buyer.province or "").strip()
    city = None if is_blank(buyer.city) else (buyer.city or "").strip()
    missing: List[str] = []
    for x in explained:
        # 空卖家不查规则，不算配置缺口
        if x.resolution.level == LEVEL_NONE and not is_blank(x.seller_id):
            missing.append(missing_tariff_message(x.seller_id, province, city))
        result.breakdown.append(
            SellerShippingEstimate(
                seller_id=x.seller_id,
                province=buyer.province,
                city=buyer.city,
                price=x.resolution.price,
                item_count=x.item_count,
            )
        )
        result.total += x.resolution.price

    # 缺规则只提示，不影响其它卖家的运费
    if missing:
        result.warning = " ".join(missing)

    shipping_estimates_total.labels("ok").inc()
    log.info(
        "shipping estimate ok: sellers=%d total=%s province=%s city=%s",
        len(result.breakdown),
        result.total,
        buyer.province,
        buyer.city,
    )
    return result


class ShippingEstimateService:
    """
    无状态估算服务：只持有规则仓库与并发参数，可跨请求 / 跨协程复用。
    每次调用内部包一层 CachedRuleStore（单请求缓存，不跨请求共享）。
    """

    def __init__(
        self,
        store: RuleStore,
        *,
        max_concurrency: int = 8,
        timeout_s: Optional[float] = None,
    ) -> None:
        self.store = store
        self.max_concurrency = max_concurrency
        self.timeout_s = timeout_s

    async def estimate(self, cart: Sequence[CartLineItem], buyer: BuyerLocation) -> ShippingEstimateResult:
        return await estimate(
            cart,
            buyer,
            CachedRuleStore(self.store),
            max_concurrency=self.max_concurrency,
            timeout_s=self.timeout_s,
        )

    async def explain(self, cart: Sequence[CartLineItem], buyer: BuyerLocation) -> List[SellerTariffExplanation]:
        """逐卖家白盒解释（调试用）；买家无 province 或购物车为空时返回空列表。"""
        if is_blank(buyer.province) or not cart:
            return []
        return await _resolve_groups(
            group_by_seller(cart),
            buyer,
            CachedRuleStore(self.store),
            max_concurrency=self.max_concurrency,
            timeout_s=self.timeout_s,
        )
