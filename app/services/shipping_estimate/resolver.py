# app/services/shipping_estimate/resolver.py
from __future__ import annotations

import logging
from decimal import Decimal
from typing import List, Optional, Sequence

from .normalize import is_blank, normalize
from .types import (
    LEVEL_CITY,
    LEVEL_NONE,
    LEVEL_PROVINCE,
    ZERO,
    ShippingRule,
    TariffResolution,
)

log = logging.getLogger("tienda.shipping")


def _label(province: Optional[str], city: Optional[str] = None) -> str:
    p = (province or "").strip()
    c = (city or "").strip()
    return f"{p}-{c}" if c else p


def explain(
    rules: Sequence[ShippingRule],
    province: Optional[str],
    city: Optional[str],
) -> TariffResolution:
    """
    单卖家运费裁决（白盒版）：

    1) city 规则：active + 同省 + 规则 city 非空 + 同市
    2) province 规则：active + 同省 + 规则 city 为空
    3) 都不命中：0（策略默认值，不是错误）

    - 先命中者胜，不叠加
    - 同层重复：按原始顺序取第一条，其余记 reasons（数据质量问题，不报错）
    - 若 city 命中且同省也有 province 规则，记录 province 被抑制（city wins）
    """
    out = TariffResolution()
    prov_key = normalize(province)
    city_key = normalize(city)

    if not prov_key:
        out.reasons.append("tariff_no_province: default 0")
        return out

    hit_city: List[ShippingRule] = []
    hit_province: List[ShippingRule] = []
    inactive = 0

    for r in rules:
        if is_blank(r.province) or normalize(r.province) != prov_key:
            continue
        if not bool(r.active):
            inactive += 1
            continue
        if is_blank(r.city):
            hit_province.append(r)
        elif city_key and normalize(r.city) == city_key:
            hit_city.append(r)

    if inactive:
        out.reasons.append(f"tariff_inactive_skipped: province={_label(province)} count={inactive}")

    if hit_city:
        chosen = hit_city[0]
        out.price = Decimal(chosen.price)
        out.level = LEVEL_CITY
        out.matched_rule = chosen
        out.reasons.append(f"tariff_city_hit: {_label(chosen.province, chosen.city)} ({out.price})")
        if len(hit_city) > 1:
            out.reasons.append(
                f"tariff_duplicate_rules: {_label(province, city)} count={len(hit_city)} (first wins)"
            )
            log.warning(
                "duplicate city shipping rules: seller=%s province=%s city=%s count=%d",
                chosen.seller_id,
                province,
                city,
                len(hit_city),
            )
        if hit_province:
            out.reasons.append(f"tariff_province_suppressed: province={_label(province)} (city wins)")
        return out

    if hit_province:
        chosen = hit_province[0]
        out.price = Decimal(chosen.price)
        out.level = LEVEL_PROVINCE
        out.matched_rule = chosen
        out.reasons.append(f"tariff_province_hit: {_label(chosen.province)} ({out.price})")
        if len(hit_province) > 1:
            out.reasons.append(
                f"tariff_duplicate_rules: {_label(province)} count={len(hit_province)} (first wins)"
            )
            log.warning(
                "duplicate province shipping rules: seller=%s province=%s count=%d",
                chosen.seller_id,
                province,
                len(hit_province),
            )
        return out

    out.price = ZERO
    out.level = LEVEL_NONE
    out.reasons.append(f"tariff_no_match: {_label(province, city)} (default 0)")
    return out


def resolve(
    rules: Sequence[ShippingRule],
    province: Optional[str],
    city: Optional[str],
) -> Decimal:
    return explain(rules, province, city).price
