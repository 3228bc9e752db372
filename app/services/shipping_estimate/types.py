# app/services/shipping_estimate/types.py
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

ZERO = Decimal("0")

# 解析命中层级
LEVEL_CITY = "city"
LEVEL_PROVINCE = "province"
LEVEL_NONE = "none"


@dataclass(frozen=True)
class ShippingRule:
    """卖家定义的目的地运费规则（只读；city 为空 = 全省规则）。"""

    seller_id: str
    province: str
    city: Optional[str] = None
    price: Decimal = ZERO
    active: bool = True
    note: Optional[str] = None


@dataclass(frozen=True)
class CartLineItem:
    product_id: int
    quantity: int
    unit_price: Decimal
    seller_id: str


@dataclass(frozen=True)
class BuyerLocation:
    province: Optional[str] = None
    city: Optional[str] = None


@dataclass(frozen=True)
class SellerShippingEstimate:
    seller_id: str
    province: Optional[str]
    city: Optional[str]
    price: Decimal
    item_count: int


@dataclass
class ShippingEstimateResult:
    total: Decimal = ZERO
    breakdown: List[SellerShippingEstimate] = field(default_factory=list)
    warning: Optional[str] = None


@dataclass
class TariffResolution:
    """
    白盒解析结果：price 之外带上命中层级、命中规则与 reasons，
    供 /api/envios/explicar 与日志解释使用。
    """

    price: Decimal = ZERO
    level: str = LEVEL_NONE
    matched_rule: Optional[ShippingRule] = None
    reasons: List[str] = field(default_factory=list)


@dataclass
class SellerTariffExplanation:
    seller_id: str
    item_count: int
    resolution: TariffResolution
