# app/api/routers/shipping_estimate_error_codes.py
from __future__ import annotations

from app.services.shipping_estimate.errors import RuleStoreError, ShippingEstimateError


class ShippingEstimateErrorCode:
    # 规则仓库不可达 / 超时 / 读失败：整单失败（不返回半成品运费）
    RULE_STORE_UNAVAILABLE = "SHIPPING_ESTIMATE_RULE_STORE_UNAVAILABLE"

    FAILED = "SHIPPING_ESTIMATE_FAILED"


def map_estimate_error_to_code(e: ShippingEstimateError) -> str:
    if isinstance(e, RuleStoreError):
        return ShippingEstimateErrorCode.RULE_STORE_UNAVAILABLE
    return ShippingEstimateErrorCode.FAILED
