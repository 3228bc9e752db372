# app/api/routers/shipping_estimate_helpers.py
from __future__ import annotations

import logging
from typing import Any, Dict, List

from app.api.problem import ProblemDetail, raise_problem
from app.services.shipping_estimate.errors import RuleStoreError, ShippingEstimateError

from app.api.routers.shipping_estimate_error_codes import (
    ShippingEstimateErrorCode,
    map_estimate_error_to_code,
)

log = logging.getLogger("tienda.api")


def raise_estimate_problem(e: ShippingEstimateError) -> None:
    """
    领域错误 → Problem：
    - RuleStoreError → 503（上游不可用，可重试）
    - 其它 ShippingEstimateError → 500
    """
    code = map_estimate_error_to_code(e)
    ctx: Dict[str, Any] = {}
    details: List[ProblemDetail] = []

    if isinstance(e, RuleStoreError):
        ctx["backend"] = e.backend
        d: ProblemDetail = {"type": "upstream", "reason": str(e), "backend": e.backend}
        if e.seller_id:
            d["seller_id"] = e.seller_id
        details.append(d)

    status_code = 503 if code == ShippingEstimateErrorCode.RULE_STORE_UNAVAILABLE else 500
    log.warning("shipping estimate failed: code=%s err=%s", code, e)

    raise_problem(
        status_code=status_code,
        error_code=code,
        message="运费规则暂不可用，请稍后重试" if status_code == 503 else "运费估算失败",
        context=ctx or None,
        details=details or None,
    )
