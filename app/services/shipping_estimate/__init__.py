# app/services/shipping_estimate/__init__.py
from __future__ import annotations

from .assembler import NO_PROVINCE_WARNING, ShippingEstimateService, estimate
from .errors import RuleStoreError, RuleStoreWriteError, ShippingEstimateError
from .resolver import explain, resolve
from .rule_store import CachedRuleStore, InMemoryRuleStore, RuleStore
from .types import BuyerLocation, CartLineItem, ShippingEstimateResult, ShippingRule

__all__ = [
    "NO_PROVINCE_WARNING",
    "BuyerLocation",
    "CachedRuleStore",
    "CartLineItem",
    "InMemoryRuleStore",
    "RuleStore",
    "RuleStoreError",
    "RuleStoreWriteError",
    "ShippingEstimateError",
    "ShippingEstimateResult",
    "ShippingEstimateService",
    "ShippingRule",
    "estimate",
    "explain",
    "resolve",
]
