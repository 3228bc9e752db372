# app/api/routers/shipping_estimate.py
from __future__ import annotations

from fastapi import APIRouter

from app.api.routers import shipping_estimate_routes_estimate
from app.api.routers import shipping_estimate_routes_explain
from app.api.routers.shipping_estimate_schemas import (
    EstimateLineOut,
    EstimateOut,
    ExplainOut,
    ExplainSellerOut,
    RuleOut,
)

router = APIRouter(prefix="/api/envios", tags=["shipping-estimate"])


def _register_all_routes() -> None:
    shipping_estimate_routes_estimate.register(router)
    shipping_estimate_routes_explain.register(router)


_register_all_routes()

__all__ = [
    "router",
    "EstimateLineOut",
    "EstimateOut",
    "ExplainOut",
    "ExplainSellerOut",
    "RuleOut",
]
