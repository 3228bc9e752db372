# app/api/routers/shipping_estimate_routes_explain.py
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status

from app.api.deps import get_buyer_location, get_cart_snapshot, get_shipping_estimate_service
from app.services.shipping_estimate import ShippingEstimateError, ShippingEstimateService
from app.services.shipping_estimate.types import BuyerLocation, CartLineItem

from app.api.routers.shipping_estimate_helpers import raise_estimate_problem
from app.api.routers.shipping_estimate_schemas import ExplainOut, ExplainSellerOut


def register(router: APIRouter) -> None:
    @router.get(
        "/explicar",
        response_model=ExplainOut,
        response_model_exclude_none=True,
        status_code=status.HTTP_200_OK,
    )
    async def explain_cart_shipping(
        cart: List[CartLineItem] = Depends(get_cart_snapshot),
        buyer: BuyerLocation = Depends(get_buyer_location),
        svc: ShippingEstimateService = Depends(get_shipping_estimate_service),
    ):
        """白盒解释：每个卖家命中哪一层（city / province / none）、哪条规则、为什么。"""
        try:
            explained = await svc.explain(cart, buyer)
        except ShippingEstimateError as e:
            raise_estimate_problem(e)

        return ExplainOut(
            provincia=buyer.province,
            ciudad=buyer.city,
            vendedores=[ExplainSellerOut.from_domain(x) for x in explained],
        )
