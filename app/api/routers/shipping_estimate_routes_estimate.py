# app/api/routers/shipping_estimate_routes_estimate.py
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status

from app.api.deps import get_buyer_location, get_cart_snapshot, get_shipping_estimate_service
from app.services.shipping_estimate import ShippingEstimateError, ShippingEstimateService
from app.services.shipping_estimate.types import BuyerLocation, CartLineItem

from app.api.routers.shipping_estimate_helpers import raise_estimate_problem
from app.api.routers.shipping_estimate_schemas import EstimateOut


def register(router: APIRouter) -> None:
    @router.get(
        "/estimar",
        response_model=EstimateOut,
        status_code=status.HTTP_200_OK,
    )
    async def estimate_cart_shipping(
        cart: List[CartLineItem] = Depends(get_cart_snapshot),
        buyer: BuyerLocation = Depends(get_buyer_location),
        svc: ShippingEstimateService = Depends(get_shipping_estimate_service),
    ):
        """
        结账页运费估算：按卖家分组，每个卖家按买家 province / city 裁决一次运费。
        """
        try:
            result = await svc.estimate(cart, buyer)
        except ShippingEstimateError as e:
            raise_estimate_problem(e)

        return EstimateOut.from_domain(result)
