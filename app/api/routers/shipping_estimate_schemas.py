# app/api/routers/shipping_estimate_schemas.py
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field, model_serializer

from app.services.shipping_estimate.types import (
    SellerShippingEstimate,
    SellerTariffExplanation,
    ShippingEstimateResult,
    ShippingRule,
)

# ✅ 对外字段保持店面既有 camelCase 合同（前端结账页直接消费），金额一律 JSON number


class EstimateLineOut(BaseModel):
    vendedorId: str
    provincia: Optional[str] = None
    ciudad: Optional[str] = None
    precio: float
    items: int

    @classmethod
    def from_domain(cls, x: SellerShippingEstimate) -> "EstimateLineOut":
        return cls(
            vendedorId=x.seller_id,
            provincia=x.province,
            ciudad=x.city,
            precio=float(x.price),
            items=int(x.item_count),
        )


class EstimateOut(BaseModel):
    totalEnvio: float
    detalle: List[EstimateLineOut] = Field(default_factory=list)
    warning: Optional[str] = None

    @model_serializer(mode="wrap")
    def _omit_empty_warning(self, handler):
        # 没有 warning 时整个字段不出现（而不是 null）
        data = handler(self)
        if data.get("warning") is None:
            data.pop("warning", None)
        return data

    @classmethod
    def from_domain(cls, r: ShippingEstimateResult) -> "EstimateOut":
        return cls(
            totalEnvio=float(r.total),
            detalle=[EstimateLineOut.from_domain(x) for x in r.breakdown],
            warning=r.warning,
        )


class RuleOut(BaseModel):
    provincia: str
    ciudad: Optional[str] = None
    precio: float
    activo: bool
    nota: Optional[str] = None

    @classmethod
    def from_domain(cls, r: ShippingRule) -> "RuleOut":
        return cls(
            provincia=r.province,
            ciudad=r.city,
            precio=float(r.price),
            activo=bool(r.active),
            nota=r.note,
        )


class ExplainSellerOut(BaseModel):
    vendedorId: str
    items: int
    nivel: str  # city / province / none
    precio: float
    regla: Optional[RuleOut] = None
    razones: List[str] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, x: SellerTariffExplanation) -> "ExplainSellerOut":
        res = x.resolution
        return cls(
            vendedorId=x.seller_id,
            items=int(x.item_count),
            nivel=res.level,
            precio=float(res.price),
            regla=RuleOut.from_domain(res.matched_rule) if res.matched_rule is not None else None,
            razones=list(res.reasons),
        )


class ExplainOut(BaseModel):
    provincia: Optional[str] = None
    ciudad: Optional[str] = None
    vendedores: List[ExplainSellerOut] = Field(default_factory=list)
