# app/services/shipping_estimate/cart_snapshot.py
from __future__ import annotations

import json
import logging
from decimal import Decimal
from typing import Any, List, Optional
from urllib.parse import unquote

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from .types import CartLineItem

log = logging.getLogger("tienda.shipping")


class SessionCartItem(BaseModel):
    """
    会话购物车行（店面 session 里的 JSON 形态）。
    兼容两种 key：旧店面 PascalCase（ProductoID / Cantidad / PrecioUnitario / VendedorID）
    与 snake_case（product_id / quantity / unit_price / seller_id）。
    """

    model_config = ConfigDict(extra="ignore")

    product_id: int = Field(validation_alias=AliasChoices("ProductoID", "productoId", "product_id"))
    quantity: int = Field(gt=0, validation_alias=AliasChoices("Cantidad", "cantidad", "quantity"))
    unit_price: Decimal = Field(
        default=Decimal("0"),
        validation_alias=AliasChoices("PrecioUnitario", "precioUnitario", "unit_price"),
    )
    seller_id: str = Field(
        default="",
        validation_alias=AliasChoices("VendedorID", "vendedorId", "seller_id"),
    )

    @field_validator("seller_id", mode="before")
    @classmethod
    def _seller_id_or_blank(cls, v: Any) -> Any:
        # 店面里未归属卖家的商品 VendedorID 为 null：归入空卖家组（运费 0），不作废整单
        if v is None:
            return ""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    def to_line(self) -> CartLineItem:
        return CartLineItem(
            product_id=self.product_id,
            quantity=self.quantity,
            unit_price=self.unit_price,
            seller_id=self.seller_id,
        )


def parse_cart_snapshot(raw: Optional[Any]) -> List[CartLineItem]:
    """
    会话快照 → 购物车行。
    缺失 / 非法 JSON / 结构不对 / 任一行校验失败：整体视为空购物车（fail-open，运费 0），只记 warning。
    """
    if raw is None:
        return []

    data: Any = raw
    if isinstance(raw, (str, bytes)):
        text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
        text = text.strip()
        if not text:
            return []
        # 浏览器写入的 cookie 可能是 URL 编码的（%5B%7B...）
        if text.startswith("%"):
            text = unquote(text)
        try:
            data = json.loads(text)
        except ValueError as e:
            log.warning("malformed cart snapshot ignored (json): %s", e)
            return []

    if not isinstance(data, list):
        log.warning("malformed cart snapshot ignored: expected list, got %s", type(data).__name__)
        return []

    try:
        return [SessionCartItem.model_validate(x).to_line() for x in data]
    except ValidationError as e:
        log.warning("malformed cart snapshot ignored (validation): %s", e.error_count())
        return []
