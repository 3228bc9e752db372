# app/models/__init__.py
"""
统一导出 ORM 模型。
"""

from importlib import import_module


def _export(module_name: str, class_name: str) -> None:
    module = import_module(module_name)
    globals()[class_name] = getattr(module, class_name)


MODEL_SPECS = [
    # -------- 运费规则 --------
    ("app.models.shipping_rule", "ShippingRuleRow"),
    # -------- 买家档案（收货地）--------
    ("app.models.buyer_profile", "BuyerProfile"),
]

for _module, _name in MODEL_SPECS:
    _export(_module, _name)

__all__ = [
    "ShippingRuleRow",
    "BuyerProfile",
]
