# app/services/shipping_estimate/errors.py
from __future__ import annotations

from typing import Optional


class ShippingEstimateError(Exception):
    """运费估算相关错误的基类。"""


class RuleStoreError(ShippingEstimateError):
    """
    规则仓库 I/O 失败（不可达 / 超时 / 读失败）。
    配置缺口（没有规则、没有 city）永远不走这里。
    """

    def __init__(self, message: str, *, seller_id: Optional[str] = None, backend: str = "unknown") -> None:
        super().__init__(message)
        self.seller_id = seller_id
        self.backend = backend


class RuleStoreWriteError(ShippingEstimateError):
    """规则写入失败（JSON 文件仓库）。"""
