# app/services/shipping_estimate/normalize.py
from __future__ import annotations

from typing import Optional


def normalize(s: Optional[str]) -> str:
    """
    省/市比较用 key：去首尾空白 + 小写；None / 空白 → ""。
    所有 province / city 比较都必须先过这里（大小写、空白不敏感）。
    """
    if s is None:
        return ""
    return str(s).strip().lower()


def is_blank(s: Optional[str]) -> bool:
    return normalize(s) == ""
