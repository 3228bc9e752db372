# app/services/shipping_estimate/rule_store.py
"""
规则仓库（Rule Store Accessor）接口 + 内存实现 + 单请求缓存装饰。

估算引擎只依赖 RuleStore 的两个只读方法：
- get_rules_for_seller(seller_id)      → 单卖家规则（原始顺序）
- get_rules_for_sellers(seller_ids)    → 批量版；默认实现并发逐个拉取

实现可替换：SQL（rule_store_sql.py）、JSON 文件（rule_store_json.py）、内存（测试 / 本地）。
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from .types import ShippingRule


class RuleStore(ABC):
    backend = "generic"

    # True：get_rules_for_sellers 是一次真正的批量 I/O（例如一条 IN 查询）
    supports_batch = False

    @abstractmethod
    async def get_rules_for_seller(self, seller_id: str) -> List[ShippingRule]:
        """返回该卖家全部规则（含 inactive，保持存储顺序）；I/O 失败抛 RuleStoreError。"""
        raise NotImplementedError

    async def get_rules_for_sellers(self, seller_ids: Sequence[str]) -> Dict[str, List[ShippingRule]]:
        ids = list(dict.fromkeys(seller_ids))
        results = await asyncio.gather(*(self.get_rules_for_seller(sid) for sid in ids))
        return dict(zip(ids, results))


class InMemoryRuleStore(RuleStore):
    backend = "memory"

    def __init__(self, rules: Optional[Mapping[str, Iterable[ShippingRule]]] = None) -> None:
        self._rules: Dict[str, List[ShippingRule]] = {
            sid: list(rs) for sid, rs in (rules or {}).items()
        }

    @classmethod
    def from_rules(cls, rules: Iterable[ShippingRule]) -> "InMemoryRuleStore":
        by_seller: Dict[str, List[ShippingRule]] = {}
        for r in rules:
            by_seller.setdefault(r.seller_id, []).append(r)
        return cls(by_seller)

    async def get_rules_for_seller(self, seller_id: str) -> List[ShippingRule]:
        return list(self._rules.get(seller_id, []))


class CachedRuleStore(RuleStore):
    """
    单请求内的按卖家缓存：同一卖家只打一次底层仓库。
    每个请求新建一个实例，不跨请求共享（规则变更立即可见）。
    """

    def __init__(self, inner: RuleStore) -> None:
        self._inner = inner
        self._cache: Dict[str, List[ShippingRule]] = {}
        self.backend = inner.backend
        self.supports_batch = inner.supports_batch

    async def get_rules_for_seller(self, seller_id: str) -> List[ShippingRule]:
        if seller_id not in self._cache:
            self._cache[seller_id] = await self._inner.get_rules_for_seller(seller_id)
        return list(self._cache[seller_id])

    async def get_rules_for_sellers(self, seller_ids: Sequence[str]) -> Dict[str, List[ShippingRule]]:
        ids = list(dict.fromkeys(seller_ids))
        missing = [sid for sid in ids if sid not in self._cache]
        if missing:
            fetched = await self._inner.get_rules_for_sellers(missing)
            for sid in missing:
                self._cache[sid] = list(fetched.get(sid, []))
        return {sid: list(self._cache[sid]) for sid in ids}
