# app/services/shipping_estimate/aggregator.py
from __future__ import annotations

import asyncio
import logging
import time
from typing import Dict, Iterable, List, Optional, Sequence

from .errors import RuleStoreError
from .metrics import shipping_rule_fetch_seconds, shipping_rule_store_errors_total
from .normalize import is_blank
from .rule_store import RuleStore
from .types import CartLineItem, ShippingRule

log = logging.getLogger("tienda.shipping")


def group_by_seller(cart: Iterable[CartLineItem]) -> Dict[str, int]:
    """
    seller_id → item_count（该卖家所有行 quantity 之和）。
    dict 保持插入顺序 = 扫描购物车时卖家首次出现的顺序。
    空白 seller_id 原样作为 key 分组（后续解析为 0）。
    """
    groups: Dict[str, int] = {}
    for line in cart:
        sid = line.seller_id if line.seller_id is not None else ""
        groups[sid] = groups.get(sid, 0) + int(line.quantity)
    return groups


def lookup_seller_ids(groups: Dict[str, int]) -> List[str]:
    """需要查规则的卖家（空白 ID 不查库，直接视为没有规则）。"""
    return [sid for sid in groups if not is_blank(sid)]


async def _timed(coro, *, backend: str, timeout_s: Optional[float]):
    start = time.perf_counter()
    try:
        if timeout_s is None:
            return await coro
        return await asyncio.wait_for(coro, timeout=timeout_s)
    finally:
        shipping_rule_fetch_seconds.labels(backend).observe(time.perf_counter() - start)


async def fetch_rules_for_sellers(
    store: RuleStore,
    seller_ids: Sequence[str],
    *,
    max_concurrency: int = 8,
    timeout_s: Optional[float] = None,
) -> Dict[str, List[ShippingRule]]:
    """
    按卖家拉取规则：

    - store.supports_batch：一次批量调用
    - 否则：每卖家一个 task，Semaphore 限并发，wait_for 限单次耗时
    - 任一卖家失败 / 超时：取消其余未完成的 task，整体抛 RuleStoreError（不返回半成品）
    - 调用方被取消：同样取消全部未完成 task 后向上传播 CancelledError
    """
    ids = list(dict.fromkeys(seller_ids))
    if not ids:
        return {}

    backend = getattr(store, "backend", "unknown")

    if store.supports_batch:
        try:
            got = await _timed(store.get_rules_for_sellers(ids), backend=backend, timeout_s=timeout_s)
        except asyncio.TimeoutError as e:
            shipping_rule_store_errors_total.labels(backend).inc()
            raise RuleStoreError("rule store batch fetch timed out", backend=backend) from e
        except RuleStoreError:
            shipping_rule_store_errors_total.labels(backend).inc()
            raise
        return {sid: list(got.get(sid, [])) for sid in ids}

    sem = asyncio.Semaphore(max(1, int(max_concurrency)))

    async def _one(sid: str) -> List[ShippingRule]:
        async with sem:
            try:
                return await _timed(store.get_rules_for_seller(sid), backend=backend, timeout_s=timeout_s)
            except asyncio.TimeoutError as e:
                raise RuleStoreError(
                    f"rule fetch timed out for seller {sid!r}", seller_id=sid, backend=backend
                ) from e

    tasks = [asyncio.create_task(_one(sid), name=f"shipping-rules:{sid}") for sid in ids]
    try:
        results = await asyncio.gather(*tasks)
    except BaseException as e:
        for t in tasks:
            if not t.done():
                t.cancel()
        # 等被取消的 task 真正收尾，避免 “Task was destroyed but it is pending”
        await asyncio.gather(*tasks, return_exceptions=True)
        if isinstance(e, RuleStoreError):
            shipping_rule_store_errors_total.labels(backend).inc()
            log.error("rule fetch failed: seller=%s backend=%s err=%s", e.seller_id, backend, e)
        raise

    return dict(zip(ids, results))
