# app/services/shipping_estimate/rule_store_json.py
"""
JSON 文件规则仓库（旧店面口径）：

- 每个卖家一个文件：<data_dir>/envios-proveedor-<safe-id>.json
- 内容：camelCase 规则列表 [{"provincia","ciudad","precio","activo","nota"}]
- 写入：进程内串行（asyncio.Lock）+ 先备份旧文件 + 临时文件原子替换
- 读取：主文件缺失但残留 .tmp 时先恢复；文件不存在 → 空列表；
        内容损坏 → 记错误日志并视为空列表；其它 OS 错误 → RuleStoreError
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import os
import re
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import RuleStoreError, RuleStoreWriteError
from .rule_store import RuleStore
from .types import ShippingRule

log = logging.getLogger("tienda.rules")

FILE_PREFIX = "envios-proveedor-"
FILE_EXT = ".json"
TEMP_EXT = ".tmp"
BACKUP_EXT = ".bak.json"
MAX_FILENAME_LENGTH = 80
HASH_DISPLAY_LENGTH = 16

_UNSAFE_CHARS = re.compile(r"[^\w-]", re.UNICODE)


class RuleFileEntry(BaseModel):
    """单条规则的文件形态（同时也是写入校验）。"""

    model_config = ConfigDict(populate_by_name=True)

    provincia: str = Field(..., min_length=1, max_length=120)
    ciudad: Optional[str] = Field(default=None, max_length=120)
    precio: Decimal = Field(..., ge=0, le=Decimal("9999.99"))
    activo: bool = True
    nota: Optional[str] = Field(default=None, max_length=120)

    def to_rule(self, seller_id: str) -> ShippingRule:
        return ShippingRule(
            seller_id=seller_id,
            province=self.provincia,
            city=self.ciudad,
            price=self.precio,
            active=self.activo,
            note=self.nota,
        )

    @classmethod
    def from_rule(cls, rule: ShippingRule) -> "RuleFileEntry":
        return cls(
            provincia=rule.province,
            ciudad=rule.city,
            precio=rule.price,
            activo=rule.active,
            nota=rule.note,
        )


def sanitize_seller_id(raw: str) -> str:
    """
    卖家 ID → 文件名片段：
    - 字母 / 数字 / '-' / '_' 原样保留，其余替换为 '-'，两端去 '-'
    - 结果为空或超过 80 字符 → sha256 前 16 位 hex
    """
    s = (raw or "").strip()
    if not s:
        return "invalid"
    out = _UNSAFE_CHARS.sub("-", s).strip("-")
    if not out or len(out) > MAX_FILENAME_LENGTH:
        return hashlib.sha256(s.encode("utf-8")).hexdigest()[:HASH_DISPLAY_LENGTH]
    return out


class JsonFileRuleStore(RuleStore):
    backend = "json"

    def __init__(self, data_dir: str | os.PathLike[str]) -> None:
        self._dir = Path(data_dir)
        self._write_lock = asyncio.Lock()

    @property
    def data_dir(self) -> Path:
        return self._dir

    # ---------------------------
    # 路径
    # ---------------------------

    def path_for(self, seller_id: str) -> Path:
        sid = (seller_id or "").strip()
        if not sid:
            raise ValueError("seller_id must not be blank")
        return self._dir / f"{FILE_PREFIX}{sanitize_seller_id(sid)}{FILE_EXT}"

    @staticmethod
    def _temp_path(path: Path) -> Path:
        return path.with_name(path.name + TEMP_EXT)

    @staticmethod
    def _backup_path(path: Path) -> Path:
        ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
        return path.with_name(f"{path.stem}_{ts}{BACKUP_EXT}")

    # ---------------------------
    # 读取
    # ---------------------------

    def _recover_temp(self, path: Path) -> None:
        tmp = self._temp_path(path)
        if path.exists() or not tmp.exists():
            return
        try:
            os.replace(tmp, path)
            log.info("recovered temp rules file: %s -> %s", tmp, path)
        except OSError as e:
            log.warning("could not recover temp rules file %s: %s", tmp, e)

    def _read_sync(self, seller_id: str, path: Path) -> List[ShippingRule]:
        self._recover_temp(path)
        if not path.exists():
            log.debug("rules file not found, empty list: %s", path)
            return []

        raw = path.read_text(encoding="utf-8")
        try:
            data = json.loads(raw, parse_float=Decimal) if raw.strip() else []
            if not isinstance(data, list):
                raise ValueError("rules file must contain a JSON list")
            entries = [RuleFileEntry.model_validate(x) for x in data]
        except (ValueError, ValidationError) as e:
            # 坏文件按旧店面口径降级为“没有规则”（→ 运费 0），不阻断结账
            log.error("corrupt rules file ignored: %s (%s)", path, e)
            return []

        log.info("rules loaded: file=%s count=%d", path, len(entries))
        return [e.to_rule(seller_id) for e in entries]

    async def get_rules_for_seller(self, seller_id: str) -> List[ShippingRule]:
        path = self.path_for(seller_id)
        try:
            return await asyncio.to_thread(self._read_sync, seller_id, path)
        except OSError as e:
            log.error("rules file read failed: %s (%s)", path, e)
            raise RuleStoreError(
                f"could not read rules for seller {seller_id!r}",
                seller_id=seller_id,
                backend=self.backend,
            ) from e

    async def exists(self, seller_id: str) -> bool:
        path = self.path_for(seller_id)
        return await asyncio.to_thread(path.exists)

    async def list_seller_ids(self) -> List[str]:
        """返回文件名中的（已清洗）卖家 ID 片段。"""

        def _scan() -> List[str]:
            if not self._dir.is_dir():
                return []
            out: List[str] = []
            for p in sorted(self._dir.glob(f"{FILE_PREFIX}*{FILE_EXT}")):
                if p.name.endswith(BACKUP_EXT):
                    continue
                out.append(p.stem[len(FILE_PREFIX) :])
            return out

        return await asyncio.to_thread(_scan)

    # ---------------------------
    # 写入
    # ---------------------------

    def _backup_sync(self, path: Path) -> None:
        if not path.exists():
            return
        try:
            backup = self._backup_path(path)
            backup.write_bytes(path.read_bytes())
            log.info("rules backup created: %s", backup)
        except OSError as e:
            # 备份失败不阻断写入
            log.warning("rules backup failed for %s: %s", path, e)

    def _write_sync(self, path: Path, payload: bytes) -> None:
        self._dir.mkdir(parents=True, exist_ok=True)
        self._backup_sync(path)

        tmp = self._temp_path(path)
        if tmp.exists():
            tmp.unlink()
        with open(tmp, "wb") as fh:
            fh.write(payload)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, path)

    async def set_rules(self, seller_id: str, rules: Optional[Iterable[ShippingRule]]) -> int:
        """
        整体覆盖该卖家的规则（None 视为空列表）。返回写入条数。
        校验失败抛 pydantic ValidationError；I/O 失败抛 RuleStoreWriteError。
        """
        path = self.path_for(seller_id)
        if rules is None:
            log.warning("set_rules called with None, writing empty list: seller=%s", seller_id)
            rules = []

        entries = [RuleFileEntry.from_rule(r) for r in rules]
        # precio 落盘为 JSON number（与旧文件一致），不是字符串
        body = [{**e.model_dump(exclude_none=True), "precio": float(e.precio)} for e in entries]
        payload = json.dumps(body, ensure_ascii=False, indent=2).encode("utf-8")

        async with self._write_lock:
            try:
                await asyncio.to_thread(self._write_sync, path, payload)
            except OSError as e:
                log.error("rules write failed: %s (%s)", path, e)
                raise RuleStoreWriteError(f"could not write rules for seller {seller_id!r}") from e

        log.info("rules saved: file=%s count=%d bytes=%d", path, len(entries), len(payload))
        return len(entries)

    async def delete_rules(self, seller_id: str) -> bool:
        path = self.path_for(seller_id)

        def _delete() -> bool:
            if not path.exists():
                log.warning("rules file not found for delete: %s", path)
                return False
            self._backup_sync(path)
            path.unlink()
            tmp = self._temp_path(path)
            if tmp.exists():
                tmp.unlink()
            return True

        async with self._write_lock:
            try:
                deleted = await asyncio.to_thread(_delete)
            except OSError as e:
                log.error("rules delete failed: %s (%s)", path, e)
                raise RuleStoreWriteError(f"could not delete rules for seller {seller_id!r}") from e

        if deleted:
            log.info("rules deleted: %s", path)
        return deleted
