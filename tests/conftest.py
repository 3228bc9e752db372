# tests/conftest.py
from __future__ import annotations

import os
from typing import AsyncGenerator, List

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

# ============================================================
# ★★ 关键：在 import app.* 之前固定测试配置 ★★
#   - 运费估算测试不需要真实 PG；DB 相关用例走 aiosqlite 临时文件库
# ============================================================
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SHIPPING_RULES_BACKEND", "sql")
os.environ.setdefault("LOG_LEVEL", "INFO")

from app.db.base import Base, init_models  # noqa: E402
from app.services.shipping_estimate.types import ShippingRule  # noqa: E402
from tests.factories import rule  # noqa: E402


@pytest.fixture
def pichincha_rules() -> List[ShippingRule]:
    """卖家 V1：Pichincha 全省 3.50；Quito 单独 2.00。"""
    return [
        rule("Pichincha", None, "3.50"),
        rule("Pichincha", "Quito", "2.00"),
    ]


# =========================================
# aiosqlite 临时文件库（每用例独立，NullPool 避免跨 loop）
# =========================================
@pytest_asyncio.fixture(scope="function")
async def sqlite_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    init_models()
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'tienda_test.db'}",
        poolclass=NullPool,
        future=True,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture(scope="function")
def sqlite_session_maker(sqlite_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(sqlite_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def session(sqlite_session_maker) -> AsyncGenerator[AsyncSession, None]:
    """
    标准 Session（自动 commit / rollback）
    """
    async with sqlite_session_maker() as sess:
        try:
            yield sess
            if sess.in_transaction():
                await sess.commit()
        except Exception:
            if sess.in_transaction():
                await sess.rollback()
            raise
