from __future__ import annotations

from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.models.shipping_rule import ShippingRuleRow
from app.services.shipping_estimate import BuyerLocation, ShippingEstimateService
from app.services.shipping_estimate.errors import RuleStoreError
from app.services.shipping_estimate.rule_store_sql import SqlRuleStore
from tests.factories import line


async def _seed(session: AsyncSession) -> None:
    session.add_all(
        [
            ShippingRuleRow(seller_id="V1", province="Pichincha", city=None, price=Decimal("3.50")),
            ShippingRuleRow(seller_id="V1", province="Pichincha", city="Quito", price=Decimal("2.00")),
            ShippingRuleRow(seller_id="V1", province="Pichincha", city="Quito", price=Decimal("7.00")),
            ShippingRuleRow(seller_id="V2", province="Guayas", city=None, price=Decimal("4.00"), active=False),
        ]
    )
    await session.commit()


@pytest.mark.asyncio
async def test_get_rules_for_seller_keeps_insert_order(session, sqlite_session_maker):
    await _seed(session)
    store = SqlRuleStore(sqlite_session_maker)

    rules = await store.get_rules_for_seller("V1")

    assert [(r.province, r.city, r.price) for r in rules] == [
        ("Pichincha", None, Decimal("3.50")),
        ("Pichincha", "Quito", Decimal("2.00")),
        ("Pichincha", "Quito", Decimal("7.00")),
    ]
    assert all(r.active for r in rules)
    assert await store.get_rules_for_seller("NOPE") == []


@pytest.mark.asyncio
async def test_inactive_flag_round_trips(session, sqlite_session_maker):
    await _seed(session)
    store = SqlRuleStore(sqlite_session_maker)

    rules = await store.get_rules_for_seller("V2")
    assert len(rules) == 1
    assert rules[0].active is False


@pytest.mark.asyncio
async def test_batch_lookup_single_query(session, sqlite_session_maker):
    await _seed(session)
    store = SqlRuleStore(sqlite_session_maker)

    got = await store.get_rules_for_sellers(["V2", "V1", "V3", "V1"])

    assert list(got) == ["V2", "V1", "V3"]
    assert len(got["V1"]) == 3
    assert len(got["V2"]) == 1
    assert got["V3"] == []
    assert await store.get_rules_for_sellers([]) == {}


@pytest.mark.asyncio
async def test_estimate_end_to_end_over_sql(session, sqlite_session_maker):
    await _seed(session)
    svc = ShippingEstimateService(SqlRuleStore(sqlite_session_maker))

    result = await svc.estimate(
        [line("V1", 2), line("V2", 1)],
        BuyerLocation(province="Pichincha", city="quito"),
    )

    # 重复 Quito 规则：id 小的先到先得
    assert [(x.seller_id, x.price) for x in result.breakdown] == [("V1", Decimal("2.00")), ("V2", Decimal("0"))]
    assert result.total == Decimal("2.00")


@pytest.mark.asyncio
async def test_unreachable_database_raises_rule_store_error(tmp_path):
    # 不存在的目录：sqlite 打不开库文件
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'x.db'}",
        poolclass=NullPool,
    )
    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    store = SqlRuleStore(maker)

    try:
        with pytest.raises(RuleStoreError) as ei:
            await store.get_rules_for_seller("V1")
        assert ei.value.backend == "sql"
        assert ei.value.seller_id == "V1"

        with pytest.raises(RuleStoreError):
            await store.get_rules_for_sellers(["V1", "V2"])
    finally:
        await engine.dispose()
