from __future__ import annotations

import logging
from decimal import Decimal
from typing import List

from app.services.shipping_estimate.resolver import explain, resolve
from app.services.shipping_estimate.types import LEVEL_CITY, LEVEL_NONE, LEVEL_PROVINCE, ShippingRule
from tests.factories import rule


# ---------------------------
# 三个基准场景：Pichincha 3.50 / Quito 2.00
# ---------------------------


def test_city_rule_wins_over_province(pichincha_rules: List[ShippingRule]):
    assert resolve(pichincha_rules, "Pichincha", "Quito") == Decimal("2.00")


def test_province_rule_applies_to_other_cities(pichincha_rules: List[ShippingRule]):
    assert resolve(pichincha_rules, "Pichincha", "Cayambe") == Decimal("3.50")


def test_other_province_has_no_tariff(pichincha_rules: List[ShippingRule]):
    assert resolve(pichincha_rules, "Guayas", "Guayaquil") == Decimal("0")


# ---------------------------
# 不变量
# ---------------------------


def test_city_rule_wins_even_when_pricier_than_province():
    rules = [rule("Pichincha", None, "3"), rule("Pichincha", "Quito", "5")]
    res = explain(rules, "Pichincha", "Quito")
    assert res.price == Decimal("5")
    assert res.level == LEVEL_CITY
    assert resolve(list(reversed(rules)), "Pichincha", "Quito") == Decimal("5")
    # 同省其它城市仍按全省规则
    assert resolve(rules, "Pichincha", "Cayambe") == Decimal("3")


def test_rule_order_does_not_change_city_wins(pichincha_rules: List[ShippingRule]):
    assert resolve(list(reversed(pichincha_rules)), "Pichincha", "Quito") == Decimal("2.00")


def test_inactive_rules_never_selected():
    rules = [
        rule("Pichincha", "Quito", "2.00", active=False),
        rule("Pichincha", None, "3.50"),
    ]
    # city 规则停用 → 回落到全省规则
    assert resolve(rules, "Pichincha", "Quito") == Decimal("3.50")

    rules = [rule("Pichincha", None, "3.50", active=False)]
    res = explain(rules, "Pichincha", "Quito")
    assert res.price == Decimal("0")
    assert res.level == LEVEL_NONE
    assert any(r.startswith("tariff_inactive_skipped") for r in res.reasons)


def test_case_and_whitespace_insensitive(pichincha_rules: List[ShippingRule]):
    assert resolve(pichincha_rules, "  pichincha ", "QUITO ") == Decimal("2.00")
    assert resolve(pichincha_rules, "PICHINCHA", "  cayambe") == Decimal("3.50")

    rules = [rule("  PICHINCHA ", " quito ", "1.25")]
    assert resolve(rules, "Pichincha", "Quito") == Decimal("1.25")


def test_no_rules_is_zero():
    res = explain([], "Pichincha", "Quito")
    assert res.price == Decimal("0")
    assert res.level == LEVEL_NONE
    assert res.matched_rule is None
    assert res.reasons == ["tariff_no_match: Pichincha-Quito (default 0)"]


def test_blank_province_is_zero_without_matching():
    rules = [rule("Pichincha", None, "3.50")]
    for prov in (None, "", "   "):
        res = explain(rules, prov, "Quito")
        assert res.price == Decimal("0")
        assert res.level == LEVEL_NONE
        assert res.reasons == ["tariff_no_province: default 0"]


def test_missing_buyer_city_uses_province_rule(pichincha_rules: List[ShippingRule]):
    assert resolve(pichincha_rules, "Pichincha", None) == Decimal("3.50")
    assert resolve(pichincha_rules, "Pichincha", "  ") == Decimal("3.50")


def test_blank_rule_city_counts_as_province_rule():
    rules = [rule("Pichincha", "   ", "4.00")]
    res = explain(rules, "Pichincha", "Quito")
    assert res.level == LEVEL_PROVINCE
    assert res.price == Decimal("4.00")


def test_rule_with_blank_province_is_ignored():
    rules = [rule("", "Quito", "9.00"), rule("  ", None, "8.00")]
    assert resolve(rules, "Pichincha", "Quito") == Decimal("0")


def test_city_rule_of_other_province_does_not_match():
    # 同名城市出现在另一省：不匹配（省份是第一道门）
    rules = [rule("Guayas", "Quito", "7.00")]
    assert resolve(rules, "Pichincha", "Quito") == Decimal("0")


def test_free_shipping_rule_is_a_real_match():
    rules = [rule("Pichincha", "Quito", "0"), rule("Pichincha", None, "3.50")]
    res = explain(rules, "Pichincha", "Quito")
    assert res.price == Decimal("0")
    assert res.level == LEVEL_CITY
    assert res.matched_rule is rules[0]


# ---------------------------
# 白盒 reasons
# ---------------------------


def test_explain_city_hit_records_province_suppressed(pichincha_rules: List[ShippingRule]):
    res = explain(pichincha_rules, "Pichincha", "Quito")
    assert res.level == LEVEL_CITY
    assert res.matched_rule is pichincha_rules[1]
    assert "tariff_city_hit: Pichincha-Quito (2.00)" in res.reasons
    assert any("city wins" in r for r in res.reasons)


def test_explain_province_hit(pichincha_rules: List[ShippingRule]):
    res = explain(pichincha_rules, "Pichincha", "Cayambe")
    assert res.level == LEVEL_PROVINCE
    assert res.matched_rule is pichincha_rules[0]
    assert res.reasons == ["tariff_province_hit: Pichincha (3.50)"]


def test_duplicate_city_rules_first_wins_and_is_logged(caplog):
    rules = [
        rule("Pichincha", "Quito", "2.00"),
        rule("pichincha", "quito", "5.00"),
    ]
    with caplog.at_level(logging.WARNING, logger="tienda.shipping"):
        res = explain(rules, "Pichincha", "Quito")

    assert res.price == Decimal("2.00")
    assert res.matched_rule is rules[0]
    assert any("tariff_duplicate_rules" in r and "first wins" in r for r in res.reasons)
    assert any("duplicate city shipping rules" in m for m in caplog.messages)


def test_duplicate_province_rules_first_wins():
    rules = [
        rule("Pichincha", None, "3.50"),
        rule("Pichincha", None, "6.00"),
    ]
    res = explain(rules, "Pichincha", "Cayambe")
    assert res.price == Decimal("3.50")
    assert any("count=2" in r for r in res.reasons)
