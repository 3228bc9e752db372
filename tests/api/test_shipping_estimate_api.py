from __future__ import annotations

import json
from typing import List

import pytest
from fastapi.testclient import TestClient

from app.api.deps import get_buyer_location, get_current_user_id, get_rule_store
from app.main import app
from app.services.shipping_estimate import (
    NO_PROVINCE_WARNING,
    BuyerLocation,
    InMemoryRuleStore,
    RuleStore,
    RuleStoreError,
)
from app.services.shipping_estimate.types import ShippingRule
from tests.factories import rule


def _cart_cookie(*items) -> dict:
    raw = json.dumps(
        [
            {"ProductoID": i, "Cantidad": qty, "PrecioUnitario": 10, "VendedorID": sid}
            for i, (sid, qty) in enumerate(items, start=1)
        ],
        separators=(",", ":"),
    )
    return {"Cookie": f"carrito={raw}"}


@pytest.fixture
def store() -> InMemoryRuleStore:
    return InMemoryRuleStore(
        {
            "V1": [rule("Pichincha", None, "3.50", seller_id="V1"), rule("Pichincha", "Quito", "2.00", seller_id="V1")],
            "V2": [rule("Pichincha", None, "4.25", seller_id="V2")],
        }
    )


@pytest.fixture
def buyer() -> dict:
    """可变引用：用例内改 buyer["loc"] 即可切换买家收货地。"""
    return {"loc": BuyerLocation(province="Pichincha", city="Quito")}


@pytest.fixture
def client(store, buyer):
    app.dependency_overrides[get_rule_store] = lambda: store
    app.dependency_overrides[get_buyer_location] = lambda: buyer["loc"]
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()


def test_estimate_two_sellers(client):
    r = client.get("/api/envios/estimar", headers=_cart_cookie(("V1", 2), ("V2", 1), ("V1", 1)))
    assert r.status_code == 200, r.text

    body = r.json()
    assert body == {
        "totalEnvio": 6.25,
        "detalle": [
            {"vendedorId": "V1", "provincia": "Pichincha", "ciudad": "Quito", "precio": 2.0, "items": 3},
            {"vendedorId": "V2", "provincia": "Pichincha", "ciudad": "Quito", "precio": 4.25, "items": 1},
        ],
    }
    assert "warning" not in body


def test_estimate_city_rule_beats_cheaper_province_rule(client):
    pricier_city = InMemoryRuleStore(
        {"A": [rule("Pichincha", None, "3", seller_id="A"), rule("Pichincha", "Quito", "5", seller_id="A")]}
    )
    app.dependency_overrides[get_rule_store] = lambda: pricier_city

    r = client.get("/api/envios/estimar", headers=_cart_cookie(("A", 1), ("A", 1)))
    assert r.status_code == 200, r.text
    assert r.json() == {
        "totalEnvio": 5.0,
        "detalle": [{"vendedorId": "A", "provincia": "Pichincha", "ciudad": "Quito", "precio": 5.0, "items": 2}],
    }


def test_estimate_seller_without_tariff_gets_advisory_warning(client):
    r = client.get("/api/envios/estimar", headers=_cart_cookie(("V1", 1), ("V8", 1)))
    assert r.status_code == 200

    body = r.json()
    assert body["totalEnvio"] == 2.0
    assert body["warning"] == "El vendedor V8 no tiene tarifa configurada para Pichincha / Quito."


def test_estimate_empty_cart(client):
    r = client.get("/api/envios/estimar")
    assert r.status_code == 200
    assert r.json() == {"totalEnvio": 0.0, "detalle": []}


def test_estimate_malformed_cart_cookie_is_empty_cart(client):
    r = client.get("/api/envios/estimar", headers={"Cookie": "carrito=not-json"})
    assert r.status_code == 200
    assert r.json() == {"totalEnvio": 0.0, "detalle": []}


def test_estimate_buyer_without_province_gets_warning(client, buyer):
    buyer["loc"] = BuyerLocation(province=None, city=None)

    r = client.get("/api/envios/estimar", headers=_cart_cookie(("V1", 1)))
    assert r.status_code == 200
    assert r.json() == {"totalEnvio": 0.0, "detalle": [], "warning": NO_PROVINCE_WARNING}


def test_explain_reports_levels(client):
    r = client.get("/api/envios/explicar", headers=_cart_cookie(("V1", 1), ("V2", 1), ("V3", 1)))
    assert r.status_code == 200, r.text

    body = r.json()
    assert body["provincia"] == "Pichincha"
    assert body["ciudad"] == "Quito"

    by_seller = {x["vendedorId"]: x for x in body["vendedores"]}
    assert by_seller["V1"]["nivel"] == "city"
    assert by_seller["V1"]["precio"] == 2.0
    assert by_seller["V1"]["regla"] == {"provincia": "Pichincha", "ciudad": "Quito", "precio": 2.0, "activo": True}
    assert any("city wins" in x for x in by_seller["V1"]["razones"])

    assert by_seller["V2"]["nivel"] == "province"
    assert by_seller["V3"]["nivel"] == "none"
    assert "regla" not in by_seller["V3"]


class _DownStore(RuleStore):
    backend = "sql"

    async def get_rules_for_seller(self, seller_id: str) -> List[ShippingRule]:
        raise RuleStoreError("connection refused", seller_id=seller_id, backend=self.backend)


def test_rule_store_failure_is_503_problem(client):
    app.dependency_overrides[get_rule_store] = lambda: _DownStore()

    r = client.get("/api/envios/estimar", headers=_cart_cookie(("V1", 1)))
    assert r.status_code == 503

    body = r.json()
    assert body["error_code"] == "SHIPPING_ESTIMATE_RULE_STORE_UNAVAILABLE"
    assert body["http_status"] == 503
    assert body["trace_id"].startswith("t_")
    assert body["context"]["path"] == "/api/envios/estimar"
    assert body["context"]["backend"] == "sql"
    assert body["details"][0]["seller_id"] == "V1"

    r = client.get("/api/envios/explicar", headers=_cart_cookie(("V1", 1)))
    assert r.status_code == 503


def test_current_user_id_reads_gateway_header():
    from starlette.requests import Request

    def _req(headers):
        return Request({"type": "http", "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()]})

    assert get_current_user_id(_req({"X-User-Id": " u-1 "})) == "u-1"
    assert get_current_user_id(_req({"X-User-Id": "  "})) is None
    assert get_current_user_id(_req({})) is None


def test_metrics_and_healthz(client):
    client.get("/api/envios/estimar", headers=_cart_cookie(("V1", 1)))

    r = client.get("/metrics")
    assert r.status_code == 200
    assert "shipping_estimates_total" in r.text
    assert "shipping_tariff_level_total" in r.text

    assert client.get("/healthz").json() == {"status": "ok"}


def test_unknown_route_uses_problem_shape(client):
    r = client.get("/api/envios/nope")
    assert r.status_code == 404
    body = r.json()
    assert body["error_code"] == "http_error"
    assert body["http_status"] == 404


def test_build_rule_store_by_backend(tmp_path):
    from app.api.deps import build_rule_store
    from app.core.config import AppSettings
    from app.services.shipping_estimate.rule_store_json import JsonFileRuleStore
    from app.services.shipping_estimate.rule_store_sql import SqlRuleStore

    s = AppSettings(SHIPPING_RULES_BACKEND="json", SHIPPING_RULES_DIR=str(tmp_path))
    js = build_rule_store(s)
    assert isinstance(js, JsonFileRuleStore)
    assert js.data_dir == tmp_path

    assert isinstance(build_rule_store(AppSettings(SHIPPING_RULES_BACKEND=" SQL ")), SqlRuleStore)

    with pytest.raises(ValueError):
        build_rule_store(AppSettings(SHIPPING_RULES_BACKEND="redis"))
