from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from app.api import deps
from app.db.models.product_model import Product
from app.db.models.shipping_rule_model import ShippingRule
from app.main import app


def _rule(rule_id, zipcodes, **kwargs):
    values = {"name": rule_id.title(), "activo": True, "precio_base": 100, "envio_gratis": False}
    values.update(kwargs)
    return ShippingRule(rule_id=rule_id, zipcodes=zipcodes, **values)


@pytest.fixture
def rules():
    return [
        _rule("nacional", ["nacional"], precio_base=150),
        _rule("tabasco", ["estado_TAB"], precio_base=90, monto_minimo_gratis=800),
        _rule("villahermosa", ["86610"], precio_base=40),
    ]


@pytest.fixture
def client():
    app.dependency_overrides[deps.get_db] = lambda: MagicMock()
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def rule_crud(rules):
    with patch("app.api.v1.endpoints.shipping.shipping_rule_crud") as crud:
        crud.get_rules = AsyncMock(return_value=rules)
        crud.get_rule = AsyncMock(return_value=None)
        crud.create_rule = AsyncMock(side_effect=lambda db, rule_in: _rule(rule_in.rule_id or "RULE-NUEVA", rule_in.zipcodes))
        crud.update_rule = AsyncMock(return_value=None)
        crud.delete_rule = AsyncMock(return_value=None)
        yield crud


def test_list_rules_includes_coverage_type(client, rule_crud):
    response = client.get("/api/v1/shipping/rules")

    assert response.status_code == 200
    assert [r["coverage_type"] for r in response.json()] == ["Nacional", "Regional", "CP"]


def test_resolve_prefers_exact_zipcode(client, rule_crud):
    assert client.get("/api/v1/shipping/resolve", params={"zipcode": "86610"}).json()["rule_id"] == "villahermosa"
    assert client.get("/api/v1/shipping/resolve", params={"zipcode": "86100"}).json()["rule_id"] == "tabasco"
    assert client.get("/api/v1/shipping/resolve", params={"zipcode": "64000"}).json()["rule_id"] == "nacional"


def test_resolve_without_coverage_returns_404(client, rule_crud, rules):
    rule_crud.get_rules.return_value = rules[1:]

    response = client.get("/api/v1/shipping/resolve", params={"zipcode": "64000"})

    assert response.status_code == 404


def test_resolve_rejects_malformed_zipcode(client, rule_crud):
    assert client.get("/api/v1/shipping/resolve", params={"zipcode": "8661"}).status_code == 422


def test_quote_applies_free_shipping_threshold(client, rule_crud):
    paid = client.post("/api/v1/shipping/quote", json={"zipcode": "86100", "subtotal": 500}).json()
    free = client.post("/api/v1/shipping/quote", json={"zipcode": "86100", "subtotal": 800}).json()

    assert paid["state"] == "TAB"
    assert paid["cost"] == 90.0
    assert paid["is_free"] is False
    assert free["cost"] == 0.0
    assert free["is_free"] is True


def test_create_rule_rejects_inconsistent_coverage(client, rule_crud):
    response = client.post("/api/v1/shipping/rules", json={"name": "Mixta", "zipcodes": ["nacional", "86610"]})

    assert response.status_code == 422
    rule_crud.create_rule.assert_not_awaited()


def test_create_rule(client, rule_crud):
    response = client.post("/api/v1/shipping/rules", json={"name": "Mérida", "zipcodes": [" 97000 "], "rule_id": "merida"})

    assert response.status_code == 201
    assert response.json()["rule_id"] == "merida"
    assert response.json()["zipcodes"] == ["97000"]


def test_update_and_delete_missing_rule_return_404(client, rule_crud):
    assert client.put("/api/v1/shipping/rules/nope", json={"precio_base": 10}).status_code == 404
    assert client.delete("/api/v1/shipping/rules/nope").status_code == 404


def test_validate_rule_is_advisory(client, rule_crud):
    response = client.post("/api/v1/shipping/rules/validate", json={"name": "Dup", "zipcodes": ["estado_TAB", "estado_TAB"]})

    assert response.status_code == 200
    assert response.json() == {"valid": False, "message": "Hay estados duplicados en la configuración"}


def test_cart_eligibility_splits_items_by_assigned_rules(client, rule_crud, cart_store, cart_items):
    cart_store.carts["usuario-1"] = cart_items
    products = [
        Product(product_id="p1", name="Vela de soya", price=250, stock=10, active=True, shipping_rule_ids=["villahermosa"]),
        Product(product_id="p2", name="Jabón artesanal", price=80, stock=3, active=True, shipping_rule_ids=["nacional"]),
    ]

    with patch("app.api.v1.endpoints.shipping.product_crud.get_products_by_ids", AsyncMock(return_value=products)):
        response = client.get("/api/v1/shipping/eligibility/usuario-1", params={"zipcode": "97000"})

    body = response.json()
    assert response.status_code == 200
    assert [i["product_id"] for i in body["eligible"]] == ["p2"]
    assert body["eligible"][0]["applicable_rules"] == ["nacional"]
    assert [i["product_id"] for i in body["ineligible"]] == ["p1", "p1"]
