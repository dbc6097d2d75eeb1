from __future__ import annotations

import logging
from typing import Any

import pytest

import db
from app import create_app
from models.countries import Country


def _assert_envelope(payload: Any) -> None:
    assert isinstance(payload, dict)
    assert set(payload.keys()) == {"ok", "data", "error", "meta"}
    assert isinstance(payload["ok"], bool)

    meta = payload["meta"]
    assert isinstance(meta, dict)
    assert "request_id" in meta

    if payload["ok"] is True:
        assert payload["error"] is None
    else:
        assert isinstance(payload["error"], dict)
        assert "code" in payload["error"]
        assert "message" in payload["error"]


def _create(client, **vals) -> dict:
    res = client.post("/api/v1/partners", json=vals)
    assert res.status_code == 201, res.get_json()
    payload = res.get_json()
    _assert_envelope(payload)
    return payload["data"]


def _error_code(res) -> str:
    payload = res.get_json()
    _assert_envelope(payload)
    assert payload["ok"] is False
    return payload["error"]["code"]


@pytest.fixture()
def company(client):
    return _create(
        client,
        name="Acme",
        company_type="company",
        street="1 Main St",
        zip="12345",
        city="Springfield",
    )


def test_create_contact_under_company(client, company) -> None:
    alice = _create(client, name="Alice", parent_id=company["id"], email="alice@acme.test")

    assert alice["commercial_partner_id"] == company["id"]
    assert alice["commercial_company_name"] == "Acme"
    assert alice["street"] == "1 Main St"
    assert alice["company_type"] == "person"
    assert alice["display_name"] == "Acme, Alice"
    assert alice["email_formatted"] == "Alice <alice@acme.test>"
    assert alice["contact_address"].startswith("Acme\n1 Main St")


def test_patch_propagates_commercial_fields(client, company) -> None:
    alice = _create(client, name="Alice", parent_id=company["id"])

    res = client.patch(f"/api/v1/partners/{company['id']}", json={"vat": "BE0477472701"})
    assert res.status_code == 200
    _assert_envelope(res.get_json())

    res = client.get(f"/api/v1/partners/{alice['id']}")
    assert res.get_json()["data"]["vat"] == "BE0477472701"


def test_parent_loop_is_rejected(client, company) -> None:
    alice = _create(client, name="Alice", parent_id=company["id"])

    res = client.patch(f"/api/v1/partners/{company['id']}", json={"parent_id": alice["id"]})

    assert res.status_code == 400
    assert _error_code(res) == "cycle_detected"
    # Rolled back.
    assert client.get(f"/api/v1/partners/{company['id']}").get_json()["data"]["parent_id"] is None


def test_validation_errors(client) -> None:
    res = client.post("/api/v1/partners", json={"name": "X", "type": "warehouse"})
    assert res.status_code == 400
    assert _error_code(res) == "validation_error"
    details = res.get_json()["error"]["details"]
    assert details[0]["loc"] == ["type"]

    res = client.post("/api/v1/partners", json={"name": "X", "commercial_partner_id": 1})
    assert res.status_code == 400
    assert _error_code(res) == "validation_error"


def test_contact_requires_a_name(client) -> None:
    res = client.post("/api/v1/partners", json={"email": "nameless@acme.test"})

    assert res.status_code == 400
    assert _error_code(res) == "integrity_error"

    # Typed addresses may be nameless.
    assert _create(client, type="delivery")["name"] is None


def test_unknown_partner_is_404(client) -> None:
    for path in ("/api/v1/partners/999", "/api/v1/partners/999/address"):
        res = client.get(path)
        assert res.status_code == 404
        assert _error_code(res) == "not_found"


def test_list_partners_paging_and_search(client, company) -> None:
    for name in ("Alice", "Alan", "Bob"):
        _create(client, name=name, parent_id=company["id"])

    res = client.get("/api/v1/partners?q=al&limit=1")
    payload = res.get_json()
    _assert_envelope(payload)
    assert [p["name"] for p in payload["data"]] == ["Alice"]
    assert payload["meta"]["total"] == 2
    assert payload["meta"]["limit"] == 1

    res = client.get("/api/v1/partners?offset=1&limit=500")
    payload = res.get_json()
    assert payload["meta"]["limit"] == 200
    assert len(payload["data"]) == 3


def test_toggle_active_hides_from_list(client, company) -> None:
    res = client.post(f"/api/v1/partners/{company['id']}/toggle-active")
    assert res.get_json()["data"]["active"] is False

    assert client.get("/api/v1/partners").get_json()["meta"]["total"] == 0
    assert client.get("/api/v1/partners?active_test=0").get_json()["meta"]["total"] == 1


def test_address_route(client, company) -> None:
    alice = _create(client, name="Alice", parent_id=company["id"])
    invoice = _create(client, type="invoice", parent_id=company["id"])

    res = client.get(f"/api/v1/partners/{alice['id']}/address?types=invoice,delivery")
    data = res.get_json()["data"]

    assert set(data) == {"contact", "invoice", "delivery"}
    assert data["contact"]["id"] == alice["id"]
    assert data["invoice"]["id"] == invoice["id"]
    assert data["delivery"]["id"] == alice["id"]


def test_display_address_route(client, company) -> None:
    alice = _create(client, name="Alice", parent_id=company["id"])

    res = client.get(f"/api/v1/partners/{alice['id']}/display-address")
    assert res.get_json()["data"]["address"] == "Acme\n1 Main St\n\nSpringfield  12345\n"

    res = client.get(f"/api/v1/partners/{alice['id']}/display-address?company=0")
    assert res.get_json()["data"]["address"] == "1 Main St\n\nSpringfield  12345\n"


def test_broken_country_format_is_template_error(client) -> None:
    with db.session_scope() as session:
        country = Country(code="XX", name="Nowhere", address_format="{{ planet }}")
        session.add(country)
        session.flush()
        country_id = country.id

    partner = _create(client, name="Alice", city="Springfield")

    res = client.patch(f"/api/v1/partners/{partner['id']}", json={"country_id": country_id})

    assert res.status_code == 500
    assert _error_code(res) == "template_error"
    # The write was rolled back with the failed response.
    res = client.get(f"/api/v1/partners/{partner['id']}")
    assert res.get_json()["data"]["country_id"] is None


def test_create_company_route(client) -> None:
    bob = _create(client, name="Bob", company_name="Bobco", vat="BE1")

    res = client.post(f"/api/v1/partners/{bob['id']}/create-company")
    data = res.get_json()["data"]

    assert data["created"] is True
    assert data["company"]["name"] == "Bobco"
    assert data["partner"]["parent_id"] == data["company"]["id"]
    assert data["partner"]["commercial_company_name"] == "Bobco"


def test_commercial_partner_route(client, company) -> None:
    alice = _create(client, name="Alice", parent_id=company["id"])
    billing = _create(client, type="invoice", parent_id=alice["id"])

    res = client.get(f"/api/v1/partners/{billing['id']}/commercial-partner")

    assert res.get_json()["data"]["id"] == company["id"]


def test_categories_tree(client) -> None:
    res = client.post("/api/v1/categories", json={"name": "Customers"})
    customers = res.get_json()["data"]
    res = client.post("/api/v1/categories", json={"name": "Gold", "parent_id": customers["id"]})
    gold = res.get_json()["data"]
    assert gold["display_name"] == "Customers / Gold"

    res = client.get("/api/v1/categories", query_string={"q": "Customers / Gold"})
    assert [c["id"] for c in res.get_json()["data"]] == [gold["id"]]

    res = client.patch(f"/api/v1/categories/{customers['id']}", json={"parent_id": gold["id"]})
    assert res.status_code == 400
    assert _error_code(res) == "cycle_detected"

    res = client.patch("/api/v1/categories/999", json={"name": "Nope"})
    assert res.status_code == 404


def test_template_error_is_logged_once(client, caplog) -> None:
    with db.session_scope() as session:
        country = Country(code="XX", name="Nowhere", address_format="{{ planet }}")
        session.add(country)
        session.flush()
        country_id = country.id
    partner = _create(client, name="Alice")

    app_logger = logging.getLogger("partner_hub")
    app_logger.addHandler(caplog.handler)
    try:
        res = client.patch(f"/api/v1/partners/{partner['id']}", json={"country_id": country_id})
    finally:
        app_logger.removeHandler(caplog.handler)

    assert res.status_code == 500
    errors = [r for r in caplog.records if r.levelno >= logging.ERROR]
    assert len(errors) == 1
    assert errors[0].exc_info is not None


def test_partner_categories_over_api(client) -> None:
    gold = client.post("/api/v1/categories", json={"name": "Gold"}).get_json()["data"]

    alice = _create(client, name="Alice", category_ids=[gold["id"]])
    assert alice["category_ids"] == [gold["id"]]

    res = client.patch(f"/api/v1/partners/{alice['id']}", json={"category_ids": []})
    assert res.get_json()["data"]["category_ids"] == []

    res = client.patch(f"/api/v1/partners/{alice['id']}", json={"category_ids": [999]})
    assert res.status_code == 400
    assert _error_code(res) == "invalid_value"


def test_settings_defaults_survive_without_env(monkeypatch) -> None:
    monkeypatch.delenv("INIT_DB_ON_STARTUP", raising=False)
    for key in ("DEFAULT_PAGE_LIMIT", "MAX_PAGE_LIMIT", "LOG_LEVEL", "ENABLE_CATEGORIES"):
        monkeypatch.delenv(key, raising=False)

    app = create_app()

    assert app.config["DEFAULT_PAGE_LIMIT"] == 20
    assert app.config["MAX_PAGE_LIMIT"] == 200
    assert app.config["ENABLE_CATEGORIES"] is True


def test_env_overrides_settings(monkeypatch) -> None:
    monkeypatch.delenv("INIT_DB_ON_STARTUP", raising=False)
    monkeypatch.setenv("DEFAULT_PAGE_LIMIT", "5")
    monkeypatch.setenv("ENABLE_CATEGORIES", "0")
    monkeypatch.setenv("MAX_PAGE_LIMIT", "not-a-number")

    app = create_app()

    assert app.config["DEFAULT_PAGE_LIMIT"] == 5
    assert app.config["ENABLE_CATEGORIES"] is False
    assert app.config["MAX_PAGE_LIMIT"] == 200
    assert "/api/v1/categories" not in {rule.rule for rule in app.url_map.iter_rules()}
