from __future__ import annotations

import pytest

from utils.partner_names import (
    clean_website,
    email_formatted,
    find_or_create,
    name_create,
    name_get,
    parse_partner_name,
    search_by_name,
)


@pytest.fixture()
def acme(store):
    return store.create(
        {"name": "Acme", "is_company": True, "street": "1 Main St", "zip": "12345", "city": "Springfield"}
    )


@pytest.fixture()
def alice(store, acme):
    return store.create({"name": "Alice", "parent_id": acme.id, "email": "alice@acme.test"})


@pytest.mark.parametrize(
    "text,expected",
    [
        ("Raoul <raoul@grosbedon.fr>", ("Raoul", "raoul@grosbedon.fr")),
        ("raoul@grosbedon.fr", ("", "raoul@grosbedon.fr")),
        ("Raoul Grosbedon", ("Raoul Grosbedon", "")),
        ("", ("", "")),
    ],
)
def test_parse_partner_name(text: str, expected: tuple[str, str]) -> None:
    assert parse_partner_name(text) == expected


def test_email_formatted(alice, acme) -> None:
    assert email_formatted(alice) == "Alice <alice@acme.test>"
    assert email_formatted(acme) == ""


def test_name_get_prefixes_company(store, acme, alice) -> None:
    billing = store.create({"type": "invoice", "parent_id": acme.id})

    assert name_get(store, acme) == "Acme"
    assert name_get(store, alice) == "Acme, Alice"
    assert name_get(store, billing) == "Acme, Invoice Address"


def test_name_get_context_flags(store, alice) -> None:
    assert name_get(store.with_context(show_email=True), alice) == "Alice <alice@acme.test>"
    assert (
        name_get(store.with_context(show_address=True), alice)
        == "Acme, Alice\n1 Main St\nSpringfield  12345\n"
    )
    assert (
        name_get(store.with_context(show_address_only=True), alice)
        == "1 Main St\nSpringfield  12345\n"
    )
    assert (
        name_get(store.with_context(show_address=True, html_format=True), alice)
        == "Acme, Alice<br/>1 Main St<br/>Springfield  12345<br/>"
    )


def test_name_create_parses_email(store) -> None:
    partner = name_create(store, "Raoul <raoul@grosbedon.fr>")

    assert partner.name == "Raoul"
    assert partner.email == "raoul@grosbedon.fr"


def test_name_create_uses_email_as_name(store) -> None:
    assert name_create(store, "raoul@grosbedon.fr").name == "raoul@grosbedon.fr"


def test_name_create_force_and_default_email(store) -> None:
    with pytest.raises(ValueError, match="without email address"):
        name_create(store.with_context(force_email=True), "Raoul")

    partner = name_create(store.with_context(default_email="info@acme.test"), "Raoul")
    assert partner.email == "info@acme.test"


def test_find_or_create_matches_email_case_insensitively(store, alice) -> None:
    assert find_or_create(store, "ALICE@acme.test") is alice
    assert find_or_create(store, "Someone <Alice@Acme.test>") is alice

    created = find_or_create(store, "new@acme.test")
    assert created is not alice
    assert created.email == "new@acme.test"


def test_search_by_name(store, acme, alice) -> None:
    store.create({"name": "Bob", "ref": "ALI-42"})

    found = search_by_name(store, "ali")
    assert [p.name for p in found] == ["Alice", "Bob"]
    assert len(search_by_name(store, "ali", limit=1)) == 1
    assert len(search_by_name(store, "")) == 3


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("acme.test", "http://acme.test"),
        ("https://acme.test/about", "https://acme.test/about"),
        ("  www.acme.test ", "http://www.acme.test"),
        ("", ""),
    ],
)
def test_clean_website(raw: str, expected: str) -> None:
    assert clean_website(raw) == expected


def test_website_cleaned_on_write(store, alice) -> None:
    store.write(alice, {"website": "acme.test"})
    assert alice.website == "http://acme.test"
