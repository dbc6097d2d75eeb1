from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

import db
from api.schemas.api_responses import ApiMeta, ok
from api.schemas.partners import PartnerCreate, PartnerUpdate
from api.services.partners_service import (
    CONTEXT_FLAGS,
    clamp_page,
    get_partner_or_raise,
    list_partners_page,
    serialize_partner,
    serialize_partner_ref,
)
from logging_utils import get_logger
from utils.address import address_get, display_address
from utils.commercial import resolve_commercial_partner
from utils.partner_store import PartnerStore
from utils.partner_sync import create_company

logger = get_logger(__name__)

partners_v1_bp = Blueprint("partners_v1", __name__, url_prefix="/partners")


def _store(session) -> PartnerStore:
    """Store bound to `session`, with display flags taken from the query string."""
    flags = {}
    for key in CONTEXT_FLAGS:
        raw = request.args.get(key)
        if raw is not None:
            flags[key] = raw
    return PartnerStore(session).with_context(**flags)


def _int_arg(name: str, default: int) -> int:
    try:
        return int((request.args.get(name) or "").strip() or default)
    except ValueError:
        return default


@partners_v1_bp.get("")
def list_partners():
    """List partners.

    Query params:
    - q: optional substring matched against name, e-mail and reference
    - offset / limit: paging (limit defaults to DEFAULT_PAGE_LIMIT)
    """

    q = (request.args.get("q") or "").strip()
    offset, limit = clamp_page(
        _int_arg("offset", 0),
        _int_arg("limit", current_app.config.get("DEFAULT_PAGE_LIMIT", 20)),
        max_limit=current_app.config.get("MAX_PAGE_LIMIT", 200),
    )

    with db.session_scope() as session:
        store = _store(session)
        page, total = list_partners_page(store, q=q, offset=offset, limit=limit)
        data = [serialize_partner(store, p) for p in page]

    return jsonify(ok(data, meta=ApiMeta(total=total, offset=offset, limit=limit)))


@partners_v1_bp.post("")
def create_partner():
    payload = PartnerCreate.model_validate(request.get_json(silent=True) or {})

    with db.session_scope() as session:
        store = _store(session)
        partner = store.create(payload.to_vals())
        data = serialize_partner(store, partner)

    logger.info("Created partner id=%s via API", data["id"])
    return jsonify(ok(data)), 201


@partners_v1_bp.get("/<int:partner_id>")
def get_partner(partner_id: int):
    with db.session_scope() as session:
        store = _store(session)
        data = serialize_partner(store, get_partner_or_raise(store, partner_id))
    return jsonify(ok(data))


@partners_v1_bp.patch("/<int:partner_id>")
def update_partner(partner_id: int):
    payload = PartnerUpdate.model_validate(request.get_json(silent=True) or {})

    with db.session_scope() as session:
        store = _store(session)
        partner = get_partner_or_raise(store, partner_id)
        store.write(partner, payload.to_vals())
        data = serialize_partner(store, partner)
    return jsonify(ok(data))


@partners_v1_bp.post("/<int:partner_id>/toggle-active")
def toggle_partner_active(partner_id: int):
    with db.session_scope() as session:
        store = _store(session)
        partner = get_partner_or_raise(store, partner_id)
        store.toggle_active(partner)
        data = serialize_partner(store, partner)
    return jsonify(ok(data))


@partners_v1_bp.post("/<int:partner_id>/create-company")
def create_partner_company(partner_id: int):
    """Materialize `company_name` as a parent company partner."""

    with db.session_scope() as session:
        store = _store(session)
        partner = get_partner_or_raise(store, partner_id)
        created = create_company(store, partner)
        data = {
            "created": created,
            "partner": serialize_partner(store, partner),
            "company": serialize_partner_ref(store.parent_of(partner)),
        }
    return jsonify(ok(data))


@partners_v1_bp.get("/<int:partner_id>/address")
def partner_address(partner_id: int):
    """Resolve the records holding each requested address type.

    Query params:
    - types: comma-separated address types (e.g. 'invoice,delivery');
      'contact' is always included.
    """

    types = [
        t.strip() for t in (request.args.get("types") or "").split(",") if t.strip()
    ]

    with db.session_scope() as session:
        store = _store(session)
        partner = get_partner_or_raise(store, partner_id)
        found = address_get(store, [partner], types)
        data = {addr_type: serialize_partner_ref(p) for addr_type, p in found.items()}
    return jsonify(ok(data))


@partners_v1_bp.get("/<int:partner_id>/display-address")
def partner_display_address(partner_id: int):
    include_company = (request.args.get("company") or "1").strip() not in {"0", "false"}

    with db.session_scope() as session:
        store = _store(session)
        partner = get_partner_or_raise(store, partner_id)
        text = display_address(store, partner, include_company_name=include_company)
    return jsonify(ok({"id": partner_id, "address": text}))


@partners_v1_bp.get("/<int:partner_id>/commercial-partner")
def partner_commercial_partner(partner_id: int):
    with db.session_scope() as session:
        store = _store(session)
        partner = get_partner_or_raise(store, partner_id)
        data = serialize_partner(store, resolve_commercial_partner(store, partner))
    return jsonify(ok(data))
