from __future__ import annotations

from flask import Blueprint, jsonify, request

import db
from api.schemas.api_responses import ok
from api.schemas.partners import CategoryCreate, CategoryUpdate
from models.partner_categories import PartnerCategory
from utils.categories import (
    category_display_name,
    create_category,
    search_categories_by_name,
    write_category,
)

categories_v1_bp = Blueprint("categories_v1", __name__, url_prefix="/categories")


class CategoryNotFound(LookupError):
    def __init__(self, category_id: int) -> None:
        self.category_id = category_id
        super().__init__(f"Category {category_id} not found")


def _serialize(session, category: PartnerCategory) -> dict:
    return {
        "id": category.id,
        "name": category.name,
        "display_name": category_display_name(session, category),
        "color": category.color,
        "parent_id": category.parent_id,
        "active": category.active,
    }


@categories_v1_bp.get("")
def list_categories():
    """Search tags; `q` may be a full path like 'Customers / Gold'."""
    q = (request.args.get("q") or "").strip()
    with db.session_scope() as session:
        data = [_serialize(session, c) for c in search_categories_by_name(session, q)]
    return jsonify(ok(data))


@categories_v1_bp.post("")
def create_category_route():
    payload = CategoryCreate.model_validate(request.get_json(silent=True) or {})
    with db.session_scope() as session:
        category = create_category(session, payload.model_dump(exclude_unset=True))
        data = _serialize(session, category)
    return jsonify(ok(data)), 201


@categories_v1_bp.patch("/<int:category_id>")
def update_category_route(category_id: int):
    payload = CategoryUpdate.model_validate(request.get_json(silent=True) or {})
    with db.session_scope() as session:
        category = session.get(PartnerCategory, category_id)
        if category is None:
            raise CategoryNotFound(category_id)
        write_category(session, category, payload.model_dump(exclude_unset=True))
        data = _serialize(session, category)
    return jsonify(ok(data))
