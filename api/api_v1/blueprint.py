from flask import Blueprint

from api.api_v1.categories import categories_v1_bp
from api.api_v1.partners import partners_v1_bp


def create_api_v1_blueprint(*, enable_categories: bool = True) -> Blueprint:
    """Create the /api/v1 blueprint and register sub-blueprints."""

    v1_bp = Blueprint("api_v1", __name__, url_prefix="/api/v1")
    v1_bp.register_blueprint(partners_v1_bp)
    if enable_categories:
        v1_bp.register_blueprint(categories_v1_bp)
    return v1_bp
