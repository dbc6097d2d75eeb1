from flask import Blueprint

from api.api_v1.blueprint import create_api_v1_blueprint


def create_api_blueprint(*, enable_categories: bool = True) -> Blueprint:
    """Create the main API blueprint.

    Keep this as the single registration point to avoid double-registering routes.
    """
    api_bp = Blueprint("api", __name__)

    # Versioned API
    api_bp.register_blueprint(
        create_api_v1_blueprint(enable_categories=enable_categories)
    )

    return api_bp
