import os
import time

from flask import Flask, jsonify, request
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError

from api.api_v1.categories import CategoryNotFound
from api.blueprint import create_api_blueprint
from api.schemas.api_responses import fail
from api.services.partners_service import PartnerNotFound
from config import configure_logging, env_overrides
import db
from logging_utils import configure_app_logging, get_logger
from utils.address import TemplateRenderError
from utils.hierarchy import CycleDetected


def init_db() -> None:
    """Initialize DB schema.

    Kept out of default startup path to minimize app spin-up time.
    """

    import models  # noqa: F401  (registers every table on Base.metadata)

    db.Base.metadata.create_all(bind=db.engine)


def _register_error_handlers(app: Flask, logger) -> None:
    @app.errorhandler(CycleDetected)
    def cycle_detected(err):
        return jsonify(fail(str(err), code="cycle_detected")), 400

    @app.errorhandler(ValidationError)
    def invalid_payload(err):
        details = [
            {"loc": list(e["loc"]), "msg": e["msg"], "type": e["type"]}
            for e in err.errors()
        ]
        return (
            jsonify(fail("Invalid request payload", code="validation_error", details=details)),
            400,
        )

    @app.errorhandler(ValueError)
    def invalid_value(err):
        return jsonify(fail(str(err), code="invalid_value")), 400

    @app.errorhandler(IntegrityError)
    def integrity_error(err):
        logger.warning("Integrity error: %s", err.orig)
        return jsonify(fail(str(err.orig), code="integrity_error")), 400

    @app.errorhandler(PartnerNotFound)
    @app.errorhandler(CategoryNotFound)
    def record_not_found(err):
        return jsonify(fail(str(err), code="not_found")), 404

    @app.errorhandler(TemplateRenderError)
    def template_error(err):
        # Already logged with its traceback where rendering failed.
        return jsonify(fail(str(err), code="template_error")), 500

    @app.errorhandler(404)
    def not_found(_err):
        return jsonify(fail("Not found", code="not_found")), 404

    @app.errorhandler(500)
    def server_error(_err):
        logger.exception("Unhandled server error")
        return jsonify(fail("Internal server error", code="server_error")), 500


def create_app() -> Flask:
    app = Flask(__name__)

    # Defaults from file, then environment overrides.
    app.config.from_pyfile("settings.py")
    app.config.from_mapping(env_overrides())

    # Configure unified app logging (UTC timestamps, daily rotation)
    configure_app_logging(app.config.get("LOG_LEVEL", "INFO"))
    logger = get_logger(__name__)
    configure_logging(app.logger, app.config.get("LOG_LEVEL", "INFO"))

    # --- slow request logging (opt-in by threshold; default 250ms) ---
    # Set to "0" to disable.
    slow_ms = int(os.getenv("SLOW_REQUEST_MS", "250") or "250")

    @app.before_request
    def _start_timer():
        if slow_ms > 0:
            request.environ["_req_start_ns"] = time.perf_counter_ns()

    @app.after_request
    def _log_slow_requests(resp):
        if slow_ms <= 0:
            return resp

        start_ns = request.environ.get("_req_start_ns")
        if not start_ns:
            return resp

        elapsed_ms = (time.perf_counter_ns() - int(start_ns)) / 1_000_000.0
        if elapsed_ms >= slow_ms:
            # Keep it compact and stable for grepping.
            logger.warning(
                "SLOW_REQUEST ms=%.1f status=%s method=%s path=%s query=%s",
                elapsed_ms,
                getattr(resp, "status_code", "?"),
                request.method,
                request.path,
                request.query_string.decode("utf-8", errors="replace"),
            )
        return resp

    app.register_blueprint(
        create_api_blueprint(
            enable_categories=app.config.get("ENABLE_CATEGORIES", True),
        )
    )

    _register_error_handlers(app, logger)

    # Optional: initialize tables on startup only when explicitly requested.
    if os.getenv("INIT_DB_ON_STARTUP", "0") == "1":
        logger.info("INIT_DB_ON_STARTUP=1; initializing database schema")
        init_db()

    return app


# NOTE: Do not instantiate the Flask app at import time.
# Tests patch the DB engine/sessionmaker before calling create_app().
app: Flask | None = None


if __name__ == "__main__":
    app = create_app()
    get_logger(__name__).info("Starting Flask app")
    app.run(debug=True, use_reloader=False)
