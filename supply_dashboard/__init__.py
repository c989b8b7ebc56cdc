import os

from flask import Flask, Response, jsonify, request
from werkzeug.exceptions import HTTPException

from supply_dashboard.config import Config
from supply_dashboard.db import close_db, get_read_db, init_db
from supply_dashboard.db_migrations import register_db_cli
from supply_dashboard.errors import AppError, SystemError
from supply_dashboard.observability import (
    configure_json_logging,
    ensure_request_id,
    mark_request_start,
    metrics_snapshot,
    observe_response,
    prometheus_metrics_text,
)


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)
    configure_json_logging(app)

    database_dir = app.config.get("DATABASE_DIR")
    if database_dir:
        os.makedirs(database_dir, exist_ok=True)

    _register_request_hooks(app)
    _register_error_handlers(app)
    _register_blueprints(app)
    _register_ops_routes(app)
    register_db_cli(app)
    app.teardown_appcontext(close_db)

    if _schema_auto_init_enabled(app):
        with app.app_context():
            init_db()
    return app


def _schema_auto_init_enabled(app: Flask) -> bool:
    # Tests always build their schema in place; elsewhere migrations own it.
    if app.testing:
        return True
    if not app.config.get("DB_AUTO_INIT", False):
        return False
    flask_env = (os.environ.get("FLASK_ENV") or "development").strip().lower()
    if flask_env != "development":
        app.logger.warning("db_auto_init_ignored", extra={"flask_env": flask_env})
        return False
    return True


def _register_blueprints(app: Flask) -> None:
    from supply_dashboard.routes.aggregate_routes import aggregates_bp

    app.register_blueprint(aggregates_bp)


def _register_request_hooks(app: Flask) -> None:
    @app.before_request
    def _start_request() -> None:
        ensure_request_id()
        mark_request_start()

    @app.after_request
    def _finish_request(response):
        response.headers["X-Request-Id"] = ensure_request_id()
        return observe_response(response)


def _request_fields(error: AppError) -> dict:
    return {
        "error_code": error.code,
        "http_status": error.http_status,
        "message_key": error.message_key,
        "details": error.details,
        "request_path": request.path,
        "http_method": request.method,
    }


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(AppError)
    def _handle_app_error(exc: AppError):
        request_id = ensure_request_id()
        if exc.critical or exc.http_status >= 500:
            app.logger.error("application_error", extra=_request_fields(exc), exc_info=exc.critical)
        else:
            app.logger.warning("application_error", extra=_request_fields(exc))
        return jsonify(exc.to_response_payload(request_id)), exc.http_status

    @app.errorhandler(Exception)
    def _handle_unexpected(exc: Exception):
        if isinstance(exc, HTTPException):
            return exc

        request_id = ensure_request_id()
        mapped = SystemError(code="unexpected_error", message_key="unexpected_error", details=str(exc))
        app.logger.exception("unexpected_exception", extra=_request_fields(mapped))
        return jsonify(mapped.to_response_payload(request_id)), mapped.http_status


def _register_ops_routes(app: Flask) -> None:
    @app.route("/health")
    def health():
        db_path = str(app.config.get("DB_PATH") or "")
        payload = {
            "status": "ok",
            "db": "postgres" if db_path.startswith("postgres") else "sqlite",
            "metrics": {"http": metrics_snapshot()},
        }
        try:
            get_read_db().execute("SELECT 1").fetchone()
        except Exception:
            app.logger.warning("health_db_unreachable", exc_info=True)
            payload["status"] = "degraded"
        return payload, 200

    @app.route("/metrics")
    def metrics():
        return Response(prometheus_metrics_text(), mimetype="text/plain; version=0.0.4")
