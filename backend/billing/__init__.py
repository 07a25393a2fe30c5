# backend/billing/__init__.py
import logging

from flask import Flask, current_app, jsonify, request
from werkzeug.exceptions import HTTPException

from .config import Config
from .errors import BillingError
from .extensions import db, migrate, register_sqlite_functions


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(BillingError)
    def handle_billing_error(exc: BillingError):
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return jsonify({"error": exc.description, "code": exc.name.upper().replace(" ", "_")}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc: Exception):
        current_app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"error": "Internal server error", "code": "INTERNAL_SERVER_ERROR"}), 500


def create_app(config_object=None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_object or Config)

    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    with app.app_context():
        register_sqlite_functions(db.engine)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.shops import shops_bp
    from .routes.invoices import invoices_bp
    from .routes.products import products_bp
    from .routes.analytics import analytics_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(shops_bp)
    app.register_blueprint(invoices_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(analytics_bp)

    _register_error_handlers(app)

    allowed_origins = {
        origin.strip()
        for origin in str(app.config.get("CORS_ALLOWED_ORIGINS", "")).split(",")
        if origin.strip()
    }

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
