# backend/supermart/__init__.py
from flask import Flask, request

from .config import Config
from .extensions import db, migrate


def create_app(config_object=None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_object or Config)

    # app.logger is the "supermart" logger; service modules log beneath it
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # In-process state: memory-backed repositories, register sessions, advisory board
    from .repositories import MEMORY_STORE_KEY, MemoryStore, release_repositories
    from .services.advisory_service import ADVISORY_BOARD_KEY, create_advisory_board
    from .services.session_service import SESSION_REGISTRY_KEY, SessionRegistry

    app.extensions[MEMORY_STORE_KEY] = MemoryStore()
    app.extensions[SESSION_REGISTRY_KEY] = SessionRegistry()
    app.extensions[ADVISORY_BOARD_KEY] = create_advisory_board(app.config)

    # Uncommitted repository work is rolled back at the end of every request
    app.teardown_appcontext(release_repositories)

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.products import products_bp
    from .routes.cart import cart_bp
    from .routes.checkout import checkout_bp
    from .routes.transactions import transactions_bp
    from .routes.reports import reports_bp
    from .routes.insights import insights_bp
    from .routes.settings import settings_bp
    from .routes.sellers import sellers_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(cart_bp)
    app.register_blueprint(checkout_bp)
    app.register_blueprint(transactions_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(insights_bp)
    app.register_blueprint(settings_bp)
    app.register_blueprint(sellers_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in app.config["CORS_ORIGINS"]:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
