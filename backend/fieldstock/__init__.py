# backend/fieldstock/__init__.py
from flask import Flask, g, request

from .config import Config
from .extensions import db, migrate


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        # Must land before db.init_app, which binds the engine
        app.config.update(test_config)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.loads import loads_bp
    from .routes.ledger import ledger_bp
    from .routes.reconciliations import reconciliations_bp
    from .routes.agents import agents_bp
    from .routes.sales import sales_bp
    from .routes.journey_plans import journey_plans_bp
    from .routes.admin import admin_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(loads_bp)
    app.register_blueprint(ledger_bp)
    app.register_blueprint(reconciliations_bp)
    app.register_blueprint(agents_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(journey_plans_bp)
    app.register_blueprint(admin_bp)

    @app.before_request
    def reset_request_identity():
        # g outlives a request when an app context is already pushed
        for name in ("current_user", "agent_id", "session_context", "_permission_sets"):
            g.pop(name, None)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin and origin in app.config.get("CORS_ALLOWED_ORIGINS", ()):
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,DELETE,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
