# backend/poscore/__init__.py
from flask import Flask

from .config import Config
from .extensions import db, migrate


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.pricing import pricing_bp
    from .routes.reservations import reservations_bp
    from .routes.checkout import checkout_bp
    from .routes.returns import returns_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(pricing_bp)
    app.register_blueprint(reservations_bp)
    app.register_blueprint(checkout_bp)
    app.register_blueprint(returns_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    if app.config.get("SCHEDULER_ENABLED"):
        from .scheduler import start_scheduler
        start_scheduler(app)

    return app
