# backend/custody/__init__.py
import logging

from flask import Flask

from .config import Config
from .extensions import db, migrate
from .errors import register_error_handlers

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(app: Flask) -> None:
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    app.logger.setLevel(level)

    # create_app() can run many times per process (tests); keep one handler
    for handler in list(app.logger.handlers):
        if getattr(handler, "_custody_handler", False):
            app.logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._custody_handler = True
    app.logger.addHandler(handler)


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    # Sessions live at least one day
    app.config["SESSION_MAX_AGE_DAYS"] = max(1, int(app.config.get("SESSION_MAX_AGE_DAYS", 7)))

    configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.assignments import assignments_bp
    from .routes.events import events_bp
    from .routes.users import users_bp
    from .routes.assets import assets_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(assignments_bp)
    app.register_blueprint(events_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(assets_bp)

    register_error_handlers(app)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    app.logger.debug("Custody app created (db=%s)", app.config["SQLALCHEMY_DATABASE_URI"])
    return app
