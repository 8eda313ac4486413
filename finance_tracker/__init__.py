# finance_tracker/__init__.py
# ------------------------------------------------------------
# Flask application factory with layered registration:
# - configure_logging()
# - register_extensions()
# - register_blueprints()
# - register_template_filters()
# - register_cli()
# - register_error_handlers()
#
# load_dotenv() runs once at import time so config.py sees .env values.
# ------------------------------------------------------------

import logging
import os
from dotenv import load_dotenv

from flask import Flask, jsonify, redirect, request, url_for
from werkzeug.exceptions import HTTPException

from .extensions import db, migrate, login_manager, mail
from .models import User  # ensure models registered
from .services.validation import ValidationError

# Load environment from .env exactly once
load_dotenv()

logger = logging.getLogger(__name__)


def create_app(test_config=None) -> Flask:
    app = Flask(__name__)
    env = os.getenv("FLASK_ENV", "development").lower()
    cfg = {
        "production": "finance_tracker.config.Production",
        "testing": "finance_tracker.config.Testing",
    }.get(env, "finance_tracker.config.Development")
    app.config.from_object(cfg)
    if test_config:
        app.config.from_mapping(test_config)

    configure_logging(app)
    register_extensions(app)
    register_blueprints(app)
    register_template_filters(app)
    register_cli(app)
    register_error_handlers(app)
    logger.info(f"[app] created (config={cfg}, locale={app.config['APP_LOCALE']})")
    return app


# ---------------------------
# Registrations (by concern)
# ---------------------------
def configure_logging(app: Flask) -> None:
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("finance_tracker").setLevel(level)


def _wants_json() -> bool:
    return request.path.startswith("/api/")


def register_extensions(app: Flask) -> None:
    """Initialize Flask extensions (db, migrate, login manager, mail)."""
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    mail.init_app(app)

    # Where to redirect unauthenticated users
    login_manager.login_view = "auth.login"

    @login_manager.user_loader
    def load_user(user_id: str):
        if not user_id.isdigit():
            return None
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        if _wants_json():
            return jsonify({"error": "Authentication required"}), 401
        return redirect(url_for("auth.login", next=request.full_path.rstrip("?")))


def register_blueprints(app: Flask) -> None:
    """
    Register all blueprints. Keep imports local to avoid circulars.
    """
    from .main import main as main_blueprint
    from .auth import auth as auth_blueprint

    app.register_blueprint(main_blueprint)   # /, /transactions, /api/...
    app.register_blueprint(auth_blueprint)   # /auth/login, /auth/register, ...


def register_template_filters(app: Flask) -> None:
    """Add Jinja filters."""
    from .services.formatting import format_currency, format_thai_date, format_thai_short_date

    app.add_template_filter(format_currency, name="money")
    app.add_template_filter(format_thai_date, name="thai_date")
    app.add_template_filter(format_thai_short_date, name="thai_short_date")


def register_cli(app: Flask) -> None:
    """Register custom CLI commands."""
    from .cli import register_cli as _register_cli
    _register_cli(app)


def register_error_handlers(app: Flask) -> None:
    """JSON bodies for API errors; HTML routes keep Flask's defaults."""

    @app.errorhandler(ValidationError)
    def _validation_error(e: ValidationError):
        return jsonify(e.to_dict()), 400

    @app.errorhandler(HTTPException)
    def _http_error(e: HTTPException):
        if not _wants_json() or e.code is None or e.code < 400:
            return e
        return jsonify({"error": e.description or e.name}), e.code

    @app.errorhandler(500)
    def _server_error(e):
        db.session.rollback()
        logger.error(f"[app] unhandled error on {request.method} {request.path}: {e}")
        if _wants_json():
            return jsonify({"error": "Internal server error"}), 500
        return "Internal Server Error", 500
