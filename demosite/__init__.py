"""
Application factory for the demo site.

This module provides create_app() which initializes Flask, extensions,
logging, the module system and registers blueprints.
"""

import os
import logging
from logging.handlers import RotatingFileHandler

from flask import Flask, request
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


REQUIRED_ENV_VARS = ["SECRET_KEY", "DATABASE_URL", "FLASK_ENV"]

DEFAULT_MODULES = "demosite.modules.demo"


def _env_flag(name, default="false"):
    return os.getenv(name, default).lower() in {"1", "true", "yes", "on"}


def _env_list(name, default):
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


# -------------------- APPLICATION FACTORY --------------------

def create_app(test_config=None):
    """
    Application factory function.

    Creates and configures the Flask application, initializes extensions,
    sets up logging, loads site modules and registers blueprints.

    Args:
        test_config: optional mapping applied on top of the environment settings

    Returns:
        Flask: Configured Flask application instance
    """
    missing_vars = [var for var in REQUIRED_ENV_VARS if not os.getenv(var)]
    if missing_vars:
        raise RuntimeError(
            "Missing required environment variables: " + ", ".join(missing_vars)
        )

    # templates/ lives at the project root, not in the package
    basedir = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
    app = Flask(__name__, template_folder=os.path.join(basedir, 'templates'))

    # -------------------- CONFIGURATION --------------------
    app.config.from_mapping(
        DEBUG=False,
        ENV=os.environ["FLASK_ENV"],
        SECRET_KEY=os.environ["SECRET_KEY"],
        SQLALCHEMY_DATABASE_URI=os.environ["DATABASE_URL"],
        SQLALCHEMY_TRACK_MODIFICATIONS=False,
        SESSION_COOKIE_SECURE=os.environ["FLASK_ENV"] == "production",
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SAMESITE="Lax",
        MODULES=_env_list("MODULES", DEFAULT_MODULES),
        AUTO_INSTALL_MODULES=_env_flag("AUTO_INSTALL_MODULES", "true"),
        DEMO_MAX_AGE_HOURS=int(os.getenv("DEMO_MAX_AGE_HOURS", "24")),
        DEMO_IDLE_GRACE_HOURS=int(os.getenv("DEMO_IDLE_GRACE_HOURS", "1")),
        SITE_TIMEZONE=os.getenv("SITE_TIMEZONE", "UTC"),
        RATELIMIT_STORAGE_URI=os.getenv("RATELIMIT_STORAGE_URI") or os.getenv("REDIS_URL") or "memory://",
        RATELIMIT_DEFAULT=os.getenv("RATELIMIT_DEFAULT", "120 per minute;2000 per hour"),
        TRUST_PROXY_HEADERS=_env_flag("TRUST_PROXY_HEADERS"),
    )
    if test_config:
        app.config.update(test_config)

    # -------------------- EXTENSIONS --------------------
    from demosite.extensions import db, migrate, csrf, limiter

    db.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)
    limiter.init_app(app)

    # -------------------- LOGGING --------------------
    log_level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    log_level = getattr(logging, log_level_name, logging.INFO)
    log_format = os.getenv(
        "LOG_FORMAT",
        "[%(asctime)s] %(levelname)s in %(module)s: %(message)s",
    )

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(log_level)
    stream_handler.setFormatter(logging.Formatter(log_format))

    app.logger.setLevel(log_level)
    # Prevent duplicate log entries by clearing handlers first
    app.logger.handlers.clear()
    app.logger.addHandler(stream_handler)

    # Background jobs log through their own logger
    tasks_logger = logging.getLogger('scheduled_tasks')
    tasks_logger.setLevel(log_level)
    if not tasks_logger.handlers:
        tasks_logger.addHandler(stream_handler)

    if app.config.get("ENV") == "production":
        log_file = os.getenv("LOG_FILE", "app.log")
        file_handler = RotatingFileHandler(log_file, maxBytes=1_000_000, backupCount=5)
        file_handler.setLevel(log_level)
        file_handler.setFormatter(logging.Formatter(log_format))
        app.logger.addHandler(file_handler)
        tasks_logger.addHandler(file_handler)

    # -------------------- JINJA2 FILTERS --------------------
    from demosite.utils.helpers import format_datetime
    app.jinja_env.filters['format_datetime'] = format_datetime

    # -------------------- HOOKS, ACL AND MODULES --------------------
    from demosite import acl, hooks
    from demosite.modules import load_modules

    hooks.init_app(app)
    acl.init_app(app)
    load_modules(app)

    # -------------------- REGISTER BLUEPRINTS --------------------
    from demosite.routes.main import main_bp
    from demosite.routes.api import api_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(api_bp)

    # -------------------- SECURITY HEADERS --------------------
    @app.after_request
    def set_security_headers(response):
        """Add security headers to all HTTP responses."""
        if request.path.startswith('/static/'):
            return response
        response.headers['X-Frame-Options'] = 'SAMEORIGIN'
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'
        if app.config.get('ENV') == 'production':
            response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
        return response

    # -------------------- CLI COMMANDS --------------------
    from demosite import cli_commands
    cli_commands.init_app(app)

    # -------------------- INSTALL AND SCHEDULE --------------------
    if not app.config.get("TESTING") and app.config.get("ENV") != "testing":
        if app.config["AUTO_INSTALL_MODULES"]:
            _install_modules_on_startup(app)

        from demosite.scheduled_tasks import init_scheduled_tasks
        init_scheduled_tasks(app)

    return app


def _install_modules_on_startup(app):
    from sqlalchemy.exc import SQLAlchemyError
    from demosite.acl import anonymous
    from demosite.extensions import db
    from demosite.modules import install_modules

    with app.app_context():
        try:
            install_modules(anonymous())
        except SQLAlchemyError as e:
            # Happens before `flask db upgrade` created the tables
            db.session.rollback()
            app.logger.warning(f"Could not install modules on startup: {e}")


__all__ = ["create_app"]
