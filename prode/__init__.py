import logging
import os

from flask import Flask, jsonify, request
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from werkzeug.exceptions import HTTPException

from config import config

logger = logging.getLogger(__name__)

db = SQLAlchemy()
login_manager = LoginManager()
migrate = Migrate()


def get_real_ip():
    """
    Get the real client IP address, accounting for reverse proxies.
    Checks X-Forwarded-For, X-Real-IP, and falls back to remote_addr.
    """
    # X-Forwarded-For: client, proxy1, proxy2, ...
    if request.headers.get("X-Forwarded-For"):
        return request.headers.get("X-Forwarded-For").split(",")[0].strip()
    if request.headers.get("X-Real-IP"):
        return request.headers.get("X-Real-IP")
    return get_remote_address()


# Storage backend comes from RATELIMIT_STORAGE_URI in the app config
limiter = Limiter(
    key_func=get_real_ip,
    default_limits=["10000 per day", "1000 per hour"],
)


def create_app(config_name=None, config_overrides=None):
    app = Flask(__name__)

    # Determine configuration
    if config_name is None:
        config_name = os.environ.get("FLASK_CONFIG", "default")

    app.config.from_object(config[config_name]())
    if config_overrides:
        app.config.update(config_overrides)

    # Initialize extensions
    db.init_app(app)
    login_manager.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)

    # Import and register blueprints
    from prode.routes.auth import bp as auth_bp

    app.register_blueprint(auth_bp, url_prefix="/auth")

    from prode.routes.main import bp as main_bp

    app.register_blueprint(main_bp)

    from prode.routes.api import bp as api_bp

    app.register_blueprint(api_bp, url_prefix="/api")

    # Register error handlers
    register_error_handlers(app)

    # Setup logging
    from prode.utils.logging_config import setup_logging

    setup_logging(app)

    if not app.config.get("TESTING"):
        show_config_warnings(app, config_name)

    # Create database tables
    with app.app_context():
        db.create_all()

    return app


def show_config_warnings(app, config_name):
    """Log configuration status and warnings"""
    logger.info(f"Prode starting with '{config_name}' configuration")

    if config_name == "production" and app.config.get("DEBUG"):
        logger.warning("DEBUG mode is enabled in production!")

    if not os.environ.get("SECRET_KEY"):
        logger.warning(
            "Using auto-generated SECRET_KEY (sessions will reset on restart). "
            "Run: python3 generate_secrets.py"
        )

    db_url = app.config.get("SQLALCHEMY_DATABASE_URI", "")
    if "sqlite" in db_url:
        logger.info("Using SQLite database")
    elif "postgresql" in db_url:
        # Show host and database name only, never the password
        host_part = db_url.split("@")[-1]
        logger.info(f"Using PostgreSQL database at {host_part}")
    else:
        logger.info(
            f"Using database: {db_url.split('://')[0] if '://' in db_url else 'Unknown'}"
        )


def register_error_handlers(app):
    """Register global error handlers"""
    from prode.errors import ProdeError

    @app.after_request
    def after_request(response):
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"

        if not app.config.get("DEBUG"):
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        return response

    @app.errorhandler(ProdeError)
    def handle_prode_error(error):
        if error.http_status >= 500:
            app.logger.error(
                f"{type(error).__name__}: {error.message} - Path: {request.path}"
            )
            db.session.rollback()
        else:
            app.logger.info(
                f"{type(error).__name__}: {error.message} - Path: {request.path}"
            )
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(400)
    def bad_request_error(error):
        app.logger.warning(
            f"400 Bad Request: {str(error)} - Path: {request.path} - Method: {request.method}"
        )
        return jsonify({"error": "Bad request", "status": "bad_input"}), 400

    @app.errorhandler(401)
    def unauthorized_error(error):
        return (
            jsonify({"error": "Authentication required", "status": "unauthenticated"}),
            401,
        )

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({"error": "Resource not found", "status": "not_found"}), 404

    @app.errorhandler(405)
    def method_not_allowed_error(error):
        return jsonify({"error": "Method not allowed", "status": "bad_input"}), 405

    @app.errorhandler(429)
    def too_many_requests_error(error):
        return jsonify({"error": "Too many requests", "status": "bad_input"}), 429

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return jsonify({"error": "Internal server error", "status": "internal"}), 500

    @app.errorhandler(Exception)
    def unhandled_error(error):
        if isinstance(error, HTTPException):
            return error
        app.logger.exception(f"Unhandled error on {request.path}")
        db.session.rollback()
        return jsonify({"error": "Internal server error", "status": "internal"}), 500


from prode import models  # noqa: F401, E402 - imported for model registration
