import os
import secrets
import warnings

from dotenv import load_dotenv

basedir = os.path.abspath(os.path.dirname(__file__))
load_dotenv(os.path.join(basedir, ".env"))


def _env_flag(name, default):
    return os.environ.get(name, default).lower() in ["true", "on", "1"]


class Config:
    _secret_key = os.environ.get("SECRET_KEY")

    if not _secret_key:
        _secret_key = secrets.token_urlsafe(32)
        warnings.warn(
            "SECRET_KEY not set! Using auto-generated key. "
            "Sessions will reset on app restart. "
            "Run 'python3 generate_secrets.py' to generate a secure key.",
            UserWarning,
        )

    SECRET_KEY = _secret_key

    # Database configuration - built from environment at initialization
    def __init__(self):
        """Initialize configuration with dynamic database URI"""
        self.SQLALCHEMY_DATABASE_URI = self._build_database_uri()

    def _build_database_uri(self):
        """Build database URI from environment variables"""
        database_url = os.environ.get("DATABASE_URL")

        if database_url:
            return database_url

        db_type = os.environ.get("DB_TYPE", "sqlite")

        if db_type.lower() == "postgresql":
            db_host = os.environ.get("DB_HOST") or "localhost"
            db_port = os.environ.get("DB_PORT") or "5432"
            db_name = os.environ.get("DB_NAME") or "prode_db"
            db_user = os.environ.get("DB_USER") or "prode_user"
            db_password = os.environ.get("DB_PASSWORD") or "prode_password"

            return f"postgresql+psycopg://{db_user}:{db_password}@{db_host}:{db_port}/{db_name}"
        else:
            # Default to SQLite for development
            return "sqlite:///" + os.path.join(basedir, "prode.db")

    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Tournament settings
    TIMEZONE = os.environ.get("TIMEZONE", "America/Argentina/Buenos_Aires")
    MATCH_DURATION_HOURS = float(os.environ.get("MATCH_DURATION_HOURS") or 2)
    UPCOMING_GRACE_HOURS = float(os.environ.get("UPCOMING_GRACE_HOURS") or 3)
    ENFORCE_SUBMISSION_WINDOW = _env_flag("ENFORCE_SUBMISSION_WINDOW", "true")

    # Rate limiting (read by Flask-Limiter)
    RATELIMIT_STORAGE_URI = os.environ.get("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_ENABLED = True

    # Session cookies
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_HTTPONLY = True
    PERMANENT_SESSION_LIFETIME = 86400  # 24 hours

    # Logging configuration
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_TO_CONSOLE = _env_flag("LOG_TO_CONSOLE", "True")
    LOG_TO_FILE = _env_flag("LOG_TO_FILE", "True")
    LOG_DIR = os.environ.get("LOG_DIR", "logs")

    # Environment detection
    FLASK_ENV = os.environ.get("FLASK_ENV", "development")
    DEBUG = FLASK_ENV == "development"
    TESTING = False


class DevelopmentConfig(Config):
    """Development configuration with helpful defaults"""

    DEBUG = True
    SQLALCHEMY_ECHO = os.environ.get("SQLALCHEMY_ECHO", "False").lower() == "true"


class ProductionConfig(Config):
    """Production configuration with security focus"""

    DEBUG = False
    SESSION_COOKIE_SECURE = True

    def __init__(self):
        super().__init__()

        if not os.environ.get("SECRET_KEY"):
            warnings.warn(
                "PRODUCTION WARNING: SECRET_KEY not explicitly set! "
                "Using auto-generated key is not recommended for production.",
                UserWarning,
            )
        if self.RATELIMIT_STORAGE_URI.startswith("memory://"):
            warnings.warn(
                "PRODUCTION WARNING: rate limits are kept in process memory. "
                "Set RATELIMIT_STORAGE_URI to share them across workers.",
                UserWarning,
            )


class TestingConfig(Config):
    """Testing configuration"""

    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    WTF_CSRF_ENABLED = False
    RATELIMIT_ENABLED = False
    LOG_TO_CONSOLE = False
    LOG_TO_FILE = False
    TIMEZONE = "America/Argentina/Buenos_Aires"
    ENFORCE_SUBMISSION_WINDOW = True

    def __init__(self):
        # Keep the in-memory database regardless of DATABASE_URL
        pass


# Configuration mapping
config = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig,
}
