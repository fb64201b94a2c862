"""
Logging setup for the Prode application.

Records go to the console and, when LOG_TO_FILE is set, to two rotating
files under LOG_DIR: prode.log for everything at LOG_LEVEL and errors.log
for ERROR and above. Every record is tagged with the request it belongs to.
"""

import logging
import logging.handlers
import os

from flask import g, has_request_context, request

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
BASE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
REQUEST_FORMAT = BASE_FORMAT + " [%(method)s %(url)s] [%(remote_addr)s] [user=%(user_id)s]"
ERROR_FORMAT = BASE_FORMAT + " [%(pathname)s:%(lineno)d] [%(method)s %(url)s]"

MB = 1024 * 1024


class RequestContextFilter(logging.Filter):
    """Tag records with method, url, client address and the signed-in user"""

    def filter(self, record):
        if not has_request_context():
            record.url = record.remote_addr = record.method = record.user_id = "-"
            return True

        record.url = request.url
        record.remote_addr = request.remote_addr
        record.method = request.method
        # Never trigger a user load from inside a log call
        user = getattr(g, "_login_user", None)
        record.user_id = user.get_id() if user is not None else "anonymous"
        return True


class ColoredFormatter(logging.Formatter):
    """Level names in colour, for a terminal during development"""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record):
        color = self.COLORS.get(record.levelname)
        if color is None:
            return super().format(record)

        # Work on a copy; other handlers share the record
        record = logging.makeLogRecord(record.__dict__)
        record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


def _rotating_handler(path, level, fmt, max_bytes, backup_count):
    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=max_bytes, backupCount=backup_count
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=DATE_FORMAT))
    handler.addFilter(RequestContextFilter())
    return handler


def setup_logging(app):
    """
    Configure the root logger from the application config.

    Args:
        app: Flask application instance
    """
    level = getattr(logging, app.config.get("LOG_LEVEL", "INFO").upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)
    # create_app may run more than once in a process (tests, CLI)
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    if app.config.get("LOG_TO_CONSOLE", True):
        console = logging.StreamHandler()
        console.setLevel(level)
        if app.debug:
            console.setFormatter(
                ColoredFormatter(BASE_FORMAT + " [%(filename)s:%(lineno)d]", datefmt="%H:%M:%S")
            )
        else:
            console.setFormatter(logging.Formatter(BASE_FORMAT, datefmt=DATE_FORMAT))
        console.addFilter(RequestContextFilter())
        root.addHandler(console)

    if app.config.get("LOG_TO_FILE", True):
        log_dir = app.config.get("LOG_DIR", "logs")
        os.makedirs(log_dir, exist_ok=True)
        root.addHandler(
            _rotating_handler(
                os.path.join(log_dir, "prode.log"), level, REQUEST_FORMAT, 10 * MB, 5
            )
        )
        root.addHandler(
            _rotating_handler(
                os.path.join(log_dir, "errors.log"), logging.ERROR, ERROR_FORMAT, 5 * MB, 3
            )
        )

    for noisy in ("werkzeug", "flask_limiter", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    app.logger.info(f"Logging configured - Level: {logging.getLevelName(level)}")
