from flask import Blueprint

bp = Blueprint("auth", __name__)

from prode.routes.auth import routes  # noqa: F401, E402
