from datetime import datetime, timezone

from flask import jsonify

from prode import limiter
from prode.routes.main import bp


@bp.route("/health")
@limiter.exempt
def health():
    """Health check endpoint - exempt from rate limiting for monitoring systems"""
    return jsonify(
        {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}
    )
