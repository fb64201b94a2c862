"""
Error taxonomy for the prediction pool.

Every error carries a categorical ``status`` understood by API callers
(unauthenticated, bad_input, not_found, internal) and the HTTP code the
API answers with.
"""


class ProdeError(Exception):
    status = "internal"
    http_status = 500
    default_message = "Internal server error"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self):
        return {"error": self.message, "status": self.status}


class Unauthenticated(ProdeError):
    """No valid caller identity. Not retried."""

    status = "unauthenticated"
    http_status = 401
    default_message = "Authentication required"


class InvalidInput(ProdeError):
    """Missing or malformed scores or identifiers. The caller must resubmit."""

    status = "bad_input"
    http_status = 400
    default_message = "Invalid input"


class SubmissionClosed(InvalidInput):
    """The match is no longer open for predictions."""

    default_message = "Predictions are closed for this match"


class NotFound(ProdeError):
    status = "not_found"
    http_status = 404
    default_message = "Not found"


class Conflict(ProdeError):
    """Unique constraint race during an upsert that could not be resolved."""

    default_message = "Concurrent update conflict"


class StoreUnavailable(ProdeError):
    """Transient database failure. Not retried by the core."""

    http_status = 503
    default_message = "Data store unavailable"


class InvalidRecord(ProdeError):
    """A stored row does not have the shape the domain expects."""

    default_message = "Stored record is invalid"
