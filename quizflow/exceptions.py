"""
Domain errors for the questionnaire flow.

Every store, walker and registry operation raises one of these; the API
layer maps them onto HTTP status codes.
"""


class FlowError(Exception):
    """Base class for all flow errors."""

    status_code: int = 500

    def __init__(self, message: str, detail: str = ""):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self):
        return {"error": self.message, "detail": self.detail or None}


class NotFoundError(FlowError):
    """A slug or id resolved to nothing."""

    status_code = 404


class ConflictError(FlowError):
    """A uniqueness constraint was violated on create."""

    status_code = 409


class ValidationError(FlowError):
    """An entity would break a flow invariant (e.g. a cross-category jump)."""

    status_code = 422


class TransportError(FlowError):
    """The backing store was unreachable or reported a generic failure."""

    status_code = 502
