"""
Exception taxonomy shared by the store, analysis, integration and coach layers.

The API layer maps each class to one HTTP status; nothing below the API
knows about HTTP.
"""


class GrindProofError(Exception):
    """Base class for all GrindProof errors."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(GrindProofError):
    """Record missing, or owned by another user."""

    status_code = 404
    code = "NOT_FOUND"


class ValidationError(GrindProofError):
    """Input outside the allowed range or enum."""

    status_code = 422
    code = "VALIDATION_ERROR"


class ConflictError(GrindProofError):
    """Uniqueness violated (e.g. a second score for the same week)."""

    status_code = 409
    code = "CONFLICT"


class UpstreamError(GrindProofError):
    """Database or third-party API failure. Message starts with 'Failed to'."""

    status_code = 502
    code = "UPSTREAM_ERROR"


class AuthenticationError(GrindProofError):
    status_code = 401
    code = "AUTH_REQUIRED"


class IntegrationNotConnectedError(GrindProofError):
    """Operation needs an integration the user has not connected."""

    status_code = 412
    code = "INTEGRATION_NOT_CONNECTED"


class LLMError(GrindProofError):
    """LLM transport failure. ``kind`` is quota, configuration or other."""

    code = "LLM_ERROR"

    def __init__(self, message: str, kind: str = "other"):
        super().__init__(message)
        self.kind = kind

    @property
    def status_code(self) -> int:  # type: ignore[override]
        if self.kind == "quota":
            return 429
        if self.kind == "configuration":
            return 503
        return 500
