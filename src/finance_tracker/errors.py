from typing import Any


class FinanceTrackerError(Exception):
    """Base error carrying the HTTP status and JSON body it maps to."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(
        self,
        message: str | None = None,
        *,
        error: str | None = None,
        errors: list[dict[str, Any]] | None = None,
    ):
        self.message = message or self.default_message
        self.error = error
        self.errors = errors
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"message": self.message}
        if self.error is not None:
            body["error"] = self.error
        if self.errors is not None:
            body["errors"] = self.errors
        return body


class ValidationError(FinanceTrackerError):
    status_code = 400
    default_message = "Validation error"


class AuthenticationError(FinanceTrackerError):
    status_code = 401
    default_message = "Authentication required"


class AuthorizationError(FinanceTrackerError):
    status_code = 403
    default_message = "Not authorized"


class NotFoundError(FinanceTrackerError):
    status_code = 404
    default_message = "Not found"


class ConflictError(FinanceTrackerError):
    status_code = 409
    default_message = "Conflict"


class UpstreamUnavailable(FinanceTrackerError):
    status_code = 502
    default_message = "Upstream service unavailable"


class RecordStoreError(FinanceTrackerError):
    status_code = 500
    default_message = "Record store request failed"
