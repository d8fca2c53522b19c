"""
core/errors.py -- Failure taxonomy shared by every layer.

Each class carries the HTTP status and machine-readable code the API layer
renders, so route handlers raise by meaning and api/main.py owns the single
translation into the error envelope.

Policy functions (core/policy.py, core/quota.py) never raise these for an
expected refusal. The dispatcher turns DENY values into these exceptions.
"""

from typing import Optional


class ServiceError(Exception):
    status_code: int = 500
    code: str = "internal_error"
    message: str = "An unexpected error occurred."

    def __init__(self, message: Optional[str] = None, *, code: Optional[str] = None, detail: Optional[str] = None):
        super().__init__(message or self.message)
        if message is not None:
            self.message = message
        if code is not None:
            self.code = code
        self.detail = detail


class AuthenticationError(ServiceError):
    """Missing, malformed, expired or forged token, or bad credentials.

    The message never says which check failed.
    """

    status_code = 401
    code = "unauthorized"
    message = "Authentication required."


class AuthorizationError(ServiceError):
    status_code = 403
    code = "forbidden"
    message = "You are not allowed to perform this action."


class NotFoundError(ServiceError):
    """Absent, or present in another tenant -- the two are indistinguishable."""

    status_code = 404
    code = "not_found"
    message = "Resource not found."


class QuotaError(ServiceError):
    status_code = 402
    code = "note_limit_reached"
    message = "Free plan is limited to 3 notes. Upgrade to Pro for unlimited notes."


class ValidationError(ServiceError):
    status_code = 400
    code = "validation_error"
    message = "Request validation failed."


class ConflictError(ServiceError):
    status_code = 409
    code = "conflict"
    message = "Resource already exists."


class StorageUnavailableError(ServiceError):
    """Storage timed out or is unreachable. Safe for the client to retry."""

    status_code = 503
    code = "storage_unavailable"
    message = "Storage is temporarily unavailable. Retry shortly."
    retry_after = 5
