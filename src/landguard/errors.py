"""Error taxonomy shared by the scoring, store, and API layers."""

from __future__ import annotations


class LandGuardError(Exception):
    """Base error carrying a stable machine-readable code and HTTP status."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class ValidationError(LandGuardError):
    """A required field is missing or malformed. Never retried."""

    code = "MISSING_FIELD"
    status_code = 400


class NotFoundError(LandGuardError):
    """The referenced property, alert, report, or watch does not exist."""

    code = "NOT_FOUND"
    status_code = 404


class ConflictError(LandGuardError):
    """A compare-and-swap write lost against a concurrent writer; callers may retry."""

    code = "CONFLICT"
    status_code = 409


class StoreUnavailable(LandGuardError):
    """The key-value backend cannot be reached."""

    code = "STORE_UNAVAILABLE"
    status_code = 503


__all__ = [
    "LandGuardError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "StoreUnavailable",
]
