# classes/errors.py
"""Error taxonomy shared by the form service, the HTTP layer and the wizard client."""

from __future__ import annotations

from typing import Any


class FormError(Exception):
    """Base exception for all form wizard errors."""

    status_code = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.message}


class RequestShapeError(FormError):
    """A required identifier (userId, submission id) is missing."""

    status_code = 400


class ValidationFailed(FormError):
    """One or more field rules were violated."""

    status_code = 400

    def __init__(self, errors: list[dict[str, str]], message: str = "Validation failed") -> None:
        self.errors = list(errors)
        super().__init__(message)

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.message, "errors": self.errors}

    def __str__(self) -> str:
        details = "; ".join(f"{e['field']}: {e['message']}" for e in self.errors)
        return f"{self.message} ({details})" if details else self.message


class AuthorizationError(FormError):
    """Submission not found for this owner.

    Deliberately covers both "does not exist" and "belongs to someone else".
    """

    status_code = 403

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class StoreError(FormError):
    """Persistence layer failure. The message is safe to return to callers."""

    status_code = 500


class ApiError(FormError):
    """Raised by the wizard client for any non-2xx response or transport failure."""

    def __init__(self, message: str, status_code: int | None = None, payload: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload

    @property
    def field_errors(self) -> list[dict[str, str]]:
        if isinstance(self.payload, dict):
            return list(self.payload.get("errors") or [])
        return []
