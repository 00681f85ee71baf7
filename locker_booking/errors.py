from __future__ import annotations

from typing import Any


class LockerBookingError(Exception):
    """Base class for every failure surfaced to API callers.

    ``status_code`` is the HTTP status used by the web layer and ``details``
    holds extra context for logs (entity ids, table names).
    """

    status_code = 400

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {"msg": self.message}

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{key}={value}" for key, value in self.details.items())
            return f"{self.__class__.__name__}('{self.message}', {details_str})"
        return f"{self.__class__.__name__}('{self.message}')"


class ValidationError(LockerBookingError):
    def __init__(self, errors: list[dict[str, str]]) -> None:
        super().__init__("Validation failed", {"fields": [error["field"] for error in errors]})
        self.errors = errors

    def to_dict(self) -> dict[str, Any]:
        return {"errors": self.errors}


class NotFoundError(LockerBookingError):
    status_code = 404


class ConflictError(LockerBookingError):
    """Duplicate unique value or an overlapping booking."""

    def __init__(
        self,
        message: str,
        errors: list[dict[str, str]] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.errors = errors or []

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"msg": self.message}
        if self.errors:
            payload["errors"] = self.errors
        return payload


class NoFieldsError(LockerBookingError):
    def __init__(self, message: str = "there are no fields to update", details: dict[str, Any] | None = None) -> None:
        super().__init__(message, details)


class NotAppliedError(LockerBookingError):
    """An UPDATE matched zero rows although the row was known to exist."""

    def __init__(self, message: str = "no given values to update", details: dict[str, Any] | None = None) -> None:
        super().__init__(message, details)


NoOpError = NotAppliedError


class StoreError(LockerBookingError):
    status_code = 500

    def to_dict(self) -> dict[str, Any]:
        # internal detail stays in the logs
        return {"msg": "Internal server error"}
