# Overview: API error taxonomy. Services and routes raise these; the app-level
# error handler renders them as JSON with the matching status code.

from __future__ import annotations


class ApiError(Exception):
    """Base class for errors that map to an HTTP response."""

    status_code = 500
    error = "Internal server error"

    def __init__(self, message: str | None = None, *, error: str | None = None, details=None):
        super().__init__(message or self.error)
        self.message = message or self.error
        if error is not None:
            self.error = error
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": self.error, "message": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(ApiError):
    """400-level input problem. ``details`` is a list of {field, message}."""

    status_code = 400
    error = "Validation error"


class ConflictError(ApiError):
    """Unique-constraint violation (duplicate SKU, email, code or document number)."""

    status_code = 400
    error = "Conflict"


class InsufficientStockError(ApiError):
    status_code = 400
    error = "Insufficient stock"


class NotFoundError(ApiError):
    status_code = 404
    error = "Not found"

    def __init__(self, entity: str, message: str | None = None):
        super().__init__(message or f"{entity} not found", error=f"{entity} not found")
        self.entity = entity


class AuthError(ApiError):
    status_code = 401
    error = "Access denied"


class PermissionDeniedError(ApiError):
    status_code = 403
    error = "Access denied"

    def __init__(self, message: str = "Insufficient permissions", *, required: str | None = None, current: str | None = None):
        super().__init__(message)
        self.required = required
        self.current = current

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["required"] = self.required
        body["current"] = self.current
        return body


class OperationNotAllowedError(ApiError):
    """Request is well-formed and authorised but the target may not be changed."""

    status_code = 403
    error = "Operation not allowed"
