from __future__ import annotations


class AppError(Exception):
    """Base error for domain/application exceptions."""

    status_code: int = 400

    def __init__(self, detail: str, *, message: str | None = None) -> None:
        super().__init__(detail)
        self.detail = detail
        self.message = message


class NotAuthorized(AppError):
    """Raised when actor lacks the role or ownership required for a resource."""

    status_code = 403

    def __init__(self, detail: str, *, reason: str = "role", message: str | None = None) -> None:
        super().__init__(detail, message=message)
        self.reason = reason


class NotFound(AppError):
    """Raised when entity is missing."""

    status_code = 404


class CovenantEvaluationError(AppError):
    """A single covenant could not be evaluated (e.g. no current value source)."""

    status_code = 422
