"""
Application exception hierarchy.

Services return expected business outcomes (bad input, missing
permission, state conflicts) as core.services.ServiceResult values.
Exceptions are raised for failures of external services and where the
caller is framework code that reports failures by exception, such as the
login serializer (authentication.services.LoginService).

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Input validation failures
    ├── PermissionDeniedError - Authorization failures
    ├── ConflictError - State conflicts (duplicates, invalid transitions)
    └── ExternalServiceError - Third-party service failures (Stripe, broker)

Every exception carries a ``result_kind``; core.exception_handler uses it
to pick the HTTP status.

Usage:
    from core.exceptions import ConflictError

    raise ConflictError(
        "Two-factor authentication is not set up",
        error_code="MFA_NOT_CONFIGURED",
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.services import ResultKind

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context
    """

    default_error_code: str = "APPLICATION_ERROR"
    result_kind: ResultKind = ResultKind.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    @property
    def http_status(self) -> int:
        return self.result_kind.http_status

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Example:
            {"error": "Offer not found", "error_code": "OFFER_NOT_FOUND"}
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """Raised when input validation fails in service code."""

    default_error_code: str = "VALIDATION_ERROR"
    result_kind = ResultKind.INVALID_INPUT


class PermissionDeniedError(BaseApplicationError):
    """
    Raised when the actor lacks permission for an operation.

    Note:
        For authentication failures (missing/invalid token) DRF's
        NotAuthenticated/AuthenticationFailed are used instead.
    """

    default_error_code: str = "PERMISSION_DENIED"
    result_kind = ResultKind.FORBIDDEN


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with current resource state.

    Use for duplicate entries, invalid state transitions and concurrent
    modification. HTTP 409.
    """

    default_error_code: str = "CONFLICT"
    result_kind = ResultKind.CONFLICT


class ExternalServiceError(BaseApplicationError):
    """
    Raised when an external service call fails.

    Log the original error but never expose its details to clients.
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
    result_kind = ResultKind.INTERNAL_ERROR
