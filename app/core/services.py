"""
Service layer primitives shared by every marketplace app.

This module provides:
- ResultKind: The outcome categories a service operation can report
- ServiceResult: Result wrapper that carries data or a categorised failure
- BaseService: Base class with logging and transaction helpers

Service Layer Philosophy:
    Views handle HTTP, models hold data, services hold the business rules.
    Expected failures (bad input, missing permission, state conflicts) are
    returned as ServiceResult values. Unexpected failures (database errors,
    bugs) are raised and handled by core.exception_handler.

Usage:
    from core.services import BaseService, ServiceResult

    class OfferService(BaseService):
        def reject(self, offer, actor) -> ServiceResult[Offer]:
            if actor.id != offer.listing.seller_id:
                return ServiceResult.forbidden()
            with self.atomic():
                offer.reject()
                offer.save()
            return ServiceResult.success(offer)

    # In a view
    result = service.reject(offer, request.user)
    if not result:
        return Response(result.to_response(), status=result.http_status)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Generator
    from typing import Any

T = TypeVar("T")


class ResultKind(str, Enum):
    """
    Outcome categories for service operations.

    Each kind maps to exactly one HTTP status so callers can tell a
    validation problem apart from an authorization or state problem.
    """

    SUCCESS = "success"
    INVALID_INPUT = "invalid_input"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INTERNAL_ERROR = "internal_error"

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS_BY_KIND[self]


_HTTP_STATUS_BY_KIND = {
    ResultKind.SUCCESS: 200,
    ResultKind.INVALID_INPUT: 400,
    ResultKind.FORBIDDEN: 403,
    ResultKind.NOT_FOUND: 404,
    ResultKind.CONFLICT: 409,
    ResultKind.INTERNAL_ERROR: 500,
}


@dataclass
class ServiceResult(Generic[T]):
    """
    Result wrapper for service operations.

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful
        error: Human-readable error message if failed
        error_code: Machine-readable error code (e.g. "OFFER_EXPIRED")
        errors: Field-level errors for validation failures
        kind: Outcome category, drives the HTTP status in views

    Usage:
        return ServiceResult.success(order)
        return ServiceResult.conflict("Offer is no longer open", "OFFER_NOT_OPEN")
        return ServiceResult.forbidden()
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    errors: dict[str, list[str]] | None = field(default=None)
    kind: ResultKind = ResultKind.SUCCESS

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        """Create a successful result."""
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        errors: dict[str, list[str]] | None = None,
        kind: ResultKind = ResultKind.INVALID_INPUT,
    ) -> ServiceResult[T]:
        """
        Create a failed result.

        Args:
            error: Human-readable error message
            error_code: Machine-readable error code for client handling
            errors: Field-level errors (for validation failures)
            kind: Failure category (defaults to INVALID_INPUT)
        """
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            errors=errors,
            kind=kind,
        )

    @classmethod
    def forbidden(cls, error: str = "Forbidden") -> ServiceResult[T]:
        """
        Create an authorization failure.

        The message is deliberately generic so no internal detail leaks
        to the caller.
        """
        return cls.failure(error, "FORBIDDEN", kind=ResultKind.FORBIDDEN)

    @classmethod
    def not_found(cls, error: str, error_code: str = "NOT_FOUND") -> ServiceResult[T]:
        """Create a missing-resource failure."""
        return cls.failure(error, error_code, kind=ResultKind.NOT_FOUND)

    @classmethod
    def conflict(cls, error: str, error_code: str = "CONFLICT") -> ServiceResult[T]:
        """Create a domain-state conflict (e.g. accepting an accepted offer)."""
        return cls.failure(error, error_code, kind=ResultKind.CONFLICT)

    @property
    def http_status(self) -> int:
        """HTTP status code matching this result's kind."""
        return self.kind.http_status

    def to_response(self) -> dict[str, Any]:
        """
        Convert to API response format.

        Returns:
            {"success": True, "data": ...} or
            {"success": False, "error": ..., "error_code": ..., "errors": ...}
        """
        if self.success:
            return {"success": True, "data": self.data}

        response: dict[str, Any] = {
            "success": False,
            "error": self.error,
        }
        if self.error_code:
            response["error_code"] = self.error_code
        if self.errors:
            response["errors"] = self.errors
        return response

    def __bool__(self) -> bool:
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Provides a per-class logger and an explicit transaction boundary.
    Services that need collaborators (Stripe adapter, task scheduler)
    receive them through ``__init__`` so tests can inject fakes.
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Logger named after the service class."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        Thin wrapper around django.db.transaction.atomic() that makes
        transaction boundaries explicit in service code.
        """
        with transaction.atomic():
            yield
