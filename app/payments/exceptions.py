"""
Payment-specific exceptions.

Exception Hierarchy:
    ExternalServiceError (core.exceptions)
    └── PaymentError - Base for payment domain
        └── StripeError - Base for all Stripe errors
            ├── StripeInsufficientFundsError - Platform balance too low (permanent)
            ├── StripeInvalidAccountError - Invalid Stripe account (permanent)
            ├── StripeInvalidRequestError - Invalid request params (permanent)
            ├── StripeRateLimitError - Rate limited (transient, retry)
            ├── StripeAPIUnavailableError - API unavailable (transient, retry)
            └── StripeTimeoutError - Request timeout (transient, retry)

Stripe errors are raised by payments.adapters.StripeAdapter. Callers use
``is_retryable`` to decide between queueing a retry and giving up.

Usage:
    try:
        PayoutService().release_payout_for_order(order.id)
    except StripeError as e:
        if e.is_retryable:
            scheduler.schedule_payout_retry(order.id, countdown=backoff_delay(0))
        else:
            raise
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import ExternalServiceError

if TYPE_CHECKING:
    from typing import Any


class PaymentError(ExternalServiceError):
    """
    Base exception for all payment operations.

    Reported to API clients as a generic internal error; the message and
    details are only logged.
    """

    default_error_code: str = "PAYMENT_ERROR"


class StripeError(PaymentError):
    """
    Base exception for all Stripe-related errors.

    Attributes:
        stripe_code: Stripe's internal error code
        is_retryable: True for transient errors that are safe to retry
            with the same idempotency key
    """

    default_error_code: str = "STRIPE_ERROR"
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        stripe_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if stripe_code:
            details["stripe_code"] = stripe_code
        super().__init__(message, error_code=error_code, details=details)
        self.stripe_code = stripe_code


# -----------------------------------------------------------------------------
# Permanent Errors (do not retry)
# -----------------------------------------------------------------------------


class StripeInsufficientFundsError(StripeError):
    """
    The platform balance cannot cover a transfer.

    An operator must top up the balance before a retry can succeed.
    """

    default_error_code: str = "INSUFFICIENT_FUNDS"
    is_retryable: bool = False


class StripeInvalidAccountError(StripeError):
    """
    Invalid Stripe Connect account.

    Raised when the destination account for a transfer is missing,
    restricted or not onboarded. Needs manual intervention.
    """

    default_error_code: str = "INVALID_STRIPE_ACCOUNT"
    is_retryable: bool = False


class StripeInvalidRequestError(StripeError):
    """
    Invalid request parameters sent to Stripe.

    Usually a bug in our code rather than a user error.
    """

    default_error_code: str = "INVALID_STRIPE_REQUEST"
    is_retryable: bool = False


# -----------------------------------------------------------------------------
# Transient Errors (safe to retry with backoff)
# -----------------------------------------------------------------------------


class StripeRateLimitError(StripeError):
    default_error_code: str = "STRIPE_RATE_LIMITED"
    is_retryable: bool = True


class StripeAPIUnavailableError(StripeError):
    """
    Stripe API is temporarily unavailable.

    Covers network failures and Stripe 5xx responses.
    """

    default_error_code: str = "STRIPE_UNAVAILABLE"
    is_retryable: bool = True


class StripeTimeoutError(StripeError):
    """
    Stripe API call timed out.

    The operation may have succeeded on Stripe's side. Retrying with the
    same idempotency key returns the original result if it did.
    """

    default_error_code: str = "STRIPE_TIMEOUT"
    is_retryable: bool = True


TRANSIENT_STRIPE_ERRORS = (
    StripeRateLimitError,
    StripeAPIUnavailableError,
    StripeTimeoutError,
)
