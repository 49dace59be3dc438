"""
Payment adapters for external services.

All Stripe calls go through StripeAdapter for consistent error handling,
timeouts and idempotency.
"""

from payments.adapters.stripe_adapter import (
    IdempotencyKeyGenerator,
    PaymentIntentResult,
    StripeAdapter,
    TransferResult,
    backoff_delay,
)

__all__ = [
    "IdempotencyKeyGenerator",
    "PaymentIntentResult",
    "StripeAdapter",
    "TransferResult",
    "backoff_delay",
]
