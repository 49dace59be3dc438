"""
Payment services.

This module provides:
- CheckoutService: Creates the buyer's PaymentIntent for an order
- ConnectOnboardingService: Stripe Connect onboarding for sellers
- PayoutService: Releases escrowed order payouts to sellers

Usage:
    from payments.services import PayoutService

    result = PayoutService().release_payout_for_order(order_id)
"""

from payments.services.checkout_service import CheckoutService, CheckoutSession
from payments.services.onboarding_service import ConnectOnboardingService, OnboardingLink
from payments.services.payout_service import (
    PayoutReleaseOutcome,
    PayoutReleaseResult,
    PayoutService,
)

__all__ = [
    "CheckoutService",
    "CheckoutSession",
    "ConnectOnboardingService",
    "OnboardingLink",
    "PayoutReleaseOutcome",
    "PayoutReleaseResult",
    "PayoutService",
]
