"""
Payment domain models.

- Payment: The buyer's payment for an order, with its financial breakdown
- Payout: The escrowed amount released to the seller's Stripe account
- WebhookEvent: A received Stripe webhook, stored for idempotent processing
"""

from payments.models.payment import Payment
from payments.models.payout import Payout
from payments.models.webhook_event import WebhookEvent

__all__ = [
    "Payment",
    "Payout",
    "WebhookEvent",
]
