"""
State enums for payment models.

These are Django TextChoices for database storage and admin integration.

Payment States:
    pending → succeeded (payment_intent.succeeded webhook)
    pending → failed (payment_intent.payment_failed webhook)

Payout States:
    pending → released (terminal)

Webhook Event States:
    pending → processing → processed
    pending → processing → failed (retried by Celery)
"""

from django.db import models


class PaymentStatus(models.TextChoices):
    """
    States for the buyer's Payment on an order.

    A Payment is created PENDING when the offer is accepted and carries
    the financial breakdown computed at that moment. Only Stripe webhooks
    move it to SUCCEEDED or FAILED.
    """

    PENDING = "pending", "Pending"
    SUCCEEDED = "succeeded", "Succeeded"
    FAILED = "failed", "Failed"


class PayoutStatus(models.TextChoices):
    """
    States for the seller's Payout on an order.

    RELEASED is terminal. transfer_id is set exactly when the payout is
    RELEASED.
    """

    PENDING = "pending", "Pending"
    RELEASED = "released", "Released"


class WebhookEventStatus(models.TextChoices):
    """Processing status of a stored Stripe webhook event."""

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    PROCESSED = "processed", "Processed"
    FAILED = "failed", "Failed"
