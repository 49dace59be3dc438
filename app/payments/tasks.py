"""
Celery tasks for payment processing.

This module provides:
- release_order_payout: Retry a payout release that hit a transient
  Stripe failure
- process_webhook_event: Run the handler for a stored Stripe webhook

Usage:
    from payments.tasks import release_order_payout

    release_order_payout.apply_async(args=[str(order_id)], countdown=30)
"""

from __future__ import annotations

import logging

from celery import shared_task
from django.db import DatabaseError, transaction

from payments.exceptions import TRANSIENT_STRIPE_ERRORS
from payments.models import WebhookEvent

logger = logging.getLogger(__name__)

MAX_RELEASE_RETRIES = 5
MAX_WEBHOOK_RETRIES = 5


@shared_task(
    bind=True,
    autoretry_for=TRANSIENT_STRIPE_ERRORS,
    retry_backoff=True,
    retry_backoff_max=300,
    retry_kwargs={"max_retries": MAX_RELEASE_RETRIES},
    acks_late=True,
)
def release_order_payout(self, order_id: str) -> dict:
    """
    Release the payout for an order.

    Safe to run more than once: PayoutService reports ALREADY_RELEASED for
    a payout that has been released, and Stripe deduplicates the transfer
    through the idempotency key.

    Returns:
        Dict with "status" ("released", "already_released" or the failure
        error code) and "order_id"

    Raises:
        Transient Stripe errors, to trigger a Celery retry with backoff
    """
    from payments.services import PayoutService

    logger.info(
        "Processing payout release",
        extra={"order_id": order_id, "celery_retries": self.request.retries},
    )

    result = PayoutService().release_payout_for_order(order_id)

    if not result.success:
        logger.warning(
            "Payout release not performed",
            extra={"order_id": order_id, "error_code": result.error_code},
        )
        return {"status": result.error_code, "order_id": order_id}

    return {
        "status": result.data.outcome.value,
        "order_id": order_id,
        "transfer_id": result.data.payout.transfer_id,
    }


# =============================================================================
# Webhook Processing
# =============================================================================


@shared_task(
    bind=True,
    autoretry_for=(DatabaseError,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_kwargs={"max_retries": MAX_WEBHOOK_RETRIES},
    acks_late=True,
)
def process_webhook_event(self, webhook_event_id: str) -> dict:
    """
    Process a stored Stripe webhook event.

    1. Load the WebhookEvent; skip it if already PROCESSED
    2. Mark it PROCESSING
    3. Dispatch to its handler in a transaction
    4. Mark it PROCESSED, or FAILED with the handler's error

    Returns:
        Dict with "status" ("processed", "already_processed", "not_found"
        or "handler_failed") and "webhook_event_id"

    Raises:
        DatabaseError, after marking the event FAILED, to trigger a
        Celery retry
    """
    from payments.webhooks.handlers import dispatch_webhook

    webhook_event = WebhookEvent.objects.filter(id=webhook_event_id).first()
    if webhook_event is None:
        logger.error("WebhookEvent not found", extra={"webhook_event_id": webhook_event_id})
        return {"status": "not_found", "webhook_event_id": webhook_event_id}

    if webhook_event.is_processed:
        logger.info(
            "WebhookEvent already processed, skipping",
            extra={
                "webhook_event_id": webhook_event_id,
                "stripe_event_id": webhook_event.stripe_event_id,
            },
        )
        return {"status": "already_processed", "webhook_event_id": webhook_event_id}

    webhook_event.mark_processing()
    webhook_event.save()

    logger.info(
        f"Dispatching webhook: {webhook_event.event_type}",
        extra={
            "webhook_event_id": webhook_event_id,
            "stripe_event_id": webhook_event.stripe_event_id,
            "retry_count": webhook_event.retry_count,
            "celery_retries": self.request.retries,
        },
    )

    try:
        with transaction.atomic():
            result = dispatch_webhook(webhook_event)
    except DatabaseError as e:
        webhook_event.mark_failed(f"{type(e).__name__}: {e}")
        webhook_event.save()
        logger.exception(
            "Webhook processing failed with exception",
            extra={
                "webhook_event_id": webhook_event_id,
                "stripe_event_id": webhook_event.stripe_event_id,
            },
        )
        raise

    if not result.success:
        webhook_event.mark_failed(result.error or "Handler returned failure")
        webhook_event.save()
        logger.warning(
            f"Webhook handler failed: {result.error}",
            extra={
                "webhook_event_id": webhook_event_id,
                "stripe_event_id": webhook_event.stripe_event_id,
                "error_code": result.error_code,
            },
        )
        return {
            "status": "handler_failed",
            "webhook_event_id": webhook_event_id,
            "error_code": result.error_code,
        }

    webhook_event.mark_processed()
    webhook_event.save()
    logger.info(
        "Webhook processed successfully",
        extra={
            "webhook_event_id": webhook_event_id,
            "stripe_event_id": webhook_event.stripe_event_id,
        },
    )
    return {
        "status": "processed",
        "webhook_event_id": webhook_event_id,
        "stripe_event_id": webhook_event.stripe_event_id,
    }
