"""
Webhook event handlers for Stripe events.

Handlers are registered per event type with @register_handler and run by
dispatch_webhook inside the processing task's transaction. Each handler
is safe to run more than once for the same event.

Handled events:
    payment_intent.succeeded: Payment -> SUCCEEDED, Order -> CONFIRMED
    payment_intent.payment_failed: Payment -> FAILED, NOTE on the timeline
    account.updated: Mirror payouts_enabled onto the seller

Any other event type is recorded in the audit log and acknowledged.

Usage:
    from payments.webhooks.handlers import dispatch_webhook, register_handler

    @register_handler("charge.refunded")
    def handle_charge_refunded(webhook_event: WebhookEvent) -> ServiceResult:
        ...

    result = dispatch_webhook(webhook_event)
"""

from __future__ import annotations

import logging
from typing import Callable

from django.utils import timezone

from audit.services import AuditService
from authentication.models import User
from core.services import ServiceResult
from marketplace.models import OrderStatus, OrderTimelineEvent, TimelineEventType
from payments.models import Payment, WebhookEvent
from payments.state_machines import PaymentStatus

logger = logging.getLogger(__name__)


# =============================================================================
# Handler Registry
# =============================================================================


WEBHOOK_HANDLERS: dict[str, Callable[[WebhookEvent], ServiceResult]] = {}


def register_handler(event_type: str) -> Callable:
    """Decorator registering the handler for a Stripe event type."""

    def decorator(func: Callable[[WebhookEvent], ServiceResult]) -> Callable:
        WEBHOOK_HANDLERS[event_type] = func
        return func

    return decorator


def dispatch_webhook(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Run the handler registered for the event's type.

    Events without a handler are written to the audit log as
    StripeEvent RECEIVED and reported as a success.
    """
    handler = WEBHOOK_HANDLERS.get(webhook_event.event_type)

    if handler is None:
        logger.info(
            f"No handler registered for event type: {webhook_event.event_type}",
            extra={"stripe_event_id": webhook_event.stripe_event_id},
        )
        AuditService.record(
            entity="StripeEvent",
            entity_id=webhook_event.stripe_event_id,
            action="RECEIVED",
            metadata=webhook_event.payload,
        )
        return ServiceResult.success(None)

    logger.info(
        f"Dispatching {webhook_event.event_type} to handler",
        extra={"stripe_event_id": webhook_event.stripe_event_id},
    )
    return handler(webhook_event)


# =============================================================================
# Payment Intent Handlers
# =============================================================================


def _locked_payment_for_intent(webhook_event: WebhookEvent) -> Payment | None:
    """
    Payment for the event's PaymentIntent, locked for update.

    Falls back to the payment_id metadata set at checkout.
    """
    intent = webhook_event.data_object
    payments = Payment.objects.select_for_update().select_related("order")

    payment = payments.filter(stripe_payment_intent_id=intent.get("id")).first()
    if payment is None and (intent.get("metadata") or {}).get("payment_id"):
        payment = payments.filter(pk=intent["metadata"]["payment_id"]).first()
    return payment


@register_handler("payment_intent.succeeded")
def handle_payment_intent_succeeded(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Record a captured payment.

    Payment -> SUCCEEDED with paid_at, a PENDING order -> CONFIRMED, and
    a PAYMENT_CONFIRMED timeline event. A payment that already succeeded
    is left as it is.
    """
    payment_intent_id = webhook_event.get_object_id()
    if not payment_intent_id:
        return ServiceResult.failure(
            "Could not extract payment_intent_id from webhook",
            error_code="INVALID_WEBHOOK_PAYLOAD",
        )

    payment = _locked_payment_for_intent(webhook_event)
    if payment is None:
        logger.warning(
            "Payment not found for payment_intent_id, ignoring",
            extra={
                "payment_intent_id": payment_intent_id,
                "stripe_event_id": webhook_event.stripe_event_id,
            },
        )
        return ServiceResult.success(None)

    if payment.status == PaymentStatus.SUCCEEDED:
        logger.info(
            "Payment already succeeded",
            extra={"payment_id": str(payment.id), "payment_intent_id": payment_intent_id},
        )
        return ServiceResult.success(payment)

    payment.status = PaymentStatus.SUCCEEDED
    payment.paid_at = timezone.now()
    payment.stripe_payment_intent_id = payment_intent_id
    payment.save(update_fields=["status", "paid_at", "stripe_payment_intent_id", "updated_at"])

    order = payment.order
    if order.status == OrderStatus.PENDING:
        order.status = OrderStatus.CONFIRMED
        order.save(update_fields=["status", "updated_at"])
    OrderTimelineEvent.objects.create(
        order=order,
        type=TimelineEventType.PAYMENT_CONFIRMED,
        detail="Stripe payment confirmed",
    )

    AuditService.record(
        entity="payment",
        entity_id=payment.id,
        action="PAYMENT_SUCCEEDED",
        metadata={
            "order_id": str(order.id),
            "payment_intent_id": payment_intent_id,
            "stripe_event_id": webhook_event.stripe_event_id,
        },
    )
    logger.info(
        "Payment succeeded",
        extra={
            "payment_id": str(payment.id),
            "order_id": str(order.id),
            "payment_intent_id": payment_intent_id,
        },
    )
    return ServiceResult.success(payment)


@register_handler("payment_intent.payment_failed")
def handle_payment_intent_failed(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Record a failed payment attempt.

    Payment -> FAILED and a NOTE on the order timeline. The buyer can pay
    again with the same PaymentIntent; a later success still applies.
    """
    payment_intent_id = webhook_event.get_object_id()
    if not payment_intent_id:
        return ServiceResult.failure(
            "Could not extract payment_intent_id from webhook",
            error_code="INVALID_WEBHOOK_PAYLOAD",
        )

    last_error = webhook_event.data_object.get("last_payment_error") or {}
    reason = last_error.get("message", "Payment failed")

    payment = _locked_payment_for_intent(webhook_event)
    if payment is None:
        logger.warning(
            "Payment not found for payment_intent_id, ignoring",
            extra={
                "payment_intent_id": payment_intent_id,
                "stripe_event_id": webhook_event.stripe_event_id,
            },
        )
        return ServiceResult.success(None)

    if payment.status == PaymentStatus.SUCCEEDED:
        # Out-of-order delivery of an earlier attempt
        logger.info(
            "Ignoring failure for a payment that already succeeded",
            extra={"payment_id": str(payment.id), "payment_intent_id": payment_intent_id},
        )
        return ServiceResult.success(payment)

    payment.status = PaymentStatus.FAILED
    payment.save(update_fields=["status", "updated_at"])
    OrderTimelineEvent.objects.create(
        order=payment.order,
        type=TimelineEventType.NOTE,
        detail="Stripe payment failed",
    )

    logger.info(
        "Payment failed",
        extra={
            "payment_id": str(payment.id),
            "order_id": str(payment.order_id),
            "payment_intent_id": payment_intent_id,
            "reason": reason,
        },
    )
    return ServiceResult.success(payment)


# =============================================================================
# Connect Handlers
# =============================================================================


@register_handler("account.updated")
def handle_account_updated(webhook_event: WebhookEvent) -> ServiceResult:
    """Mirror the connected account's payouts_enabled onto its seller."""
    data_object = webhook_event.data_object
    account_id = data_object.get("id")
    if not account_id:
        return ServiceResult.failure(
            "Could not extract account_id from webhook",
            error_code="INVALID_WEBHOOK_PAYLOAD",
        )

    payouts_enabled = bool(data_object.get("payouts_enabled", False))
    updated = User.objects.filter(stripe_connect_id=account_id).update(
        stripe_payouts_enabled=payouts_enabled
    )

    logger.info(
        "Processed account.updated",
        extra={
            "stripe_event_id": webhook_event.stripe_event_id,
            "account_id": account_id,
            "payouts_enabled": payouts_enabled,
            "matched_users": updated,
        },
    )
    return ServiceResult.success(updated)
