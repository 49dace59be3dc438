"""
Checkout service for collecting the buyer's payment.

The buyer pays the platform: the PaymentIntent is created on the platform
account for the order total, and the seller's escrow share leaves later
through PayoutService. Stripe reports the outcome through the
payment_intent.* webhooks (payments.webhooks.handlers), which move the
Payment to SUCCEEDED or FAILED.

Calling start_checkout again for the same order returns the intent that
was already created, so a buyer reloading the checkout page never gets a
second charge.

Usage:
    from payments.services import CheckoutService

    result = CheckoutService().start_checkout(order_id, actor=request.user)
    if result.success:
        client_secret = result.data.client_secret
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from audit.services import AuditService
from core.services import BaseService, ServiceResult
from marketplace.models import OrderStatus
from payments.adapters import IdempotencyKeyGenerator, PaymentIntentResult, StripeAdapter
from payments.models import Payment
from payments.state_machines import PaymentStatus

if TYPE_CHECKING:
    import uuid

    from authentication.models import User


@dataclass
class CheckoutSession:
    """
    Attributes:
        payment: The order's Payment, with stripe_payment_intent_id set
        intent: The Stripe PaymentIntent the buyer confirms client-side
    """

    payment: Payment
    intent: PaymentIntentResult

    @property
    def client_secret(self) -> str | None:
        return self.intent.client_secret


class CheckoutService(BaseService):
    """
    Creates the PaymentIntent for an order's Payment.

    Error codes:
        ORDER_NOT_FOUND: No order, or no payment for it (404)
        FORBIDDEN: Caller is not the buyer (403)
        ORDER_NOT_PENDING: Order confirmed or cancelled (409)
        PAYMENT_ALREADY_SUCCEEDED: Payment captured already (409)

    A FAILED payment can be retried; the existing PaymentIntent is returned.

    Stripe failures raise payments.exceptions.StripeError.
    """

    IDEMPOTENCY_OPERATION = "checkout"

    def __init__(self, stripe_adapter=None):
        self.stripe = stripe_adapter or StripeAdapter

    def start_checkout(
        self, order_id: uuid.UUID, actor: User
    ) -> ServiceResult[CheckoutSession]:
        logger = self.get_logger()

        payment = Payment.objects.select_related("order").filter(order_id=order_id).first()
        if payment is None:
            return ServiceResult.not_found("Order not found", "ORDER_NOT_FOUND")

        order = payment.order
        if actor.id != order.buyer_id:
            return ServiceResult.forbidden()
        if order.status != OrderStatus.PENDING:
            return ServiceResult.conflict(
                f"Order is {order.status} and cannot be paid", "ORDER_NOT_PENDING"
            )
        if payment.status == PaymentStatus.SUCCEEDED:
            return ServiceResult.conflict("Order is already paid", "PAYMENT_ALREADY_SUCCEEDED")

        if payment.stripe_payment_intent_id:
            intent = self.stripe.retrieve_payment_intent(payment.stripe_payment_intent_id)
            logger.info(
                "Reusing existing payment intent",
                extra={"order_id": str(order_id), "payment_intent_id": intent.id},
            )
            return ServiceResult.success(CheckoutSession(payment, intent))

        intent = self.stripe.create_payment_intent(
            amount_cents=payment.amount_cents,
            idempotency_key=IdempotencyKeyGenerator.generate(
                self.IDEMPOTENCY_OPERATION, payment.id
            ),
            currency=payment.currency.lower(),
            metadata={
                "order_id": str(order_id),
                "payment_id": str(payment.id),
                "escrow_amount": str(payment.escrow_amount),
            },
            transfer_group=str(order_id),
        )

        # Concurrent checkouts share the idempotency key, and so the intent
        Payment.objects.filter(
            pk=payment.pk, stripe_payment_intent_id__isnull=True
        ).update(stripe_payment_intent_id=intent.id)
        payment.refresh_from_db()

        AuditService.record(
            entity="payment",
            entity_id=payment.id,
            action="CHECKOUT_STARTED",
            actor=actor,
            metadata={"order_id": str(order_id), "payment_intent_id": intent.id},
        )
        logger.info(
            "Checkout started",
            extra={
                "order_id": str(order_id),
                "payment_id": str(payment.id),
                "payment_intent_id": intent.id,
                "amount_cents": payment.amount_cents,
            },
        )
        return ServiceResult.success(CheckoutSession(payment, intent))
