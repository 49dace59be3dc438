"""
Payout service for releasing escrowed funds to sellers.

Money leaves the platform through a single operation,
PayoutService.release_payout_for_order, which is safe to call any number
of times for the same order:

1. An already RELEASED payout is reported as ALREADY_RELEASED and Stripe
   is never called. A payout whose order has no SUCCEEDED payment is
   never released.
2. The Stripe transfer is created with an idempotency key derived from the
   payout id, so a repeated call after a lost response returns the same
   transfer instead of moving money twice.
3. The release is recorded with a conditional UPDATE filtered on
   status=PENDING. When two callers race, only one update matches; the
   loser reports ALREADY_RELEASED and the stored transfer_id is untouched.

The Stripe call is made outside any database transaction.

Usage:
    from payments.services import PayoutService

    result = PayoutService().release_payout_for_order(order.id, actor=request.user)

    if result.success:
        print(result.data.outcome)  # PayoutReleaseOutcome.RELEASED
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from django_fsm import can_proceed

from audit.services import AuditService
from core.services import BaseService, ServiceResult
from marketplace.models import OrderTimelineEvent, TimelineEventType
from payments.adapters import IdempotencyKeyGenerator, StripeAdapter
from payments.models import Payment, Payout
from payments.state_machines import PaymentStatus

if TYPE_CHECKING:
    from authentication.models import User


class PayoutReleaseOutcome(str, Enum):
    RELEASED = "released"
    ALREADY_RELEASED = "already_released"


@dataclass
class PayoutReleaseResult:
    """
    Result of a release attempt.

    Attributes:
        payout: The Payout, refreshed from the database
        outcome: RELEASED if this call moved the money, else ALREADY_RELEASED
    """

    payout: Payout
    outcome: PayoutReleaseOutcome


class PayoutService(BaseService):
    """
    Releases order payouts through the Stripe adapter.

    Error Handling:
        - Missing payout: NOT_FOUND result
        - Buyer payment not SUCCEEDED: CONFLICT result, payout stays PENDING
        - Seller without a connected account: CONFLICT result, payout stays
          PENDING
        - Stripe failures: payments.exceptions.StripeError is raised so the
          caller can decide between queueing a retry (is_retryable) and
          surfacing the failure

    Args:
        stripe_adapter: Object exposing create_transfer(); defaults to
            payments.adapters.StripeAdapter
    """

    IDEMPOTENCY_OPERATION = "payout_release"

    def __init__(self, stripe_adapter=None):
        self.stripe = stripe_adapter or StripeAdapter

    def release_payout_for_order(
        self,
        order_id: uuid.UUID,
        actor: User | None = None,
    ) -> ServiceResult[PayoutReleaseResult]:
        logger = self.get_logger()

        payout = (
            Payout.objects.select_related("seller", "order")
            .filter(order_id=order_id)
            .first()
        )
        if payout is None:
            return ServiceResult.not_found(
                f"No payout for order {order_id}", "PAYOUT_NOT_FOUND"
            )

        if not can_proceed(payout.release):
            logger.info(
                "Payout already released, skipping transfer",
                extra={"order_id": str(order_id), "payout_id": str(payout.id)},
            )
            return ServiceResult.success(
                PayoutReleaseResult(payout, PayoutReleaseOutcome.ALREADY_RELEASED)
            )

        payment_status = (
            Payment.objects.filter(order_id=order_id).values_list("status", flat=True).first()
        )
        if payment_status != PaymentStatus.SUCCEEDED:
            logger.warning(
                "Buyer payment not captured, payout left pending",
                extra={"order_id": str(order_id), "payment_status": payment_status},
            )
            return ServiceResult.conflict(
                "Buyer payment has not been captured", "PAYMENT_NOT_CAPTURED"
            )

        destination = payout.seller.stripe_connect_id
        if not destination:
            logger.warning(
                "Seller has no connected account, payout left pending",
                extra={"order_id": str(order_id), "seller_id": str(payout.seller_id)},
            )
            return ServiceResult.conflict(
                "Seller has not completed payout onboarding", "SELLER_NOT_ONBOARDED"
            )

        idempotency_key = IdempotencyKeyGenerator.generate(
            self.IDEMPOTENCY_OPERATION, payout.id
        )

        # Raises StripeError; nothing has been written yet
        transfer = self.stripe.create_transfer(
            amount_cents=payout.amount_cents,
            destination_account=destination,
            idempotency_key=idempotency_key,
            currency=payout.currency.lower(),
            metadata={"order_id": str(order_id), "payout_id": str(payout.id)},
        )

        with self.atomic():
            won = Payout.objects.mark_released(payout.pk, transfer.id)
            if won:
                OrderTimelineEvent.objects.create(
                    order_id=order_id,
                    type=TimelineEventType.PAYOUT_RELEASED,
                    detail=f"Payout {payout.amount} {payout.currency} released",
                )

        payout = Payout.objects.get(pk=payout.pk)

        if not won:
            logger.info(
                "Concurrent release detected, keeping stored transfer",
                extra={
                    "order_id": str(order_id),
                    "payout_id": str(payout.id),
                    "transfer_id": payout.transfer_id,
                },
            )
            return ServiceResult.success(
                PayoutReleaseResult(payout, PayoutReleaseOutcome.ALREADY_RELEASED)
            )

        AuditService.record(
            entity="payout",
            entity_id=payout.id,
            action="PAYOUT_RELEASED",
            actor=actor,
            metadata={
                "order_id": str(order_id),
                "transfer_id": transfer.id,
                "amount": str(payout.amount),
                "currency": payout.currency,
            },
        )

        logger.info(
            "Payout released",
            extra={
                "order_id": str(order_id),
                "payout_id": str(payout.id),
                "transfer_id": transfer.id,
            },
        )
        return ServiceResult.success(
            PayoutReleaseResult(payout, PayoutReleaseOutcome.RELEASED)
        )
