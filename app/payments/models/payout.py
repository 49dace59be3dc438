"""
Payout model for releasing escrowed funds to the seller.

A Payout is created PENDING together with its Order and released once
the shipment is delivered. Release is recorded with a status-guarded
conditional update (see PayoutQuerySet.mark_released) so concurrent
release attempts cannot both succeed.

Usage:
    from payments.models import Payout

    if can_proceed(payout.release):
        transfer = StripeAdapter.create_transfer(...)
        won = Payout.objects.mark_released(payout.pk, transfer.id)
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from payments.state_machines import PayoutStatus


class PayoutQuerySet(models.QuerySet):
    def mark_released(self, pk, transfer_id: str, released_at=None) -> bool:
        """
        Move a PENDING payout to RELEASED in a single conditional UPDATE.

        Returns:
            True if this call performed the release, False if the payout
            was no longer PENDING
        """
        released_at = released_at or timezone.now()
        updated = self.filter(pk=pk, status=PayoutStatus.PENDING).update(
            status=PayoutStatus.RELEASED,
            transfer_id=transfer_id,
            released_at=released_at,
            updated_at=released_at,
        )
        return updated == 1


class Payout(UUIDPrimaryKeyMixin, BaseModel):
    """
    Escrowed funds owed to the seller of an order.

    State Flow:
        PENDING -> RELEASED

    Fields:
        order: Order this payout belongs to (one-to-one)
        seller: Recipient; their stripe_connect_id is the transfer destination
        amount: Escrow amount from the order's financial breakdown
        currency: ISO 4217 currency code
        status: Current FSM state
        transfer_id: Stripe Transfer ID (tr_xxx), set only on release
        released_at: When the release was recorded
    """

    order = models.OneToOneField(
        "marketplace.Order",
        on_delete=models.PROTECT,
        related_name="payout",
    )
    seller = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="payouts",
    )
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default="USD")

    status = FSMField(
        default=PayoutStatus.PENDING,
        choices=PayoutStatus.choices,
        db_index=True,
        protected=True,
        help_text="Current state of the payout (managed by FSM)",
    )

    transfer_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        unique=True,
        help_text="Stripe Transfer ID (tr_xxx)",
    )
    released_at = models.DateTimeField(null=True, blank=True)

    objects = PayoutQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(status=PayoutStatus.RELEASED, transfer_id__isnull=False)
                    | models.Q(status=PayoutStatus.PENDING, transfer_id__isnull=True)
                ),
                name="payout_transfer_id_iff_released",
            ),
        ]

    def __str__(self) -> str:
        return f"Payout({self.id}, {self.status}, {self.amount} {self.currency})"

    @property
    def amount_cents(self) -> int:
        """Amount in the smallest currency unit, as Stripe expects."""
        return int((self.amount * 100).to_integral_value())

    @transition(
        field=status,
        source=PayoutStatus.PENDING,
        target=PayoutStatus.RELEASED,
    )
    def release(self, transfer_id: str):
        """
        Transition: PENDING -> RELEASED

        Used as the guard for a release (can_proceed) and for in-memory
        updates; persistence goes through PayoutQuerySet.mark_released.
        """
        self.transfer_id = transfer_id
        self.released_at = timezone.now()
