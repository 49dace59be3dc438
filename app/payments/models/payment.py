"""
Payment model.

One Payment per Order, created in the same transaction as the Order when
an offer is accepted. The breakdown amounts are stored as computed by
marketplace.financial.calculate_financial_breakdown and never recomputed
for an existing order.
"""

from __future__ import annotations

from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from payments.state_machines import PaymentStatus


class Payment(UUIDPrimaryKeyMixin, BaseModel):
    """
    The buyer's payment for an order.

    Fields:
        order: Order this payment belongs to (one-to-one)
        amount: Order total charged to the buyer
        currency: ISO 4217 currency code
        status: PENDING / SUCCEEDED / FAILED
        application_fee_amount: Platform fee portion of amount
        tax_amount: Tax portion of amount
        escrow_amount: Portion held for release to the seller
        stripe_payment_intent_id: Stripe PaymentIntent (pi_xxx), set at checkout
        paid_at: When Stripe confirmed the charge
    """

    order = models.OneToOneField(
        "marketplace.Order",
        on_delete=models.PROTECT,
        related_name="payment",
    )
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default="USD")
    status = models.CharField(
        max_length=16,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
        db_index=True,
    )
    application_fee_amount = models.DecimalField(max_digits=12, decimal_places=2)
    tax_amount = models.DecimalField(max_digits=12, decimal_places=2)
    escrow_amount = models.DecimalField(max_digits=12, decimal_places=2)
    stripe_payment_intent_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        unique=True,
        help_text="Stripe PaymentIntent ID (pi_xxx)",
    )
    paid_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Payment({self.id}, {self.status}, {self.amount} {self.currency})"

    @property
    def amount_cents(self) -> int:
        return int((self.amount * 100).to_integral_value())

