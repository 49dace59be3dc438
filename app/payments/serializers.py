"""
DRF serializers for payments app.

Related files:
    - models/: Payment, Payout
    - services/: CheckoutSession, OnboardingLink
    - views.py: Payment API views
"""

from __future__ import annotations

from rest_framework import serializers

from payments.models import Payment, Payout


class PaymentSerializer(serializers.ModelSerializer):
    """Buyer payment with its financial breakdown."""

    class Meta:
        model = Payment
        fields = [
            "id",
            "amount",
            "currency",
            "status",
            "application_fee_amount",
            "tax_amount",
            "escrow_amount",
            "paid_at",
            "created_at",
        ]
        read_only_fields = fields


class PayoutSerializer(serializers.ModelSerializer):
    class Meta:
        model = Payout
        fields = [
            "id",
            "order",
            "seller",
            "amount",
            "currency",
            "status",
            "transfer_id",
            "released_at",
        ]
        read_only_fields = fields


class PayoutReleaseSerializer(serializers.Serializer):
    """Response body for a release request."""

    outcome = serializers.CharField(source="outcome.value")
    payout = PayoutSerializer()


class CheckoutSessionSerializer(serializers.Serializer):
    """Response body for checkout: what the buyer's browser needs to pay."""

    payment_id = serializers.UUIDField(source="payment.id")
    payment_intent_id = serializers.CharField(source="intent.id")
    client_secret = serializers.CharField()
    amount = serializers.DecimalField(
        source="payment.amount", max_digits=12, decimal_places=2
    )
    currency = serializers.CharField(source="payment.currency")


class OnboardingLinkSerializer(serializers.Serializer):
    account_id = serializers.CharField()
    url = serializers.URLField()
