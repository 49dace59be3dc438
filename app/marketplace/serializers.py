"""
Serializers for marketplace endpoints.

Request serializers validate shape only; business rules (turn taking,
state, deadlines) are checked in marketplace.services.

Related files:
    - views.py: Views that use these serializers
    - services.py: OfferService, OrderService, ReviewService,
      ListingModerationService
"""

from decimal import Decimal

from rest_framework import serializers

from marketplace.models import (
    Listing,
    Offer,
    Order,
    OrderTimelineEvent,
    Review,
    ReviewStatus,
    ShipmentStatus,
)
from payments.serializers import PaymentSerializer, PayoutSerializer

MIN_AMOUNT = Decimal("0.01")


# =============================================================================
# Offers
# =============================================================================


class OfferSerializer(serializers.ModelSerializer):
    class Meta:
        model = Offer
        fields = [
            "id",
            "listing",
            "buyer",
            "amount",
            "counter_amount",
            "last_countered_by",
            "message",
            "status",
            "expires_at",
            "responded_at",
            "created_at",
        ]
        read_only_fields = fields


class OfferCreateSerializer(serializers.Serializer):
    listing_id = serializers.UUIDField()
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=MIN_AMOUNT)
    message = serializers.CharField(max_length=2000, required=False, allow_blank=True, default="")
    expires_at = serializers.DateTimeField(required=False, allow_null=True, default=None)


class OfferCounterSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=MIN_AMOUNT)
    expires_at = serializers.DateTimeField(required=False, allow_null=True, default=None)


class OfferAcceptSerializer(serializers.Serializer):
    shipping_address_id = serializers.UUIDField(required=False, allow_null=True, default=None)
    billing_address_id = serializers.UUIDField(required=False, allow_null=True, default=None)


# =============================================================================
# Orders
# =============================================================================


class OrderTimelineEventSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderTimelineEvent
        fields = ["type", "detail", "created_at"]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Order with its timeline, payment breakdown and payout."""

    timeline = OrderTimelineEventSerializer(many=True, read_only=True)
    payment = PaymentSerializer(read_only=True)
    payout = PayoutSerializer(read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "offer",
            "listing",
            "buyer",
            "seller",
            "total_amount",
            "currency",
            "status",
            "shipment_status",
            "tracking_number",
            "shipping_address",
            "billing_address",
            "review_reminder_scheduled_at",
            "timeline",
            "payment",
            "payout",
            "created_at",
        ]
        read_only_fields = fields


class ShipmentStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=ShipmentStatus.choices)
    tracking_number = serializers.CharField(max_length=100, required=False, allow_blank=True)


class ShipmentUpdateResponseSerializer(serializers.Serializer):
    status = serializers.CharField(source="order.shipment_status")
    order_status = serializers.CharField(source="order.status")
    tracking_number = serializers.CharField(source="order.tracking_number")
    payout = serializers.CharField(allow_null=True)


# =============================================================================
# Reviews
# =============================================================================


class ReviewSerializer(serializers.ModelSerializer):
    class Meta:
        model = Review
        fields = [
            "id",
            "order",
            "author",
            "target_user",
            "rating",
            "body",
            "status",
            "moderation_notes",
            "moderated_at",
            "created_at",
        ]
        read_only_fields = fields


class ReviewCreateSerializer(serializers.Serializer):
    order_id = serializers.UUIDField()
    target_user_id = serializers.UUIDField(required=False, allow_null=True, default=None)
    rating = serializers.IntegerField(min_value=1, max_value=5)
    body = serializers.CharField(min_length=10, max_length=2000)


class ReviewDecisionSerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=[
            (ReviewStatus.APPROVED, ReviewStatus.APPROVED.label),
            (ReviewStatus.REJECTED, ReviewStatus.REJECTED.label),
        ]
    )
    reason = serializers.CharField(max_length=2000, required=False, allow_blank=True, default="")


# =============================================================================
# Listings
# =============================================================================


class ListingSerializer(serializers.ModelSerializer):
    class Meta:
        model = Listing
        fields = [
            "id",
            "seller",
            "title",
            "price",
            "currency",
            "status",
            "moderated_at",
        ]
        read_only_fields = fields


class ListingModerationSerializer(serializers.Serializer):
    decision = serializers.ChoiceField(choices=["approve", "reject"])
    rationale = serializers.CharField(min_length=12, max_length=2000)
