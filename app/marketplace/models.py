"""
Marketplace models.

This module defines the data models for buying and selling listings:
- Listings moderated before they go live
- Offers negotiated between buyer and seller
- Orders created from accepted offers, with a shipment timeline
- Reviews left after an order, with moderator decisions

Models:
    Address: Postal address owned by a user
    Listing: An item for sale
    Offer: A proposed price for a listing (state machine)
    Order: Created when an offer is accepted
    OrderTimelineEvent: Ordered history of an order
    Review: Feedback left by an order participant
    ReviewModerationDecision: One moderator decision on a review

Design Decisions:
    - Offer.status is a protected FSMField; changes go through transitions
    - Only one OPEN offer per (listing, buyer), enforced by a conditional
      unique constraint
    - shipment_status never leaves DELIVERED once reached (checked in
      OrderService)
    - Payment and Payout live in the payments app and point back here
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Q
from django.utils import timezone

from django_fsm import FSMField, transition

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

if TYPE_CHECKING:
    from authentication.models import User


# =============================================================================
# Choices
# =============================================================================


class ListingStatus(models.TextChoices):
    """
    Listing visibility.

    PENDING_REVIEW listings wait for a moderator; only ACTIVE listings
    accept offers.
    """

    DRAFT = "draft", "Draft"
    PENDING_REVIEW = "pending_review", "Pending Review"
    ACTIVE = "active", "Active"
    REJECTED = "rejected", "Rejected"
    ARCHIVED = "archived", "Archived"


class OfferStatus(models.TextChoices):
    """
    Offer negotiation states.

    OPEN and COUNTERED are live; everything else is terminal.
    """

    OPEN = "open", "Open"
    ACCEPTED = "accepted", "Accepted"
    COUNTERED = "countered", "Countered"
    EXPIRED = "expired", "Expired"
    REJECTED = "rejected", "Rejected"


LIVE_OFFER_STATUSES = [OfferStatus.OPEN, OfferStatus.COUNTERED]


class OrderStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    CONFIRMED = "confirmed", "Confirmed"
    FULFILLED = "fulfilled", "Fulfilled"
    CANCELLED = "cancelled", "Cancelled"


class ShipmentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PREPARING = "preparing", "Preparing"
    SHIPPED = "shipped", "Shipped"
    IN_TRANSIT = "in_transit", "In Transit"
    DELIVERED = "delivered", "Delivered"
    RETURNED = "returned", "Returned"
    LOST = "lost", "Lost"


class TimelineEventType(models.TextChoices):
    CREATED = "created", "Created"
    PAYMENT_CONFIRMED = "payment_confirmed", "Payment Confirmed"
    NOTE = "note", "Note"
    SHIPPED = "shipped", "Shipped"
    DELIVERED = "delivered", "Delivered"
    PAYOUT_RELEASED = "payout_released", "Payout Released"
    REVIEW_REMINDER = "review_reminder", "Review Reminder"


class ReviewStatus(models.TextChoices):
    """
    Review moderation states.

    PENDING: Waiting for a moderator
    UNDER_REVIEW: Flagged for a closer look (e.g. very short text)
    APPROVED / REJECTED: Moderator decision
    BLOCKED: Contains a blocked term, never published
    """

    PENDING = "pending", "Pending"
    UNDER_REVIEW = "under_review", "Under Review"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"
    BLOCKED = "blocked", "Blocked"


# =============================================================================
# Listings
# =============================================================================


class Address(UUIDPrimaryKeyMixin, BaseModel):
    """Postal address referenced by orders for shipping and billing."""

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="addresses",
    )
    line1 = models.CharField(max_length=255)
    line2 = models.CharField(max_length=255, blank=True)
    city = models.CharField(max_length=100)
    region = models.CharField(max_length=100, blank=True)
    postal_code = models.CharField(max_length=20)
    country = models.CharField(max_length=2, help_text="ISO 3166-1 alpha-2")

    def __str__(self) -> str:
        return f"{self.line1}, {self.city} {self.postal_code}"


class Listing(UUIDPrimaryKeyMixin, BaseModel):
    """
    An item offered for sale by a seller.

    Fields:
        seller: Owner of the listing
        title: Short description shown in search results
        description: Long-form description
        price: Asking price
        currency: ISO 4217 currency code
        status: Visibility (see ListingStatus)
        moderated_at: When a moderator last approved or rejected it
    """

    seller = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="listings",
    )
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    price = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default="USD")
    status = models.CharField(
        max_length=20,
        choices=ListingStatus.choices,
        default=ListingStatus.PENDING_REVIEW,
        db_index=True,
    )
    moderated_at = models.DateTimeField(null=True, blank=True)

    def __str__(self) -> str:
        return self.title

    @property
    def is_active(self) -> bool:
        return self.status == ListingStatus.ACTIVE


# =============================================================================
# Offers
# =============================================================================


class Offer(UUIDPrimaryKeyMixin, BaseModel):
    """
    A buyer's proposed price for a listing.

    State Flow:
        OPEN -> ACCEPTED | COUNTERED | EXPIRED | REJECTED
        COUNTERED -> ACCEPTED | COUNTERED | EXPIRED | REJECTED

    Turn taking:
        The seller responds to an OPEN offer. Once countered, the party
        who did not make the last counter responds.

    Fields:
        listing: Listing the offer is for
        buyer: User making the offer
        amount: The buyer's original amount
        counter_amount: Latest counter proposal, if any
        last_countered_by: Who made the latest counter
        message: Optional note from the buyer
        status: Current FSM state
        expires_at: Deadline after which the offer can no longer be accepted
        responded_at: When the offer last left OPEN or COUNTERED
    """

    listing = models.ForeignKey(
        Listing,
        on_delete=models.PROTECT,
        related_name="offers",
    )
    buyer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="offers",
    )
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    counter_amount = models.DecimalField(
        max_digits=12, decimal_places=2, null=True, blank=True
    )
    last_countered_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    message = models.TextField(blank=True)

    status = FSMField(
        default=OfferStatus.OPEN,
        choices=OfferStatus.choices,
        db_index=True,
        protected=True,
        help_text="Current state of the offer (managed by FSM)",
    )

    expires_at = models.DateTimeField(null=True, blank=True, db_index=True)
    responded_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["listing", "buyer"],
                condition=Q(status=OfferStatus.OPEN),
                name="unique_open_offer_per_listing_buyer",
            ),
        ]

    def __str__(self) -> str:
        return f"Offer({self.id}, {self.status}, {self.amount})"

    @property
    def agreed_amount(self):
        """Latest proposed price: the counter if there is one, else the offer."""
        return self.counter_amount if self.counter_amount is not None else self.amount

    def is_expired(self, now=None) -> bool:
        if self.expires_at is None:
            return False
        return (now or timezone.now()) >= self.expires_at

    def responding_party_id(self):
        """Id of the user whose turn it is to respond."""
        seller_id = self.listing.seller_id
        if self.status == OfferStatus.COUNTERED and self.last_countered_by_id == seller_id:
            return self.buyer_id
        return seller_id

    def is_participant(self, user: User) -> bool:
        return user.id in (self.buyer_id, self.listing.seller_id)

    # =========================================================================
    # State Transitions
    # =========================================================================

    @transition(field=status, source=LIVE_OFFER_STATUSES, target=OfferStatus.ACCEPTED)
    def accept(self):
        self.responded_at = timezone.now()

    @transition(field=status, source=LIVE_OFFER_STATUSES, target=OfferStatus.COUNTERED)
    def counter(self, amount, countered_by: User, expires_at=None):
        """
        Transition: OPEN/COUNTERED -> COUNTERED

        A counter replaces the terms, so an omitted expires_at clears the
        previous deadline.
        """
        self.counter_amount = amount
        self.last_countered_by = countered_by
        self.expires_at = expires_at

    @transition(field=status, source=LIVE_OFFER_STATUSES, target=OfferStatus.EXPIRED)
    def expire(self):
        self.responded_at = timezone.now()

    @transition(field=status, source=LIVE_OFFER_STATUSES, target=OfferStatus.REJECTED)
    def reject(self):
        self.responded_at = timezone.now()


# =============================================================================
# Orders
# =============================================================================


class Order(UUIDPrimaryKeyMixin, BaseModel):
    """
    An order created from an accepted offer.

    Fields:
        offer: The accepted offer this order came from
        listing / buyer / seller: Copied from the offer for querying
        total_amount: Agreed price
        currency: ISO 4217 currency code
        status: Order status (see OrderStatus)
        shipment_status: Delivery progress; never regresses from DELIVERED
        tracking_number: Carrier tracking number, if shipped
        shipping_address / billing_address: Buyer addresses
        review_reminder_scheduled_at: Set once when the review reminder is
            scheduled
    """

    offer = models.OneToOneField(
        Offer,
        on_delete=models.PROTECT,
        related_name="order",
    )
    listing = models.ForeignKey(
        Listing,
        on_delete=models.PROTECT,
        related_name="orders",
    )
    buyer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="purchases",
    )
    seller = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="sales",
    )
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default="USD")
    status = models.CharField(
        max_length=16,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
        db_index=True,
    )
    shipment_status = models.CharField(
        max_length=16,
        choices=ShipmentStatus.choices,
        default=ShipmentStatus.PENDING,
    )
    tracking_number = models.CharField(max_length=100, blank=True)
    shipping_address = models.ForeignKey(
        Address,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    billing_address = models.ForeignKey(
        Address,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    review_reminder_scheduled_at = models.DateTimeField(null=True, blank=True)

    def __str__(self) -> str:
        return f"Order({self.id}, {self.status}, {self.shipment_status})"

    def is_participant(self, user: User) -> bool:
        return user.id in (self.buyer_id, self.seller_id)

    def counterparty_id(self, user: User):
        return self.seller_id if user.id == self.buyer_id else self.buyer_id


class OrderTimelineEvent(UUIDPrimaryKeyMixin, models.Model):
    """One entry in an order's history. Ordered oldest first."""

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name="timeline",
    )
    type = models.CharField(max_length=32, choices=TimelineEventType.choices)
    detail = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ["created_at"]

    def __str__(self) -> str:
        return f"{self.type}: {self.detail}"


# =============================================================================
# Reviews
# =============================================================================


class Review(UUIDPrimaryKeyMixin, BaseModel):
    """
    Feedback from one order participant about the other.

    Constraints:
        - One review per (order, author)
    """

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name="reviews",
    )
    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="reviews_written",
    )
    target_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="reviews_received",
    )
    rating = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(5)]
    )
    body = models.TextField()
    status = models.CharField(
        max_length=16,
        choices=ReviewStatus.choices,
        default=ReviewStatus.PENDING,
        db_index=True,
    )
    moderation_notes = models.TextField(blank=True)
    moderated_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["order", "author"],
                name="unique_review_per_order_author",
            ),
            models.CheckConstraint(
                condition=Q(rating__gte=1, rating__lte=5),
                name="review_rating_between_1_and_5",
            ),
        ]

    def __str__(self) -> str:
        return f"Review({self.id}, {self.rating}/5, {self.status})"


class ReviewModerationDecision(UUIDPrimaryKeyMixin, BaseModel):
    """A moderator's decision on a review. Reviews may be decided more than once."""

    review = models.ForeignKey(
        Review,
        on_delete=models.CASCADE,
        related_name="decisions",
    )
    moderator = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name="review_decisions",
    )
    status = models.CharField(max_length=16, choices=ReviewStatus.choices)
    notes = models.TextField(blank=True)

    def __str__(self) -> str:
        return f"{self.review_id} -> {self.status}"
