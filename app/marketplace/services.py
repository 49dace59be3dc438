"""
Marketplace service layer.

This module holds the business rules for offer negotiation, order
fulfilment, reviews and listing moderation.

Services:
    OfferService: Create, accept, counter, reject and expire offers
    OrderService: Order lookup and shipment status updates (payout release
        on delivery)
    ReviewService: Review submission and moderation decisions
    ListingModerationService: Approve or reject listings

Design Principles:
    - Collaborators (task scheduler, payout service) are passed to __init__
    - Expected failures return ServiceResult with a kind (invalid input,
      forbidden, not found, conflict)
    - Rows being transitioned are locked with select_for_update
    - Follow-up tasks are scheduled with transaction.on_commit so a rolled
      back transition never leaves a scheduled task behind

Usage:
    from marketplace.services import OfferService, OrderService

    result = OfferService().accept_offer(offer_id, actor=request.user)
    if result.success:
        order = result.data

    OrderService().update_shipment_status(order.id, request.user, "delivered")
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone
from django_fsm import can_proceed

from audit.services import AuditService
from core.services import BaseService, ServiceResult
from marketplace.financial import BreakdownConfig, calculate_financial_breakdown
from marketplace.models import (
    LIVE_OFFER_STATUSES,
    Address,
    Listing,
    ListingStatus,
    Offer,
    OfferStatus,
    Order,
    OrderStatus,
    OrderTimelineEvent,
    Review,
    ReviewModerationDecision,
    ReviewStatus,
    ShipmentStatus,
    TimelineEventType,
)
from marketplace.scheduling import CeleryTaskScheduler, TaskScheduler
from payments.adapters import backoff_delay
from payments.exceptions import StripeError
from payments.models import Payment, Payout
from payments.services import PayoutService

if TYPE_CHECKING:
    import uuid
    from collections.abc import Iterable

    from authentication.models import User

logger = logging.getLogger(__name__)


# =============================================================================
# Offers
# =============================================================================


class OfferService(BaseService):
    """
    Offer negotiation.

    Methods:
        create_offer: Buyer proposes a price on an active listing
        accept_offer: Responding party accepts; creates Order, Payment, Payout
        counter_offer: Responding party proposes a new amount
        reject_offer: Responding party declines
        expire_offer: Expire a live offer whose deadline has passed
        expire_overdue_offers: Sweep for overdue offers

    Error codes:
        LISTING_NOT_FOUND, OFFER_NOT_FOUND: Missing rows (404)
        OWN_LISTING, INVALID_AMOUNT, EXPIRY_IN_PAST, ADDRESS_NOT_FOUND: (400)
        LISTING_NOT_ACTIVE, OPEN_OFFER_EXISTS, OFFER_NOT_OPEN,
        OFFER_EXPIRED, OFFER_NOT_EXPIRED: State conflicts (409)
    """

    def __init__(
        self,
        scheduler: TaskScheduler | None = None,
        breakdown_config: BreakdownConfig | None = None,
    ):
        self.scheduler = scheduler or CeleryTaskScheduler()
        self.breakdown_config = breakdown_config

    # -------------------------------------------------------------------------
    # Create
    # -------------------------------------------------------------------------

    def create_offer(
        self,
        buyer: User,
        listing_id: uuid.UUID,
        amount: Decimal,
        message: str = "",
        expires_at: datetime.datetime | None = None,
    ) -> ServiceResult[Offer]:
        listing = Listing.objects.filter(pk=listing_id).first()
        if listing is None:
            return ServiceResult.not_found("Listing not found", "LISTING_NOT_FOUND")

        if listing.seller_id == buyer.id:
            return ServiceResult.failure(
                "You cannot make an offer on your own listing", "OWN_LISTING"
            )
        if not listing.is_active:
            return ServiceResult.conflict(
                "Listing is not accepting offers", "LISTING_NOT_ACTIVE"
            )

        invalid = self._validate_terms(amount, expires_at)
        if invalid is not None:
            return invalid

        if Offer.objects.filter(
            listing=listing, buyer=buyer, status=OfferStatus.OPEN
        ).exists():
            return ServiceResult.conflict(
                "You already have an open offer on this listing", "OPEN_OFFER_EXISTS"
            )

        try:
            with self.atomic():
                offer = Offer.objects.create(
                    listing=listing,
                    buyer=buyer,
                    amount=amount,
                    message=message,
                    expires_at=expires_at,
                )
                if expires_at is not None:
                    self._schedule_expiry_on_commit(offer)
        except IntegrityError:
            # Lost a race against a concurrent create for the same pair
            return ServiceResult.conflict(
                "You already have an open offer on this listing", "OPEN_OFFER_EXISTS"
            )

        self.get_logger().info(
            "Offer created",
            extra={
                "offer_id": str(offer.id),
                "listing_id": str(listing.id),
                "buyer_id": str(buyer.id),
            },
        )
        return ServiceResult.success(offer)

    # -------------------------------------------------------------------------
    # Accept
    # -------------------------------------------------------------------------

    def accept_offer(
        self,
        offer_id: uuid.UUID,
        actor: User,
        shipping_address_id: uuid.UUID | None = None,
        billing_address_id: uuid.UUID | None = None,
    ) -> ServiceResult[Order]:
        """
        Accept a live offer and create its order.

        Implementation:
            1. Lock the offer row
            2. Check turn, state, deadline and that the listing is still ACTIVE
            3. Offer -> ACCEPTED, listing -> ARCHIVED
            4. Create Order (+ CREATED timeline event), Payment with the
               financial breakdown and a PENDING Payout for the escrow
            5. Schedule the review reminder after commit

        Returns:
            ServiceResult with the new Order
        """
        with self.atomic():
            offer = self._get_locked_offer(offer_id)
            if offer is None:
                return ServiceResult.not_found("Offer not found", "OFFER_NOT_FOUND")

            if actor.id != offer.responding_party_id():
                return ServiceResult.forbidden()

            if not can_proceed(offer.accept):
                return ServiceResult.conflict(
                    f"Offer is {offer.status} and can no longer be accepted",
                    "OFFER_NOT_OPEN",
                )
            if offer.is_expired():
                return ServiceResult.conflict("Offer has expired", "OFFER_EXPIRED")

            listing = Listing.objects.select_for_update().get(pk=offer.listing_id)
            if not listing.is_active:
                return ServiceResult.conflict(
                    "Listing is no longer accepting offers", "LISTING_NOT_ACTIVE"
                )

            shipping_address = billing_address = None
            if shipping_address_id is not None:
                shipping_address = self._buyer_address(offer, shipping_address_id)
                if shipping_address is None:
                    return ServiceResult.failure(
                        "Shipping address not found", "ADDRESS_NOT_FOUND"
                    )
            if billing_address_id is not None:
                billing_address = self._buyer_address(offer, billing_address_id)
                if billing_address is None:
                    return ServiceResult.failure(
                        "Billing address not found", "ADDRESS_NOT_FOUND"
                    )

            offer.accept()
            offer.save()

            # One order per item
            listing.status = ListingStatus.ARCHIVED
            listing.save(update_fields=["status", "updated_at"])

            total = offer.agreed_amount
            breakdown = calculate_financial_breakdown(
                total, self.breakdown_config or BreakdownConfig.from_settings()
            )

            order = Order.objects.create(
                offer=offer,
                listing=listing,
                buyer_id=offer.buyer_id,
                seller_id=listing.seller_id,
                total_amount=total,
                currency=listing.currency,
                shipping_address=shipping_address,
                billing_address=billing_address,
            )
            OrderTimelineEvent.objects.create(
                order=order,
                type=TimelineEventType.CREATED,
                detail=f"Order created from offer {offer.id}",
            )
            Payment.objects.create(
                order=order,
                amount=total,
                currency=order.currency,
                application_fee_amount=breakdown.application_fee_amount,
                tax_amount=breakdown.tax_amount,
                escrow_amount=breakdown.escrow_amount,
            )
            Payout.objects.create(
                order=order,
                seller_id=listing.seller_id,
                amount=breakdown.escrow_amount,
                currency=order.currency,
            )

            self._schedule_review_reminder_once(order)

            AuditService.record(
                entity="offer",
                entity_id=offer.id,
                action="OFFER_ACCEPTED",
                actor=actor,
                metadata={"order_id": str(order.id), "total": str(total)},
            )

        self.get_logger().info(
            "Offer accepted",
            extra={
                "offer_id": str(offer.id),
                "order_id": str(order.id),
                "total": str(total),
                "escrow": str(breakdown.escrow_amount),
            },
        )
        return ServiceResult.success(order)

    # -------------------------------------------------------------------------
    # Counter / reject
    # -------------------------------------------------------------------------

    def counter_offer(
        self,
        offer_id: uuid.UUID,
        actor: User,
        amount: Decimal,
        expires_at: datetime.datetime | None = None,
    ) -> ServiceResult[Offer]:
        """
        Propose a new amount on a live offer.

        One expiry check is scheduled when expires_at is given, none
        otherwise. A check left over from earlier terms is harmless: it
        finds the offer not yet expired (or no longer live) and does nothing.
        """
        invalid = self._validate_terms(amount, expires_at)
        if invalid is not None:
            return invalid

        with self.atomic():
            offer = self._get_locked_offer(offer_id)
            if offer is None:
                return ServiceResult.not_found("Offer not found", "OFFER_NOT_FOUND")

            if actor.id != offer.responding_party_id():
                return ServiceResult.forbidden()

            if not can_proceed(offer.counter):
                return ServiceResult.conflict(
                    f"Offer is {offer.status} and can no longer be countered",
                    "OFFER_NOT_OPEN",
                )
            if offer.is_expired():
                return ServiceResult.conflict("Offer has expired", "OFFER_EXPIRED")

            offer.counter(amount, countered_by=actor, expires_at=expires_at)
            offer.save()

            if expires_at is not None:
                self._schedule_expiry_on_commit(offer)

        self.get_logger().info(
            "Offer countered",
            extra={
                "offer_id": str(offer.id),
                "countered_by": str(actor.id),
                "counter_amount": str(amount),
            },
        )
        return ServiceResult.success(offer)

    def reject_offer(self, offer_id: uuid.UUID, actor: User) -> ServiceResult[Offer]:
        with self.atomic():
            offer = self._get_locked_offer(offer_id)
            if offer is None:
                return ServiceResult.not_found("Offer not found", "OFFER_NOT_FOUND")

            if actor.id != offer.responding_party_id():
                return ServiceResult.forbidden()

            if not can_proceed(offer.reject):
                return ServiceResult.conflict(
                    f"Offer is {offer.status} and can no longer be rejected",
                    "OFFER_NOT_OPEN",
                )

            offer.reject()
            offer.save()

        return ServiceResult.success(offer)

    # -------------------------------------------------------------------------
    # Expire
    # -------------------------------------------------------------------------

    def expire_offer(
        self,
        offer_id: uuid.UUID,
        actor: User | None = None,
        now: datetime.datetime | None = None,
    ) -> ServiceResult[Offer]:
        """
        Expire a live offer whose deadline has passed.

        Idempotent: an offer that is already EXPIRED (or otherwise no
        longer live) is returned unchanged as a success.

        Args:
            offer_id: Offer to expire
            actor: Requesting user; None for system callers (tasks)
            now: Reference time, defaults to timezone.now()

        Returns:
            ServiceResult with the Offer. OFFER_NOT_EXPIRED conflict when
            the deadline has not been reached or the offer has none.
        """
        now = now or timezone.now()

        with self.atomic():
            offer = self._get_locked_offer(offer_id)
            if offer is None:
                return ServiceResult.not_found("Offer not found", "OFFER_NOT_FOUND")

            if actor is not None and not (offer.is_participant(actor) or actor.is_moderator):
                return ServiceResult.forbidden()

            if offer.status not in LIVE_OFFER_STATUSES:
                return ServiceResult.success(offer)

            if not offer.is_expired(now):
                return ServiceResult.conflict(
                    "Offer has not reached its expiry", "OFFER_NOT_EXPIRED"
                )

            offer.expire()
            offer.save()

        self.get_logger().info("Offer expired", extra={"offer_id": str(offer.id)})
        return ServiceResult.success(offer)

    def expire_overdue_offers(self, now: datetime.datetime | None = None) -> int:
        """Expire every live offer past its deadline. Returns how many expired."""
        now = now or timezone.now()
        overdue_ids = list(
            Offer.objects.filter(
                status__in=LIVE_OFFER_STATUSES,
                expires_at__lte=now,
            ).values_list("id", flat=True)
        )

        expired = 0
        for offer_id in overdue_ids:
            result = self.expire_offer(offer_id, now=now)
            if result.success and result.data.status == OfferStatus.EXPIRED:
                expired += 1
        return expired

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _get_locked_offer(offer_id) -> Offer | None:
        return (
            Offer.objects.select_for_update(of=("self",))
            .select_related("listing")
            .filter(pk=offer_id)
            .first()
        )

    @staticmethod
    def _validate_terms(amount, expires_at) -> ServiceResult | None:
        if amount is None or Decimal(amount) <= 0:
            return ServiceResult.failure(
                "Amount must be greater than zero", "INVALID_AMOUNT"
            )
        if expires_at is not None and expires_at <= timezone.now():
            return ServiceResult.failure(
                "Expiry must be in the future", "EXPIRY_IN_PAST"
            )
        return None

    @staticmethod
    def _buyer_address(offer: Offer, address_id) -> Address | None:
        return Address.objects.filter(pk=address_id, user_id=offer.buyer_id).first()

    def _schedule_expiry_on_commit(self, offer: Offer) -> None:
        offer_id, when = offer.id, offer.expires_at
        transaction.on_commit(lambda: self.scheduler.schedule_offer_expiry(offer_id, when))

    def _schedule_review_reminder_once(self, order: Order) -> None:
        """
        Schedule the buyer's review reminder unless one was already scheduled.

        review_reminder_scheduled_at is claimed with a conditional update,
        so only one caller ever schedules for a given order.
        """
        now = timezone.now()
        claimed = Order.objects.filter(
            pk=order.pk, review_reminder_scheduled_at__isnull=True
        ).update(review_reminder_scheduled_at=now)
        if not claimed:
            return

        order.review_reminder_scheduled_at = now
        when = now + datetime.timedelta(days=settings.REVIEW_REMINDER_DELAY_DAYS)
        order_id = order.id
        transaction.on_commit(lambda: self.scheduler.schedule_review_reminder(order_id, when))


# =============================================================================
# Orders
# =============================================================================


class PayoutStep:
    """Outcome labels for the payout release attempted on delivery."""

    RELEASED = "released"
    ALREADY_RELEASED = "already_released"
    RETRY_SCHEDULED = "retry_scheduled"
    PENDING = "pending"
    FAILED = "failed"


_TIMELINE_TYPE_BY_SHIPMENT_STATUS = {
    ShipmentStatus.SHIPPED: TimelineEventType.SHIPPED,
    ShipmentStatus.DELIVERED: TimelineEventType.DELIVERED,
}


@dataclass
class ShipmentUpdateResult:
    """
    Attributes:
        order: The updated Order
        payout: What happened to the payout (a PayoutStep value), or None
            when the order was not delivered
    """

    order: Order
    payout: str | None = None


class OrderService(BaseService):
    """
    Order lookup and shipment tracking.

    Delivery releases the seller's payout. The release runs after the
    shipment update has committed, so a Stripe failure never rolls back
    the shipment status: transient failures queue a retry, permanent ones
    leave the payout PENDING for an admin to release.
    """

    def __init__(
        self,
        payout_service: PayoutService | None = None,
        scheduler: TaskScheduler | None = None,
    ):
        self.payouts = payout_service or PayoutService()
        self.scheduler = scheduler or CeleryTaskScheduler()

    def get_order(self, order_id: uuid.UUID, actor: User) -> ServiceResult[Order]:
        order = (
            Order.objects.select_related("payment", "payout")
            .prefetch_related("timeline")
            .filter(pk=order_id)
            .first()
        )
        if order is None:
            return ServiceResult.not_found("Order not found", "ORDER_NOT_FOUND")
        if not (order.is_participant(actor) or actor.is_moderator):
            return ServiceResult.forbidden()
        return ServiceResult.success(order)

    def update_shipment_status(
        self,
        order_id: uuid.UUID,
        actor: User,
        status: str,
        tracking_number: str | None = None,
    ) -> ServiceResult[ShipmentUpdateResult]:
        """
        Set an order's shipment status.

        A timeline event is appended whenever the status or tracking number
        changes. Leaving DELIVERED is a conflict. Every DELIVERED update
        (including a repeated one) asks PayoutService for a release, which
        does nothing for a payout that is already released.

        Error codes:
            INVALID_SHIPMENT_STATUS: Unknown status (400)
            ORDER_NOT_FOUND: (404)
            SHIPMENT_ALREADY_DELIVERED: Regression from DELIVERED (409)
        """
        if status not in ShipmentStatus.values:
            return ServiceResult.failure(
                f"Unknown shipment status: {status}", "INVALID_SHIPMENT_STATUS"
            )

        with self.atomic():
            order = Order.objects.select_for_update().filter(pk=order_id).first()
            if order is None:
                return ServiceResult.not_found("Order not found", "ORDER_NOT_FOUND")

            if not (actor.id == order.seller_id or actor.is_admin):
                return ServiceResult.forbidden()

            if (
                order.shipment_status == ShipmentStatus.DELIVERED
                and status != ShipmentStatus.DELIVERED
            ):
                return ServiceResult.conflict(
                    "Shipment was already delivered", "SHIPMENT_ALREADY_DELIVERED"
                )

            status_changed = status != order.shipment_status
            tracking_changed = bool(tracking_number) and tracking_number != order.tracking_number

            if status_changed or tracking_changed:
                order.shipment_status = status
                if tracking_changed:
                    order.tracking_number = tracking_number
                if status == ShipmentStatus.DELIVERED:
                    order.status = OrderStatus.FULFILLED
                order.save()

                detail = f"Shipment marked as {status}"
                if tracking_changed:
                    detail = f"{detail} (tracking {tracking_number})"
                OrderTimelineEvent.objects.create(
                    order=order,
                    type=_TIMELINE_TYPE_BY_SHIPMENT_STATUS.get(status, TimelineEventType.NOTE),
                    detail=detail,
                )

        self.get_logger().info(
            "Shipment status updated",
            extra={
                "order_id": str(order.id),
                "shipment_status": status,
                "changed": status_changed,
            },
        )

        payout_step = None
        if status == ShipmentStatus.DELIVERED:
            payout_step = self._release_payout(order, actor)

        return ServiceResult.success(ShipmentUpdateResult(order=order, payout=payout_step))

    def _release_payout(self, order: Order, actor: User) -> str:
        logger = self.get_logger()
        try:
            result = self.payouts.release_payout_for_order(order.id, actor=actor)
        except StripeError as exc:
            if exc.is_retryable:
                logger.warning(
                    "Transient Stripe failure releasing payout, retry queued",
                    extra={"order_id": str(order.id), "error_code": exc.error_code},
                )
                self.scheduler.schedule_payout_retry(order.id, countdown=backoff_delay(0))
                return PayoutStep.RETRY_SCHEDULED
            logger.error(
                "Payout release failed, left pending for manual release",
                extra={"order_id": str(order.id), "error_code": exc.error_code},
                exc_info=True,
            )
            return PayoutStep.FAILED

        if not result.success:
            logger.warning(
                "Payout not released on delivery",
                extra={"order_id": str(order.id), "error_code": result.error_code},
            )
            return PayoutStep.PENDING

        return result.data.outcome.value


# =============================================================================
# Reviews
# =============================================================================


SHORT_REVIEW_LENGTH = 12


@dataclass(frozen=True)
class ReviewScreening:
    status: str
    notes: str = ""


def screen_review_text(body: str, blocked_terms: Iterable[str]) -> ReviewScreening:
    """
    Decide the initial status of a review from its text.

    Blocked terms are matched case-insensitively anywhere in the text.
    """
    normalized = body.lower()
    matches = [term for term in blocked_terms if term.lower() in normalized]
    if matches:
        return ReviewScreening(ReviewStatus.BLOCKED, f"Blocked terms: {', '.join(matches)}")
    if len(body.strip()) < SHORT_REVIEW_LENGTH:
        return ReviewScreening(
            ReviewStatus.UNDER_REVIEW, "Review content too short for publication"
        )
    return ReviewScreening(ReviewStatus.PENDING)


class ReviewService(BaseService):
    """
    Review submission and moderation.

    Args:
        blocked_terms: Terms that block a review outright; defaults to
            settings.REVIEW_BLOCKED_TERMS
    """

    DECISION_STATUSES = (ReviewStatus.APPROVED, ReviewStatus.REJECTED)

    def __init__(self, blocked_terms: Iterable[str] | None = None):
        if blocked_terms is None:
            blocked_terms = settings.REVIEW_BLOCKED_TERMS
        self.blocked_terms = list(blocked_terms)

    def submit_review(
        self,
        order_id: uuid.UUID,
        author: User,
        rating: int,
        body: str,
        target_user_id: uuid.UUID | None = None,
    ) -> ServiceResult[Review]:
        order = Order.objects.filter(pk=order_id).first()
        if order is None:
            return ServiceResult.not_found("Order not found", "ORDER_NOT_FOUND")
        if not order.is_participant(author):
            return ServiceResult.forbidden()

        counterparty_id = order.counterparty_id(author)
        if target_user_id is not None and target_user_id != counterparty_id:
            return ServiceResult.failure(
                "Reviews can only be left for the other party on the order",
                "INVALID_TARGET",
            )
        if not 1 <= rating <= 5:
            return ServiceResult.failure("Rating must be between 1 and 5", "INVALID_RATING")

        screening = screen_review_text(body, self.blocked_terms)

        try:
            with self.atomic():
                review = Review.objects.create(
                    order=order,
                    author=author,
                    target_user_id=counterparty_id,
                    rating=rating,
                    body=body,
                    status=screening.status,
                    moderation_notes=screening.notes,
                )
        except IntegrityError:
            return ServiceResult.conflict(
                "You have already reviewed this order", "REVIEW_EXISTS"
            )

        AuditService.record(
            entity="review",
            entity_id=review.id,
            action="submitted",
            actor=author,
            metadata={"status": review.status},
        )

        if review.status == ReviewStatus.BLOCKED:
            self.get_logger().warning(
                "Review blocked for prohibited terms",
                extra={"review_id": str(review.id), "order_id": str(order.id)},
            )
        return ServiceResult.success(review)

    def list_pending(self):
        """Reviews waiting for a moderator, oldest first."""
        return (
            Review.objects.filter(
                status__in=[ReviewStatus.PENDING, ReviewStatus.UNDER_REVIEW]
            )
            .select_related("author", "target_user")
            .order_by("created_at")
        )

    def record_decision(
        self,
        review_id: uuid.UUID,
        moderator: User,
        status: str,
        reason: str = "",
    ) -> ServiceResult[Review]:
        if status not in self.DECISION_STATUSES:
            return ServiceResult.failure(
                "Status must be approved or rejected", "INVALID_DECISION"
            )

        with self.atomic():
            review = Review.objects.select_for_update().filter(pk=review_id).first()
            if review is None:
                return ServiceResult.not_found("Review not found", "REVIEW_NOT_FOUND")
            if review.status == ReviewStatus.BLOCKED:
                return ServiceResult.conflict(
                    "Blocked reviews cannot be moderated", "REVIEW_BLOCKED"
                )

            review.status = status
            review.moderated_at = timezone.now()
            if reason:
                review.moderation_notes = reason
            review.save()

            ReviewModerationDecision.objects.create(
                review=review,
                moderator=moderator,
                status=status,
                notes=reason,
            )

        AuditService.record(
            entity="review",
            entity_id=review.id,
            action=f"moderation.{status}",
            actor=moderator,
            metadata={"reason": reason} if reason else {},
        )
        return ServiceResult.success(review)


# =============================================================================
# Listing moderation
# =============================================================================


class ListingModerationService(BaseService):
    """Approve (-> ACTIVE) or reject (-> REJECTED) listings."""

    MIN_RATIONALE_LENGTH = 12

    TARGET_STATUS = {
        "approve": ListingStatus.ACTIVE,
        "reject": ListingStatus.REJECTED,
    }

    MODERATABLE_STATUSES = (
        ListingStatus.PENDING_REVIEW,
        ListingStatus.ACTIVE,
        ListingStatus.REJECTED,
    )

    def moderate(
        self,
        listing_id: uuid.UUID,
        moderator: User,
        decision: str,
        rationale: str,
    ) -> ServiceResult[Listing]:
        if decision not in self.TARGET_STATUS:
            return ServiceResult.failure(
                "Decision must be approve or reject", "INVALID_DECISION"
            )
        if len(rationale.strip()) < self.MIN_RATIONALE_LENGTH:
            return ServiceResult.failure(
                f"Rationale must be at least {self.MIN_RATIONALE_LENGTH} characters",
                "RATIONALE_TOO_SHORT",
            )

        with self.atomic():
            listing = Listing.objects.select_for_update().filter(pk=listing_id).first()
            if listing is None:
                return ServiceResult.not_found("Listing not found", "LISTING_NOT_FOUND")
            if listing.status not in self.MODERATABLE_STATUSES:
                return ServiceResult.conflict(
                    f"A {listing.status} listing cannot be moderated",
                    "LISTING_NOT_MODERATABLE",
                )

            listing.status = self.TARGET_STATUS[decision]
            listing.moderated_at = timezone.now()
            listing.save(update_fields=["status", "moderated_at", "updated_at"])

        AuditService.record(
            entity="listing",
            entity_id=listing.id,
            action=f"LISTING_{decision.upper()}",
            actor=moderator,
            metadata={"rationale": rationale},
        )
        self.get_logger().info(
            "Listing moderated",
            extra={
                "listing_id": str(listing.id),
                "decision": decision,
                "moderator_id": str(moderator.id),
            },
        )
        return ServiceResult.success(listing)
