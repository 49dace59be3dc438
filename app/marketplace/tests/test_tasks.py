"""
Tests for marketplace Celery tasks.
"""

import datetime
import uuid

import pytest
from django.utils import timezone

from marketplace.models import Offer, OfferStatus, TimelineEventType
from marketplace.tasks import expire_offer, expire_stale_offers, send_review_reminder
from marketplace.tests.factories import OfferFactory, OrderFactory, ReviewFactory


def in_days(days):
    return timezone.now() + datetime.timedelta(days=days)


@pytest.mark.django_db
class TestExpireOffer:
    def test_expires_overdue_offer(self):
        offer = OfferFactory(expires_at=in_days(-1))

        result = expire_offer(str(offer.id))

        assert result == {"status": OfferStatus.EXPIRED, "offer_id": str(offer.id)}
        assert Offer.objects.get(pk=offer.id).status == OfferStatus.EXPIRED

    def test_early_check_does_nothing(self):
        offer = OfferFactory(expires_at=in_days(1))

        result = expire_offer(str(offer.id))

        assert result["status"] == "OFFER_NOT_EXPIRED"
        assert Offer.objects.get(pk=offer.id).status == OfferStatus.OPEN

    def test_accepted_offer_left_alone(self):
        offer = OfferFactory(status=OfferStatus.ACCEPTED, expires_at=in_days(-1))

        result = expire_offer(str(offer.id))

        assert result["status"] == OfferStatus.ACCEPTED

    def test_unknown_offer(self):
        offer_id = str(uuid.uuid4())

        assert expire_offer(offer_id) == {"status": "OFFER_NOT_FOUND", "offer_id": offer_id}


@pytest.mark.django_db
class TestExpireStaleOffers:
    def test_reports_count(self):
        OfferFactory(expires_at=in_days(-1))
        OfferFactory(expires_at=in_days(-2))
        OfferFactory(expires_at=in_days(2))

        assert expire_stale_offers() == {"expired_count": 2}


@pytest.mark.django_db
class TestSendReviewReminder:
    def test_records_reminder(self):
        order = OrderFactory()

        result = send_review_reminder(str(order.id))

        assert result == {"status": "sent", "order_id": str(order.id)}
        event = order.timeline.get()
        assert event.type == TimelineEventType.REVIEW_REMINDER
        assert event.detail == "Buyer reminded to leave a review"

    def test_redelivery_does_not_remind_twice(self):
        order = OrderFactory()
        send_review_reminder(str(order.id))

        result = send_review_reminder(str(order.id))

        assert result["status"] == "already_sent"
        assert order.timeline.filter(type=TimelineEventType.REVIEW_REMINDER).count() == 1

    def test_skipped_when_buyer_already_reviewed(self):
        review = ReviewFactory()

        result = send_review_reminder(str(review.order_id))

        assert result["status"] == "already_reviewed"
        assert not review.order.timeline.exists()

    def test_seller_review_does_not_count(self):
        order = OrderFactory()
        ReviewFactory(order=order, author=order.seller, target_user=order.buyer)

        assert send_review_reminder(str(order.id))["status"] == "sent"

    def test_unknown_order(self):
        order_id = str(uuid.uuid4())

        assert send_review_reminder(order_id)["status"] == "not_found"
