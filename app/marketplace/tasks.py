"""
Celery tasks for the marketplace.

This module defines async tasks for:
- Offer expiry checks scheduled at an offer's deadline
- Review reminders scheduled after an order is created
- A periodic sweep for overdue offers whose check was lost

Related files:
    - scheduling.py: CeleryTaskScheduler enqueues these tasks
    - services.py: OfferService

Usage:
    from marketplace.tasks import expire_offer

    expire_offer.apply_async(args=[str(offer.id)], eta=offer.expires_at)
"""

import logging

from celery import shared_task
from django.db import transaction

from marketplace.models import Order, OrderTimelineEvent, TimelineEventType
from marketplace.services import OfferService

logger = logging.getLogger(__name__)


@shared_task
def expire_offer(offer_id: str) -> dict:
    """
    Expire an offer if its deadline has passed.

    A check that fires before the deadline (the offer was countered with a
    later expiry) or after the offer left negotiation does nothing.

    Returns:
        Dict with "status": the offer status, or the failure error code
    """
    result = OfferService().expire_offer(offer_id)

    if not result.success:
        logger.info(
            "Offer expiry check skipped",
            extra={"offer_id": offer_id, "error_code": result.error_code},
        )
        return {"status": result.error_code, "offer_id": offer_id}

    return {"status": result.data.status, "offer_id": offer_id}


@shared_task
def expire_stale_offers() -> dict:
    """
    Periodic sweep for live offers past their deadline.

    Scheduled via celery-beat (see CELERY_BEAT_SCHEDULE).
    """
    expired = OfferService().expire_overdue_offers()
    if expired:
        logger.info(f"Expired {expired} overdue offers", extra={"expired_count": expired})
    return {"expired_count": expired}


@shared_task(acks_late=True)
def send_review_reminder(order_id: str) -> dict:
    """
    Remind the buyer to review a completed order.

    Adds a REVIEW_REMINDER timeline event. Skipped when the buyer has
    already reviewed the order or a reminder was already recorded, so a
    redelivered task does nothing.
    """
    with transaction.atomic():
        order = Order.objects.select_for_update().filter(pk=order_id).first()
        if order is None:
            logger.warning("Review reminder for unknown order", extra={"order_id": order_id})
            return {"status": "not_found", "order_id": order_id}

        if order.reviews.filter(author_id=order.buyer_id).exists():
            return {"status": "already_reviewed", "order_id": order_id}

        if order.timeline.filter(type=TimelineEventType.REVIEW_REMINDER).exists():
            return {"status": "already_sent", "order_id": order_id}

        OrderTimelineEvent.objects.create(
            order=order,
            type=TimelineEventType.REVIEW_REMINDER,
            detail="Buyer reminded to leave a review",
        )

    logger.info(
        "Review reminder sent",
        extra={"order_id": order_id, "buyer_id": str(order.buyer_id)},
    )
    return {"status": "sent", "order_id": order_id}
