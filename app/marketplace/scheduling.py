"""
Follow-up scheduling for the offer and order lifecycle.

Services never enqueue Celery tasks directly; they call a TaskScheduler
passed to their constructor. CeleryTaskScheduler is the production
implementation. Tests pass a recording fake.

Available Protocols:
    TaskScheduler: Schedule offer expiry checks, review reminders and
        payout release retries

Usage:
    from marketplace.scheduling import CeleryTaskScheduler

    scheduler = CeleryTaskScheduler()
    scheduler.schedule_offer_expiry(offer.id, offer.expires_at)

Note:
    Every scheduled task re-checks state when it runs, so firing late or
    more than once is harmless.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    import datetime
    import uuid

logger = logging.getLogger(__name__)


@runtime_checkable
class TaskScheduler(Protocol):
    def schedule_offer_expiry(self, offer_id: uuid.UUID, when: datetime.datetime) -> None:
        """Run the expiry check for an offer at ``when``."""
        ...

    def schedule_review_reminder(self, order_id: uuid.UUID, when: datetime.datetime) -> None:
        """Remind the buyer to review an order at ``when``."""
        ...

    def schedule_payout_retry(self, order_id: uuid.UUID, countdown: float) -> None:
        """Retry the payout release for an order after ``countdown`` seconds."""
        ...


class CeleryTaskScheduler:
    """TaskScheduler backed by Celery ``apply_async``."""

    def schedule_offer_expiry(self, offer_id, when) -> None:
        from marketplace.tasks import expire_offer

        expire_offer.apply_async(args=[str(offer_id)], eta=when)
        logger.info(
            "Scheduled offer expiry check",
            extra={"offer_id": str(offer_id), "eta": when.isoformat()},
        )

    def schedule_review_reminder(self, order_id, when) -> None:
        from marketplace.tasks import send_review_reminder

        send_review_reminder.apply_async(args=[str(order_id)], eta=when)
        logger.info(
            "Scheduled review reminder",
            extra={"order_id": str(order_id), "eta": when.isoformat()},
        )

    def schedule_payout_retry(self, order_id, countdown) -> None:
        from payments.tasks import release_order_payout

        release_order_payout.apply_async(args=[str(order_id)], countdown=countdown)
        logger.info(
            "Scheduled payout release retry",
            extra={"order_id": str(order_id), "countdown": countdown},
        )
