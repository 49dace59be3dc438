"""
Test doubles for marketplace collaborators.
"""


class RecordingScheduler:
    """TaskScheduler that records calls instead of enqueueing Celery tasks."""

    def __init__(self):
        self.offer_expiries = []
        self.review_reminders = []
        self.payout_retries = []

    def schedule_offer_expiry(self, offer_id, when):
        self.offer_expiries.append((offer_id, when))

    def schedule_review_reminder(self, order_id, when):
        self.review_reminders.append((order_id, when))

    def schedule_payout_retry(self, order_id, countdown):
        self.payout_retries.append((order_id, countdown))
