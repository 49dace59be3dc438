"""
Celery configuration for the marketplace backend.

Background work runs here rather than in request handlers:
- Offer expiry at each offer's deadline, plus a periodic sweep
  (marketplace.tasks.expire_offer / expire_stale_offers)
- Review reminders a configured number of days after an order is created
  (marketplace.tasks.send_review_reminder)
- Escrowed payout release with retry on transient Stripe failures
  (payments.tasks.release_order_payout)
- Stripe webhook processing off the request path
  (payments.tasks.process_webhook_event)

Redis is both the message broker and result backend. Periodic schedules
live in CELERY_BEAT_SCHEDULE and are persisted by django-celery-beat.

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

# Set the default Django settings module for the Celery worker
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("marketplace")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

# Celery will look for a tasks.py module in each installed app
app.autodiscover_tasks()
