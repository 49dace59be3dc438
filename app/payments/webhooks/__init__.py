"""
Stripe webhook handling.

Webhooks are verified and stored by views.stripe_webhook, then processed
by the payments.tasks.process_webhook_event Celery task, which routes each
event to its handler in handlers.py.

Usage:
    # In urls.py
    from payments.webhooks.views import stripe_webhook

    urlpatterns = [
        path("webhooks/stripe/", stripe_webhook, name="stripe-webhook"),
    ]
"""
