"""
URL configuration for the payments app.

Routes:
    - POST orders/<order_id>/checkout/ - Buyer checkout
    - POST orders/<order_id>/release-payout/ - Admin payout release
    - POST connect/onboarding/ - Stripe Connect onboarding link
    - POST webhooks/stripe/ - Stripe webhook receiver

All routes are prefixed with /api/v1/payments/ when included in the main URLconf.
"""

from django.urls import path

from payments.views import CheckoutView, ConnectOnboardingView, ReleasePayoutView
from payments.webhooks.views import stripe_webhook

app_name = "payments"

urlpatterns = [
    path(
        "orders/<uuid:order_id>/checkout/",
        CheckoutView.as_view(),
        name="checkout",
    ),
    path(
        "orders/<uuid:order_id>/release-payout/",
        ReleasePayoutView.as_view(),
        name="release-payout",
    ),
    path(
        "connect/onboarding/",
        ConnectOnboardingView.as_view(),
        name="connect-onboarding",
    ),
    path("webhooks/stripe/", stripe_webhook, name="stripe-webhook"),
]
