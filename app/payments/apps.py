"""
Payments app configuration.

This app holds the money side of an order:
- Payment records with the financial breakdown
- Escrow payouts released to sellers through Stripe Connect
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"
