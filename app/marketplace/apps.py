"""
Django app configuration for the marketplace.
"""

from django.apps import AppConfig


class MarketplaceConfig(AppConfig):
    """Listings, offer negotiation, orders and reviews."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "marketplace"
    verbose_name = "Marketplace"
