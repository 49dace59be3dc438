"""
URL configuration for the marketplace backend.

URL Structure:
    /                              - ReDoc API documentation
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (for load balancers, Docker)
    /schema/                       - OpenAPI schema (YAML)
    /api/v1/auth/                  - Accounts, JWT, MFA and policy acceptance
        register/                  - Create an account
        token/                     - Obtain JWT pair
        token/refresh/             - Refresh access token
        mfa/setup/                 - Begin TOTP enrollment
        mfa/verify/                - Verify TOTP code / disable 2FA
        policies/                  - Policy acceptance status
        policies/accept/           - Accept a policy version
    /api/v1/marketplace/           - Offers, orders and reviews
        offers/                    - Make an offer
        offers/{id}/accept/        - Accept (creates order)
        offers/{id}/counter/       - Counter
        offers/{id}/reject/        - Reject
        offers/{id}/expire/        - Expire if overdue
        orders/{id}/               - Order detail
        orders/{id}/shipment-status/ - Update shipment
        reviews/                   - Submit a review
        reviews/pending/           - Moderation queue
        reviews/{id}/decision/     - Moderate a review
        admin/listings/{id}/moderate/ - Moderate a listing
    /api/v1/payments/              - Payment endpoints
        orders/{id}/release-payout/ - Release escrowed payout (admin)

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
# All routes here are prefixed with /api/v1/ automatically
api_v1_patterns = [
    # Accounts, JWT, MFA, policies
    path("auth/", include("authentication.urls")),
    # Offers, orders, reviews, listing moderation
    path("marketplace/", include("marketplace.urls")),
    # Payments
    path("payments/", include("payments.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Marketplace Admin"
admin.site.site_title = "Marketplace Admin Portal"
admin.site.index_title = "Marketplace moderation and operations"
