"""
URL configuration for the marketplace app.

All routes are prefixed with /api/v1/marketplace/ when included in the main URLconf.
"""

from django.urls import path

from marketplace import views

app_name = "marketplace"

urlpatterns = [
    # Offers
    path("offers/", views.OfferCreateView.as_view(), name="offer-create"),
    path("offers/<uuid:offer_id>/accept/", views.OfferAcceptView.as_view(), name="offer-accept"),
    path("offers/<uuid:offer_id>/counter/", views.OfferCounterView.as_view(), name="offer-counter"),
    path("offers/<uuid:offer_id>/reject/", views.OfferRejectView.as_view(), name="offer-reject"),
    path("offers/<uuid:offer_id>/expire/", views.OfferExpireView.as_view(), name="offer-expire"),
    # Orders
    path("orders/<uuid:order_id>/", views.OrderDetailView.as_view(), name="order-detail"),
    path(
        "orders/<uuid:order_id>/shipment-status/",
        views.ShipmentStatusView.as_view(),
        name="order-shipment-status",
    ),
    # Reviews
    path("reviews/", views.ReviewCreateView.as_view(), name="review-create"),
    path("reviews/pending/", views.PendingReviewListView.as_view(), name="review-pending"),
    path(
        "reviews/<uuid:review_id>/decision/",
        views.ReviewDecisionView.as_view(),
        name="review-decision",
    ),
    # Admin
    path(
        "admin/listings/<uuid:listing_id>/moderate/",
        views.ListingModerationView.as_view(),
        name="listing-moderate",
    ),
]
