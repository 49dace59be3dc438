"""
Django admin configuration for marketplace models.

Offer and order state is changed through the API services; the admin
shows it read-only.
"""

from django.contrib import admin

from marketplace.models import (
    Address,
    Listing,
    Offer,
    Order,
    OrderTimelineEvent,
    Review,
    ReviewModerationDecision,
)


@admin.register(Address)
class AddressAdmin(admin.ModelAdmin):
    list_display = ("user", "line1", "city", "postal_code", "country")
    search_fields = ("user__email", "line1", "city", "postal_code")


@admin.register(Listing)
class ListingAdmin(admin.ModelAdmin):
    list_display = ("title", "seller", "price", "currency", "status", "created_at")
    list_filter = ("status", "currency")
    search_fields = ("title", "seller__email")
    readonly_fields = ("moderated_at", "created_at", "updated_at")


@admin.register(Offer)
class OfferAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "listing",
        "buyer",
        "amount",
        "counter_amount",
        "status",
        "expires_at",
    )
    list_filter = ("status",)
    search_fields = ("id", "listing__title", "buyer__email")
    readonly_fields = (
        "listing",
        "buyer",
        "amount",
        "counter_amount",
        "last_countered_by",
        "status",
        "expires_at",
        "responded_at",
        "created_at",
    )


class OrderTimelineEventInline(admin.TabularInline):
    model = OrderTimelineEvent
    extra = 0
    can_delete = False
    readonly_fields = ("type", "detail", "created_at")


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """
    Admin configuration for Order.

    Shows the order timeline inline.
    """

    list_display = (
        "id",
        "buyer",
        "seller",
        "total_amount",
        "currency",
        "status",
        "shipment_status",
        "created_at",
    )
    list_filter = ("status", "shipment_status", "currency")
    search_fields = ("id", "buyer__email", "seller__email", "tracking_number")
    readonly_fields = (
        "offer",
        "listing",
        "buyer",
        "seller",
        "total_amount",
        "currency",
        "review_reminder_scheduled_at",
        "created_at",
        "updated_at",
    )
    inlines = [OrderTimelineEventInline]


class ReviewModerationDecisionInline(admin.TabularInline):
    model = ReviewModerationDecision
    extra = 0
    can_delete = False
    readonly_fields = ("moderator", "status", "notes", "created_at")


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ("id", "order", "author", "target_user", "rating", "status", "created_at")
    list_filter = ("status", "rating")
    search_fields = ("id", "author__email", "target_user__email", "body")
    readonly_fields = ("order", "author", "target_user", "created_at", "moderated_at")
    inlines = [ReviewModerationDecisionInline]
