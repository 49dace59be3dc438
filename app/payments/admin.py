"""
Payment admin configuration.

Payments, payouts and webhook events are read-only here: a payout is released through
PayoutService (or the admin release endpoint), never by editing its row.
"""

from django.contrib import admin

from payments.models import Payment, Payout, WebhookEvent


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "order",
        "amount",
        "currency",
        "status",
        "escrow_amount",
        "created_at",
    ]
    list_filter = ["status", "currency", "created_at"]
    search_fields = ["id", "order__id", "stripe_payment_intent_id"]
    readonly_fields = [
        "id",
        "order",
        "amount",
        "currency",
        "application_fee_amount",
        "tax_amount",
        "escrow_amount",
        "paid_at",
        "created_at",
        "updated_at",
    ]
    ordering = ["-created_at"]

    fieldsets = (
        (None, {"fields": ("id", "order", "status", "stripe_payment_intent_id")}),
        (
            "Breakdown",
            {
                "fields": (
                    "amount",
                    "currency",
                    "application_fee_amount",
                    "tax_amount",
                    "escrow_amount",
                ),
            },
        ),
        ("Timestamps", {"fields": ("paid_at", "created_at", "updated_at")}),
    )


@admin.register(Payout)
class PayoutAdmin(admin.ModelAdmin):
    """
    Admin configuration for Payout.

    Provides visibility into payout status and history.
    """

    list_display = [
        "id",
        "order",
        "seller",
        "amount",
        "currency",
        "status",
        "released_at",
        "created_at",
    ]
    list_filter = ["status", "currency", "created_at"]
    search_fields = ["id", "transfer_id", "order__id", "seller__email"]
    readonly_fields = [
        "id",
        "order",
        "seller",
        "amount",
        "currency",
        "status",
        "transfer_id",
        "released_at",
        "created_at",
        "updated_at",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    list_display = [
        "stripe_event_id",
        "event_type",
        "status",
        "retry_count",
        "processed_at",
        "created_at",
    ]
    list_filter = ["status", "event_type", "created_at"]
    search_fields = ["stripe_event_id"]
    readonly_fields = [
        "id",
        "stripe_event_id",
        "event_type",
        "payload",
        "status",
        "processed_at",
        "error_message",
        "retry_count",
        "created_at",
        "updated_at",
    ]
    ordering = ["-created_at"]

    def has_add_permission(self, request):
        return False
