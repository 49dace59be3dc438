"""
Django admin configuration for authentication models.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from authentication.models import EmailVerificationToken, PolicyAcceptance, TotpDevice, User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """
    Admin configuration for the email-identified User model.
    """

    list_display = (
        "email",
        "display_name",
        "role",
        "two_factor_enabled",
        "is_active",
        "date_joined",
    )
    list_filter = ("role", "is_active", "is_staff", "two_factor_enabled")
    search_fields = ("email", "display_name")
    ordering = ("-date_joined",)

    fieldsets = (
        (None, {"fields": ("email", "password", "display_name", "role")}),
        (
            "Status",
            {
                "fields": (
                    "email_verified",
                    "two_factor_enabled",
                    "is_active",
                    "is_staff",
                    "is_superuser",
                )
            },
        ),
        ("Payouts", {"fields": ("stripe_connect_id", "stripe_payouts_enabled")}),
        ("Permissions", {"fields": ("groups", "user_permissions")}),
        ("Important dates", {"fields": ("date_of_birth", "date_joined", "last_login")}),
    )

    add_fieldsets = (
        (
            None,
            {
                "classes": ("wide",),
                "fields": ("email", "role", "password1", "password2"),
            },
        ),
    )

    readonly_fields = ("date_joined", "last_login")


@admin.register(TotpDevice)
class TotpDeviceAdmin(admin.ModelAdmin):
    list_display = ("user", "label", "verified_at", "last_used_at", "created_at")
    search_fields = ("user__email",)
    raw_id_fields = ("user",)
    exclude = ("secret",)


@admin.register(PolicyAcceptance)
class PolicyAcceptanceAdmin(admin.ModelAdmin):
    list_display = ("user", "policy", "version", "ip_address", "created_at")
    list_filter = ("policy", "version")
    search_fields = ("user__email",)
    raw_id_fields = ("user",)


@admin.register(EmailVerificationToken)
class EmailVerificationTokenAdmin(admin.ModelAdmin):
    list_display = ("user", "expires_at", "used_at", "created_at")
    search_fields = ("user__email",)
    raw_id_fields = ("user",)
    exclude = ("token",)
