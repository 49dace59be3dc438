"""
Authentication models.

This module defines:
- UserRole: Marketplace roles (buyer, seller, admin, support)
- User: Email-identified account with a role and two-factor flag
- TotpDevice: Authenticator-app device enrolled for multi-factor login
- PolicyAcceptance: Recorded consent to a versioned platform policy
- EmailVerificationToken: Single-use token confirming an email address

Related files:
    - managers.py: UserManager for email-based creation
    - services.py: MFAService, PolicyService, RegistrationService
    - permissions.py: Role-based DRF permissions
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.conf import settings
from django.db import models

from authentication.managers import UserManager
from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class UserRole(models.TextChoices):
    """
    Marketplace roles.

    ADMIN and SUPPORT can moderate; BUYER and SELLER trade.
    """

    BUYER = "buyer", "Buyer"
    SELLER = "seller", "Seller"
    ADMIN = "admin", "Admin"
    SUPPORT = "support", "Support"


class User(UUIDPrimaryKeyMixin, AbstractBaseUser, PermissionsMixin):
    """
    Custom user model using email as the login identifier.

    Fields:
        email: Unique login identifier
        display_name: Name shown on listings and reviews
        role: Marketplace role, drives moderation permissions
        email_verified: Whether the email address has been confirmed
        two_factor_enabled: Set once a TOTP device has been verified
        stripe_connect_id: Stripe Connect account receiving seller payouts
        stripe_payouts_enabled: Mirrors the connected account's payouts_enabled
        is_active / is_staff: Django account flags

    Usage:
        seller = User.objects.create_user(
            email="seller@example.com",
            password="s3cret-pass",
            role=UserRole.SELLER,
        )
    """

    email = models.EmailField(
        unique=True,
        max_length=254,
        help_text="User's email address (primary identifier)",
    )
    display_name = models.CharField(
        max_length=80,
        blank=True,
        default="",
        help_text="Public name shown to other marketplace users",
    )
    role = models.CharField(
        max_length=16,
        choices=UserRole.choices,
        default=UserRole.BUYER,
        db_index=True,
        help_text="Marketplace role",
    )
    email_verified = models.BooleanField(
        default=False,
        help_text="Whether the user's email has been verified",
    )
    two_factor_enabled = models.BooleanField(
        default=False,
        help_text="Whether a verified TOTP device is required at login",
    )
    date_of_birth = models.DateField(
        null=True,
        blank=True,
        help_text="Used for the minimum-age check at registration",
    )
    marketing_opt_in = models.BooleanField(default=False)
    stripe_connect_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Stripe Connect account ID (acct_xxx) for payouts",
    )
    stripe_payouts_enabled = models.BooleanField(
        default=False,
        help_text="Whether Stripe reports the connected account can receive payouts",
    )
    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )
    date_joined = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user account was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the user record was last modified",
    )

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["-date_joined"]

    def __str__(self):
        return self.email

    def get_full_name(self):
        return self.display_name or self.email

    def get_short_name(self):
        return self.display_name or self.email.split("@")[0]

    @property
    def is_moderator(self) -> bool:
        """Admins and support staff may moderate listings and reviews."""
        return self.role in (UserRole.ADMIN, UserRole.SUPPORT) or self.is_superuser

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN or self.is_superuser


class TotpDevice(UUIDPrimaryKeyMixin, BaseModel):
    """
    Time-based one-time password device enrolled by a user.

    A device is created unverified during MFA setup. The first valid code
    sets verified_at and turns on two-factor for the user.

    last_timestep is the TOTP time step of the last accepted code; codes
    from that step or an earlier one are refused.
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="totp_devices",
    )
    secret = models.CharField(
        max_length=64,
        help_text="Base32 TOTP shared secret",
    )
    label = models.CharField(max_length=100, blank=True, default="")
    verified_at = models.DateTimeField(null=True, blank=True)
    last_used_at = models.DateTimeField(null=True, blank=True)
    last_timestep = models.BigIntegerField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "TOTP device"
        verbose_name_plural = "TOTP devices"

    def __str__(self):
        return f"TotpDevice({self.user_id}, {self.label or 'unnamed'})"

    @property
    def is_verified(self) -> bool:
        return self.verified_at is not None


class PolicyAcceptance(UUIDPrimaryKeyMixin, BaseModel):
    """
    A user's recorded consent to one version of a platform policy.

    Acceptances are append-only; accepting a newer version adds a row.
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="policy_acceptances",
    )
    policy = models.SlugField(
        max_length=100,
        help_text="Policy slug, e.g. terms-of-service",
    )
    version = models.CharField(
        max_length=32,
        help_text="Policy version the user accepted",
    )
    ip_address = models.GenericIPAddressField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "policy", "version"],
                name="unique_policy_acceptance_per_version",
            ),
        ]

    def __str__(self):
        return f"PolicyAcceptance({self.user_id}, {self.policy}@{self.version})"

    @property
    def accepted_at(self):
        return self.created_at


class EmailVerificationToken(UUIDPrimaryKeyMixin, BaseModel):
    """
    Single-use token mailed to a user to confirm their email address.

    Fields:
        user: User this token belongs to
        token: 64-character random hex string
        expires_at: When this token expires
        used_at: When this token was used (null if unused)
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="verification_tokens",
    )
    token = models.CharField(
        max_length=64,
        unique=True,
        db_index=True,
        help_text="Unique verification token",
    )
    expires_at = models.DateTimeField(db_index=True)
    used_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When this token was used (null if unused)",
    )

    class Meta:
        verbose_name = "email verification token"
        verbose_name_plural = "email verification tokens"
        indexes = [
            models.Index(fields=["user", "used_at"], name="auth_token_user_used_idx"),
        ]

    def __str__(self):
        return f"Email verification for {self.user}"

    @property
    def is_valid(self) -> bool:
        """Not used and not expired."""
        from django.utils import timezone

        return self.used_at is None and self.expires_at > timezone.now()
