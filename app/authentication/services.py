"""
Authentication services.

This module provides:
- RegistrationService: Account creation with age and policy checks
- EmailVerificationService: Verification tokens and email confirmation
- MFAService: TOTP enrollment, verification and removal (pyotp)
- PolicyService: Required-policy acceptance tracking
- LoginService: Checks an authenticated user must pass before tokens are issued

Related files:
    - models.py: User, TotpDevice, PolicyAcceptance, EmailVerificationToken
    - serializers.py: LoginSerializer calls LoginService
    - tasks.py: send_verification_email
    - views.py: HTTP endpoints that call these services

Configuration (settings.py):
    REQUIRED_POLICIES: Mapping of policy slug to current version
    MFA_ISSUER_NAME: Issuer shown in authenticator apps
    MINIMUM_REGISTRATION_AGE: Minimum age in years to register
    EMAIL_VERIFICATION_EXPIRY_HOURS: Lifetime of a verification token
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from functools import partial
from typing import TYPE_CHECKING

import pyotp
from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone
from pyotp.utils import strings_equal

from authentication.models import (
    EmailVerificationToken,
    PolicyAcceptance,
    TotpDevice,
    User,
    UserRole,
)
from core.exceptions import ConflictError, PermissionDeniedError, ValidationError
from core.helpers import generate_token
from core.services import BaseService, ServiceResult

if TYPE_CHECKING:
    from collections.abc import Iterable


def is_adult(date_of_birth: datetime.date, minimum_age: int = 18, today=None) -> bool:
    """Whether someone born on date_of_birth has reached minimum_age today."""
    today = today or timezone.localdate()
    years = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        years -= 1
    return years >= minimum_age


def format_policy_title(slug: str) -> str:
    """terms-of-service -> Terms Of Service"""
    return " ".join(part.capitalize() for part in slug.split("-"))


@dataclass(frozen=True)
class RequiredPolicy:
    policy: str
    version: str

    @property
    def title(self) -> str:
        return format_policy_title(self.policy)


class PolicyService(BaseService):
    """
    Tracks which versions of the platform policies each user accepted.

    Usage:
        service = PolicyService()
        service.record_acceptance(user, "terms-of-service", "2024-01-01")
        missing = service.missing_policies(user)
    """

    def required_policies(self) -> list[RequiredPolicy]:
        return [
            RequiredPolicy(policy=slug, version=version)
            for slug, version in settings.REQUIRED_POLICIES.items()
        ]

    def record_acceptance(
        self,
        user: User,
        policy: str,
        version: str,
        ip_address: str | None = None,
    ) -> ServiceResult[PolicyAcceptance]:
        """
        Record that user accepted one version of a policy.

        Only the currently required version of a configured policy can be
        accepted. Accepting the same version twice returns the existing row.
        """
        current = settings.REQUIRED_POLICIES.get(policy)
        if current is None:
            return ServiceResult.failure(
                f"Unknown policy: {policy}", error_code="UNKNOWN_POLICY"
            )
        if version != current:
            return ServiceResult.failure(
                f"{format_policy_title(policy)} version {version} is not current",
                error_code="POLICY_VERSION_MISMATCH",
            )

        acceptance, created = PolicyAcceptance.objects.get_or_create(
            user=user,
            policy=policy,
            version=version,
            defaults={"ip_address": ip_address},
        )
        if created:
            self.get_logger().info(
                "Policy accepted",
                extra={"user_id": str(user.id), "policy": policy, "version": version},
            )
        return ServiceResult.success(acceptance)

    def missing_policies(self, user: User) -> list[RequiredPolicy]:
        """Required policies the user has not accepted at their current version."""
        accepted = set(
            PolicyAcceptance.objects.filter(user=user).values_list("policy", "version")
        )
        return [
            required
            for required in self.required_policies()
            if (required.policy, required.version) not in accepted
        ]


class RegistrationService(BaseService):
    """
    Creates marketplace accounts.

    Self-registration may only pick the buyer or seller role. The caller
    must accept every required policy at its current version. A
    verification email is sent once the account is committed.
    """

    SELF_SERVICE_ROLES = (UserRole.BUYER, UserRole.SELLER)

    def __init__(self, policy_service: PolicyService | None = None):
        self.policy_service = policy_service or PolicyService()

    def register(
        self,
        email: str,
        password: str,
        display_name: str,
        date_of_birth: datetime.date,
        accepted_policies: Iterable[dict],
        role: str = UserRole.BUYER,
        marketing_opt_in: bool = False,
        ip_address: str | None = None,
    ) -> ServiceResult[User]:
        if role not in self.SELF_SERVICE_ROLES:
            return ServiceResult.failure(
                "Role cannot be self-assigned", error_code="INVALID_ROLE"
            )

        if not is_adult(date_of_birth, settings.MINIMUM_REGISTRATION_AGE):
            return ServiceResult.failure(
                f"You must be at least {settings.MINIMUM_REGISTRATION_AGE} years old to register",
                error_code="UNDERAGE",
            )

        accepted = {(item["policy"], item["version"]) for item in accepted_policies}
        for required in self.policy_service.required_policies():
            if (required.policy, required.version) not in accepted:
                return ServiceResult.failure(
                    f"Missing acceptance for {required.title}",
                    error_code="POLICY_NOT_ACCEPTED",
                )

        email = email.strip().lower()
        if User.objects.filter(email__iexact=email).exists():
            return ServiceResult.conflict("Email already registered", "EMAIL_TAKEN")

        try:
            with self.atomic():
                user = User.objects.create_user(
                    email=email,
                    password=password,
                    display_name=display_name,
                    date_of_birth=date_of_birth,
                    marketing_opt_in=marketing_opt_in,
                    role=role,
                )
                for required in self.policy_service.required_policies():
                    self.policy_service.record_acceptance(
                        user, required.policy, required.version, ip_address
                    )
                EmailVerificationService().issue_token(user)
        except IntegrityError:
            return ServiceResult.conflict("Email already registered", "EMAIL_TAKEN")

        self.get_logger().info(
            "User registered", extra={"user_id": str(user.id), "role": role}
        )
        return ServiceResult.success(user)


class EmailVerificationService(BaseService):
    """
    Email address confirmation.

    Usage:
        EmailVerificationService().issue_token(user)   # mails a link after commit
        EmailVerificationService().verify(token_string)
    """

    def issue_token(self, user: User) -> EmailVerificationToken:
        """Create a token and send it to the user once the transaction commits."""
        from authentication.tasks import send_verification_email

        hours = getattr(settings, "EMAIL_VERIFICATION_EXPIRY_HOURS", 24)
        token = EmailVerificationToken.objects.create(
            user=user,
            token=generate_token(),
            expires_at=timezone.now() + datetime.timedelta(hours=hours),
        )
        transaction.on_commit(partial(send_verification_email.delay, str(token.id)))

        self.get_logger().info(
            "Verification email queued", extra={"user_id": str(user.id)}
        )
        return token

    def verify(self, token: str) -> ServiceResult[User]:
        with self.atomic():
            token_obj = (
                EmailVerificationToken.objects.select_for_update()
                .select_related("user")
                .filter(
                    token=token,
                    used_at__isnull=True,
                    expires_at__gt=timezone.now(),
                )
                .first()
            )
            if token_obj is None:
                return ServiceResult.failure(
                    "Invalid or expired token", error_code="INVALID_TOKEN"
                )

            user = token_obj.user
            user.email_verified = True
            user.save(update_fields=["email_verified", "updated_at"])

            token_obj.used_at = timezone.now()
            token_obj.save(update_fields=["used_at", "updated_at"])

        self.get_logger().info("Email verified", extra={"user_id": str(user.id)})
        return ServiceResult.success(user)

    def resend(self, email: str) -> None:
        """
        Issue a fresh token for an unverified account.

        Does nothing for unknown or already verified addresses, so callers
        cannot tell which emails are registered.
        """
        user = User.objects.filter(
            email__iexact=email.strip(), email_verified=False, is_active=True
        ).first()
        if user is not None:
            self.issue_token(user)


@dataclass(frozen=True)
class MFAEnrollment:
    device: TotpDevice
    provisioning_uri: str


class MFAService(BaseService):
    """
    Time-based one-time password (TOTP) second factor.

    Flow:
        1. begin_enrollment() replaces any unverified device with a new one
           and returns an otpauth:// URI for the authenticator app (usually
           shown as a QR code)
        2. verify_device() checks a code from the app; the first success marks
           the device verified and enables two-factor for the user
        3. verify_login_code() checks a login code against verified devices
        4. disable() removes every device and turns two-factor off

    Each code is accepted once: a code from a time step at or before the
    device's last accepted step is refused.
    """

    VALID_WINDOW = 1

    def begin_enrollment(
        self, user: User, label: str = "Authenticator App"
    ) -> ServiceResult[MFAEnrollment]:
        secret = pyotp.random_base32()
        uri = pyotp.TOTP(secret).provisioning_uri(
            name=user.email, issuer_name=settings.MFA_ISSUER_NAME
        )
        with self.atomic():
            stale, _ = TotpDevice.objects.filter(
                user=user, verified_at__isnull=True
            ).delete()
            device = TotpDevice.objects.create(user=user, secret=secret, label=label)

        self.get_logger().info(
            "TOTP enrollment started",
            extra={
                "user_id": str(user.id),
                "device_id": str(device.id),
                "replaced_unverified": stale,
            },
        )
        return ServiceResult.success(MFAEnrollment(device=device, provisioning_uri=uri))

    def verify_device(
        self, user: User, device_id, code: str
    ) -> ServiceResult[TotpDevice]:
        with self.atomic():
            device = (
                TotpDevice.objects.select_for_update()
                .filter(id=device_id, user=user)
                .first()
            )
            if device is None:
                return ServiceResult.not_found("Device not found", "DEVICE_NOT_FOUND")

            if not self._accept_code(device, code):
                return ServiceResult.failure("Invalid code", error_code="INVALID_CODE")

            first_verification = device.verified_at is None
            device.verified_at = device.verified_at or device.last_used_at
            device.save(
                update_fields=["verified_at", "last_used_at", "last_timestep", "updated_at"]
            )
            if first_verification and not user.two_factor_enabled:
                user.two_factor_enabled = True
                user.save(update_fields=["two_factor_enabled", "updated_at"])

        return ServiceResult.success(device)

    def verify_login_code(self, user: User, code: str) -> ServiceResult[TotpDevice]:
        """
        Check a login code against the user's verified devices.

        Error codes:
            MFA_NOT_CONFIGURED: Two-factor is on but no device is verified (409)
            MFA_INVALID: No verified device accepts the code (400)
        """
        with self.atomic():
            devices = list(
                TotpDevice.objects.select_for_update().filter(
                    user=user, verified_at__isnull=False
                )
            )
            if not devices:
                return ServiceResult.conflict(
                    "Two-factor authentication has no verified device",
                    "MFA_NOT_CONFIGURED",
                )

            for device in devices:
                if self._accept_code(device, code):
                    device.save(update_fields=["last_used_at", "last_timestep", "updated_at"])
                    return ServiceResult.success(device)

        return ServiceResult.failure("Invalid two-factor code", error_code="MFA_INVALID")

    def disable(self, user: User) -> ServiceResult[int]:
        """Remove all TOTP devices and turn two-factor off. Returns the count removed."""
        with self.atomic():
            deleted, _ = TotpDevice.objects.filter(user=user).delete()
            user.two_factor_enabled = False
            user.save(update_fields=["two_factor_enabled", "updated_at"])

        self.get_logger().info(
            "Two-factor disabled", extra={"user_id": str(user.id), "devices": deleted}
        )
        return ServiceResult.success(deleted)

    def _accept_code(self, device: TotpDevice, code: str) -> bool:
        """
        Match code within the valid window and record its time step on device.

        The caller saves the device.
        """
        now = timezone.now()
        step = self._matching_timestep(device.secret, code, now)
        if step is None:
            self.get_logger().warning(
                "Invalid TOTP code",
                extra={"user_id": str(device.user_id), "device_id": str(device.id)},
            )
            return False
        if device.last_timestep is not None and step <= device.last_timestep:
            self.get_logger().warning(
                "Reused TOTP code refused",
                extra={"user_id": str(device.user_id), "device_id": str(device.id)},
            )
            return False

        device.last_timestep = step
        device.last_used_at = now
        return True

    def _matching_timestep(self, secret: str, code: str, now: datetime.datetime) -> int | None:
        totp = pyotp.TOTP(secret)
        current = totp.timecode(now)
        for offset in range(-self.VALID_WINDOW, self.VALID_WINDOW + 1):
            if strings_equal(str(code), totp.at(now, offset)):
                return current + offset
        return None


class LoginService(BaseService):
    """
    Requirements an account must meet before it is issued tokens.

    Checked in order after the password has been verified:
        1. Email address verified
        2. Every required policy accepted at its current version
           (acceptances sent with the login request are recorded first)
        3. A valid TOTP code when two-factor is enabled
    """

    def __init__(
        self,
        policy_service: PolicyService | None = None,
        mfa_service: MFAService | None = None,
    ):
        self.policy_service = policy_service or PolicyService()
        self.mfa_service = mfa_service or MFAService()

    def authorize(
        self,
        user: User,
        totp: str = "",
        accepted_policies: Iterable[dict] = (),
        ip_address: str | None = None,
    ) -> None:
        """
        Raises:
            PermissionDeniedError: EMAIL_NOT_VERIFIED, POLICY_ACCEPTANCE_REQUIRED,
                MFA_REQUIRED
            ConflictError: MFA_NOT_CONFIGURED
            ValidationError: MFA_INVALID, or a rejected policy acceptance
        """
        logger = self.get_logger()
        log_context = {"user_id": str(user.id)}

        if not user.email_verified:
            logger.info("Login refused, email not verified", extra=log_context)
            raise PermissionDeniedError(
                "Email address has not been verified", error_code="EMAIL_NOT_VERIFIED"
            )

        for item in accepted_policies:
            result = self.policy_service.record_acceptance(
                user, item["policy"], item["version"], ip_address
            )
            if not result:
                raise ValidationError(result.error, error_code=result.error_code)

        missing = self.policy_service.missing_policies(user)
        if missing:
            logger.info(
                "Login refused, policies not accepted",
                extra={**log_context, "missing": [m.policy for m in missing]},
            )
            raise PermissionDeniedError(
                "Current policies must be accepted",
                error_code="POLICY_ACCEPTANCE_REQUIRED",
                details={
                    "missing": [{"policy": m.policy, "version": m.version} for m in missing]
                },
            )

        if not user.two_factor_enabled:
            return

        if not totp:
            raise PermissionDeniedError(
                "Two-factor code required", error_code="MFA_REQUIRED"
            )

        result = self.mfa_service.verify_login_code(user, totp)
        if result:
            return
        if result.error_code == "MFA_NOT_CONFIGURED":
            logger.error("Two-factor enabled without a verified device", extra=log_context)
            raise ConflictError(result.error, error_code=result.error_code)
        raise ValidationError(result.error, error_code=result.error_code)
