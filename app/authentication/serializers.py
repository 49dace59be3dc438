"""
Serializers for authentication endpoints.

Related files:
    - views.py: Views that use these serializers
    - services.py: RegistrationService, MFAService, PolicyService, LoginService

Security:
    - Password fields are write-only
    - TOTP secrets are never serialized; only the provisioning URI is returned
    - LoginSerializer issues tokens only after LoginService accepts the account
"""

from django.contrib.auth.models import update_last_login
from django.contrib.auth.password_validation import validate_password
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainSerializer
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.tokens import RefreshToken

from authentication.models import PolicyAcceptance, User, UserRole
from authentication.services import LoginService
from core.helpers import get_client_ip


class UserSerializer(serializers.ModelSerializer):
    """Read-only representation of an account."""

    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "display_name",
            "role",
            "email_verified",
            "two_factor_enabled",
            "date_joined",
        ]
        read_only_fields = fields


class PolicyChoiceSerializer(serializers.Serializer):
    policy = serializers.SlugField(max_length=100)
    version = serializers.CharField(max_length=32)


class RegisterSerializer(serializers.Serializer):
    """
    Registration request.

    Request body:
        {
            "email": "angler@example.com",
            "password": "long-enough-password",
            "display_name": "Angler",
            "date_of_birth": "1990-04-01",
            "role": "seller",
            "marketing_opt_in": false,
            "accept_policies": [
                {"policy": "terms-of-service", "version": "2024-01-01"},
                {"policy": "privacy-policy", "version": "2024-01-01"}
            ]
        }
    """

    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, min_length=8)
    display_name = serializers.CharField(min_length=2, max_length=80)
    date_of_birth = serializers.DateField()
    role = serializers.ChoiceField(
        choices=[UserRole.BUYER, UserRole.SELLER], default=UserRole.BUYER
    )
    marketing_opt_in = serializers.BooleanField(default=False)
    accept_policies = PolicyChoiceSerializer(many=True, allow_empty=False)

    def validate_password(self, value):
        validate_password(value)
        return value


class MFASetupSerializer(serializers.Serializer):
    label = serializers.CharField(max_length=100, required=False, default="Authenticator App")


class MFASetupResponseSerializer(serializers.Serializer):
    device_id = serializers.UUIDField()
    otpauth_url = serializers.CharField()


class MFAVerifySerializer(serializers.Serializer):
    device_id = serializers.UUIDField()
    token = serializers.RegexField(r"^\d{6}$", max_length=6)


class PolicyAcceptanceSerializer(serializers.ModelSerializer):
    accepted_at = serializers.DateTimeField(source="created_at", read_only=True)

    class Meta:
        model = PolicyAcceptance
        fields = ["id", "policy", "version", "accepted_at"]
        read_only_fields = fields


class PolicyStatusSerializer(serializers.Serializer):
    """Required policies, with the ones still awaiting acceptance."""

    required = PolicyChoiceSerializer(many=True)
    missing = PolicyChoiceSerializer(many=True)
    accepted_all = serializers.BooleanField()


class LoginSerializer(TokenObtainSerializer):
    """
    JWT login with the marketplace's account requirements.

    Request body:
        {
            "email": "angler@example.com",
            "password": "...",
            "totp": "123456",                 # required when 2FA is on
            "accept_policies": [...]          # optional, recorded before the check
        }

    Raises (via authentication.services.LoginService):
        EMAIL_NOT_VERIFIED, POLICY_ACCEPTANCE_REQUIRED, MFA_REQUIRED (403)
        MFA_NOT_CONFIGURED (409)
        MFA_INVALID (400)
    """

    token_class = RefreshToken

    totp = serializers.RegexField(
        r"^\d{6}$", max_length=6, required=False, allow_blank=True, write_only=True
    )
    accept_policies = PolicyChoiceSerializer(many=True, required=False, write_only=True)

    def validate(self, attrs):
        totp = attrs.pop("totp", "")
        accept_policies = attrs.pop("accept_policies", [])

        # Sets self.user; raises AuthenticationFailed for bad credentials
        super().validate(attrs)

        request = self.context.get("request")
        LoginService().authorize(
            self.user,
            totp=totp,
            accepted_policies=accept_policies,
            ip_address=get_client_ip(request) if request is not None else None,
        )

        refresh = self.get_token(self.user)
        if api_settings.UPDATE_LAST_LOGIN:
            update_last_login(None, self.user)
        return {"refresh": str(refresh), "access": str(refresh.access_token)}


class VerifyEmailSerializer(serializers.Serializer):
    token = serializers.CharField(max_length=64)


class ResendVerificationSerializer(serializers.Serializer):
    email = serializers.EmailField()
