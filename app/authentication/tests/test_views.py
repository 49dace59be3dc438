"""
Tests for authentication API views.

Tests focus on observable HTTP behavior:
- Response status codes and bodies
- Database state changes
- Authentication enforcement
"""

import pyotp
import pytest
from freezegun import freeze_time
from rest_framework import status

from authentication.models import EmailVerificationToken, PolicyAcceptance, TotpDevice, User
from authentication.tests.factories import (
    EmailVerificationTokenFactory,
    PolicyAcceptanceFactory,
    TotpDeviceFactory,
    UserFactory,
    VerifiedTotpDeviceFactory,
)

REGISTER_URL = "/api/v1/auth/register/"
TOKEN_URL = "/api/v1/auth/token/"
VERIFY_EMAIL_URL = "/api/v1/auth/verify-email/"
RESEND_VERIFICATION_URL = "/api/v1/auth/verify-email/resend/"
MFA_SETUP_URL = "/api/v1/auth/mfa/setup/"
MFA_VERIFY_URL = "/api/v1/auth/mfa/verify/"
POLICIES_URL = "/api/v1/auth/policies/"
POLICY_ACCEPT_URL = "/api/v1/auth/policies/accept/"

POLICIES = {"terms-of-service": "2024-01-01", "privacy-policy": "2024-01-01"}
PASSWORD = "Bass-Tackle-2024"


@pytest.fixture(autouse=True)
def required_policies(settings):
    settings.REQUIRED_POLICIES = POLICIES


@pytest.fixture
def registration_payload():
    return {
        "email": "angler@example.com",
        "password": "Bass-Tackle-2024",
        "display_name": "Angler",
        "date_of_birth": "1990-04-01",
        "role": "seller",
        "accept_policies": [
            {"policy": slug, "version": version} for slug, version in POLICIES.items()
        ],
    }


@pytest.mark.django_db
class TestRegisterView:
    def test_register_returns_201_and_user(self, api_client, registration_payload):
        response = api_client.post(REGISTER_URL, registration_payload, format="json")

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["email"] == "angler@example.com"
        assert response.data["role"] == "seller"
        assert "password" not in response.data
        assert PolicyAcceptance.objects.count() == 2

    def test_register_short_password_returns_400(self, api_client, registration_payload):
        registration_payload["password"] = "short"

        response = api_client.post(REGISTER_URL, registration_payload, format="json")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "password" in response.data

    def test_register_admin_role_is_not_a_choice(self, api_client, registration_payload):
        registration_payload["role"] = "admin"

        response = api_client.post(REGISTER_URL, registration_payload, format="json")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert not User.objects.exists()

    def test_register_duplicate_email_returns_409(
        self, api_client, registration_payload, buyer
    ):
        registration_payload["email"] = buyer.email

        response = api_client.post(REGISTER_URL, registration_payload, format="json")

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data["error_code"] == "EMAIL_TAKEN"

    def test_registered_user_logs_in_after_verifying_email(self, api_client, registration_payload):
        api_client.post(REGISTER_URL, registration_payload, format="json")
        credentials = {"email": "angler@example.com", "password": PASSWORD}

        refused = api_client.post(TOKEN_URL, credentials, format="json")
        token = EmailVerificationToken.objects.get(user__email="angler@example.com")
        verified = api_client.post(VERIFY_EMAIL_URL, {"token": token.token}, format="json")
        response = api_client.post(TOKEN_URL, credentials, format="json")

        assert refused.status_code == status.HTTP_403_FORBIDDEN
        assert refused.data["error_code"] == "EMAIL_NOT_VERIFIED"
        assert verified.status_code == status.HTTP_200_OK
        assert response.status_code == status.HTTP_200_OK
        assert "access" in response.data and "refresh" in response.data


@pytest.mark.django_db
class TestEmailVerificationViews:
    def test_invalid_token_returns_400(self, api_client):
        response = api_client.post(VERIFY_EMAIL_URL, {"token": "not-a-token"}, format="json")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "INVALID_TOKEN"

    def test_verify_email(self, api_client):
        token = EmailVerificationTokenFactory()

        response = api_client.post(VERIFY_EMAIL_URL, {"token": token.token}, format="json")

        assert response.status_code == status.HTTP_200_OK
        token.user.refresh_from_db()
        assert token.user.email_verified is True

    def test_resend_is_accepted_for_any_address(self, api_client):
        user = UserFactory(email_verified=False)

        known = api_client.post(RESEND_VERIFICATION_URL, {"email": user.email}, format="json")
        unknown = api_client.post(
            RESEND_VERIFICATION_URL, {"email": "nobody@example.com"}, format="json"
        )

        assert known.status_code == unknown.status_code == status.HTTP_202_ACCEPTED
        assert EmailVerificationToken.objects.filter(user=user).count() == 1


@pytest.mark.django_db
class TestLoginView:
    @pytest.fixture
    def member(self):
        user = UserFactory(password=PASSWORD)
        for slug, version in POLICIES.items():
            PolicyAcceptanceFactory(user=user, policy=slug, version=version)
        return user

    @pytest.fixture
    def two_factor_device(self, member):
        member.two_factor_enabled = True
        member.save()
        return VerifiedTotpDeviceFactory(user=member)

    def login(self, client, user, **extra):
        return client.post(
            TOKEN_URL, {"email": user.email, "password": PASSWORD, **extra}, format="json"
        )

    def test_member_gets_tokens(self, api_client, member):
        response = self.login(api_client, member)

        assert response.status_code == status.HTTP_200_OK
        assert "access" in response.data and "refresh" in response.data

    def test_wrong_password_returns_401(self, api_client, member):
        response = api_client.post(
            TOKEN_URL, {"email": member.email, "password": "wrong-password"}, format="json"
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_unverified_email_returns_403(self, api_client, member):
        member.email_verified = False
        member.save()

        response = self.login(api_client, member)

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data["error_code"] == "EMAIL_NOT_VERIFIED"

    def test_missing_policies_returns_403(self, api_client):
        user = UserFactory(password=PASSWORD)

        response = self.login(api_client, user)

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data["error_code"] == "POLICY_ACCEPTANCE_REQUIRED"
        assert "access" not in response.data

    def test_policies_accepted_with_login(self, api_client):
        user = UserFactory(password=PASSWORD)
        accept = [{"policy": slug, "version": version} for slug, version in POLICIES.items()]

        response = self.login(api_client, user, accept_policies=accept)

        assert response.status_code == status.HTTP_200_OK
        assert PolicyAcceptance.objects.filter(user=user).count() == 2

    def test_two_factor_without_code_returns_403(self, api_client, member, two_factor_device):
        response = self.login(api_client, member)

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data["error_code"] == "MFA_REQUIRED"
        assert "access" not in response.data

    def test_two_factor_with_wrong_code_returns_400(self, api_client, member):
        member.two_factor_enabled = True
        member.save()
        device = VerifiedTotpDeviceFactory(user=member, secret="JBSWY3DPEHPK3PXP")

        with freeze_time("2024-01-01 12:00:00"):
            valid = pyotp.TOTP(device.secret).now()
            wrong = f"{(int(valid) + 1) % 1_000_000:06d}"
            response = self.login(api_client, member, totp=wrong)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "MFA_INVALID"

    def test_two_factor_with_valid_code(self, api_client, member, two_factor_device):
        response = self.login(
            api_client, member, totp=pyotp.TOTP(two_factor_device.secret).now()
        )

        assert response.status_code == status.HTTP_200_OK
        assert "access" in response.data

    def test_two_factor_code_cannot_be_replayed(self, api_client, member, two_factor_device):
        with freeze_time("2024-01-01 12:00:00"):
            code = pyotp.TOTP(two_factor_device.secret).now()
            first = self.login(api_client, member, totp=code)
            second = self.login(api_client, member, totp=code)

        assert first.status_code == status.HTTP_200_OK
        assert second.status_code == status.HTTP_400_BAD_REQUEST
        assert second.data["error_code"] == "MFA_INVALID"

    def test_two_factor_without_verified_device_returns_409(self, api_client, member):
        member.two_factor_enabled = True
        member.save()
        TotpDeviceFactory(user=member)

        response = self.login(api_client, member, totp="123456")

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data["error_code"] == "MFA_NOT_CONFIGURED"


@pytest.mark.django_db
class TestMFAViews:
    def test_setup_requires_authentication(self, api_client):
        response = api_client.post(MFA_SETUP_URL, {}, format="json")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_setup_returns_device_and_otpauth_url(self, authenticated_client_factory, buyer):
        client = authenticated_client_factory(buyer)

        response = client.post(MFA_SETUP_URL, {}, format="json")

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["otpauth_url"].startswith("otpauth://totp/")
        assert TotpDevice.objects.filter(id=response.data["device_id"], user=buyer).exists()

    def test_verify_valid_code(self, authenticated_client_factory, buyer):
        device = TotpDeviceFactory(user=buyer)
        client = authenticated_client_factory(buyer)

        response = client.post(
            MFA_VERIFY_URL,
            {"device_id": str(device.id), "token": pyotp.TOTP(device.secret).now()},
            format="json",
        )

        assert response.status_code == status.HTTP_200_OK
        buyer.refresh_from_db()
        assert buyer.two_factor_enabled is True

    def test_verify_malformed_token_returns_400(self, authenticated_client_factory, buyer):
        device = TotpDeviceFactory(user=buyer)
        client = authenticated_client_factory(buyer)

        response = client.post(
            MFA_VERIFY_URL, {"device_id": str(device.id), "token": "abc"}, format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_verify_unknown_device_returns_404(self, authenticated_client_factory, buyer):
        client = authenticated_client_factory(buyer)

        response = client.post(
            MFA_VERIFY_URL,
            {"device_id": "00000000-0000-0000-0000-000000000000", "token": "123456"},
            format="json",
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_delete_disables_two_factor(self, authenticated_client_factory, buyer):
        TotpDeviceFactory(user=buyer)
        client = authenticated_client_factory(buyer)

        response = client.delete(MFA_VERIFY_URL)

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert not TotpDevice.objects.filter(user=buyer).exists()


@pytest.mark.django_db
class TestPolicyViews:
    def test_status_lists_missing_policies(self, authenticated_client_factory, buyer):
        client = authenticated_client_factory(buyer)

        response = client.get(POLICIES_URL)

        assert response.status_code == status.HTTP_200_OK
        assert response.data["accepted_all"] is False
        assert {p["policy"] for p in response.data["missing"]} == set(POLICIES)

    def test_accept_records_acceptance_with_ip(self, authenticated_client_factory, buyer):
        client = authenticated_client_factory(buyer)

        response = client.post(
            POLICY_ACCEPT_URL,
            {"policy": "terms-of-service", "version": "2024-01-01"},
            format="json",
            REMOTE_ADDR="192.0.2.10",
        )

        assert response.status_code == status.HTTP_201_CREATED
        acceptance = PolicyAcceptance.objects.get(user=buyer)
        assert acceptance.ip_address == "192.0.2.10"

    def test_accept_unknown_policy_returns_400(self, authenticated_client_factory, buyer):
        client = authenticated_client_factory(buyer)

        response = client.post(
            POLICY_ACCEPT_URL, {"policy": "cookie-policy", "version": "1"}, format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "UNKNOWN_POLICY"
