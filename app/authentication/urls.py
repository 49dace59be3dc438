"""
URL configuration for authentication app.

URL structure:
    /api/v1/auth/register/                  - Create an account
    /api/v1/auth/verify-email/              - Confirm an email address
    /api/v1/auth/verify-email/resend/       - Send a new verification email
    /api/v1/auth/token/                     - Log in (JWT pair)
    /api/v1/auth/token/refresh/             - Refresh access token (simplejwt)
    /api/v1/auth/mfa/setup/                 - Begin TOTP enrollment
    /api/v1/auth/mfa/verify/                - Verify TOTP code (DELETE disables 2FA)
    /api/v1/auth/policies/                  - Policy acceptance status
    /api/v1/auth/policies/accept/           - Accept a policy version
"""

from django.urls import path
from rest_framework_simplejwt.views import TokenRefreshView

from authentication.views import (
    LoginView,
    MFASetupView,
    MFAVerifyView,
    PolicyAcceptView,
    PolicyStatusView,
    RegisterView,
    ResendVerificationView,
    VerifyEmailView,
)

app_name = "authentication"

urlpatterns = [
    path("register/", RegisterView.as_view(), name="register"),
    path("verify-email/", VerifyEmailView.as_view(), name="verify-email"),
    path(
        "verify-email/resend/",
        ResendVerificationView.as_view(),
        name="verify-email-resend",
    ),
    path("token/", LoginView.as_view(), name="token-obtain"),
    path("token/refresh/", TokenRefreshView.as_view(), name="token-refresh"),
    path("mfa/setup/", MFASetupView.as_view(), name="mfa-setup"),
    path("mfa/verify/", MFAVerifyView.as_view(), name="mfa-verify"),
    path("policies/", PolicyStatusView.as_view(), name="policy-status"),
    path("policies/accept/", PolicyAcceptView.as_view(), name="policy-accept"),
]
