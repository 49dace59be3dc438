"""
Authentication views.

This module provides API views for:
- Registration and email verification
- JWT login with email, policy and two-factor checks
- TOTP multi-factor setup and verification
- Policy acceptance status and recording

Related files:
    - serializers.py: Request/response serialization
    - services.py: RegistrationService, EmailVerificationService, MFAService,
      PolicyService
    - urls.py: URL routing

Note:
    Token refresh is served by djangorestframework-simplejwt at
    /api/v1/auth/token/refresh/. Login subclasses its TokenObtainPairView.
"""

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.views import TokenObtainPairView

from authentication.serializers import (
    LoginSerializer,
    MFASetupResponseSerializer,
    MFASetupSerializer,
    MFAVerifySerializer,
    PolicyAcceptanceSerializer,
    PolicyChoiceSerializer,
    PolicyStatusSerializer,
    RegisterSerializer,
    ResendVerificationSerializer,
    UserSerializer,
    VerifyEmailSerializer,
)
from authentication.services import (
    EmailVerificationService,
    MFAService,
    PolicyService,
    RegistrationService,
)
from core.helpers import get_client_ip


@extend_schema(
    summary="Register an account",
    tags=["Auth"],
    request=RegisterSerializer,
    responses={
        201: UserSerializer,
        400: OpenApiResponse(description="Validation failed"),
        409: OpenApiResponse(description="Email already registered"),
    },
)
class RegisterView(APIView):
    """
    POST: Create a buyer or seller account.

    URL: /api/v1/auth/register/
    """

    permission_classes = [AllowAny]

    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = RegistrationService().register(
            email=data["email"],
            password=data["password"],
            display_name=data["display_name"],
            date_of_birth=data["date_of_birth"],
            accepted_policies=data["accept_policies"],
            role=data["role"],
            marketing_opt_in=data["marketing_opt_in"],
            ip_address=get_client_ip(request),
        )
        if not result:
            return Response(result.to_response(), status=result.http_status)

        return Response(UserSerializer(result.data).data, status=status.HTTP_201_CREATED)


class LoginView(TokenObtainPairView):
    """
    POST: Obtain a JWT pair.

    URL: /api/v1/auth/token/

    The account must have a verified email and have accepted the current
    policies. Accounts with two-factor enabled must send a TOTP code.
    """

    serializer_class = LoginSerializer

    @extend_schema(
        summary="Log in",
        tags=["Auth"],
        responses={
            200: OpenApiResponse(description="Access and refresh tokens"),
            400: OpenApiResponse(description="Invalid two-factor code"),
            401: OpenApiResponse(description="Invalid credentials"),
            403: OpenApiResponse(
                description="Email not verified, policies not accepted or code required"
            ),
        },
    )
    def post(self, request, *args, **kwargs):
        return super().post(request, *args, **kwargs)


class VerifyEmailView(APIView):
    """
    POST: Confirm an email address with the token from the verification email.

    URL: /api/v1/auth/verify-email/
    """

    permission_classes = [AllowAny]

    @extend_schema(
        summary="Verify email address",
        tags=["Auth"],
        request=VerifyEmailSerializer,
        responses={
            200: OpenApiResponse(description="Email verified"),
            400: OpenApiResponse(description="Invalid or expired token"),
        },
    )
    def post(self, request):
        serializer = VerifyEmailSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = EmailVerificationService().verify(serializer.validated_data["token"])
        if not result:
            return Response(result.to_response(), status=result.http_status)

        return Response({"success": True, "email_verified": True})


class ResendVerificationView(APIView):
    """
    POST: Send a new verification email.

    URL: /api/v1/auth/verify-email/resend/

    Always answers 202 so the response does not reveal whether the
    address is registered.
    """

    permission_classes = [AllowAny]

    @extend_schema(
        summary="Resend verification email",
        tags=["Auth"],
        request=ResendVerificationSerializer,
        responses={202: None},
    )
    def post(self, request):
        serializer = ResendVerificationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        EmailVerificationService().resend(serializer.validated_data["email"])
        return Response(status=status.HTTP_202_ACCEPTED)


class MFASetupView(APIView):
    """
    POST: Start TOTP enrollment for the current user.

    URL: /api/v1/auth/mfa/setup/

    Returns:
        {"device_id": "<uuid>", "otpauth_url": "otpauth://totp/..."}
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Begin TOTP enrollment",
        tags=["Auth - MFA"],
        request=MFASetupSerializer,
        responses={201: MFASetupResponseSerializer},
    )
    def post(self, request):
        serializer = MFASetupSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = MFAService().begin_enrollment(
            request.user, label=serializer.validated_data["label"]
        )
        if not result:
            return Response(result.to_response(), status=result.http_status)

        enrollment = result.data
        return Response(
            {
                "device_id": str(enrollment.device.id),
                "otpauth_url": enrollment.provisioning_uri,
            },
            status=status.HTTP_201_CREATED,
        )


class MFAVerifyView(APIView):
    """
    POST: Confirm a TOTP device with a code from the authenticator app.

    URL: /api/v1/auth/mfa/verify/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Verify a TOTP code",
        tags=["Auth - MFA"],
        request=MFAVerifySerializer,
        responses={
            200: OpenApiResponse(description="Code accepted"),
            400: OpenApiResponse(description="Invalid code"),
            404: OpenApiResponse(description="Device not found"),
        },
    )
    def post(self, request):
        serializer = MFAVerifySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = MFAService().verify_device(
            request.user,
            device_id=serializer.validated_data["device_id"],
            code=serializer.validated_data["token"],
        )
        if not result:
            return Response(result.to_response(), status=result.http_status)

        return Response({"success": True, "two_factor_enabled": True})

    @extend_schema(
        summary="Disable two-factor authentication",
        tags=["Auth - MFA"],
        responses={204: None},
    )
    def delete(self, request):
        MFAService().disable(request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)


class PolicyStatusView(APIView):
    """
    GET: Required policies and which ones the user still has to accept.

    URL: /api/v1/auth/policies/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Policy acceptance status",
        tags=["Auth - Policies"],
        responses={200: PolicyStatusSerializer},
    )
    def get(self, request):
        service = PolicyService()
        missing = service.missing_policies(request.user)
        payload = {
            "required": service.required_policies(),
            "missing": missing,
            "accepted_all": not missing,
        }
        return Response(PolicyStatusSerializer(payload).data)


class PolicyAcceptView(APIView):
    """
    POST: Accept the current version of a policy.

    URL: /api/v1/auth/policies/accept/

    Request body:
        {"policy": "terms-of-service", "version": "2024-01-01"}
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Accept a policy",
        tags=["Auth - Policies"],
        request=PolicyChoiceSerializer,
        responses={201: PolicyAcceptanceSerializer},
    )
    def post(self, request):
        serializer = PolicyChoiceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = PolicyService().record_acceptance(
            request.user,
            policy=serializer.validated_data["policy"],
            version=serializer.validated_data["version"],
            ip_address=get_client_ip(request),
        )
        if not result:
            return Response(result.to_response(), status=result.http_status)

        return Response(
            PolicyAcceptanceSerializer(result.data).data,
            status=status.HTTP_201_CREATED,
        )
