"""
DRF views for payments app.

Endpoints:
    POST /api/v1/payments/orders/<order_id>/checkout/ - Start (or resume)
        payment for an order (buyer only)
    POST /api/v1/payments/connect/onboarding/ - Stripe Connect onboarding
        link for the current user
    POST /api/v1/payments/orders/<order_id>/release-payout/ - Release escrow
        to the seller (admin only)

The Stripe webhook endpoint is a plain Django view in
payments.webhooks.views.

Security:
    - Checkout is limited to the order's buyer
    - Payout release requires the admin role; the normal release path is
      the order's DELIVERED shipment update
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from authentication.permissions import IsAdminRole
from payments.serializers import (
    CheckoutSessionSerializer,
    OnboardingLinkSerializer,
    PayoutReleaseSerializer,
)
from payments.services import CheckoutService, ConnectOnboardingService, PayoutService

logger = logging.getLogger(__name__)


class CheckoutView(APIView):
    """
    POST: Create the PaymentIntent for an order.

    Returns the client_secret the buyer confirms the payment with. Calling
    again returns the same PaymentIntent.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Start checkout for an order",
        tags=["Payments"],
        request=None,
        responses={
            201: CheckoutSessionSerializer,
            403: OpenApiResponse(description="Not the buyer"),
            404: OpenApiResponse(description="Order not found"),
            409: OpenApiResponse(description="Order already paid or cancelled"),
        },
    )
    def post(self, request, order_id):
        result = CheckoutService().start_checkout(order_id, actor=request.user)
        if not result:
            return Response(result.to_response(), status=result.http_status)

        return Response(
            CheckoutSessionSerializer(result.data).data, status=status.HTTP_201_CREATED
        )


class ConnectOnboardingView(APIView):
    """POST: Create the user's connected account if needed and return an onboarding link."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Start Stripe Connect onboarding",
        tags=["Payments"],
        request=None,
        responses={200: OnboardingLinkSerializer},
    )
    def post(self, request):
        result = ConnectOnboardingService().start_onboarding(request.user)
        return Response(OnboardingLinkSerializer(result.data).data)


class ReleasePayoutView(APIView):
    """
    POST: Release the payout for an order.

    Idempotent: a payout that has already been released is returned with
    outcome "already_released" and no new transfer is made.

    Stripe failures propagate to core.exception_handler and are reported
    as a generic 500.
    """

    permission_classes = [IsAuthenticated, IsAdminRole]

    @extend_schema(
        summary="Release an order payout",
        tags=["Payments"],
        request=None,
        responses={
            200: PayoutReleaseSerializer,
            404: OpenApiResponse(description="No payout for this order"),
            409: OpenApiResponse(description="Payment not captured or seller not onboarded"),
        },
    )
    def post(self, request, order_id):
        result = PayoutService().release_payout_for_order(order_id, actor=request.user)
        if not result:
            return Response(result.to_response(), status=result.http_status)

        logger.info(
            "Admin payout release",
            extra={
                "order_id": str(order_id),
                "admin_id": str(request.user.id),
                "outcome": result.data.outcome.value,
            },
        )
        return Response(PayoutReleaseSerializer(result.data).data)
