"""
Marketplace views.

Endpoints:
    POST /api/v1/marketplace/offers/                       - Make an offer
    POST /api/v1/marketplace/offers/<id>/accept/            - Accept (creates order)
    POST /api/v1/marketplace/offers/<id>/counter/           - Counter
    POST /api/v1/marketplace/offers/<id>/reject/            - Reject
    POST /api/v1/marketplace/offers/<id>/expire/            - Expire if overdue
    GET  /api/v1/marketplace/orders/<id>/                   - Order detail
    POST /api/v1/marketplace/orders/<id>/shipment-status/   - Update shipment
    POST /api/v1/marketplace/reviews/                       - Submit a review
    GET  /api/v1/marketplace/reviews/pending/               - Moderation queue
    POST /api/v1/marketplace/reviews/<id>/decision/         - Moderate a review
    POST /api/v1/marketplace/admin/listings/<id>/moderate/  - Moderate a listing

Every view validates the body with a serializer (400 with field errors),
then calls a service and maps a failed ServiceResult to its HTTP status.
"""

import logging

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from authentication.permissions import IsAdminRole
from marketplace.models import ReviewStatus
from marketplace.serializers import (
    ListingModerationSerializer,
    ListingSerializer,
    OfferAcceptSerializer,
    OfferCounterSerializer,
    OfferCreateSerializer,
    OfferSerializer,
    OrderSerializer,
    ReviewCreateSerializer,
    ReviewDecisionSerializer,
    ReviewSerializer,
    ShipmentStatusSerializer,
    ShipmentUpdateResponseSerializer,
)
from marketplace.services import (
    ListingModerationService,
    OfferService,
    OrderService,
    ReviewService,
)

logger = logging.getLogger(__name__)


def failure_response(result) -> Response:
    return Response(result.to_response(), status=result.http_status)


# =============================================================================
# Offers
# =============================================================================


class OfferCreateView(APIView):
    """
    POST: Make an offer on an active listing.

    Request body:
        {"listing_id": "<uuid>", "amount": "80.00", "message": "...",
         "expires_at": "2024-06-01T12:00:00Z"}
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Make an offer",
        tags=["Marketplace - Offers"],
        request=OfferCreateSerializer,
        responses={
            201: OfferSerializer,
            404: OpenApiResponse(description="Listing not found"),
            409: OpenApiResponse(description="Listing inactive or open offer exists"),
        },
    )
    def post(self, request):
        serializer = OfferCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = OfferService().create_offer(
            buyer=request.user,
            listing_id=data["listing_id"],
            amount=data["amount"],
            message=data["message"],
            expires_at=data["expires_at"],
        )
        if not result:
            return failure_response(result)

        return Response(OfferSerializer(result.data).data, status=status.HTTP_201_CREATED)


class OfferAcceptView(APIView):
    """POST: Accept an offer. Returns the created order (201)."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Accept an offer",
        tags=["Marketplace - Offers"],
        request=OfferAcceptSerializer,
        responses={
            201: OrderSerializer,
            403: OpenApiResponse(description="Not your turn to respond"),
            409: OpenApiResponse(description="Offer not open or expired"),
        },
    )
    def post(self, request, offer_id):
        serializer = OfferAcceptSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = OfferService().accept_offer(
            offer_id,
            actor=request.user,
            shipping_address_id=serializer.validated_data["shipping_address_id"],
            billing_address_id=serializer.validated_data["billing_address_id"],
        )
        if not result:
            return failure_response(result)

        return Response(OrderSerializer(result.data).data, status=status.HTTP_201_CREATED)


class OfferCounterView(APIView):
    """POST: Counter an offer with a new amount and optional expiry."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Counter an offer",
        tags=["Marketplace - Offers"],
        request=OfferCounterSerializer,
        responses={200: OfferSerializer},
    )
    def post(self, request, offer_id):
        serializer = OfferCounterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = OfferService().counter_offer(
            offer_id,
            actor=request.user,
            amount=serializer.validated_data["amount"],
            expires_at=serializer.validated_data["expires_at"],
        )
        if not result:
            return failure_response(result)

        return Response(OfferSerializer(result.data).data)


class OfferRejectView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Reject an offer",
        tags=["Marketplace - Offers"],
        request=None,
        responses={200: OfferSerializer},
    )
    def post(self, request, offer_id):
        result = OfferService().reject_offer(offer_id, actor=request.user)
        if not result:
            return failure_response(result)

        return Response(OfferSerializer(result.data).data)


class OfferExpireView(APIView):
    """
    POST: Expire an offer whose deadline has passed.

    Repeating the call on an expired offer returns it unchanged.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Expire an offer",
        tags=["Marketplace - Offers"],
        request=None,
        responses={
            200: OfferSerializer,
            409: OpenApiResponse(description="Offer has not reached its expiry"),
        },
    )
    def post(self, request, offer_id):
        result = OfferService().expire_offer(offer_id, actor=request.user)
        if not result:
            return failure_response(result)

        return Response(OfferSerializer(result.data).data)


# =============================================================================
# Orders
# =============================================================================


class OrderDetailView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Order detail",
        tags=["Marketplace - Orders"],
        responses={200: OrderSerializer},
    )
    def get(self, request, order_id):
        result = OrderService().get_order(order_id, actor=request.user)
        if not result:
            return failure_response(result)

        return Response(OrderSerializer(result.data).data)


class ShipmentStatusView(APIView):
    """
    POST: Update an order's shipment status (seller or admin).

    Marking the order delivered releases the seller's payout; the
    "payout" field of the response reports what happened to it.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Update shipment status",
        tags=["Marketplace - Orders"],
        request=ShipmentStatusSerializer,
        responses={
            200: ShipmentUpdateResponseSerializer,
            409: OpenApiResponse(description="Shipment already delivered"),
        },
    )
    def post(self, request, order_id):
        serializer = ShipmentStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = OrderService().update_shipment_status(
            order_id,
            actor=request.user,
            status=serializer.validated_data["status"],
            tracking_number=serializer.validated_data.get("tracking_number") or None,
        )
        if not result:
            return failure_response(result)

        return Response(ShipmentUpdateResponseSerializer(result.data).data)


# =============================================================================
# Reviews
# =============================================================================


class ReviewCreateView(APIView):
    """
    POST: Review the other party on an order.

    Returns 201, or 202 when the review was stored BLOCKED.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Submit a review",
        tags=["Marketplace - Reviews"],
        request=ReviewCreateSerializer,
        responses={201: ReviewSerializer, 202: ReviewSerializer},
    )
    def post(self, request):
        serializer = ReviewCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = ReviewService().submit_review(
            order_id=data["order_id"],
            author=request.user,
            rating=data["rating"],
            body=data["body"],
            target_user_id=data["target_user_id"],
        )
        if not result:
            return failure_response(result)

        review = result.data
        response_status = (
            status.HTTP_202_ACCEPTED
            if review.status == ReviewStatus.BLOCKED
            else status.HTTP_201_CREATED
        )
        return Response(ReviewSerializer(review).data, status=response_status)


class PendingReviewListView(APIView):
    permission_classes = [IsAuthenticated, IsAdminRole]

    @extend_schema(
        summary="Reviews awaiting moderation",
        tags=["Marketplace - Reviews"],
        responses={200: ReviewSerializer(many=True)},
    )
    def get(self, request):
        reviews = ReviewService().list_pending()
        return Response(ReviewSerializer(reviews, many=True).data)


class ReviewDecisionView(APIView):
    permission_classes = [IsAuthenticated, IsAdminRole]

    @extend_schema(
        summary="Approve or reject a review",
        tags=["Marketplace - Reviews"],
        request=ReviewDecisionSerializer,
        responses={200: ReviewSerializer},
    )
    def post(self, request, review_id):
        serializer = ReviewDecisionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = ReviewService().record_decision(
            review_id,
            moderator=request.user,
            status=serializer.validated_data["status"],
            reason=serializer.validated_data["reason"],
        )
        if not result:
            return failure_response(result)

        return Response(ReviewSerializer(result.data).data)


# =============================================================================
# Listing moderation
# =============================================================================


class ListingModerationView(APIView):
    """
    POST: Approve or reject a listing.

    Request body:
        {"decision": "approve" | "reject", "rationale": "at least 12 chars"}
    """

    permission_classes = [IsAuthenticated, IsAdminRole]

    @extend_schema(
        summary="Moderate a listing",
        tags=["Marketplace - Admin"],
        request=ListingModerationSerializer,
        responses={200: ListingSerializer},
    )
    def post(self, request, listing_id):
        serializer = ListingModerationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = ListingModerationService().moderate(
            listing_id,
            moderator=request.user,
            decision=serializer.validated_data["decision"],
            rationale=serializer.validated_data["rationale"],
        )
        if not result:
            return failure_response(result)

        return Response(ListingSerializer(result.data).data)
