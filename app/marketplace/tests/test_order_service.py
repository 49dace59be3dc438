"""
Tests for OrderService.

Covers:
- Order access for participants and moderators
- Shipment status updates and the order timeline
- DELIVERED is final
- Payout release on delivery, including Stripe failures
"""

import uuid

import pytest

from authentication.tests.factories import AdminFactory, SellerFactory, UserFactory
from marketplace.models import Order, OrderStatus, ShipmentStatus, TimelineEventType
from marketplace.services import PayoutStep
from marketplace.tests.factories import OrderFactory, OrderTimelineEventFactory
from payments.exceptions import StripeAPIUnavailableError, StripeInvalidAccountError
from payments.models import Payout
from payments.state_machines import PaymentStatus, PayoutStatus
from payments.tests.factories import PayoutFactory


@pytest.fixture
def order(buyer, seller):
    order = OrderFactory(buyer=buyer, seller=seller)
    PayoutFactory(order=order)
    return order


def timeline_types(order):
    return list(order.timeline.values_list("type", flat=True))


@pytest.mark.django_db
class TestGetOrder:
    def test_participants_can_view(self, order_service, order, buyer, seller):
        assert order_service.get_order(order.id, buyer).data == order
        assert order_service.get_order(order.id, seller).data == order

    def test_moderator_can_view(self, order_service, order, admin_user):
        assert order_service.get_order(order.id, admin_user).success

    def test_stranger_forbidden(self, order_service, order):
        result = order_service.get_order(order.id, UserFactory())

        assert result.http_status == 403

    def test_unknown_order(self, order_service, buyer):
        result = order_service.get_order(uuid.uuid4(), buyer)

        assert result.error_code == "ORDER_NOT_FOUND"


@pytest.mark.django_db
class TestUpdateShipmentStatus:
    def test_marks_shipped_with_tracking(self, order_service, order, seller):
        result = order_service.update_shipment_status(
            order.id, seller, ShipmentStatus.SHIPPED, tracking_number="1Z999"
        )

        assert result.success
        assert result.data.payout is None
        order = Order.objects.get(pk=order.id)
        assert order.shipment_status == ShipmentStatus.SHIPPED
        assert order.tracking_number == "1Z999"

        event = order.timeline.get()
        assert event.type == TimelineEventType.SHIPPED
        assert event.detail == "Shipment marked as shipped (tracking 1Z999)"

    def test_other_statuses_are_notes(self, order_service, order, seller):
        order_service.update_shipment_status(order.id, seller, ShipmentStatus.PREPARING)

        event = Order.objects.get(pk=order.id).timeline.get()
        assert event.type == TimelineEventType.NOTE
        assert event.detail == "Shipment marked as preparing"

    def test_tracking_change_alone_adds_event(self, order_service, order, seller):
        order_service.update_shipment_status(order.id, seller, ShipmentStatus.SHIPPED, "1Z1")
        order_service.update_shipment_status(order.id, seller, ShipmentStatus.SHIPPED, "1Z2")

        assert Order.objects.get(pk=order.id).tracking_number == "1Z2"
        assert order.timeline.count() == 2

    def test_unchanged_update_adds_no_event(self, order_service, order, seller):
        order_service.update_shipment_status(order.id, seller, ShipmentStatus.SHIPPED, "1Z1")

        result = order_service.update_shipment_status(order.id, seller, ShipmentStatus.SHIPPED)

        assert result.success
        assert order.timeline.count() == 1
        assert Order.objects.get(pk=order.id).tracking_number == "1Z1"

    def test_timeline_keeps_existing_events(self, order_service, order, seller):
        OrderTimelineEventFactory(order=order, type=TimelineEventType.CREATED)

        order_service.update_shipment_status(order.id, seller, ShipmentStatus.SHIPPED)

        assert timeline_types(order) == [TimelineEventType.CREATED, TimelineEventType.SHIPPED]

    def test_admin_may_update(self, order_service, order):
        result = order_service.update_shipment_status(
            order.id, AdminFactory(), ShipmentStatus.IN_TRANSIT
        )

        assert result.success

    @pytest.mark.parametrize("actor_factory", [UserFactory, SellerFactory])
    def test_non_seller_forbidden(self, order_service, order, actor_factory):
        result = order_service.update_shipment_status(
            order.id, actor_factory(), ShipmentStatus.SHIPPED
        )

        assert result.http_status == 403

    def test_buyer_forbidden(self, order_service, order, buyer):
        result = order_service.update_shipment_status(order.id, buyer, ShipmentStatus.DELIVERED)

        assert result.http_status == 403
        assert Order.objects.get(pk=order.id).shipment_status == ShipmentStatus.PENDING

    def test_unknown_status(self, order_service, order, seller):
        result = order_service.update_shipment_status(order.id, seller, "teleported")

        assert result.error_code == "INVALID_SHIPMENT_STATUS"
        assert result.http_status == 400

    def test_unknown_order(self, order_service, seller):
        result = order_service.update_shipment_status(uuid.uuid4(), seller, ShipmentStatus.SHIPPED)

        assert result.error_code == "ORDER_NOT_FOUND"


@pytest.mark.django_db
class TestDelivery:
    def test_delivery_fulfils_order_and_releases_payout(
        self, order_service, fake_stripe, order, seller
    ):
        result = order_service.update_shipment_status(order.id, seller, ShipmentStatus.DELIVERED)

        assert result.data.payout == PayoutStep.RELEASED
        order = Order.objects.get(pk=order.id)
        assert order.status == OrderStatus.FULFILLED
        assert order.shipment_status == ShipmentStatus.DELIVERED
        assert timeline_types(order) == [
            TimelineEventType.DELIVERED,
            TimelineEventType.PAYOUT_RELEASED,
        ]
        payout = Payout.objects.get(order=order)
        assert payout.status == PayoutStatus.RELEASED
        assert len(fake_stripe.transfers) == 1

    def test_repeated_delivery_is_idempotent(self, order_service, fake_stripe, order, seller):
        order_service.update_shipment_status(order.id, seller, ShipmentStatus.DELIVERED)

        result = order_service.update_shipment_status(order.id, seller, ShipmentStatus.DELIVERED)

        assert result.success
        assert result.data.payout == PayoutStep.ALREADY_RELEASED
        assert len(fake_stripe.transfers) == 1
        assert order.timeline.filter(type=TimelineEventType.DELIVERED).count() == 1

    @pytest.mark.parametrize(
        "status", [ShipmentStatus.SHIPPED, ShipmentStatus.RETURNED, ShipmentStatus.PENDING]
    )
    def test_cannot_leave_delivered(self, order_service, order, seller, status):
        order_service.update_shipment_status(order.id, seller, ShipmentStatus.DELIVERED)

        result = order_service.update_shipment_status(order.id, seller, status)

        assert result.error_code == "SHIPMENT_ALREADY_DELIVERED"
        assert result.http_status == 409
        assert Order.objects.get(pk=order.id).shipment_status == ShipmentStatus.DELIVERED

    def test_transient_stripe_failure_schedules_retry(
        self, order_service, scheduler, fake_stripe, order, seller
    ):
        fake_stripe.fail_with(StripeAPIUnavailableError("Stripe is down"))

        result = order_service.update_shipment_status(order.id, seller, ShipmentStatus.DELIVERED)

        assert result.success
        assert result.data.payout == PayoutStep.RETRY_SCHEDULED
        assert Order.objects.get(pk=order.id).shipment_status == ShipmentStatus.DELIVERED
        assert Payout.objects.get(order=order).status == PayoutStatus.PENDING

        assert len(scheduler.payout_retries) == 1
        order_id, countdown = scheduler.payout_retries[0]
        assert order_id == order.id
        assert 1.0 <= countdown <= 1.25

    def test_permanent_stripe_failure_leaves_payout_pending(
        self, order_service, scheduler, fake_stripe, order, seller
    ):
        fake_stripe.fail_with(StripeInvalidAccountError("No such account"))

        result = order_service.update_shipment_status(order.id, seller, ShipmentStatus.DELIVERED)

        assert result.success
        assert result.data.payout == PayoutStep.FAILED
        assert scheduler.payout_retries == []
        assert Payout.objects.get(order=order).status == PayoutStatus.PENDING
        assert Order.objects.get(pk=order.id).status == OrderStatus.FULFILLED

    def test_seller_without_connected_account(self, order_service, fake_stripe, buyer):
        seller = SellerFactory(stripe_connect_id=None)
        order = OrderFactory(buyer=buyer, seller=seller)
        PayoutFactory(order=order)

        result = order_service.update_shipment_status(order.id, seller, ShipmentStatus.DELIVERED)

        assert result.data.payout == PayoutStep.PENDING
        assert fake_stripe.transfers == []

    def test_unpaid_order_leaves_payout_pending(self, order_service, fake_stripe, buyer, seller):
        order = OrderFactory(buyer=buyer, seller=seller)
        PayoutFactory(order=order, payment__status=PaymentStatus.PENDING)

        result = order_service.update_shipment_status(order.id, seller, ShipmentStatus.DELIVERED)

        assert result.data.payout == PayoutStep.PENDING
        assert fake_stripe.transfers == []
        assert Payout.objects.get(order=order).status == PayoutStatus.PENDING
        assert Order.objects.get(pk=order.id).status == OrderStatus.FULFILLED
