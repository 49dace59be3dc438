"""
Pytest fixtures for payment tests.

Usage:
    def test_release(pending_payout, fake_stripe):
        PayoutService(stripe_adapter=fake_stripe).release_payout_for_order(
            pending_payout.order_id
        )
"""

import pytest
from django.utils import timezone

from payments.state_machines import PayoutStatus
from payments.tests.factories import PaymentFactory, PayoutFactory
from payments.tests.fakes import FakeStripeAdapter


@pytest.fixture
def fake_stripe():
    return FakeStripeAdapter()


@pytest.fixture
def pending_payout(db):
    """PENDING payout whose seller has a connected account."""
    return PayoutFactory()


@pytest.fixture
def released_payout(db):
    """Payout that has already been released."""
    return PayoutFactory(
        status=PayoutStatus.RELEASED,
        transfer_id="tr_existing",
        released_at=timezone.now(),
    )


@pytest.fixture
def payment(db):
    return PaymentFactory()
