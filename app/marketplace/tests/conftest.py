"""
Pytest fixtures for marketplace tests.

Services are built with a RecordingScheduler and a FakeStripeAdapter so
no Celery task is enqueued and no Stripe call is made.
"""

import pytest

from marketplace.services import OfferService, OrderService
from marketplace.tests.factories import ListingFactory, OfferFactory
from marketplace.tests.fakes import RecordingScheduler
from payments.services import PayoutService
from payments.tests.fakes import FakeStripeAdapter


@pytest.fixture
def scheduler():
    return RecordingScheduler()


@pytest.fixture
def fake_stripe():
    return FakeStripeAdapter()


@pytest.fixture
def offer_service(scheduler):
    return OfferService(scheduler=scheduler)


@pytest.fixture
def order_service(scheduler, fake_stripe):
    return OrderService(
        payout_service=PayoutService(stripe_adapter=fake_stripe),
        scheduler=scheduler,
    )


@pytest.fixture
def listing(seller):
    return ListingFactory(seller=seller)


@pytest.fixture
def open_offer(listing, buyer):
    return OfferFactory(listing=listing, buyer=buyer)


@pytest.fixture
def patch_celery_collaborators(mocker, scheduler, fake_stripe):
    """
    Route services built with their defaults (views, tasks) through the fakes.
    """
    mocker.patch("marketplace.services.CeleryTaskScheduler", return_value=scheduler)
    mocker.patch("payments.services.payout_service.StripeAdapter", fake_stripe)
    return scheduler
