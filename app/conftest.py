"""
Project-wide pytest configuration.

pytest-django loads config.test_settings (see pyproject.toml). This module
adds shared API client and user fixtures; app-specific fixtures live in
each app's tests/conftest.py.
"""

import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken


def pytest_collection_modifyitems(items):
    """
    Auto-mark tests based on filename patterns.

    Mapping:
    - test_views.py, test_services.py, test_tasks.py, etc. → integration
    - test_models.py, test_financial.py, test_serializers.py, etc. → unit
    - Unmatched files → integration (safe default for Django)

    Explicit markers on test functions/classes take precedence.
    """
    integration_patterns = [
        "test_views.py",
        "test_services.py",
        "test_tasks.py",
        "test_offer_service.py",
        "test_order_service.py",
        "test_payout_service.py",
        "test_review_service.py",
        "test_exception_handler.py",
    ]

    unit_patterns = [
        "test_models.py",
        "test_financial.py",
        "test_serializers.py",
        "test_stripe_adapter.py",
        "test_scheduling.py",
        "test_results.py",
    ]

    for item in items:
        existing_markers = {m.name for m in item.iter_markers()}
        if existing_markers & {"unit", "integration"}:
            continue

        filename = str(item.fspath).split("/")[-1]

        if any(pattern in filename for pattern in integration_patterns):
            item.add_marker(pytest.mark.integration)
        elif any(pattern in filename for pattern in unit_patterns):
            item.add_marker(pytest.mark.unit)
        else:
            item.add_marker(pytest.mark.integration)


@pytest.fixture
def api_client():
    """Unauthenticated API client for public endpoints."""
    return APIClient()


@pytest.fixture
def authenticated_client_factory(db):
    """
    Factory to create JWT-authenticated clients for any user.

    Usage:
        def test_example(authenticated_client_factory, seller):
            client = authenticated_client_factory(seller)
            response = client.get("/api/v1/auth/policies/")
    """

    def _make_client(user):
        client = APIClient()
        refresh = RefreshToken.for_user(user)
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {refresh.access_token}")
        return client

    return _make_client


@pytest.fixture
def buyer(db):
    from authentication.tests.factories import UserFactory

    return UserFactory()


@pytest.fixture
def seller(db):
    from authentication.tests.factories import SellerFactory

    return SellerFactory()


@pytest.fixture
def admin_user(db):
    from authentication.tests.factories import AdminFactory

    return AdminFactory()
