"""
Tests for core.exception_handler.api_exception_handler.
"""

import logging

import pytest
from django_fsm import TransitionNotAllowed
from rest_framework import serializers
from rest_framework.exceptions import NotAuthenticated

from core.exception_handler import api_exception_handler
from core.exceptions import ConflictError, ExternalServiceError, PermissionDeniedError


class DummyView:
    pass


@pytest.fixture
def context():
    return {"view": DummyView()}


class TestApplicationErrors:
    def test_conflict(self, context):
        exc = ConflictError("Offer is no longer open", error_code="OFFER_NOT_OPEN")

        response = api_exception_handler(exc, context)

        assert response.status_code == 409
        assert response.data == {"error": "Offer is no longer open", "error_code": "OFFER_NOT_OPEN"}

    def test_permission_denied(self, context):
        response = api_exception_handler(PermissionDeniedError("Not yours"), context)

        assert response.status_code == 403
        assert response.data["error_code"] == "PERMISSION_DENIED"

    def test_internal_error_hides_detail(self, context, caplog):
        exc = ExternalServiceError("Stripe key sk_live_secret rejected")

        with caplog.at_level(logging.ERROR, logger="core.exception_handler"):
            response = api_exception_handler(exc, context)

        assert response.status_code == 500
        assert response.data == {"error": "Internal error", "error_code": "INTERNAL_ERROR"}
        assert "Application error in view" in caplog.text


class TestOtherErrors:
    def test_transition_not_allowed_is_conflict(self, context):
        response = api_exception_handler(TransitionNotAllowed("Can't switch"), context)

        assert response.status_code == 409
        assert response.data["error_code"] == "INVALID_STATE_TRANSITION"

    def test_drf_exceptions_use_default_handling(self, context):
        validation = api_exception_handler(
            serializers.ValidationError({"amount": ["Required"]}), context
        )
        unauthenticated = api_exception_handler(NotAuthenticated(), context)

        assert validation.status_code == 400
        assert validation.data == {"amount": ["Required"]}
        assert unauthenticated.status_code == 401

    def test_unexpected_error_is_generic_500(self, context, caplog):
        with caplog.at_level(logging.ERROR, logger="core.exception_handler"):
            response = api_exception_handler(KeyError("secret_field"), context)

        assert response.status_code == 500
        assert response.data == {"error": "Internal error", "error_code": "INTERNAL_ERROR"}
        assert "secret_field" not in str(response.data)
        assert "Unhandled error in view" in caplog.text
