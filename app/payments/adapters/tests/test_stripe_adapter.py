"""
Tests for Stripe adapter.

Tests cover:
- Idempotency key generation
- Error translation for each exception type
- Transfers, payment intents and Connect onboarding calls
- Webhook signature verification
- Configuration from settings
- backoff_delay
"""

import uuid
from unittest.mock import patch

import pytest
import stripe
from django.test import override_settings

from payments.adapters import (
    IdempotencyKeyGenerator,
    PaymentIntentResult,
    StripeAdapter,
    TransferResult,
    backoff_delay,
)
from payments.adapters.tests.conftest import MockStripeObject
from payments.exceptions import (
    StripeAPIUnavailableError,
    StripeInsufficientFundsError,
    StripeInvalidAccountError,
    StripeInvalidRequestError,
    StripeRateLimitError,
    StripeTimeoutError,
)


def create_transfer(**overrides):
    kwargs = {
        "amount_cents": 4500,
        "destination_account": "acct_dest123",
        "idempotency_key": "transfer-key",
    }
    kwargs.update(overrides)
    return StripeAdapter.create_transfer(**kwargs)


# =============================================================================
# IdempotencyKeyGenerator Tests
# =============================================================================


class TestIdempotencyKeyGenerator:
    """Tests for IdempotencyKeyGenerator."""

    def test_generate_key_format(self):
        """Should generate key in correct format."""
        entity_id = uuid.uuid4()
        key = IdempotencyKeyGenerator.generate(
            operation="payout_release",
            entity_id=entity_id,
            attempt=1,
        )

        parts = key.split(":")
        assert len(parts) == 4
        assert parts[0] == "payout_release"
        assert parts[1] == str(entity_id)
        assert parts[2] == "1"
        assert len(parts[3]) == 8

    def test_same_inputs_produce_same_key(self):
        """A retried release must reuse the first request's key."""
        entity_id = uuid.uuid4()

        key1 = IdempotencyKeyGenerator.generate("payout_release", entity_id)
        key2 = IdempotencyKeyGenerator.generate("payout_release", entity_id)

        assert key1 == key2

    def test_different_entities_produce_different_keys(self):
        key1 = IdempotencyKeyGenerator.generate("payout_release", uuid.uuid4())
        key2 = IdempotencyKeyGenerator.generate("payout_release", uuid.uuid4())

        assert key1 != key2

    def test_different_attempts_produce_different_keys(self):
        entity_id = uuid.uuid4()

        key1 = IdempotencyKeyGenerator.generate("transfer", entity_id, attempt=1)
        key2 = IdempotencyKeyGenerator.generate("transfer", entity_id, attempt=2)

        assert key1 != key2

    def test_hash_depends_on_secret_key(self):
        key = IdempotencyKeyGenerator.generate("payout_release", "payout_1")

        with override_settings(SECRET_KEY="rotated-secret"):
            rotated = IdempotencyKeyGenerator.generate("payout_release", "payout_1")

        assert key.rsplit(":", 1)[0] == rotated.rsplit(":", 1)[0]
        assert key != rotated


# =============================================================================
# Helper Function Tests
# =============================================================================


class TestBackoffDelay:
    """Tests for backoff_delay helper."""

    def test_exponential_growth(self):
        """Should be approximately 1, 2, 4 (with up to 25% jitter)."""
        delay0 = backoff_delay(0, base=1.0, max_delay=60.0)
        delay1 = backoff_delay(1, base=1.0, max_delay=60.0)
        delay2 = backoff_delay(2, base=1.0, max_delay=60.0)

        assert 1.0 <= delay0 <= 1.25
        assert 2.0 <= delay1 <= 2.5
        assert 4.0 <= delay2 <= 5.0

    def test_respects_max_delay(self):
        delay = backoff_delay(10, base=1.0, max_delay=60.0)

        # 2^10 = 1024, capped at 60 + jitter
        assert delay <= 75.0

    def test_custom_base(self):
        delay = backoff_delay(0, base=2.0, max_delay=60.0)

        assert 2.0 <= delay <= 2.5


# =============================================================================
# StripeAdapter Error Translation Tests
# =============================================================================


class TestStripeAdapterErrorTranslation:
    """Tests for Stripe error translation to domain exceptions."""

    @pytest.fixture(autouse=True)
    def setup_mocks(self, mock_stripe_http_client):
        pass

    def test_platform_balance_insufficient(
        self, mock_stripe_transfer, invalid_request_error
    ):
        """Should map balance_insufficient to StripeInsufficientFundsError."""
        mock_stripe_transfer.create.side_effect = invalid_request_error(
            message="You have insufficient available funds in your Stripe balance.",
            param=None,
            code="balance_insufficient",
        )

        with pytest.raises(StripeInsufficientFundsError) as exc_info:
            create_transfer()

        assert exc_info.value.is_retryable is False

    def test_invalid_request_error(self, mock_stripe_transfer, invalid_request_error):
        mock_stripe_transfer.create.side_effect = invalid_request_error()

        with pytest.raises(StripeInvalidRequestError) as exc_info:
            create_transfer()

        assert exc_info.value.is_retryable is False
        assert exc_info.value.stripe_code == "parameter_invalid_integer"

    def test_invalid_account_error(self, mock_stripe_transfer, invalid_request_error):
        """Should translate account-related InvalidRequestError to StripeInvalidAccountError."""
        mock_stripe_transfer.create.side_effect = invalid_request_error(
            message="No such account: acct_invalid",
            param="destination",
            code="account_invalid",
        )

        with pytest.raises(StripeInvalidAccountError):
            create_transfer(destination_account="acct_invalid")

    def test_rate_limit_error(self, mock_stripe_transfer, rate_limit_error):
        mock_stripe_transfer.create.side_effect = rate_limit_error

        with pytest.raises(StripeRateLimitError) as exc_info:
            create_transfer()

        assert exc_info.value.is_retryable is True

    def test_api_connection_error(self, mock_stripe_transfer, api_connection_error):
        mock_stripe_transfer.create.side_effect = api_connection_error()

        with pytest.raises(StripeAPIUnavailableError) as exc_info:
            create_transfer()

        assert exc_info.value.is_retryable is True

    def test_api_connection_timeout(self, mock_stripe_transfer, api_connection_error):
        """A timed-out connection is reported as StripeTimeoutError."""
        mock_stripe_transfer.create.side_effect = api_connection_error(
            "Request to Stripe timed out"
        )

        with pytest.raises(StripeTimeoutError) as exc_info:
            create_transfer()

        assert exc_info.value.is_retryable is True

    def test_api_error(self, mock_stripe_transfer, api_error):
        mock_stripe_transfer.create.side_effect = api_error

        with pytest.raises(StripeAPIUnavailableError) as exc_info:
            create_transfer()

        assert exc_info.value.is_retryable is True

    def test_authentication_error(self, mock_stripe_transfer, authentication_error):
        mock_stripe_transfer.create.side_effect = authentication_error

        with pytest.raises(StripeInvalidRequestError) as exc_info:
            create_transfer()

        # Auth errors are permanent, not retryable
        assert exc_info.value.is_retryable is False

    def test_unknown_error(self, mock_stripe_transfer):
        mock_stripe_transfer.create.side_effect = RuntimeError("Unexpected")

        with pytest.raises(StripeAPIUnavailableError) as exc_info:
            create_transfer()

        assert "Unexpected" in str(exc_info.value)


# =============================================================================
# StripeAdapter.create_transfer Tests
# =============================================================================


class TestStripeAdapterCreateTransfer:
    """Tests for StripeAdapter.create_transfer."""

    @pytest.fixture(autouse=True)
    def setup_mocks(self, mock_stripe_http_client):
        pass

    def test_create_transfer_success(self, mock_stripe_transfer, mock_transfer):
        mock_stripe_transfer.create.return_value = mock_transfer(
            id="tr_test123",
            amount=4500,
            destination="acct_dest123",
            metadata={"order_id": "o-1"},
        )

        result = create_transfer(metadata={"order_id": "o-1"})

        assert isinstance(result, TransferResult)
        assert result.id == "tr_test123"
        assert result.amount_cents == 4500
        assert result.destination_account == "acct_dest123"
        assert result.metadata == {"order_id": "o-1"}
        assert result.raw_response["object"] == "transfer"

    def test_passes_idempotency_key_and_params(self, mock_stripe_transfer):
        create_transfer(currency="eur", idempotency_key="payout_release:abc:1:deadbeef")

        call_kwargs = mock_stripe_transfer.create.call_args.kwargs
        assert call_kwargs["idempotency_key"] == "payout_release:abc:1:deadbeef"
        assert call_kwargs["amount"] == 4500
        assert call_kwargs["currency"] == "eur"
        assert call_kwargs["destination"] == "acct_dest123"
        assert call_kwargs["metadata"] == {}


# =============================================================================
# StripeAdapter Payment Intent Tests
# =============================================================================


class TestStripeAdapterPaymentIntents:
    @pytest.fixture(autouse=True)
    def setup_mocks(self, mock_stripe_http_client):
        pass

    def test_create_payment_intent(self, mock_stripe_payment_intent):
        result = StripeAdapter.create_payment_intent(
            amount_cents=8000,
            idempotency_key="checkout:order-1:1:abcd1234",
            metadata={"order_id": "order-1"},
            transfer_group="order-1",
        )

        assert isinstance(result, PaymentIntentResult)
        assert result.id == "pi_test123456"
        assert result.client_secret == "pi_test123456_secret_abc"
        assert result.amount_cents == 8000

        call_kwargs = mock_stripe_payment_intent.create.call_args.kwargs
        assert call_kwargs["idempotency_key"] == "checkout:order-1:1:abcd1234"
        assert call_kwargs["amount"] == 8000
        assert call_kwargs["currency"] == "usd"
        assert call_kwargs["metadata"] == {"order_id": "order-1"}
        assert call_kwargs["transfer_group"] == "order-1"
        # Charged to the platform; the seller is paid by a later transfer
        assert "transfer_data" not in call_kwargs

    def test_create_payment_intent_translates_errors(
        self, mock_stripe_payment_intent, rate_limit_error
    ):
        mock_stripe_payment_intent.create.side_effect = rate_limit_error

        with pytest.raises(StripeRateLimitError):
            StripeAdapter.create_payment_intent(amount_cents=8000, idempotency_key="k")

    def test_retrieve_payment_intent(self, mock_stripe_payment_intent, mock_payment_intent):
        mock_stripe_payment_intent.retrieve.return_value = mock_payment_intent(
            id="pi_existing", status="succeeded"
        )

        result = StripeAdapter.retrieve_payment_intent("pi_existing")

        mock_stripe_payment_intent.retrieve.assert_called_once_with("pi_existing")
        assert result.status == "succeeded"


# =============================================================================
# StripeAdapter Connect Tests
# =============================================================================


class TestStripeAdapterConnect:
    @pytest.fixture(autouse=True)
    def setup_mocks(self, mock_stripe_http_client):
        pass

    def test_create_connect_account(self, mock_stripe_account):
        account_id = StripeAdapter.create_connect_account(
            email="seller@example.com", idempotency_key="connect_account:u-1:1:abcd1234"
        )

        assert account_id == "acct_new123"
        mock_stripe_account.create.assert_called_once_with(
            idempotency_key="connect_account:u-1:1:abcd1234",
            type="express",
            email="seller@example.com",
        )

    def test_create_account_link(self, mock_stripe_account_link):
        url = StripeAdapter.create_account_link(
            "acct_new123",
            refresh_url="https://app.example.com/refresh",
            return_url="https://app.example.com/done",
        )

        assert url == "https://connect.stripe.com/setup/e/acct_new123/abc"
        call_kwargs = mock_stripe_account_link.create.call_args.kwargs
        assert call_kwargs["account"] == "acct_new123"
        assert call_kwargs["type"] == "account_onboarding"

    def test_account_errors_are_translated(self, mock_stripe_account, api_error):
        mock_stripe_account.create.side_effect = api_error

        with pytest.raises(StripeAPIUnavailableError):
            StripeAdapter.create_connect_account(email="s@example.com", idempotency_key="k")


# =============================================================================
# StripeAdapter Webhook Tests
# =============================================================================


class TestVerifyWebhookSignature:
    @override_settings(STRIPE_WEBHOOK_SECRET="whsec_unit")
    def test_returns_event_dict(self):
        event = MockStripeObject({"id": "evt_1", "type": "payment_intent.succeeded"})

        with patch("stripe.Webhook.construct_event", return_value=event) as construct:
            result = StripeAdapter.verify_webhook_signature(b"{}", "t=1,v1=abc")

        construct.assert_called_once_with(b"{}", "t=1,v1=abc", "whsec_unit")
        assert result == {"id": "evt_1", "type": "payment_intent.succeeded"}

    def test_bad_signature(self):
        error = stripe.SignatureVerificationError("No signatures found", "t=1,v1=bad")

        with patch("stripe.Webhook.construct_event", side_effect=error):
            with pytest.raises(StripeInvalidRequestError) as exc_info:
                StripeAdapter.verify_webhook_signature(b"{}", "t=1,v1=bad")

        assert exc_info.value.stripe_code == "signature_verification_failed"

    def test_unparseable_payload(self):
        with patch("stripe.Webhook.construct_event", side_effect=ValueError("bad json")):
            with pytest.raises(StripeInvalidRequestError) as exc_info:
                StripeAdapter.verify_webhook_signature(b"not json", "t=1,v1=abc")

        assert exc_info.value.stripe_code == "invalid_payload"


class TestStripeAdapterConfiguration:
    """Tests for Stripe adapter configuration."""

    @override_settings(STRIPE_SECRET_KEY="sk_test_custom")
    def test_uses_settings_api_key(self, mock_stripe_transfer, mock_stripe_http_client):
        create_transfer()

        assert stripe.api_key == "sk_test_custom"

    @override_settings(STRIPE_API_TIMEOUT_SECONDS=30)
    def test_uses_settings_timeout(self, mock_stripe_transfer, mock_stripe_http_client):
        create_transfer()

        mock_stripe_http_client.assert_called_with(timeout=30)
