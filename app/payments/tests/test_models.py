"""
Tests for payment models.

Covers:
- Payout release transition and its guard
- Conditional release (PayoutQuerySet.mark_released)
- transfer_id / status check constraint
- amount_cents conversion
"""

from decimal import Decimal

import pytest
from django.db import IntegrityError, transaction
from django.utils import timezone
from django_fsm import TransitionNotAllowed, can_proceed

from payments.models import Payment, Payout
from payments.state_machines import PaymentStatus, PayoutStatus
from payments.tests.factories import PayoutFactory


@pytest.mark.django_db
class TestPayoutTransitions:
    """Tests for the PENDING -> RELEASED transition."""

    def test_new_payout_is_pending(self, pending_payout):
        assert pending_payout.status == PayoutStatus.PENDING
        assert pending_payout.transfer_id is None
        assert can_proceed(pending_payout.release)

    def test_release_sets_transfer_and_timestamp(self, pending_payout):
        pending_payout.release(transfer_id="tr_abc")

        assert pending_payout.status == PayoutStatus.RELEASED
        assert pending_payout.transfer_id == "tr_abc"
        assert pending_payout.released_at is not None

    def test_released_payout_cannot_release_again(self, released_payout):
        assert not can_proceed(released_payout.release)

        with pytest.raises(TransitionNotAllowed):
            released_payout.release(transfer_id="tr_other")

    def test_status_is_protected(self, pending_payout):
        with pytest.raises(AttributeError):
            pending_payout.status = PayoutStatus.RELEASED


@pytest.mark.django_db
class TestMarkReleased:
    """Tests for PayoutQuerySet.mark_released."""

    def test_first_call_wins(self, pending_payout):
        won = Payout.objects.mark_released(pending_payout.pk, "tr_first")

        assert won is True
        payout = Payout.objects.get(pk=pending_payout.pk)
        assert payout.status == PayoutStatus.RELEASED
        assert payout.transfer_id == "tr_first"
        assert payout.released_at is not None

    def test_second_call_loses_and_keeps_transfer(self, pending_payout):
        Payout.objects.mark_released(pending_payout.pk, "tr_first")

        won = Payout.objects.mark_released(pending_payout.pk, "tr_second")

        assert won is False
        assert Payout.objects.get(pk=pending_payout.pk).transfer_id == "tr_first"

    def test_uses_given_release_time(self, pending_payout):
        released_at = timezone.now() - timezone.timedelta(minutes=5)

        Payout.objects.mark_released(pending_payout.pk, "tr_1", released_at=released_at)

        assert Payout.objects.get(pk=pending_payout.pk).released_at == released_at


@pytest.mark.django_db
class TestPayoutConstraints:
    def test_pending_payout_cannot_have_transfer_id(self, pending_payout):
        with pytest.raises(IntegrityError), transaction.atomic():
            Payout.objects.filter(pk=pending_payout.pk).update(transfer_id="tr_orphan")

    def test_released_payout_requires_transfer_id(self, pending_payout):
        with pytest.raises(IntegrityError), transaction.atomic():
            Payout.objects.filter(pk=pending_payout.pk).update(
                status=PayoutStatus.RELEASED
            )

    def test_one_payout_per_order(self, pending_payout):
        with pytest.raises(IntegrityError), transaction.atomic():
            PayoutFactory(order=pending_payout.order)


@pytest.mark.django_db
class TestPayoutAmounts:
    @pytest.mark.parametrize(
        "amount,expected",
        [
            (Decimal("90.00"), 9000),
            (Decimal("42.50"), 4250),
            (Decimal("0.01"), 1),
        ],
    )
    def test_amount_cents(self, amount, expected):
        payout = PayoutFactory.build(amount=amount)

        assert payout.amount_cents == expected


@pytest.mark.django_db
class TestPayment:
    def test_defaults_to_pending(self, payment):
        assert payment.status == PaymentStatus.PENDING
        assert payment.stripe_payment_intent_id is None

    def test_breakdown_adds_up(self, payment):
        assert (
            payment.application_fee_amount + payment.tax_amount + payment.escrow_amount
            == payment.amount
        )

    def test_reachable_from_order(self, payment):
        assert Payment.objects.get(order=payment.order) == payment
        assert payment.order.payment == payment
