"""
Stripe Connect onboarding for sellers.

A seller needs a connected account before PayoutService can transfer
escrow to them. start_onboarding creates an Express account on first use
(stored as User.stripe_connect_id) and returns a fresh hosted onboarding
link each time. Stripe reports completion through the account.updated
webhook, which sets User.stripe_payouts_enabled.

Usage:
    from payments.services import ConnectOnboardingService

    result = ConnectOnboardingService().start_onboarding(request.user)
    redirect_url = result.data.url
"""

from __future__ import annotations

from dataclasses import dataclass

from django.conf import settings
from django.db.models import Q

from audit.services import AuditService
from authentication.models import User
from core.services import BaseService, ServiceResult
from payments.adapters import IdempotencyKeyGenerator, StripeAdapter


@dataclass
class OnboardingLink:
    account_id: str
    url: str
    created_account: bool = False


class ConnectOnboardingService(BaseService):
    """
    Creates connected accounts and onboarding links.

    Stripe failures raise payments.exceptions.StripeError.
    """

    IDEMPOTENCY_OPERATION = "connect_account"

    def __init__(self, stripe_adapter=None):
        self.stripe = stripe_adapter or StripeAdapter

    def start_onboarding(self, user: User) -> ServiceResult[OnboardingLink]:
        logger = self.get_logger()

        account_id = user.stripe_connect_id
        created = False
        if not account_id:
            account_id = self.stripe.create_connect_account(
                email=user.email,
                idempotency_key=IdempotencyKeyGenerator.generate(
                    self.IDEMPOTENCY_OPERATION, user.id
                ),
            )
            # Keep an account id stored by a concurrent request
            User.objects.filter(
                Q(stripe_connect_id__isnull=True) | Q(stripe_connect_id=""), pk=user.pk
            ).update(stripe_connect_id=account_id)
            user.refresh_from_db(fields=["stripe_connect_id"])
            account_id = user.stripe_connect_id
            created = True

            AuditService.record(
                entity="user",
                entity_id=user.id,
                action="STRIPE_ACCOUNT_CREATED",
                actor=user,
                metadata={"account_id": account_id},
            )
            logger.info(
                "Connected account created",
                extra={"user_id": str(user.id), "account_id": account_id},
            )

        url = self.stripe.create_account_link(
            account_id,
            refresh_url=settings.STRIPE_CONNECT_REFRESH_URL,
            return_url=settings.STRIPE_CONNECT_RETURN_URL,
        )
        return ServiceResult.success(OnboardingLink(account_id, url, created))
