"""
Celery tasks for authentication.

This module defines async tasks for:
- Sending verification emails

Related files:
    - services.py: EmailVerificationService queues these tasks on commit
    - models.py: EmailVerificationToken model

Usage:
    from authentication.tasks import send_verification_email
    send_verification_email.delay(token_id=str(token.id))
"""

import logging

from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    autoretry_for=(OSError,),
    retry_backoff=True,
    retry_kwargs={"max_retries": 3},
)
def send_verification_email(self, token_id: str) -> bool:
    """
    Send the email verification link for a token.

    Args:
        token_id: ID of the EmailVerificationToken to send

    Returns:
        True if the email was sent, False if the token is missing, used
        or expired

    Raises:
        OSError (including smtplib.SMTPException), to trigger a retry
    """
    from authentication.models import EmailVerificationToken

    token = (
        EmailVerificationToken.objects.select_related("user")
        .filter(id=token_id)
        .first()
    )
    if token is None or not token.is_valid:
        logger.warning(
            "Verification token not usable, email not sent",
            extra={"token_id": token_id},
        )
        return False

    verification_url = f"{settings.FRONTEND_URL}/verify-email?token={token.token}"
    send_mail(
        subject="Verify your email address",
        message=(
            f"Hi {token.user.get_short_name()},\n\n"
            f"Confirm your email address by opening this link:\n{verification_url}\n\n"
            f"The link expires at {token.expires_at:%Y-%m-%d %H:%M} UTC."
        ),
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[token.user.email],
    )

    logger.info(
        "Verification email sent",
        extra={"user_id": str(token.user_id), "celery_retries": self.request.retries},
    )
    return True
