"""
State machine enums for payment models.
"""

from payments.state_machines.states import (
    PaymentStatus,
    PayoutStatus,
    WebhookEventStatus,
)

__all__ = [
    "PaymentStatus",
    "PayoutStatus",
    "WebhookEventStatus",
]
