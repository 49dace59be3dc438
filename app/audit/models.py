"""
Audit log model.

AuditLog rows are immutable once written. They record who did what to
which entity, with free-form JSON metadata.

Usage:
    from audit.services import AuditService

    AuditService.record(
        actor=request.user,
        entity="listing",
        entity_id=listing.id,
        action="LISTING_APPROVE",
        metadata={"rationale": "Photos and description check out"},
    )
"""

from django.conf import settings
from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin


class AuditLog(UUIDPrimaryKeyMixin, models.Model):
    """
    A single audited action.

    Fields:
        actor: User who performed the action (null for system actions)
        entity: Kind of object acted on, e.g. 'payout', 'review'
        entity_id: Identifier of that object, stored as text
        action: What happened, e.g. 'released', 'moderation.approved'
        metadata: Arbitrary JSON context
        created_at: When the action was recorded
    """

    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="audit_logs",
        help_text="User who performed the action; null for system actions",
    )
    entity = models.CharField(max_length=50, db_index=True)
    entity_id = models.CharField(max_length=64)
    action = models.CharField(max_length=100)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["entity", "entity_id"]),
        ]

    def __str__(self) -> str:
        return f"{self.entity}:{self.entity_id} {self.action}"
