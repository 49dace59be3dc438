"""
Audit service.

Recording is best-effort: a failed audit write is logged and dropped so
the business operation that triggered it still completes. The write runs
in a savepoint, which keeps an enclosing transaction usable after a
database error.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from django.db import DatabaseError, transaction

from audit.models import AuditLog

if TYPE_CHECKING:
    from authentication.models import User

logger = logging.getLogger(__name__)


class AuditService:
    """All methods are static - no instance state is maintained."""

    @staticmethod
    def record(
        entity: str,
        entity_id: Any,
        action: str,
        actor: User | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> AuditLog | None:
        """
        Write an audit entry.

        Returns:
            The created AuditLog, or None if the write failed
        """
        try:
            with transaction.atomic():
                return AuditLog.objects.create(
                    actor=actor,
                    entity=entity,
                    entity_id=str(entity_id),
                    action=action,
                    metadata=metadata or {},
                )
        except DatabaseError:
            logger.exception(
                "Failed to record audit log",
                extra={"entity": entity, "entity_id": str(entity_id), "action": action},
            )
            return None
