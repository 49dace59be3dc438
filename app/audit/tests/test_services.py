"""
Tests for AuditService.
"""

from unittest.mock import patch

import pytest
from django.db import DatabaseError, transaction

from audit.models import AuditLog
from audit.services import AuditService


@pytest.mark.django_db
class TestAuditServiceRecord:
    def test_record_creates_entry(self, admin_user):
        log = AuditService.record(
            entity="listing",
            entity_id=42,
            action="LISTING_APPROVE",
            actor=admin_user,
            metadata={"rationale": "All photos verified"},
        )

        assert log is not None
        stored = AuditLog.objects.get(pk=log.pk)
        assert stored.entity_id == "42"
        assert stored.actor == admin_user
        assert stored.metadata == {"rationale": "All photos verified"}
        assert str(stored) == "listing:42 LISTING_APPROVE"

    def test_record_without_actor_or_metadata(self):
        log = AuditService.record(entity="payout", entity_id="abc", action="released")

        assert log.actor is None
        assert log.metadata == {}

    def test_database_error_is_logged_and_swallowed(self, caplog):
        with patch.object(AuditLog.objects, "create", side_effect=DatabaseError("boom")):
            result = AuditService.record(entity="review", entity_id="r1", action="submitted")

        assert result is None
        assert "Failed to record audit log" in caplog.text

    def test_failure_leaves_enclosing_transaction_usable(self):
        with transaction.atomic():
            with patch.object(
                AuditLog.objects, "create", side_effect=DatabaseError("boom")
            ):
                AuditService.record(entity="review", entity_id="r1", action="submitted")
            AuditService.record(entity="review", entity_id="r2", action="submitted")

        assert list(AuditLog.objects.values_list("entity_id", flat=True)) == ["r2"]
