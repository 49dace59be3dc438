"""
Django admin configuration for the audit log (read-only).
"""

from django.contrib import admin

from audit.models import AuditLog


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ("created_at", "actor", "entity", "entity_id", "action")
    list_filter = ("entity", "action")
    search_fields = ("entity_id", "actor__email")
    readonly_fields = ("actor", "entity", "entity_id", "action", "metadata", "created_at")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
