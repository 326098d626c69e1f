# lims_core/audit/admin.py
from django.contrib import admin

from lims_core.audit.models import AuditLog, AuditLogArchive


class ReadOnlyAuditAdmin(admin.ModelAdmin):
    list_display = (
        "timestamp",
        "action",
        "entity_type",
        "entity_id",
        "actor",
        "is_truncated",
        "origin",
    )
    list_filter = ("entity_type", "action", "is_truncated")
    search_fields = ("entity_id",)
    ordering = ("-timestamp",)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(AuditLog)
class AuditLogAdmin(ReadOnlyAuditAdmin):
    pass


@admin.register(AuditLogArchive)
class AuditLogArchiveAdmin(ReadOnlyAuditAdmin):
    list_display = ReadOnlyAuditAdmin.list_display + ("archived_at",)
