# lims_core/audit/models.py
import uuid

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models

from lims_core.integrity.exceptions import CapabilityMisuse
from lims_core.integrity.registry import EntityKind


class AuditAction(models.TextChoices):
    # Removes are rewritten to UPDATE by the soft-delete stage.
    CREATE = "CREATE", "Create"
    UPDATE = "UPDATE", "Update"


class AuditRecordBase(models.Model):
    """
    Shared shape of the live and archive partitions.
    old_values/new_values hold only the properties that changed.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    entity_type = models.CharField(max_length=32, choices=EntityKind.choices, db_index=True)
    entity_id = models.UUIDField(db_index=True)
    action = models.CharField(max_length=16, choices=AuditAction.choices)

    old_values = models.JSONField(null=True, blank=True, encoder=DjangoJSONEncoder)
    new_values = models.JSONField(encoder=DjangoJSONEncoder)
    is_truncated = models.BooleanField(default=False)

    timestamp = models.DateTimeField(db_index=True)  # UTC capture instant
    origin = models.CharField(max_length=45, null=True, blank=True)
    is_archived = models.BooleanField(default=False)

    class Meta:
        abstract = True

    def __str__(self) -> str:
        return f"{self.action} {self.entity_type}:{self.entity_id} at {self.timestamp}"


class AuditLog(AuditRecordBase):
    """
    Immutable audit record, written only by the unit of work.
    """
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="audit_logs",
    )

    class Meta:
        db_table = "audit_log"
        ordering = ["-timestamp"]
        indexes = [
            models.Index(fields=["entity_type", "entity_id"], name="idx_audit_log_entity"),
            models.Index(fields=["actor", "timestamp"], name="idx_audit_log_actor"),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise CapabilityMisuse("Audit records are immutable")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise CapabilityMisuse("Audit records are never deleted; they are archived")


class AuditLogArchive(AuditRecordBase):
    """
    Cold partition for records past the retention window.
    """
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="archived_audit_logs",
    )
    archived_at = models.DateTimeField(db_index=True)

    class Meta:
        db_table = "audit_log_archive"
        ordering = ["-timestamp"]
        indexes = [
            models.Index(fields=["entity_type", "entity_id"], name="idx_audit_arch_entity"),
            models.Index(fields=["actor", "timestamp"], name="idx_audit_arch_actor"),
        ]
