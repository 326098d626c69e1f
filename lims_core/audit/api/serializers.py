# lims_core/audit/api/serializers.py
from rest_framework import serializers

from lims_core.audit.models import AuditLog, AuditLogArchive

_FIELDS = [
    "id",
    "actor_id",
    "entity_type",
    "entity_id",
    "action",
    "old_values",
    "new_values",
    "is_truncated",
    "timestamp",
    "origin",
    "is_archived",
]


class AuditLogSerializer(serializers.ModelSerializer):
    actor_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = AuditLog
        fields = _FIELDS
        read_only_fields = fields


class AuditLogArchiveSerializer(serializers.ModelSerializer):
    actor_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = AuditLogArchive
        fields = _FIELDS + ["archived_at"]
        read_only_fields = fields
