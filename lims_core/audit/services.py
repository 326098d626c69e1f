# lims_core/audit/services.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from lims_core.audit.models import AuditLog, AuditLogArchive

logger = logging.getLogger(__name__)

_COPIED_FIELDS = (
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
)


def retention_cutoff(now: datetime | None = None, retention_days: int | None = None) -> datetime:
    now = now or timezone.now()
    days = retention_days if retention_days is not None else settings.AUDIT_RETENTION_DAYS
    return now - timedelta(days=days)


@transaction.atomic
def _archive_batch(ids: list, *, archived_at: datetime) -> int:
    rows = list(AuditLog.objects.filter(id__in=ids).select_for_update())
    AuditLogArchive.objects.bulk_create(
        [
            AuditLogArchive(
                **{name: getattr(row, name) for name in _COPIED_FIELDS},
                is_archived=True,
                archived_at=archived_at,
            )
            for row in rows
        ]
    )
    # queryset delete: AuditLog.delete() refuses on purpose
    AuditLog.objects.filter(id__in=[r.id for r in rows]).delete()
    return len(rows)


def archive_expired_audit_logs(
    *,
    now: datetime | None = None,
    retention_days: int | None = None,
    batch_size: int | None = None,
) -> int:
    """
    Moves audit records older than the retention window (90 days by default)
    into the archive partition. Records are copied, never mutated.
    Each batch is its own transaction. Returns the number archived.

    Runs as a job (manage.py archive_audit_logs), never on the write path.
    """
    now = now or timezone.now()
    cutoff = retention_cutoff(now, retention_days)
    batch_size = batch_size or settings.AUDIT_ARCHIVE_BATCH_SIZE

    total = 0
    while True:
        ids = list(
            AuditLog.objects.filter(timestamp__lt=cutoff)
            .order_by("timestamp")
            .values_list("id", flat=True)[:batch_size]
        )
        if not ids:
            break
        total += _archive_batch(ids, archived_at=now)

    logger.info("Archived %d audit record(s) older than %s", total, cutoff.isoformat())
    return total
