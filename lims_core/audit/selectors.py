# lims_core/audit/selectors.py
from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from uuid import UUID

from django.db.models import QuerySet

from lims_core.audit.models import AuditLog, AuditLogArchive


def _end_of_day(value: date | datetime) -> datetime:
    """End dates are inclusive of the whole day."""
    day = value.date() if isinstance(value, datetime) else value
    return datetime.combine(day + timedelta(days=1), time.min, tzinfo=timezone.utc)


def _start(value: date | datetime) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def _filter(
    qs: QuerySet,
    *,
    entity_type: str | None,
    entity_id: UUID | None,
    actor_id: UUID | None,
    action: str | None,
    start: date | datetime | None,
    end: date | datetime | None,
) -> QuerySet:
    if entity_type:
        qs = qs.filter(entity_type=entity_type)
    if entity_id:
        qs = qs.filter(entity_id=entity_id)
    if actor_id:
        qs = qs.filter(actor_id=actor_id)
    if action:
        qs = qs.filter(action=action)
    if start:
        qs = qs.filter(timestamp__gte=_start(start))
    if end:
        qs = qs.filter(timestamp__lt=_end_of_day(end))
    return qs.order_by("-timestamp")


def list_audit_logs(
    *,
    entity_type: str | None = None,
    entity_id: UUID | None = None,
    actor_id: UUID | None = None,
    action: str | None = None,
    start: date | datetime | None = None,
    end: date | datetime | None = None,
) -> QuerySet[AuditLog]:
    return _filter(
        AuditLog.objects.all(),
        entity_type=entity_type,
        entity_id=entity_id,
        actor_id=actor_id,
        action=action,
        start=start,
        end=end,
    )


def list_archived_audit_logs(
    *,
    entity_type: str | None = None,
    entity_id: UUID | None = None,
    actor_id: UUID | None = None,
    action: str | None = None,
    start: date | datetime | None = None,
    end: date | datetime | None = None,
) -> QuerySet[AuditLogArchive]:
    return _filter(
        AuditLogArchive.objects.all(),
        entity_type=entity_type,
        entity_id=entity_id,
        actor_id=actor_id,
        action=action,
        start=start,
        end=end,
    )


def get_audit_log(audit_log_id: UUID) -> AuditLog:
    return AuditLog.objects.get(id=audit_log_id)
