import uuid
from datetime import date, datetime, timezone

import pytest

from lims_core.audit.models import AuditAction, AuditLog
from lims_core.audit.selectors import get_audit_log, list_archived_audit_logs, list_audit_logs
from lims_core.integrity.registry import EntityKind

pytestmark = pytest.mark.django_db


def _record(actor, *, entity_type=EntityKind.SAMPLE, entity_id=None, action=AuditAction.UPDATE, at):
    return AuditLog.objects.create(
        actor=actor,
        entity_type=entity_type,
        entity_id=entity_id or uuid.uuid4(),
        action=action,
        new_values={"status": "COMPLETED"},
        timestamp=at,
    )


def test_filters_by_entity_and_actor(user, other_user):
    sample_id = uuid.uuid4()
    mine = _record(user, entity_id=sample_id, at=datetime(2026, 8, 1, 9, tzinfo=timezone.utc))
    _record(other_user, entity_id=sample_id, at=datetime(2026, 8, 1, 10, tzinfo=timezone.utc))
    _record(user, entity_type=EntityKind.LAB, at=datetime(2026, 8, 1, 11, tzinfo=timezone.utc))

    assert list_audit_logs(entity_id=sample_id).count() == 2
    assert list(list_audit_logs(entity_id=sample_id, actor_id=user.pk)) == [mine]
    assert list_audit_logs(entity_type=EntityKind.LAB).count() == 1
    assert list_audit_logs(action=AuditAction.CREATE).count() == 0


def test_newest_first(user):
    older = _record(user, at=datetime(2026, 8, 1, tzinfo=timezone.utc))
    newer = _record(user, at=datetime(2026, 8, 2, tzinfo=timezone.utc))

    assert list(list_audit_logs()) == [newer, older]


def test_end_date_includes_the_whole_day(user):
    late = _record(user, at=datetime(2026, 8, 5, 23, 59, 59, tzinfo=timezone.utc))
    _record(user, at=datetime(2026, 8, 6, 0, 0, 1, tzinfo=timezone.utc))
    _record(user, at=datetime(2026, 8, 3, 12, tzinfo=timezone.utc))

    qs = list_audit_logs(start=date(2026, 8, 4), end=date(2026, 8, 5))

    assert list(qs) == [late]


def test_get_and_archive_listing(user):
    record = _record(user, at=datetime(2026, 8, 1, tzinfo=timezone.utc))

    assert get_audit_log(record.id) == record
    with pytest.raises(AuditLog.DoesNotExist):
        get_audit_log(uuid.uuid4())
    assert list_archived_audit_logs().count() == 0
