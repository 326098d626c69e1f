import uuid
from datetime import datetime, timedelta, timezone

import pytest
from rest_framework.test import APIClient

from lims_core.audit.models import AuditAction, AuditLog
from lims_core.audit.services import archive_expired_audit_logs
from lims_core.integrity.registry import EntityKind

pytestmark = pytest.mark.django_db


def _record(actor, *, at, entity_type=EntityKind.SAMPLE):
    return AuditLog.objects.create(
        actor=actor,
        entity_type=entity_type,
        entity_id=uuid.uuid4(),
        action=AuditAction.CREATE,
        new_values={"collector_name": "N. Amrani"},
        timestamp=at,
    )


def test_list_is_paginated_and_filterable(api_client, user):
    now = datetime.now(timezone.utc)
    sample_record = _record(user, at=now)
    _record(user, at=now - timedelta(minutes=1), entity_type=EntityKind.LAB)

    r = api_client.get("/api/v1/audit-logs/", {"entity_type": "Sample"})

    assert r.status_code == 200, r.data
    assert r.data["count"] == 1
    row = r.data["results"][0]
    assert row["id"] == str(sample_record.id)
    assert row["actor_id"] == str(user.pk)
    assert row["action"] == "CREATE"
    assert row["new_values"] == {"collector_name": "N. Amrani"}
    assert row["is_truncated"] is False


def test_rows_sharing_a_timestamp_page_without_repeats(api_client, user):
    at = datetime.now(timezone.utc)
    ids = {str(_record(user, at=at).id) for _ in range(3)}

    seen = []
    for page in (1, 2, 3):
        r = api_client.get("/api/v1/audit-logs/", {"page": page, "page_size": 1})
        assert r.status_code == 200, r.data
        seen.extend(row["id"] for row in r.data["results"])

    assert sorted(seen) == sorted(ids)


def test_invalid_filter_returns_error_envelope(api_client):
    r = api_client.get("/api/v1/audit-logs/", {"entity_id": "nope"})

    assert r.status_code == 400
    body = r.json()
    assert body["error"]["code"] == "validation_error"
    assert "entity_id" in body["error"]["details"]
    assert body["error"]["request_id"]


def test_retrieve_single_record(api_client, user):
    record = _record(user, at=datetime.now(timezone.utc))

    r = api_client.get(f"/api/v1/audit-logs/{record.id}/")

    assert r.status_code == 200
    assert r.data["entity_id"] == str(record.entity_id)


def test_retrieve_unknown_record_is_404(api_client):
    r = api_client.get(f"/api/v1/audit-logs/{uuid.uuid4()}/")

    assert r.status_code == 404


def test_archive_listing(api_client, user):
    now = datetime.now(timezone.utc)
    old = _record(user, at=now - timedelta(days=200))
    archive_expired_audit_logs(now=now)

    r = api_client.get("/api/v1/audit-logs/archive/")

    assert r.status_code == 200, r.data
    assert r.data["count"] == 1
    assert r.data["results"][0]["id"] == str(old.id)
    assert r.data["results"][0]["is_archived"] is True
    assert r.data["results"][0]["archived_at"]


def test_audit_trail_requires_authentication(db):
    r = APIClient().get("/api/v1/audit-logs/")

    assert r.status_code in (401, 403)
    assert "error" in r.json()
