# lims_core/integrity/recorder.py
from __future__ import annotations

import enum
import logging
import uuid
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from django.core.serializers.json import DjangoJSONEncoder

from lims_core.audit.models import AuditAction, AuditLog
from lims_core.integrity.actors import ActorContext
from lims_core.integrity.changeset import EntityChange, Intent

logger = logging.getLogger(__name__)

MAX_VALUE_LENGTH = 50
TRUNCATED_PREFIX_LENGTH = 35
TRUNCATION_MARKER = "...[truncated]"

_encoder = DjangoJSONEncoder()


def truncate_value(value: str) -> Tuple[str, bool]:
    """
    > 50 chars -> first 35 + marker (49 chars). Exactly 50 is kept as is.
    """
    if len(value) <= MAX_VALUE_LENGTH:
        return value, False
    return value[:TRUNCATED_PREFIX_LENGTH] + TRUNCATION_MARKER, True


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, enum.Enum):
        return _jsonable(value.value)
    if isinstance(value, str):
        return str(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    if isinstance(value, (dict, list)):
        return value
    try:
        return _encoder.default(value)
    except TypeError:
        return str(value)


def build_payload(values: Optional[Dict[str, Any]]) -> Tuple[Optional[Dict[str, Any]], bool]:
    """Serializable map with oversized strings shortened. Returns (payload, truncated)."""
    if values is None:
        return None, False

    truncated = False
    payload: Dict[str, Any] = {}
    for name, raw in values.items():
        value = _jsonable(raw)
        if isinstance(value, str):
            value, cut = truncate_value(value)
            truncated = truncated or cut
        payload[name] = value
    return payload, truncated


def build_audit_record(change: EntityChange, *, actor: ActorContext, timestamp: datetime) -> Optional[AuditLog]:
    if not change.capabilities.auditable:
        return None

    if change.intent is Intent.REMOVE:
        # no DELETE action exists
        logger.warning("Hard delete of %s %s is not audited", change.kind, change.entity_id)
        return None

    if not change.changes:
        return None

    if change.intent is Intent.INSERT:
        action = AuditAction.CREATE
        before, before_cut = None, False
    else:
        action = AuditAction.UPDATE
        before, before_cut = build_payload(change.old_values())
    after, after_cut = build_payload(change.new_values())

    return AuditLog(
        id=uuid.uuid4(),
        actor_id=actor.actor_id,
        entity_type=change.kind,
        entity_id=change.entity_id,
        action=action,
        old_values=before,
        new_values=after,
        is_truncated=before_cut or after_cut,
        timestamp=timestamp,
        origin=actor.origin,
    )


def build_audit_records(
    changes: Iterable[EntityChange],
    *,
    actor: ActorContext,
    timestamp: datetime,
) -> List[AuditLog]:
    """
    One unsaved AuditLog per audited insert/modify. Must run after the
    soft-delete rewrite so tombstone fields show up in the payload.
    """
    records = []
    for change in changes:
        record = build_audit_record(change, actor=actor, timestamp=timestamp)
        if record is not None:
            records.append(record)
    return records
