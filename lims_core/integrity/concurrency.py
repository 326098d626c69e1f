# lims_core/integrity/concurrency.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from lims_core.common.models import ROW_VERSION_SIZE
from lims_core.integrity.changeset import EntityChange, Intent, tracked_fields
from lims_core.integrity.exceptions import CapabilityMisuse, ConcurrencyConflict
from lims_core.integrity.registry import VERSION_FIELD

logger = logging.getLogger(__name__)

_ZERO = bytes(ROW_VERSION_SIZE)

# never echoed back in conflict details
REDACTED_FIELDS = frozenset({"password"})


def as_token(value) -> bytes:
    if value is None:
        return b""
    if isinstance(value, memoryview):
        return value.tobytes()
    return bytes(value)


def next_row_version(token: bytes) -> bytes:
    """Successor token. Opaque to callers; only ever compared for equality."""
    n = int.from_bytes(as_token(token) or _ZERO, "big")
    # zero is reserved for "never loaded"; wrap to 1
    n = (n + 1) % (1 << (8 * ROW_VERSION_SIZE)) or 1
    return n.to_bytes(ROW_VERSION_SIZE, "big")


def loaded_row_version(entity) -> bytes:
    """
    Token captured when the entity was read. Never-loaded entities have none,
    and checking them would silently defeat the protection.
    """
    if not getattr(entity, "is_loaded", False):
        raise CapabilityMisuse(f"{type(entity).__name__} {entity.pk} has no version token: load it first")

    token = as_token(entity.loaded_value(VERSION_FIELD))
    if not token or token == _ZERO:
        raise CapabilityMisuse(f"{type(entity).__name__} {entity.pk} carries an empty version token")
    return token


def current_values(model, pk, *, using: str) -> Optional[Dict[str, Any]]:
    names = [f.attname for f in tracked_fields(model) if f.attname not in REDACTED_FIELDS]
    return model._base_manager.using(using).filter(pk=pk).values(*names).first()


def _conflict(change: EntityChange, *, using: str) -> ConcurrencyConflict:
    current = current_values(change.model, change.entity_id, using=using)
    logger.warning(
        "Version conflict on %s %s (row %s)",
        change.kind,
        change.entity_id,
        "missing" if current is None else "changed",
    )
    return ConcurrencyConflict(
        entity_type=change.kind,
        entity_id=change.entity_id,
        attempted={k: v for k, v in change.new_values().items() if k not in REDACTED_FIELDS},
        current=current,
    )


def guarded_update(change: EntityChange, values: Dict[str, Any], *, using: str) -> bytes:
    """
    Compare-and-swap on row_version, checked by the store inside the UPDATE
    itself. Returns the new token.
    """
    expected = loaded_row_version(change.entity)
    new_token = next_row_version(expected)

    rows = (
        change.model._base_manager.using(using)
        .filter(pk=change.entity_id, **{VERSION_FIELD: expected})
        .update(**values, **{VERSION_FIELD: new_token})
    )
    if rows != 1:
        raise _conflict(change, using=using)
    return new_token


def guarded_delete(change: EntityChange, *, using: str) -> None:
    if change.intent is not Intent.REMOVE:
        raise CapabilityMisuse("guarded_delete called for a non-remove change")

    expected = loaded_row_version(change.entity)
    model = change.model
    _, per_model = (
        model._base_manager.using(using)
        .filter(pk=change.entity_id, **{VERSION_FIELD: expected})
        .delete()
    )
    if per_model.get(model._meta.label, 0) != 1:
        raise _conflict(change, using=using)
