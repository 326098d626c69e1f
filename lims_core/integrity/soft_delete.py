# lims_core/integrity/soft_delete.py
from __future__ import annotations

import dataclasses
import logging
from datetime import datetime
from typing import Iterable, List
from uuid import UUID

from lims_core.integrity.changeset import EntityChange, Intent, PropertyChange

logger = logging.getLogger(__name__)


def tombstone(change: EntityChange, *, actor_id: UUID, now: datetime) -> EntityChange:
    """
    Remove -> Modify with the three tombstone fields set.
    Re-deleting refreshes timestamp/actor and never raises.
    """
    baseline = change.baseline
    was_deleted = bool(baseline.get("is_deleted", False))

    changes = []
    if not was_deleted:
        changes.append(PropertyChange(name="is_deleted", old_value=False, new_value=True))
    changes.append(PropertyChange(name="deleted_at", old_value=baseline.get("deleted_at"), new_value=now))
    changes.append(PropertyChange(name="deleted_by", old_value=baseline.get("deleted_by"), new_value=actor_id))

    return dataclasses.replace(
        change,
        intent=Intent.MODIFY,
        changes=tuple(changes),
        tombstoned=not was_deleted,
        soft_deleted=True,
    )


def apply_soft_delete(changes: Iterable[EntityChange], *, actor_id: UUID, now: datetime) -> List[EntityChange]:
    """
    Rewrite removes for tombstone-capable kinds. Everything else passes
    through untouched (other removes stay physical deletes). No cascade.
    """
    out: List[EntityChange] = []
    for change in changes:
        if change.intent is Intent.REMOVE and change.capabilities.soft_deletable:
            rewritten = tombstone(change, actor_id=actor_id, now=now)
            if not rewritten.tombstoned:
                logger.debug("%s %s already tombstoned; refreshing deletion stamp", change.kind, change.entity_id)
            out.append(rewritten)
        else:
            out.append(change)
    return out
