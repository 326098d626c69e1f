# lims_core/integrity/changeset.py
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from django.db import models

from lims_core.integrity.exceptions import CapabilityMisuse
from lims_core.integrity.registry import Capabilities, EntityKind, capabilities_for, kind_for

# Bookkeeping columns: written by the pipeline, never diffed.
UNTRACKED_FIELDS = frozenset({
    "row_version",
    "created_at",
    "created_by",
    "updated_at",
    "updated_by",
})


class Intent(enum.Enum):
    INSERT = "insert"
    MODIFY = "modify"
    REMOVE = "remove"


@dataclass(frozen=True)
class StagedChange:
    entity: models.Model
    intent: Intent


@dataclass(frozen=True)
class PropertyChange:
    name: str
    old_value: Any
    new_value: Any


@dataclass(frozen=True)
class EntityChange:
    entity: models.Model = field(compare=False)
    kind: EntityKind
    capabilities: Capabilities
    intent: Intent
    changes: Tuple[PropertyChange, ...] = ()
    # full last-known property set (store side for loaded rows)
    baseline: Dict[str, Any] = field(default_factory=dict, compare=False)
    tombstoned: bool = False
    # remove rewritten to a tombstone; unsaved edits are not part of it
    soft_deleted: bool = False

    @property
    def model(self):
        return type(self.entity)

    @property
    def entity_id(self) -> UUID:
        return self.entity.pk

    @property
    def changed_names(self) -> List[str]:
        return [c.name for c in self.changes]

    def new_values(self) -> Dict[str, Any]:
        return {c.name: c.new_value for c in self.changes}

    def old_values(self) -> Dict[str, Any]:
        return {c.name: c.old_value for c in self.changes}


def tracked_fields(model) -> List[models.Field]:
    return [
        f for f in model._meta.concrete_fields
        if not f.primary_key and f.attname not in UNTRACKED_FIELDS
    ]


def _is_default(f: models.Field, value: Any) -> bool:
    return value == f.get_default()


def _insert_changes(entity) -> Tuple[PropertyChange, ...]:
    out = []
    for f in tracked_fields(type(entity)):
        value = getattr(entity, f.attname)
        if _is_default(f, value):
            continue
        out.append(PropertyChange(name=f.attname, old_value=None, new_value=value))
    return tuple(out)


def _modify_changes(entity) -> Tuple[PropertyChange, ...]:
    out = []
    deferred = entity.get_deferred_fields()
    for f in tracked_fields(type(entity)):
        # never read, so never changed
        if f.attname in deferred and not entity.has_loaded_value(f.attname):
            continue
        old = entity.loaded_value(f.attname)
        new = getattr(entity, f.attname)
        if old != new:
            out.append(PropertyChange(name=f.attname, old_value=old, new_value=new))
    return tuple(out)


def _baseline(entity) -> Dict[str, Any]:
    loaded = getattr(entity, "_loaded_values", None)
    if loaded is not None:
        return dict(loaded)
    return {f.attname: getattr(entity, f.attname) for f in type(entity)._meta.concrete_fields}


def extract_change(staged: StagedChange) -> Optional[EntityChange]:
    entity = staged.entity
    kind = kind_for(type(entity))
    caps = capabilities_for(kind)

    if staged.intent is not Intent.INSERT and not getattr(entity, "is_loaded", False):
        raise CapabilityMisuse(f"{kind} {entity.pk} was never loaded from the store")

    if staged.intent is Intent.INSERT:
        changes = _insert_changes(entity)
    elif staged.intent is Intent.MODIFY:
        changes = _modify_changes(entity)
        if not changes:
            return None
    else:
        changes = ()

    return EntityChange(
        entity=entity,
        kind=kind,
        capabilities=caps,
        intent=staged.intent,
        changes=changes,
        baseline=_baseline(entity),
    )


def extract_changes(staged: Iterable[StagedChange]) -> List[EntityChange]:
    """
    Intent + per-property diff for each staged entity.
    Modifies with nothing actually changed are dropped.
    """
    out: List[EntityChange] = []
    for s in staged:
        change = extract_change(s)
        if change is not None:
            out.append(change)
    return out
