# lims_core/integrity/unit_of_work.py
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from django.db import DatabaseError, transaction
from django.utils import timezone

from lims_core.audit.models import AuditLog
from lims_core.common.models import StampedModel, initial_row_version
from lims_core.integrity.actors import ActorContext
from lims_core.integrity.changeset import EntityChange, Intent, StagedChange, extract_changes, tracked_fields
from lims_core.integrity.concurrency import guarded_delete, guarded_update, loaded_row_version
from lims_core.integrity.exceptions import CapabilityMisuse, ConcurrencyConflict, StoreFailure
from lims_core.integrity.recorder import build_audit_records
from lims_core.integrity.registry import VERSION_FIELD, capabilities_for, kind_for
from lims_core.integrity.soft_delete import apply_soft_delete

logger = logging.getLogger(__name__)


class UnitOfWorkState(enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    FAILED = "failed"


@dataclass
class UnitOfWorkResult:
    inserted: int = 0
    modified: int = 0
    removed: int = 0
    tombstoned: int = 0
    skipped: int = 0
    audit_records: List[AuditLog] = field(default_factory=list)


def _stamp_values(change: EntityChange, *, actor: ActorContext, now: datetime) -> Dict[str, Any]:
    if not change.capabilities.auditable or not isinstance(change.entity, StampedModel):
        return {}
    if change.intent is Intent.INSERT:
        return {"created_at": now, "created_by": actor.actor_id}
    if change.intent is Intent.MODIFY:
        return {"updated_at": now, "updated_by": actor.actor_id}
    return {}


def _restore_baseline(change: EntityChange) -> None:
    # the tombstone wrote only its own fields; drop unsaved edits
    entity = change.entity
    for f in tracked_fields(change.model):
        if f.attname in change.baseline:
            setattr(entity, f.attname, change.baseline[f.attname])


class UnitOfWork:
    """
    One atomic batch of writes.

        with UnitOfWork(actor=resolve_actor(RequestActorSource(request))) as uow:
            uow.update(sample)
            uow.remove(old_result)
            result = uow.commit()

    Staging is in memory only. The DB transaction lives just for the duration
    of commit(), so nothing is held between staging and commit. Leaving the
    block without committing rolls back (discards) the staged changes.
    """

    def __init__(self, *, actor: Optional[ActorContext] = None, using: str = "default"):
        self.actor = actor or ActorContext.system()
        self.using = using
        self.state = UnitOfWorkState.PENDING
        self._staged: List[StagedChange] = []

    # ----------------------------
    # Lifecycle
    # ----------------------------
    def begin(self) -> "UnitOfWork":
        if self.state is not UnitOfWorkState.PENDING:
            raise CapabilityMisuse(f"Unit of work already {self.state.value}")
        self.state = UnitOfWorkState.ACTIVE
        return self

    def __enter__(self) -> "UnitOfWork":
        return self.begin()

    def __exit__(self, exc_type, exc, tb) -> bool:
        if self.state is UnitOfWorkState.ACTIVE:
            self.rollback()
        return False

    def rollback(self) -> None:
        if self.state is not UnitOfWorkState.ACTIVE:
            return
        logger.debug("Discarding %d staged change(s)", len(self._staged))
        self._staged = []
        self.state = UnitOfWorkState.ROLLED_BACK

    cancel = rollback

    @property
    def pending(self) -> Tuple[StagedChange, ...]:
        return tuple(self._staged)

    # ----------------------------
    # Staging
    # ----------------------------
    def add(self, entity) -> None:
        if not entity._state.adding:
            raise CapabilityMisuse(f"{type(entity).__name__} {entity.pk} already exists; use update()")
        self._stage(entity, Intent.INSERT)

    def update(self, entity) -> None:
        self._stage(entity, Intent.MODIFY)

    def remove(self, entity) -> None:
        self._stage(entity, Intent.REMOVE)

    def _stage(self, entity, intent: Intent) -> None:
        if self.state is not UnitOfWorkState.ACTIVE:
            raise CapabilityMisuse(f"Cannot stage on a unit of work that is {self.state.value}")

        caps = capabilities_for(kind_for(type(entity)))
        if intent is not Intent.INSERT:
            if not getattr(entity, "is_loaded", False):
                raise CapabilityMisuse(f"{type(entity).__name__} {entity.pk} was never loaded from the store")
            if caps.concurrency_checked:
                loaded_row_version(entity)

        for s in self._staged:
            if s.entity is entity or (type(s.entity) is type(entity) and s.entity.pk == entity.pk):
                raise CapabilityMisuse(f"{type(entity).__name__} {entity.pk} is already staged")

        self._staged.append(StagedChange(entity=entity, intent=intent))

    # ----------------------------
    # Commit
    # ----------------------------
    def commit(self) -> UnitOfWorkResult:
        if self.state is not UnitOfWorkState.ACTIVE:
            raise CapabilityMisuse(f"Cannot commit a unit of work that is {self.state.value}")

        staged, self._staged = self._staged, []
        now = timezone.now()

        try:
            changes = extract_changes(staged)
            changes = apply_soft_delete(changes, actor_id=self.actor.actor_id, now=now)
            records = build_audit_records(changes, actor=self.actor, timestamp=now)
        except Exception:
            self.state = UnitOfWorkState.FAILED
            raise

        result = UnitOfWorkResult(skipped=len(staged) - len(changes), audit_records=records)
        written: List[Tuple[EntityChange, Dict[str, Any]]] = []
        inserted = []

        try:
            with transaction.atomic(using=self.using):
                for change in changes:
                    values = self._write(change, now=now, inserted=inserted)
                    written.append((change, values))
                if records:
                    AuditLog.objects.using(self.using).bulk_create(records)
        except (ConcurrencyConflict, StoreFailure):
            self._undo_inserts(inserted)
            self.state = UnitOfWorkState.FAILED
            raise
        except DatabaseError as exc:
            self._undo_inserts(inserted)
            self.state = UnitOfWorkState.FAILED
            logger.error("Unit of work failed in the store: %s", exc)
            raise StoreFailure(str(exc)) from exc
        except Exception:
            self._undo_inserts(inserted)
            self.state = UnitOfWorkState.FAILED
            logger.exception("Unit of work failed while writing")
            raise

        for change, values in written:
            entity = change.entity
            if change.intent is Intent.INSERT:
                result.inserted += 1
            elif change.intent is Intent.MODIFY:
                result.modified += 1
                result.tombstoned += 1 if change.tombstoned else 0
            else:
                result.removed += 1
                continue
            if change.soft_deleted:
                _restore_baseline(change)
            for name, value in values.items():
                setattr(entity, name, value)
            entity.mark_loaded()

        self.state = UnitOfWorkState.COMMITTED
        logger.info(
            "Committed unit of work: %d inserted, %d modified (%d tombstoned), %d removed, %d skipped, %d audit record(s)",
            result.inserted,
            result.modified,
            result.tombstoned,
            result.removed,
            result.skipped,
            len(records),
        )
        return result

    def _write(self, change: EntityChange, *, now: datetime, inserted: list) -> Dict[str, Any]:
        entity = change.entity
        model = change.model
        caps = change.capabilities
        stamps = _stamp_values(change, actor=self.actor, now=now)

        if change.intent is Intent.INSERT:
            prior = {name: getattr(entity, name) for name in stamps}
            if caps.concurrency_checked:
                prior[VERSION_FIELD] = getattr(entity, VERSION_FIELD)
                setattr(entity, VERSION_FIELD, initial_row_version())
            for name, value in stamps.items():
                setattr(entity, name, value)
            inserted.append((entity, prior))
            entity.save(force_insert=True, using=self.using)
            return {}

        if change.intent is Intent.REMOVE:
            if caps.concurrency_checked:
                guarded_delete(change, using=self.using)
            else:
                model._base_manager.using(self.using).filter(pk=change.entity_id).delete()
            return {}

        values = {**change.new_values(), **stamps}
        if caps.concurrency_checked:
            values[VERSION_FIELD] = guarded_update(change, values, using=self.using)
            return values

        rows = model._base_manager.using(self.using).filter(pk=change.entity_id).update(**values)
        if rows != 1:
            raise StoreFailure(f"{change.kind} {change.entity_id} no longer exists")
        return values

    @staticmethod
    def _undo_inserts(inserted) -> None:
        # rows are gone with the rollback; put the instances back to "new"
        for entity, prior in inserted:
            for name, value in prior.items():
                setattr(entity, name, value)
            entity._state.adding = True


def execute_unit_of_work(
    changes: Iterable[Tuple[Intent, Any]],
    *,
    actor: Optional[ActorContext] = None,
    using: str = "default",
) -> UnitOfWorkResult:
    """
    Single entry point: stage a batch of (intent, entity) pairs and commit
    them atomically. Raises ConcurrencyConflict / StoreFailure on failure.
    """
    with UnitOfWork(actor=actor, using=using) as uow:
        for intent, entity in changes:
            if intent is Intent.INSERT:
                uow.add(entity)
            elif intent is Intent.MODIFY:
                uow.update(entity)
            else:
                uow.remove(entity)
        return uow.commit()
