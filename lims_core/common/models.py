# lims_core/common/models.py
from __future__ import annotations

import copy
import uuid

from django.db import models
from django.utils import timezone


ROW_VERSION_SIZE = 8


def initial_row_version() -> bytes:
    """
    Token a row gets when first inserted.
    All-zero is reserved for "never loaded".
    """
    return (1).to_bytes(ROW_VERSION_SIZE, "big")


def _snapshot(value):
    # bytea comes back as memoryview on PostgreSQL
    if isinstance(value, memoryview):
        return value.tobytes()
    return copy.deepcopy(value)


class EntityModel(models.Model):
    """
    Base for every entity that goes through the integrity pipeline.

    Keeps a snapshot of the values read from the store so the pipeline can
    tell what actually changed (and which version token was loaded).
    Instances built in memory have no snapshot.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    class Meta:
        abstract = True

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        instance._loaded_values = {
            name: _snapshot(getattr(instance, name)) for name in field_names
        }
        return instance

    @property
    def is_loaded(self) -> bool:
        return getattr(self, "_loaded_values", None) is not None

    def loaded_value(self, attname: str, default=None):
        return (getattr(self, "_loaded_values", None) or {}).get(attname, default)

    def has_loaded_value(self, attname: str) -> bool:
        return attname in (getattr(self, "_loaded_values", None) or {})

    def refresh_from_db(self, using=None, fields=None, **kwargs):
        # deferred fields read lazily land here; fold them into the snapshot
        super().refresh_from_db(using=using, fields=fields, **kwargs)
        if not self.is_loaded:
            return
        if fields is None:
            attnames = [f.attname for f in self._meta.concrete_fields]
        else:
            attnames = [self._meta.get_field(name).attname for name in fields]
        deferred = self.get_deferred_fields()
        for attname in attnames:
            if attname not in deferred:
                self._loaded_values[attname] = _snapshot(getattr(self, attname))

    def mark_loaded(self) -> None:
        """Re-baseline after a successful write. Still-deferred fields stay out."""
        deferred = self.get_deferred_fields()
        self._loaded_values = {
            f.attname: _snapshot(getattr(self, f.attname))
            for f in self._meta.concrete_fields
            if f.attname not in deferred
        }
        self._state.adding = False


class StampedModel(models.Model):
    """
    Who/when stamps. Written by the pipeline on insert/modify,
    never part of audit payloads.
    """
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    created_by = models.UUIDField(null=True, blank=True)
    updated_at = models.DateTimeField(null=True, blank=True)
    updated_by = models.UUIDField(null=True, blank=True)

    class Meta:
        abstract = True


class LiveManager(models.Manager):
    """Default read path: tombstoned rows are invisible."""

    def get_queryset(self):
        return super().get_queryset().filter(is_deleted=False)


class SoftDeleteModel(models.Model):
    is_deleted = models.BooleanField(default=False, db_index=True)
    deleted_at = models.DateTimeField(null=True, blank=True)
    deleted_by = models.UUIDField(null=True, blank=True)

    objects = LiveManager()
    all_objects = models.Manager()

    class Meta:
        abstract = True


class VersionedModel(models.Model):
    """
    Optimistic concurrency: opaque token, compared for equality only.
    """
    row_version = models.BinaryField(
        max_length=ROW_VERSION_SIZE,
        default=initial_row_version,
        editable=False,
    )

    class Meta:
        abstract = True
