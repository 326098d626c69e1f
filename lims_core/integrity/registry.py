# lims_core/integrity/registry.py
"""
Out-of-band capability table: which entity kinds are audited, tombstoned
and version-checked. The pipeline stages consult this table only; models
never carry their own audit/delete/version logic.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Type

from django.apps import apps
from django.core.exceptions import FieldDoesNotExist, ImproperlyConfigured
from django.db import models

from lims_core.integrity.exceptions import CapabilityMisuse


class EntityKind(models.TextChoices):
    LAB = "Lab", "Lab"
    USER = "User", "User"
    SAMPLE = "Sample", "Sample"
    TEST_RESULT = "TestResult", "Test result"
    PARAMETER = "Parameter", "Parameter"
    USER_LAB = "UserLab", "User lab membership"


@dataclass(frozen=True)
class Capabilities:
    auditable: bool = False
    soft_deletable: bool = False
    concurrency_checked: bool = False


CAPABILITIES: Dict[EntityKind, Capabilities] = {
    EntityKind.LAB: Capabilities(auditable=True, soft_deletable=True, concurrency_checked=True),
    EntityKind.SAMPLE: Capabilities(auditable=True, soft_deletable=True, concurrency_checked=True),
    EntityKind.TEST_RESULT: Capabilities(auditable=True, soft_deletable=True, concurrency_checked=True),
    EntityKind.PARAMETER: Capabilities(auditable=True, soft_deletable=True),
    EntityKind.USER_LAB: Capabilities(auditable=True),
    # Accounts hold password material: never audited.
    EntityKind.USER: Capabilities(concurrency_checked=True),
}

MODEL_KINDS: Dict[str, EntityKind] = {
    "lab.Lab": EntityKind.LAB,
    "lab.Sample": EntityKind.SAMPLE,
    "lab.TestResult": EntityKind.TEST_RESULT,
    "lab.Parameter": EntityKind.PARAMETER,
    "lab.UserLab": EntityKind.USER_LAB,
    "iam.User": EntityKind.USER,
}

TOMBSTONE_FIELDS = ("is_deleted", "deleted_at", "deleted_by")
VERSION_FIELD = "row_version"


def kind_for(model: Type[models.Model]) -> EntityKind:
    kind = MODEL_KINDS.get(model._meta.label)
    if kind is None:
        raise CapabilityMisuse(f"{model._meta.label} is not registered with the write pipeline")
    return kind


def capabilities_for(kind: EntityKind) -> Capabilities:
    return CAPABILITIES.get(kind, Capabilities())


def _has_field(model: Type[models.Model], name: str) -> bool:
    try:
        model._meta.get_field(name)
    except FieldDoesNotExist:
        return False
    return True


def validate_registry() -> None:
    """
    Called from IntegrityConfig.ready(): every declared facet must be backed by
    the fields the pipeline writes.
    """
    for label, kind in MODEL_KINDS.items():
        model = apps.get_model(label)
        caps = capabilities_for(kind)

        if caps.soft_deletable:
            missing = [f for f in TOMBSTONE_FIELDS if not _has_field(model, f)]
            if missing:
                raise ImproperlyConfigured(f"{label} is declared soft-deletable but lacks {', '.join(missing)}")

        if caps.concurrency_checked and not _has_field(model, VERSION_FIELD):
            raise ImproperlyConfigured(f"{label} is declared concurrency-checked but lacks {VERSION_FIELD}")
