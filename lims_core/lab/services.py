# lims_core/lab/services.py
from __future__ import annotations

from typing import Any
from uuid import UUID

from lims_core.integrity.actors import ActorContext
from lims_core.integrity.unit_of_work import UnitOfWork
from lims_core.lab.models import Lab, Sample
from lims_core.lab.selectors import get_sample

SAMPLE_EDITABLE_FIELDS = frozenset({
    "sample_type",
    "location_latitude",
    "location_longitude",
    "location_description",
    "location_hierarchy",
    "collection_date",
    "collector_name",
    "notes",
    "status",
})


class SampleService:
    """
    Write-model operations for samples. Every write goes through a unit of
    work, so stamps, tombstoning, version checks and the audit trail are
    applied by the pipeline rather than here.
    """

    @staticmethod
    def create_sample(*, lab: Lab, actor: ActorContext | None = None, **fields: Any) -> Sample:
        unknown = set(fields) - SAMPLE_EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown sample field(s): {', '.join(sorted(unknown))}")

        sample = Sample(lab=lab, **fields)
        with UnitOfWork(actor=actor) as uow:
            uow.add(sample)
            uow.commit()
        return sample

    @staticmethod
    def update_sample(*, sample: Sample, actor: ActorContext | None = None, **changes: Any) -> Sample:
        """
        `sample` must be the instance the caller loaded: its version token is
        what the write is checked against.
        """
        unknown = set(changes) - SAMPLE_EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown sample field(s): {', '.join(sorted(unknown))}")

        for name, value in changes.items():
            setattr(sample, name, value)

        with UnitOfWork(actor=actor) as uow:
            uow.update(sample)
            uow.commit()
        return sample

    @staticmethod
    def delete_sample(*, sample: Sample, actor: ActorContext | None = None) -> Sample:
        with UnitOfWork(actor=actor) as uow:
            uow.remove(sample)
            uow.commit()
        return sample

    @staticmethod
    def delete_sample_by_id(*, sample_id: UUID, actor: ActorContext | None = None) -> Sample:
        return SampleService.delete_sample(sample=get_sample(sample_id=sample_id), actor=actor)
