# lims_core/lab/selectors.py
from __future__ import annotations

from uuid import UUID

from django.db.models import QuerySet

from lims_core.lab.models import Lab, Parameter, Sample, TestResult


def _manager(model, include_deleted: bool):
    # `objects` hides tombstoned rows; `all_objects` is the explicit override
    return model.all_objects if include_deleted else model.objects


def get_lab(*, lab_id: UUID, include_deleted: bool = False) -> Lab:
    return _manager(Lab, include_deleted).get(id=lab_id)


def get_sample(*, sample_id: UUID, include_deleted: bool = False) -> Sample:
    return _manager(Sample, include_deleted).select_related("lab").get(id=sample_id)


def list_samples(
    *,
    lab_id: UUID | None = None,
    status: str | None = None,
    include_deleted: bool = False,
) -> QuerySet[Sample]:
    qs = _manager(Sample, include_deleted).select_related("lab")
    if lab_id:
        qs = qs.filter(lab_id=lab_id)
    if status:
        qs = qs.filter(status=status)
    return qs.order_by("-collection_date")


def get_test_result(*, test_result_id: UUID, include_deleted: bool = False) -> TestResult:
    return _manager(TestResult, include_deleted).get(id=test_result_id)


def list_test_results(*, sample_id: UUID | None = None, include_deleted: bool = False) -> QuerySet[TestResult]:
    qs = _manager(TestResult, include_deleted).select_related("parameter")
    if sample_id:
        qs = qs.filter(sample_id=sample_id)
    return qs.order_by("-test_date")


def list_parameters(*, active_only: bool = False, include_deleted: bool = False) -> QuerySet[Parameter]:
    qs = _manager(Parameter, include_deleted)
    if active_only:
        qs = qs.filter(is_active=True)
    return qs.order_by("name")
