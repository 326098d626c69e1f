from datetime import datetime, timezone

import pytest

from lims_core.audit.models import AuditAction, AuditLog
from lims_core.common.models import initial_row_version
from lims_core.common.tests.helpers import reload
from lims_core.integrity.changeset import Intent
from lims_core.integrity.concurrency import as_token
from lims_core.integrity.exceptions import CapabilityMisuse, ConcurrencyConflict, StoreFailure
from lims_core.integrity.unit_of_work import UnitOfWork, UnitOfWorkState, execute_unit_of_work
from lims_core.lab import models as lab_models

pytestmark = pytest.mark.django_db


def _new_sample(lab, **overrides):
    fields = dict(
        lab=lab,
        sample_type=lab_models.SampleType.SURFACE_WATER,
        location_latitude=35.1,
        location_longitude=-5.3,
        collection_date=datetime(2026, 7, 3, 7, 45, tzinfo=timezone.utc),
        collector_name="K. Alaoui",
    )
    fields.update(overrides)
    return lab_models.Sample(**fields)


def test_insert_writes_row_stamps_and_create_record(lab, actor):
    new = _new_sample(lab)

    with UnitOfWork(actor=actor) as uow:
        uow.add(new)
        result = uow.commit()

    assert uow.state is UnitOfWorkState.COMMITTED
    assert result.inserted == 1
    assert len(result.audit_records) == 1

    stored = reload(new)
    assert stored.created_by == actor.actor_id
    assert stored.updated_by is None
    assert as_token(stored.row_version) == initial_row_version()

    record = AuditLog.objects.get(entity_id=new.pk)
    assert record.action == AuditAction.CREATE
    assert record.actor_id == actor.actor_id
    assert record.origin == "10.0.0.7"
    assert record.old_values is None
    assert record.new_values["collector_name"] == "K. Alaoui"
    assert "created_by" not in record.new_values
    assert "row_version" not in record.new_values

    # committed instances can be updated right away
    assert new.is_loaded
    new.notes = "follow-up"
    with UnitOfWork(actor=actor) as uow:
        uow.update(new)
        uow.commit()
    assert reload(new).notes == "follow-up"


def test_modify_sets_update_stamps(sample, actor):
    sample.status = lab_models.SampleStatus.COMPLETED

    with UnitOfWork(actor=actor) as uow:
        uow.update(sample)
        uow.commit()

    stored = reload(sample)
    assert stored.updated_by == actor.actor_id
    assert stored.updated_at is not None
    record = AuditLog.objects.get(entity_id=sample.pk)
    assert record.old_values == {"status": "PENDING"}
    assert record.new_values == {"status": "COMPLETED"}


def test_noop_modify_is_skipped_without_a_record(sample, actor):
    with UnitOfWork(actor=actor) as uow:
        uow.update(sample)
        result = uow.commit()

    assert result.skipped == 1
    assert result.modified == 0
    assert not AuditLog.objects.filter(entity_id=sample.pk).exists()


def test_conflict_rolls_back_every_change_in_the_unit(lab, sample, actor):
    stale_lab = reload(lab)
    lab.name = "Renamed first"
    with UnitOfWork(actor=actor) as uow:
        uow.update(lab)
        uow.commit()
    records_before = AuditLog.objects.count()

    new = _new_sample(lab)
    sample.notes = "would be lost"
    stale_lab.contact_info = "stale write"

    uow = UnitOfWork(actor=actor).begin()
    uow.add(new)
    uow.update(sample)
    uow.update(stale_lab)
    with pytest.raises(ConcurrencyConflict):
        uow.commit()

    assert uow.state is UnitOfWorkState.FAILED
    assert AuditLog.objects.count() == records_before
    assert reload(sample).notes is None
    assert not lab_models.Sample.all_objects.filter(pk=new.pk).exists()
    # the failed insert can be staged again in a new unit
    assert new._state.adding is True


def test_store_failure_is_distinct_from_conflict(lab, user, actor):
    existing = lab_models.UserLab.objects.create(user=user, lab=lab)
    duplicate = lab_models.UserLab(user=user, lab=lab, role=lab_models.UserRole.ADMIN)

    with pytest.raises(StoreFailure):
        execute_unit_of_work([(Intent.INSERT, duplicate)], actor=actor)

    assert lab_models.UserLab.objects.filter(user=user, lab=lab).count() == 1
    assert not AuditLog.objects.filter(entity_id=duplicate.pk).exists()
    assert existing.pk != duplicate.pk


def test_explicit_rollback_discards_staged_changes(sample, actor):
    sample.notes = "never written"
    uow = UnitOfWork(actor=actor).begin()
    uow.update(sample)

    uow.rollback()

    assert uow.state is UnitOfWorkState.ROLLED_BACK
    assert uow.pending == ()
    assert reload(sample).notes is None
    with pytest.raises(CapabilityMisuse):
        uow.commit()


def test_leaving_the_block_without_commit_rolls_back(sample, actor):
    sample.notes = "abandoned"
    with UnitOfWork(actor=actor) as uow:
        uow.update(sample)

    assert uow.state is UnitOfWorkState.ROLLED_BACK
    assert reload(sample).notes is None
    assert not AuditLog.objects.exists()


def test_staging_requires_an_active_unit(sample, actor):
    uow = UnitOfWork(actor=actor)
    with pytest.raises(CapabilityMisuse):
        uow.update(sample)

    uow.begin()
    with pytest.raises(CapabilityMisuse):
        uow.begin()


def test_same_entity_cannot_be_staged_twice(sample, actor):
    with UnitOfWork(actor=actor) as uow:
        uow.update(sample)
        with pytest.raises(CapabilityMisuse):
            uow.remove(reload(sample))


def test_add_rejects_rows_that_already_exist(sample, actor):
    with UnitOfWork(actor=actor) as uow:
        with pytest.raises(CapabilityMisuse):
            uow.add(sample)


def test_update_rejects_never_loaded_entities(lab, actor):
    with UnitOfWork(actor=actor) as uow:
        with pytest.raises(CapabilityMisuse):
            uow.update(_new_sample(lab))


def test_unregistered_entities_are_rejected(actor):
    with UnitOfWork(actor=actor) as uow:
        with pytest.raises(CapabilityMisuse):
            uow.add(AuditLog())


def test_hard_delete_for_membership_rows(lab, user, actor, caplog):
    membership = reload(lab_models.UserLab.objects.create(user=user, lab=lab))

    with caplog.at_level("WARNING", logger="lims_core.integrity.recorder"):
        result = execute_unit_of_work([(Intent.REMOVE, membership)], actor=actor)

    assert result.removed == 1
    assert not lab_models.UserLab.objects.filter(pk=membership.pk).exists()
    assert not AuditLog.objects.filter(entity_id=membership.pk).exists()
    assert "not audited" in caplog.text


def test_parameter_updates_without_version_check(parameter, actor):
    first = reload(parameter)
    second = reload(parameter)

    first.description = "acidity"
    execute_unit_of_work([(Intent.MODIFY, first)], actor=actor)
    second.max_value = 13.5
    execute_unit_of_work([(Intent.MODIFY, second)], actor=actor)

    stored = reload(parameter)
    assert stored.description == "acidity"
    assert stored.max_value == 13.5
    assert AuditLog.objects.filter(entity_id=parameter.pk).count() == 2


def test_mixed_batch_counts_each_kind_of_write(lab, sample, user, actor):
    membership = reload(lab_models.UserLab.objects.create(user=user, lab=lab))
    lab.contact_info = "+212 5 37 00 00 00"

    result = execute_unit_of_work(
        [
            (Intent.INSERT, _new_sample(lab)),
            (Intent.MODIFY, lab),
            (Intent.REMOVE, sample),
            (Intent.REMOVE, membership),
        ],
        actor=actor,
    )

    assert result.inserted == 1
    assert result.modified == 2
    assert result.tombstoned == 1
    assert result.removed == 1
    assert len(result.audit_records) == 3
    assert AuditLog.objects.count() == 3


def test_without_an_actor_the_system_identity_is_recorded(lab, system_actor):
    new = _new_sample(lab)

    execute_unit_of_work([(Intent.INSERT, new)])

    record = AuditLog.objects.get(entity_id=new.pk)
    assert record.actor_id == system_actor.pk
    assert record.origin is None
    assert reload(new).created_by == system_actor.pk


def test_partially_loaded_entity_diffs_only_what_was_read(sample, actor):
    partial = lab_models.Sample.objects.only("id", "notes", "row_version").get(pk=sample.pk)
    partial.notes = "checked seal"

    with UnitOfWork(actor=actor) as uow:
        uow.update(partial)
        result = uow.commit()

    assert result.modified == 1
    record = AuditLog.objects.get(entity_id=sample.pk)
    assert record.new_values == {"notes": "checked seal"}
    assert record.old_values == {"notes": None}
    stored = reload(sample)
    assert stored.notes == "checked seal"
    assert stored.collector_name == "N. Amrani"


def test_lazily_read_field_keeps_its_stored_old_value(sample, actor):
    partial = lab_models.Sample.objects.only("id", "row_version").get(pk=sample.pk)
    assert partial.collector_name == "N. Amrani"
    partial.collector_name = "S. Bennani"

    execute_unit_of_work([(Intent.MODIFY, partial)], actor=actor)

    record = AuditLog.objects.get(entity_id=sample.pk)
    assert record.old_values == {"collector_name": "N. Amrani"}
    assert record.new_values == {"collector_name": "S. Bennani"}


def test_remove_discards_unsaved_edits_on_the_instance(sample, actor):
    sample.notes = "unsaved edit"

    with UnitOfWork(actor=actor) as uow:
        uow.remove(sample)
        uow.commit()

    assert sample.is_deleted is True
    assert sample.notes is None
    assert reload(sample).notes is None

    sample.notes = "unsaved edit"
    with UnitOfWork(actor=actor) as uow:
        uow.update(sample)
        result = uow.commit()

    assert result.modified == 1
    assert result.skipped == 0
    assert reload(sample).notes == "unsaved edit"


def test_unexpected_write_error_fails_the_unit_and_undoes_inserts(lab, actor):
    good = _new_sample(lab)
    bad = _new_sample(lab, location_latitude="not-a-number")

    uow = UnitOfWork(actor=actor).begin()
    uow.add(good)
    uow.add(bad)
    with pytest.raises(ValueError):
        uow.commit()

    assert uow.state is UnitOfWorkState.FAILED
    assert good._state.adding is True
    assert not lab_models.Sample.all_objects.filter(pk=good.pk).exists()
    assert not AuditLog.objects.exists()
    with pytest.raises(CapabilityMisuse):
        uow.commit()
