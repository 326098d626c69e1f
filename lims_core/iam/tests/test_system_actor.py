import uuid
from io import StringIO

import pytest
from django.contrib.auth import get_user_model
from django.core.management import call_command

from lims_core.iam.services import SYSTEM_USERNAME, ensure_system_actor
from lims_core.integrity.actors import system_actor_id

pytestmark = pytest.mark.django_db


def test_system_actor_row_exists_after_migrations(settings):
    User = get_user_model()

    user = User.objects.get(pk=uuid.UUID(settings.LIMS_SYSTEM_ACTOR_ID))

    assert user.username == SYSTEM_USERNAME
    assert user.has_usable_password() is False
    assert user.is_active is False


def test_ensure_system_actor_is_idempotent():
    first, _ = ensure_system_actor()
    second, created = ensure_system_actor()

    assert created is False
    assert first.pk == second.pk == system_actor_id()


def test_ensure_system_actor_recreates_a_missing_row():
    User = get_user_model()
    User.objects.filter(pk=system_actor_id()).delete()

    user, created = ensure_system_actor()

    assert created is True
    assert user.pk == system_actor_id()
    assert User.objects.filter(pk=system_actor_id()).exists()


def test_command_output():
    out = StringIO()

    call_command("ensure_system_actor", stdout=out)

    assert str(system_actor_id()) in out.getvalue()
