# lims_core/conftest.py
from datetime import datetime, timezone

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from lims_core.common.tests.helpers import reload
from lims_core.iam.services import ensure_system_actor
from lims_core.integrity.actors import ActorContext
from lims_core.lab import models as lab_models


@pytest.fixture
def system_actor(db):
    user, _ = ensure_system_actor()
    return user


@pytest.fixture
def user(db, system_actor):
    User = get_user_model()
    return User.objects.create_user(username="analyst", password="testpass", is_active=True)


@pytest.fixture
def other_user(db):
    User = get_user_model()
    return User.objects.create_user(username="reviewer", password="testpass", is_active=True)


@pytest.fixture
def actor(user):
    return ActorContext(actor_id=user.pk, origin="10.0.0.7")


@pytest.fixture
def api_client(user):
    c = APIClient()
    c.force_authenticate(user=user)
    return c


@pytest.fixture
def lab(db, system_actor):
    obj = lab_models.Lab.objects.create(name="Central Water Lab", location="Rabat")
    return reload(obj)


@pytest.fixture
def parameter(db):
    obj = lab_models.Parameter.objects.create(name="pH", unit="pH", min_value=0, max_value=14)
    return reload(obj)


@pytest.fixture
def sample(lab):
    obj = lab_models.Sample.objects.create(
        lab=lab,
        sample_type=lab_models.SampleType.DRINKING_WATER,
        location_latitude=34.02,
        location_longitude=-6.83,
        collection_date=datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc),
        collector_name="N. Amrani",
    )
    return reload(obj)


@pytest.fixture
def result(sample, parameter):
    obj = lab_models.TestResult.objects.create(
        sample=sample,
        parameter=parameter,
        value=7.2,
        unit="pH",
        test_date=datetime(2026, 3, 2, 14, 0, tzinfo=timezone.utc),
        technician_name="S. Idrissi",
        test_method=lab_models.TestMethod.ELECTRODE,
        compliance_status=lab_models.ComplianceStatus.PASS,
    )
    return reload(obj)
