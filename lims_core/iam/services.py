# lims_core/iam/services.py
from __future__ import annotations

import logging
from typing import Tuple

from django.contrib.auth import get_user_model
from django.db import transaction

from lims_core.integrity.actors import system_actor_id

logger = logging.getLogger(__name__)

SYSTEM_USERNAME = "system"


@transaction.atomic
def ensure_system_actor() -> Tuple[object, bool]:
    """
    Make sure the user row behind the fallback identity exists, so audit
    records written without a caller still satisfy the actor FK.
    Idempotent. Returns (user, created).
    """
    User = get_user_model()
    actor_id = system_actor_id()

    user = User._base_manager.filter(pk=actor_id).first()
    if user is not None:
        return user, False

    user = User(
        id=actor_id,
        username=SYSTEM_USERNAME,
        is_active=False,
        is_staff=False,
        is_superuser=False,
    )
    user.set_unusable_password()
    user.save(force_insert=True)
    logger.info("Seeded system actor %s", actor_id)
    return user, True
