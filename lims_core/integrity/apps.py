# lims_core/integrity/apps.py
from __future__ import annotations

from django.apps import AppConfig


class IntegrityConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "lims_core.integrity"

    def ready(self) -> None:
        # models are loaded by now; fail fast on a declared facet with no backing fields
        from lims_core.integrity.registry import validate_registry

        validate_registry()
