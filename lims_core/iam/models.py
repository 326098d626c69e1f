# lims_core/iam/models.py
from django.contrib.auth.models import AbstractUser

from lims_core.common.models import EntityModel, VersionedModel


class User(AbstractUser, EntityModel, VersionedModel):
    """
    Account row. Version-checked, never audited (holds password material).
    """

    class Meta(AbstractUser.Meta):
        db_table = "iam_user"

    def __str__(self) -> str:
        return self.username
