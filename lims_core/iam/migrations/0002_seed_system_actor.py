from django.conf import settings
from django.contrib.auth.hashers import make_password
from django.db import migrations

SYSTEM_USERNAME = "system"


def seed_system_actor(apps, schema_editor):
    User = apps.get_model("iam", "User")
    actor_id = settings.LIMS_SYSTEM_ACTOR_ID
    if User.objects.filter(pk=actor_id).exists():
        return
    User.objects.create(
        id=actor_id,
        username=SYSTEM_USERNAME,
        password=make_password(None),
        is_active=False,
    )


def unseed_system_actor(apps, schema_editor):
    User = apps.get_model("iam", "User")
    User.objects.filter(pk=settings.LIMS_SYSTEM_ACTOR_ID, username=SYSTEM_USERNAME).delete()


class Migration(migrations.Migration):

    dependencies = [
        ("iam", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(seed_system_actor, unseed_system_actor),
    ]
