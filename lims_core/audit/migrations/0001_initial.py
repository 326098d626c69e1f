import uuid

import django.core.serializers.json
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

ENTITY_TYPE_CHOICES = [
    ("Lab", "Lab"),
    ("User", "User"),
    ("Sample", "Sample"),
    ("TestResult", "Test result"),
    ("Parameter", "Parameter"),
    ("UserLab", "User lab membership"),
]
ACTION_CHOICES = [("CREATE", "Create"), ("UPDATE", "Update")]


def _record_fields():
    return [
        ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
        ("entity_type", models.CharField(choices=ENTITY_TYPE_CHOICES, db_index=True, max_length=32)),
        ("entity_id", models.UUIDField(db_index=True)),
        ("action", models.CharField(choices=ACTION_CHOICES, max_length=16)),
        (
            "old_values",
            models.JSONField(blank=True, encoder=django.core.serializers.json.DjangoJSONEncoder, null=True),
        ),
        ("new_values", models.JSONField(encoder=django.core.serializers.json.DjangoJSONEncoder)),
        ("is_truncated", models.BooleanField(default=False)),
        ("timestamp", models.DateTimeField(db_index=True)),
        ("origin", models.CharField(blank=True, max_length=45, null=True)),
        ("is_archived", models.BooleanField(default=False)),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                *_record_fields(),
                (
                    "actor",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="audit_logs",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "audit_log",
                "ordering": ["-timestamp"],
                "indexes": [
                    models.Index(fields=["entity_type", "entity_id"], name="idx_audit_log_entity"),
                    models.Index(fields=["actor", "timestamp"], name="idx_audit_log_actor"),
                ],
            },
        ),
        migrations.CreateModel(
            name="AuditLogArchive",
            fields=[
                *_record_fields(),
                ("archived_at", models.DateTimeField(db_index=True)),
                (
                    "actor",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="archived_audit_logs",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "audit_log_archive",
                "ordering": ["-timestamp"],
                "indexes": [
                    models.Index(fields=["entity_type", "entity_id"], name="idx_audit_arch_entity"),
                    models.Index(fields=["actor", "timestamp"], name="idx_audit_arch_actor"),
                ],
            },
        ),
    ]
