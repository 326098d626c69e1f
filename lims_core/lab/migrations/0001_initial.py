import uuid

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

import lims_core.common.models


def _stamp_fields():
    return [
        ("created_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
        ("created_by", models.UUIDField(blank=True, null=True)),
        ("updated_at", models.DateTimeField(blank=True, null=True)),
        ("updated_by", models.UUIDField(blank=True, null=True)),
    ]


def _tombstone_fields():
    return [
        ("is_deleted", models.BooleanField(db_index=True, default=False)),
        ("deleted_at", models.DateTimeField(blank=True, null=True)),
        ("deleted_by", models.UUIDField(blank=True, null=True)),
    ]


def _row_version():
    return (
        "row_version",
        models.BinaryField(default=lims_core.common.models.initial_row_version, editable=False, max_length=8),
    )


def _id():
    return ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False))


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Lab",
            fields=[
                _id(),
                *_stamp_fields(),
                *_tombstone_fields(),
                _row_version(),
                ("name", models.CharField(max_length=200)),
                ("location", models.CharField(blank=True, max_length=500, null=True)),
                ("contact_info", models.CharField(blank=True, max_length=500, null=True)),
                ("is_active", models.BooleanField(default=True)),
            ],
            options={
                "db_table": "lab_lab",
                "indexes": [models.Index(fields=["is_deleted", "name"], name="idx_lab_live_name")],
            },
        ),
        migrations.CreateModel(
            name="Parameter",
            fields=[
                _id(),
                *_stamp_fields(),
                *_tombstone_fields(),
                ("name", models.CharField(max_length=100)),
                ("unit", models.CharField(max_length=20)),
                ("who_threshold", models.FloatField(blank=True, null=True)),
                ("moroccan_threshold", models.FloatField(blank=True, null=True)),
                ("min_value", models.FloatField(blank=True, null=True)),
                ("max_value", models.FloatField(blank=True, null=True)),
                ("description", models.CharField(blank=True, max_length=500, null=True)),
                ("is_active", models.BooleanField(default=True)),
            ],
            options={
                "db_table": "lab_parameter",
                "indexes": [models.Index(fields=["is_deleted", "name"], name="idx_parameter_live_name")],
            },
        ),
        migrations.CreateModel(
            name="Sample",
            fields=[
                _id(),
                *_stamp_fields(),
                *_tombstone_fields(),
                _row_version(),
                (
                    "sample_type",
                    models.CharField(
                        choices=[
                            ("DRINKING_WATER", "Drinking water"),
                            ("WASTEWATER", "Wastewater"),
                            ("SURFACE_WATER", "Surface water"),
                            ("GROUNDWATER", "Groundwater"),
                            ("INDUSTRIAL_WATER", "Industrial water"),
                        ],
                        max_length=32,
                    ),
                ),
                ("location_latitude", models.FloatField()),
                ("location_longitude", models.FloatField()),
                ("location_description", models.CharField(blank=True, max_length=200, null=True)),
                ("location_hierarchy", models.CharField(blank=True, max_length=500, null=True)),
                ("collection_date", models.DateTimeField()),
                ("collector_name", models.CharField(max_length=100)),
                ("notes", models.TextField(blank=True, max_length=1000, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[("PENDING", "Pending"), ("COMPLETED", "Completed"), ("ARCHIVED", "Archived")],
                        default="PENDING",
                        max_length=16,
                    ),
                ),
                (
                    "lab",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="samples",
                        to="lab.lab",
                    ),
                ),
            ],
            options={
                "db_table": "lab_sample",
                "indexes": [
                    models.Index(fields=["lab", "is_deleted"], name="idx_sample_lab_live"),
                    models.Index(fields=["collection_date"], name="idx_sample_collected"),
                ],
            },
        ),
        migrations.CreateModel(
            name="TestResult",
            fields=[
                _id(),
                *_stamp_fields(),
                *_tombstone_fields(),
                _row_version(),
                ("value", models.FloatField()),
                ("unit", models.CharField(max_length=20)),
                (
                    "status",
                    models.CharField(
                        choices=[("DRAFT", "Draft"), ("SUBMITTED", "Submitted"), ("VOIDED", "Voided")],
                        default="DRAFT",
                        max_length=16,
                    ),
                ),
                ("test_date", models.DateTimeField()),
                ("technician_name", models.CharField(max_length=100)),
                (
                    "test_method",
                    models.CharField(
                        choices=[
                            ("TITRATION", "Titration"),
                            ("SPECTROPHOTOMETRY", "Spectrophotometry"),
                            ("CHROMATOGRAPHY", "Chromatography"),
                            ("MICROSCOPY", "Microscopy"),
                            ("ELECTRODE", "Electrode"),
                            ("CULTURE", "Culture"),
                            ("OTHER", "Other"),
                        ],
                        max_length=32,
                    ),
                ),
                (
                    "compliance_status",
                    models.CharField(
                        choices=[("PASS", "Pass"), ("FAIL", "Fail"), ("WARNING", "Warning")],
                        max_length=16,
                    ),
                ),
                ("voided_test_result_id", models.UUIDField(blank=True, null=True)),
                ("replaced_by_test_result_id", models.UUIDField(blank=True, null=True)),
                ("is_voided", models.BooleanField(default=False)),
                ("void_reason", models.CharField(blank=True, max_length=500, null=True)),
                (
                    "parameter",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="test_results",
                        to="lab.parameter",
                    ),
                ),
                (
                    "sample",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="test_results",
                        to="lab.sample",
                    ),
                ),
            ],
            options={
                "db_table": "lab_test_result",
                "indexes": [
                    models.Index(fields=["sample", "is_deleted"], name="idx_result_sample_live"),
                    models.Index(fields=["parameter"], name="idx_result_parameter"),
                ],
            },
        ),
        migrations.CreateModel(
            name="UserLab",
            fields=[
                _id(),
                *_stamp_fields(),
                (
                    "role",
                    models.CharField(
                        choices=[("VIEWER", "Viewer"), ("TECHNICIAN", "Technician"), ("ADMIN", "Admin")],
                        default="VIEWER",
                        max_length=16,
                    ),
                ),
                ("assigned_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "lab",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="memberships",
                        to="lab.lab",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="lab_memberships",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "lab_user_lab",
                "constraints": [models.UniqueConstraint(fields=("user", "lab"), name="uq_user_lab")],
            },
        ),
    ]
