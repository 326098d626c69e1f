# lims_core/lab/models.py

from django.conf import settings
from django.db import models
from django.utils import timezone

from lims_core.common.models import EntityModel, SoftDeleteModel, StampedModel, VersionedModel


class SampleType(models.TextChoices):
    DRINKING_WATER = "DRINKING_WATER", "Drinking water"
    WASTEWATER = "WASTEWATER", "Wastewater"
    SURFACE_WATER = "SURFACE_WATER", "Surface water"
    GROUNDWATER = "GROUNDWATER", "Groundwater"
    INDUSTRIAL_WATER = "INDUSTRIAL_WATER", "Industrial water"


class SampleStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    COMPLETED = "COMPLETED", "Completed"
    ARCHIVED = "ARCHIVED", "Archived"


class TestResultStatus(models.TextChoices):
    DRAFT = "DRAFT", "Draft"
    SUBMITTED = "SUBMITTED", "Submitted"
    VOIDED = "VOIDED", "Voided"


class TestMethod(models.TextChoices):
    TITRATION = "TITRATION", "Titration"
    SPECTROPHOTOMETRY = "SPECTROPHOTOMETRY", "Spectrophotometry"
    CHROMATOGRAPHY = "CHROMATOGRAPHY", "Chromatography"
    MICROSCOPY = "MICROSCOPY", "Microscopy"
    ELECTRODE = "ELECTRODE", "Electrode"
    CULTURE = "CULTURE", "Culture"
    OTHER = "OTHER", "Other"


class ComplianceStatus(models.TextChoices):
    PASS = "PASS", "Pass"
    FAIL = "FAIL", "Fail"
    WARNING = "WARNING", "Warning"


class UserRole(models.TextChoices):
    VIEWER = "VIEWER", "Viewer"
    TECHNICIAN = "TECHNICIAN", "Technician"
    ADMIN = "ADMIN", "Admin"


class Lab(EntityModel, StampedModel, SoftDeleteModel, VersionedModel):
    name = models.CharField(max_length=200)
    location = models.CharField(max_length=500, blank=True, null=True)
    contact_info = models.CharField(max_length=500, blank=True, null=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "lab_lab"
        indexes = [models.Index(fields=["is_deleted", "name"], name="idx_lab_live_name")]

    def __str__(self) -> str:
        return self.name


class UserLab(EntityModel, StampedModel):
    """
    Membership of a user in a lab. Removing it is a physical delete.
    """
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="lab_memberships")
    lab = models.ForeignKey(Lab, on_delete=models.CASCADE, related_name="memberships")
    role = models.CharField(max_length=16, choices=UserRole.choices, default=UserRole.VIEWER)
    assigned_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "lab_user_lab"
        constraints = [
            models.UniqueConstraint(fields=["user", "lab"], name="uq_user_lab"),
        ]


class Parameter(EntityModel, StampedModel, SoftDeleteModel):
    name = models.CharField(max_length=100)
    unit = models.CharField(max_length=20)
    who_threshold = models.FloatField(blank=True, null=True)
    moroccan_threshold = models.FloatField(blank=True, null=True)
    min_value = models.FloatField(blank=True, null=True)
    max_value = models.FloatField(blank=True, null=True)
    description = models.CharField(max_length=500, blank=True, null=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "lab_parameter"
        indexes = [models.Index(fields=["is_deleted", "name"], name="idx_parameter_live_name")]

    def __str__(self) -> str:
        return f"{self.name} ({self.unit})"


class Sample(EntityModel, StampedModel, SoftDeleteModel, VersionedModel):
    lab = models.ForeignKey(Lab, on_delete=models.PROTECT, related_name="samples")

    sample_type = models.CharField(max_length=32, choices=SampleType.choices)
    location_latitude = models.FloatField()
    location_longitude = models.FloatField()
    location_description = models.CharField(max_length=200, blank=True, null=True)
    location_hierarchy = models.CharField(max_length=500, blank=True, null=True)
    collection_date = models.DateTimeField()
    collector_name = models.CharField(max_length=100)
    notes = models.TextField(max_length=1000, blank=True, null=True)
    status = models.CharField(max_length=16, choices=SampleStatus.choices, default=SampleStatus.PENDING)

    class Meta:
        db_table = "lab_sample"
        indexes = [
            models.Index(fields=["lab", "is_deleted"], name="idx_sample_lab_live"),
            models.Index(fields=["collection_date"], name="idx_sample_collected"),
        ]


class TestResult(EntityModel, StampedModel, SoftDeleteModel, VersionedModel):
    sample = models.ForeignKey(Sample, on_delete=models.PROTECT, related_name="test_results")
    parameter = models.ForeignKey(Parameter, on_delete=models.PROTECT, related_name="test_results")

    value = models.FloatField()
    unit = models.CharField(max_length=20)
    status = models.CharField(max_length=16, choices=TestResultStatus.choices, default=TestResultStatus.DRAFT)
    test_date = models.DateTimeField()
    technician_name = models.CharField(max_length=100)
    test_method = models.CharField(max_length=32, choices=TestMethod.choices)
    compliance_status = models.CharField(max_length=16, choices=ComplianceStatus.choices)

    voided_test_result_id = models.UUIDField(blank=True, null=True)
    replaced_by_test_result_id = models.UUIDField(blank=True, null=True)
    is_voided = models.BooleanField(default=False)
    void_reason = models.CharField(max_length=500, blank=True, null=True)

    class Meta:
        db_table = "lab_test_result"
        indexes = [
            models.Index(fields=["sample", "is_deleted"], name="idx_result_sample_live"),
            models.Index(fields=["parameter"], name="idx_result_parameter"),
        ]
