# lims_core/api/urls.py
from __future__ import annotations

from rest_framework.routers import DefaultRouter

from lims_core.audit.api.views import AuditLogViewSet

router = DefaultRouter()

router.register(r"audit-logs", AuditLogViewSet, basename="audit-logs")

urlpatterns = router.urls
