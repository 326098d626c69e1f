# lims_core/audit/api/views.py
from __future__ import annotations

from datetime import date
from uuid import UUID

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from lims_core.audit.api.serializers import AuditLogArchiveSerializer, AuditLogSerializer
from lims_core.audit.models import AuditAction, AuditLog
from lims_core.audit.selectors import get_audit_log, list_archived_audit_logs, list_audit_logs
from lims_core.common.api.pagination import paginate
from lims_core.integrity.registry import EntityKind

FILTER_PARAMETERS = [
    OpenApiParameter(
        name="entity_type",
        type=OpenApiTypes.STR,
        location=OpenApiParameter.QUERY,
        required=False,
        enum=EntityKind.values,
        description="Filter by entity kind.",
    ),
    OpenApiParameter(
        name="entity_id",
        type=OpenApiTypes.UUID,
        location=OpenApiParameter.QUERY,
        required=False,
        description="Filter by entity UUID.",
    ),
    OpenApiParameter(
        name="actor_id",
        type=OpenApiTypes.UUID,
        location=OpenApiParameter.QUERY,
        required=False,
        description="Filter by acting user UUID.",
    ),
    OpenApiParameter(
        name="action",
        type=OpenApiTypes.STR,
        location=OpenApiParameter.QUERY,
        required=False,
        enum=AuditAction.values,
    ),
    OpenApiParameter(
        name="start_date",
        type=OpenApiTypes.DATE,
        location=OpenApiParameter.QUERY,
        required=False,
    ),
    OpenApiParameter(
        name="end_date",
        type=OpenApiTypes.DATE,
        location=OpenApiParameter.QUERY,
        required=False,
        description="Inclusive: the whole end day is included.",
    ),
]


def _uuid_param(params, name: str) -> UUID | None:
    raw = params.get(name) or None
    if raw is None:
        return None
    try:
        return UUID(str(raw))
    except ValueError:
        raise ValidationError({name: "Invalid UUID."})


def _date_param(params, name: str) -> date | None:
    raw = params.get(name) or None
    if raw is None:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        raise ValidationError({name: "Invalid date (YYYY-MM-DD expected)."})


def _choice_param(params, name: str, choices) -> str | None:
    raw = params.get(name) or None
    if raw is not None and raw not in choices:
        raise ValidationError({name: f"Must be one of {', '.join(choices)}."})
    return raw


def _filters(request) -> dict:
    p = request.query_params
    return {
        "entity_type": _choice_param(p, "entity_type", EntityKind.values),
        "entity_id": _uuid_param(p, "entity_id"),
        "actor_id": _uuid_param(p, "actor_id"),
        "action": _choice_param(p, "action", AuditAction.values),
        "start": _date_param(p, "start_date"),
        "end": _date_param(p, "end_date"),
    }


class AuditLogViewSet(viewsets.GenericViewSet):
    """
    Read-only access to the audit trail. Records are written by the
    unit of work only.
    """
    permission_classes = [IsAuthenticated]
    serializer_class = AuditLogSerializer
    queryset = AuditLog.objects.none()

    @extend_schema(tags=["Audit"], parameters=FILTER_PARAMETERS, responses={200: AuditLogSerializer(many=True)})
    def list(self, request):
        qs = list_audit_logs(**_filters(request))
        return paginate(request, qs, AuditLogSerializer)

    @extend_schema(tags=["Audit"], responses={200: AuditLogSerializer})
    def retrieve(self, request, pk=None):
        try:
            obj = get_audit_log(_uuid_param({"id": pk}, "id"))
        except AuditLog.DoesNotExist:
            return Response({"detail": "Not found."}, status=status.HTTP_404_NOT_FOUND)
        return Response(AuditLogSerializer(obj).data, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["Audit"],
        parameters=FILTER_PARAMETERS,
        responses={200: AuditLogArchiveSerializer(many=True)},
    )
    @action(detail=False, methods=["get"], url_path="archive")
    def archive(self, request):
        qs = list_archived_audit_logs(**_filters(request))
        return paginate(request, qs, AuditLogArchiveSerializer)
