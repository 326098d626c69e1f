from __future__ import annotations

from django.db.models import QuerySet
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class DefaultPagination(PageNumberPagination):
    page_size = 50
    page_size_query_param = "page_size"
    # audit histories are long; keep a single page bounded
    max_page_size = 500


def paginate(request, queryset: QuerySet, serializer_class, *, paginator: PageNumberPagination | None = None) -> Response:
    """
    One page of ``queryset`` in the count/next/previous/results envelope.

    Rows sharing a timestamp are ordered by primary key so a row never
    shows up on two pages.
    """
    if queryset.query.order_by:
        queryset = queryset.order_by(*queryset.query.order_by, "-pk")
    pager = paginator or DefaultPagination()
    rows = pager.paginate_queryset(queryset, request)
    return pager.get_paginated_response(serializer_class(rows, many=True).data)
