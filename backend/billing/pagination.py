"""Pagination shared by the document, usage and audit listings."""
from __future__ import annotations

from rest_framework.pagination import PageNumberPagination


class BoundedPageNumberPagination(PageNumberPagination):
    """Page-number pagination; ``page_size`` requests above 100 are clamped."""

    page_size = 20
    page_size_query_param = "page_size"
    max_page_size = 100
