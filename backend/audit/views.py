from __future__ import annotations

from django_filters import rest_framework as filters
from rest_framework.authentication import TokenAuthentication
from rest_framework.permissions import IsAuthenticated
from rest_framework.viewsets import ReadOnlyModelViewSet

from billing.pagination import BoundedPageNumberPagination

from .models import AuditEntry
from .serializers import AuditEntrySerializer


class AuditEntryFilter(filters.FilterSet):
    start = filters.IsoDateTimeFilter(field_name="performed_at", lookup_expr="gte")
    end = filters.IsoDateTimeFilter(field_name="performed_at", lookup_expr="lte")
    action = filters.ChoiceFilter(field_name="action", choices=AuditEntry.Action.choices)
    document_type = filters.ChoiceFilter(field_name="document_type", choices=AuditEntry.DocumentType.choices)

    class Meta:
        model = AuditEntry
        fields = ["document_id", "document_type", "action", "user"]


class AuditEntryViewSet(ReadOnlyModelViewSet):
    """Expose the document audit trail; users only see entries for their own documents."""

    serializer_class = AuditEntrySerializer
    authentication_classes = [TokenAuthentication]
    permission_classes = [IsAuthenticated]
    pagination_class = BoundedPageNumberPagination
    queryset = AuditEntry.objects.select_related("user").order_by("-performed_at", "-id")
    filterset_class = AuditEntryFilter
    filter_backends = [filters.DjangoFilterBackend]

    def get_queryset(self):
        qs = super().get_queryset()
        user = self.request.user
        if not user.is_staff:
            qs = qs.filter(user=user)
        return qs
