"""REST endpoints for clients, invoices, quotes and expenses."""
from __future__ import annotations

import logging

from rest_framework import mixins, status, viewsets
from rest_framework.authentication import TokenAuthentication
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from audit.serializers import AuditEntrySerializer
from audit.services import context_from_request, history_for
from billing.pagination import BoundedPageNumberPagination
from billing.services import usage_ledger
from numbering.services import allocator

from . import services
from .models import Client, Expense, Invoice, Quote
from .serializers import (
    ClientSerializer,
    ConvertQuoteSerializer,
    ExpenseSerializer,
    HistoryQuerySerializer,
    InvoiceSerializer,
    QuoteSerializer,
    StatusChangeSerializer,
)

logger = logging.getLogger(__name__)


def quota_exceeded_response(decision) -> Response:
    payload = {
        "code": "quota_exceeded",
        "detail": decision.reason,
        "metric": decision.metric,
        "current": decision.current,
        "limit": decision.limit,
        "plan": decision.plan,
        "upgrade_to": decision.upgrade_to,
    }
    response = Response(payload, status=status.HTTP_403_FORBIDDEN)
    response["X-Limit-Reached"] = "true"
    return response


class DocumentErrorMixin:
    """Translate domain errors raised by the services into HTTP responses."""

    def handle_exception(self, exc):
        if isinstance(exc, usage_ledger.QuotaExceeded):
            return quota_exceeded_response(exc.decision)
        if isinstance(exc, services.ImmutableDocument):
            return Response({"code": "document_locked", "detail": str(exc)}, status=status.HTTP_409_CONFLICT)
        if isinstance(exc, services.InvalidTransition):
            return Response({"code": "invalid_transition", "detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        if isinstance(exc, services.InvalidDocument):
            return Response({"code": "invalid_document", "detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        if isinstance(exc, allocator.SequenceExhausted):
            logger.error("Numbering exhausted for user %s: %s", self.request.user.pk, exc)
            return Response({"code": "sequence_exhausted", "detail": str(exc)}, status=status.HTTP_409_CONFLICT)
        if isinstance(exc, (allocator.ConcurrentModification, usage_ledger.ConcurrentModification)):
            response = Response({"code": "retry_later", "detail": str(exc)},
                                status=status.HTTP_503_SERVICE_UNAVAILABLE)
            response["Retry-After"] = "1"
            return response
        return super().handle_exception(exc)


class OwnedQuerysetMixin:
    authentication_classes = [TokenAuthentication]
    permission_classes = [IsAuthenticated]
    pagination_class = BoundedPageNumberPagination

    def get_queryset(self):
        return super().get_queryset().filter(user=self.request.user)

    def audit_kwargs(self):
        user = self.request.user
        return {
            "performed_by": getattr(user, "email", "") or str(user.pk),
            "context": context_from_request(self.request),
        }


class ClientViewSet(DocumentErrorMixin, OwnedQuerysetMixin, viewsets.ModelViewSet):
    queryset = Client.objects.all()
    serializer_class = ClientSerializer

    def get_queryset(self):
        qs = super().get_queryset()
        if self.action == "list" and self.request.query_params.get("include_inactive") not in ("1", "true"):
            qs = qs.filter(is_active=True)
        return qs

    def perform_create(self, serializer):
        serializer.instance = services.create_client(self.request.user, **serializer.validated_data)

    def perform_destroy(self, instance):
        services.delete_client(instance)


class DocumentViewSet(DocumentErrorMixin, OwnedQuerysetMixin, viewsets.ModelViewSet):
    """Shared create/edit/delete/lifecycle endpoints for invoices and quotes."""

    def perform_create(self, serializer):
        serializer.instance = self.create_document(serializer.validated_data)

    def perform_update(self, serializer):
        serializer.instance = services.update_document(
            serializer.instance, serializer.validated_data, **self.audit_kwargs()
        )

    def perform_destroy(self, instance):
        services.delete_document(instance, **self.audit_kwargs())

    @action(detail=True, methods=["post"])
    def finalize(self, request, pk=None):
        document = services.finalize_document(self.get_object(), **self.audit_kwargs())
        return Response(self.get_serializer(document).data)

    @action(detail=True, methods=["post"])
    def send(self, request, pk=None):
        document = services.send_document(self.get_object(), **self.audit_kwargs())
        return Response(self.get_serializer(document).data)

    @action(detail=True, methods=["post"], url_path="status", serializer_class=StatusChangeSerializer)
    def change_status(self, request, pk=None):
        payload = StatusChangeSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        document = services.change_status(self.get_object(), payload.validated_data["status"],
                                          **self.audit_kwargs())
        return Response(self.document_serializer_class(document, context=self.get_serializer_context()).data)

    @action(detail=True, methods=["get"])
    def history(self, request, pk=None):
        document = self.get_object()
        query = HistoryQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        entries = history_for(document.pk, limit=query.validated_data["limit"])
        return Response(AuditEntrySerializer(entries, many=True).data)


class InvoiceViewSet(DocumentViewSet):
    queryset = Invoice.objects.select_related("client")
    serializer_class = InvoiceSerializer
    document_serializer_class = InvoiceSerializer
    filterset_fields = ["status"]

    def create_document(self, data):
        return services.create_invoice(self.request.user, **data, **self.audit_kwargs())


class QuoteViewSet(DocumentViewSet):
    queryset = Quote.objects.select_related("client")
    serializer_class = QuoteSerializer
    document_serializer_class = QuoteSerializer
    filterset_fields = ["status"]

    def create_document(self, data):
        return services.create_quote(self.request.user, **data, **self.audit_kwargs())

    @action(detail=True, methods=["post"], serializer_class=ConvertQuoteSerializer)
    def convert(self, request, pk=None):
        payload = ConvertQuoteSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        invoice = services.convert_quote_to_invoice(
            self.get_object(), due_date=payload.validated_data.get("due_date"), **self.audit_kwargs()
        )
        return Response(
            InvoiceSerializer(invoice, context=self.get_serializer_context()).data,
            status=status.HTTP_201_CREATED,
        )


class ExpenseViewSet(DocumentErrorMixin, OwnedQuerysetMixin, mixins.CreateModelMixin, mixins.ListModelMixin,
                     mixins.RetrieveModelMixin, mixins.DestroyModelMixin, viewsets.GenericViewSet):
    queryset = Expense.objects.all()
    serializer_class = ExpenseSerializer

    def perform_create(self, serializer):
        serializer.instance = services.create_expense(self.request.user, **serializer.validated_data)

    def perform_destroy(self, instance):
        services.delete_expense(instance)
