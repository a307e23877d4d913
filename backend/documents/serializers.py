from rest_framework import serializers

from .models import Client, Expense, Invoice, Quote


class LineItemSerializer(serializers.Serializer):
    description = serializers.CharField(max_length=500, allow_blank=True, required=False, default="")
    quantity = serializers.DecimalField(max_digits=12, decimal_places=3, min_value=0)
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    tax_rate = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=0, max_value=100,
                                        required=False, default=0)
    line_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)


class OwnedClientField(serializers.PrimaryKeyRelatedField):
    """Only the requesting user's active clients are selectable."""

    def get_queryset(self):
        request = self.context.get("request")
        if request is None or not request.user.is_authenticated:
            return Client.objects.none()
        return Client.objects.filter(user=request.user, is_active=True)


class ClientSerializer(serializers.ModelSerializer):
    class Meta:
        model = Client
        fields = ("id", "name", "email", "phone", "address", "siret", "is_active", "created_at", "updated_at")
        read_only_fields = ("id", "is_active", "created_at", "updated_at")


class DocumentSerializer(serializers.ModelSerializer):
    client = OwnedClientField()
    items = LineItemSerializer(many=True, required=False)

    document_fields = (
        "id",
        "number",
        "status",
        "client",
        "issue_date",
        "items",
        "subtotal",
        "tax_total",
        "total",
        "currency",
        "notes",
        "finalized_at",
        "sent_at",
        "created_at",
        "updated_at",
    )
    document_read_only = (
        "id",
        "number",
        "status",
        "subtotal",
        "tax_total",
        "total",
        "finalized_at",
        "sent_at",
        "created_at",
        "updated_at",
    )


class InvoiceSerializer(DocumentSerializer):
    class Meta:
        model = Invoice
        fields = DocumentSerializer.document_fields + ("due_date", "paid_at", "quote")
        read_only_fields = DocumentSerializer.document_read_only + ("paid_at", "quote")


class QuoteSerializer(DocumentSerializer):
    class Meta:
        model = Quote
        fields = DocumentSerializer.document_fields + ("valid_until", "converted_at")
        read_only_fields = DocumentSerializer.document_read_only + ("converted_at",)


class ExpenseSerializer(serializers.ModelSerializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)

    class Meta:
        model = Expense
        fields = ("id", "label", "category", "amount", "vat_amount", "currency", "expense_date", "notes",
                  "created_at")
        read_only_fields = ("id", "created_at")


class StatusChangeSerializer(serializers.Serializer):
    status = serializers.CharField(max_length=16)


class ConvertQuoteSerializer(serializers.Serializer):
    due_date = serializers.DateField(required=False, allow_null=True)


class HistoryQuerySerializer(serializers.Serializer):
    limit = serializers.IntegerField(min_value=1, max_value=200, default=50)
