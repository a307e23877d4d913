from django.contrib import admin

from .models import Client, Expense, Invoice, Quote


@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
    list_display = ("name", "user", "email", "is_active", "created_at")
    list_filter = ("is_active",)
    search_fields = ("name", "email", "siret", "user__email")
    raw_id_fields = ("user",)


class NumberedDocumentAdmin(admin.ModelAdmin):
    """Numbers and totals are owned by the services; status changes go through the API."""

    list_display = ("number", "user", "client", "status", "total", "currency", "issue_date")
    list_filter = ("status", "number_year")
    search_fields = ("number", "client__name", "user__email")
    raw_id_fields = ("user", "client")
    readonly_fields = (
        "number",
        "number_year",
        "number_sequence",
        "status",
        "subtotal",
        "tax_total",
        "total",
        "finalized_at",
        "sent_at",
        "created_at",
        "updated_at",
    )
    ordering = ("-created_at",)

    def has_delete_permission(self, request, obj=None):
        return obj is None or obj.is_draft


@admin.register(Invoice)
class InvoiceAdmin(NumberedDocumentAdmin):
    readonly_fields = NumberedDocumentAdmin.readonly_fields + ("paid_at", "quote")


@admin.register(Quote)
class QuoteAdmin(NumberedDocumentAdmin):
    readonly_fields = NumberedDocumentAdmin.readonly_fields + ("converted_at",)


@admin.register(Expense)
class ExpenseAdmin(admin.ModelAdmin):
    list_display = ("label", "user", "amount", "currency", "expense_date")
    search_fields = ("label", "category", "user__email")
    raw_id_fields = ("user",)
