from django.contrib import admin

from .models import UsageCounters
from .plans import limit_for_metric, limits_for


@admin.register(UsageCounters)
class UsageCountersAdmin(admin.ModelAdmin):
    """Counters are maintained by the usage ledger; the admin only inspects them."""

    list_display = (
        "user",
        "plan_display",
        "invoices_this_month",
        "quotes_this_month",
        "expenses_this_month",
        "clients_count",
        "last_reset_date",
        "updated_at",
    )
    search_fields = ("user__username", "user__email", "user__company_name")
    list_filter = ("last_reset_date", "user__plan")
    list_select_related = ("user",)
    raw_id_fields = ("user",)
    readonly_fields = (
        "invoices_this_month",
        "quotes_this_month",
        "expenses_this_month",
        "clients_count",
        "last_reset_date",
        "created_at",
        "updated_at",
        "limits_display",
    )
    ordering = ("-updated_at",)

    fieldsets = (
        ("Owner", {"fields": ("user",)}),
        ("Period counters", {"fields": ("invoices_this_month", "quotes_this_month", "expenses_this_month",
                                        "last_reset_date")}),
        ("Clients", {"fields": ("clients_count",)}),
        ("Plan limits", {"fields": ("limits_display",)}),
        ("Timestamps", {"fields": ("created_at", "updated_at")}),
    )

    @admin.display(description="Plan")
    def plan_display(self, obj):
        return obj.user.plan

    @admin.display(description="Limits")
    def limits_display(self, obj):
        features = limits_for(obj.user.plan)
        return ", ".join(
            f"{metric}: {limit_for_metric(features, metric)}"
            for metric in ("invoices", "quotes", "expenses", "clients")
        )
