from django.contrib import admin

from .models import AuditEntry


@admin.register(AuditEntry)
class AuditEntryAdmin(admin.ModelAdmin):
    list_display = (
        "performed_at",
        "document_type",
        "document_id",
        "action",
        "user",
        "performed_by",
    )
    list_filter = ("action", "document_type")
    search_fields = ("document_id", "performed_by", "ip_address", "user__username", "user__email")
    ordering = ("-performed_at",)
    readonly_fields = (
        "performed_at",
        "document_type",
        "document_id",
        "user",
        "action",
        "changes",
        "performed_by",
        "ip_address",
        "user_agent",
        "metadata",
    )

    fieldsets = (
        (None, {"fields": ("performed_at", "user", "performed_by")}),
        ("Document", {"fields": ("document_type", "document_id", "action")}),
        ("Changes", {"fields": ("changes", "metadata")}),
        ("Meta", {"fields": ("ip_address", "user_agent")}),
    )

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
