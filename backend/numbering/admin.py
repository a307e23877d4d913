from django.contrib import admin

from .models import SequenceCounter


@admin.register(SequenceCounter)
class SequenceCounterAdmin(admin.ModelAdmin):
    """Counters are advanced only by the allocator; use resync_numbering to repair them."""

    list_display = ("user", "document_type", "prefix", "year", "next_number", "updated_at")
    list_filter = ("document_type", "year")
    search_fields = ("user__username", "user__email", "prefix")
    raw_id_fields = ("user",)
    readonly_fields = ("year", "next_number", "created_at", "updated_at")
    ordering = ("user_id", "document_type")
