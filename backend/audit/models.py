from __future__ import annotations

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models


class AuditEntry(models.Model):
    """Append-only record of a change (or attempted change) to a document."""

    class DocumentType(models.TextChoices):
        INVOICE = "invoice", "Invoice"
        QUOTE = "quote", "Quote"

    class Action(models.TextChoices):
        CREATED = "created", "Created"
        UPDATED = "updated", "Updated"
        FINALIZED = "finalized", "Finalized"
        SENT = "sent", "Sent"
        DELETED = "deleted", "Deleted"
        MODIFICATION_ATTEMPT = "modification_attempt", "Modification attempt"

    id = models.BigAutoField(primary_key=True)
    document_type = models.CharField(max_length=16, choices=DocumentType.choices)
    document_id = models.UUIDField()
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="audit_entries",
        help_text="Owner of the audited document",
    )
    action = models.CharField(max_length=32, choices=Action.choices)
    changes = models.JSONField(default=list, blank=True)
    performed_by = models.CharField(max_length=255, blank=True)
    performed_at = models.DateTimeField(auto_now_add=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.CharField(max_length=255, blank=True)
    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        db_table = "audit_entry"
        ordering = ("-performed_at", "-id")
        indexes = [
            models.Index(fields=("document_id", "-performed_at"), name="audit_doc_performed_idx"),
            models.Index(fields=("user", "action", "-performed_at"), name="audit_user_action_idx"),
            models.Index(fields=("-performed_at",), name="audit_performed_idx"),
        ]

    def save(self, *args, **kwargs):
        if self.pk is not None and AuditEntry.objects.filter(pk=self.pk).exists():
            raise ValidationError("Audit entries are immutable once written.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Audit entries cannot be deleted individually.")

    def __str__(self) -> str:  # pragma: no cover - human readable only
        return f"AuditEntry<{self.document_type}:{self.document_id} {self.action}>"
