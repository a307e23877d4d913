"""Per-user, per-document-type sequence counters."""
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q


class DocumentType(models.TextChoices):
    INVOICE = "invoice", "Invoice"
    QUOTE = "quote", "Quote"


class SequenceCounter(models.Model):
    """Next sequence value for one user and document type.

    ``next_number`` is the value the next allocation will hand out; it only
    ever moves forward within a year and restarts at 1 when ``year`` changes.
    Mutated exclusively through ``numbering.services.allocator``.
    """

    id = models.BigAutoField(primary_key=True)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="sequence_counters",
    )
    document_type = models.CharField(max_length=16, choices=DocumentType.choices)
    prefix = models.CharField(max_length=10, help_text="Identifier prefix, e.g. FAC or DEVIS")
    year = models.PositiveIntegerField(help_text="Calendar year the counter currently numbers")
    next_number = models.PositiveIntegerField(default=1)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "numbering_sequence_counter"
        ordering = ["user_id", "document_type"]
        constraints = [
            models.UniqueConstraint(fields=["user", "document_type"], name="uniq_sequence_counter_user_type"),
            models.CheckConstraint(condition=Q(next_number__gte=1), name="sequence_counter_next_number_positive"),
        ]

    def clean(self):
        super().clean()
        if not self.prefix or len(self.prefix) > 10:
            raise ValidationError({"prefix": "Prefix must be between 1 and 10 characters."})

    def __str__(self):
        return f"{self.prefix}-{self.year} next={self.next_number} ({self.document_type}, user={self.user_id})"
