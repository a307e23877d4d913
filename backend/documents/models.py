"""Clients, invoices, quotes and expenses owned by a single user."""
import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone


class Client(models.Model):
    """Customer of a user; deleting one only deactivates it."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="clients")
    name = models.CharField(max_length=255)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=32, blank=True)
    address = models.TextField(blank=True)
    siret = models.CharField(max_length=14, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "documents_client"
        ordering = ["name"]
        indexes = [models.Index(fields=["user", "is_active"], name="client_user_active_idx")]

    def __str__(self):
        return self.name


class NumberedDocument(models.Model):
    """Fields shared by invoices and quotes.

    ``number`` is issued once at creation and never rewritten; ``number_year``
    and ``number_sequence`` keep its parts queryable for numbering checks.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="%(class)ss")
    client = models.ForeignKey(Client, on_delete=models.PROTECT, related_name="%(class)ss")
    number = models.CharField(max_length=32, editable=False)
    number_year = models.PositiveIntegerField(editable=False)
    number_sequence = models.PositiveIntegerField(editable=False)
    issue_date = models.DateField(default=timezone.localdate)
    items = models.JSONField(default=list, blank=True)
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    tax_total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=3, default="EUR")
    notes = models.TextField(blank=True)
    finalized_at = models.DateTimeField(null=True, blank=True)
    sent_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    @property
    def is_draft(self) -> bool:
        return self.status == "draft"

    def __str__(self):
        return self.number


class Quote(NumberedDocument):
    class Status(models.TextChoices):
        DRAFT = "draft", "Draft"
        FINALIZED = "finalized", "Finalized"
        SENT = "sent", "Sent"
        ACCEPTED = "accepted", "Accepted"
        REJECTED = "rejected", "Rejected"
        EXPIRED = "expired", "Expired"
        CONVERTED = "converted", "Converted"

    status = models.CharField(max_length=16, choices=Status.choices, default=Status.DRAFT)
    valid_until = models.DateField(null=True, blank=True)
    converted_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "documents_quote"
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(fields=["user", "number"], name="uniq_quote_number_per_user"),
        ]
        indexes = [
            models.Index(fields=["user", "status"], name="quote_user_status_idx"),
            models.Index(fields=["user", "number_year", "number_sequence"], name="quote_user_sequence_idx"),
        ]


class Invoice(NumberedDocument):
    class Status(models.TextChoices):
        DRAFT = "draft", "Draft"
        FINALIZED = "finalized", "Finalized"
        SENT = "sent", "Sent"
        PAID = "paid", "Paid"
        PARTIALLY_PAID = "partially_paid", "Partially paid"
        OVERDUE = "overdue", "Overdue"
        CANCELLED = "cancelled", "Cancelled"

    status = models.CharField(max_length=16, choices=Status.choices, default=Status.DRAFT)
    due_date = models.DateField(null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    quote = models.ForeignKey(
        Quote,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="invoices",
        help_text="Quote this invoice was converted from",
    )

    class Meta:
        db_table = "documents_invoice"
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(fields=["user", "number"], name="uniq_invoice_number_per_user"),
            models.CheckConstraint(condition=Q(total__gte=0), name="invoice_total_non_negative"),
        ]
        indexes = [
            models.Index(fields=["user", "status"], name="invoice_user_status_idx"),
            models.Index(fields=["user", "number_year", "number_sequence"], name="invoice_user_sequence_idx"),
        ]


class Expense(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="expenses")
    label = models.CharField(max_length=255)
    category = models.CharField(max_length=64, blank=True)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    vat_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=3, default="EUR")
    expense_date = models.DateField(default=timezone.localdate)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "documents_expense"
        ordering = ["-expense_date", "-created_at"]
        constraints = [
            models.CheckConstraint(condition=Q(amount__gte=0), name="expense_amount_non_negative"),
        ]

    def __str__(self):
        return f"{self.label} ({self.amount} {self.currency})"
