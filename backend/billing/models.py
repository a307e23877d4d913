"""Billing models for per-user usage accounting against subscription plans."""
import datetime

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q
from django.utils import timezone


def current_period_start(today: datetime.date = None) -> datetime.date:
    """First day of the month containing ``today`` (defaults to the local date)."""
    today = today or timezone.localdate()
    return today.replace(day=1)


class UsageCounters(models.Model):
    """Per-user counters consumed against plan quotas.

    The three ``*_this_month`` counters are period-scoped and reset when the
    calendar month moves past ``last_reset_date``; ``clients_count`` tracks live
    clients and is never reset. Rows are written only through
    ``billing.services.usage_ledger``.
    """

    id = models.BigAutoField(primary_key=True)
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="usage",
        help_text="User owning these counters",
    )
    invoices_this_month = models.PositiveIntegerField(
        default=0,
        help_text="Invoices created in the current counting period",
    )
    quotes_this_month = models.PositiveIntegerField(
        default=0,
        help_text="Quotes created in the current counting period",
    )
    expenses_this_month = models.PositiveIntegerField(
        default=0,
        help_text="Expenses recorded in the current counting period",
    )
    clients_count = models.PositiveIntegerField(
        default=0,
        help_text="Live (non-deleted) clients; not period-scoped",
    )
    last_reset_date = models.DateField(
        default=current_period_start,
        help_text="First day of the current counting period",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "billing_usage_counters"
        verbose_name = "Usage counters"
        verbose_name_plural = "Usage counters"
        ordering = ["user__id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(invoices_this_month__gte=0)
                & Q(quotes_this_month__gte=0)
                & Q(expenses_this_month__gte=0)
                & Q(clients_count__gte=0),
                name="usage_counters_non_negative",
            ),
        ]

    def clean(self):
        super().clean()
        if self.last_reset_date and self.last_reset_date.day != 1:
            raise ValidationError("last_reset_date must be the first day of a period.")

    def __str__(self):
        return f"UsageCounters<{self.user_id}>"
