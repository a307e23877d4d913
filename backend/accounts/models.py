from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """
    User model carrying the subscription that selects the plan entitlements.
    """

    class Plan(models.TextChoices):
        FREE = "free", "Free"
        PRO = "pro", "Pro"
        BUSINESS = "business", "Business"

    class SubscriptionStatus(models.TextChoices):
        ACTIVE = "active", "Active"
        CANCELLED = "cancelled", "Cancelled"
        PAST_DUE = "past_due", "Past due"
        TRIALING = "trialing", "Trialing"

    email = models.EmailField(unique=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    # Company details printed on financial documents
    company_name = models.CharField(max_length=255, blank=True, verbose_name="Company Name")
    siret = models.CharField(max_length=14, blank=True, null=True, unique=True, verbose_name="SIRET")
    default_currency = models.CharField(
        max_length=3,
        choices=[("EUR", "Euro"), ("USD", "US Dollar"), ("GBP", "Pound Sterling")],
        default="EUR",
    )
    # Subscription
    plan = models.CharField(
        max_length=20,
        choices=Plan.choices,
        default=Plan.FREE,
        help_text="Subscription tier selecting quota and feature entitlements",
    )
    subscription_status = models.CharField(
        max_length=20,
        choices=SubscriptionStatus.choices,
        default=SubscriptionStatus.ACTIVE,
    )
    stripe_customer_id = models.CharField(max_length=255, blank=True)
    stripe_subscription_id = models.CharField(max_length=255, blank=True)
    current_period_end = models.DateTimeField(blank=True, null=True)
    cancel_at_period_end = models.BooleanField(default=False)
    trial_ends_at = models.DateTimeField(blank=True, null=True)

    USERNAME_FIELD = 'username'
    REQUIRED_FIELDS = ['email']

    class Meta:
        db_table = 'user'
        verbose_name = 'User'
        verbose_name_plural = 'Users'

    def __str__(self):
        return self.username
