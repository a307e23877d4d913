from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """
    User admin configuration
    """
    list_display = (
        'username', 'email', 'company_name', 'plan',
        'subscription_status', 'is_active', 'created_at'
    )
    list_filter = (
        'is_active', 'is_staff', 'is_superuser', 'plan',
        'subscription_status', 'created_at'
    )
    search_fields = (
        'username', 'email', 'first_name', 'last_name',
        'company_name', 'siret', 'stripe_customer_id'
    )
    ordering = ('-created_at',)
    readonly_fields = ('created_at', 'updated_at')

    fieldsets = BaseUserAdmin.fieldsets + (
        ('Company', {
            'fields': ('company_name', 'siret', 'default_currency')
        }),
        ('Subscription', {
            'fields': (
                'plan', 'subscription_status', 'stripe_customer_id', 'stripe_subscription_id',
                'current_period_end', 'cancel_at_period_end', 'trial_ends_at',
            )
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at')
        }),
    )

    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ('Subscription', {
            'fields': ('email', 'plan')
        }),
    )
