import billing.models
from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='UsageCounters',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('invoices_this_month', models.PositiveIntegerField(default=0, help_text='Invoices created in the current counting period')),
                ('quotes_this_month', models.PositiveIntegerField(default=0, help_text='Quotes created in the current counting period')),
                ('expenses_this_month', models.PositiveIntegerField(default=0, help_text='Expenses recorded in the current counting period')),
                ('clients_count', models.PositiveIntegerField(default=0, help_text='Live (non-deleted) clients; not period-scoped')),
                ('last_reset_date', models.DateField(default=billing.models.current_period_start, help_text='First day of the current counting period')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.OneToOneField(help_text='User owning these counters', on_delete=django.db.models.deletion.CASCADE, related_name='usage', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Usage counters',
                'verbose_name_plural': 'Usage counters',
                'db_table': 'billing_usage_counters',
                'ordering': ['user__id'],
                'constraints': [
                    models.CheckConstraint(
                        condition=models.Q(('invoices_this_month__gte', 0), ('quotes_this_month__gte', 0), ('expenses_this_month__gte', 0), ('clients_count__gte', 0)),
                        name='usage_counters_non_negative',
                    ),
                ],
            },
        ),
    ]
