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
            name='SequenceCounter',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('document_type', models.CharField(choices=[('invoice', 'Invoice'), ('quote', 'Quote')], max_length=16)),
                ('prefix', models.CharField(help_text='Identifier prefix, e.g. FAC or DEVIS', max_length=10)),
                ('year', models.PositiveIntegerField(help_text='Calendar year the counter currently numbers')),
                ('next_number', models.PositiveIntegerField(default=1)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='sequence_counters', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'numbering_sequence_counter',
                'ordering': ['user_id', 'document_type'],
                'constraints': [
                    models.UniqueConstraint(fields=('user', 'document_type'), name='uniq_sequence_counter_user_type'),
                    models.CheckConstraint(condition=models.Q(('next_number__gte', 1)), name='sequence_counter_next_number_positive'),
                ],
            },
        ),
    ]
