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
            name='AuditEntry',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('document_type', models.CharField(choices=[('invoice', 'Invoice'), ('quote', 'Quote')], max_length=16)),
                ('document_id', models.UUIDField()),
                ('action', models.CharField(choices=[('created', 'Created'), ('updated', 'Updated'), ('finalized', 'Finalized'), ('sent', 'Sent'), ('deleted', 'Deleted'), ('modification_attempt', 'Modification attempt')], max_length=32)),
                ('changes', models.JSONField(blank=True, default=list)),
                ('performed_by', models.CharField(blank=True, max_length=255)),
                ('performed_at', models.DateTimeField(auto_now_add=True)),
                ('ip_address', models.GenericIPAddressField(blank=True, null=True)),
                ('user_agent', models.CharField(blank=True, max_length=255)),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('user', models.ForeignKey(blank=True, help_text='Owner of the audited document', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='audit_entries', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'audit_entry',
                'ordering': ('-performed_at', '-id'),
            },
        ),
        migrations.AddIndex(
            model_name='auditentry',
            index=models.Index(fields=['document_id', '-performed_at'], name='audit_doc_performed_idx'),
        ),
        migrations.AddIndex(
            model_name='auditentry',
            index=models.Index(fields=['user', 'action', '-performed_at'], name='audit_user_action_idx'),
        ),
        migrations.AddIndex(
            model_name='auditentry',
            index=models.Index(fields=['-performed_at'], name='audit_performed_idx'),
        ),
    ]
