import os
from celery import Celery
from celery.schedules import crontab as _celery_crontab

# Set the default Django settings module for the 'celery' program.
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'backend.settings')

app = Celery('backend')

app.config_from_object('django.conf:settings', namespace='CELERY')

# Load task modules from all registered Django apps.
app.autodiscover_tasks()

app.conf.task_routes = {
    "billing.tasks.reset_monthly_usage": {"queue": "billing"},
    "audit.tasks.purge_expired_audit_entries": {"queue": "maintenance"},

    # Default queue
    '*': {'queue': 'default'},
}

app.conf.task_default_queue = 'default'

app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',

    timezone='UTC',
    enable_utc=True,

    task_track_started=True,
    task_time_limit=30 * 60,
    task_soft_time_limit=25 * 60,

    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,

    task_acks_late=True,
    task_reject_on_worker_lost=True,

    worker_send_task_events=True,
    task_send_sent_event=True,

    task_queues={
        'default': {
            'exchange': 'default',
            'routing_key': 'default',
        },
        'billing': {
            'exchange': 'billing',
            'routing_key': 'billing',
        },
        'maintenance': {
            'exchange': 'maintenance',
            'routing_key': 'maintenance',
        },
    },

    task_ignore_result=False,
    task_store_errors_even_if_ignored=True,
)

app.conf.task_annotations = {
    "billing.tasks.reset_monthly_usage": {
        "time_limit": 600,
        "soft_time_limit": 540,
    },
    "audit.tasks.purge_expired_audit_entries": {
        "rate_limit": "1/h",
        "time_limit": 1800,
        "soft_time_limit": 1500,
    },
}


class VerboseCrontab(_celery_crontab):
    """Extend Celery's crontab schedule with a repr that always shows the minute field."""

    def __repr__(self) -> str:  # pragma: no cover - formatting helper only
        base = super().__repr__()
        minute_expr = getattr(self, "_orig_minute", None)
        if minute_expr and f"minute='{minute_expr}'" not in base:
            base = f"{base} minute='{minute_expr}'"
        return base


def crontab(*args, **kwargs):
    return VerboseCrontab(*args, **kwargs)


app.conf.beat_schedule = {
    "reset_monthly_usage": {
        "task": "billing.tasks.reset_monthly_usage",
        "schedule": crontab(day_of_month=1, hour=0, minute=5),
        "options": {"queue": "billing", "priority": 8},
    },
    "purge_expired_audit_entries_daily": {
        "task": "audit.tasks.purge_expired_audit_entries",
        "schedule": crontab(hour=3, minute=30),
        "options": {"queue": "maintenance"},
    },
}
