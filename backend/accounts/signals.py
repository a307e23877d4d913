from django.db.models.signals import post_save
from django.dispatch import receiver
from .models import User
import logging

logger = logging.getLogger(__name__)


@receiver(post_save, sender=User)
def create_usage_counters(sender, instance, created, **kwargs):
    """
    Open a zeroed usage ledger for every new user
    """
    if not created:
        return

    from billing.models import UsageCounters

    UsageCounters.objects.get_or_create(user=instance)
    logger.info("New user created: %s (%s), usage counters initialised", instance.username, instance.email)
