"""Celery tasks for usage accounting."""
from __future__ import annotations

import logging

from celery import shared_task

from billing.services.usage_ledger import reset_expired_periods

logger = logging.getLogger(__name__)


@shared_task(queue="billing")
def reset_monthly_usage() -> int:
    """Roll every stale usage counter into the current monthly period."""

    updated = reset_expired_periods()
    logger.info("Monthly usage reset touched %s counter rows.", updated)
    return updated
