"""Celery tasks for audit retention."""
from __future__ import annotations

import logging
from typing import Optional

from celery import shared_task

from .services import purge_expired_entries

logger = logging.getLogger(__name__)


@shared_task(queue="maintenance")
def purge_expired_audit_entries(days: Optional[int] = None) -> int:
    """Remove audit entries past the retention window; a no-op when retention is unset."""

    deleted = purge_expired_entries(days)
    if not deleted:
        logger.debug("Audit retention sweep removed nothing.")
    return deleted
