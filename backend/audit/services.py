"""Best-effort audit trail for invoices and quotes.

``record`` must never break the business operation it describes: the insert
runs in its own savepoint and any failure is logged and counted, not raised.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence
from uuid import UUID

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from billing.observability.metrics import AUDIT_WRITE_FAILURE_COUNT

from .models import AuditEntry

logger = logging.getLogger(__name__)

DEFAULT_TRACKED_FIELDS = (
    "client_id",
    "items",
    "subtotal",
    "tax_total",
    "total",
    "status",
    "issue_date",
    "due_date",
    "valid_until",
    "notes",
    "currency",
)

MAX_USER_AGENT_LENGTH = 255


@dataclass(frozen=True)
class AuditContext:
    ip_address: Optional[str] = None
    user_agent: str = ""


def context_from_request(request) -> AuditContext:
    if request is None:
        return AuditContext()
    meta = getattr(request, "META", {}) or {}
    return AuditContext(
        ip_address=_get_client_ip(meta),
        user_agent=(meta.get("HTTP_USER_AGENT") or "")[:MAX_USER_AGENT_LENGTH],
    )


def record(
    document_id,
    user_id,
    action: str,
    changes: Optional[Sequence[Mapping[str, Any]]] = None,
    performed_by: Optional[str] = None,
    context: Optional[AuditContext] = None,
    *,
    document_type: str,
    metadata: Optional[Dict[str, Any]] = None,
) -> Optional[AuditEntry]:
    """Append an audit entry. Returns ``None`` instead of raising on failure."""

    context = context or AuditContext()
    try:
        with transaction.atomic():
            return AuditEntry.objects.create(
                document_type=document_type,
                document_id=document_id,
                user_id=user_id,
                action=action,
                changes=_jsonable(list(changes or [])),
                performed_by=str(performed_by if performed_by is not None else user_id or ""),
                ip_address=context.ip_address or None,
                user_agent=(context.user_agent or "")[:MAX_USER_AGENT_LENGTH],
                metadata=_jsonable(metadata or {}),
            )
    except Exception:
        AUDIT_WRITE_FAILURE_COUNT.labels(action=str(action)).inc()
        logger.exception(
            "Failed to write audit entry for %s %s (action=%s)", document_type, document_id, action
        )
        return None


record_audit = record


def detect_changes(
    old: Mapping[str, Any],
    new: Mapping[str, Any],
    fields: Optional[Iterable[str]] = None,
) -> List[Dict[str, Any]]:
    """Field-level diff between two snapshots; only fields present in ``new`` count."""

    changes = []
    for name in fields or DEFAULT_TRACKED_FIELDS:
        if name not in new:
            continue
        before = _jsonable(old.get(name))
        after = _jsonable(new.get(name))
        if before != after:
            changes.append({"field": name, "old_value": before, "new_value": after})
    return changes


def history_for(document_id, limit: int = 50):
    return AuditEntry.objects.filter(document_id=document_id).order_by("-performed_at", "-id")[:limit]


def has_recent_modification_attempts(document_id, minutes: int = 60) -> bool:
    cutoff = timezone.now() - timedelta(minutes=minutes)
    return AuditEntry.objects.filter(
        document_id=document_id,
        action=AuditEntry.Action.MODIFICATION_ATTEMPT,
        performed_at__gte=cutoff,
    ).exists()


def purge_expired_entries(days: Optional[int] = None) -> int:
    """Delete entries older than ``days`` (defaults to ``AUDIT_RETENTION_DAYS``).

    Retention is opt-in: with no configured window nothing is deleted.
    """

    if days is None:
        days = getattr(settings, "AUDIT_RETENTION_DAYS", None)
    if not days:
        return 0
    cutoff = timezone.now() - timedelta(days=int(days))
    deleted, _ = AuditEntry.objects.filter(performed_at__lt=cutoff).delete()
    logger.info("Purged %s audit entries older than %s days.", deleted, days)
    return deleted


def _get_client_ip(meta) -> Optional[str]:
    x_forwarded_for = meta.get("HTTP_X_FORWARDED_FOR")
    if x_forwarded_for:
        return x_forwarded_for.split(",")[0].strip()
    x_real_ip = meta.get("HTTP_X_REAL_IP")
    if x_real_ip:
        return x_real_ip.strip()
    return meta.get("REMOTE_ADDR")


def _jsonable(value):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Mapping):
        return {str(key): _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    return value
