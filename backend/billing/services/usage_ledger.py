"""Per-user usage ledger with atomic quota reservations.

Every mutation is a single conditional ``UPDATE`` so the limit check and the
increment happen in one statement; two concurrent reservations for the last
free slot can never both succeed.
"""
from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Union

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import OperationalError, models, transaction
from django.db.models import F, Q, Value
from django.db.models.functions import Greatest
from django.utils import timezone

from billing.models import UsageCounters, current_period_start
from billing.observability.logging import log_billing_event
from billing.observability.metrics import USAGE_DECISION_COUNT, USAGE_PERIOD_RESET_COUNT
from billing.plans import (
    Limit,
    UsageMetric,
    is_unlimited,
    is_within_limit,
    limit_for_metric,
    limits_for,
    resolve_tier,
    upgrade_target,
)

logger = logging.getLogger(__name__)

PERIOD_FIELDS = ("invoices_this_month", "quotes_this_month", "expenses_this_month")

METRIC_FIELDS: Dict[UsageMetric, str] = {
    UsageMetric.INVOICES: "invoices_this_month",
    UsageMetric.QUOTES: "quotes_this_month",
    UsageMetric.EXPENSES: "expenses_this_month",
    UsageMetric.CLIENTS: "clients_count",
}

DateLike = Union[datetime.date, datetime.datetime, None]


class UsageLedgerError(Exception):
    """Base exception for usage ledger operations."""


class UserNotFound(UsageLedgerError):
    """Raised when the requested user does not exist."""


class InvalidMetric(UsageLedgerError, ValueError):
    """Raised for metric names outside invoices/quotes/expenses/clients."""


class ConcurrentModification(UsageLedgerError):
    """Raised when the store keeps rejecting the update after bounded retries."""


class QuotaExceeded(UsageLedgerError):
    """Raised by callers that turn a denied decision into an error."""

    def __init__(self, decision: "UsageDecision"):
        self.decision = decision
        super().__init__(decision.reason)


@dataclass(frozen=True)
class UsageDecision:
    allowed: bool
    metric: str
    current: int
    limit: Limit
    plan: str
    reason: str = ""
    upgrade_to: Optional[str] = None

    def as_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = {
            "allowed": self.allowed,
            "metric": self.metric,
            "current": self.current,
            "limit": self.limit,
            "plan": self.plan,
        }
        if self.reason:
            payload["reason"] = self.reason
        if self.upgrade_to:
            payload["upgrade_to"] = self.upgrade_to
        return payload


def check_and_reserve(user_id, metric: Union[str, UsageMetric], *, now: DateLike = None) -> UsageDecision:
    """Atomically consume one unit of ``metric`` if the user's plan allows it.

    Applies the monthly rollover first. On ``allowed=True`` the counter has
    already been incremented; on ``allowed=False`` nothing changed.
    """

    usage_metric = _resolve_metric(metric)
    field = METRIC_FIELDS[usage_metric]
    today = _to_date(now)
    plan = _load_plan(user_id)
    limit = limit_for_metric(limits_for(plan), usage_metric)

    def _reserve():
        _ensure_counters(user_id, today)
        _apply_rollover(user_id, today)
        counters = UsageCounters.objects.filter(user_id=user_id)
        if not is_unlimited(limit):
            counters = counters.filter(**{f"{field}__lt": int(limit)})
        reserved = counters.update(**{field: F(field) + 1, "updated_at": timezone.now()})
        current = UsageCounters.objects.filter(user_id=user_id).values_list(field, flat=True).get()
        return reserved == 1, current

    allowed, current = _run_with_retries(_reserve, user_id=user_id, operation="check_and_reserve")

    USAGE_DECISION_COUNT.labels(metric=usage_metric.value, outcome="allowed" if allowed else "denied").inc()
    if allowed:
        return UsageDecision(allowed=True, metric=usage_metric.value, current=current, limit=limit, plan=plan)

    target = upgrade_target(plan, usage_metric)
    decision = UsageDecision(
        allowed=False,
        metric=usage_metric.value,
        current=current,
        limit=limit,
        plan=plan,
        reason=f"{usage_metric.value} limit of {limit} reached on the {plan} plan.",
        upgrade_to=target.value if target else None,
    )
    log_billing_event(
        message="usage.quota_denied",
        user_id=user_id,
        extra={"metric": usage_metric.value, "current": current, "limit": limit, "plan": plan},
        level=logging.WARNING,
    )
    return decision


def check_usage(user_id, metric: Union[str, UsageMetric], *, now: DateLike = None) -> UsageDecision:
    """Report whether one more unit would be allowed, without reserving it."""

    usage_metric = _resolve_metric(metric)
    field = METRIC_FIELDS[usage_metric]
    today = _to_date(now)
    plan = _load_plan(user_id)
    limit = limit_for_metric(limits_for(plan), usage_metric)

    def _peek():
        _ensure_counters(user_id, today)
        _apply_rollover(user_id, today)
        return UsageCounters.objects.filter(user_id=user_id).values_list(field, flat=True).get()

    current = _run_with_retries(_peek, user_id=user_id, operation="check_usage")
    allowed = is_within_limit(limit, current)
    reason = "" if allowed else f"{usage_metric.value} limit of {limit} reached on the {plan} plan."
    return UsageDecision(allowed=allowed, metric=usage_metric.value, current=current, limit=limit, plan=plan,
                         reason=reason)


def release(user_id, metric: Union[str, UsageMetric], *, now: DateLike = None) -> bool:
    """Give back one unit of ``metric``; counters never drop below zero.

    Returns ``True`` when a unit was actually returned.
    """

    usage_metric = _resolve_metric(metric)
    field = METRIC_FIELDS[usage_metric]
    today = _to_date(now)
    _load_plan(user_id)

    def _release():
        _apply_rollover(user_id, today)
        return (
            UsageCounters.objects.filter(user_id=user_id, **{f"{field}__gt": 0})
            .update(**{field: F(field) - 1, "updated_at": timezone.now()})
        )

    released = _run_with_retries(_release, user_id=user_id, operation="release")
    if not released:
        logger.info("Usage release for user %s on %s was a no-op (counter already at zero).",
                    user_id, usage_metric.value)
    return bool(released)


def increment_client_count(user_id, delta: int) -> int:
    """Adjust the live client count by ``delta`` (clamped at zero) and return it."""

    _load_plan(user_id)

    def _adjust():
        _ensure_counters(user_id, timezone.localdate())
        if delta:
            UsageCounters.objects.filter(user_id=user_id).update(
                clients_count=Greatest(F("clients_count") + delta, Value(0), output_field=models.IntegerField()),
                updated_at=timezone.now(),
            )
        return UsageCounters.objects.filter(user_id=user_id).values_list("clients_count", flat=True).get()

    return _run_with_retries(_adjust, user_id=user_id, operation="increment_client_count")


def usage_summary(user_id, *, now: DateLike = None) -> Dict[str, object]:
    """Plan, limits and current counters for every metric in one payload."""

    today = _to_date(now)
    plan = _load_plan(user_id)
    features = limits_for(plan)

    def _read():
        _ensure_counters(user_id, today)
        _apply_rollover(user_id, today)
        return UsageCounters.objects.get(user_id=user_id)

    counters = _run_with_retries(_read, user_id=user_id, operation="usage_summary")
    metrics = {}
    for usage_metric, field in METRIC_FIELDS.items():
        limit = limit_for_metric(features, usage_metric)
        current = getattr(counters, field)
        metrics[usage_metric.value] = {
            "current": current,
            "limit": limit,
            "allowed": is_within_limit(limit, current),
        }
    subscription_status = (
        get_user_model().objects.filter(pk=user_id).values_list("subscription_status", flat=True).first()
    )
    return {
        "plan": plan,
        "subscription_status": subscription_status,
        "period_start": counters.last_reset_date.isoformat(),
        "metrics": metrics,
    }


def reset_expired_periods(*, now: DateLike = None) -> int:
    """Roll every counter row that belongs to an earlier period into the current one."""

    today = _to_date(now)
    start = current_period_start(today)
    updated = (
        UsageCounters.objects.filter(_outside_period(start))
        .update(last_reset_date=start, updated_at=timezone.now(), **{name: 0 for name in PERIOD_FIELDS})
    )
    if updated:
        USAGE_PERIOD_RESET_COUNT.labels(source="sweep").inc(updated)
        log_billing_event(message="usage.period_reset", extra={"rows": updated, "period_start": start.isoformat()})
    return updated


def rebuild_client_count(user_id) -> int:
    """Recount live clients from the documents store and persist the result."""

    from documents.models import Client

    _load_plan(user_id)
    with transaction.atomic():
        _ensure_counters(user_id, timezone.localdate())
        live = Client.objects.filter(user_id=user_id, is_active=True).count()
        UsageCounters.objects.filter(user_id=user_id).update(clients_count=live, updated_at=timezone.now())
    logger.info("Rebuilt client count for user %s: %s", user_id, live)
    return live


def _resolve_metric(metric: Union[str, UsageMetric]) -> UsageMetric:
    try:
        return UsageMetric(metric)
    except ValueError as exc:
        raise InvalidMetric(f"Unknown usage metric '{metric}'.") from exc


def _load_plan(user_id) -> str:
    rows = list(get_user_model().objects.filter(pk=user_id).values_list("plan", flat=True)[:1])
    if not rows:
        raise UserNotFound(f"User {user_id} does not exist.")
    return resolve_tier(rows[0]).value


def _to_date(now: DateLike) -> datetime.date:
    if now is None:
        return timezone.localdate()
    if isinstance(now, datetime.datetime):
        return timezone.localdate(now) if timezone.is_aware(now) else now.date()
    return now


def _outside_period(start: datetime.date) -> Q:
    # Only earlier periods roll over; last_reset_date never moves backwards.
    return Q(last_reset_date__lt=start)


def _ensure_counters(user_id, today: datetime.date) -> None:
    UsageCounters.objects.get_or_create(user_id=user_id, defaults={"last_reset_date": current_period_start(today)})


def _apply_rollover(user_id, today: datetime.date) -> int:
    start = current_period_start(today)
    updated = (
        UsageCounters.objects.filter(_outside_period(start), user_id=user_id)
        .update(last_reset_date=start, updated_at=timezone.now(), **{name: 0 for name in PERIOD_FIELDS})
    )
    if updated:
        USAGE_PERIOD_RESET_COUNT.labels(source="lazy").inc()
    return updated


def _run_with_retries(func, *, user_id, operation: str):
    max_attempts = max(1, int(getattr(settings, "USAGE_MAX_ATTEMPTS", 3)))
    for attempt in range(1, max_attempts + 1):
        try:
            with transaction.atomic():
                return func()
        except OperationalError as exc:
            if attempt >= max_attempts:
                log_billing_event(
                    message="usage.conflict_exhausted",
                    user_id=user_id,
                    extra={"operation": operation, "attempts": attempt},
                    level=logging.ERROR,
                )
                raise ConcurrentModification(
                    f"Usage counters for user {user_id} are busy; retry {operation} later."
                ) from exc
            logger.warning("Retrying %s for user %s after store conflict (attempt %s): %s",
                           operation, user_id, attempt, exc)
