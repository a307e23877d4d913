"""Expose commonly used billing services."""

from .usage_ledger import (
    ConcurrentModification,
    InvalidMetric,
    QuotaExceeded,
    UsageDecision,
    UsageLedgerError,
    UserNotFound,
    check_and_reserve,
    check_usage,
    increment_client_count,
    rebuild_client_count,
    release,
    reset_expired_periods,
    usage_summary,
)
from .subscription_lifecycle import PlanChangeResult, SubscriptionLifecycleError, change_user_plan
