"""Static subscription plan table and entitlement lookups.

The entitlement table is configuration, not per-user state: a user's ``plan``
selects one row and every quota check joins the user's usage counters against
that row. Unknown tier strings resolve to the most restrictive tier (``free``)
so a corrupted or legacy value can never grant paid quotas.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Dict, Optional, Union

logger = logging.getLogger(__name__)

UNLIMITED = "unlimited"

Limit = Union[int, str]


class PlanTier(str, Enum):
    FREE = "free"
    PRO = "pro"
    BUSINESS = "business"


class UsageMetric(str, Enum):
    INVOICES = "invoices"
    QUOTES = "quotes"
    EXPENSES = "expenses"
    CLIENTS = "clients"


class UnknownPlan(ValueError):
    """Raised by strict lookups when a tier string is not part of the table."""


@dataclass(frozen=True)
class PlanFeatures:
    name: str
    price: int
    price_annual: int
    invoices_per_month: Limit
    quotes_per_month: Limit
    expenses_per_month: Limit
    clients: Limit
    templates: Limit
    ocr_scans: bool
    advanced_ocr: bool
    email_automation: bool
    payment_reminders: bool
    advanced_stats: bool
    multi_user: bool
    api_access: bool
    electronic_signature: bool
    csv_export: bool
    support: str

    def as_dict(self) -> Dict[str, object]:
        return asdict(self)


PLANS: Dict[PlanTier, PlanFeatures] = {
    PlanTier.FREE: PlanFeatures(
        name="Free",
        price=0,
        price_annual=0,
        invoices_per_month=5,
        quotes_per_month=5,
        expenses_per_month=5,
        clients=5,
        templates=1,
        ocr_scans=False,
        advanced_ocr=False,
        email_automation=False,
        payment_reminders=False,
        advanced_stats=False,
        multi_user=False,
        api_access=False,
        electronic_signature=False,
        csv_export=False,
        support="community",
    ),
    PlanTier.PRO: PlanFeatures(
        name="Pro",
        price=10,
        price_annual=100,
        invoices_per_month=50,
        quotes_per_month=50,
        expenses_per_month=50,
        clients=UNLIMITED,
        templates=UNLIMITED,
        ocr_scans=True,
        advanced_ocr=True,
        email_automation=True,
        payment_reminders=True,
        advanced_stats=True,
        multi_user=False,
        api_access=False,
        electronic_signature=True,
        csv_export=True,
        support="priority",
    ),
    PlanTier.BUSINESS: PlanFeatures(
        name="Business",
        price=25,
        price_annual=250,
        invoices_per_month=UNLIMITED,
        quotes_per_month=UNLIMITED,
        expenses_per_month=UNLIMITED,
        clients=UNLIMITED,
        templates=UNLIMITED,
        ocr_scans=True,
        advanced_ocr=True,
        email_automation=True,
        payment_reminders=True,
        advanced_stats=True,
        multi_user=True,
        api_access=True,
        electronic_signature=True,
        csv_export=True,
        support="premium",
    ),
}

METRIC_LIMIT_FIELDS: Dict[UsageMetric, str] = {
    UsageMetric.INVOICES: "invoices_per_month",
    UsageMetric.QUOTES: "quotes_per_month",
    UsageMetric.EXPENSES: "expenses_per_month",
    UsageMetric.CLIENTS: "clients",
}

FEATURE_FLAGS = (
    "ocr_scans",
    "advanced_ocr",
    "email_automation",
    "payment_reminders",
    "advanced_stats",
    "multi_user",
    "api_access",
    "electronic_signature",
    "csv_export",
)

_TIER_ORDER = (PlanTier.FREE, PlanTier.PRO, PlanTier.BUSINESS)


def resolve_tier(plan: Optional[str]) -> PlanTier:
    """Map a stored plan string onto a tier, falling back to ``free``."""

    if isinstance(plan, PlanTier):
        return plan
    normalized = (plan or "").strip().lower()
    try:
        return PlanTier(normalized)
    except ValueError:
        logger.warning("Unknown subscription plan %r; applying free plan limits.", plan)
        return PlanTier.FREE


def strict_tier(plan: Optional[str]) -> PlanTier:
    normalized = (plan or "").strip().lower()
    try:
        return PlanTier(normalized)
    except ValueError as exc:
        raise UnknownPlan(f"Unknown subscription plan '{plan}'.") from exc


def limits_for(plan: Optional[str]) -> PlanFeatures:
    return PLANS[resolve_tier(plan)]


get_plan_features = limits_for


def limit_for_metric(features: PlanFeatures, metric: Union[str, UsageMetric]) -> Limit:
    return getattr(features, METRIC_LIMIT_FIELDS[UsageMetric(metric)])


def is_unlimited(limit: Limit) -> bool:
    return limit == UNLIMITED


def is_within_limit(limit: Limit, current: int) -> bool:
    """``True`` when one more unit may be consumed on top of ``current``."""
    if is_unlimited(limit):
        return True
    return current < int(limit)


def has_feature(plan: Optional[str], feature: str) -> bool:
    if feature not in FEATURE_FLAGS:
        raise ValueError(f"Unknown plan feature '{feature}'.")
    return bool(getattr(limits_for(plan), feature))


def upgrade_target(plan: Optional[str], metric: Union[str, UsageMetric]) -> Optional[PlanTier]:
    """Return the cheapest tier above ``plan`` that lifts the quota for ``metric``."""

    current_tier = resolve_tier(plan)
    current_limit = limit_for_metric(PLANS[current_tier], metric)
    for tier in _TIER_ORDER[_TIER_ORDER.index(current_tier) + 1:]:
        candidate = limit_for_metric(PLANS[tier], metric)
        if is_unlimited(candidate) or (not is_unlimited(current_limit) and candidate > current_limit):
            return tier
    return None
