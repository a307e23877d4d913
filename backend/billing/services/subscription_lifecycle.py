"""Plan assignment for users; the payment processor stays outside this service."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from django.contrib.auth import get_user_model
from django.db import transaction

from billing.observability.logging import log_billing_event
from billing.plans import PlanTier, strict_tier

logger = logging.getLogger(__name__)

User = get_user_model()


class SubscriptionLifecycleError(RuntimeError):
    """Base error for subscription lifecycle operations."""


@dataclass(frozen=True)
class PlanChangeResult:
    user_id: int
    previous_plan: str
    plan: str
    changed: bool


def change_user_plan(user_id, plan: str, *, status: Optional[str] = None, actor: Optional[str] = None) -> PlanChangeResult:
    """Move ``user_id`` onto ``plan``; unknown tiers are rejected outright."""

    tier: PlanTier = strict_tier(plan)
    if status is not None and status not in User.SubscriptionStatus.values:
        raise SubscriptionLifecycleError(f"Unknown subscription status '{status}'.")

    with transaction.atomic():
        user = User.objects.select_for_update().filter(pk=user_id).first()
        if user is None:
            raise SubscriptionLifecycleError(f"User {user_id} does not exist.")

        previous = user.plan
        update_fields = []
        if user.plan != tier.value:
            user.plan = tier.value
            update_fields.append("plan")
        if status is not None and user.subscription_status != status:
            user.subscription_status = status
            update_fields.append("subscription_status")
        if update_fields:
            user.save(update_fields=update_fields + ["updated_at"])

    log_billing_event(
        message="subscription.plan_changed" if update_fields else "subscription.plan_unchanged",
        user_id=user_id,
        actor=actor,
        extra={"from": previous, "to": tier.value, "status": status},
    )
    return PlanChangeResult(user_id=user.pk, previous_plan=previous, plan=tier.value, changed=bool(update_fields))
