import pytest

from billing.plans import (
    PLANS,
    UNLIMITED,
    PlanTier,
    UnknownPlan,
    UsageMetric,
    has_feature,
    is_within_limit,
    limit_for_metric,
    limits_for,
    resolve_tier,
    strict_tier,
    upgrade_target,
)


def test_free_plan_limits():
    features = limits_for("free")
    assert features.invoices_per_month == 5
    assert features.quotes_per_month == 5
    assert features.expenses_per_month == 5
    assert features.clients == 5
    assert features.ocr_scans is False


def test_pro_plan_has_unlimited_clients():
    features = limits_for(PlanTier.PRO)
    assert features.invoices_per_month == 50
    assert limit_for_metric(features, UsageMetric.CLIENTS) == UNLIMITED


def test_business_plan_is_unlimited_everywhere():
    features = PLANS[PlanTier.BUSINESS]
    for metric in UsageMetric:
        assert limit_for_metric(features, metric) == UNLIMITED


@pytest.mark.parametrize("value", ["platinum", "", None, "  "])
def test_unknown_plan_falls_back_to_free(value):
    assert resolve_tier(value) is PlanTier.FREE
    assert limits_for(value) == PLANS[PlanTier.FREE]


def test_plan_lookup_is_case_insensitive():
    assert resolve_tier(" PRO ") is PlanTier.PRO


def test_strict_tier_rejects_unknown_plan():
    with pytest.raises(UnknownPlan):
        strict_tier("enterprise")


def test_is_within_limit():
    assert is_within_limit(5, 4) is True
    assert is_within_limit(5, 5) is False
    assert is_within_limit(UNLIMITED, 10_000) is True


def test_has_feature():
    assert has_feature("pro", "csv_export") is True
    assert has_feature("free", "csv_export") is False
    assert has_feature("business", "api_access") is True
    with pytest.raises(ValueError):
        has_feature("pro", "teleportation")


def test_upgrade_target_picks_cheapest_tier_lifting_the_quota():
    assert upgrade_target("free", "invoices") is PlanTier.PRO
    assert upgrade_target("pro", "invoices") is PlanTier.BUSINESS
    assert upgrade_target("free", "clients") is PlanTier.PRO
    assert upgrade_target("business", "invoices") is None
