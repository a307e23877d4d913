import datetime

import pytest
from django.contrib.auth import get_user_model

from billing.models import UsageCounters
from billing.plans import UNLIMITED
from billing.services.usage_ledger import (
    InvalidMetric,
    UserNotFound,
    check_and_reserve,
    check_usage,
    increment_client_count,
    release,
    reset_expired_periods,
    usage_summary,
)

JAN = datetime.date(2025, 1, 15)
FEB = datetime.date(2025, 2, 3)
LAST_DECEMBER = datetime.date(2024, 12, 1)


def _opened_before_jan(user):
    UsageCounters.objects.filter(user=user).update(last_reset_date=LAST_DECEMBER)
    return user


@pytest.fixture
def free_user(db):
    return _opened_before_jan(
        get_user_model().objects.create_user(username="free", email="free@example.com", password="pw")
    )


@pytest.fixture
def business_user(db):
    return _opened_before_jan(
        get_user_model().objects.create_user(username="biz", email="biz@example.com", password="pw", plan="business")
    )


@pytest.mark.django_db
def test_new_user_gets_zeroed_counters(free_user):
    counters = UsageCounters.objects.get(user=free_user)
    assert counters.invoices_this_month == 0
    assert counters.clients_count == 0
    assert counters.last_reset_date.day == 1


@pytest.mark.django_db
def test_free_plan_allows_five_invoices_then_denies(free_user):
    decisions = [check_and_reserve(free_user.pk, "invoices", now=JAN) for _ in range(6)]

    assert [decision.allowed for decision in decisions] == [True] * 5 + [False]
    assert decisions[4].current == 5
    denied = decisions[5]
    assert denied.current == 5
    assert denied.limit == 5
    assert denied.plan == "free"
    assert denied.upgrade_to == "pro"
    assert "limit of 5" in denied.reason
    assert UsageCounters.objects.get(user=free_user).invoices_this_month == 5


@pytest.mark.django_db
def test_metrics_are_counted_independently(free_user):
    for _ in range(5):
        check_and_reserve(free_user.pk, "quotes", now=JAN)

    assert check_and_reserve(free_user.pk, "quotes", now=JAN).allowed is False
    assert check_and_reserve(free_user.pk, "invoices", now=JAN).allowed is True
    assert check_and_reserve(free_user.pk, "expenses", now=JAN).allowed is True


@pytest.mark.django_db
def test_unlimited_plan_always_allows_and_counts(business_user):
    for _ in range(60):
        decision = check_and_reserve(business_user.pk, "invoices", now=JAN)
        assert decision.allowed is True

    assert decision.limit == UNLIMITED
    assert decision.current == 60


@pytest.mark.django_db
def test_new_month_resets_period_counters_but_not_clients(free_user):
    for _ in range(5):
        check_and_reserve(free_user.pk, "invoices", now=JAN)
    check_and_reserve(free_user.pk, "clients", now=JAN)

    decision = check_and_reserve(free_user.pk, "invoices", now=FEB)

    assert decision.allowed is True
    assert decision.current == 1
    counters = UsageCounters.objects.get(user=free_user)
    assert counters.last_reset_date == datetime.date(2025, 2, 1)
    assert counters.clients_count == 1


@pytest.mark.django_db
def test_check_usage_does_not_reserve(free_user):
    decision = check_usage(free_user.pk, "invoices", now=JAN)

    assert decision.allowed is True
    assert decision.current == 0
    assert UsageCounters.objects.get(user=free_user).invoices_this_month == 0


@pytest.mark.django_db
def test_check_usage_reports_exhausted_quota(free_user):
    for _ in range(5):
        check_and_reserve(free_user.pk, "expenses", now=JAN)

    decision = check_usage(free_user.pk, "expenses", now=JAN)

    assert decision.allowed is False
    assert decision.current == 5


@pytest.mark.django_db
def test_release_never_goes_below_zero(free_user):
    check_and_reserve(free_user.pk, "invoices", now=JAN)

    assert release(free_user.pk, "invoices", now=JAN) is True
    assert release(free_user.pk, "invoices", now=JAN) is False
    assert UsageCounters.objects.get(user=free_user).invoices_this_month == 0


@pytest.mark.django_db
def test_released_unit_can_be_reserved_again(free_user):
    for _ in range(5):
        check_and_reserve(free_user.pk, "invoices", now=JAN)
    release(free_user.pk, "invoices", now=JAN)

    assert check_and_reserve(free_user.pk, "invoices", now=JAN).allowed is True


@pytest.mark.django_db
def test_client_count_adjustments_clamp_at_zero(free_user):
    assert increment_client_count(free_user.pk, 3) == 3
    assert increment_client_count(free_user.pk, -1) == 2
    assert increment_client_count(free_user.pk, -10) == 0


@pytest.mark.django_db
def test_unknown_metric_is_rejected(free_user):
    with pytest.raises(InvalidMetric):
        check_and_reserve(free_user.pk, "templates")
    with pytest.raises(ValueError):
        check_usage(free_user.pk, "")


@pytest.mark.django_db
def test_unknown_user_is_rejected():
    with pytest.raises(UserNotFound):
        check_and_reserve(987654, "invoices")
    assert not UsageCounters.objects.filter(user_id=987654).exists()


@pytest.mark.django_db
def test_unknown_plan_value_gets_free_limits(free_user):
    get_user_model().objects.filter(pk=free_user.pk).update(plan="legacy-gold")

    for _ in range(5):
        assert check_and_reserve(free_user.pk, "invoices", now=JAN).allowed is True
    decision = check_and_reserve(free_user.pk, "invoices", now=JAN)
    assert decision.allowed is False
    assert decision.plan == "free"


@pytest.mark.django_db
def test_missing_counters_are_created_lazily(free_user):
    UsageCounters.objects.filter(user=free_user).delete()

    decision = check_and_reserve(free_user.pk, "quotes", now=JAN)

    assert decision.allowed is True
    assert UsageCounters.objects.get(user=free_user).quotes_this_month == 1


@pytest.mark.django_db
def test_reset_expired_periods_only_touches_stale_rows(free_user, business_user):
    check_and_reserve(free_user.pk, "invoices", now=JAN)
    check_and_reserve(business_user.pk, "invoices", now=FEB)

    assert reset_expired_periods(now=FEB) == 1

    assert UsageCounters.objects.get(user=free_user).invoices_this_month == 0
    assert UsageCounters.objects.get(user=business_user).invoices_this_month == 1


@pytest.mark.django_db
def test_usage_summary_lists_every_metric(free_user):
    check_and_reserve(free_user.pk, "invoices", now=JAN)

    summary = usage_summary(free_user.pk, now=JAN)

    assert summary["plan"] == "free"
    assert summary["period_start"] == "2025-01-01"
    assert summary["subscription_status"] == "active"
    assert set(summary["metrics"]) == {"invoices", "quotes", "expenses", "clients"}
    assert summary["metrics"]["invoices"] == {"current": 1, "limit": 5, "allowed": True}


@pytest.mark.django_db
def test_lagging_clock_never_reopens_an_earlier_period(free_user):
    june = datetime.date(2025, 6, 1)
    may = datetime.date(2025, 5, 31)
    for _ in range(5):
        assert check_and_reserve(free_user.pk, "invoices", now=june).allowed is True

    assert check_and_reserve(free_user.pk, "invoices", now=may).allowed is False
    assert check_and_reserve(free_user.pk, "invoices", now=june).allowed is False
    assert reset_expired_periods(now=may) == 0

    counters = UsageCounters.objects.get(user=free_user)
    assert counters.invoices_this_month == 5
    assert counters.last_reset_date == june
