from concurrent.futures import ThreadPoolExecutor

import pytest
from django.contrib.auth import get_user_model
from django.db import connection

from billing.models import UsageCounters
from billing.services.usage_ledger import check_and_reserve


def _reserve(user_id):
    try:
        return check_and_reserve(user_id, "invoices").allowed
    finally:
        connection.close()


@pytest.mark.django_db(transaction=True)
def test_parallel_reservations_never_exceed_the_limit():
    user = get_user_model().objects.create_user(username="racer", email="racer@example.com", password="pw")

    with ThreadPoolExecutor(max_workers=8) as pool:
        outcomes = list(pool.map(_reserve, [user.pk] * 20))

    assert outcomes.count(True) == 5
    assert outcomes.count(False) == 15
    assert UsageCounters.objects.get(user=user).invoices_this_month == 5
