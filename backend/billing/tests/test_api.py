import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from billing.services.usage_ledger import check_and_reserve


@pytest.fixture
def api_user(db):
    return get_user_model().objects.create_user(username="alice", email="alice@example.com", password="pass1234")


@pytest.fixture
def client(api_user):
    api_client = APIClient()
    api_client.force_authenticate(user=api_user)
    return api_client


@pytest.mark.django_db
def test_usage_endpoint_returns_plan_and_counters(client, api_user):
    check_and_reserve(api_user.pk, "invoices")

    response = client.get("/api/billing/usage/")

    assert response.status_code == 200
    payload = response.json()
    assert payload["plan"] == "free"
    assert payload["metrics"]["invoices"]["current"] == 1
    assert payload["metrics"]["invoices"]["limit"] == 5
    assert payload["metrics"]["clients"]["current"] == 0


@pytest.mark.django_db
def test_usage_metric_endpoint_does_not_consume_quota(client, api_user):
    for _ in range(2):
        response = client.get("/api/billing/usage/quotes/")
        assert response.status_code == 200

    payload = response.json()
    assert payload == {"allowed": True, "metric": "quotes", "current": 0, "limit": 5, "plan": "free"}


@pytest.mark.django_db
def test_usage_metric_endpoint_rejects_unknown_metric(client):
    response = client.get("/api/billing/usage/templates/")
    assert response.status_code == 400


@pytest.mark.django_db
def test_usage_requires_authentication():
    response = APIClient().get("/api/billing/usage/")
    assert response.status_code == 401


@pytest.mark.django_db
def test_plan_list_is_public():
    response = APIClient().get("/api/billing/plans/")

    assert response.status_code == 200
    plans = {plan["key"]: plan for plan in response.json()["plans"]}
    assert list(plans) == ["free", "pro", "business"]
    assert plans["free"]["invoices_per_month"] == 5
    assert plans["business"]["invoices_per_month"] == "unlimited"
    assert plans["pro"]["clients"] == "unlimited"


@pytest.mark.django_db
def test_plan_detail(client):
    response = client.get("/api/billing/plans/pro/")
    assert response.status_code == 200
    assert response.json()["price"] == 10

    assert client.get("/api/billing/plans/gold/").status_code == 404
