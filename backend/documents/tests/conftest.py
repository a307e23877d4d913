import pytest
from django.contrib.auth import get_user_model

from documents.models import Client

LINE_ITEMS = [{"description": "Consulting", "quantity": "2", "unit_price": "19.99", "tax_rate": "20"}]


@pytest.fixture
def user(db):
    return get_user_model().objects.create_user(username="owner", email="owner@example.com", password="pw")


@pytest.fixture
def client_record(user):
    return Client.objects.create(user=user, name="Acme")
