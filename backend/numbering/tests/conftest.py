import datetime

import pytest
from django.contrib.auth import get_user_model

from documents.models import Client, Invoice

YEAR = 2025
TODAY = datetime.date(YEAR, 6, 15)


@pytest.fixture
def user(db):
    return get_user_model().objects.create_user(username="numbers", email="numbers@example.com", password="pw")


@pytest.fixture
def stored_invoice(user):
    """Insert an invoice row carrying an explicit number, bypassing the allocator."""

    client = Client.objects.create(user=user, name="Acme")

    def _make(sequence, year=YEAR, prefix="FAC"):
        return Invoice.objects.create(
            user=user,
            client=client,
            number=f"{prefix}-{year}-{sequence:04d}",
            number_year=year,
            number_sequence=sequence,
        )

    return _make
