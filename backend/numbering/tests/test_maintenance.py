import pytest

from numbering.models import SequenceCounter
from numbering.services.allocator import allocate_invoice_number
from numbering.services.maintenance import (
    SequenceResetConflict,
    find_numbering_issues,
    reset_counter,
    resync_counter,
)

from .conftest import TODAY


@pytest.mark.django_db
def test_healthy_sequence_with_gap(user, stored_invoice):
    allocate_invoice_number(user.pk, now=TODAY)
    allocate_invoice_number(user.pk, now=TODAY)
    allocate_invoice_number(user.pk, now=TODAY)
    stored_invoice(1)
    stored_invoice(3)

    report = find_numbering_issues(user.pk, "invoice", now=TODAY)

    assert report.healthy
    assert report.highest_issued == 3
    assert report.gaps == [2]
    assert report.counter_next == 4


@pytest.mark.django_db
def test_lagging_counter_is_reported_and_resynced(user, stored_invoice):
    stored_invoice(1)
    stored_invoice(7)

    report = find_numbering_issues(user.pk, "invoice", now=TODAY)
    assert report.counter_behind
    assert not report.healthy
    assert report.counter_next is None

    assert resync_counter(user.pk, "invoice", now=TODAY) == 8
    assert allocate_invoice_number(user.pk, now=TODAY) == "FAC-2025-0008"


@pytest.mark.django_db
def test_resync_never_moves_backwards(user, stored_invoice):
    SequenceCounter.objects.create(user=user, document_type="invoice", prefix="FAC", year=2025, next_number=20)
    stored_invoice(4)

    assert resync_counter(user.pk, "invoice", now=TODAY) == 20
    assert SequenceCounter.objects.get(user=user, document_type="invoice").next_number == 20


@pytest.mark.django_db
def test_reset_refused_while_documents_exist(user, stored_invoice):
    allocate_invoice_number(user.pk, now=TODAY)
    stored_invoice(1)

    with pytest.raises(SequenceResetConflict):
        reset_counter(user.pk, "invoice")
    assert SequenceCounter.objects.filter(user=user, document_type="invoice").exists()


@pytest.mark.django_db
def test_reset_without_documents(user):
    assert reset_counter(user.pk, "quote") is False

    allocate_invoice_number(user.pk, now=TODAY)
    assert reset_counter(user.pk, "invoice") is True
    assert allocate_invoice_number(user.pk, now=TODAY) == "FAC-2025-0001"


@pytest.mark.django_db
def test_resync_keeps_a_counter_that_is_already_on_a_later_year(user, stored_invoice):
    SequenceCounter.objects.create(user=user, document_type="invoice", prefix="FAC", year=2026, next_number=3)
    stored_invoice(9)

    assert resync_counter(user.pk, "invoice", now=TODAY) == 3

    counter = SequenceCounter.objects.get(user=user, document_type="invoice")
    assert (counter.year, counter.next_number) == (2026, 3)
    assert find_numbering_issues(user.pk, "invoice", now=TODAY).counter_behind is False
