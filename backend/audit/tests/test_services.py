import uuid
from datetime import timedelta
from decimal import Decimal
from unittest import mock

import pytest
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction
from django.test import RequestFactory, override_settings
from django.utils import timezone

from audit.models import AuditEntry
from audit.services import (
    AuditContext,
    context_from_request,
    detect_changes,
    has_recent_modification_attempts,
    history_for,
    purge_expired_entries,
    record,
)
from audit.tasks import purge_expired_audit_entries


@pytest.fixture
def owner(db):
    return get_user_model().objects.create_user(username="owner", email="owner@example.com", password="pw")


@pytest.mark.django_db
def test_record_persists_entry_with_context(owner):
    document_id = uuid.uuid4()
    entry = record(
        document_id,
        owner.pk,
        AuditEntry.Action.CREATED,
        [],
        "owner@example.com",
        AuditContext(ip_address="203.0.113.9", user_agent="pytest"),
        document_type="invoice",
        metadata={"number": "FAC-2025-0001"},
    )

    assert entry is not None
    stored = AuditEntry.objects.get(pk=entry.pk)
    assert stored.document_id == document_id
    assert stored.performed_by == "owner@example.com"
    assert stored.ip_address == "203.0.113.9"
    assert stored.metadata == {"number": "FAC-2025-0001"}


@pytest.mark.django_db
def test_record_never_raises_and_outer_transaction_survives(owner):
    with transaction.atomic():
        with mock.patch.object(AuditEntry.objects, "create", side_effect=DatabaseError("disk full")):
            result = record(uuid.uuid4(), owner.pk, AuditEntry.Action.UPDATED, document_type="quote")
        owner.company_name = "Still Saved SARL"
        owner.save(update_fields=["company_name"])

    assert result is None
    owner.refresh_from_db()
    assert owner.company_name == "Still Saved SARL"
    assert AuditEntry.objects.count() == 0


@pytest.mark.django_db
def test_entries_are_immutable(owner):
    entry = record(uuid.uuid4(), owner.pk, AuditEntry.Action.SENT, document_type="invoice")

    entry.action = AuditEntry.Action.DELETED
    with pytest.raises(ValidationError):
        entry.save()
    with pytest.raises(ValidationError):
        entry.delete()
    assert AuditEntry.objects.get(pk=entry.pk).action == AuditEntry.Action.SENT


def test_context_prefers_forwarded_for_then_real_ip():
    factory = RequestFactory()

    forwarded = factory.get("/", HTTP_X_FORWARDED_FOR="198.51.100.7, 10.0.0.1", HTTP_X_REAL_IP="10.0.0.2")
    assert context_from_request(forwarded).ip_address == "198.51.100.7"

    real_ip = factory.get("/", HTTP_X_REAL_IP="10.0.0.2", HTTP_USER_AGENT="curl/8")
    context = context_from_request(real_ip)
    assert context.ip_address == "10.0.0.2"
    assert context.user_agent == "curl/8"

    assert context_from_request(factory.get("/")).ip_address == "127.0.0.1"
    assert context_from_request(None) == AuditContext()


def test_detect_changes_reports_only_modified_fields():
    old = {"notes": "a", "total": Decimal("10.00"), "status": "draft", "currency": "EUR"}
    new = {"notes": "b", "total": Decimal("10.00"), "status": "draft"}

    assert detect_changes(old, new) == [{"field": "notes", "old_value": "a", "new_value": "b"}]
    assert detect_changes(old, {"total": Decimal("12.50")}, fields=["total"]) == [
        {"field": "total", "old_value": "10.00", "new_value": "12.50"}
    ]


@pytest.mark.django_db
def test_history_is_newest_first_and_limited(owner):
    document_id = uuid.uuid4()
    for action in (AuditEntry.Action.CREATED, AuditEntry.Action.UPDATED, AuditEntry.Action.FINALIZED):
        record(document_id, owner.pk, action, document_type="invoice")
    record(uuid.uuid4(), owner.pk, AuditEntry.Action.CREATED, document_type="invoice")

    history = list(history_for(document_id, limit=2))

    assert [entry.action for entry in history] == ["finalized", "updated"]


@pytest.mark.django_db
def test_recent_modification_attempts_window(owner):
    document_id = uuid.uuid4()
    assert has_recent_modification_attempts(document_id) is False

    entry = record(document_id, owner.pk, AuditEntry.Action.MODIFICATION_ATTEMPT, document_type="invoice")
    assert has_recent_modification_attempts(document_id) is True

    AuditEntry.objects.filter(pk=entry.pk).update(performed_at=timezone.now() - timedelta(hours=2))
    assert has_recent_modification_attempts(document_id, minutes=60) is False


@pytest.mark.django_db
def test_purge_is_disabled_without_retention(owner):
    entry = record(uuid.uuid4(), owner.pk, AuditEntry.Action.CREATED, document_type="quote")
    AuditEntry.objects.filter(pk=entry.pk).update(performed_at=timezone.now() - timedelta(days=4000))

    with override_settings(AUDIT_RETENTION_DAYS=None):
        assert purge_expired_entries() == 0
    assert AuditEntry.objects.count() == 1


@pytest.mark.django_db
@override_settings(AUDIT_RETENTION_DAYS=365)
def test_purge_task_removes_entries_past_retention(owner):
    old = record(uuid.uuid4(), owner.pk, AuditEntry.Action.CREATED, document_type="quote")
    fresh = record(uuid.uuid4(), owner.pk, AuditEntry.Action.CREATED, document_type="quote")
    AuditEntry.objects.filter(pk=old.pk).update(performed_at=timezone.now() - timedelta(days=400))

    assert purge_expired_audit_entries.run() == 1
    assert list(AuditEntry.objects.values_list("pk", flat=True)) == [fresh.pk]
