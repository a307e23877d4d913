import uuid

from django.contrib.auth import get_user_model
from rest_framework.test import APIClient, APITestCase

from audit.models import AuditEntry
from audit.services import record


class AuditEntryViewSetTests(APITestCase):
    def setUp(self):
        self.client = APIClient()
        User = get_user_model()
        self.user = User.objects.create_user(
            username="alice",
            email="alice@example.com",
            password="password123",
        )
        self.other_user = User.objects.create_user(
            username="bob",
            email="bob@example.com",
            password="password123",
        )
        self.invoice_id = uuid.uuid4()
        record(
            self.invoice_id,
            self.user.pk,
            AuditEntry.Action.UPDATED,
            [{"field": "notes", "old_value": "", "new_value": "Net 30"}],
            document_type="invoice",
        )
        record(uuid.uuid4(), self.other_user.pk, AuditEntry.Action.CREATED, document_type="quote")

    def test_user_sees_only_their_entries(self):
        self.client.force_authenticate(self.user)
        response = self.client.get("/api/audit/entries/")

        self.assertEqual(response.status_code, 200)
        results = response.data.get("results", response.data)
        self.assertEqual(len(results), 1)
        entry = results[0]
        self.assertEqual(entry["user"]["username"], "alice")
        self.assertEqual(entry["summary"], "Updated • notes")
        self.assertEqual(entry["document_id"], str(self.invoice_id))

    def test_staff_user_sees_all_entries(self):
        self.user.is_staff = True
        self.user.save(update_fields=["is_staff"])

        self.client.force_authenticate(self.user)
        response = self.client.get("/api/audit/entries/")

        self.assertEqual(response.status_code, 200)
        results = response.data.get("results", response.data)
        self.assertEqual(len(results), 2)
        usernames = {item["user"]["username"] for item in results}
        self.assertSetEqual(usernames, {"alice", "bob"})

    def test_filter_by_document_and_action(self):
        record(self.invoice_id, self.user.pk, AuditEntry.Action.FINALIZED, document_type="invoice")
        self.client.force_authenticate(self.user)

        response = self.client.get(
            "/api/audit/entries/", {"document_id": str(self.invoice_id), "action": "finalized"}
        )

        self.assertEqual(response.status_code, 200)
        results = response.data.get("results", response.data)
        self.assertEqual([item["action"] for item in results], ["finalized"])

    def test_entries_are_read_only(self):
        self.client.force_authenticate(self.user)
        response = self.client.post("/api/audit/entries/", {"action": "created"}, format="json")
        self.assertEqual(response.status_code, 405)

    def test_requires_authentication(self):
        response = self.client.get("/api/audit/entries/")
        self.assertEqual(response.status_code, 401)
