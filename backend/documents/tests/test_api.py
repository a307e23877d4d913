from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from audit.models import AuditEntry
from billing.models import UsageCounters
from documents.models import Client, Invoice

LINE_ITEMS = [{"description": "Design", "quantity": "2", "unit_price": "50.00", "tax_rate": "20"}]


class DocumentAPITestCase(APITestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user(
            username="freelancer", email="freelancer@example.com", password="pass1234"
        )
        self.client.force_authenticate(user=self.user)
        self.customer = Client.objects.create(user=self.user, name="Acme")
        self.year = timezone.localdate().year

    def create_invoice(self, **overrides):
        payload = {"client": str(self.customer.pk), "items": LINE_ITEMS}
        payload.update(overrides)
        return self.client.post("/api/invoices/", payload, format="json")


class InvoiceAPITests(DocumentAPITestCase):
    def test_create_invoice(self):
        response = self.create_invoice(notes="First job")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["number"], f"FAC-{self.year}-0001")
        self.assertEqual(response.data["status"], "draft")
        self.assertEqual(response.data["total"], "120.00")
        self.assertEqual(response.data["items"][0]["line_total"], "100.00")

    def test_number_cannot_be_chosen_by_client(self):
        response = self.create_invoice(number="HACK-1")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["number"], f"FAC-{self.year}-0001")

    def test_quota_exceeded_response(self):
        UsageCounters.objects.filter(user=self.user).update(invoices_this_month=5)

        response = self.create_invoice()

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response["X-Limit-Reached"], "true")
        self.assertEqual(response.data["code"], "quota_exceeded")
        self.assertEqual(response.data["metric"], "invoices")
        self.assertEqual(response.data["limit"], 5)
        self.assertEqual(response.data["upgrade_to"], "pro")
        self.assertFalse(Invoice.objects.exists())

    def test_edit_after_finalize_is_locked(self):
        invoice_id = self.create_invoice().data["id"]
        finalize = self.client.post(f"/api/invoices/{invoice_id}/finalize/")
        self.assertEqual(finalize.status_code, status.HTTP_200_OK)
        self.assertEqual(finalize.data["status"], "finalized")

        response = self.client.patch(f"/api/invoices/{invoice_id}/", {"notes": "changed"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["code"], "document_locked")
        self.assertTrue(
            AuditEntry.objects.filter(document_id=invoice_id, action="modification_attempt").exists()
        )

        delete = self.client.delete(f"/api/invoices/{invoice_id}/")
        self.assertEqual(delete.status_code, status.HTTP_409_CONFLICT)

    def test_invalid_status_change(self):
        invoice_id = self.create_invoice().data["id"]

        response = self.client.post(f"/api/invoices/{invoice_id}/status/", {"status": "paid"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "invalid_transition")

    def test_send_then_pay(self):
        invoice_id = self.create_invoice().data["id"]

        self.assertEqual(self.client.post(f"/api/invoices/{invoice_id}/send/").data["status"], "sent")
        response = self.client.post(f"/api/invoices/{invoice_id}/status/", {"status": "paid"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], "paid")

    def test_history_lists_newest_first(self):
        invoice_id = self.create_invoice().data["id"]
        self.client.patch(f"/api/invoices/{invoice_id}/", {"notes": "Updated"}, format="json")

        response = self.client.get(f"/api/invoices/{invoice_id}/history/")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([entry["action"] for entry in response.data], ["updated", "created"])

    def test_history_limit_returns_newest_entries_only(self):
        invoice_id = self.create_invoice().data["id"]
        self.client.patch(f"/api/invoices/{invoice_id}/", {"notes": "Updated"}, format="json")

        response = self.client.get(f"/api/invoices/{invoice_id}/history/", {"limit": 1})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([entry["action"] for entry in response.data], ["updated"])

    def test_history_rejects_malformed_limits(self):
        invoice_id = self.create_invoice().data["id"]

        for limit in ("abc", "-1", "0", "1000"):
            response = self.client.get(f"/api/invoices/{invoice_id}/history/", {"limit": limit})
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, limit)
            self.assertIn("limit", response.data)

    def test_delete_draft_releases_quota(self):
        invoice_id = self.create_invoice().data["id"]

        response = self.client.delete(f"/api/invoices/{invoice_id}/")

        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertEqual(UsageCounters.objects.get(user=self.user).invoices_this_month, 0)

    def test_other_users_documents_are_hidden(self):
        invoice_id = self.create_invoice().data["id"]
        intruder = get_user_model().objects.create_user(
            username="intruder", email="intruder@example.com", password="pass1234"
        )
        self.client.force_authenticate(user=intruder)

        self.assertEqual(self.client.get(f"/api/invoices/{invoice_id}/").status_code, status.HTTP_404_NOT_FOUND)
        response = self.create_invoice()
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class QuoteAPITests(DocumentAPITestCase):
    def test_convert_accepted_quote(self):
        created = self.client.post(
            "/api/quotes/", {"client": str(self.customer.pk), "items": LINE_ITEMS}, format="json"
        )
        self.assertEqual(created.data["number"], f"DEVIS-{self.year}-0001")
        quote_id = created.data["id"]

        self.client.post(f"/api/quotes/{quote_id}/send/")
        self.client.post(f"/api/quotes/{quote_id}/status/", {"status": "accepted"}, format="json")
        response = self.client.post(f"/api/quotes/{quote_id}/convert/", {}, format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["number"], f"FAC-{self.year}-0001")
        self.assertEqual(str(response.data["quote"]), quote_id)
        self.assertEqual(self.client.get(f"/api/quotes/{quote_id}/").data["status"], "converted")

    def test_convert_draft_quote_rejected(self):
        quote_id = self.client.post(
            "/api/quotes/", {"client": str(self.customer.pk)}, format="json"
        ).data["id"]

        response = self.client.post(f"/api/quotes/{quote_id}/convert/", {}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class ClientAndExpenseAPITests(DocumentAPITestCase):
    def test_client_soft_delete(self):
        created = self.client.post("/api/clients/", {"name": "Globex"}, format="json")
        self.assertEqual(created.status_code, status.HTTP_201_CREATED)

        response = self.client.delete(f"/api/clients/{created.data['id']}/")

        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertTrue(Client.objects.filter(pk=created.data["id"], is_active=False).exists())
        names = [client["name"] for client in self.client.get("/api/clients/").data["results"]]
        self.assertNotIn("Globex", names)

    def test_expense_quota(self):
        UsageCounters.objects.filter(user=self.user).update(expenses_this_month=5)

        response = self.client.post("/api/expenses/", {"label": "Lunch", "amount": "12.00"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response["X-Limit-Reached"], "true")
