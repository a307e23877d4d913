from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from numbering.services.allocator import allocate_invoice_number


class NumberingSettingsAPITests(APITestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user(
            username="prefs", email="prefs@example.com", password="pass1234"
        )
        self.client.force_authenticate(user=self.user)
        self.year = timezone.localdate().year

    def test_preview_next_number(self):
        allocate_invoice_number(self.user.pk)

        response = self.client.get("/api/numbering/invoice/")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["prefix"], "FAC")
        self.assertEqual(response.data["next_number"], 2)
        self.assertEqual(response.data["next_formatted"], f"FAC-{self.year}-0002")

    def test_change_prefix(self):
        response = self.client.patch("/api/numbering/quote/", {"prefix": "QT"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["next_formatted"], f"QT-{self.year}-0001")

    def test_invalid_prefix_rejected(self):
        response = self.client.patch("/api/numbering/invoice/", {"prefix": "F-A"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unknown_document_type(self):
        response = self.client.get("/api/numbering/receipt/")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_requires_authentication(self):
        self.client.force_authenticate(user=None)
        response = self.client.get("/api/numbering/invoice/")
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
