from django.contrib.auth import get_user_model
from django.test import TestCase

from billing.models import UsageCounters


class UsageCountersSignalTests(TestCase):
    """A fresh user always starts with a zeroed usage ledger."""

    def test_counters_created_with_user(self):
        user = get_user_model().objects.create_user(
            username="newbie", email="newbie@example.com", password="pass1234"
        )

        counters = UsageCounters.objects.get(user=user)
        self.assertEqual(counters.invoices_this_month, 0)
        self.assertEqual(counters.clients_count, 0)
        self.assertEqual(counters.last_reset_date.day, 1)

    def test_saving_existing_user_does_not_duplicate_counters(self):
        user = get_user_model().objects.create_user(
            username="again", email="again@example.com", password="pass1234"
        )
        user.company_name = "Again SARL"
        user.save()

        self.assertEqual(UsageCounters.objects.filter(user=user).count(), 1)

    def test_new_users_default_to_free_plan(self):
        user = get_user_model().objects.create_user(
            username="plain", email="plain@example.com", password="pass1234"
        )
        self.assertEqual(user.plan, "free")
        self.assertEqual(user.subscription_status, "active")
