"""Create missing usage counter rows and optionally recount live clients."""
from __future__ import annotations

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from billing.models import UsageCounters
from billing.services.usage_ledger import rebuild_client_count, reset_expired_periods


class Command(BaseCommand):
    help = "Ensure every user owns usage counters, roll stale periods and recount clients."

    def add_arguments(self, parser) -> None:
        parser.add_argument(
            "--recount-clients",
            action="store_true",
            help="Recompute clients_count from live client records.",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Report missing counters without writing anything.",
        )

    def handle(self, *args, **options) -> None:
        User = get_user_model()
        missing = User.objects.filter(usage__isnull=True)
        missing_count = missing.count()

        if options["dry_run"]:
            self.stdout.write(self.style.WARNING(f"Dry run: {missing_count} user(s) without usage counters."))
            return

        for user in missing.iterator():
            UsageCounters.objects.get_or_create(user=user)
        self.stdout.write(self.style.SUCCESS(f"Created usage counters for {missing_count} user(s)."))

        rolled = reset_expired_periods()
        self.stdout.write(f"Rolled {rolled} counter row(s) into the current period.")

        if options["recount_clients"]:
            recounted = 0
            for user_id in User.objects.values_list("pk", flat=True).iterator():
                rebuild_client_count(user_id)
                recounted += 1
            self.stdout.write(self.style.SUCCESS(f"Recounted clients for {recounted} user(s)."))
