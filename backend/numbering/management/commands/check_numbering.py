"""Report duplicate numbers, gaps and lagging counters without changing anything."""
from __future__ import annotations

import datetime
import json

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from numbering.models import DocumentType
from numbering.services.allocator import SequenceError
from numbering.services.maintenance import find_numbering_issues


class Command(BaseCommand):
    help = "Inspect document numbering for one user or every user (read-only)."

    def add_arguments(self, parser) -> None:
        parser.add_argument("--user-id", type=int, default=None, help="Only inspect this user.")
        parser.add_argument(
            "--type",
            dest="document_types",
            action="append",
            choices=DocumentType.values,
            help="Document type to inspect. Can be supplied multiple times (default: all).",
        )
        parser.add_argument("--year", type=int, default=None, help="Calendar year to inspect (default: current).")
        parser.add_argument("--json", action="store_true", help="Emit one JSON report per line.")

    def handle(self, *args, **options) -> None:
        User = get_user_model()
        user_ids = [options["user_id"]] if options["user_id"] else list(User.objects.values_list("pk", flat=True))
        document_types = options["document_types"] or DocumentType.values
        now = None
        if options["year"]:
            now = datetime.date(options["year"], 1, 1)

        unhealthy = 0
        for user_id in user_ids:
            for document_type in document_types:
                try:
                    report = find_numbering_issues(user_id, document_type, now=now)
                except SequenceError as exc:
                    raise CommandError(str(exc)) from exc

                if options["json"]:
                    self.stdout.write(json.dumps(report.as_dict()))
                    continue

                label = f"user={user_id} {document_type} {report.year}"
                if report.healthy:
                    self.stdout.write(
                        self.style.SUCCESS(f"✓ {label}: highest={report.highest_issued} next={report.counter_next}")
                    )
                else:
                    unhealthy += 1
                    self.stdout.write(self.style.WARNING(
                        f"✗ {label}: duplicates={report.duplicates} counter_next={report.counter_next} "
                        f"highest={report.highest_issued}"
                    ))
                if report.gaps:
                    self.stdout.write(f"  gaps (informational): {report.gaps}")

        if unhealthy:
            self.stdout.write(self.style.WARNING(f"{unhealthy} sequence(s) need attention; see resync_numbering."))
