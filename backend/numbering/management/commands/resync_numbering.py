"""Move lagging sequence counters forward past the highest stored number."""
from __future__ import annotations

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from numbering.models import DocumentType
from numbering.services.allocator import SequenceError
from numbering.services.maintenance import SequenceResetConflict, find_numbering_issues, reset_counter, resync_counter


class Command(BaseCommand):
    help = "Resynchronise sequence counters with stored documents (forward only)."

    def add_arguments(self, parser) -> None:
        parser.add_argument("--user-id", type=int, default=None, help="Only repair this user.")
        parser.add_argument(
            "--type",
            dest="document_types",
            action="append",
            choices=DocumentType.values,
            help="Document type to repair. Can be supplied multiple times (default: all).",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show which counters would move without writing anything.",
        )
        parser.add_argument(
            "--reset",
            action="store_true",
            help="Delete the counter instead; refused while documents exist for its year.",
        )

    def handle(self, *args, **options) -> None:
        User = get_user_model()
        user_ids = [options["user_id"]] if options["user_id"] else list(User.objects.values_list("pk", flat=True))
        document_types = options["document_types"] or DocumentType.values

        moved = 0
        for user_id in user_ids:
            for document_type in document_types:
                try:
                    if options["reset"]:
                        self._reset(user_id, document_type, options["dry_run"])
                        continue

                    report = find_numbering_issues(user_id, document_type)
                    if not report.counter_behind:
                        continue
                    if options["dry_run"]:
                        self.stdout.write(self.style.WARNING(
                            f"○ user={user_id} {document_type}: would move counter to {report.highest_issued + 1}"
                        ))
                        continue
                    next_number = resync_counter(user_id, document_type)
                except SequenceError as exc:
                    raise CommandError(str(exc)) from exc

                moved += 1
                self.stdout.write(self.style.SUCCESS(f"✓ user={user_id} {document_type}: next_number={next_number}"))

        if not options["reset"]:
            self.stdout.write(f"Resynchronised {moved} counter(s).")

    def _reset(self, user_id, document_type, dry_run: bool) -> None:
        if dry_run:
            self.stdout.write(self.style.WARNING(f"○ user={user_id} {document_type}: would reset counter"))
            return
        try:
            removed = reset_counter(user_id, document_type)
        except SequenceResetConflict as exc:
            self.stdout.write(self.style.WARNING(f"✗ user={user_id} {document_type}: {exc}"))
            return
        if removed:
            self.stdout.write(self.style.SUCCESS(f"✓ user={user_id} {document_type}: counter reset"))
