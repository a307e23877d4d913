"""Administrative checks and repairs for sequence counters."""
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import List, Optional, Union

from django.db import transaction
from django.db.models import Max
from django.utils import timezone

from billing.observability.logging import log_billing_event
from numbering.models import DocumentType, SequenceCounter
from numbering.services.allocator import DateLike, default_prefix, ensure_user, numbering_year, resolve_document_type

logger = logging.getLogger(__name__)


class SequenceResetConflict(Exception):
    """Raised when a counter reset would let new numbers collide with stored ones."""


@dataclass
class NumberingReport:
    user_id: int
    document_type: str
    year: int
    counter_next: Optional[int]
    highest_issued: int = 0
    duplicates: List[int] = field(default_factory=list)
    gaps: List[int] = field(default_factory=list)
    counter_behind: bool = False

    @property
    def healthy(self) -> bool:
        return not self.duplicates and not self.counter_behind

    def as_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "document_type": self.document_type,
            "year": self.year,
            "counter_next": self.counter_next,
            "highest_issued": self.highest_issued,
            "duplicates": self.duplicates,
            "gaps": self.gaps,
            "counter_behind": self.counter_behind,
            "healthy": self.healthy,
        }


def document_model(document_type: Union[str, DocumentType]):
    from documents.models import Invoice, Quote

    return {DocumentType.INVOICE: Invoice, DocumentType.QUOTE: Quote}[resolve_document_type(document_type)]


def find_numbering_issues(user_id, document_type: Union[str, DocumentType], *, now: DateLike = None) -> NumberingReport:
    """Detect duplicates, gaps and a counter lagging behind stored documents.

    Gaps are informational only: abandoned allocations legitimately leave them.
    """

    doc_type = resolve_document_type(document_type)
    year = numbering_year(now)
    ensure_user(user_id)

    numbers = list(
        document_model(doc_type).objects.filter(user_id=user_id, number_year=year)
        .values_list("number_sequence", flat=True)
    )
    counter = (
        SequenceCounter.objects.filter(user_id=user_id, document_type=doc_type)
        .values_list("year", "next_number")
        .first()
    )
    counter_next = None
    counter_ahead = False
    if counter is not None:
        if counter[0] > year:
            # Counter already numbers a later year; this year receives no new numbers.
            counter_ahead = True
        else:
            counter_next = counter[1] if counter[0] == year else 1

    report = NumberingReport(user_id=user_id, document_type=doc_type.value, year=year, counter_next=counter_next)
    if not numbers:
        return report

    occurrences = Counter(numbers)
    report.highest_issued = max(numbers)
    report.duplicates = sorted(number for number, count in occurrences.items() if count > 1)
    report.gaps = [number for number in range(1, report.highest_issued) if number not in occurrences]
    report.counter_behind = not counter_ahead and (counter_next or 1) <= report.highest_issued

    if not report.healthy:
        logger.warning("Numbering issues for user %s %s %s: %s", user_id, doc_type.value, year, report.as_dict())
    return report


def resync_counter(user_id, document_type: Union[str, DocumentType], *, now: DateLike = None) -> int:
    """Move the counter to one past the highest stored number for its year.

    Never moves ``year`` or ``next_number`` backwards; a counter already on a
    later year than ``now`` is resynced within that later year. Returns the
    resulting ``next_number``.
    """

    doc_type = resolve_document_type(document_type)
    year = numbering_year(now)
    ensure_user(user_id)

    with transaction.atomic():
        counter, _ = SequenceCounter.objects.select_for_update().get_or_create(
            user_id=user_id,
            document_type=doc_type,
            defaults={"prefix": default_prefix(doc_type), "year": year, "next_number": 1},
        )
        if counter.year < year:
            counter.year = year
            counter.next_number = 1
        year = counter.year
        highest = (
            document_model(doc_type).objects.filter(user_id=user_id, number_year=year)
            .aggregate(highest=Max("number_sequence"))["highest"]
        ) or 0

        target = max(counter.next_number, highest + 1)
        changed = target != counter.next_number
        counter.next_number = target
        counter.save(update_fields=["year", "next_number", "updated_at"])

    log_billing_event(
        message="numbering.counter_resynced" if changed else "numbering.counter_in_sync",
        user_id=user_id,
        actor="admin",
        extra={"document_type": doc_type.value, "year": year, "next_number": target, "highest": highest},
    )
    return target


def reset_counter(user_id, document_type: Union[str, DocumentType]) -> bool:
    """Delete the counter so numbering restarts at 1.

    Refused with ``SequenceResetConflict`` while documents numbered in the
    counter's year still exist. Returns ``False`` when there was no counter.
    """

    doc_type = resolve_document_type(document_type)
    ensure_user(user_id)

    with transaction.atomic():
        counter = SequenceCounter.objects.select_for_update().filter(user_id=user_id, document_type=doc_type).first()
        if counter is None:
            return False
        existing = document_model(doc_type).objects.filter(user_id=user_id, number_year=counter.year).count()
        if existing:
            raise SequenceResetConflict(
                f"{existing} {doc_type.value}(s) already numbered in {counter.year}; "
                "resetting would reissue their numbers."
            )
        counter.delete()

    log_billing_event(
        message="numbering.counter_reset",
        user_id=user_id,
        actor="admin",
        extra={"document_type": doc_type.value, "at": timezone.now().isoformat()},
    )
    return True
