"""Gapless-per-attempt, collision-free document number allocation.

Numbers are issued by a single conditional ``UPDATE`` on the user's counter
row: the increment and the year rollover happen in one statement, and the
issued value is read back inside the same transaction while the row is still
write-locked. No read-modify-write ever happens in application code.
"""
from __future__ import annotations

import datetime
import logging
import re
import time
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import OperationalError, models, transaction
from django.db.models import Case, F, Value, When
from django.utils import timezone

from billing.observability.logging import log_billing_event
from billing.observability.metrics import (
    SEQUENCE_ALLOCATION_COUNT,
    SEQUENCE_ALLOCATION_LATENCY,
    SEQUENCE_CONFLICT_COUNT,
)
from numbering.models import DocumentType, SequenceCounter

logger = logging.getLogger(__name__)

DEFAULT_PREFIXES = {
    DocumentType.INVOICE: "FAC",
    DocumentType.QUOTE: "DEVIS",
}

NUMBER_WIDTH = 4
MAX_PREFIX_LENGTH = 10

_PREFIX_RE = re.compile(r"^[^\s-]{1,%d}$" % MAX_PREFIX_LENGTH)
_NUMBER_RE = re.compile(r"^(?P<prefix>[^\s-]{1,%d})-(?P<year>\d{4})-(?P<number>\d{%d,})$"
                        % (MAX_PREFIX_LENGTH, NUMBER_WIDTH))

DateLike = Union[datetime.date, datetime.datetime, None]


class SequenceError(Exception):
    """Base exception for numbering operations."""


class UserNotFound(SequenceError):
    """Raised when allocating for a user that does not exist."""


class InvalidDocumentType(SequenceError, ValueError):
    """Raised for document types other than invoice or quote."""


class InvalidPrefix(SequenceError, ValueError):
    """Raised when a prefix is empty, too long or contains separators."""


class InvalidDocumentNumber(SequenceError, ValueError):
    """Raised when a formatted identifier cannot be parsed."""


class SequenceExhausted(SequenceError):
    """Raised when the yearly sequence would exceed its configured maximum."""


class ConcurrentModification(SequenceError):
    """Raised when the counter row stays contended after bounded retries."""


@dataclass(frozen=True)
class AllocatedNumber:
    document_type: str
    prefix: str
    year: int
    number: int

    @property
    def formatted(self) -> str:
        return format_document_number(self.prefix, self.year, self.number)

    def __str__(self) -> str:
        return self.formatted


def format_document_number(prefix: str, year: int, number: int) -> str:
    """``FAC``, 2025, 7 -> ``FAC-2025-0007``."""
    return f"{prefix}-{year}-{number:0{NUMBER_WIDTH}d}"


def parse_document_number(value: str) -> Tuple[str, int, int]:
    match = _NUMBER_RE.match(value or "")
    if not match:
        raise InvalidDocumentNumber(f"'{value}' is not a PREFIX-YYYY-NNNN document number.")
    return match.group("prefix"), int(match.group("year")), int(match.group("number"))


def is_valid_prefix(prefix: Optional[str]) -> bool:
    return bool(prefix) and bool(_PREFIX_RE.match(prefix))


def default_prefix(document_type: Union[str, DocumentType]) -> str:
    doc_type = resolve_document_type(document_type)
    configured = getattr(settings, "NUMBERING_DEFAULT_PREFIXES", {}) or {}
    prefix = configured.get(doc_type.value) or DEFAULT_PREFIXES[doc_type]
    if not is_valid_prefix(prefix):
        raise InvalidPrefix(f"Configured prefix '{prefix}' for {doc_type.value} is invalid.")
    return prefix


def resolve_document_type(document_type: Union[str, DocumentType]) -> DocumentType:
    try:
        return DocumentType(document_type)
    except ValueError as exc:
        raise InvalidDocumentType(f"Unknown document type '{document_type}'.") from exc


def allocate(user_id, document_type: Union[str, DocumentType], *, now: DateLike = None) -> AllocatedNumber:
    """Issue the next number for ``user_id`` and ``document_type``.

    Concurrent callers for the same user and type always receive distinct
    numbers. A number that is issued but never persisted by the caller is
    simply skipped; it is never handed out again. A ``now`` earlier than the
    counter's year is numbered in the counter's year.
    """

    doc_type = resolve_document_type(document_type)
    year = numbering_year(now)
    ensure_user(user_id)

    max_sequence = int(getattr(settings, "NUMBERING_MAX_SEQUENCE", 10 ** NUMBER_WIDTH - 1))
    max_attempts = max(1, int(getattr(settings, "NUMBERING_MAX_ATTEMPTS", 3)))
    started = time.monotonic()

    for attempt in range(1, max_attempts + 1):
        try:
            with transaction.atomic():
                counter = SequenceCounter.objects.filter(user_id=user_id, document_type=doc_type)
                if not _advance(counter, year):
                    SequenceCounter.objects.get_or_create(
                        user_id=user_id,
                        document_type=doc_type,
                        defaults={"prefix": default_prefix(doc_type), "year": year, "next_number": 1},
                    )
                    _advance(counter, year)

                stored_next, prefix, issued_year = counter.values_list("next_number", "prefix", "year").get()
                number = stored_next - 1
                if number > max_sequence:
                    raise SequenceExhausted(
                        f"{doc_type.value} numbering for {issued_year} is exhausted at {max_sequence}."
                    )
            break
        except OperationalError as exc:
            if attempt >= max_attempts:
                SEQUENCE_CONFLICT_COUNT.labels(document_type=doc_type.value, outcome="exhausted").inc()
                log_billing_event(
                    message="numbering.conflict_exhausted",
                    user_id=user_id,
                    extra={"document_type": doc_type.value, "attempts": attempt},
                    level=logging.ERROR,
                )
                raise ConcurrentModification(
                    f"Could not allocate a {doc_type.value} number for user {user_id}; retry later."
                ) from exc
            SEQUENCE_CONFLICT_COUNT.labels(document_type=doc_type.value, outcome="retried").inc()
            logger.warning("Retrying %s number allocation for user %s (attempt %s): %s",
                           doc_type.value, user_id, attempt, exc)

    SEQUENCE_ALLOCATION_COUNT.labels(document_type=doc_type.value).inc()
    SEQUENCE_ALLOCATION_LATENCY.labels(document_type=doc_type.value).observe(time.monotonic() - started)
    allocated = AllocatedNumber(document_type=doc_type.value, prefix=prefix, year=issued_year, number=number)
    logger.debug("Allocated %s for user %s", allocated.formatted, user_id)
    return allocated


def allocate_invoice_number(user_id, *, now: DateLike = None) -> str:
    return allocate(user_id, DocumentType.INVOICE, now=now).formatted


def allocate_quote_number(user_id, *, now: DateLike = None) -> str:
    return allocate(user_id, DocumentType.QUOTE, now=now).formatted


def peek_next_number(user_id, document_type: Union[str, DocumentType], *, now: DateLike = None) -> AllocatedNumber:
    """Preview the number the next allocation would issue. Nothing is consumed."""

    doc_type = resolve_document_type(document_type)
    year = numbering_year(now)
    ensure_user(user_id)
    row = (
        SequenceCounter.objects.filter(user_id=user_id, document_type=doc_type)
        .values_list("prefix", "year", "next_number")
        .first()
    )
    if row is None:
        return AllocatedNumber(document_type=doc_type.value, prefix=default_prefix(doc_type), year=year, number=1)
    prefix, stored_year, next_number = row
    if stored_year < year:
        return AllocatedNumber(document_type=doc_type.value, prefix=prefix, year=year, number=1)
    return AllocatedNumber(document_type=doc_type.value, prefix=prefix, year=stored_year, number=next_number)


def set_prefix(user_id, document_type: Union[str, DocumentType], prefix: str, *, now: DateLike = None) -> str:
    """Change the prefix used by future allocations; issued numbers keep theirs."""

    doc_type = resolve_document_type(document_type)
    prefix = (prefix or "").strip()
    if not is_valid_prefix(prefix):
        raise InvalidPrefix(f"Prefix must be 1 to {MAX_PREFIX_LENGTH} characters without spaces or '-'.")
    ensure_user(user_id)

    with transaction.atomic():
        updated = (
            SequenceCounter.objects.filter(user_id=user_id, document_type=doc_type)
            .update(prefix=prefix, updated_at=timezone.now())
        )
        if not updated:
            SequenceCounter.objects.get_or_create(
                user_id=user_id,
                document_type=doc_type,
                defaults={"prefix": prefix, "year": numbering_year(now), "next_number": 1},
            )
            SequenceCounter.objects.filter(user_id=user_id, document_type=doc_type).update(prefix=prefix)

    log_billing_event(
        message="numbering.prefix_changed",
        user_id=user_id,
        extra={"document_type": doc_type.value, "prefix": prefix},
    )
    return prefix


def _advance(counter, year: int) -> int:
    # Every SET expression reads the pre-update row. A stored year ahead of
    # ``year`` keeps numbering in the stored year; the counter never rewinds.
    return counter.update(
        next_number=Case(
            When(year__lt=year, then=Value(2)),
            default=F("next_number") + 1,
            output_field=models.PositiveIntegerField(),
        ),
        year=Case(
            When(year__lt=year, then=Value(year)),
            default=F("year"),
            output_field=models.PositiveIntegerField(),
        ),
        updated_at=timezone.now(),
    )


def ensure_user(user_id) -> None:
    if not get_user_model().objects.filter(pk=user_id).exists():
        raise UserNotFound(f"User {user_id} does not exist.")


def numbering_year(now: DateLike) -> int:
    if now is None:
        return timezone.localdate().year
    if isinstance(now, datetime.datetime) and timezone.is_aware(now):
        return timezone.localtime(now).year
    return now.year
