"""Document lifecycle orchestration on top of quotas, numbering and the audit trail.

Creation always runs quota reservation, then number allocation, then the
insert. A failed insert hands the quota unit back; the allocated number is
deliberately not reclaimed, leaving a gap rather than risking a duplicate.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from django.db import transaction
from django.utils import timezone

from audit.models import AuditEntry
from audit.services import AuditContext, detect_changes, record
from billing.models import current_period_start
from billing.plans import UsageMetric
from billing.services.usage_ledger import QuotaExceeded, check_and_reserve, increment_client_count, release
from numbering.models import DocumentType
from numbering.services.allocator import allocate

from .models import Client, Expense, Invoice, Quote
from .transitions import can_transition

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")

INVOICE_FIELDS = ("client", "issue_date", "due_date", "items", "notes", "currency")
QUOTE_FIELDS = ("client", "issue_date", "valid_until", "items", "notes", "currency")


class DocumentError(Exception):
    """Base exception for document operations."""


class InvalidDocument(DocumentError, ValueError):
    """Raised when the submitted content cannot form a valid document."""


class ImmutableDocument(DocumentError):
    """Raised when a finalized, sent or later document would be modified."""

    def __init__(self, document):
        self.document = document
        super().__init__(f"{document.number} is {document.status} and can no longer be modified.")


class InvalidTransition(DocumentError):
    """Raised when the requested status change is not allowed."""

    def __init__(self, document, target: str, reason: Optional[str] = None):
        self.document = document
        self.target = target
        super().__init__(reason or f"Cannot move {document.number} from {document.status} to {target}.")


@dataclass(frozen=True)
class DocumentTotals:
    items: List[Dict[str, str]]
    subtotal: Decimal
    tax_total: Decimal
    total: Decimal


def compute_totals(items: Iterable[Mapping[str, Any]]) -> DocumentTotals:
    """Normalise line items and compute subtotal, tax and total (2 d.p., half-up)."""

    normalized = []
    subtotal = Decimal("0")
    tax_total = Decimal("0")
    for index, item in enumerate(items or []):
        try:
            quantity = Decimal(str(item.get("quantity", 1)))
            unit_price = Decimal(str(item.get("unit_price", 0)))
            tax_rate = Decimal(str(item.get("tax_rate", 0)))
        except (InvalidOperation, TypeError, ValueError) as exc:
            raise InvalidDocument(f"Line {index + 1} has a non-numeric amount.") from exc
        if quantity < 0 or unit_price < 0 or not (0 <= tax_rate <= 100):
            raise InvalidDocument(f"Line {index + 1} has a negative amount or an invalid tax rate.")

        line_total = (quantity * unit_price).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
        line_tax = (line_total * tax_rate / Decimal("100")).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
        subtotal += line_total
        tax_total += line_tax
        normalized.append({
            "description": str(item.get("description", "")),
            "quantity": str(quantity),
            "unit_price": str(unit_price),
            "tax_rate": str(tax_rate),
            "line_total": str(line_total),
        })

    subtotal = subtotal.quantize(TWO_PLACES)
    tax_total = tax_total.quantize(TWO_PLACES)
    return DocumentTotals(items=normalized, subtotal=subtotal, tax_total=tax_total, total=subtotal + tax_total)


def document_type_of(document) -> str:
    return DocumentType.INVOICE.value if isinstance(document, Invoice) else DocumentType.QUOTE.value


def create_invoice(user, *, client: Client, items=(), issue_date: Optional[date] = None,
                   due_date: Optional[date] = None, notes: str = "", currency: Optional[str] = None,
                   quote: Optional[Quote] = None, performed_by: Optional[str] = None,
                   context: Optional[AuditContext] = None, now=None) -> Invoice:
    return _create_numbered(
        Invoice,
        user,
        client=client,
        items=items,
        issue_date=issue_date,
        notes=notes,
        currency=currency,
        extra={"due_date": due_date, "quote": quote},
        performed_by=performed_by,
        context=context,
        now=now,
    )


def create_quote(user, *, client: Client, items=(), issue_date: Optional[date] = None,
                 valid_until: Optional[date] = None, notes: str = "", currency: Optional[str] = None,
                 performed_by: Optional[str] = None, context: Optional[AuditContext] = None, now=None) -> Quote:
    return _create_numbered(
        Quote,
        user,
        client=client,
        items=items,
        issue_date=issue_date,
        notes=notes,
        currency=currency,
        extra={"valid_until": valid_until},
        performed_by=performed_by,
        context=context,
        now=now,
    )


def update_document(document: Union[Invoice, Quote], changes: Mapping[str, Any], *,
                    performed_by: Optional[str] = None, context: Optional[AuditContext] = None):
    """Apply field changes to a draft; anything else is refused and audited."""

    model = type(document)
    allowed_fields = INVOICE_FIELDS if model is Invoice else QUOTE_FIELDS
    unknown = sorted(set(changes) - set(allowed_fields))
    if unknown:
        raise InvalidDocument(f"Fields {', '.join(unknown)} cannot be edited.")

    audit_changes: List[Dict[str, Any]] = []
    with transaction.atomic():
        locked = model.objects.select_for_update().get(pk=document.pk)
        if locked.is_draft:
            if "client" in changes:
                _ensure_client_owner(changes["client"], locked.user_id)
            before = _snapshot(locked)
            for name, value in changes.items():
                if name == "items":
                    _apply_totals(locked, compute_totals(value))
                else:
                    setattr(locked, name, value)
            locked.save()
            audit_changes = detect_changes(before, _snapshot(locked))

    if not locked.is_draft:
        _record_modification_attempt(locked, "update", sorted(changes), performed_by, context)
        raise ImmutableDocument(locked)

    if audit_changes:
        record(locked.pk, locked.user_id, AuditEntry.Action.UPDATED, audit_changes, performed_by, context,
               document_type=document_type_of(locked))
    return locked


def finalize_document(document: Union[Invoice, Quote], *, performed_by: Optional[str] = None,
                      context: Optional[AuditContext] = None):
    model = type(document)
    with transaction.atomic():
        locked = model.objects.select_for_update().get(pk=document.pk)
        target = model.Status.FINALIZED
        if not can_transition(locked, target):
            raise InvalidTransition(locked, target)
        if not locked.items:
            raise InvalidTransition(locked, target, f"{locked.number} has no line items to finalize.")
        previous = locked.status
        locked.status = target
        locked.finalized_at = timezone.now()
        locked.save(update_fields=["status", "finalized_at", "updated_at"])

    record(locked.pk, locked.user_id, AuditEntry.Action.FINALIZED, _status_change(previous, target), performed_by,
           context, document_type=document_type_of(locked), metadata={"number": locked.number})
    logger.info("Finalized %s %s for user %s", document_type_of(locked), locked.number, locked.user_id)
    return locked


def send_document(document: Union[Invoice, Quote], *, performed_by: Optional[str] = None,
                  context: Optional[AuditContext] = None):
    """Mark a document as sent, finalizing a draft first."""

    model = type(document)
    if document.status == model.Status.DRAFT:
        document = finalize_document(document, performed_by=performed_by, context=context)

    with transaction.atomic():
        locked = model.objects.select_for_update().get(pk=document.pk)
        target = model.Status.SENT
        if not can_transition(locked, target):
            raise InvalidTransition(locked, target)
        previous = locked.status
        locked.status = target
        locked.sent_at = timezone.now()
        locked.save(update_fields=["status", "sent_at", "updated_at"])

    record(locked.pk, locked.user_id, AuditEntry.Action.SENT, _status_change(previous, target), performed_by,
           context, document_type=document_type_of(locked), metadata={"number": locked.number})
    return locked


def change_status(document: Union[Invoice, Quote], status: str, *, performed_by: Optional[str] = None,
                  context: Optional[AuditContext] = None):
    model = type(document)
    if status not in model.Status.values:
        raise InvalidTransition(document, status, f"Unknown status '{status}'.")
    if status == model.Status.FINALIZED:
        return finalize_document(document, performed_by=performed_by, context=context)
    if status == model.Status.SENT:
        return send_document(document, performed_by=performed_by, context=context)
    if model is Quote and status == Quote.Status.CONVERTED:
        raise InvalidTransition(document, status, "Quotes are converted through convert_quote_to_invoice.")

    with transaction.atomic():
        locked = model.objects.select_for_update().get(pk=document.pk)
        if not can_transition(locked, status):
            raise InvalidTransition(locked, status)
        previous = locked.status
        locked.status = status
        update_fields = ["status", "updated_at"]
        if model is Invoice and status == Invoice.Status.PAID:
            locked.paid_at = timezone.now()
            update_fields.append("paid_at")
        locked.save(update_fields=update_fields)

    record(locked.pk, locked.user_id, AuditEntry.Action.UPDATED, _status_change(previous, status), performed_by,
           context, document_type=document_type_of(locked))
    return locked


def delete_document(document: Union[Invoice, Quote], *, performed_by: Optional[str] = None,
                    context: Optional[AuditContext] = None, now=None) -> None:
    """Delete a draft and hand back its quota unit when it counted against this period."""

    model = type(document)
    today = _today(now)
    with transaction.atomic():
        locked = model.objects.select_for_update().get(pk=document.pk)
        if locked.is_draft:
            counted_this_period = timezone.localdate(locked.created_at) >= current_period_start(today)
            snapshot = {"number": locked.number, "total": str(locked.total)}
            locked.delete()

    if not locked.is_draft:
        _record_modification_attempt(locked, "delete", [], performed_by, context)
        raise ImmutableDocument(locked)

    record(document.pk, locked.user_id, AuditEntry.Action.DELETED, [], performed_by, context,
           document_type=document_type_of(locked), metadata=snapshot)
    if counted_this_period:
        release(locked.user_id, _metric_for(model), now=today)


def convert_quote_to_invoice(quote: Quote, *, due_date: Optional[date] = None, performed_by: Optional[str] = None,
                             context: Optional[AuditContext] = None, now=None) -> Invoice:
    """Turn an accepted quote into a new draft invoice (own quota and number)."""

    converted_at = timezone.now()
    claimed = Quote.objects.filter(pk=quote.pk, status=Quote.Status.ACCEPTED).update(
        status=Quote.Status.CONVERTED, converted_at=converted_at, updated_at=converted_at
    )
    if not claimed:
        quote.refresh_from_db()
        raise InvalidTransition(quote, Quote.Status.CONVERTED, f"Only accepted quotes can be converted; "
                                                              f"{quote.number} is {quote.status}.")

    try:
        invoice = create_invoice(
            quote.user,
            client=quote.client,
            items=quote.items,
            due_date=due_date,
            notes=quote.notes,
            currency=quote.currency,
            quote=quote,
            performed_by=performed_by,
            context=context,
            now=now,
        )
    except Exception:
        Quote.objects.filter(pk=quote.pk).update(status=Quote.Status.ACCEPTED, converted_at=None)
        raise

    record(quote.pk, quote.user_id, AuditEntry.Action.UPDATED,
           _status_change(Quote.Status.ACCEPTED, Quote.Status.CONVERTED), performed_by, context,
           document_type=DocumentType.QUOTE.value, metadata={"invoice_id": str(invoice.pk), "invoice": invoice.number})
    quote.refresh_from_db()
    return invoice


def create_client(user, *, name: str, email: str = "", phone: str = "", address: str = "", siret: str = "",
                  now=None) -> Client:
    decision = check_and_reserve(user.pk, UsageMetric.CLIENTS, now=now)
    if not decision.allowed:
        raise QuotaExceeded(decision)
    try:
        with transaction.atomic():
            client = Client.objects.create(user=user, name=name, email=email, phone=phone, address=address,
                                           siret=siret)
    except Exception:
        increment_client_count(user.pk, -1)
        raise
    logger.info("Created client %s for user %s", client.pk, user.pk)
    return client


def delete_client(client: Client) -> bool:
    """Deactivate ``client``; returns ``False`` when it was already inactive."""

    deactivated = Client.objects.filter(pk=client.pk, is_active=True).update(
        is_active=False, updated_at=timezone.now()
    )
    if deactivated:
        increment_client_count(client.user_id, -1)
        client.is_active = False
    return bool(deactivated)


def create_expense(user, *, label: str, amount, expense_date: Optional[date] = None, category: str = "",
                   vat_amount=Decimal("0.00"), currency: Optional[str] = None, notes: str = "", now=None) -> Expense:
    today = _today(now)
    decision = check_and_reserve(user.pk, UsageMetric.EXPENSES, now=today)
    if not decision.allowed:
        raise QuotaExceeded(decision)
    try:
        with transaction.atomic():
            expense = Expense.objects.create(
                user=user,
                label=label,
                amount=amount,
                expense_date=expense_date or today,
                category=category,
                vat_amount=vat_amount,
                currency=currency or getattr(user, "default_currency", "EUR"),
                notes=notes,
            )
    except Exception:
        release(user.pk, UsageMetric.EXPENSES, now=today)
        raise
    return expense


def delete_expense(expense: Expense, *, now=None) -> None:
    today = _today(now)
    counted_this_period = timezone.localdate(expense.created_at) >= current_period_start(today)
    user_id = expense.user_id
    expense.delete()
    if counted_this_period:
        release(user_id, UsageMetric.EXPENSES, now=today)


def _create_numbered(model, user, *, client, items, issue_date, notes, currency, extra, performed_by, context, now):
    _ensure_client_owner(client, user.pk)
    totals = compute_totals(items)
    today = _today(now)
    metric = _metric_for(model)
    document_type = DocumentType.INVOICE if model is Invoice else DocumentType.QUOTE

    decision = check_and_reserve(user.pk, metric, now=today)
    if not decision.allowed:
        raise QuotaExceeded(decision)

    try:
        allocated = allocate(user.pk, document_type, now=today)
        with transaction.atomic():
            document = model(
                user=user,
                client=client,
                number=allocated.formatted,
                number_year=allocated.year,
                number_sequence=allocated.number,
                issue_date=issue_date or today,
                notes=notes or "",
                currency=currency or getattr(user, "default_currency", "EUR"),
                **{key: value for key, value in extra.items() if value is not None},
            )
            _apply_totals(document, totals)
            document.save(force_insert=True)
    except Exception:
        release(user.pk, metric, now=today)
        logger.warning("Released %s quota for user %s after a failed %s creation", metric.value, user.pk,
                       document_type.value)
        raise

    record(document.pk, user.pk, AuditEntry.Action.CREATED, [], performed_by, context,
           document_type=document_type.value, metadata={"number": document.number, "total": str(document.total)})
    logger.info("Created %s %s for user %s", document_type.value, document.number, user.pk)
    return document


def _ensure_client_owner(client: Client, user_id) -> None:
    if client is None or client.user_id != user_id or not client.is_active:
        raise InvalidDocument("Client does not exist for this account.")


def _apply_totals(document, totals: DocumentTotals) -> None:
    document.items = totals.items
    document.subtotal = totals.subtotal
    document.tax_total = totals.tax_total
    document.total = totals.total


def _snapshot(document) -> Dict[str, Any]:
    snapshot = {
        "client_id": document.client_id,
        "issue_date": document.issue_date,
        "items": document.items,
        "subtotal": document.subtotal,
        "tax_total": document.tax_total,
        "total": document.total,
        "notes": document.notes,
        "currency": document.currency,
        "status": document.status,
    }
    if isinstance(document, Invoice):
        snapshot["due_date"] = document.due_date
    else:
        snapshot["valid_until"] = document.valid_until
    return snapshot


def _status_change(previous: str, target: str) -> List[Dict[str, str]]:
    return [{"field": "status", "old_value": str(previous), "new_value": str(target)}]


def _record_modification_attempt(document, operation: str, fields, performed_by, context) -> None:
    logger.warning("Blocked %s of %s %s (status=%s)", operation, document_type_of(document), document.number,
                   document.status)
    record(
        document.pk,
        document.user_id,
        AuditEntry.Action.MODIFICATION_ATTEMPT,
        [],
        performed_by,
        context,
        document_type=document_type_of(document),
        metadata={"operation": operation, "attempted_fields": list(fields), "status": document.status},
    )


def _metric_for(model) -> UsageMetric:
    if model is Invoice:
        return UsageMetric.INVOICES
    if model is Quote:
        return UsageMetric.QUOTES
    return UsageMetric.EXPENSES


def _today(now) -> date:
    if now is None:
        return timezone.localdate()
    if hasattr(now, "date") and callable(now.date):
        return timezone.localdate(now) if timezone.is_aware(now) else now.date()
    return now
