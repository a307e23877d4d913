"""Allowed status transitions for invoices and quotes."""
from typing import Dict, FrozenSet

from .models import Invoice, Quote

INVOICE_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    Invoice.Status.DRAFT: frozenset({Invoice.Status.FINALIZED}),
    Invoice.Status.FINALIZED: frozenset({Invoice.Status.SENT}),
    Invoice.Status.SENT: frozenset({
        Invoice.Status.PAID,
        Invoice.Status.PARTIALLY_PAID,
        Invoice.Status.OVERDUE,
        Invoice.Status.CANCELLED,
    }),
    Invoice.Status.PARTIALLY_PAID: frozenset({Invoice.Status.PAID}),
    Invoice.Status.OVERDUE: frozenset({
        Invoice.Status.PAID,
        Invoice.Status.PARTIALLY_PAID,
        Invoice.Status.CANCELLED,
    }),
    Invoice.Status.PAID: frozenset(),
    Invoice.Status.CANCELLED: frozenset(),
}

QUOTE_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    Quote.Status.DRAFT: frozenset({Quote.Status.FINALIZED}),
    Quote.Status.FINALIZED: frozenset({Quote.Status.SENT}),
    Quote.Status.SENT: frozenset({Quote.Status.ACCEPTED, Quote.Status.REJECTED, Quote.Status.EXPIRED}),
    Quote.Status.ACCEPTED: frozenset({Quote.Status.CONVERTED}),
    Quote.Status.REJECTED: frozenset(),
    Quote.Status.EXPIRED: frozenset(),
    Quote.Status.CONVERTED: frozenset(),
}


def transitions_for(document) -> Dict[str, FrozenSet[str]]:
    return INVOICE_TRANSITIONS if isinstance(document, Invoice) else QUOTE_TRANSITIONS


def can_transition(document, target: str) -> bool:
    return target in transitions_for(document).get(document.status, frozenset())
