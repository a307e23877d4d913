"""Expose numbering services."""

from .allocator import (
    AllocatedNumber,
    ConcurrentModification,
    InvalidDocumentNumber,
    InvalidDocumentType,
    InvalidPrefix,
    SequenceError,
    SequenceExhausted,
    UserNotFound,
    allocate,
    allocate_invoice_number,
    allocate_quote_number,
    format_document_number,
    parse_document_number,
    peek_next_number,
    set_prefix,
)
from .maintenance import NumberingReport, SequenceResetConflict, find_numbering_issues, reset_counter, resync_counter
