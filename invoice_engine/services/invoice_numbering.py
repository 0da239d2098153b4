"""Invoice number formatting and allocation rules.

Format: {PREFIX}{ZERO_PADDED_NUMBER}{SUFFIX}

    format_invoice_number("INV-", 7, "")      -> "INV-0007"
    format_invoice_number(None, 42, "/25-26") -> "0042/25-26"

Numbers are never reused and never decremented; a cancelled or deleted
invoice leaves a gap.
"""
from typing import Optional

from invoice_engine.config import settings
from invoice_engine.schemas.invoice_series import InvoiceNumberAllocation


def format_invoice_number(
    prefix: Optional[str],
    number: int,
    suffix: Optional[str] = None,
    padding: Optional[int] = None,
) -> str:
    """Prefix + zero-padded number + suffix. Missing prefix/suffix count as ''."""
    if number < 0:
        raise ValueError(f"Invoice number cannot be negative: {number}")
    if padding is None:
        padding = settings.INVOICE_NUMBER_PADDING
    return f"{prefix or ''}{str(number).zfill(padding)}{suffix or ''}"


def preview_next_invoice_number(series, padding: Optional[int] = None) -> str:
    """What the series would hand out next, without touching its counter."""
    return format_invoice_number(series.prefix, series.next_number, series.suffix, padding)


def allocate_invoice_number(series, padding: Optional[int] = None) -> InvoiceNumberAllocation:
    """
    Read the series counter and return the number plus the value to store.

    The caller persists next_number in the same transaction that creates
    the invoice.
    """
    number = series.next_number
    return InvoiceNumberAllocation(
        invoice_number=format_invoice_number(series.prefix, number, series.suffix, padding),
        number=number,
        next_number=number + 1,
    )
