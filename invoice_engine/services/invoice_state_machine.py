"""
Invoice Payment State Machine

This module is the SINGLE SOURCE OF TRUTH for invoice status changes.
Status is derived from paid amount vs. grand total; the only manual
transition is cancellation.

    UNPAID ──> PARTIALLY_PAID ──> PAID
      │  <──────────  │  <──────────  │     (payment reversed / total raised)
      └──────> CANCELLED <────────────┘     (not from PAID)

CANCELLED is terminal: a cancelled invoice's amounts are frozen.
"""
import logging
from decimal import Decimal
from typing import Dict, List, Optional

from invoice_engine.models.billing import InvoiceStatus
from invoice_engine.schemas.payment import EditReconciliation, InvoiceState
from invoice_engine.services.tax_math import ZERO, round_to_two, to_decimal


logger = logging.getLogger(__name__)


class InvoiceStateError(Exception):
    """Raised when an invoice operation is not allowed in its current state."""
    pass


# =============================================================================
# TRANSITION RULES
# =============================================================================

# Format: current_status -> [list of allowed next statuses]
INVOICE_TRANSITIONS: Dict[InvoiceStatus, List[InvoiceStatus]] = {
    InvoiceStatus.UNPAID: [
        InvoiceStatus.PARTIALLY_PAID,  # Part payment recorded
        InvoiceStatus.PAID,            # Full payment recorded
        InvoiceStatus.CANCELLED,       # Cancel with reason
    ],
    InvoiceStatus.PARTIALLY_PAID: [
        InvoiceStatus.UNPAID,          # All payments reversed
        InvoiceStatus.PAID,            # Remaining amount received
        InvoiceStatus.CANCELLED,       # Cancel with reason
    ],
    InvoiceStatus.PAID: [
        InvoiceStatus.PARTIALLY_PAID,  # Payment reversed or total raised by an edit
        InvoiceStatus.UNPAID,          # All payments reversed
    ],
    InvoiceStatus.CANCELLED: [],       # Terminal state - no transitions
}


def can_transition(current_status: InvoiceStatus, new_status: InvoiceStatus) -> bool:
    """Check if a transition is allowed."""
    return new_status in INVOICE_TRANSITIONS.get(current_status, [])


def get_allowed_transitions(current_status: InvoiceStatus) -> List[InvoiceStatus]:
    """Get list of statuses that can be transitioned to from current status."""
    return INVOICE_TRANSITIONS.get(current_status, [])


def validate_transition(current_status: InvoiceStatus, new_status: InvoiceStatus) -> None:
    """Validate a status transition. Raises InvoiceStateError if invalid."""
    if current_status == new_status:
        return  # No change, always allowed

    if not can_transition(current_status, new_status):
        allowed = get_allowed_transitions(current_status)
        if not allowed:
            raise InvoiceStateError(
                f"Invoice in '{current_status.value}' status cannot be modified. This is a terminal state."
            )
        raise InvoiceStateError(
            f"Cannot change invoice from '{current_status.value}' to '{new_status.value}'. "
            f"Allowed transitions: {', '.join(s.value for s in allowed)}"
        )


def is_terminal(status: InvoiceStatus) -> bool:
    """Is this a terminal (final) state?"""
    return status == InvoiceStatus.CANCELLED


# =============================================================================
# AMOUNTS & STATUS
# =============================================================================

def calculate_due_amount(grand_total, paid_amount) -> Decimal:
    """Due amount never goes negative; excess payment is an overpayment."""
    return max(ZERO, round_to_two(to_decimal(grand_total) - to_decimal(paid_amount)))


def recalculate_invoice_status(
    grand_total,
    paid_amount,
    current_status: InvoiceStatus = InvoiceStatus.UNPAID,
) -> InvoiceStatus:
    """Derive status from amounts. CANCELLED is never changed."""
    if current_status == InvoiceStatus.CANCELLED:
        return current_status

    paid_amount = to_decimal(paid_amount)
    if paid_amount <= 0:
        return InvoiceStatus.UNPAID
    if paid_amount >= to_decimal(grand_total):
        return InvoiceStatus.PAID
    return InvoiceStatus.PARTIALLY_PAID


def build_invoice_state(
    grand_total,
    paid_amount=ZERO,
    current_status: InvoiceStatus = InvoiceStatus.UNPAID,
    is_archived: bool = False,
    cancel_reason: Optional[str] = None,
) -> InvoiceState:
    """
    Build a consistent state snapshot from amounts.

    A PAID invoice never carries more than its grand total: the paid amount
    is clamped, and any excess is the caller's overpayment to report.
    """
    grand_total = round_to_two(grand_total)
    paid_amount = round_to_two(paid_amount)
    status = recalculate_invoice_status(grand_total, paid_amount, current_status)
    if status == InvoiceStatus.PAID:
        paid_amount = min(paid_amount, grand_total)
    return InvoiceState(
        status=status,
        grand_total=grand_total,
        paid_amount=paid_amount,
        due_amount=calculate_due_amount(grand_total, paid_amount),
        is_archived=is_archived,
        cancel_reason=cancel_reason,
    )


# =============================================================================
# STATUS CHECK HELPERS
# =============================================================================

def can_edit_invoice(state: InvoiceState) -> bool:
    """Anything except cancelled or archived invoices can be edited."""
    return not state.is_archived and state.status != InvoiceStatus.CANCELLED


def can_cancel_invoice(state: InvoiceState) -> bool:
    """Paid invoices cannot be cancelled."""
    return not state.is_archived and state.status not in (InvoiceStatus.PAID, InvoiceStatus.CANCELLED)


def can_record_payment(state: InvoiceState) -> bool:
    """Can a payment be recorded against this invoice?"""
    return (
        not state.is_archived
        and state.status not in (InvoiceStatus.PAID, InvoiceStatus.CANCELLED)
        and state.due_amount > 0
    )


def has_payments(state: InvoiceState) -> bool:
    return state.paid_amount > 0


# =============================================================================
# TRANSITION EXECUTORS
# =============================================================================

def reconcile_invoice_edit(state: InvoiceState, new_grand_total) -> EditReconciliation:
    """
    Re-total an invoice that may already carry payments.

    If the amount already paid exceeds the new grand total, the excess is
    reported as overpayment_amount; the proposed state caps the paid amount
    at the new total. Nothing is committed here: the caller decides whether
    to accept the proposed state (and refund) or abort the edit.

    Raises:
        InvoiceStateError: If the invoice cannot be edited
    """
    if not can_edit_invoice(state):
        raise InvoiceStateError(f"Invoice in '{state.status.value}' status cannot be edited")

    new_grand_total = round_to_two(new_grand_total)
    overpayment = max(ZERO, round_to_two(state.paid_amount - new_grand_total))
    if overpayment > 0:
        logger.warning(
            f"Edit lowers grand total to {new_grand_total} below paid amount {state.paid_amount}: "
            f"overpayment of {overpayment}"
        )

    proposed = build_invoice_state(
        new_grand_total,
        min(state.paid_amount, new_grand_total),
        current_status=state.status,
        is_archived=state.is_archived,
    )

    return EditReconciliation(
        previous_grand_total=state.grand_total,
        new_grand_total=new_grand_total,
        paid_amount=state.paid_amount,
        overpayment_amount=overpayment,
        proposed_state=proposed,
    )


def record_payment(state: InvoiceState, amount) -> InvoiceState:
    """
    Apply a received payment.

    Raises:
        InvoiceStateError: If the invoice cannot take payments or the amount
            is not between 0 and the due amount
    """
    amount = round_to_two(amount)

    if not can_record_payment(state):
        raise InvoiceStateError(
            f"Cannot record payment on invoice in '{state.status.value}' status "
            f"(due {state.due_amount})"
        )
    if amount <= 0:
        raise InvoiceStateError("Payment amount must be greater than zero")
    if amount > state.due_amount:
        raise InvoiceStateError(f"Payment amount {amount} exceeds due amount {state.due_amount}")

    new_state = build_invoice_state(
        state.grand_total,
        state.paid_amount + amount,
        current_status=state.status,
        is_archived=state.is_archived,
    )
    validate_transition(state.status, new_state.status)
    return new_state


def reverse_payment(state: InvoiceState, amount) -> InvoiceState:
    """
    Remove a previously recorded payment.

    Raises:
        InvoiceStateError: If the invoice is cancelled or the amount is invalid
    """
    amount = round_to_two(amount)

    if state.status == InvoiceStatus.CANCELLED:
        raise InvoiceStateError("Cannot reverse a payment on a cancelled invoice")
    if amount <= 0:
        raise InvoiceStateError("Payment amount must be greater than zero")
    if amount > state.paid_amount:
        raise InvoiceStateError(f"Payment amount {amount} exceeds paid amount {state.paid_amount}")

    new_state = build_invoice_state(
        state.grand_total,
        state.paid_amount - amount,
        current_status=state.status,
        is_archived=state.is_archived,
    )
    validate_transition(state.status, new_state.status)
    return new_state


def cancel_invoice(state: InvoiceState, reason: Optional[str]) -> InvoiceState:
    """
    Cancel an invoice. A reason is mandatory; amounts are frozen as they are.

    Raises:
        InvoiceStateError: If the invoice cannot be cancelled or no reason is given
    """
    if not reason or not reason.strip():
        raise InvoiceStateError("Cancellation reason is required")
    if not can_cancel_invoice(state):
        raise InvoiceStateError(f"Invoice in '{state.status.value}' status cannot be cancelled")

    validate_transition(state.status, InvoiceStatus.CANCELLED)
    logger.info(f"Invoice cancelled: {reason.strip()}")

    return state.model_copy(update={
        "status": InvoiceStatus.CANCELLED,
        "cancel_reason": reason.strip(),
    })
