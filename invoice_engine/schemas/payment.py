"""Pydantic schemas for invoice payment state and edit outcomes."""
from decimal import Decimal
from typing import Optional

from pydantic import Field, field_validator

from invoice_engine.core.enum_utils import normalize_to_uppercase, VALID_INVOICE_STATUSES
from invoice_engine.models.billing import InvoiceStatus
from invoice_engine.schemas.base import BaseSnapshotSchema


class InvoiceState(BaseSnapshotSchema):
    """The payment-relevant part of a stored invoice."""
    status: InvoiceStatus = InvoiceStatus.UNPAID
    grand_total: Decimal = Field(..., ge=0)
    paid_amount: Decimal = Field(Decimal("0.00"), ge=0)
    due_amount: Decimal = Field(Decimal("0.00"), ge=0)
    is_archived: bool = False
    cancel_reason: Optional[str] = None

    @field_validator('status', mode='before')
    @classmethod
    def normalize_status(cls, v):
        return normalize_to_uppercase(v, VALID_INVOICE_STATUSES)


class EditReconciliation(BaseSnapshotSchema):
    """
    Outcome of re-totalling an invoice that may already have payments.

    When has_overpayment is True the caller must decide whether to refund
    or abort; proposed_state shows the paid amount capped at the new total.
    """
    previous_grand_total: Decimal
    new_grand_total: Decimal
    paid_amount: Decimal
    overpayment_amount: Decimal = Decimal("0.00")
    proposed_state: InvoiceState

    @property
    def has_overpayment(self) -> bool:
        return self.overpayment_amount > 0
