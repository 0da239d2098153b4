"""Pydantic schemas for a fully prepared invoice, ready to persist."""
from typing import Tuple

from invoice_engine.models.billing import GstType
from invoice_engine.schemas.base import BaseSnapshotSchema
from invoice_engine.schemas.billing import CalculatedLineItem, InvoiceTotals, TaxSummary
from invoice_engine.schemas.payment import EditReconciliation, InvoiceState


class PreparedInvoice(BaseSnapshotSchema):
    """Everything computed for a new invoice."""
    gst_type: GstType
    items: Tuple[CalculatedLineItem, ...]
    totals: InvoiceTotals
    tax_summary: TaxSummary
    state: InvoiceState
    amount_in_words: str


class PreparedInvoiceEdit(BaseSnapshotSchema):
    """Everything recomputed for an edited invoice, plus the payment reconciliation."""
    gst_type: GstType
    items: Tuple[CalculatedLineItem, ...]
    totals: InvoiceTotals
    tax_summary: TaxSummary
    reconciliation: EditReconciliation
    amount_in_words: str

    @property
    def has_overpayment(self) -> bool:
        return self.reconciliation.has_overpayment
