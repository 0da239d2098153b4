"""Invoice Service: prepares invoice snapshots for create and edit.

Flow:
- Place of supply: seller state vs. customer state -> INTRA / INTER
- Items -> calculated lines -> totals with invoice-level entries
- Tax summary, payment state and amount in words

Storage is the caller's job; everything returned here is a frozen snapshot
to be written as-is.
"""
import logging
from typing import Optional, Sequence

from invoice_engine.core.enum_utils import get_enum_value, to_enum
from invoice_engine.models.billing import GstType
from invoice_engine.schemas.billing import (
    DiscountSelection, InvoiceTaxDiscountInput, LineItemInput, TaxSelection,
)
from invoice_engine.schemas.invoice import PreparedInvoice, PreparedInvoiceEdit
from invoice_engine.schemas.payment import InvoiceState
from invoice_engine.services.currency_format import amount_to_words
from invoice_engine.services.invoice_calculator import (
    build_invoice_entry_inputs, calculate_invoice_totals_with_entries,
    calculate_line_items, generate_tax_summary,
)
from invoice_engine.services.invoice_state_machine import (
    InvoiceStateError, build_invoice_state, can_edit_invoice,
    reconcile_invoice_edit,
)
from invoice_engine.services.tax_math import ZERO, determine_gst_type, round_to_two


logger = logging.getLogger(__name__)


class InvoiceService:
    """Service for preparing invoice snapshots for one seller."""

    def __init__(self, company_state_code: str):
        self.company_state_code = company_state_code

    def get_gst_type(self, customer_state_code: Optional[str]) -> GstType:
        return determine_gst_type(self.company_state_code, customer_state_code)

    def prepare_invoice(
        self,
        customer_state_code: Optional[str],
        items: Sequence[LineItemInput],
        tax_discount_entries: Optional[Sequence[InvoiceTaxDiscountInput]] = None,
        paid_amount=ZERO,
        additional_tax: Optional[TaxSelection] = None,
        discount: Optional[DiscountSelection] = None,
        discount_after_tax: bool = False,
    ) -> PreparedInvoice:
        """
        Compute everything a new invoice stores.

        A paid amount above the grand total is capped at the grand total;
        a new invoice cannot start life overpaid.
        """
        gst_type = self.get_gst_type(customer_state_code)
        calculated = calculate_line_items(items, gst_type)
        entry_inputs = build_invoice_entry_inputs(
            additional_tax, discount, discount_after_tax, tax_discount_entries
        )

        totals = calculate_invoice_totals_with_entries(calculated, entry_inputs)

        paid_amount = round_to_two(paid_amount)
        if paid_amount > totals.grand_total:
            logger.warning(
                f"Paid amount {paid_amount} exceeds grand total {totals.grand_total}, capping"
            )
            paid_amount = totals.grand_total

        state = build_invoice_state(totals.grand_total, paid_amount)
        totals = totals.model_copy(update={
            "paid_amount": state.paid_amount,
            "due_amount": state.due_amount,
        })

        logger.info(
            f"Prepared {get_enum_value(gst_type)} invoice: {len(calculated)} items, "
            f"grand total {totals.grand_total}, status {get_enum_value(state.status)}"
        )

        return PreparedInvoice(
            gst_type=gst_type,
            items=tuple(calculated),
            totals=totals,
            tax_summary=generate_tax_summary(calculated),
            state=state,
            amount_in_words=amount_to_words(totals.grand_total),
        )

    def prepare_edit(
        self,
        state: InvoiceState,
        gst_type: GstType,
        items: Sequence[LineItemInput],
        tax_discount_entries: Optional[Sequence[InvoiceTaxDiscountInput]] = None,
        additional_tax: Optional[TaxSelection] = None,
        discount: Optional[DiscountSelection] = None,
        discount_after_tax: bool = False,
    ) -> PreparedInvoiceEdit:
        """
        Recompute an existing invoice from its edited inputs.

        The invoice keeps the gst_type it was issued with. If payments
        already exceed the new grand total, the result reports the
        overpayment and the caller decides whether to go ahead.

        Raises:
            InvoiceStateError: If the invoice is cancelled or archived
        """
        if not can_edit_invoice(state):
            raise InvoiceStateError(
                f"Invoice in '{get_enum_value(state.status)}' status cannot be edited"
            )

        # Stored invoices may hand back the raw column string
        resolved_gst_type = to_enum(gst_type, GstType)
        if resolved_gst_type is None:
            raise ValueError(f"Unknown GST type: {gst_type!r}")
        gst_type = resolved_gst_type

        calculated = calculate_line_items(items, gst_type)
        entry_inputs = build_invoice_entry_inputs(
            additional_tax, discount, discount_after_tax, tax_discount_entries
        )
        totals = calculate_invoice_totals_with_entries(calculated, entry_inputs)

        reconciliation = reconcile_invoice_edit(state, totals.grand_total)
        proposed = reconciliation.proposed_state
        totals = totals.model_copy(update={
            "paid_amount": proposed.paid_amount,
            "due_amount": proposed.due_amount,
        })

        return PreparedInvoiceEdit(
            gst_type=gst_type,
            items=tuple(calculated),
            totals=totals,
            tax_summary=generate_tax_summary(calculated),
            reconciliation=reconciliation,
            amount_in_words=amount_to_words(totals.grand_total),
        )
