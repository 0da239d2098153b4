"""
Invoice calculation: line items, invoice-level entries, totals and tax summary.

Flow (one direction only):
    LineItemInput -> calculate_line_item -> CalculatedLineItem
    CalculatedLineItem[] + InvoiceTaxDiscountInput[] -> calculate_invoice_totals_with_entries
    CalculatedLineItem[] -> generate_tax_summary

Every function here is pure. Nothing is patched in place: any change to
the inputs means calling these again and replacing the stored snapshots.
"""
import logging
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple

from invoice_engine.models.billing import (
    ApplicationMode, DiscountType, EntryType, GstType, RateType,
    TaxDiscountType, TaxType, TAX_COMPONENT_TYPES,
)
from invoice_engine.schemas.billing import (
    CalculatedLineItem, DiscountSelection, InvoiceTaxDiscountCalculation,
    InvoiceTaxDiscountEntry, InvoiceTaxDiscountInput, InvoiceTotals,
    LineItemInput, TaxDiscountLine, TaxSelection, TaxSummary, TaxSummaryRow,
)
from invoice_engine.services.invoice_state_machine import calculate_due_amount
from invoice_engine.services.tax_math import (
    ZERO, HUNDRED, calculate_cess, calculate_custom_tax, calculate_discount,
    calculate_gst_breakdown, format_rate, round_to_two, to_decimal,
)


logger = logging.getLogger(__name__)


def _discount_name(discount: DiscountSelection) -> str:
    if discount.name:
        return discount.name
    if discount.type == DiscountType.PERCENT:
        return f"Discount {format_rate(discount.value)}%"
    return f"Discount ₹{format_rate(discount.value)}"


def _charge_name(tax: TaxSelection) -> str:
    return tax.name or f"Charge ₹{format_rate(tax.rate)}"


# =============================================================================
# LINE ITEMS
# =============================================================================

def calculate_line_item(item: LineItemInput, gst_type: GstType, sort_order: int = 0) -> CalculatedLineItem:
    """
    Calculate one invoice line.

    1. amount = quantity x rate
    2. item discount -> taxable amount (DISCOUNT line, basis = amount)
    3. GST split by gst_type (GST and percentage CUSTOM taxes alike);
       a fixed-amount CUSTOM tax is a single CHARGE line
    4. cess on the taxable amount
    5. total = taxable amount + all tax components

    A zero tax or cess rate produces no line at all.
    """
    lines: List[TaxDiscountLine] = []

    amount = round_to_two(to_decimal(item.quantity) * to_decimal(item.rate))
    taxable_amount = amount
    total_discount = ZERO

    discount = item.discount
    if discount is not None and discount.value > 0:
        result = calculate_discount(amount, discount.type, discount.value)
        total_discount = result.discount_amount
        taxable_amount = result.amount_after_discount
        lines.append(TaxDiscountLine(
            type=TaxDiscountType.DISCOUNT,
            discount_template_id=discount.template_id,
            name=_discount_name(discount),
            rate=discount.value,
            rate_type=RateType(discount.type.value),
            taxable_amount=amount,
            amount=total_discount,
            sort_order=len(lines),
        ))

    tax = item.tax
    if tax is not None and tax.rate > 0:
        if tax.tax_type == TaxType.CUSTOM and tax.rate_type == RateType.AMOUNT:
            lines.append(TaxDiscountLine(
                type=TaxDiscountType.CHARGE,
                tax_template_id=tax.template_id,
                name=_charge_name(tax),
                rate=tax.rate,
                rate_type=tax.rate_type,
                taxable_amount=taxable_amount,
                amount=calculate_custom_tax(taxable_amount, tax.rate, tax.rate_type),
                sort_order=len(lines),
            ))
        else:
            breakdown = calculate_gst_breakdown(taxable_amount, tax.rate, gst_type)
            if gst_type == GstType.INTRA:
                components = [
                    (TaxDiscountType.CGST, breakdown.cgst_rate, breakdown.cgst_amount),
                    (TaxDiscountType.SGST, breakdown.sgst_rate, breakdown.sgst_amount),
                ]
            else:
                components = [(TaxDiscountType.IGST, breakdown.igst_rate, breakdown.igst_amount)]

            for line_type, rate, tax_amount in components:
                if rate <= 0:
                    continue
                lines.append(TaxDiscountLine(
                    type=line_type,
                    tax_template_id=tax.template_id,
                    name=f"{line_type.value} @ {format_rate(rate)}%",
                    rate=rate,
                    rate_type=RateType.PERCENT,
                    taxable_amount=taxable_amount,
                    amount=tax_amount,
                    sort_order=len(lines),
                ))

    cess = item.cess
    if cess is not None and cess.rate > 0:
        lines.append(TaxDiscountLine(
            type=TaxDiscountType.CESS,
            tax_template_id=cess.template_id,
            name=cess.name or f"Cess @ {format_rate(cess.rate)}%",
            rate=cess.rate,
            rate_type=RateType.PERCENT,
            taxable_amount=taxable_amount,
            amount=calculate_cess(taxable_amount, cess.rate),
            sort_order=len(lines),
        ))

    total_tax = round_to_two(sum((line.amount for line in lines if line.is_tax), ZERO))

    return CalculatedLineItem(
        name=item.name,
        description=item.description,
        hsn_code=item.hsn_code,
        quantity=item.quantity,
        unit=item.unit,
        rate=item.rate,
        amount=amount,
        taxable_amount=taxable_amount,
        total_discount=total_discount,
        total_tax=total_tax,
        total=round_to_two(taxable_amount + total_tax),
        taxes_discounts=tuple(lines),
        sort_order=item.sort_order if item.sort_order is not None else sort_order,
    )


def calculate_line_items(items: Sequence[LineItemInput], gst_type: GstType) -> List[CalculatedLineItem]:
    """Calculate every line, keeping input order."""
    return [calculate_line_item(item, gst_type, sort_order=index) for index, item in enumerate(items)]


# =============================================================================
# INVOICE-LEVEL ENTRIES
# =============================================================================

def calculate_invoice_tax_discount_entries(
    inputs: Sequence[InvoiceTaxDiscountInput],
    taxable_total,
    intermediate_total,
) -> InvoiceTaxDiscountCalculation:
    """
    Calculate invoice-wide taxes/charges and discounts.

    BEFORE_TAX entries are computed on taxable_total, AFTER_TAX entries on
    intermediate_total (taxable total + item taxes). Entries never chain,
    so the result does not depend on list order; sort_order only decides
    the display order of the returned entries.
    """
    taxable_total = to_decimal(taxable_total)
    intermediate_total = to_decimal(intermediate_total)

    subtotals: Dict[Tuple[ApplicationMode, EntryType], Decimal] = {
        (mode, entry_type): ZERO for mode in ApplicationMode for entry_type in EntryType
    }
    entries: List[InvoiceTaxDiscountEntry] = []

    for index, entry_input in enumerate(inputs):
        if entry_input.application_mode == ApplicationMode.BEFORE_TAX:
            base_amount = taxable_total
        else:
            base_amount = intermediate_total

        rate = to_decimal(entry_input.rate)
        if entry_input.rate_type == RateType.PERCENT:
            amount = round_to_two(base_amount * rate / HUNDRED)
        elif entry_input.entry_type == EntryType.DISCOUNT:
            amount = round_to_two(min(rate, max(base_amount, ZERO)))
        else:
            amount = round_to_two(rate)

        entries.append(InvoiceTaxDiscountEntry(
            entry_type=entry_input.entry_type,
            tax_template_id=entry_input.tax_template_id,
            discount_template_id=entry_input.discount_template_id,
            name=entry_input.name,
            rate_type=entry_input.rate_type,
            rate=rate,
            application_mode=entry_input.application_mode,
            base_amount=round_to_two(base_amount),
            amount=amount,
            sort_order=entry_input.sort_order if entry_input.sort_order is not None else index,
        ))
        subtotals[(entry_input.application_mode, entry_input.entry_type)] += amount

    entries.sort(key=lambda e: e.sort_order)

    before_additions = subtotals[(ApplicationMode.BEFORE_TAX, EntryType.TAX)]
    before_discounts = subtotals[(ApplicationMode.BEFORE_TAX, EntryType.DISCOUNT)]
    after_additions = subtotals[(ApplicationMode.AFTER_TAX, EntryType.TAX)]
    after_discounts = subtotals[(ApplicationMode.AFTER_TAX, EntryType.DISCOUNT)]

    return InvoiceTaxDiscountCalculation(
        entries=tuple(entries),
        total_before_tax_additions=round_to_two(before_additions),
        total_before_tax_discounts=round_to_two(before_discounts),
        total_after_tax_additions=round_to_two(after_additions),
        total_after_tax_discounts=round_to_two(after_discounts),
        total_additional_tax=round_to_two(before_additions + after_additions),
        total_invoice_discount=round_to_two(before_discounts + after_discounts),
    )


def build_invoice_entry_inputs(
    additional_tax: Optional[TaxSelection] = None,
    discount: Optional[DiscountSelection] = None,
    discount_after_tax: bool = False,
    tax_discount_entries: Optional[Sequence[InvoiceTaxDiscountInput]] = None,
) -> List[InvoiceTaxDiscountInput]:
    """
    Collect invoice-level entries from either the entry list or the older
    single "additional tax" / "invoice discount" fields.

    When tax_discount_entries is non-empty it replaces the single fields.
    """
    if tax_discount_entries:
        return list(tax_discount_entries)

    inputs: List[InvoiceTaxDiscountInput] = []

    if additional_tax is not None and (additional_tax.template_id is not None or additional_tax.rate > 0):
        inputs.append(InvoiceTaxDiscountInput(
            entry_type=EntryType.TAX,
            tax_template_id=additional_tax.template_id,
            name=additional_tax.name or f"Additional Tax @ {format_rate(additional_tax.rate)}%",
            rate_type=RateType.PERCENT,
            rate=additional_tax.rate,
            application_mode=ApplicationMode.AFTER_TAX,
            sort_order=0,
        ))

    if discount is not None and discount.value > 0:
        inputs.append(InvoiceTaxDiscountInput(
            entry_type=EntryType.DISCOUNT,
            discount_template_id=discount.template_id,
            name=_discount_name(discount),
            rate_type=RateType(discount.type.value),
            rate=discount.value,
            application_mode=ApplicationMode.AFTER_TAX if discount_after_tax else ApplicationMode.BEFORE_TAX,
            sort_order=1,
        ))

    return inputs


# =============================================================================
# TOTALS
# =============================================================================

def _sum(values) -> Decimal:
    return round_to_two(sum(values, ZERO))


def calculate_invoice_totals_with_entries(
    items: Sequence[CalculatedLineItem],
    entries: Optional[Sequence[InvoiceTaxDiscountInput]] = None,
    paid_amount=ZERO,
) -> InvoiceTotals:
    """
    Sum calculated items and invoice-level entries into invoice totals.

    grand_total = taxable_total + total_tax + total_additional_tax - total_invoice_discount,
    clamped at zero.
    """
    sub_total = _sum(item.amount for item in items)
    total_item_discount = _sum(item.total_discount for item in items)
    taxable_total = _sum(item.taxable_amount for item in items)

    total_cgst = _sum(item.amount_for(TaxDiscountType.CGST) for item in items)
    total_sgst = _sum(item.amount_for(TaxDiscountType.SGST) for item in items)
    total_igst = _sum(item.amount_for(TaxDiscountType.IGST) for item in items)
    total_cess = _sum(item.amount_for(TaxDiscountType.CESS) for item in items)
    total_custom_tax = _sum(item.amount_for(TaxDiscountType.CHARGE) for item in items)
    total_tax = round_to_two(total_cgst + total_sgst + total_igst + total_cess + total_custom_tax)

    intermediate_total = round_to_two(taxable_total + total_tax)
    calc = calculate_invoice_tax_discount_entries(entries or [], taxable_total, intermediate_total)

    grand_total = round_to_two(
        taxable_total + total_tax + calc.total_additional_tax - calc.total_invoice_discount
    )
    if grand_total < 0:
        logger.warning(
            f"Invoice discounts exceed taxable value plus tax ({grand_total}), clamping grand total to 0"
        )
        grand_total = ZERO

    paid_amount = round_to_two(paid_amount)

    return InvoiceTotals(
        sub_total=sub_total,
        total_item_discount=total_item_discount,
        taxable_total=taxable_total,
        total_cgst=total_cgst,
        total_sgst=total_sgst,
        total_igst=total_igst,
        total_cess=total_cess,
        total_custom_tax=total_custom_tax,
        total_tax=total_tax,
        intermediate_total=intermediate_total,
        total_additional_tax=calc.total_additional_tax,
        total_invoice_discount=calc.total_invoice_discount,
        grand_total=grand_total,
        paid_amount=paid_amount,
        due_amount=calculate_due_amount(grand_total, paid_amount),
        tax_discount_calc=calc,
    )


# =============================================================================
# TAX SUMMARY
# =============================================================================

_TYPE_ORDER = {line_type: position for position, line_type in enumerate(TAX_COMPONENT_TYPES)}


def _summary_key(line: TaxDiscountLine) -> tuple:
    if line.tax_template_id is not None:
        return (line.type, line.tax_template_id)
    return (line.type, line.name, line.rate)


def generate_tax_summary(items: Sequence[CalculatedLineItem]) -> TaxSummary:
    """
    Group every tax component across all items for display.

    Lines sharing (type, tax_template_id) collapse into one row; lines with
    no template collapse on (type, name, rate). Rows come back ordered by
    type, rate and name, so item order never changes the summary.
    """
    groups: Dict[tuple, dict] = {}
    total_discount = ZERO

    for item in items:
        for line in item.taxes_discounts:
            if line.type == TaxDiscountType.DISCOUNT:
                total_discount += line.amount
                continue

            key = _summary_key(line)
            group = groups.get(key)
            if group is None:
                groups[key] = {
                    "type": line.type,
                    "tax_template_id": line.tax_template_id,
                    "name": line.name,
                    "rate": line.rate,
                    "taxable_amount": line.taxable_amount,
                    "amount": line.amount,
                }
                continue

            group["taxable_amount"] += line.taxable_amount
            group["amount"] += line.amount
            # Keep the label deterministic when snapshots of one template differ
            if (line.name, line.rate) < (group["name"], group["rate"]):
                group["name"] = line.name
                group["rate"] = line.rate

    rows = sorted(
        (
            TaxSummaryRow(
                type=group["type"],
                tax_template_id=group["tax_template_id"],
                name=group["name"],
                rate=group["rate"],
                taxable_amount=round_to_two(group["taxable_amount"]),
                amount=round_to_two(group["amount"]),
            )
            for group in groups.values()
        ),
        key=lambda row: (
            _TYPE_ORDER[row.type],
            row.rate,
            row.name,
            row.tax_template_id if row.tax_template_id is not None else -1,
        ),
    )

    def total_of(line_type: TaxDiscountType) -> Decimal:
        return _sum(row.amount for row in rows if row.type == line_type)

    total_cgst = total_of(TaxDiscountType.CGST)
    total_sgst = total_of(TaxDiscountType.SGST)
    total_igst = total_of(TaxDiscountType.IGST)
    total_cess = total_of(TaxDiscountType.CESS)
    total_charges = total_of(TaxDiscountType.CHARGE)

    return TaxSummary(
        rows=tuple(rows),
        total_cgst=total_cgst,
        total_sgst=total_sgst,
        total_igst=total_igst,
        total_cess=total_cess,
        total_charges=total_charges,
        total_discount=round_to_two(total_discount),
        grand_total_tax=round_to_two(total_cgst + total_sgst + total_igst + total_cess + total_charges),
    )
