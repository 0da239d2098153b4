"""Pydantic schemas for invoice calculation inputs and results."""
from decimal import Decimal
from typing import Optional, Tuple

from pydantic import BaseModel, Field, field_validator, model_validator

from invoice_engine.core.enum_utils import (
    normalize_to_uppercase,
    VALID_RATE_TYPES, VALID_TAX_TYPES, VALID_ENTRY_TYPES,
    VALID_APPLICATION_MODES, VALID_TAX_DISCOUNT_TYPES,
)
from invoice_engine.models.billing import (
    RateType, DiscountType, TaxType, TaxDiscountType,
    EntryType, ApplicationMode, TAX_COMPONENT_TYPES,
)
from invoice_engine.schemas.base import BaseCreateSchema, BaseSnapshotSchema


# ==================== Template Schemas ====================

class TaxTemplateBase(BaseCreateSchema):
    """Base schema for a tax template (GST slab, cess or custom levy)."""
    name: str = Field(..., min_length=1, max_length=100)
    rate: Decimal = Field(..., ge=0)
    rate_type: RateType = RateType.PERCENT
    tax_type: TaxType = TaxType.GST
    description: Optional[str] = None
    is_default: bool = False
    is_active: bool = True

    @field_validator('rate_type', mode='before')
    @classmethod
    def normalize_rate_type(cls, v):
        return normalize_to_uppercase(v, VALID_RATE_TYPES)

    @field_validator('tax_type', mode='before')
    @classmethod
    def normalize_tax_type(cls, v):
        return normalize_to_uppercase(v, VALID_TAX_TYPES)

    @model_validator(mode='after')
    def validate_rate(self):
        if self.rate_type == RateType.AMOUNT and self.tax_type != TaxType.CUSTOM:
            raise ValueError("AMOUNT rate type is only allowed for CUSTOM taxes")
        if self.rate_type == RateType.PERCENT and self.rate > 100:
            raise ValueError("Percentage rate cannot exceed 100")
        return self


class TaxTemplateCreate(TaxTemplateBase):
    """Schema for creating a TaxTemplate."""
    pass


class TaxTemplate(TaxTemplateBase):
    """A stored tax template."""
    id: int


class DiscountTemplateBase(BaseCreateSchema):
    """Base schema for a discount template."""
    name: str = Field(..., min_length=1, max_length=100)
    type: DiscountType = DiscountType.PERCENT
    value: Decimal = Field(..., ge=0)
    description: Optional[str] = None
    is_default: bool = False
    is_active: bool = True

    @field_validator('type', mode='before')
    @classmethod
    def normalize_type(cls, v):
        return normalize_to_uppercase(v, VALID_RATE_TYPES)

    @model_validator(mode='after')
    def validate_value(self):
        if self.type == DiscountType.PERCENT and self.value > 100:
            raise ValueError("Percentage discount must be between 0 and 100")
        return self


class DiscountTemplateCreate(DiscountTemplateBase):
    """Schema for creating a DiscountTemplate."""
    pass


class DiscountTemplate(DiscountTemplateBase):
    """A stored discount template."""
    id: int


# ==================== Selections (snapshots of a chosen template) ====================

class TaxSelection(BaseSnapshotSchema):
    """
    A tax or cess chosen for a line item.

    Name and rate are copies taken when the selection is made; template_id
    is kept only for grouping in the tax summary.
    """
    template_id: Optional[int] = None
    name: Optional[str] = None
    rate: Decimal = Field(..., ge=0)
    rate_type: RateType = RateType.PERCENT
    tax_type: TaxType = TaxType.GST

    @field_validator('rate_type', mode='before')
    @classmethod
    def normalize_rate_type(cls, v):
        return normalize_to_uppercase(v, VALID_RATE_TYPES)

    @field_validator('tax_type', mode='before')
    @classmethod
    def normalize_tax_type(cls, v):
        return normalize_to_uppercase(v, VALID_TAX_TYPES)

    @classmethod
    def from_template(cls, template: TaxTemplate) -> "TaxSelection":
        return cls(
            template_id=template.id,
            name=template.name,
            rate=template.rate,
            rate_type=template.rate_type,
            tax_type=template.tax_type,
        )

    @classmethod
    def custom(cls, rate, tax_type: TaxType = TaxType.GST, name: Optional[str] = None) -> "TaxSelection":
        """A percentage typed in by hand, with no template behind it."""
        return cls(rate=rate, tax_type=tax_type, name=name)


class DiscountSelection(BaseSnapshotSchema):
    """A discount chosen for a line item."""
    template_id: Optional[int] = None
    name: Optional[str] = None
    type: DiscountType = DiscountType.PERCENT
    value: Decimal = Field(..., ge=0)

    @field_validator('type', mode='before')
    @classmethod
    def normalize_type(cls, v):
        return normalize_to_uppercase(v, VALID_RATE_TYPES)

    @classmethod
    def from_template(cls, template: DiscountTemplate) -> "DiscountSelection":
        return cls(
            template_id=template.id,
            name=template.name,
            type=template.type,
            value=template.value,
        )

    @classmethod
    def custom(cls, type: DiscountType, value) -> "DiscountSelection":
        return cls(type=type, value=value)


# ==================== Line Item Schemas ====================

class LineItemInput(BaseCreateSchema):
    """One invoice line as entered, with its resolved tax/cess/discount."""
    name: str = ""
    description: Optional[str] = None
    hsn_code: Optional[str] = Field(None, max_length=8)
    quantity: Decimal = Field(..., ge=0)
    unit: str = Field("NOS", max_length=20)
    rate: Decimal = Field(..., ge=0)
    tax: Optional[TaxSelection] = None
    cess: Optional[TaxSelection] = None
    discount: Optional[DiscountSelection] = None
    sort_order: Optional[int] = None

    @model_validator(mode='after')
    def validate_selections(self):
        if self.tax is not None and self.tax.tax_type == TaxType.CESS:
            raise ValueError("Cess must be selected in the cess field, not as the item tax")
        if self.cess is not None and self.cess.tax_type != TaxType.CESS:
            raise ValueError("Only a CESS tax can be selected as the item cess")
        return self


class TaxDiscountLine(BaseSnapshotSchema):
    """A single tax, cess, charge or discount component of a line item."""
    type: TaxDiscountType
    tax_template_id: Optional[int] = None
    discount_template_id: Optional[int] = None
    name: str
    rate: Decimal
    rate_type: RateType = RateType.PERCENT
    taxable_amount: Decimal
    amount: Decimal
    sort_order: int = 0

    @field_validator('type', mode='before')
    @classmethod
    def normalize_type(cls, v):
        return normalize_to_uppercase(v, VALID_TAX_DISCOUNT_TYPES)

    @property
    def is_tax(self) -> bool:
        return self.type in TAX_COMPONENT_TYPES


class CalculatedLineItem(BaseSnapshotSchema):
    """A computed invoice line. Produced fresh on every create/edit."""
    name: str = ""
    description: Optional[str] = None
    hsn_code: Optional[str] = None
    quantity: Decimal
    unit: str = "NOS"
    rate: Decimal
    amount: Decimal
    taxable_amount: Decimal
    total_discount: Decimal
    total_tax: Decimal
    total: Decimal
    taxes_discounts: Tuple[TaxDiscountLine, ...] = ()
    sort_order: int = 0

    def amount_for(self, line_type: TaxDiscountType) -> Decimal:
        """Sum of this item's component amounts of one type."""
        return sum(
            (line.amount for line in self.taxes_discounts if line.type == line_type),
            Decimal("0"),
        )


# ==================== Invoice-Level Entry Schemas ====================

class InvoiceTaxDiscountInput(BaseCreateSchema):
    """An invoice-wide tax/charge or discount as entered."""
    entry_type: EntryType
    tax_template_id: Optional[int] = None
    discount_template_id: Optional[int] = None
    name: str = Field(..., min_length=1, max_length=100)
    rate_type: RateType = RateType.PERCENT
    rate: Decimal = Field(..., ge=0)
    application_mode: ApplicationMode = ApplicationMode.AFTER_TAX
    sort_order: Optional[int] = None

    @field_validator('entry_type', mode='before')
    @classmethod
    def normalize_entry_type(cls, v):
        return normalize_to_uppercase(v, VALID_ENTRY_TYPES)

    @field_validator('rate_type', mode='before')
    @classmethod
    def normalize_rate_type(cls, v):
        return normalize_to_uppercase(v, VALID_RATE_TYPES)

    @field_validator('application_mode', mode='before')
    @classmethod
    def normalize_application_mode(cls, v):
        return normalize_to_uppercase(v, VALID_APPLICATION_MODES)


class InvoiceTaxDiscountEntry(BaseSnapshotSchema):
    """An invoice-level entry with its computed base and amount."""
    entry_type: EntryType
    tax_template_id: Optional[int] = None
    discount_template_id: Optional[int] = None
    name: str
    rate_type: RateType
    rate: Decimal
    application_mode: ApplicationMode
    base_amount: Decimal
    amount: Decimal
    sort_order: int


class InvoiceTaxDiscountCalculation(BaseSnapshotSchema):
    """All invoice-level entries plus their subtotals."""
    entries: Tuple[InvoiceTaxDiscountEntry, ...] = ()
    total_before_tax_additions: Decimal = Decimal("0.00")
    total_before_tax_discounts: Decimal = Decimal("0.00")
    total_after_tax_additions: Decimal = Decimal("0.00")
    total_after_tax_discounts: Decimal = Decimal("0.00")
    total_additional_tax: Decimal = Decimal("0.00")
    total_invoice_discount: Decimal = Decimal("0.00")


# ==================== Totals & Summary Schemas ====================

class InvoiceTotals(BaseSnapshotSchema):
    """Invoice totals derived from calculated items and invoice-level entries."""
    sub_total: Decimal
    total_item_discount: Decimal
    taxable_total: Decimal
    total_cgst: Decimal
    total_sgst: Decimal
    total_igst: Decimal
    total_cess: Decimal
    total_custom_tax: Decimal = Decimal("0.00")
    total_tax: Decimal
    intermediate_total: Decimal
    total_additional_tax: Decimal
    total_invoice_discount: Decimal
    grand_total: Decimal
    paid_amount: Decimal = Decimal("0.00")
    due_amount: Decimal
    tax_discount_calc: InvoiceTaxDiscountCalculation = InvoiceTaxDiscountCalculation()

    @property
    def tax_discount_entries(self) -> Tuple[InvoiceTaxDiscountEntry, ...]:
        return self.tax_discount_calc.entries


class TaxSummaryRow(BaseSnapshotSchema):
    """One grouped row of the tax summary shown on the invoice."""
    type: TaxDiscountType
    tax_template_id: Optional[int] = None
    name: str
    rate: Decimal
    taxable_amount: Decimal
    amount: Decimal


class TaxSummary(BaseSnapshotSchema):
    """Tax rows grouped across all items, with totals by type."""
    rows: Tuple[TaxSummaryRow, ...] = ()
    total_cgst: Decimal = Decimal("0.00")
    total_sgst: Decimal = Decimal("0.00")
    total_igst: Decimal = Decimal("0.00")
    total_cess: Decimal = Decimal("0.00")
    total_charges: Decimal = Decimal("0.00")
    total_discount: Decimal = Decimal("0.00")
    grand_total_tax: Decimal = Decimal("0.00")


# ==================== Primitive Results ====================

class DiscountResult(BaseModel):
    """Result of applying one discount to an amount."""
    discount_amount: Decimal
    amount_after_discount: Decimal


class GstBreakdown(BaseModel):
    """GST split for one taxable amount."""
    cgst_rate: Decimal = Decimal("0")
    cgst_amount: Decimal = Decimal("0.00")
    sgst_rate: Decimal = Decimal("0")
    sgst_amount: Decimal = Decimal("0.00")
    igst_rate: Decimal = Decimal("0")
    igst_amount: Decimal = Decimal("0.00")
    total_tax: Decimal = Decimal("0.00")
