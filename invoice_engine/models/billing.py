"""Billing vocabularies for GST invoicing.

Every closed set of values used by the calculators lives here as a
str Enum, so stored values stay plain UPPERCASE strings while the
calculation code only ever branches on Enum members.
"""
from enum import Enum


class RateType(str, Enum):
    """How a rate is applied."""
    PERCENT = "PERCENT"
    AMOUNT = "AMOUNT"      # Flat amount, only meaningful for CUSTOM taxes


class DiscountType(str, Enum):
    """Discount type enumeration."""
    PERCENT = "PERCENT"
    AMOUNT = "AMOUNT"


class TaxType(str, Enum):
    """Tax template type."""
    GST = "GST"            # Split into CGST+SGST or IGST by place of supply
    CESS = "CESS"          # Compensation cess, never split
    CUSTOM = "CUSTOM"      # Any other levy, never split


class GstType(str, Enum):
    """Place of supply relative to the seller."""
    INTRA = "INTRA"        # Same state: CGST + SGST
    INTER = "INTER"        # Different state: IGST


class TaxDiscountType(str, Enum):
    """Component type of a line-level tax or discount snapshot."""
    CGST = "CGST"
    SGST = "SGST"
    IGST = "IGST"
    CESS = "CESS"
    DISCOUNT = "DISCOUNT"
    CHARGE = "CHARGE"      # CUSTOM tax


# Component types that add to the tax total
TAX_COMPONENT_TYPES = (
    TaxDiscountType.CGST,
    TaxDiscountType.SGST,
    TaxDiscountType.IGST,
    TaxDiscountType.CESS,
    TaxDiscountType.CHARGE,
)


class EntryType(str, Enum):
    """Invoice-level entry type."""
    TAX = "TAX"
    DISCOUNT = "DISCOUNT"


class ApplicationMode(str, Enum):
    """Which invoice subtotal an invoice-level entry is computed on."""
    BEFORE_TAX = "BEFORE_TAX"  # Base = taxable total
    AFTER_TAX = "AFTER_TAX"    # Base = taxable total + item taxes


class InvoiceStatus(str, Enum):
    """Invoice payment status enumeration."""
    UNPAID = "UNPAID"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    PAID = "PAID"
    CANCELLED = "CANCELLED"
