"""
Enum Utilities for string-based vocabulary fields

ARCHITECTURE STANDARD:
━━━━━━━━━━━━━━━━━━━━━━
• Storage: plain UPPERCASE strings - NOT a native ENUM type
• Pydantic: Python str Enum for validation
• Calculations: always take the Enum, never a loose string
• Case: All enum values stored in UPPERCASE

CASE NORMALIZATION:
━━━━━━━━━━━━━━━━━━━
Inputs such as "percent", "Before_Tax" or "intra" are accepted and
normalized to UPPERCASE before Pydantic validates them against the Enum.

USAGE PATTERNS:
━━━━━━━━━━━━━━━
1. In Pydantic Schemas (with case normalization):
    @field_validator('rate_type', mode='before')
    @classmethod
    def normalize_rate_type(cls, v):
        return normalize_to_uppercase(v, VALID_RATE_TYPES)

2. Reading a stored status back:
    status = to_enum(row.status, InvoiceStatus)
"""

from enum import Enum
from typing import Any, Optional, TypeVar, Type, Set


T = TypeVar('T', bound=Enum)


def get_enum_value(value: Any) -> str:
    """
    Safely get string value from an enum or string.

    Examples:
        >>> get_enum_value(InvoiceStatus.PAID)
        'PAID'
        >>> get_enum_value("PAID")
        'PAID'
        >>> get_enum_value(None)
        None
    """
    if value is None:
        return None
    if isinstance(value, Enum):
        return value.value
    return str(value)


def to_enum(value: Any, enum_class: Type[T]) -> Optional[T]:
    """
    Convert a string value to an enum instance.

    Returns None for unknown values instead of raising, so callers can
    decide how to treat a stale stored string.

    Examples:
        >>> to_enum("paid", InvoiceStatus)
        InvoiceStatus.PAID
        >>> to_enum("INVALID", InvoiceStatus)
        None
    """
    if value is None:
        return None
    if isinstance(value, enum_class):
        return value
    if isinstance(value, str):
        value = value.upper()
    try:
        return enum_class(value)
    except (ValueError, KeyError):
        return None


# =============================================================================
# CASE NORMALIZATION FOR PYDANTIC SCHEMAS
# =============================================================================

def normalize_to_uppercase(value: Any, valid_values: Set[str]) -> Any:
    """
    Normalize a string value to UPPERCASE if it's a valid enum value.

    Use this in Pydantic field_validators to accept case-insensitive input.

    Args:
        value: The input value (may be any type)
        valid_values: Set of valid UPPERCASE values

    Returns:
        UPPERCASE string if valid, original value otherwise (for Pydantic to handle)

    Examples:
        >>> normalize_to_uppercase('percent', {'PERCENT', 'AMOUNT'})
        'PERCENT'
        >>> normalize_to_uppercase('invalid', {'PERCENT', 'AMOUNT'})
        'invalid'  # Returns as-is for Pydantic to raise validation error
    """
    if value is None:
        return value
    if isinstance(value, str):
        upper_v = value.strip().upper()
        if upper_v in valid_values:
            return upper_v
    return value


# =============================================================================
# PRE-DEFINED VALID VALUE SETS
# =============================================================================
# Use these with normalize_to_uppercase()

VALID_RATE_TYPES = {"PERCENT", "AMOUNT"}

VALID_TAX_TYPES = {"GST", "CESS", "CUSTOM"}

VALID_TAX_DISCOUNT_TYPES = {"CGST", "SGST", "IGST", "CESS", "DISCOUNT", "CHARGE"}

VALID_ENTRY_TYPES = {"TAX", "DISCOUNT"}

VALID_APPLICATION_MODES = {"BEFORE_TAX", "AFTER_TAX"}

VALID_INVOICE_STATUSES = {"UNPAID", "PARTIALLY_PAID", "PAID", "CANCELLED"}
