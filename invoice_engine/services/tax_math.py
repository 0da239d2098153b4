"""
Rate primitives for GST invoicing.

All money is Decimal. Every amount these functions return has been rounded
half-up to 2 places exactly once, at the point it is produced.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

from invoice_engine.models.billing import DiscountType, GstType, RateType
from invoice_engine.schemas.billing import DiscountResult, GstBreakdown


Number = Union[Decimal, int, float, str]

ZERO = Decimal("0.00")
HUNDRED = Decimal("100")
TWO_PLACES = Decimal("0.01")


def to_decimal(value: Optional[Number]) -> Decimal:
    """Coerce a number to Decimal; floats go through str() to avoid binary noise."""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round_to_two(value: Optional[Number]) -> Decimal:
    """Round half-up to 2 decimal places (0.005 -> 0.01)."""
    return to_decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def format_rate(rate: Number) -> str:
    """Render a rate for display: 9.00 -> '9', 2.50 -> '2.5'."""
    rate = to_decimal(rate)
    if rate == 0:
        return "0"
    return format(rate.normalize(), "f")


def calculate_discount(
    amount: Number,
    discount_type: Optional[DiscountType],
    value: Optional[Number],
) -> DiscountResult:
    """
    Apply one discount to an amount.

    PERCENT is clamped to 0-100; AMOUNT can never exceed the amount itself.
    The remainder is never negative.
    """
    amount = max(to_decimal(amount), Decimal("0"))
    value = to_decimal(value)

    if discount_type is None or value <= 0:
        return DiscountResult(discount_amount=ZERO, amount_after_discount=round_to_two(amount))

    if discount_type == DiscountType.PERCENT:
        percent = min(max(value, Decimal("0")), HUNDRED)
        discount = amount * percent / HUNDRED
    else:
        discount = min(value, amount)

    discount_amount = round_to_two(discount)
    return DiscountResult(
        discount_amount=discount_amount,
        amount_after_discount=max(ZERO, round_to_two(amount - discount)),
    )


def calculate_gst_breakdown(taxable_amount: Number, rate: Number, gst_type: GstType) -> GstBreakdown:
    """
    Split GST by place of supply.

    INTRA: CGST and SGST each at half the rate, each rounded on its own.
    The total is the sum of those two roundings, which can differ by a paisa
    from rounding the whole rate once. INTER: IGST at the full rate.
    """
    taxable_amount = to_decimal(taxable_amount)
    rate = to_decimal(rate)

    if rate <= 0:
        return GstBreakdown()

    if gst_type == GstType.INTRA:
        half_rate = rate / 2
        cgst_amount = round_to_two(taxable_amount * half_rate / HUNDRED)
        sgst_amount = round_to_two(taxable_amount * half_rate / HUNDRED)
        return GstBreakdown(
            cgst_rate=half_rate,
            cgst_amount=cgst_amount,
            sgst_rate=half_rate,
            sgst_amount=sgst_amount,
            total_tax=cgst_amount + sgst_amount,
        )

    igst_amount = round_to_two(taxable_amount * rate / HUNDRED)
    return GstBreakdown(igst_rate=rate, igst_amount=igst_amount, total_tax=igst_amount)


def calculate_cess(taxable_amount: Number, rate: Number) -> Decimal:
    """Cess is a flat percentage of the taxable amount, never of the GST."""
    rate = to_decimal(rate)
    if rate <= 0:
        return ZERO
    return round_to_two(to_decimal(taxable_amount) * rate / HUNDRED)


def calculate_custom_tax(taxable_amount: Number, rate: Number, rate_type: RateType) -> Decimal:
    """A CUSTOM levy: percentage of the taxable amount, or a flat amount."""
    rate = to_decimal(rate)
    if rate <= 0:
        return ZERO
    if rate_type == RateType.AMOUNT:
        return round_to_two(rate)
    return round_to_two(to_decimal(taxable_amount) * rate / HUNDRED)


def determine_gst_type(company_state_code: Optional[str], customer_state_code: Optional[str]) -> GstType:
    """INTRA when both state codes are equal, otherwise INTER."""
    if company_state_code == customer_state_code:
        return GstType.INTRA
    return GstType.INTER
