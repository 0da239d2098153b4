"""INR display helpers: Indian digit grouping and amount in words."""
from decimal import Decimal

from num2words import num2words

from invoice_engine.config import settings
from invoice_engine.services.tax_math import round_to_two


def _group_indian(digits: str) -> str:
    """'118000' -> '1,18,000' (last three digits, then pairs)."""
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    pairs = []
    while len(head) > 2:
        pairs.insert(0, head[-2:])
        head = head[:-2]
    if head:
        pairs.insert(0, head)
    return ",".join(pairs) + "," + tail


def format_currency(amount) -> str:
    """Format an amount for display, e.g. ₹1,18,000.00."""
    amount = round_to_two(amount)
    sign = "-" if amount < 0 else ""
    rupees, paise = f"{abs(amount):.2f}".split(".")
    return f"{sign}{settings.CURRENCY_SYMBOL}{_group_indian(rupees)}.{paise}"


def amount_to_words(amount: Decimal) -> str:
    """Convert amount to words (Indian numbering system)."""
    amount = round_to_two(amount)
    rupees = int(amount)
    paise = int((amount - rupees) * 100)

    words = num2words(rupees, lang=settings.AMOUNT_IN_WORDS_LANG).replace(",", "")
    result = f"Rupees {words.title()} Only"

    if paise > 0:
        paise_words = num2words(paise, lang=settings.AMOUNT_IN_WORDS_LANG).replace(",", "")
        result = f"Rupees {words.title()} and {paise_words.title()} Paise Only"

    return result
