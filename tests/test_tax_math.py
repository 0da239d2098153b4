from decimal import Decimal

import pytest

from invoice_engine.models.billing import DiscountType, GstType, RateType
from invoice_engine.services.tax_math import (
    calculate_cess,
    calculate_custom_tax,
    calculate_discount,
    calculate_gst_breakdown,
    determine_gst_type,
    format_rate,
    round_to_two,
)


class TestRoundToTwo:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (1.005, Decimal("1.01")),
            (2.675, Decimal("2.68")),
            (Decimal("0.125"), Decimal("0.13")),
            (Decimal("0.124"), Decimal("0.12")),
            ("10", Decimal("10.00")),
            (None, Decimal("0.00")),
        ],
    )
    def test_half_up(self, value, expected):
        assert round_to_two(value) == expected

    def test_float_noise_is_ignored(self):
        assert round_to_two(0.1 + 0.2) == Decimal("0.30")


class TestCalculateDiscount:
    def test_percent(self):
        result = calculate_discount(Decimal("1000"), DiscountType.PERCENT, Decimal("10"))
        assert result.discount_amount == Decimal("100.00")
        assert result.amount_after_discount == Decimal("900.00")

    def test_amount(self):
        result = calculate_discount(Decimal("1000"), DiscountType.AMOUNT, Decimal("250"))
        assert result.discount_amount == Decimal("250.00")
        assert result.amount_after_discount == Decimal("750.00")

    @pytest.mark.parametrize(
        "discount_type, value",
        [
            (DiscountType.PERCENT, Decimal("100")),
            (DiscountType.PERCENT, Decimal("150")),
            (DiscountType.AMOUNT, Decimal("1000")),
            (DiscountType.AMOUNT, Decimal("5000")),
        ],
    )
    def test_full_discount_leaves_zero(self, discount_type, value):
        result = calculate_discount(Decimal("1000"), discount_type, value)
        assert result.discount_amount == Decimal("1000.00")
        assert result.amount_after_discount == Decimal("0.00")

    @pytest.mark.parametrize("discount_type, value", [(None, Decimal("10")), (DiscountType.PERCENT, 0)])
    def test_no_discount(self, discount_type, value):
        result = calculate_discount(Decimal("1000"), discount_type, value)
        assert result.discount_amount == Decimal("0.00")
        assert result.amount_after_discount == Decimal("1000.00")

    @pytest.mark.parametrize("amount", ["0", "0.01", "99.99", "1234.56"])
    @pytest.mark.parametrize(
        "discount_type, value",
        [(DiscountType.PERCENT, "33.33"), (DiscountType.AMOUNT, "100")],
    )
    def test_never_exceeds_amount(self, amount, discount_type, value):
        result = calculate_discount(Decimal(amount), discount_type, Decimal(value))
        assert result.discount_amount <= Decimal(amount)
        assert result.amount_after_discount >= 0

    def test_negative_amount_is_clamped(self):
        result = calculate_discount(Decimal("-50"), DiscountType.AMOUNT, Decimal("10"))
        assert result.discount_amount == Decimal("0.00")
        assert result.amount_after_discount == Decimal("0.00")


class TestGstBreakdown:
    def test_intra_state_splits_evenly(self):
        breakdown = calculate_gst_breakdown(Decimal("1000"), Decimal("18"), GstType.INTRA)
        assert breakdown.cgst_rate == Decimal("9")
        assert breakdown.sgst_rate == Decimal("9")
        assert breakdown.cgst_amount == Decimal("90.00")
        assert breakdown.sgst_amount == Decimal("90.00")
        assert breakdown.igst_amount == Decimal("0.00")
        assert breakdown.total_tax == Decimal("180.00")

    def test_inter_state_is_igst(self):
        breakdown = calculate_gst_breakdown(Decimal("1000"), Decimal("18"), GstType.INTER)
        assert breakdown.igst_rate == Decimal("18")
        assert breakdown.igst_amount == round_to_two(Decimal("1000") * 18 / 100)
        assert breakdown.cgst_amount == Decimal("0.00")
        assert breakdown.sgst_amount == Decimal("0.00")

    def test_halves_are_rounded_independently(self):
        # 100.10 @ 2.5% = 2.5025 -> 2.50 twice; 100.10 @ 5% = 5.005 -> 5.01
        breakdown = calculate_gst_breakdown(Decimal("100.10"), Decimal("5"), GstType.INTRA)
        assert breakdown.cgst_amount == Decimal("2.50")
        assert breakdown.sgst_amount == Decimal("2.50")
        assert breakdown.total_tax == Decimal("5.00")
        whole = round_to_two(Decimal("100.10") * 5 / 100)
        assert whole == Decimal("5.01")
        assert abs(whole - breakdown.total_tax) <= Decimal("0.01")

    def test_zero_rate(self):
        breakdown = calculate_gst_breakdown(Decimal("1000"), 0, GstType.INTRA)
        assert breakdown.total_tax == Decimal("0.00")
        assert breakdown.cgst_rate == 0


def test_cess_is_on_taxable_amount():
    assert calculate_cess(Decimal("1000"), Decimal("12")) == Decimal("120.00")
    assert calculate_cess(Decimal("1000"), 0) == Decimal("0.00")


@pytest.mark.parametrize(
    "rate, rate_type, expected",
    [
        (Decimal("2"), RateType.PERCENT, Decimal("20.00")),
        (Decimal("50"), RateType.AMOUNT, Decimal("50.00")),
        (Decimal("0"), RateType.AMOUNT, Decimal("0.00")),
    ],
)
def test_custom_tax(rate, rate_type, expected):
    assert calculate_custom_tax(Decimal("1000"), rate, rate_type) == expected


@pytest.mark.parametrize(
    "company, customer, expected",
    [
        ("27", "27", GstType.INTRA),
        ("27", "29", GstType.INTER),
        ("27", " 27", GstType.INTER),
        ("27", None, GstType.INTER),
    ],
)
def test_determine_gst_type(company, customer, expected):
    assert determine_gst_type(company, customer) == expected


@pytest.mark.parametrize(
    "rate, expected",
    [(Decimal("9.00"), "9"), (Decimal("2.50"), "2.5"), (Decimal("0"), "0"), (Decimal("100"), "100")],
)
def test_format_rate(rate, expected):
    assert format_rate(rate) == expected
