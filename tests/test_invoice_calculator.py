from decimal import Decimal

import pytest
from pydantic import ValidationError

from invoice_engine.models.billing import (
    ApplicationMode, DiscountType, EntryType, GstType, RateType,
    TaxDiscountType, TaxType,
)
from invoice_engine.schemas.billing import (
    DiscountSelection, InvoiceTaxDiscountInput, LineItemInput, TaxSelection,
    TaxTemplate, TaxTemplateCreate,
)
from invoice_engine.services.invoice_calculator import (
    build_invoice_entry_inputs,
    calculate_invoice_tax_discount_entries,
    calculate_line_item,
    calculate_line_items,
)


def _types(item):
    return [line.type for line in item.taxes_discounts]


class TestCalculateLineItem:
    def test_intra_state_round_trip(self, consulting_item):
        item = calculate_line_item(consulting_item, GstType.INTRA)

        assert item.amount == Decimal("1000.00")
        assert item.taxable_amount == Decimal("1000.00")
        assert item.total_discount == Decimal("0.00")
        assert item.amount_for(TaxDiscountType.CGST) == Decimal("90.00")
        assert item.amount_for(TaxDiscountType.SGST) == Decimal("90.00")
        assert item.total_tax == Decimal("180.00")
        assert item.total == Decimal("1180.00")

        cgst, sgst = item.taxes_discounts
        assert cgst.name == "CGST @ 9%"
        assert sgst.name == "SGST @ 9%"
        assert cgst.tax_template_id == 4
        assert cgst.taxable_amount == Decimal("1000.00")
        assert [cgst.sort_order, sgst.sort_order] == [0, 1]

    def test_inter_state_single_igst_line(self, consulting_item):
        item = calculate_line_item(consulting_item, GstType.INTER)

        assert _types(item) == [TaxDiscountType.IGST]
        assert item.taxes_discounts[0].name == "IGST @ 18%"
        assert item.taxes_discounts[0].amount == Decimal("180.00")
        assert item.total == Decimal("1180.00")

    def test_percent_discount_reduces_tax_basis(self, gst18):
        # Arrange
        line = LineItemInput(
            name="Audit", quantity=1, rate=Decimal("1000"), tax=gst18,
            discount=DiscountSelection.custom(DiscountType.PERCENT, Decimal("10")),
        )

        # Act
        item = calculate_line_item(line, GstType.INTRA)

        # Assert
        assert _types(item) == [TaxDiscountType.DISCOUNT, TaxDiscountType.CGST, TaxDiscountType.SGST]
        discount_line = item.taxes_discounts[0]
        assert discount_line.name == "Discount 10%"
        assert discount_line.taxable_amount == Decimal("1000.00")
        assert discount_line.amount == Decimal("100.00")
        assert item.taxable_amount == Decimal("900.00")
        assert item.taxes_discounts[1].taxable_amount == Decimal("900.00")
        assert item.taxes_discounts[1].amount == Decimal("81.00")
        assert item.total_tax == Decimal("162.00")
        assert item.total == Decimal("1062.00")

    def test_amount_discount_name(self):
        line = LineItemInput(
            quantity=1, rate=Decimal("300"),
            discount=DiscountSelection(type="amount", value=Decimal("50")),
        )
        item = calculate_line_item(line, GstType.INTRA)

        assert item.taxes_discounts[0].name == "Discount ₹50"
        assert item.taxes_discounts[0].rate_type == RateType.AMOUNT
        assert item.total == Decimal("250.00")

    def test_template_discount_keeps_template_name(self):
        line = LineItemInput(
            quantity=1, rate=Decimal("300"),
            discount=DiscountSelection(template_id=2, name="Festive", type=DiscountType.PERCENT, value=5),
        )
        item = calculate_line_item(line, GstType.INTRA)

        assert item.taxes_discounts[0].name == "Festive"
        assert item.taxes_discounts[0].discount_template_id == 2

    def test_cess_on_taxable_amount_not_on_gst(self):
        line = LineItemInput(
            quantity=1, rate=Decimal("1000"),
            tax=TaxSelection(template_id=5, name="GST 28%", rate=28),
            cess=TaxSelection(template_id=8, name="Cess 12%", rate=12, tax_type=TaxType.CESS),
        )
        item = calculate_line_item(line, GstType.INTRA)

        assert item.amount_for(TaxDiscountType.CGST) == Decimal("140.00")
        assert item.amount_for(TaxDiscountType.SGST) == Decimal("140.00")
        assert item.amount_for(TaxDiscountType.CESS) == Decimal("120.00")
        assert item.taxes_discounts[-1].name == "Cess 12%"
        assert item.taxes_discounts[-1].tax_template_id == 8
        assert item.total_tax == Decimal("400.00")
        assert item.total == Decimal("1400.00")

    def test_custom_cess_default_name(self):
        line = LineItemInput(
            quantity=1, rate=Decimal("1000"),
            cess=TaxSelection.custom(Decimal("1"), tax_type=TaxType.CESS),
        )
        item = calculate_line_item(line, GstType.INTER)

        assert item.taxes_discounts[0].name == "Cess @ 1%"
        assert item.taxes_discounts[0].tax_template_id is None
        assert item.total == Decimal("1010.00")

    @pytest.mark.parametrize(
        "gst_type, expected_types",
        [
            (GstType.INTRA, [TaxDiscountType.CGST, TaxDiscountType.SGST]),
            (GstType.INTER, [TaxDiscountType.IGST]),
        ],
    )
    def test_percent_custom_tax_splits_like_gst(self, gst_type, expected_types):
        line = LineItemInput(
            quantity=2, rate=Decimal("500"),
            tax=TaxSelection(template_id=9, rate=18, tax_type="CUSTOM"),
        )
        item = calculate_line_item(line, gst_type)

        assert _types(item) == expected_types
        assert {t.tax_template_id for t in item.taxes_discounts} == {9}
        assert item.total_tax == Decimal("180.00")
        assert item.amount_for(TaxDiscountType.CHARGE) == Decimal("0")

    def test_fixed_custom_tax_is_a_single_charge_line(self):
        line = LineItemInput(
            quantity=1, rate=Decimal("1000"),
            tax=TaxSelection(name="Service Charge", rate=50, rate_type="AMOUNT", tax_type="custom"),
        )
        item = calculate_line_item(line, GstType.INTRA)

        assert _types(item) == [TaxDiscountType.CHARGE]
        assert item.taxes_discounts[0].amount == Decimal("50.00")
        assert item.total_tax == Decimal("50.00")
        assert item.total == Decimal("1050.00")

    @pytest.mark.parametrize("quantity, rate", [(0, 500), (2, 0)])
    def test_zero_line_is_valid(self, gst18, quantity, rate):
        item = calculate_line_item(LineItemInput(quantity=quantity, rate=rate, tax=gst18), GstType.INTRA)

        assert item.amount == Decimal("0.00")
        assert item.total_tax == Decimal("0.00")
        assert item.total == Decimal("0.00")
        assert all(line.amount == 0 for line in item.taxes_discounts)

    def test_zero_rates_produce_no_lines(self):
        line = LineItemInput(
            quantity=1, rate=Decimal("1000"),
            tax=TaxSelection(template_id=1, name="GST Exempt", rate=0),
            cess=TaxSelection.custom(0, tax_type=TaxType.CESS),
        )
        item = calculate_line_item(line, GstType.INTRA)

        assert item.taxes_discounts == ()
        assert item.total == Decimal("1000.00")

    def test_result_is_frozen(self, consulting_item):
        item = calculate_line_item(consulting_item, GstType.INTRA)
        with pytest.raises(ValidationError):
            item.total = Decimal("0")

    def test_line_items_keep_order(self, consulting_item, gst18):
        second = LineItemInput(name="Travel", quantity=1, rate=Decimal("250"), tax=gst18)
        items = calculate_line_items([consulting_item, second], GstType.INTRA)

        assert [item.name for item in items] == ["Consulting", "Travel"]
        assert [item.sort_order for item in items] == [0, 1]


class TestLineItemValidation:
    def test_negative_quantity_rejected(self):
        with pytest.raises(ValidationError):
            LineItemInput(quantity=-1, rate=100)

    def test_cess_cannot_be_item_tax(self):
        with pytest.raises(ValidationError):
            LineItemInput(quantity=1, rate=100, tax=TaxSelection.custom(1, tax_type=TaxType.CESS))

    def test_gst_cannot_be_item_cess(self):
        with pytest.raises(ValidationError):
            LineItemInput(quantity=1, rate=100, cess=TaxSelection.custom(18))

    def test_amount_rate_only_for_custom_templates(self):
        with pytest.raises(ValidationError):
            TaxTemplateCreate(name="Flat GST", rate=10, rate_type=RateType.AMOUNT, tax_type=TaxType.GST)
        template = TaxTemplateCreate(name="Packing", rate=10, rate_type="amount", tax_type="custom")
        assert template.rate_type == RateType.AMOUNT

    def test_selection_is_a_snapshot(self):
        template = TaxTemplate(id=4, name="GST 18%", rate=18)
        selection = TaxSelection.from_template(template)

        template.rate = Decimal("12")
        template.name = "GST 12%"

        assert selection.rate == Decimal("18")
        assert selection.name == "GST 18%"


def _entry(entry_type, rate, mode, rate_type=RateType.PERCENT, sort_order=None, name="Entry"):
    return InvoiceTaxDiscountInput(
        entry_type=entry_type, name=name, rate_type=rate_type, rate=rate,
        application_mode=mode, sort_order=sort_order,
    )


class TestInvoiceTaxDiscountEntries:
    def test_before_tax_discount_uses_taxable_total(self):
        calc = calculate_invoice_tax_discount_entries(
            [_entry(EntryType.DISCOUNT, 10, ApplicationMode.BEFORE_TAX)],
            Decimal("1000"), Decimal("1180"),
        )
        assert calc.entries[0].base_amount == Decimal("1000.00")
        assert calc.entries[0].amount == Decimal("100.00")
        assert calc.total_invoice_discount == Decimal("100.00")
        assert calc.total_before_tax_discounts == Decimal("100.00")

    def test_after_tax_discount_uses_intermediate_total(self):
        calc = calculate_invoice_tax_discount_entries(
            [_entry(EntryType.DISCOUNT, 10, ApplicationMode.AFTER_TAX)],
            Decimal("1000"), Decimal("1180"),
        )
        assert calc.entries[0].base_amount == Decimal("1180.00")
        assert calc.entries[0].amount == Decimal("118.00")
        assert calc.total_after_tax_discounts == Decimal("118.00")

    def test_amount_discount_capped_at_base(self):
        calc = calculate_invoice_tax_discount_entries(
            [_entry(EntryType.DISCOUNT, 5000, ApplicationMode.BEFORE_TAX, RateType.AMOUNT)],
            Decimal("1000"), Decimal("1180"),
        )
        assert calc.entries[0].amount == Decimal("1000.00")

    def test_amount_tax_is_literal(self):
        calc = calculate_invoice_tax_discount_entries(
            [_entry(EntryType.TAX, 75, ApplicationMode.AFTER_TAX, RateType.AMOUNT)],
            Decimal("1000"), Decimal("1180"),
        )
        assert calc.entries[0].amount == Decimal("75.00")
        assert calc.total_additional_tax == Decimal("75.00")

    def test_entries_do_not_chain(self):
        entries = [
            _entry(EntryType.DISCOUNT, 10, ApplicationMode.AFTER_TAX, sort_order=0, name="A"),
            _entry(EntryType.TAX, 5, ApplicationMode.AFTER_TAX, sort_order=1, name="B"),
        ]
        forward = calculate_invoice_tax_discount_entries(entries, Decimal("1000"), Decimal("1180"))
        backward = calculate_invoice_tax_discount_entries(entries[::-1], Decimal("1000"), Decimal("1180"))

        assert forward.total_invoice_discount == backward.total_invoice_discount == Decimal("118.00")
        assert forward.total_additional_tax == backward.total_additional_tax == Decimal("59.00")
        assert [e.name for e in backward.entries] == ["A", "B"]

    def test_sort_order_defaults_to_position(self):
        calc = calculate_invoice_tax_discount_entries(
            [
                _entry(EntryType.TAX, 1, ApplicationMode.AFTER_TAX, name="first"),
                _entry(EntryType.TAX, 2, ApplicationMode.AFTER_TAX, name="second"),
            ],
            Decimal("100"), Decimal("100"),
        )
        assert [(e.name, e.sort_order) for e in calc.entries] == [("first", 0), ("second", 1)]

    def test_handles_more_entries_than_the_form_allows(self):
        entries = [_entry(EntryType.TAX, 1, ApplicationMode.AFTER_TAX) for _ in range(12)]
        calc = calculate_invoice_tax_discount_entries(entries, Decimal("1000"), Decimal("1180"))

        assert len(calc.entries) == 12
        assert calc.total_additional_tax == Decimal("141.60")
        assert calc.total_after_tax_additions == Decimal("141.60")
        assert calc.total_before_tax_additions == Decimal("0.00")

    def test_case_insensitive_input(self):
        entry = InvoiceTaxDiscountInput(
            entry_type="discount", name="Loyalty", rate_type="percent", rate=5,
            application_mode="before_tax",
        )
        assert entry.entry_type == EntryType.DISCOUNT
        assert entry.application_mode == ApplicationMode.BEFORE_TAX


class TestBuildInvoiceEntryInputs:
    def test_single_fields_become_entries(self):
        inputs = build_invoice_entry_inputs(
            additional_tax=TaxSelection.custom(Decimal("5")),
            discount=DiscountSelection.custom(DiscountType.PERCENT, Decimal("10")),
        )

        tax, discount = inputs
        assert tax.entry_type == EntryType.TAX
        assert tax.name == "Additional Tax @ 5%"
        assert tax.application_mode == ApplicationMode.AFTER_TAX
        assert tax.sort_order == 0
        assert discount.entry_type == EntryType.DISCOUNT
        assert discount.name == "Discount 10%"
        assert discount.application_mode == ApplicationMode.BEFORE_TAX
        assert discount.sort_order == 1

    def test_discount_after_tax_flag(self):
        inputs = build_invoice_entry_inputs(
            discount=DiscountSelection.custom(DiscountType.AMOUNT, Decimal("100")),
            discount_after_tax=True,
        )
        assert inputs[0].application_mode == ApplicationMode.AFTER_TAX
        assert inputs[0].rate_type == RateType.AMOUNT

    def test_entry_list_takes_precedence(self):
        explicit = [_entry(EntryType.TAX, 2, ApplicationMode.BEFORE_TAX, name="Freight")]
        inputs = build_invoice_entry_inputs(
            additional_tax=TaxSelection.custom(Decimal("5")),
            tax_discount_entries=explicit,
        )
        assert [i.name for i in inputs] == ["Freight"]

    def test_nothing_selected(self):
        assert build_invoice_entry_inputs() == []
