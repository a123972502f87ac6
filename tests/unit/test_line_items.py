"""
Unit tests for invoice line-item arithmetic.

Verifies:
- Exact Decimal arithmetic, no internal rounding
- Lenient numeric parsing (missing / blank / garbage -> 0)
- Negative inputs rejected with CallerError
- Grand total left unclamped when the discount exceeds subtotal plus tax
"""

from dataclasses import FrozenInstanceError
from decimal import Decimal

import pytest

from billing_kernel.domain.line_items import (
    InvoiceTotals,
    LineItem,
    compute_invoice_totals,
    compute_line_item,
    round_money,
    to_decimal,
)
from billing_kernel.exceptions import CallerError


class TestToDecimal:
    @pytest.mark.parametrize("raw", [None, "", "   ", "abc", "NaN", "Infinity", True])
    def test_unusable_input_is_zero(self, raw):
        assert to_decimal(raw) == Decimal("0")

    def test_string(self):
        assert to_decimal(" 12.50 ") == Decimal("12.50")

    def test_int(self):
        assert to_decimal(7) == Decimal("7")

    def test_float_goes_through_str(self):
        """0.1 must not become 0.1000000000000000055511151231257827..."""
        assert to_decimal(0.1) == Decimal("0.1")

    def test_decimal_passes_through(self):
        value = Decimal("3.14159")
        assert to_decimal(value) is value


class TestLineItem:
    def test_fields_coerced_to_decimal(self):
        item = LineItem(description="Audit", quantity="2", unit_rate=500, tax_rate_percent=None)
        assert item.quantity == Decimal("2")
        assert item.unit_rate == Decimal("500")
        assert item.tax_rate_percent == Decimal("0")

    def test_frozen(self):
        item = LineItem(quantity=1, unit_rate=1)
        with pytest.raises(FrozenInstanceError):
            item.quantity = Decimal("2")  # type: ignore[misc]

    def test_from_fields_accepts_form_spellings(self):
        item = LineItem.from_fields({"description": "GST filing", "quantity": "1", "rate": "1500", "tax_rate": "18"})
        assert item == LineItem("GST filing", Decimal("1"), Decimal("1500"), Decimal("18"))

    def test_from_fields_missing_description(self):
        assert LineItem.from_fields({"quantity": 1}).description == ""


class TestComputeLineItem:
    def test_basic_line(self):
        amounts = compute_line_item(LineItem(quantity=2, unit_rate=500, tax_rate_percent=18))
        assert amounts.line_subtotal == Decimal("1000")
        assert amounts.line_tax == Decimal("180")
        assert amounts.line_total == Decimal("1180")

    def test_no_rounding_applied(self):
        amounts = compute_line_item(LineItem(quantity="3", unit_rate="33.333", tax_rate_percent="12.5"))
        assert amounts.line_subtotal == Decimal("99.999")
        assert amounts.line_tax == Decimal("12.499875")
        assert amounts.line_total == Decimal("112.498875")

    def test_missing_fields_count_as_zero(self):
        amounts = compute_line_item(LineItem(quantity=None, unit_rate="", tax_rate_percent="x"))
        assert amounts.line_total == Decimal("0")

    @pytest.mark.parametrize(
        "field, kwargs",
        [
            ("quantity", {"quantity": -1, "unit_rate": 10}),
            ("unit_rate", {"quantity": 1, "unit_rate": "-10"}),
            ("tax_rate_percent", {"quantity": 1, "unit_rate": 10, "tax_rate_percent": -5}),
        ],
    )
    def test_negative_input_rejected(self, field, kwargs):
        with pytest.raises(CallerError) as exc_info:
            compute_line_item(LineItem(**kwargs))
        assert exc_info.value.field == field
        assert exc_info.value.code == "CALLER_ERROR"


class TestComputeInvoiceTotals:
    ITEMS = (
        LineItem(quantity=2, unit_rate=500, tax_rate_percent=18),
        LineItem(quantity=1, unit_rate=1000, tax_rate_percent=0),
        LineItem(quantity=3, unit_rate=100, tax_rate_percent=5),
    )

    def test_three_lines_with_discount(self):
        totals = compute_invoice_totals(self.ITEMS, discount=50)
        assert totals == InvoiceTotals(
            subtotal=Decimal("2300"),
            tax_total=Decimal("195"),
            discount=Decimal("50"),
            grand_total=Decimal("2445"),
        )

    def test_zero_discount(self):
        totals = compute_invoice_totals(self.ITEMS)
        assert totals.grand_total == totals.subtotal + totals.tax_total

    def test_discount_equal_to_total(self):
        totals = compute_invoice_totals(self.ITEMS, discount="2495")
        assert totals.grand_total == Decimal("0")
        assert not totals.is_credit

    def test_discount_exceeding_total_not_clamped(self):
        totals = compute_invoice_totals(self.ITEMS, discount=3000)
        assert totals.grand_total == Decimal("-505")
        assert totals.is_credit

    def test_empty_items(self):
        totals = compute_invoice_totals([], discount=0)
        assert totals.subtotal == totals.tax_total == totals.grand_total == Decimal("0")

    def test_generator_input(self):
        totals = compute_invoice_totals(item for item in self.ITEMS)
        assert totals.subtotal == Decimal("2300")

    def test_negative_discount_rejected(self):
        with pytest.raises(CallerError, match="discount"):
            compute_invoice_totals(self.ITEMS, discount=-1)

    def test_recomputation_is_idempotent(self):
        assert compute_invoice_totals(self.ITEMS, 50) == compute_invoice_totals(self.ITEMS, 50)

    def test_cent_amounts_do_not_drift(self):
        items = [LineItem(quantity=1, unit_rate="0.1")] * 10
        assert compute_invoice_totals(items).subtotal == Decimal("1.0")


class TestRoundMoney:
    def test_half_up(self):
        assert round_money(Decimal("2.345")) == Decimal("2.35")
        assert round_money(Decimal("2.344")) == Decimal("2.34")

    def test_places(self):
        assert round_money(Decimal("112.498875"), places=3) == Decimal("112.499")

    def test_engine_output_stays_unrounded(self):
        amounts = compute_line_item(LineItem(quantity=1, unit_rate="0.005", tax_rate_percent=0))
        assert amounts.line_total == Decimal("0.005")
        assert round_money(amounts.line_total) == Decimal("0.01")
