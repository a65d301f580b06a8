"""Unit tests for invoice line and invoice total arithmetic."""

from decimal import Decimal

import pytest

from easybill.business.pricing import compute_line, money, percent_of, summarize
from easybill.errors import BusinessError, ErrorCodes


@pytest.mark.unit
class TestMoney:

    def test_rounds_half_up_to_two_places(self):
        assert money("2.345") == Decimal("2.35")
        assert money("2.344") == Decimal("2.34")
        assert money(Decimal("0.005")) == Decimal("0.01")

    def test_none_is_zero(self):
        assert money(None) == Decimal("0.00")

    def test_float_input_uses_its_decimal_representation(self):
        assert money(0.1 + 0.2) == Decimal("0.30")

    def test_percent_of(self):
        assert percent_of(Decimal("10"), Decimal("33.33")) == Decimal("3.33")
        assert percent_of(Decimal("10"), None) == Decimal("0.00")


@pytest.mark.unit
class TestComputeLine:
    """Line amounts: gross, discount, taxable, taxes and total."""

    def test_plain_line(self):
        line = compute_line(2, Decimal("100.00"))

        assert line.gross == Decimal("200.00")
        assert line.discount == Decimal("0.00")
        assert line.tax == Decimal("0.00")
        assert line.line_total == Decimal("200.00")

    def test_percentage_discount_then_flat_tax_rate(self):
        line = compute_line(
            2, Decimal("100.00"),
            discount_type="PERCENTAGE", discount_value=Decimal("10"),
            tax_rate=Decimal("18"),
        )

        assert line.discount == Decimal("20.00")
        assert line.taxable == Decimal("180.00")
        assert line.tax == Decimal("32.40")
        assert line.line_total == Decimal("212.40")

    def test_flat_discount(self):
        line = compute_line(2, Decimal("100.00"), discount_type="FLAT", discount_value=Decimal("50"))

        assert line.discount == Decimal("50.00")
        assert line.line_total == Decimal("150.00")

    def test_explicit_discount_amount(self):
        line = compute_line(1, Decimal("80.00"), discount_amount=Decimal("5.50"))

        assert line.discount == Decimal("5.50")
        assert line.line_total == Decimal("74.50")

    def test_intra_state_gst_splits_into_cgst_and_sgst(self):
        line = compute_line(
            10, Decimal("100.00"),
            cgst_rate=Decimal("9"), sgst_rate=Decimal("9"), igst_rate=Decimal("18"),
        )

        assert line.cgst == Decimal("90.00")
        assert line.sgst == Decimal("90.00")
        assert line.igst == Decimal("0.00")
        assert line.tax == Decimal("180.00")
        assert line.line_total == Decimal("1180.00")

    def test_inter_state_gst_uses_igst_only(self):
        line = compute_line(
            10, Decimal("100.00"),
            cgst_rate=Decimal("9"), sgst_rate=Decimal("9"), igst_rate=Decimal("18"),
            is_interstate=True,
        )

        assert line.cgst == Decimal("0.00")
        assert line.sgst == Decimal("0.00")
        assert line.igst == Decimal("180.00")
        assert line.tax == Decimal("180.00")

    def test_cess_is_added_on_top_of_gst(self):
        line = compute_line(
            1, Decimal("1000.00"),
            cgst_rate=Decimal("14"), sgst_rate=Decimal("14"), cess_rate=Decimal("1"),
        )

        assert line.cess == Decimal("10.00")
        assert line.tax == Decimal("290.00")

    def test_gst_rates_take_precedence_over_tax_rate(self):
        line = compute_line(1, Decimal("100.00"), tax_rate=Decimal("28"), igst_rate=Decimal("5"), is_interstate=True)

        assert line.tax == Decimal("5.00")

    def test_explicit_tax_amount_when_no_rate(self):
        line = compute_line(1, Decimal("100.00"), tax_amount=Decimal("7.25"))

        assert line.tax == Decimal("7.25")
        assert line.line_total == Decimal("107.25")

    def test_percentage_over_hundred_is_rejected(self):
        with pytest.raises(BusinessError) as exc_info:
            compute_line(1, Decimal("100.00"), discount_type="PERCENTAGE", discount_value=Decimal("120"))

        assert exc_info.value.error_code == ErrorCodes.INVALID_DISCOUNT

    def test_discount_above_gross_is_rejected(self):
        with pytest.raises(BusinessError) as exc_info:
            compute_line(2, Decimal("100.00"), discount_amount=Decimal("300"))

        assert exc_info.value.error_code == ErrorCodes.INVALID_DISCOUNT

    def test_full_discount_is_allowed(self):
        line = compute_line(1, Decimal("100.00"), discount_type="PERCENTAGE", discount_value=Decimal("100"))

        assert line.line_total == Decimal("0.00")


@pytest.mark.unit
class TestSummarize:

    def test_totals_and_balance(self):
        lines = [
            compute_line(2, Decimal("100.00"), discount_type="PERCENTAGE", discount_value=Decimal("10"),
                         cgst_rate=Decimal("9"), sgst_rate=Decimal("9")),
            compute_line(1, Decimal("50.00")),
        ]

        totals = summarize(lines, payments=[Decimal("100.00"), "62.40"])

        assert totals.subtotal == Decimal("250.00")
        assert totals.discount == Decimal("20.00")
        assert totals.cgst == Decimal("16.20")
        assert totals.sgst == Decimal("16.20")
        assert totals.tax == Decimal("32.40")
        assert totals.total == Decimal("262.40")
        assert totals.paid == Decimal("162.40")
        assert totals.balance == Decimal("100.00")

    def test_empty_invoice(self):
        totals = summarize([])

        assert totals.total == Decimal("0.00")
        assert totals.balance == Decimal("0.00")
