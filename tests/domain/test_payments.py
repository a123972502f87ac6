"""
Tests for billing_kernel.domain.payments.

Validates the payment position of an invoice, allocation against the
balance, removal of allocations and the per-receipt allocation cap.
"""

from dataclasses import FrozenInstanceError
from decimal import Decimal

import pytest

from billing_kernel.domain.line_items import LineItem, compute_invoice_totals
from billing_kernel.domain.payments import (
    PaymentStatus,
    apply_payment,
    max_allocation,
    payment_position,
    remove_payment,
)
from billing_kernel.exceptions import CallerError

# 2 x 500 at 18% tax, 100 off: grand total 1080
TOTALS = compute_invoice_totals(
    [LineItem(quantity="2", unit_rate="500", tax_rate_percent="18")],
    discount="100",
)


class TestPaymentPosition:
    def test_unpaid(self):
        position = payment_position(TOTALS)
        assert position.grand_total == Decimal("1080")
        assert position.paid_amount == Decimal("0")
        assert position.balance_amount == Decimal("1080")
        assert position.status is PaymentStatus.UNPAID
        assert not position.is_settled

    def test_partially_paid(self):
        position = payment_position(TOTALS, "400.50")
        assert position.balance_amount == Decimal("679.50")
        assert position.status is PaymentStatus.PARTIALLY_PAID

    def test_paid(self):
        position = payment_position(TOTALS, 1080)
        assert position.balance_amount == Decimal("0")
        assert position.is_settled

    def test_paid_plus_balance_is_grand_total(self):
        position = payment_position(TOTALS, "123.45")
        assert position.paid_amount + position.balance_amount == TOTALS.grand_total

    def test_overpaid_rejected(self):
        with pytest.raises(CallerError) as exc_info:
            payment_position(TOTALS, "1080.01")
        assert exc_info.value.field == "paid_amount"

    def test_negative_paid_rejected(self):
        with pytest.raises(CallerError):
            payment_position(TOTALS, "-1")

    def test_credit_invoice_has_nothing_to_pay(self):
        credit = compute_invoice_totals([LineItem(quantity=1, unit_rate=50)], discount=80)
        position = payment_position(credit)
        assert position.grand_total == Decimal("-30")
        assert position.balance_amount == Decimal("0")
        assert position.status is PaymentStatus.PAID

    def test_frozen(self):
        position = payment_position(TOTALS)
        with pytest.raises(FrozenInstanceError):
            position.paid_amount = Decimal("1")  # type: ignore[misc]


class TestApplyPayment:
    def test_partial_then_full(self):
        first = apply_payment(TOTALS, 0, "500")
        assert first.paid_amount == Decimal("500")
        assert first.balance_amount == Decimal("580")
        assert first.status is PaymentStatus.PARTIALLY_PAID

        second = apply_payment(TOTALS, first.paid_amount, "580")
        assert second.balance_amount == Decimal("0")
        assert second.status is PaymentStatus.PAID

    def test_exceeding_balance_rejected(self):
        with pytest.raises(CallerError, match="invoice balance 580"):
            apply_payment(TOTALS, "500", "580.01")

    @pytest.mark.parametrize("amount", [0, "-5", "", None])
    def test_non_positive_rejected(self, amount):
        with pytest.raises(CallerError, match="greater than zero"):
            apply_payment(TOTALS, 0, amount)

    def test_settled_invoice_takes_no_more(self):
        with pytest.raises(CallerError):
            apply_payment(TOTALS, 1080, "0.01")


class TestRemovePayment:
    def test_restores_balance(self):
        position = remove_payment(TOTALS, "1080", "300")
        assert position.paid_amount == Decimal("780")
        assert position.balance_amount == Decimal("300")
        assert position.status is PaymentStatus.PARTIALLY_PAID

    def test_removing_everything_is_unpaid(self):
        assert remove_payment(TOTALS, "200", "200").status is PaymentStatus.UNPAID

    def test_more_than_paid_rejected(self):
        with pytest.raises(CallerError, match="paid amount"):
            remove_payment(TOTALS, "200", "200.01")


class TestMaxAllocation:
    def test_capped_by_balance(self):
        position = payment_position(TOTALS, "1000")
        assert max_allocation(position, "500") == Decimal("80")

    def test_capped_by_receipt(self):
        position = payment_position(TOTALS)
        assert max_allocation(position, "250") == Decimal("250")

    def test_no_receipt_selected(self):
        assert max_allocation(payment_position(TOTALS, "80")) == Decimal("1000")

    def test_never_negative(self):
        assert max_allocation(payment_position(TOTALS), "-10") == Decimal("0")
