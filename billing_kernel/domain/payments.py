"""
Payments -- Allocation of received payments against an invoice balance.

Responsibility:
    Tracks how much of an invoice's grand total has been paid, the
    remaining balance, and the resulting payment status.  Validates each
    allocation of a receipt against that balance.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Consumes InvoiceTotals from line_items.

Invariants enforced:
    - paid_amount + balance_amount == grand_total for a payable invoice.
    - An allocation is strictly positive and never exceeds the balance, so
      paid_amount never exceeds the grand total.
    - A credit invoice (grand total at or below zero) has nothing to pay:
      balance zero, status PAID.

Failure modes:
    - CallerError for a non-positive allocation, an allocation above the
      balance, or a paid amount outside [0, grand_total].
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from billing_kernel.domain.line_items import ZERO, InvoiceTotals, to_decimal
from billing_kernel.exceptions import CallerError


class PaymentStatus(str, Enum):
    """Payment state derived from paid amount versus grand total."""

    UNPAID = "unpaid"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"


@dataclass(frozen=True, slots=True)
class PaymentPosition:
    """What has been paid on an invoice and what is still owed."""

    grand_total: Decimal
    paid_amount: Decimal
    balance_amount: Decimal
    status: PaymentStatus

    @property
    def is_settled(self) -> bool:
        return self.status is PaymentStatus.PAID


def _payable(totals: InvoiceTotals) -> Decimal:
    return max(totals.grand_total, ZERO)


def payment_position(totals: InvoiceTotals, paid: Any = ZERO) -> PaymentPosition:
    """
    Position of an invoice with ``paid`` already allocated to it.

    Raises:
        CallerError: If ``paid`` is negative or exceeds the grand total.
    """
    paid_amount = to_decimal(paid)
    payable = _payable(totals)
    if paid_amount < ZERO:
        raise CallerError("paid_amount", paid_amount)
    if paid_amount > payable:
        raise CallerError("paid_amount", paid_amount, f"must not exceed the invoice total {payable}")

    balance = payable - paid_amount
    if balance == ZERO:
        status = PaymentStatus.PAID
    elif paid_amount == ZERO:
        status = PaymentStatus.UNPAID
    else:
        status = PaymentStatus.PARTIALLY_PAID
    return PaymentPosition(
        grand_total=totals.grand_total,
        paid_amount=paid_amount,
        balance_amount=balance,
        status=status,
    )


def apply_payment(totals: InvoiceTotals, paid: Any, amount: Any) -> PaymentPosition:
    """
    Allocate ``amount`` to an invoice that already has ``paid`` allocated.

    Raises:
        CallerError: If ``amount`` is not positive or exceeds the balance.
    """
    current = payment_position(totals, paid)
    allocation = to_decimal(amount)
    if allocation <= ZERO:
        raise CallerError("amount", allocation, "must be greater than zero")
    if allocation > current.balance_amount:
        raise CallerError(
            "amount", allocation,
            f"must not exceed the invoice balance {current.balance_amount}",
        )
    return payment_position(totals, current.paid_amount + allocation)


def remove_payment(totals: InvoiceTotals, paid: Any, amount: Any) -> PaymentPosition:
    """
    Undo an earlier allocation of ``amount``.

    Raises:
        CallerError: If ``amount`` is not positive or exceeds what was paid.
    """
    current = payment_position(totals, paid)
    allocation = to_decimal(amount)
    if allocation <= ZERO:
        raise CallerError("amount", allocation, "must be greater than zero")
    if allocation > current.paid_amount:
        raise CallerError(
            "amount", allocation,
            f"must not exceed the paid amount {current.paid_amount}",
        )
    return payment_position(totals, current.paid_amount - allocation)


def max_allocation(position: PaymentPosition, unallocated: Any = None) -> Decimal:
    """Largest amount a receipt with ``unallocated`` left may put on the invoice."""
    if unallocated is None:
        return position.balance_amount
    return max(min(to_decimal(unallocated), position.balance_amount), ZERO)
