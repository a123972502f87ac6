"""
Line Items -- Invoice line-item and invoice-total arithmetic.

Responsibility:
    Computes per-line subtotal, tax and total, and aggregates an ordered
    sequence of lines plus a flat discount into invoice totals.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Consumed by invoice drafting and by any form/API layer that shows a
    running invoice total.

Invariants enforced:
    - Decimal-only arithmetic (never float); float inputs are routed through
      ``str()`` so binary noise is never introduced.
    - No rounding.  Presentation rounding is the caller's concern
      (``round_money``), so recomputation is idempotent.
    - line_total == line_subtotal + line_tax exactly.
    - grand_total == subtotal + tax_total - discount, NOT clamped at zero.

Failure modes:
    - CallerError when quantity, unit rate, tax rate or discount is negative.
    - Missing or non-numeric inputs never fail: they count as zero.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from billing_kernel.exceptions import CallerError

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value: Any) -> Decimal:
    """
    Parse a raw numeric input, defaulting to zero.

    ``None``, blank strings, non-numeric strings, NaN and infinities all
    become ``Decimal("0")``.  Booleans are not numbers here either.
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        return Decimal(value)
    else:
        text = str(value).strip()
        if not text:
            return ZERO
        try:
            result = Decimal(text)
        except InvalidOperation:
            return ZERO
    if not result.is_finite():
        return ZERO
    return result


def round_money(amount: Decimal, places: int = 2) -> Decimal:
    """Round for display only (ROUND_HALF_UP).  The engine never calls this."""
    return amount.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def _non_negative(field: str, value: Decimal) -> Decimal:
    if value < ZERO:
        raise CallerError(field, value)
    return value


@dataclass(frozen=True, slots=True)
class LineItem:
    """
    One invoice line.

    Numeric fields are coerced with ``to_decimal`` on construction, so a
    LineItem always holds Decimals.  Sign is checked at computation time.
    """

    description: str = ""
    quantity: Decimal = ZERO
    unit_rate: Decimal = ZERO
    tax_rate_percent: Decimal = ZERO

    def __post_init__(self) -> None:
        object.__setattr__(self, "quantity", to_decimal(self.quantity))
        object.__setattr__(self, "unit_rate", to_decimal(self.unit_rate))
        object.__setattr__(self, "tax_rate_percent", to_decimal(self.tax_rate_percent))
        object.__setattr__(self, "description", self.description or "")

    @classmethod
    def from_fields(cls, fields: Mapping[str, Any]) -> LineItem:
        """Build from raw form fields (``rate``/``tax_rate`` spellings accepted)."""
        rate = fields.get("unit_rate", fields.get("rate"))
        tax = fields.get("tax_rate_percent", fields.get("tax_rate"))
        return cls(
            description=str(fields.get("description") or ""),
            quantity=fields.get("quantity"),
            unit_rate=rate,
            tax_rate_percent=tax,
        )


@dataclass(frozen=True, slots=True)
class LineAmounts:
    """Derived amounts for a single line."""

    line_subtotal: Decimal
    line_tax: Decimal
    line_total: Decimal


@dataclass(frozen=True, slots=True)
class InvoiceTotals:
    """Aggregated totals for an ordered sequence of lines."""

    subtotal: Decimal
    tax_total: Decimal
    discount: Decimal
    grand_total: Decimal

    @property
    def is_credit(self) -> bool:
        """True when the discount exceeds subtotal plus tax."""
        return self.grand_total < ZERO


def compute_line_item(item: LineItem) -> LineAmounts:
    """
    Compute subtotal, tax and total for one line.

    Raises:
        CallerError: If quantity, unit rate or tax rate is negative.
    """
    quantity = _non_negative("quantity", item.quantity)
    rate = _non_negative("unit_rate", item.unit_rate)
    tax_rate = _non_negative("tax_rate_percent", item.tax_rate_percent)

    line_subtotal = quantity * rate
    line_tax = line_subtotal * tax_rate / HUNDRED
    return LineAmounts(
        line_subtotal=line_subtotal,
        line_tax=line_tax,
        line_total=line_subtotal + line_tax,
    )


def compute_invoice_totals(
    items: Iterable[LineItem],
    discount: Any = ZERO,
) -> InvoiceTotals:
    """
    Aggregate lines and a flat discount into invoice totals.

    The grand total is allowed to go negative when the discount exceeds
    subtotal plus tax.

    Raises:
        CallerError: If any line input or the discount is negative.
    """
    discount_amount = _non_negative("discount", to_decimal(discount))

    subtotal = ZERO
    tax_total = ZERO
    for item in items:
        amounts = compute_line_item(item)
        subtotal += amounts.line_subtotal
        tax_total += amounts.line_tax

    return InvoiceTotals(
        subtotal=subtotal,
        tax_total=tax_total,
        discount=discount_amount,
        grand_total=subtotal + tax_total - discount_amount,
    )
