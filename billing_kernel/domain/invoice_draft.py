"""
Invoice Draft -- invoice for a completed unit of work.

Responsibility:
    Turns a completed work item into a draft invoice: picks the billable
    price, builds the single line item, computes totals and the due date.
    The invoice number is issued elsewhere and passed in.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Called by InvoiceDraftingService, which supplies the number and date.

Invariants enforced:
    - Price precedence: customer-specific price, then service default price,
      then zero.  Zero/empty values fall through to the next source.
    - due_date = invoice_date + due_days.
    - Totals come from compute_invoice_totals (no discount on auto invoices).

Failure modes:
    - AlreadyBilledError if the work is already billed.
    - CallerError if due_days is negative.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any

from billing_kernel.domain.line_items import (
    ZERO,
    InvoiceTotals,
    LineItem,
    compute_invoice_totals,
    to_decimal,
)
from billing_kernel.exceptions import AlreadyBilledError, CallerError

DEFAULT_DUE_DAYS = 30


class BillingStatus(str, Enum):
    NOT_BILLED = "not_billed"
    BILLED = "billed"


@dataclass(frozen=True)
class CompletedWork:
    """The slice of a work record that invoicing reads."""

    work_id: str
    customer_id: str
    service_name: str
    customer_price: Any = None
    service_default_price: Any = None
    tax_rate_percent: Any = None
    billing_status: BillingStatus = BillingStatus.NOT_BILLED
    recurrence_note: str | None = None  # e.g. "monthly" for recurring services


@dataclass(frozen=True)
class InvoiceDraft:
    """Unsaved invoice ready for the persistence collaborator."""

    invoice_number: str
    customer_id: str
    work_id: str
    invoice_date: date
    due_date: date
    line_items: tuple[LineItem, ...]
    totals: InvoiceTotals
    status: str = "draft"
    notes: str | None = None


def select_work_price(work: CompletedWork) -> Decimal:
    """Customer price, else service default price, else zero."""
    for candidate in (work.customer_price, work.service_default_price):
        price = to_decimal(candidate)
        if price != ZERO:
            return price
    return ZERO


def ensure_billable(work: CompletedWork) -> None:
    """Raise AlreadyBilledError unless the work is still unbilled."""
    if BillingStatus(work.billing_status) is BillingStatus.BILLED:
        raise AlreadyBilledError(work.work_id)


def draft_invoice_for_work(
    work: CompletedWork,
    invoice_number: str,
    invoice_date: date,
    due_days: int = DEFAULT_DUE_DAYS,
) -> InvoiceDraft:
    """
    Draft the invoice for ``work``.

    Raises:
        AlreadyBilledError: If the work was billed before.
        CallerError: If ``due_days`` is negative.
    """
    ensure_billable(work)
    if due_days < 0:
        raise CallerError("due_days", due_days)

    item = LineItem(
        description=work.service_name,
        quantity=Decimal("1"),
        unit_rate=select_work_price(work),
        tax_rate_percent=work.tax_rate_percent,
    )
    notes = None
    if work.recurrence_note:
        notes = f"{work.recurrence_note} recurring service - {work.service_name}"

    return InvoiceDraft(
        invoice_number=invoice_number,
        customer_id=work.customer_id,
        work_id=work.work_id,
        invoice_date=invoice_date,
        due_date=invoice_date + timedelta(days=due_days),
        line_items=(item,),
        totals=compute_invoice_totals((item,)),
        notes=notes,
    )
