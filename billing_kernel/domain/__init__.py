"""
Pure domain layer.

This module contains value objects and calculation logic with NO
dependencies on:
- ORM (SQLAlchemy)
- Database
- Wall-clock time (a Clock is passed in where "today" matters)
- I/O

All domain objects are immutable and deterministic.
"""

from billing_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from billing_kernel.domain.invoice_draft import (
    BillingStatus,
    CompletedWork,
    InvoiceDraft,
    draft_invoice_for_work,
    ensure_billable,
    select_work_price,
)
from billing_kernel.domain.line_items import (
    InvoiceTotals,
    LineAmounts,
    LineItem,
    compute_invoice_totals,
    compute_line_item,
    round_money,
    to_decimal,
)
from billing_kernel.domain.payments import (
    PaymentPosition,
    PaymentStatus,
    apply_payment,
    max_allocation,
    payment_position,
    remove_payment,
)
from billing_kernel.domain.periods import (
    ResolvedPeriod,
    containing_period,
    resolve_current_period,
    resolve_period,
    shift_period,
)
from billing_kernel.domain.recurrence import (
    Cadence,
    PeriodSelector,
    RecurrenceDescriptor,
    Weekday,
    parse_recurrence,
)
from billing_kernel.domain.schedule import (
    DueAnchor,
    DueDateRule,
    RecurringSchedule,
    due_date_for,
    generation_date_for,
    is_overdue,
    iter_periods,
    period_label,
    should_generate,
)
from billing_kernel.domain.sequence import (
    IssuedId,
    SequenceConfig,
    VoucherType,
    default_sequence_config,
    format_id,
    next_id,
    preview_id,
    sequence_config_from_settings,
)

__all__ = [
    # Clock
    "Clock",
    "DeterministicClock",
    "SystemClock",
    # Line items
    "InvoiceTotals",
    "LineAmounts",
    "LineItem",
    "compute_invoice_totals",
    "compute_line_item",
    "round_money",
    "to_decimal",
    # Recurrence
    "Cadence",
    "PeriodSelector",
    "RecurrenceDescriptor",
    "Weekday",
    "parse_recurrence",
    # Periods
    "ResolvedPeriod",
    "containing_period",
    "resolve_current_period",
    "resolve_period",
    "shift_period",
    # Sequences
    "IssuedId",
    "SequenceConfig",
    "VoucherType",
    "default_sequence_config",
    "format_id",
    "next_id",
    "preview_id",
    "sequence_config_from_settings",
    # Schedule
    "DueAnchor",
    "DueDateRule",
    "RecurringSchedule",
    "due_date_for",
    "generation_date_for",
    "is_overdue",
    "iter_periods",
    "period_label",
    "should_generate",
    # Payments
    "PaymentPosition",
    "PaymentStatus",
    "apply_payment",
    "max_allocation",
    "payment_position",
    "remove_payment",
    # Invoice drafting
    "BillingStatus",
    "CompletedWork",
    "InvoiceDraft",
    "draft_invoice_for_work",
    "ensure_billable",
    "select_work_price",
]
