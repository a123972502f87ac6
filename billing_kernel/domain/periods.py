"""
Period Resolver -- concrete start/end dates for a recurrence descriptor.

Responsibility:
    Given a validated RecurrenceDescriptor and a reference date, locates the
    period containing the reference date ("current") and shifts it by the
    descriptor's period selector (previous / current / next).

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  The reference date is
    supplied by the caller (or an injected Clock), never read internally.

Invariants enforced:
    - start_date <= end_date.
    - Periods of one descriptor partition time: each period's end_date + 1
      day is the next period's start_date.
    - Idempotent within a period: any two reference dates inside the same
      period resolve to the same result.
    - Monthly anchors beyond a month's length clamp to its last day.

Failure modes:
    - InvalidDescriptorError if the descriptor would not have passed
      ``parse_recurrence``.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from billing_kernel.domain.clock import Clock
from billing_kernel.domain.recurrence import (
    Cadence,
    RecurrenceDescriptor,
    descriptor_problem,
)
from billing_kernel.exceptions import InvalidDescriptorError

ONE_DAY = timedelta(days=1)

# Block length in months for the month-block cadences
_BLOCK_MONTHS = {
    Cadence.QUARTERLY: 3,
    Cadence.HALF_YEARLY: 6,
    Cadence.YEARLY: 12,
}


@dataclass(frozen=True, slots=True)
class ResolvedPeriod:
    """Inclusive calendar-date interval."""

    start_date: date
    end_date: date

    def __post_init__(self) -> None:
        assert self.start_date <= self.end_date, (
            f"period start {self.start_date} after end {self.end_date}"
        )

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    @property
    def days(self) -> int:
        """Number of calendar days in the period, both ends included."""
        return (self.end_date - self.start_date).days + 1


# ---------------------------------------------------------------------------
# Month arithmetic
# ---------------------------------------------------------------------------


def _month_index(day: date) -> int:
    return day.year * 12 + (day.month - 1)


def _first_of(index: int) -> date:
    year, month0 = divmod(index, 12)
    return date(year, month0 + 1, 1)


def _anchored_day(index: int, anchor_day: int) -> date:
    """``anchor_day`` of month ``index``, clamped to the month's last day."""
    year, month0 = divmod(index, 12)
    last = calendar.monthrange(year, month0 + 1)[1]
    return date(year, month0 + 1, min(anchor_day, last))


# ---------------------------------------------------------------------------
# Per-cadence resolution
#
# Each function returns the period ``steps`` units after the one that
# contains ``ref`` (steps may be negative).
# ---------------------------------------------------------------------------


def _daily(ref: date, steps: int) -> ResolvedPeriod:
    day = ref + timedelta(days=steps)
    return ResolvedPeriod(day, day)


def _weekly(ref: date, weekday: int, steps: int) -> ResolvedPeriod:
    start = ref - timedelta(days=(ref.weekday() - weekday) % 7)
    start += timedelta(weeks=steps)
    return ResolvedPeriod(start, start + timedelta(days=6))


def _monthly(ref: date, anchor_day: int, steps: int) -> ResolvedPeriod:
    index = _month_index(ref)
    if _anchored_day(index, anchor_day) > ref:
        index -= 1
    index += steps
    return ResolvedPeriod(
        _anchored_day(index, anchor_day),
        _anchored_day(index + 1, anchor_day) - ONE_DAY,
    )


def _month_block(ref: date, anchor_month: int, span: int, steps: int) -> ResolvedPeriod:
    index = _month_index(ref)
    start = index - ((index - (anchor_month - 1)) % span)
    start += span * steps
    return ResolvedPeriod(_first_of(start), _first_of(start + span) - ONE_DAY)


def _shifted(descriptor: RecurrenceDescriptor, ref: date, steps: int) -> ResolvedPeriod:
    cadence = descriptor.cadence
    if cadence is Cadence.DAILY:
        return _daily(ref, steps)
    if cadence is Cadence.WEEKLY:
        return _weekly(ref, int(descriptor.anchor), steps)
    if cadence is Cadence.MONTHLY:
        return _monthly(ref, descriptor.anchor, steps)
    return _month_block(ref, descriptor.anchor, _BLOCK_MONTHS[cadence], steps)


def _checked(descriptor: RecurrenceDescriptor) -> RecurrenceDescriptor:
    problem = descriptor_problem(descriptor)
    if problem is not None:
        raise InvalidDescriptorError(descriptor, problem)
    return descriptor


def _as_date(reference: date | datetime) -> date:
    if isinstance(reference, datetime):
        return reference.date()
    return reference


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def containing_period(
    descriptor: RecurrenceDescriptor,
    reference_date: date | datetime,
) -> ResolvedPeriod:
    """
    The period of ``descriptor``'s cadence/anchor that contains
    ``reference_date``, ignoring the period selector.

    Raises:
        InvalidDescriptorError: If the descriptor is not a validated one.
    """
    return _shifted(_checked(descriptor), _as_date(reference_date), 0)


def resolve_period(
    descriptor: RecurrenceDescriptor,
    reference_date: date | datetime,
) -> ResolvedPeriod:
    """
    Resolve the period ``descriptor`` targets relative to ``reference_date``.

    Preconditions:
        - ``descriptor`` came from ``parse_recurrence``.

    Postconditions:
        - Result is the period containing ``reference_date`` shifted by
          -1 / 0 / +1 units for previous / current / next.

    Raises:
        InvalidDescriptorError: If the descriptor is not a validated one.
    """
    descriptor = _checked(descriptor)
    return _shifted(
        descriptor,
        _as_date(reference_date),
        descriptor.period_selector.offset,
    )


def resolve_current_period(
    descriptor: RecurrenceDescriptor,
    clock: Clock,
) -> ResolvedPeriod:
    """``resolve_period`` with the reference date taken from ``clock``."""
    return resolve_period(descriptor, clock.today())


def shift_period(
    descriptor: RecurrenceDescriptor,
    period: ResolvedPeriod,
    steps: int,
) -> ResolvedPeriod:
    """
    The period ``steps`` units after ``period`` (before, if negative).

    ``period`` must be one of ``descriptor``'s own periods; its start date
    is used to locate it.
    """
    return _shifted(_checked(descriptor), period.start_date, steps)
