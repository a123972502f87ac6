"""
Pure recurring-work schedule functions.

Contract:
    Everything here is PURE -- no I/O, no side effects, no clock reads.
    Callers pass ``as_of`` / date bounds explicitly.

Covers what a recurring work item needs beyond a single resolved period:
    - the series of periods between two dates (to back-fill missing periods),
    - a display label per period ("March 2024", "Q2 2024", "FY 2024-25"),
    - the due date within/after a period and the date work should be
      generated ahead of it,
    - overdue checks.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum

from billing_kernel.domain.periods import ResolvedPeriod, containing_period, shift_period
from billing_kernel.domain.recurrence import Cadence, RecurrenceDescriptor
from billing_kernel.exceptions import CallerError

MAX_PERIODS = 1000
DEFAULT_ADVANCE_NOTICE_DAYS = 3

_BLOCK_PREFIX = {Cadence.QUARTERLY: ("Q", 3), Cadence.HALF_YEARLY: ("H", 6)}

# Labels stay English whatever the process locale
_MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June", "July",
    "August", "September", "October", "November", "December",
)


# =============================================================================
# Period series
# =============================================================================


def iter_periods(
    descriptor: RecurrenceDescriptor,
    from_date: date,
    to_date: date,
    limit: int = MAX_PERIODS,
) -> Iterator[ResolvedPeriod]:
    """Yield consecutive periods from the one containing ``from_date``
    through the one containing ``to_date``.

    The period selector is ignored: this walks the cadence's own grid.
    Iteration stops after ``limit`` periods (bounded like the cron scan).

    Raises:
        InvalidDescriptorError: If the descriptor is not a validated one.
    """
    if from_date > to_date:
        return
    period = containing_period(descriptor, from_date)
    for _ in range(limit):
        yield period
        if period.end_date >= to_date:
            return
        period = shift_period(descriptor, period, 1)


# =============================================================================
# Labels
# =============================================================================


def _day_month_year(day: date) -> str:
    return f"{day.day} {_MONTH_NAMES[day.month - 1][:3]} {day.year}"


def period_label(descriptor: RecurrenceDescriptor, period: ResolvedPeriod) -> str:
    """Human-readable name for one of ``descriptor``'s periods."""
    start = period.start_date
    cadence = descriptor.cadence

    if cadence is Cadence.DAILY:
        return start.isoformat()

    if cadence is Cadence.WEEKLY:
        return f"Week of {start.isoformat()}"

    if cadence is Cadence.MONTHLY:
        if start.day == 1 and descriptor.anchor == 1:
            return f"{_MONTH_NAMES[start.month - 1]} {start.year}"
        end = period.end_date
        return f"{_day_month_year(start)} - {_day_month_year(end)}"

    if cadence in _BLOCK_PREFIX:
        prefix, span = _BLOCK_PREFIX[cadence]
        ordinal = ((start.month - descriptor.anchor) % 12) // span + 1
        return f"{prefix}{ordinal} {start.year}"

    # Yearly
    if descriptor.anchor == 1:
        return f"Year {start.year}"
    return f"FY {start.year}-{(start.year + 1) % 100:02d}"


# =============================================================================
# Due dates
# =============================================================================


class DueAnchor(str, Enum):
    """Which end of the period a due-date offset counts from."""

    START = "start"
    END = "end"


@dataclass(frozen=True)
class DueDateRule:
    """Due date = chosen period boundary + ``offset_days``."""

    relative_to: DueAnchor = DueAnchor.END
    offset_days: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "relative_to", DueAnchor(self.relative_to))
        if self.offset_days < 0:
            raise CallerError("offset_days", self.offset_days)


def due_date_for(period: ResolvedPeriod, rule: DueDateRule | None = None) -> date:
    """Due date of the work for ``period`` (default: the period's last day)."""
    rule = rule or DueDateRule()
    base = period.start_date if rule.relative_to is DueAnchor.START else period.end_date
    return base + timedelta(days=rule.offset_days)


def generation_date_for(
    due_date: date,
    advance_notice_days: int = DEFAULT_ADVANCE_NOTICE_DAYS,
) -> date:
    """Date on which work due on ``due_date`` should be created."""
    if advance_notice_days < 0:
        raise CallerError("advance_notice_days", advance_notice_days)
    return due_date - timedelta(days=advance_notice_days)


def should_generate(
    due_date: date,
    as_of: date,
    advance_notice_days: int = DEFAULT_ADVANCE_NOTICE_DAYS,
) -> bool:
    """True once ``as_of`` has reached the generation date for ``due_date``."""
    return as_of >= generation_date_for(due_date, advance_notice_days)


def is_overdue(due_date: date, as_of: date) -> bool:
    """Work is overdue once its due date is strictly before ``as_of``."""
    return due_date < as_of


# =============================================================================
# Schedule
# =============================================================================


@dataclass(frozen=True)
class RecurringSchedule:
    """
    A recurrence plus the company terms that decide when its work is due
    and when it is created.

    Build directly, or from company settings through
    ``billing_config.bridges.build_recurring_schedule``.
    """

    descriptor: RecurrenceDescriptor
    advance_notice_days: int = DEFAULT_ADVANCE_NOTICE_DAYS
    due_rule: DueDateRule = DueDateRule()

    def __post_init__(self) -> None:
        if self.advance_notice_days < 0:
            raise CallerError("advance_notice_days", self.advance_notice_days)

    def due_date(self, period: ResolvedPeriod) -> date:
        return due_date_for(period, self.due_rule)

    def generation_date(self, period: ResolvedPeriod) -> date:
        return generation_date_for(self.due_date(period), self.advance_notice_days)

    def label(self, period: ResolvedPeriod) -> str:
        return period_label(self.descriptor, period)

    def periods_due(self, from_date: date, as_of: date) -> list[ResolvedPeriod]:
        """
        Periods from the one containing ``from_date`` whose work should
        exist by ``as_of``: their generation date has been reached.
        """
        horizon = as_of + timedelta(days=self.advance_notice_days)
        return [
            period
            for period in iter_periods(self.descriptor, from_date, horizon)
            if should_generate(self.due_date(period), as_of, self.advance_notice_days)
        ]
