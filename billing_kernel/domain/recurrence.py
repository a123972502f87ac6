"""
Recurrence -- Validated descriptor for how often a unit of work recurs.

Responsibility:
    Parses the raw recurrence fields a work or service form submits into a
    single tagged value object: cadence, which period relative to the
    reference date the work targets, and the cadence-specific anchor that
    fixes where periods begin.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Consumed by the period resolver and the recurring work schedule.

Invariants enforced:
    - Anchor is inside its cadence's domain (see ANCHOR_DOMAINS).
    - An omitted anchor takes the cadence default; an invalid anchor is
      rejected, never defaulted.
    - Daily recurrence carries no anchor.

Failure modes:
    - ValidationError for an unknown cadence or period selector, or an
      anchor outside its domain.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from billing_kernel.exceptions import ValidationError


class Cadence(str, Enum):
    """Recurrence frequency category."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    HALF_YEARLY = "half-yearly"
    YEARLY = "yearly"


class PeriodSelector(str, Enum):
    """Which period, relative to the reference date, a work item targets."""

    PREVIOUS_PERIOD = "previous_period"  # Lagging: work on the closed period
    CURRENT_PERIOD = "current_period"
    NEXT_PERIOD = "next_period"  # Leading: work ahead of the period

    @property
    def offset(self) -> int:
        return _SELECTOR_OFFSETS[self]


_SELECTOR_OFFSETS = {
    PeriodSelector.PREVIOUS_PERIOD: -1,
    PeriodSelector.CURRENT_PERIOD: 0,
    PeriodSelector.NEXT_PERIOD: 1,
}


class Weekday(int, Enum):
    """Day of week, numbered like ``date.weekday()`` (Monday == 0)."""

    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6


Anchor = Union[Weekday, int, None]

# Allowed anchor values per cadence (None: no anchor allowed)
ANCHOR_DOMAINS: dict[Cadence, frozenset[Any] | None] = {
    Cadence.DAILY: None,
    Cadence.WEEKLY: frozenset(Weekday),
    Cadence.MONTHLY: frozenset(range(1, 32)),
    Cadence.QUARTERLY: frozenset(range(1, 13)),
    Cadence.HALF_YEARLY: frozenset({1, 4, 7}),
    Cadence.YEARLY: frozenset({1, 4, 7, 10}),
}

DEFAULT_ANCHORS: dict[Cadence, Anchor] = {
    Cadence.DAILY: None,
    Cadence.WEEKLY: Weekday.MONDAY,
    Cadence.MONTHLY: 1,
    Cadence.QUARTERLY: 1,
    Cadence.HALF_YEARLY: 1,
    Cadence.YEARLY: 4,  # April financial year
}

DEFAULT_PERIOD_SELECTOR = PeriodSelector.PREVIOUS_PERIOD

# Field spellings used by the work and service forms
_CADENCE_KEYS = ("cadence", "recurrence_pattern", "recurrence_type")
_SELECTOR_KEYS = ("period_selector", "period_type", "period_calculation_type")
_ANCHOR_KEY = "anchor"

# Form fields carrying the anchor, per cadence; fields belonging to other
# cadences are ignored.
_CADENCE_ANCHOR_KEYS: dict[Cadence, tuple[str, ...]] = {
    Cadence.DAILY: (),
    Cadence.WEEKLY: ("weekly_start_day",),
    Cadence.MONTHLY: ("monthly_start_day",),
    Cadence.QUARTERLY: ("financial_year_start_month", "start_month"),
    Cadence.HALF_YEARLY: ("financial_year_start_month", "start_month"),
    Cadence.YEARLY: ("financial_year_start_month", "start_month"),
}


@dataclass(frozen=True, slots=True)
class RecurrenceDescriptor:
    """
    How often a unit of work recurs and which period it targets.

    Build through ``parse_recurrence``; the period resolver re-checks every
    field and refuses descriptors that would not have passed it.
    """

    cadence: Cadence
    period_selector: PeriodSelector
    anchor: Anchor = None

    def to_fields(self) -> dict[str, Any]:
        """Canonical mapping for persistence; round-trips through parse_recurrence."""
        if isinstance(self.anchor, Weekday):
            anchor: Any = self.anchor.name.lower()
        else:
            anchor = self.anchor
        return {
            "cadence": self.cadence.value,
            "period_selector": self.period_selector.value,
            "anchor": anchor,
        }


def _first_present(fields: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = fields.get(key)
        if value is not None and not (isinstance(value, str) and not value.strip()):
            return value
    return None


def _parse_cadence(raw: Any) -> Cadence:
    if isinstance(raw, Cadence):
        return raw
    if raw is None:
        raise ValidationError("cadence", raw, "cadence is required")
    text = str(raw).strip().lower().replace("_", "-")
    try:
        return Cadence(text)
    except ValueError:
        raise ValidationError(
            "cadence", raw, f"must be one of {[c.value for c in Cadence]}"
        ) from None


def _parse_selector(raw: Any) -> PeriodSelector:
    if raw is None:
        return DEFAULT_PERIOD_SELECTOR
    if isinstance(raw, PeriodSelector):
        return raw
    text = str(raw).strip().lower().replace("-", "_")
    try:
        return PeriodSelector(text)
    except ValueError:
        raise ValidationError(
            "period_selector", raw,
            f"must be one of {[s.value for s in PeriodSelector]}",
        ) from None


def _parse_weekday(raw: Any) -> Weekday:
    if isinstance(raw, Weekday):
        return raw
    if isinstance(raw, str):
        text = raw.strip().lower()
        for day in Weekday:
            name = day.name.lower()
            if text == name or text == name[:3]:
                return day
    raise ValidationError("anchor", raw, "weekly anchor must be a weekday name")


def _parse_int(raw: Any) -> int:
    # bool is an int subclass; True must not read as January
    if isinstance(raw, bool):
        raise ValidationError("anchor", raw, "must be an integer")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str) and raw.strip().isdecimal():
        return int(raw.strip())
    raise ValidationError("anchor", raw, "must be an integer")


def _parse_anchor(cadence: Cadence, raw: Any) -> Anchor:
    if raw is None:
        return DEFAULT_ANCHORS[cadence]

    domain = ANCHOR_DOMAINS[cadence]
    if domain is None:
        raise ValidationError("anchor", raw, f"{cadence.value} recurrence takes no anchor")

    if cadence is Cadence.WEEKLY:
        return _parse_weekday(raw)

    value = _parse_int(raw)
    if value not in domain:
        raise ValidationError(
            "anchor", raw,
            f"{cadence.value} anchor must be one of {sorted(domain)}",
        )
    return value


def parse_recurrence(fields: Mapping[str, Any]) -> RecurrenceDescriptor:
    """
    Parse raw recurrence fields into a validated descriptor.

    Preconditions:
        - ``fields`` carries a cadence under ``cadence`` (or the form
          spellings ``recurrence_pattern`` / ``recurrence_type``).
        - The anchor comes from ``anchor`` if present, else from the form
          field of the parsed cadence only (``weekly_start_day``,
          ``monthly_start_day`` or ``financial_year_start_month``).

    Postconditions:
        - Returned descriptor has a non-None anchor for every cadence
          except daily.

    Raises:
        ValidationError: If cadence, selector or anchor is out of domain.
    """
    cadence = _parse_cadence(_first_present(fields, _CADENCE_KEYS))
    selector = _parse_selector(_first_present(fields, _SELECTOR_KEYS))
    raw_anchor = _first_present(fields, (_ANCHOR_KEY,))
    if raw_anchor is None:
        raw_anchor = _first_present(fields, _CADENCE_ANCHOR_KEYS[cadence])
    anchor = _parse_anchor(cadence, raw_anchor)
    return RecurrenceDescriptor(cadence=cadence, period_selector=selector, anchor=anchor)


def descriptor_problem(descriptor: Any) -> str | None:
    """
    Return why ``descriptor`` could not have come out of ``parse_recurrence``,
    or None if it could.
    """
    if not isinstance(descriptor, RecurrenceDescriptor):
        return f"expected RecurrenceDescriptor, got {type(descriptor).__name__}"
    if not isinstance(descriptor.cadence, Cadence):
        return f"unknown cadence {descriptor.cadence!r}"
    if not isinstance(descriptor.period_selector, PeriodSelector):
        return f"unknown period selector {descriptor.period_selector!r}"

    domain = ANCHOR_DOMAINS[descriptor.cadence]
    anchor = descriptor.anchor
    if domain is None:
        return None if anchor is None else "daily recurrence takes no anchor"
    if descriptor.cadence is Cadence.WEEKLY:
        return None if isinstance(anchor, Weekday) else f"weekly anchor {anchor!r} is not a Weekday"
    if isinstance(anchor, bool) or not isinstance(anchor, int) or anchor not in domain:
        return f"{descriptor.cadence.value} anchor {anchor!r} outside {sorted(domain)}"
    return None
