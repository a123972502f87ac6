"""
Config -> Kernel Bridges.

Functions that turn BillingSettings into kernel collaborators.  These live
in billing_config (the producer) because the kernel must NEVER import
billing_config.

Usage:
    from billing_config import get_settings
    from billing_config.bridges import build_recurring_schedule, seed_sequences

    settings = get_settings()
    with session_scope() as session:
        seed_sequences(settings, SequenceService(session))
    schedule = build_recurring_schedule(settings, work_row)
    due = schedule.periods_due(work_row["start_date"], today)
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from billing_config.schema import BillingSettings
from billing_kernel.domain.clock import Clock
from billing_kernel.domain.recurrence import parse_recurrence
from billing_kernel.domain.schedule import DueDateRule, RecurringSchedule
from billing_kernel.exceptions import ConfigurationError
from billing_kernel.services.invoice_drafting_service import InvoiceDraftingService
from billing_kernel.services.sequence_service import (
    InMemorySequenceStore,
    SequenceService,
    SequenceStore,
)


def build_invoice_drafting_service(
    settings: BillingSettings,
    sequence_store: SequenceStore,
    clock: Clock | None = None,
) -> InvoiceDraftingService:
    """InvoiceDraftingService using the settings' payment term and currency."""
    return InvoiceDraftingService(
        sequence_store,
        clock=clock,
        due_days=settings.invoice_due_days,
        currency=settings.currency,
    )


def build_in_memory_store(settings: BillingSettings) -> InMemorySequenceStore:
    """Process-local store pre-loaded with every configured sequence."""
    return InMemorySequenceStore(dict(settings.sequences))


def seed_sequences(settings: BillingSettings, service: SequenceService) -> None:
    """Register every voucher type missing from the database."""
    service.initialize_sequences(settings.sequences)


def build_recurring_schedule(
    settings: BillingSettings,
    recurrence_fields: Mapping[str, Any] | None = None,
    due_rule: DueDateRule | None = None,
) -> RecurringSchedule:
    """
    RecurringSchedule using the settings' advance notice.

    ``recurrence_fields`` (a work or service row) wins over the settings'
    default recurrence.

    Raises:
        ValidationError: If ``recurrence_fields`` do not parse.
        ConfigurationError: If neither a recurrence nor a default is given.
    """
    if recurrence_fields is not None:
        descriptor = parse_recurrence(recurrence_fields)
    elif settings.default_recurrence is not None:
        descriptor = settings.default_recurrence
    else:
        raise ConfigurationError("<settings>", "no recurrence given and no default_recurrence configured")
    return RecurringSchedule(
        descriptor=descriptor,
        advance_notice_days=settings.advance_notice_days,
        due_rule=due_rule or DueDateRule(),
    )
