"""
BillingSettings schema.

Company-level billing settings: how voucher numbers are formatted, the
invoice payment term, advance notice for recurring work, the working
currency and the default recurrence for new recurring services.

YAML files are parsed into these types by the loader.  Every type is a
frozen dataclass; a loaded BillingSettings never changes.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from billing_kernel.domain.recurrence import RecurrenceDescriptor
from billing_kernel.domain.sequence import (
    SequenceConfig,
    VoucherType,
    default_sequence_config,
)

DEFAULT_INVOICE_DUE_DAYS = 30
DEFAULT_ADVANCE_NOTICE_DAYS = 3
DEFAULT_CURRENCY = "INR"


def _default_sequences() -> dict[VoucherType, SequenceConfig]:
    return {vt: default_sequence_config(vt) for vt in VoucherType}


@dataclass(frozen=True)
class BillingSettings:
    """Loaded company settings."""

    sequences: dict[VoucherType, SequenceConfig] = field(default_factory=_default_sequences)
    invoice_due_days: int = DEFAULT_INVOICE_DUE_DAYS
    advance_notice_days: int = DEFAULT_ADVANCE_NOTICE_DAYS
    currency: str = DEFAULT_CURRENCY
    default_recurrence: RecurrenceDescriptor | None = None
    checksum: str = ""

    def sequence_config(self, voucher_type: VoucherType | str) -> SequenceConfig:
        """Configured sequence for ``voucher_type``, else the factory default."""
        voucher_type = VoucherType(voucher_type)
        return self.sequences.get(voucher_type) or default_sequence_config(voucher_type)
