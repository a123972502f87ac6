"""
Sequence -- Voucher and invoice number formatting.

Responsibility:
    Formats human-readable identifiers (invoice numbers, receipt numbers,
    journal voucher numbers, ...) from a SequenceConfig and a counter value,
    and computes the config that follows an issuance.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Persistence of the
    advanced config, and the atomicity of read-increment-write, belong to a
    SequenceStore (see billing_kernel.services.sequence_service).

Invariants enforced:
    - 1 <= width <= 12 and next_number >= 1.
    - Zero padding never truncates: a number wider than ``width`` is emitted
      in full.
    - ``next_id`` advances next_number by exactly one.

Failure modes:
    - SequenceConfigError on construction with out-of-range fields.
    - CallerError when formatting a negative number.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from billing_kernel.exceptions import CallerError, SequenceConfigError

MIN_WIDTH = 1
MAX_WIDTH = 12


class VoucherType(str, Enum):
    """Kinds of documents that draw numbers from their own sequence."""

    INVOICE = "invoice"
    PAYMENT = "payment"
    RECEIPT = "receipt"
    JOURNAL = "journal"
    CONTRA = "contra"
    CREDIT_NOTE = "credit_note"
    DEBIT_NOTE = "debit_note"


DEFAULT_PREFIXES: dict[VoucherType, str] = {
    VoucherType.INVOICE: "INV",
    VoucherType.PAYMENT: "PAY",
    VoucherType.RECEIPT: "RCT",
    VoucherType.JOURNAL: "JV",
    VoucherType.CONTRA: "CNT",
    VoucherType.CREDIT_NOTE: "CN",
    VoucherType.DEBIT_NOTE: "DN",
}

DEFAULT_WIDTH = 6


@dataclass(frozen=True, slots=True)
class SequenceConfig:
    """Formatting rules plus the next counter value for one sequence."""

    prefix: str = ""
    suffix: str = ""
    width: int = DEFAULT_WIDTH
    zero_pad: bool = True
    next_number: int = 1

    def __post_init__(self) -> None:
        if not isinstance(self.prefix, str):
            raise SequenceConfigError("prefix", self.prefix, "must be a string")
        if not isinstance(self.suffix, str):
            raise SequenceConfigError("suffix", self.suffix, "must be a string")
        if (
            isinstance(self.width, bool)
            or not isinstance(self.width, int)
            or not MIN_WIDTH <= self.width <= MAX_WIDTH
        ):
            raise SequenceConfigError(
                "width", self.width, f"must be an integer in {MIN_WIDTH}..{MAX_WIDTH}"
            )
        if (
            isinstance(self.next_number, bool)
            or not isinstance(self.next_number, int)
            or self.next_number < 1
        ):
            raise SequenceConfigError("next_number", self.next_number, "must be an integer >= 1")


@dataclass(frozen=True, slots=True)
class IssuedId:
    """An identifier together with the config to persist after issuing it."""

    id: str
    number: int
    updated_config: SequenceConfig


def format_id(config: SequenceConfig, number: int) -> str:
    """
    Format ``number`` with ``config``'s prefix, padding and suffix.

    Raises:
        CallerError: If ``number`` is negative.
    """
    if number < 0:
        raise CallerError("number", number)
    digits = str(number).zfill(config.width) if config.zero_pad else str(number)
    return f"{config.prefix}{digits}{config.suffix}"


def next_id(config: SequenceConfig) -> IssuedId:
    """Format ``config.next_number`` and return the advanced config."""
    number = config.next_number
    return IssuedId(
        id=format_id(config, number),
        number=number,
        updated_config=replace(config, next_number=number + 1),
    )


def preview_id(config: SequenceConfig, count: int = 1) -> str:
    """The id the ``count``-th issuance from ``config`` would produce."""
    if count < 1:
        raise CallerError("count", count, "must be at least 1")
    return format_id(config, config.next_number + count - 1)


def default_sequence_config(voucher_type: VoucherType) -> SequenceConfig:
    """Factory defaults: type prefix, six zero-padded digits, starting at 1."""
    return SequenceConfig(prefix=DEFAULT_PREFIXES[VoucherType(voucher_type)])


def _setting_int(settings: Mapping[str, Any], key: str, default: int) -> int:
    value = settings.get(key)
    if not value:
        return default
    if isinstance(value, str) and value.strip().isdecimal():
        return int(value.strip())
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    raise SequenceConfigError(key, value, "must be an integer")


def sequence_config_from_settings(
    voucher_type: VoucherType,
    settings: Mapping[str, Any],
) -> SequenceConfig:
    """
    Build a config from flat company settings.

    Reads ``<type>_prefix``, ``<type>_suffix``, ``<type>_number_width``,
    ``<type>_number_prefix_zero`` and ``<type>_starting_number``.  Empty or
    missing values fall back to the factory defaults; zero padding stays on
    unless the setting is exactly ``False``.
    """
    voucher_type = VoucherType(voucher_type)
    key = voucher_type.value
    return SequenceConfig(
        prefix=settings.get(f"{key}_prefix") or DEFAULT_PREFIXES[voucher_type],
        suffix=settings.get(f"{key}_suffix") or "",
        width=_setting_int(settings, f"{key}_number_width", DEFAULT_WIDTH),
        zero_pad=settings.get(f"{key}_number_prefix_zero") is not False,
        next_number=_setting_int(settings, f"{key}_starting_number", 1),
    )
