"""
Settings Loader (``billing_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into a frozen
``billing_config.schema.BillingSettings``.  Runtime callers go through
``billing_config.get_settings()``; the parse functions are exposed for
tests and tooling.

Architecture position
---------------------
**Config layer**.  Depends on the kernel's pure domain types
(SequenceConfig, RecurrenceDescriptor) for validation; the kernel never
imports this package.

Invariants enforced
-------------------
* Every structural problem raises ``ConfigurationError`` naming the source
  and the offending key.  Unknown keys are rejected, not ignored.
* Sequence keys use the flat company-settings shape
  (``invoice_prefix``, ``receipt_number_width``, ...).
* ``compute_checksum`` produces a deterministic SHA-256 hash of the raw
  settings for change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML, wrong types, out-of-range values -> ``ConfigurationError``.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from billing_config.schema import (
    DEFAULT_ADVANCE_NOTICE_DAYS,
    DEFAULT_CURRENCY,
    DEFAULT_INVOICE_DUE_DAYS,
    BillingSettings,
)
from billing_kernel.domain.recurrence import RecurrenceDescriptor, parse_recurrence
from billing_kernel.domain.sequence import (
    SequenceConfig,
    VoucherType,
    sequence_config_from_settings,
)
from billing_kernel.exceptions import ConfigurationError, ValidationError

TOP_LEVEL_KEYS = frozenset({
    "sequences",
    "invoice_due_days",
    "advance_notice_days",
    "currency",
    "default_recurrence",
})

SEQUENCE_FIELDS = (
    "prefix",
    "suffix",
    "number_width",
    "number_prefix_zero",
    "starting_number",
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        ConfigurationError: if the file is not valid YAML or not a mapping.
    """
    with open(path) as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ConfigurationError(str(path), f"malformed YAML: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(str(path), "top level must be a mapping")
    return data


def _split_sequence_key(key: str) -> tuple[VoucherType, str] | None:
    # Longest type first so "credit_note_prefix" is not read as a bare type
    for voucher_type in sorted(VoucherType, key=lambda vt: -len(vt.value)):
        head = f"{voucher_type.value}_"
        if key.startswith(head) and key[len(head):] in SEQUENCE_FIELDS:
            return voucher_type, key[len(head):]
    return None


def parse_sequences(
    data: Mapping[str, Any],
    source: str = "<settings>",
) -> dict[VoucherType, SequenceConfig]:
    """
    Parse the flat ``sequences`` section into one config per voucher type.

    Types without any keys get their factory defaults.
    """
    if not isinstance(data, Mapping):
        raise ConfigurationError(source, "sequences must be a mapping")
    for key in data:
        if _split_sequence_key(str(key)) is None:
            raise ConfigurationError(source, f"unknown sequence setting {key!r}")

    configs = {}
    for voucher_type in VoucherType:
        try:
            configs[voucher_type] = sequence_config_from_settings(voucher_type, data)
        except ValidationError as exc:
            raise ConfigurationError(source, f"sequence {voucher_type.value}: {exc}") from exc
    return configs


def parse_non_negative_int(value: Any, key: str, source: str = "<settings>") -> int:
    """Parse a whole number of days; booleans and negatives are rejected."""
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConfigurationError(source, f"{key} must be a non-negative integer, got {value!r}")
    return value


def parse_default_recurrence(
    data: Any,
    source: str = "<settings>",
) -> RecurrenceDescriptor | None:
    """Parse the optional default recurrence block."""
    if data is None:
        return None
    if not isinstance(data, Mapping):
        raise ConfigurationError(source, "default_recurrence must be a mapping")
    try:
        return parse_recurrence(data)
    except ValidationError as exc:
        raise ConfigurationError(source, f"default_recurrence: {exc}") from exc


def parse_settings(data: Mapping[str, Any], source: str = "<settings>") -> BillingSettings:
    """
    Parse a settings mapping into ``BillingSettings``.

    Missing keys take their defaults.

    Raises:
        ConfigurationError: On unknown keys or invalid values.
    """
    unknown = sorted(set(data) - TOP_LEVEL_KEYS)
    if unknown:
        raise ConfigurationError(source, f"unknown keys {unknown}")

    currency = data.get("currency", DEFAULT_CURRENCY)
    if not isinstance(currency, str) or not currency.strip():
        raise ConfigurationError(source, f"currency must be a non-empty string, got {currency!r}")

    return BillingSettings(
        sequences=parse_sequences(data.get("sequences") or {}, source),
        invoice_due_days=parse_non_negative_int(
            data.get("invoice_due_days", DEFAULT_INVOICE_DUE_DAYS), "invoice_due_days", source,
        ),
        advance_notice_days=parse_non_negative_int(
            data.get("advance_notice_days", DEFAULT_ADVANCE_NOTICE_DAYS),
            "advance_notice_days",
            source,
        ),
        currency=currency.strip().upper(),
        default_recurrence=parse_default_recurrence(data.get("default_recurrence"), source),
        checksum=compute_checksum(dict(data)),
    )


def load_settings(path: Path) -> BillingSettings:
    """Load and parse one settings file."""
    return parse_settings(load_yaml_file(path), source=str(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Postconditions:
        - Returns a hex-encoded SHA-256 hash string.
        - Identical ``data`` always produces identical checksums, whatever
          the key order.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
