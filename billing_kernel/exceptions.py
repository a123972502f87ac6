"""
Typed Exception Hierarchy for the Billing Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the kernel (forms, API handlers, batch jobs) must be able to tell
a malformed recurrence setting from a negative quantity or a lost race on an
invoice number without parsing message strings:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example - WRONG way to handle errors:
    try:
        descriptor = parse_recurrence(form)
    except Exception as e:
        if "anchor" in str(e):  # FRAGILE - message might change
            highlight_anchor_field()

Example - RIGHT way (what this module enables):
    try:
        descriptor = parse_recurrence(form)
    except ValidationError as e:
        highlight_field(e.field)                     # Structured data
        api_response(code=e.code, reason=e.reason)   # Machine-readable

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from BillingKernelError:

    BillingKernelError (base)
    |
    +-- ValidationError
    |   +-- SequenceConfigError
    |
    +-- InvalidDescriptorError
    |
    +-- CallerError
    |
    +-- SequenceError
    |   +-- SequenceNotFoundError
    |   +-- SequenceAlreadyExistsError
    |   +-- SequenceConflictError
    |
    +-- InvoiceError
    |   +-- AlreadyBilledError
    |
    +-- ConfigurationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | VALIDATION_ERROR            | Cadence/selector/anchor out of domain
                | SEQUENCE_CONFIG_INVALID     | Width/next_number/prefix out of domain
----------------|-----------------------------|-----------------------------------------
Resolver        | INVALID_DESCRIPTOR          | Descriptor never passed validation
----------------|-----------------------------|-----------------------------------------
Arithmetic      | CALLER_ERROR                | Negative quantity/rate/tax/discount
----------------|-----------------------------|-----------------------------------------
Sequence        | SEQUENCE_NOT_FOUND          | No sequence registered under key
                | SEQUENCE_ALREADY_EXISTS     | Duplicate registration
                | SEQUENCE_CONFLICT           | Concurrent issuance won every attempt
----------------|-----------------------------|-----------------------------------------
Invoice         | ALREADY_BILLED              | Work already carries an invoice
----------------|-----------------------------|-----------------------------------------
Configuration   | CONFIGURATION_ERROR         | Settings file is malformed

===============================================================================
HANDLING PATTERNS
===============================================================================

1. VALIDATION FAILURES ARE CALLER BUGS (do not retry):

    except ValidationError as e:
        return {"error": e.code, "field": e.field, "reason": e.reason}

2. SEQUENCE CONFLICTS ARE TRANSIENT (retry the whole unit of work):

    except SequenceConflictError as e:
        session.rollback()
        schedule_retry(e.sequence_key)
"""

from typing import Any


class BillingKernelError(Exception):
    """
    Base exception for all billing kernel errors.

    All subclasses must have a `code` class attribute
    for machine-readable error identification.
    """

    code: str = "BILLING_KERNEL_ERROR"


# Validation exceptions


class ValidationError(BillingKernelError):
    """A raw field is outside the domain allowed for it."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, value: Any, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field} {value!r}: {reason}")


class SequenceConfigError(ValidationError):
    """Sequence configuration field is out of range."""

    code: str = "SEQUENCE_CONFIG_INVALID"


class InvalidDescriptorError(BillingKernelError):
    """
    Period resolver was handed a descriptor that did not come out of
    ``parse_recurrence``.
    """

    code: str = "INVALID_DESCRIPTOR"

    def __init__(self, descriptor: Any, reason: str):
        self.descriptor = descriptor
        self.reason = reason
        super().__init__(f"Invalid recurrence descriptor {descriptor!r}: {reason}")


class CallerError(BillingKernelError):
    """Arithmetic input outside the documented domain (e.g. negative quantity)."""

    code: str = "CALLER_ERROR"

    def __init__(self, field: str, value: Any, requirement: str = "must not be negative"):
        self.field = field
        self.value = value
        super().__init__(f"{field} {requirement}, got {value}")


# Sequence exceptions


class SequenceError(BillingKernelError):
    """Base exception for sequence issuance errors."""

    code: str = "SEQUENCE_ERROR"


class SequenceNotFoundError(SequenceError):
    """No sequence is registered under the given key."""

    code: str = "SEQUENCE_NOT_FOUND"

    def __init__(self, sequence_key: str):
        self.sequence_key = sequence_key
        super().__init__(f"Sequence not found: {sequence_key}")


class SequenceAlreadyExistsError(SequenceError):
    """A sequence is already registered under the given key."""

    code: str = "SEQUENCE_ALREADY_EXISTS"

    def __init__(self, sequence_key: str):
        self.sequence_key = sequence_key
        super().__init__(f"Sequence already exists: {sequence_key}")


class SequenceConflictError(SequenceError):
    """
    Concurrent writers advanced the sequence on every attempt.

    Transient: the caller may roll back and retry the unit of work.
    """

    code: str = "SEQUENCE_CONFLICT"

    def __init__(self, sequence_key: str, attempts: int):
        self.sequence_key = sequence_key
        self.attempts = attempts
        super().__init__(
            f"Sequence {sequence_key} changed concurrently on all {attempts} attempts"
        )


# Invoice exceptions


class InvoiceError(BillingKernelError):
    """Base exception for invoice drafting errors."""

    code: str = "INVOICE_ERROR"


class AlreadyBilledError(InvoiceError):
    """Work has already been billed."""

    code: str = "ALREADY_BILLED"

    def __init__(self, work_id: str):
        self.work_id = work_id
        super().__init__(f"Work {work_id} is already billed")


# Configuration exceptions


class ConfigurationError(BillingKernelError):
    """Settings content is structurally invalid."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Invalid configuration in {source}: {reason}")
