"""Services for the billing kernel (sequence issuance and invoice drafting)."""

from billing_kernel.services.invoice_drafting_service import InvoiceDraftingService
from billing_kernel.services.sequence_service import (
    InMemorySequenceStore,
    SequenceConfigRow,
    SequenceService,
    SequenceStore,
)

__all__ = [
    "InMemorySequenceStore",
    "InvoiceDraftingService",
    "SequenceConfigRow",
    "SequenceService",
    "SequenceStore",
]
