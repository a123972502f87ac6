"""
Invoice Drafting Service - Draft invoices for completed work.

Ties together:
- SequenceStore: issues the invoice number
- Clock: supplies the invoice date

Built from company settings by billing_config.bridges; the kernel never
reads configuration itself.

The draft itself is built by the pure draft_invoice_for_work().  Persisting
the draft and flipping the work's billing status belong to the caller, in
the same transaction as the number issuance.
"""

from uuid import uuid4 as _uuid4

from billing_kernel.domain.clock import Clock, SystemClock
from billing_kernel.domain.invoice_draft import (
    DEFAULT_DUE_DAYS,
    CompletedWork,
    InvoiceDraft,
    draft_invoice_for_work,
    ensure_billable,
)
from billing_kernel.domain.sequence import VoucherType
from billing_kernel.exceptions import CallerError
from billing_kernel.logging_config import LogContext, get_logger
from billing_kernel.services.sequence_service import SequenceStore

logger = get_logger("services.invoice_drafting")


class InvoiceDraftingService:
    """
    Drafts the invoice for one completed work item.

    The work is checked before a number is issued, so an already billed
    work item never consumes an invoice number.
    """

    def __init__(
        self,
        sequence_store: SequenceStore,
        clock: Clock | None = None,
        due_days: int = DEFAULT_DUE_DAYS,
        currency: str | None = None,
    ):
        if due_days < 0:
            raise CallerError("due_days", due_days)
        self._sequences = sequence_store
        self._clock = clock or SystemClock()
        self._due_days = due_days
        self._currency = currency

    def draft_for_work(self, work: CompletedWork, actor_id: str | None = None) -> InvoiceDraft:
        """
        Issue an invoice number and draft the invoice for ``work``.

        Raises:
            AlreadyBilledError: If the work was billed before.
            SequenceNotFoundError: If the invoice sequence is not registered.
        """
        with LogContext.bind(
            correlation_id=str(_uuid4()),
            actor_id=actor_id,
            work_id=work.work_id,
        ):
            invoice_date = self._clock.today()
            ensure_billable(work)

            issued = self._sequences.issue(VoucherType.INVOICE)
            draft = draft_invoice_for_work(
                work,
                invoice_number=issued.id,
                invoice_date=invoice_date,
                due_days=self._due_days,
            )

            with LogContext.bind(invoice_id=draft.invoice_number):
                logger.info(
                    "invoice_drafted",
                    extra={
                        "customer_id": work.customer_id,
                        "invoice_date": draft.invoice_date,
                        "due_date": draft.due_date,
                        "grand_total": draft.totals.grand_total,
                        "currency": self._currency,
                    },
                )
            return draft
