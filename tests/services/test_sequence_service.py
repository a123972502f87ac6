"""
Tests for SequenceService and InMemorySequenceStore.

Verifies:
- Consecutive identifiers per key, persisted next_number
- Registration, lookup and seeding of voucher types
- Conditional-update conflict detection with bounded retry
- Rollback returns the issued number
"""

import pytest
from sqlalchemy import select

from billing_kernel.db.engine import get_session
from billing_kernel.domain.sequence import SequenceConfig, VoucherType, default_sequence_config
from billing_kernel.exceptions import (
    SequenceAlreadyExistsError,
    SequenceConflictError,
    SequenceNotFoundError,
)
from billing_kernel.services.sequence_service import (
    InMemorySequenceStore,
    SequenceConfigRow,
    SequenceService,
)


class _StaleReadService(SequenceService):
    """Observes a fixed next_number, as a writer that lost a race would."""

    def __init__(self, session, stale_reads: int | None = None, **kwargs):
        super().__init__(session, **kwargs)
        self._stale_reads = stale_reads
        self.reads = 0

    def _observed_config(self, key):
        self.reads += 1
        config = super()._observed_config(key)
        if self._stale_reads is None or self.reads <= self._stale_reads:
            return SequenceConfig(
                prefix=config.prefix,
                suffix=config.suffix,
                width=config.width,
                zero_pad=config.zero_pad,
                next_number=1,
            )
        return config


# =============================================================================
# SequenceService
# =============================================================================


class TestIssue:
    def test_consecutive_ids(self, sequence_service):
        ids = [sequence_service.issue(VoucherType.INVOICE).id for _ in range(3)]
        assert ids == ["INV000001", "INV000002", "INV000003"]

    def test_next_number_persisted(self, session, sequence_service):
        sequence_service.issue("receipt")
        sequence_service.issue("receipt")
        row = session.execute(
            select(SequenceConfigRow).where(SequenceConfigRow.key == "receipt")
        ).scalar_one()
        session.refresh(row)
        assert row.next_number == 3

    def test_keys_are_independent(self, sequence_service):
        sequence_service.issue(VoucherType.INVOICE)
        assert sequence_service.issue(VoucherType.PAYMENT).id == "PAY000001"

    def test_custom_key(self, session):
        service = SequenceService(session)
        service.register("invoice:branch-2", SequenceConfig(prefix="B2/", width=4, next_number=50))
        assert service.issue("invoice:branch-2").id == "B2/0050"
        assert service.get_config("invoice:branch-2").next_number == 51

    def test_unknown_key(self, session):
        with pytest.raises(SequenceNotFoundError) as exc_info:
            SequenceService(session).issue("nope")
        assert exc_info.value.sequence_key == "nope"

    def test_issue_logged(self, sequence_service, captured_logs):
        sequence_service.issue(VoucherType.JOURNAL)
        issued = [r for r in captured_logs() if r["message"] == "sequence_issued"]
        assert issued[-1]["sequence_key"] == "journal"
        assert issued[-1]["issued_id"] == "JV000001"


class TestConflicts:
    def test_conflict_raised_after_max_attempts(self, session, sequence_service, captured_logs):
        sequence_service.issue(VoucherType.INVOICE)

        stale = _StaleReadService(session, max_attempts=3)
        with pytest.raises(SequenceConflictError) as exc_info:
            stale.issue(VoucherType.INVOICE)

        assert exc_info.value.attempts == 3
        assert stale.reads == 3
        retries = [r for r in captured_logs() if r["message"] == "sequence_conflict_retry"]
        assert [r["attempt"] for r in retries] == [1, 2, 3]

    def test_conflict_does_not_move_counter(self, session, sequence_service):
        sequence_service.issue(VoucherType.INVOICE)
        with pytest.raises(SequenceConflictError):
            _StaleReadService(session).issue(VoucherType.INVOICE)
        assert sequence_service.get_config(VoucherType.INVOICE).next_number == 2

    def test_retry_recovers_after_one_lost_race(self, session, sequence_service, captured_logs):
        sequence_service.issue(VoucherType.INVOICE)

        recovering = _StaleReadService(session, stale_reads=1)
        issued = recovering.issue(VoucherType.INVOICE)

        assert issued.id == "INV000002"
        assert recovering.reads == 2
        retries = [r for r in captured_logs() if r["message"] == "sequence_conflict_retry"]
        assert len(retries) == 1


class TestRegistration:
    def test_duplicate_rejected(self, sequence_service):
        with pytest.raises(SequenceAlreadyExistsError):
            sequence_service.register(VoucherType.INVOICE, default_sequence_config(VoucherType.INVOICE))

    def test_initialize_seeds_all_voucher_types(self, session):
        SequenceService(session).initialize_sequences()
        keys = set(session.execute(select(SequenceConfigRow.key)).scalars())
        assert keys == {vt.value for vt in VoucherType}

    def test_initialize_uses_supplied_configs(self, session):
        configs = {VoucherType.INVOICE: SequenceConfig(prefix="ACME-", width=5, next_number=900)}
        service = SequenceService(session)
        service.initialize_sequences(configs)
        assert service.issue(VoucherType.INVOICE).id == "ACME-00900"
        assert service.issue(VoucherType.RECEIPT).id == "RCT000001"

    def test_initialize_leaves_existing_rows(self, sequence_service):
        sequence_service.issue(VoucherType.INVOICE)
        sequence_service.initialize_sequences({VoucherType.INVOICE: SequenceConfig(prefix="X")})
        assert sequence_service.get_config(VoucherType.INVOICE) == SequenceConfig(prefix="INV", next_number=2)

    def test_reset(self, sequence_service):
        sequence_service.issue(VoucherType.CONTRA)
        sequence_service.reset(VoucherType.CONTRA, 10)
        assert sequence_service.issue(VoucherType.CONTRA).id == "CNT000010"


class TestTransactionBoundary:
    def test_rollback_returns_the_number(self, db_engine):
        session = get_session()
        try:
            SequenceService(session).initialize_sequences()
            session.commit()

            assert SequenceService(session).issue(VoucherType.INVOICE).id == "INV000001"
            session.rollback()

            assert SequenceService(session).issue(VoucherType.INVOICE).id == "INV000001"
            session.commit()
            assert SequenceService(session).issue(VoucherType.INVOICE).id == "INV000002"
        finally:
            session.rollback()
            session.close()


# =============================================================================
# InMemorySequenceStore
# =============================================================================


class TestInMemorySequenceStore:
    def test_consecutive_ids(self, memory_store):
        assert [memory_store.issue("invoice").id for _ in range(2)] == ["INV000001", "INV000002"]
        assert memory_store.get_config(VoucherType.INVOICE).next_number == 3

    def test_unknown_key(self):
        with pytest.raises(SequenceNotFoundError):
            InMemorySequenceStore().issue("invoice")

    def test_register(self):
        store = InMemorySequenceStore()
        store.register("credit_note", SequenceConfig(prefix="CN/", zero_pad=False))
        assert store.issue(VoucherType.CREDIT_NOTE).id == "CN/1"

    def test_duplicate_rejected(self, memory_store):
        with pytest.raises(SequenceAlreadyExistsError):
            memory_store.register("invoice", SequenceConfig())
