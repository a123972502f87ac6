"""
SequenceService -- atomic voucher/invoice number issuance.

Responsibility:
    Owns persistence of SequenceConfig rows and turns "read next_number,
    format it, write next_number + 1" into a single atomic issuance per
    sequence key, so no formatted identifier is ever handed out twice.

Architecture position:
    Kernel > Services -- imperative shell around the pure formatter in
    billing_kernel.domain.sequence.  Called by InvoiceDraftingService and
    by any voucher-creating caller.

Invariants enforced:
    - At most one issuance of any number per sequence key.
    - The counter row is read with ``SELECT ... FOR UPDATE`` and advanced
      with a conditional ``UPDATE ... WHERE next_number = :observed``.  The
      count-rows-plus-one pattern is never used.
    - Issuance is only visible after the caller's transaction commits;
      rollback returns the number.

Failure modes:
    - SequenceNotFoundError: no row for the key.
    - SequenceAlreadyExistsError: duplicate registration.
    - SequenceConflictError: the conditional update matched no row on every
      attempt (a concurrent writer advanced the counter each time).

Two stores implement the same SequenceStore protocol:
    SequenceService        -- SQLAlchemy, one row per key.
    InMemorySequenceStore  -- process-local, one lock serialises writers.
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from dataclasses import replace
from typing import Protocol

from sqlalchemy import BigInteger, Boolean, Integer, String, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Mapped, Session, mapped_column

from billing_kernel.db.base import TrackedBase
from billing_kernel.domain.sequence import (
    IssuedId,
    SequenceConfig,
    VoucherType,
    default_sequence_config,
    next_id,
)
from billing_kernel.exceptions import (
    SequenceAlreadyExistsError,
    SequenceConflictError,
    SequenceNotFoundError,
)
from billing_kernel.logging_config import get_logger

logger = get_logger("services.sequence")


def sequence_key(key: str | VoucherType) -> str:
    """Normalise a voucher type or free-form key to its stored string."""
    if isinstance(key, VoucherType):
        return key.value
    return key


class SequenceStore(Protocol):
    """Persistence collaborator for sequence state."""

    def register(self, key: str | VoucherType, config: SequenceConfig) -> None: ...

    def get_config(self, key: str | VoucherType) -> SequenceConfig: ...

    def issue(self, key: str | VoucherType) -> IssuedId: ...


class SequenceConfigRow(TrackedBase):
    """
    Sequence configuration table.

    Each row is one named sequence: its format and the next number to issue.
    """

    __tablename__ = "sequence_configs"

    # Sequence key (e.g., "invoice", "receipt", "invoice:branch-2")
    key: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)

    prefix: Mapped[str] = mapped_column(String(20), nullable=False, default="")
    suffix: Mapped[str] = mapped_column(String(20), nullable=False, default="")
    width: Mapped[int] = mapped_column(Integer, nullable=False)
    zero_pad: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    next_number: Mapped[int] = mapped_column(BigInteger, nullable=False, default=1)

    def to_config(self) -> SequenceConfig:
        return SequenceConfig(
            prefix=self.prefix,
            suffix=self.suffix,
            width=self.width,
            zero_pad=self.zero_pad,
            next_number=self.next_number,
        )


class SequenceService:
    """
    SQLAlchemy-backed SequenceStore.

    Contract:
        ``issue(key)`` returns the next formatted identifier for ``key`` and
        advances the stored counter by one.

    Guarantees:
        - Row lock (PostgreSQL) plus conditional update: two sessions can
          never both advance from the same observed next_number.
        - Bounded retry: at most ``max_attempts`` read/update rounds.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.

    Usage:
        with session_scope() as session:
            issued = SequenceService(session).issue(VoucherType.INVOICE)
            invoice.number = issued.id
    """

    DEFAULT_MAX_ATTEMPTS = 5

    def __init__(self, session: Session, max_attempts: int = DEFAULT_MAX_ATTEMPTS):
        """
        Args:
            session: SQLAlchemy session (should be in a transaction).
            max_attempts: Conditional-update rounds before giving up.
        """
        self._session = session
        self._max_attempts = max_attempts

    def _locked_row(self, key: str) -> SequenceConfigRow | None:
        return self._session.execute(
            select(SequenceConfigRow)
            .where(SequenceConfigRow.key == key)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _observed_config(self, key: str) -> SequenceConfig:
        row = self._locked_row(key)
        if row is None:
            raise SequenceNotFoundError(key)
        return row.to_config()

    def register(self, key: str | VoucherType, config: SequenceConfig) -> None:
        """
        Create the row for a new sequence.

        Raises:
            SequenceAlreadyExistsError: If ``key`` is already registered.
                After a concurrent-insert race the session must be rolled
                back by the caller.
        """
        key = sequence_key(key)
        if self._locked_row(key) is not None:
            raise SequenceAlreadyExistsError(key)

        self._session.add(
            SequenceConfigRow(
                key=key,
                prefix=config.prefix,
                suffix=config.suffix,
                width=config.width,
                zero_pad=config.zero_pad,
                next_number=config.next_number,
            )
        )
        try:
            self._session.flush()
        except IntegrityError as exc:
            raise SequenceAlreadyExistsError(key) from exc

        logger.info(
            "sequence_registered",
            extra={"sequence_key": key, "next_number": config.next_number},
        )

    def get_config(self, key: str | VoucherType) -> SequenceConfig:
        """
        Current configuration of ``key`` without issuing.

        Raises:
            SequenceNotFoundError: If ``key`` is not registered.
        """
        key = sequence_key(key)
        row = self._session.execute(
            select(SequenceConfigRow)
            .where(SequenceConfigRow.key == key)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if row is None:
            raise SequenceNotFoundError(key)
        return row.to_config()

    def issue(self, key: str | VoucherType) -> IssuedId:
        """
        Issue the next identifier of ``key``.

        Postconditions:
            - The stored next_number is exactly one more than the number
              issued.

        Raises:
            SequenceNotFoundError: If ``key`` is not registered.
            SequenceConflictError: If every attempt lost to a concurrent writer.
        """
        key = sequence_key(key)

        for attempt in range(1, self._max_attempts + 1):
            observed = self._observed_config(key)
            issued = next_id(observed)

            result = self._session.execute(
                update(SequenceConfigRow)
                .where(
                    SequenceConfigRow.key == key,
                    SequenceConfigRow.next_number == observed.next_number,
                )
                .values(next_number=issued.updated_config.next_number)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 1:
                logger.debug(
                    "sequence_issued",
                    extra={
                        "sequence_key": key,
                        "number": issued.number,
                        "issued_id": issued.id,
                        "attempt": attempt,
                    },
                )
                return issued

            logger.warning(
                "sequence_conflict_retry",
                extra={
                    "sequence_key": key,
                    "observed_next_number": observed.next_number,
                    "attempt": attempt,
                    "max_attempts": self._max_attempts,
                },
            )
            self._session.expire_all()

        raise SequenceConflictError(key, self._max_attempts)

    def reset(self, key: str | VoucherType, next_number: int = 1) -> None:
        """
        Set the next number of an existing sequence.

        WARNING: Only for tests or migration scripts.  Resetting a live
        sequence re-issues numbers.
        """
        key = sequence_key(key)
        config = replace(self._observed_config(key), next_number=next_number)
        self._session.execute(
            update(SequenceConfigRow)
            .where(SequenceConfigRow.key == key)
            .values(next_number=config.next_number)
            .execution_options(synchronize_session=False)
        )
        self._session.flush()

    def initialize_sequences(
        self,
        configs: Mapping[VoucherType, SequenceConfig] | None = None,
    ) -> None:
        """
        Ensure a row exists for every voucher type.

        Missing types get ``configs[type]`` if supplied, else the factory
        default.  Existing rows are left untouched.
        """
        configs = configs or {}
        for voucher_type in VoucherType:
            existing = self._session.execute(
                select(SequenceConfigRow.id).where(
                    SequenceConfigRow.key == voucher_type.value
                )
            ).scalar_one_or_none()
            if existing is None:
                config = configs.get(voucher_type) or default_sequence_config(voucher_type)
                self.register(voucher_type, config)


class InMemorySequenceStore:
    """
    Process-local SequenceStore.

    Single-writer: one lock serialises every read-increment-write, so
    concurrent threads in one process never share a number.  State is lost
    when the process exits.
    """

    def __init__(self, configs: Mapping[str | VoucherType, SequenceConfig] | None = None):
        self._lock = threading.Lock()
        self._configs: dict[str, SequenceConfig] = {
            sequence_key(k): v for k, v in (configs or {}).items()
        }

    def register(self, key: str | VoucherType, config: SequenceConfig) -> None:
        key = sequence_key(key)
        with self._lock:
            if key in self._configs:
                raise SequenceAlreadyExistsError(key)
            self._configs[key] = config

    def get_config(self, key: str | VoucherType) -> SequenceConfig:
        key = sequence_key(key)
        with self._lock:
            try:
                return self._configs[key]
            except KeyError:
                raise SequenceNotFoundError(key) from None

    def issue(self, key: str | VoucherType) -> IssuedId:
        key = sequence_key(key)
        with self._lock:
            try:
                config = self._configs[key]
            except KeyError:
                raise SequenceNotFoundError(key) from None
            issued = next_id(config)
            self._configs[key] = issued.updated_config
        logger.debug(
            "sequence_issued",
            extra={"sequence_key": key, "number": issued.number, "issued_id": issued.id},
        )
        return issued
