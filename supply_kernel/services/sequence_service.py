"""
SequenceService -- monotonic sequence allocation via locked counter rows.

Responsibility:
    Provides strictly increasing sequence numbers and the purchase-order
    codes built from them (``PO-2025-0001``).  Uses a dedicated counter
    table with row-level locking (``SELECT ... FOR UPDATE``).

Architecture position:
    Kernel > Services -- imperative shell infrastructure.  Called by
    FulfillmentService inside the create_order transaction.

Invariants enforced:
    - Sequences are strictly monotonic.  Aggregate max-plus-one over the
      orders table is never used; the locked counter row is the sole
      source of truth.
    - The increment is only visible after the caller's transaction
      commits.  Rollback returns the value.

Failure modes:
    - IntegrityError: concurrent counter creation race (handled via
      savepoint rollback and re-read).
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from supply_kernel.logging_config import get_logger
from supply_kernel.models.stock import SequenceCounter
from supply_kernel.services.base import BaseService

logger = get_logger("services.sequence")


class SequenceService(BaseService):
    """
    Service for generating transactional sequence numbers.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.

    Usage:
        with session_scope(factory) as session:
            code = SequenceService(session).next_order_code("PO", 2025)
    """

    PURCHASE_ORDER = "purchase_order"

    def next_value(self, sequence_name: str) -> int:
        """
        Get the next value for a named sequence.

        Postconditions:
            - Returns an integer > 0 strictly greater than any previously
              returned value for this sequence name.
            - The counter row is locked until the transaction completes.
        """
        counter = self._locked_counter(sequence_name)

        if counter is None:
            # First use. Another thread may create it concurrently, so use
            # a savepoint to keep the rest of the transaction intact.
            savepoint = self.session.begin_nested()
            try:
                counter = SequenceCounter(name=sequence_name, current_value=1)
                self.session.add(counter)
                self.session.flush()
                savepoint.commit()
                logger.debug(
                    "sequence_allocated",
                    extra={"sequence_name": sequence_name, "value": 1},
                )
                return 1
            except IntegrityError:
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"sequence_name": sequence_name},
                )
                savepoint.rollback()
                counter = self._locked_counter(sequence_name)
                if counter is None:
                    raise

        counter.current_value += 1
        assert counter.current_value > 0, "sequence value must be strictly positive"
        self.session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, sequence_name: str) -> int | None:
        counter = self.session.execute(
            select(SequenceCounter).where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()
        return counter.current_value if counter else None

    def next_order_code(self, prefix: str, year: int) -> str:
        """Next purchase-order code, numbered per prefix and year."""
        value = self.next_value(f"{self.PURCHASE_ORDER}:{prefix}-{year}")
        return f"{prefix}-{year}-{value:04d}"

    def _locked_counter(self, sequence_name: str) -> SequenceCounter | None:
        return self.session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
