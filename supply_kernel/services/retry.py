"""
Bounded retry of transient persistence failures.

Responsibility:
    Re-executes a whole command when the store reports a transient fault
    (lock timeout, dropped connection, serialization failure) and turns
    exhaustion into PersistenceRetryExhaustedError.

Invariants enforced:
    - Business errors (SupplyKernelError) are never retried.
    - Non-transient errors propagate unchanged on the first occurrence.
    - At most ``max_attempts`` executions per command.
"""

import time
from dataclasses import dataclass
from typing import Callable, TypeVar

from sqlalchemy.exc import DBAPIError, OperationalError

from supply_kernel.exceptions import PersistenceRetryExhaustedError, SupplyKernelError
from supply_kernel.logging_config import get_logger

logger = get_logger("services.retry")

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    backoff_seconds: float = 0.05

    def delay(self, attempt: int) -> float:
        """Linear backoff after the given (1-based) failed attempt."""
        return self.backoff_seconds * attempt


def is_transient(exc: BaseException) -> bool:
    if isinstance(exc, SupplyKernelError):
        return False
    if isinstance(exc, OperationalError):
        return True
    return isinstance(exc, DBAPIError) and bool(exc.connection_invalidated)


def run_with_retry(
    command: str,
    fn: Callable[[], T],
    policy: RetryPolicy,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run ``fn`` until it succeeds, fails permanently, or attempts run out."""
    last_error: BaseException | None = None
    for attempt in range(1, policy.max_attempts + 1):
        try:
            return fn()
        except Exception as exc:
            if not is_transient(exc):
                raise
            last_error = exc
            logger.warning(
                "persist_attempt_failed",
                extra={
                    "attempt": attempt,
                    "max_attempts": policy.max_attempts,
                    "error_type": type(exc).__name__,
                },
            )
            if attempt < policy.max_attempts:
                sleep(policy.delay(attempt))

    logger.error(
        "persist_retries_exhausted",
        extra={"attempts": policy.max_attempts, "error_type": type(last_error).__name__},
    )
    raise PersistenceRetryExhaustedError(
        command, policy.max_attempts, str(last_error),
    ) from last_error
