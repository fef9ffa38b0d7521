"""
Atomic unit runner -- one session, one database transaction, bounded retry.

Responsibility:
    Opens a session, runs a unit of work, commits on success and rolls back
    on failure.  Consistency conflicts (lock timeouts, deadlocks, unique
    collisions) are retried with linear backoff; everything else propagates
    on the first failure.

Architecture position:
    Kernel > Services.  The only place in the kernel that commits.  Services
    called from ``work`` stay flush-only.

Failure modes:
    - TransientPostingError: conflicts persisted for ``max_attempts`` tries.
    - Any non-retryable exception raised by ``work`` is re-raised unchanged
      after rollback.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import TypeVar

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from ledger_kernel.exceptions import ConcurrencyError, TransientPostingError
from ledger_kernel.logging_config import get_logger

logger = get_logger("services.atomic")

T = TypeVar("T")

RETRYABLE_ERRORS = (ConcurrencyError, OperationalError, IntegrityError)


def run_atomic(
    session_factory: sessionmaker[Session] | Callable[[], Session],
    work: Callable[[Session], T],
    *,
    operation: str,
    max_attempts: int = 5,
    backoff_seconds: float = 0.05,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Run ``work(session)`` as a single committed unit.

    Args:
        session_factory: Produces a fresh Session per attempt.
        work: The unit of work.  Must not commit.
        operation: Name used in logs and in TransientPostingError.
        max_attempts: Total attempts, including the first.
        backoff_seconds: Sleep before retry n is ``n * backoff_seconds``.
        sleep: Injectable for tests.
    """
    last_error: Exception | None = None
    for attempt in range(1, max_attempts + 1):
        session = session_factory()
        try:
            result = work(session)
            session.commit()
            return result
        except RETRYABLE_ERRORS as exc:
            session.rollback()
            last_error = exc
            logger.warning(
                "atomic_unit_retry",
                extra={
                    "operation": operation,
                    "attempt": attempt,
                    "max_attempts": max_attempts,
                    "error_type": type(exc).__name__,
                    "error": str(exc).splitlines()[0] if str(exc) else "",
                },
            )
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

        if attempt < max_attempts:
            sleep(backoff_seconds * attempt)

    logger.error(
        "atomic_unit_exhausted",
        extra={"operation": operation, "attempts": max_attempts},
    )
    raise TransientPostingError(
        operation,
        max_attempts,
        f"{type(last_error).__name__}: {last_error}",
    )
