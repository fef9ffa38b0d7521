"""
SequenceService -- transaction number allocation via locked counter rows.

Responsibility:
    Produces unique, increasing transaction numbers of the form
    ``TRX-<year>-<n>`` (n zero-padded to the configured width, never
    truncated).  A dedicated counter row, locked with ``SELECT ... FOR
    UPDATE``, is the only source of the next value.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Called by LedgerPoster for every new transaction.

Invariants enforced:
    - Uniqueness under concurrency: the counter row lock serializes
      allocators.  Reading the last transaction and adding one is only used
      to seed a counter that does not exist yet.
    - Transactional: the increment is only visible once the caller commits.
      A rolled-back posting does not consume a number.

Failure modes:
    - IntegrityError: concurrent counter creation race (handled via
      savepoint rollback and re-read).
    - A number that collides with an existing row is the caller's signal to
      call ``skip_used_numbers()`` and allocate again.

Year handling:
    The year in the number always comes from the injected Clock.  By default
    the counter is shared across years (TRX-2027-043 may follow
    TRX-2026-042).  With ``reset_yearly=True`` each year gets its own
    counter row named ``finance_transaction:<year>``.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.sequence_counter import SequenceCounter
from ledger_kernel.models.transaction import FinanceTransaction

logger = get_logger("services.sequence")


class SequenceService:
    """
    Service for generating transaction numbers.

    Contract:
        ``next_number()`` returns a number that no other committed or
        in-flight transaction holds.  The caller owns the database
        transaction; this service only flushes.

    Usage:
        with session.begin():
            number = SequenceService(session, clock).next_number()
    """

    FINANCE_TRANSACTION = "finance_transaction"

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        prefix: str = "TRX",
        width: int = 3,
        reset_yearly: bool = False,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._prefix = prefix
        self._width = width
        self._reset_yearly = reset_yearly

    def sequence_name(self, year: int) -> str:
        if self._reset_yearly:
            return f"{self.FINANCE_TRANSACTION}:{year}"
        return self.FINANCE_TRANSACTION

    def format_number(self, year: int, value: int) -> str:
        return f"{self._prefix}-{year}-{str(value).zfill(self._width)}"

    def next_number(self) -> str:
        """
        Allocate the next transaction number for the clock's current year.

        Postconditions:
            - The returned number's numeric suffix is strictly greater than
              any suffix previously allocated from the same counter.
        """
        year = self._clock.now().year
        value = self.next_value(self.sequence_name(year), year=year)
        number = self.format_number(year, value)
        logger.debug(
            "transaction_number_allocated",
            extra={"transaction_number": number},
        )
        return number

    def next_value(self, sequence_name: str, year: int | None = None) -> int:
        """
        Lock (or create) the named counter, increment it, return the new value.

        Args:
            sequence_name: Name of the counter row.
            year: Year used to scope seeding when the counter is per-year.
        """
        # Counter objects may be cached from an earlier attempt in this session
        self._session.expire_all()

        counter = self._lock_counter(sequence_name)

        if counter is None:
            seed = self._seed_value(year)
            savepoint = self._session.begin_nested()
            try:
                counter = SequenceCounter(name=sequence_name, current_value=seed + 1)
                self._session.add(counter)
                self._session.flush()
                savepoint.commit()
                logger.debug(
                    "sequence_allocated",
                    extra={
                        "sequence_name": sequence_name,
                        "value": counter.current_value,
                        "seeded_from": seed,
                    },
                )
                return counter.current_value
            except IntegrityError:
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"sequence_name": sequence_name},
                )
                savepoint.rollback()
                self._session.expire_all()
                counter = self._lock_counter(sequence_name)
                if counter is None:
                    raise

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def skip_used_numbers(self) -> int:
        """
        Move the current year's counter past every suffix already used by a
        ``<prefix>-<year>-<n>`` transaction number.

        Recovery path for a number collision, e.g. a legacy ledger whose most
        recent row was not numbered by this service.  Scans the year's
        numbers once; allocation itself never does.

        Returns the counter value after the move.
        """
        year = self._clock.now().year
        sequence_name = self.sequence_name(year)
        self._session.expire_all()

        used = self._session.execute(
            select(FinanceTransaction.transaction_number).where(
                FinanceTransaction.transaction_number.like(f"{self._prefix}-{year}-%")
            )
        ).scalars().all()
        highest = max(
            (int(suffix) for suffix in (n.rsplit("-", 1)[-1] for n in used) if suffix.isdigit()),
            default=0,
        )

        counter = self._lock_counter(sequence_name)
        if counter is None:
            counter = SequenceCounter(name=sequence_name, current_value=highest)
            self._session.add(counter)
        elif counter.current_value < highest:
            counter.current_value = highest
        self._session.flush()

        logger.warning(
            "sequence_skipped_used_numbers",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, sequence_name: str | None = None) -> int | None:
        """
        Current value of a counter without incrementing, or None if the
        counter has not been created yet.
        """
        if sequence_name is None:
            sequence_name = self.sequence_name(self._clock.now().year)
        counter = self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        return counter.current_value if counter is not None else None

    def _lock_counter(self, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _seed_value(self, year: int | None) -> int:
        """
        Numeric suffix of the most recently created transaction, so a ledger
        that predates the counter table keeps counting where it left off.
        """
        stmt = select(FinanceTransaction.transaction_number)
        if self._reset_yearly and year is not None:
            stmt = stmt.where(
                FinanceTransaction.transaction_number.like(f"{self._prefix}-{year}-%")
            )
        stmt = stmt.order_by(
            FinanceTransaction.created_at.desc(),
            FinanceTransaction.transaction_number.desc(),
        ).limit(1)

        last_number = self._session.execute(stmt).scalar_one_or_none()
        if last_number is None:
            return 0
        suffix = last_number.rsplit("-", 1)[-1]
        if not suffix.isdigit():
            logger.warning(
                "sequence_seed_ignored",
                extra={"last_transaction_number": last_number},
            )
            return 0
        return int(suffix)
