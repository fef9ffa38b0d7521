"""
SequenceService: TRX-<year>-<n> numbering from a locked counter row.

Numbers come from the sequence_counters table, never from MAX()+1 over
finance_transactions.  Seeding from the last transaction only happens when
the counter row does not exist yet.
"""

import inspect
import re
from datetime import datetime, timezone
from decimal import Decimal

from ledger_kernel.domain.clock import DeterministicClock
from ledger_kernel.domain.values import TransactionType
from ledger_kernel.models.transaction import FinanceTransaction
from ledger_kernel.services.sequence_service import SequenceService


def _legacy_transaction(session, account_id, number: str) -> None:
    session.add(FinanceTransaction(
        transaction_number=number,
        transaction_date=datetime(2026, 1, 1, tzinfo=timezone.utc),
        transaction_type=TransactionType.INCOME.value,
        account_id=account_id,
        category="Sales",
        amount=Decimal("1000"),
        reference_type="manual",
        reference_id=f"legacy-{number}",
        status="completed",
        is_active=True,
    ))
    session.flush()


class TestNumberFormat:

    def test_first_number_of_empty_ledger(self, session, deterministic_clock):
        service = SequenceService(session, deterministic_clock)
        assert service.next_number() == "TRX-2026-001"

    def test_numbers_increase(self, session, deterministic_clock):
        service = SequenceService(session, deterministic_clock)
        numbers = [service.next_number() for _ in range(3)]
        assert numbers == ["TRX-2026-001", "TRX-2026-002", "TRX-2026-003"]

    def test_wider_numbers_not_truncated(self, session, deterministic_clock):
        service = SequenceService(session, deterministic_clock, width=1)
        numbers = [service.next_number() for _ in range(10)]
        assert numbers[-1] == "TRX-2026-10"

    def test_custom_prefix(self, session, deterministic_clock):
        service = SequenceService(session, deterministic_clock, prefix="FIN")
        assert service.next_number() == "FIN-2026-001"

    def test_current_value_does_not_increment(self, session, deterministic_clock):
        service = SequenceService(session, deterministic_clock)
        assert service.current_value() is None
        service.next_number()
        assert service.current_value() == 1
        assert service.current_value() == 1


class TestTransactionalAllocation:

    def test_rollback_returns_number(self, session_factory, deterministic_clock):
        first = session_factory()
        try:
            SequenceService(first, deterministic_clock).next_number()
            first.rollback()
        finally:
            first.close()

        second = session_factory()
        try:
            assert SequenceService(second, deterministic_clock).next_number() == "TRX-2026-001"
            second.commit()
        finally:
            second.close()

    def test_committed_numbers_persist_across_sessions(self, session_factory, deterministic_clock):
        for expected in ("TRX-2026-001", "TRX-2026-002"):
            sess = session_factory()
            try:
                assert SequenceService(sess, deterministic_clock).next_number() == expected
                sess.commit()
            finally:
                sess.close()


class TestYearRollover:

    def test_counter_continues_across_years_by_default(self, session):
        clock = DeterministicClock(datetime(2026, 12, 31, 23, 0, tzinfo=timezone.utc))
        service = SequenceService(session, clock)
        assert service.next_number() == "TRX-2026-001"

        clock.set_time(datetime(2027, 1, 1, 1, 0, tzinfo=timezone.utc))
        assert service.next_number() == "TRX-2027-002"

    def test_reset_yearly_starts_each_year_at_one(self, session):
        clock = DeterministicClock(datetime(2026, 12, 31, 23, 0, tzinfo=timezone.utc))
        service = SequenceService(session, clock, reset_yearly=True)
        assert service.next_number() == "TRX-2026-001"
        assert service.next_number() == "TRX-2026-002"

        clock.set_time(datetime(2027, 1, 1, 1, 0, tzinfo=timezone.utc))
        assert service.next_number() == "TRX-2027-001"
        assert service.sequence_name(2027) == "finance_transaction:2027"


class TestCounterSeeding:

    def test_seeds_from_last_transaction(self, session, standard_accounts, deterministic_clock):
        _legacy_transaction(session, standard_accounts["cash"].id, "TRX-2026-041")
        _legacy_transaction(session, standard_accounts["cash"].id, "TRX-2026-042")

        service = SequenceService(session, deterministic_clock)
        assert service.next_number() == "TRX-2026-043"

    def test_malformed_legacy_number_seeds_zero(
        self, session, standard_accounts, deterministic_clock, captured_logs
    ):
        _legacy_transaction(session, standard_accounts["cash"].id, "IMPORTED-ABC")

        service = SequenceService(session, deterministic_clock)
        assert service.next_number() == "TRX-2026-001"
        assert any(r["message"] == "sequence_seed_ignored" for r in captured_logs())

    def test_reset_yearly_seeds_only_from_same_year(
        self, session, standard_accounts, deterministic_clock
    ):
        _legacy_transaction(session, standard_accounts["cash"].id, "TRX-2025-187")

        service = SequenceService(session, deterministic_clock, reset_yearly=True)
        assert service.next_number() == "TRX-2026-001"


class TestLockedCounterPattern:

    def test_next_value_locks_counter_row(self):
        source = inspect.getsource(SequenceService._lock_counter)
        assert "with_for_update()" in source

    def test_no_aggregate_max(self):
        source = inspect.getsource(SequenceService)
        assert not re.search(r"func\.max|MAX\s*\(", source)
