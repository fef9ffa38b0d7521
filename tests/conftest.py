"""
Pytest fixtures for the ledger test suite.

Provides:
- A fresh database per test (SQLite file under tmp_path, or DATABASE_URL)
- A seeded chart of accounts (cash, bank, receivables, sales, operating)
- A deterministic clock fixed in January 2026
- The integration service and a FastAPI TestClient
- Captured structured logs

Environment Variables:
- DATABASE_URL: run against another database (e.g. PostgreSQL) instead of
  the per-test SQLite file.  Tables are dropped and recreated per test.

Sessions handed out by ``session_factory`` must be closed before calling the
integration service from the same thread: SQLite transactions start with
BEGIN IMMEDIATE and hold the write lock until commit or rollback.
"""

import dataclasses
import json
import logging
import os
from decimal import Decimal
from io import StringIO
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_api.app import create_app
from ledger_config import ApiClient, get_active_config
from ledger_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from ledger_kernel.domain.clock import DeterministicClock
from ledger_kernel.domain.dtos import AccountDTO
from ledger_kernel.domain.values import AccountType
from ledger_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from ledger_kernel.models.account import FinanceAccount
from ledger_kernel.models.transaction import FinanceTransaction
from ledger_services.integration import FinanceIntegrationService

TEST_TOKEN = "test-token-pos"
TEST_ACTOR_ID = "cashier-001"

# (key, account_number, name, type, category, opening balance)
STANDARD_CHART = (
    ("cash", "1-1001", "Kas Toko", AccountType.ASSET, "Cash", Decimal("1000000")),
    ("bank", "1-1002", "Bank BCA", AccountType.ASSET, "Bank", Decimal("5000000")),
    ("receivables", "1-1100", "Piutang Usaha", AccountType.ASSET, "Receivables", Decimal("0")),
    ("sales", "4-1000", "Pendapatan Penjualan", AccountType.REVENUE, "Sales", Decimal("0")),
    ("operating", "5-1000", "Beban Operasional", AccountType.EXPENSE, "Operating", Decimal("0")),
)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow_locks: mark test as potentially waiting for DB locks"
    )


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG, stream=StringIO())
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture ledger_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, integration):
            integration.post_sale(...)
            logs = captured_logs()
            assert any(r["message"] == "posting_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("ledger_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database
# =============================================================================


def get_database_url(tmp_path) -> str:
    """DATABASE_URL if set, otherwise a SQLite file private to the test."""
    return os.environ.get("DATABASE_URL") or f"sqlite:///{tmp_path / 'ledger.db'}"


@pytest.fixture
def db_engine(tmp_path):
    """Fresh engine and empty tables for one test."""
    eng = init_engine_from_url(get_database_url(tmp_path), pool_size=30, max_overflow=20)
    drop_tables()
    create_tables()
    yield eng
    try:
        drop_tables()
    finally:
        reset_engine()


@pytest.fixture
def session_factory(db_engine):
    return get_session_factory()


@pytest.fixture
def session(session_factory) -> Generator[Session, None, None]:
    """A session for kernel-level tests.  Rolled back and closed at teardown."""
    sess = session_factory()
    yield sess
    sess.rollback()
    sess.close()


# =============================================================================
# Chart of accounts
# =============================================================================


def _insert_account(
    session_factory,
    account_number: str,
    account_name: str,
    account_type: AccountType,
    category: str | None,
    balance: Decimal = Decimal("0"),
    is_active: bool = True,
) -> AccountDTO:
    sess = session_factory()
    try:
        account = FinanceAccount(
            account_number=account_number,
            account_name=account_name,
            account_type=account_type.value,
            category=category,
            balance=balance,
            currency="IDR",
            is_active=is_active,
        )
        sess.add(account)
        sess.commit()
        return account.to_dto()
    finally:
        sess.close()


@pytest.fixture
def create_account(session_factory):
    """Factory fixture to create (and commit) additional accounts."""

    def _create(
        account_number: str,
        account_name: str,
        account_type: AccountType,
        category: str | None,
        balance: Decimal = Decimal("0"),
        is_active: bool = True,
    ) -> AccountDTO:
        return _insert_account(
            session_factory, account_number, account_name,
            account_type, category, balance, is_active,
        )

    return _create


@pytest.fixture
def standard_accounts(session_factory) -> dict[str, AccountDTO]:
    """Seed the standard chart.  Keyed by cash/bank/receivables/sales/operating."""
    return {
        key: _insert_account(session_factory, number, name, account_type, category, balance)
        for key, number, name, account_type, category, balance in STANDARD_CHART
    }


@pytest.fixture
def balance_of(session_factory):
    """Read an account's committed balance in a short-lived session."""

    def _balance(account: AccountDTO) -> Decimal:
        sess = session_factory()
        try:
            value = sess.execute(
                select(FinanceAccount.balance).where(FinanceAccount.id == account.id)
            ).scalar_one()
            return Decimal(value)
        finally:
            sess.rollback()
            sess.close()

    return _balance


@pytest.fixture
def transactions_for(session_factory):
    """All transaction rows (active and cancelled) for a reference key."""

    def _rows(reference_type: str, reference_id: str):
        sess = session_factory()
        try:
            rows = sess.execute(
                select(FinanceTransaction)
                .where(
                    FinanceTransaction.reference_type == reference_type,
                    FinanceTransaction.reference_id == reference_id,
                )
                .order_by(FinanceTransaction.transaction_number)
            ).scalars().all()
            return [row.to_dto() for row in rows]
        finally:
            sess.rollback()
            sess.close()

    return _rows


# =============================================================================
# Clock, config and services
# =============================================================================


@pytest.fixture
def deterministic_clock():
    """Clock fixed at 2026-01-15 09:00 UTC."""
    return DeterministicClock()


@pytest.fixture
def ledger_config():
    """Packaged defaults plus one API client."""
    return dataclasses.replace(
        get_active_config(),
        api_clients=(ApiClient(name="pos-terminal", token=TEST_TOKEN, actor_id=TEST_ACTOR_ID),),
    )


@pytest.fixture
def integration(session_factory, ledger_config, deterministic_clock, standard_accounts):
    return FinanceIntegrationService(
        session_factory,
        ledger_config,
        deterministic_clock,
        sleep=lambda seconds: None,
    )


@pytest.fixture
def api_client(integration):
    with TestClient(create_app(integration)) as client:
        yield client


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {TEST_TOKEN}"}
