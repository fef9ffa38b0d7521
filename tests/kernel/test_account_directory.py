"""AccountDirectory: criteria and role resolution against the chart of accounts."""

from decimal import Decimal

import pytest

from ledger_kernel.domain.dtos import AccountCriteria
from ledger_kernel.domain.values import AccountRole, AccountType, PaymentMethod
from ledger_kernel.exceptions import AccountNotFoundError, ConfigurationError
from ledger_kernel.selectors.account_directory import AccountDirectory


@pytest.fixture
def directory(session, ledger_config, standard_accounts):
    return AccountDirectory(session, ledger_config.role_criteria())


class TestResolve:

    def test_resolves_by_type_and_category(self, directory, standard_accounts):
        account = directory.resolve(
            AccountCriteria(account_type=AccountType.REVENUE, category="Sales")
        )
        assert account.id == standard_accounts["sales"].id
        assert account.account_name == "Pendapatan Penjualan"

    def test_resolves_by_account_number(self, directory, standard_accounts):
        account = directory.resolve(AccountCriteria(account_number="1-1002"))
        assert account.id == standard_accounts["bank"].id

    def test_no_match_raises(self, directory):
        with pytest.raises(AccountNotFoundError) as exc_info:
            directory.resolve(AccountCriteria(account_type=AccountType.LIABILITY, category="Tax"))
        assert "category=Tax" in exc_info.value.criteria

    def test_inactive_accounts_skipped(self, session, create_account, ledger_config):
        create_account("1-2001", "Kas Lama", AccountType.ASSET, "Petty", is_active=False)
        directory = AccountDirectory(session, ledger_config.role_criteria())

        with pytest.raises(AccountNotFoundError):
            directory.resolve(AccountCriteria(account_type=AccountType.ASSET, category="Petty"))

        inactive = directory.resolve(
            AccountCriteria(account_type=AccountType.ASSET, category="Petty", must_be_active=False)
        )
        assert inactive.is_active is False

    def test_ambiguous_match_picks_lowest_number_and_warns(
        self, session, create_account, standard_accounts, ledger_config, captured_logs
    ):
        create_account("1-1000", "Kas Kecil", AccountType.ASSET, "Cash")
        directory = AccountDirectory(session, ledger_config.role_criteria())

        account = directory.resolve(AccountCriteria(account_type=AccountType.ASSET, category="Cash"))

        assert account.account_number == "1-1000"
        warnings = [r for r in captured_logs() if r["message"] == "account_resolution_ambiguous"]
        assert len(warnings) == 1
        assert warnings[0]["chosen_account_number"] == "1-1000"


class TestResolveRole:

    def test_each_role_resolves(self, directory, standard_accounts):
        expected = {
            AccountRole.CASH: "cash",
            AccountRole.BANK: "bank",
            AccountRole.RECEIVABLES: "receivables",
            AccountRole.SALES_REVENUE: "sales",
            AccountRole.OPERATING_EXPENSE: "operating",
        }
        for role, key in expected.items():
            assert directory.resolve_role(role).id == standard_accounts[key].id

    def test_unbound_role_is_configuration_error(self, session, standard_accounts):
        directory = AccountDirectory(session, {})
        with pytest.raises(ConfigurationError):
            directory.resolve_role(AccountRole.CASH)

    def test_missing_role_account_names_role(self, session, ledger_config):
        directory = AccountDirectory(session, ledger_config.role_criteria())
        with pytest.raises(AccountNotFoundError) as exc_info:
            directory.resolve_role(AccountRole.SALES_REVENUE)
        assert exc_info.value.criteria.startswith("SALES_REVENUE")

    @pytest.mark.parametrize("method, key", [
        (PaymentMethod.CASH, "cash"),
        (PaymentMethod.BANK_TRANSFER, "bank"),
        (PaymentMethod.E_WALLET, "bank"),
        (None, "bank"),
    ])
    def test_settlement_account(self, directory, standard_accounts, method, key):
        assert directory.resolve_settlement_account(method).id == standard_accounts[key].id

    def test_get_returns_current_balance(self, directory, standard_accounts):
        account = directory.get(standard_accounts["cash"].id)
        assert account.balance == Decimal("1000000")
