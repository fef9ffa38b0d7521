"""
Module: ledger_kernel.selectors.account_directory
Responsibility: Resolve a logical account (by criteria or by role) to a
    concrete finance account.  Read-only; never creates accounts.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Only active accounts are returned unless the criteria say otherwise.
    - Resolution failure raises AccountNotFoundError before the caller has
      written anything, so the whole posting aborts cleanly.

Failure modes:
    - AccountNotFoundError: no account matches.
    - ConfigurationError: a role has no binding.

Selection is first-match by account_number.  When several accounts match
the same criteria the choice is arbitrary from the business point of view;
an ``account_resolution_ambiguous`` warning is logged so the chart of
accounts can be fixed.
"""

from collections.abc import Mapping

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.domain.dtos import AccountCriteria, AccountDTO
from ledger_kernel.domain.values import AccountRole, PaymentMethod, cash_or_bank
from ledger_kernel.exceptions import AccountNotFoundError, ConfigurationError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import FinanceAccount
from ledger_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.account_directory")


class AccountDirectory(BaseSelector):
    """
    Maps selection criteria (or an AccountRole) to one finance account.

    Args:
        session: caller-owned session.
        role_bindings: AccountRole -> AccountCriteria, usually from
            ``LedgerConfig.role_criteria()``.
    """

    def __init__(
        self,
        session: Session,
        role_bindings: Mapping[AccountRole, AccountCriteria] | None = None,
    ):
        super().__init__(session)
        self._role_bindings = dict(role_bindings or {})

    def resolve(self, criteria: AccountCriteria) -> AccountDTO:
        """
        Return the first account matching ``criteria``.

        Raises:
            AccountNotFoundError: if no account matches.
        """
        stmt = select(FinanceAccount)
        if criteria.account_number is not None:
            stmt = stmt.where(FinanceAccount.account_number == criteria.account_number)
        if criteria.account_type is not None:
            stmt = stmt.where(FinanceAccount.account_type == criteria.account_type.value)
        if criteria.category is not None:
            stmt = stmt.where(FinanceAccount.category == criteria.category)
        if criteria.must_be_active:
            stmt = stmt.where(FinanceAccount.is_active.is_(True))
        stmt = stmt.order_by(FinanceAccount.account_number).limit(2)

        matches = self.session.execute(
            stmt.execution_options(populate_existing=True)
        ).scalars().all()

        if not matches:
            logger.warning(
                "account_not_found",
                extra={"criteria": criteria.describe()},
            )
            raise AccountNotFoundError(criteria.describe())

        account = matches[0]
        if len(matches) > 1:
            logger.warning(
                "account_resolution_ambiguous",
                extra={
                    "criteria": criteria.describe(),
                    "chosen_account_number": account.account_number,
                },
            )

        logger.debug(
            "account_resolved",
            extra={
                "criteria": criteria.describe(),
                "account_id": str(account.id),
                "account_number": account.account_number,
            },
        )
        return account.to_dto()

    def resolve_role(self, role: AccountRole) -> AccountDTO:
        """
        Resolve an AccountRole through its configured binding.

        Raises:
            ConfigurationError: if the role is not bound.
            AccountNotFoundError: if the binding matches no active account.
        """
        criteria = self._role_bindings.get(role)
        if criteria is None:
            raise ConfigurationError(f"No binding configured for account role {role.value}")
        try:
            return self.resolve(criteria)
        except AccountNotFoundError as exc:
            raise AccountNotFoundError(f"{role.value} ({exc.criteria})") from None

    def resolve_settlement_account(
        self, payment_method: PaymentMethod | str | None
    ) -> AccountDTO:
        """The cash account for cash payments, the bank account otherwise."""
        return self.resolve_role(cash_or_bank(payment_method))

    def get(self, account_id) -> AccountDTO | None:
        """Fresh read of one account (including its current balance)."""
        account = self.session.execute(
            select(FinanceAccount)
            .where(FinanceAccount.id == account_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        return account.to_dto() if account is not None else None
