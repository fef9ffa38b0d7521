"""
Module: ledger_kernel.models.account
Responsibility: ORM persistence for finance accounts -- the single target of
    every posting and the only row holding a stored balance.
Architecture position: Kernel > Models.  May import from db/ and domain/values.

Invariants enforced:
    - balance is mutated only by LedgerPoster and ReversalService, and only
      through an atomic ``balance = balance + :delta`` UPDATE.
    - Accounts are deactivated, never deleted.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TimestampedBase, UUIDString
from ledger_kernel.domain.dtos import AccountDTO
from ledger_kernel.domain.values import AccountType


class FinanceAccount(TimestampedBase):
    """
    Chart of accounts entry with a running balance.

    Account administration (creation, renaming, deactivation) happens outside
    the posting engine; the engine only reads accounts and moves balances.
    """

    __tablename__ = "finance_accounts"

    __table_args__ = (
        UniqueConstraint("account_number", name="uq_finance_account_number"),
        Index("idx_finance_account_type_category", "account_type", "category"),
        Index("idx_finance_account_active", "is_active"),
    )

    account_number: Mapped[str] = mapped_column(String(50), nullable=False)

    account_name: Mapped[str] = mapped_column(String(200), nullable=False)

    account_type: Mapped[AccountType] = mapped_column(String(20), nullable=False)

    # Free-form label: Cash, Bank, Sales, Receivables, Operating, ...
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)

    parent_account_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    balance: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="IDR")

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<FinanceAccount {self.account_number}: {self.account_name}>"

    def to_dto(self) -> AccountDTO:
        return AccountDTO(
            id=self.id,
            account_number=self.account_number,
            account_name=self.account_name,
            account_type=AccountType(self.account_type),
            category=self.category,
            balance=Decimal(self.balance),
            currency=self.currency,
            is_active=self.is_active,
        )
