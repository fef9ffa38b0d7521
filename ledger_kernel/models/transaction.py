"""
Module: ledger_kernel.models.transaction
Responsibility: ORM persistence for finance transactions -- the append-mostly
    audit log of postings, with soft delete.
Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    - transaction_number is unique (uq_finance_transaction_number).
    - At most one ACTIVE transaction per (reference_type, reference_id): the
      partial unique index uq_finance_transaction_active_reference is the
      storage-level idempotency guard for postings.
    - amount is stored positive; transaction_type decides the sign of the
      balance effect.
    - Rows are never deleted.  Reversal sets is_active=False and
      status=cancelled.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import JSON, Boolean, ForeignKey, Index, String, Text, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TimestampedBase, UUIDString
from ledger_kernel.domain.dtos import TransactionDTO
from ledger_kernel.domain.values import (
    PaymentMethod,
    ReferenceType,
    TransactionStatus,
    TransactionType,
)
from ledger_kernel.models.account import FinanceAccount


class FinanceTransaction(TimestampedBase):
    """
    A single-sided ledger posting against exactly one account.
    """

    __tablename__ = "finance_transactions"

    __table_args__ = (
        UniqueConstraint("transaction_number", name="uq_finance_transaction_number"),
        Index(
            "uq_finance_transaction_active_reference",
            "reference_type",
            "reference_id",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
        Index("idx_finance_transaction_account", "account_id"),
        Index("idx_finance_transaction_created", "created_at"),
    )

    transaction_number: Mapped[str] = mapped_column(String(50), nullable=False)

    transaction_date: Mapped[datetime] = mapped_column(nullable=False)

    transaction_type: Mapped[TransactionType] = mapped_column(String(20), nullable=False)

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("finance_accounts.id", ondelete="RESTRICT"),
        nullable=False,
    )

    category: Mapped[str] = mapped_column(String(100), nullable=False)

    subcategory: Mapped[str | None] = mapped_column(String(100), nullable=True)

    amount: Mapped[Decimal] = mapped_column(nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    reference_type: Mapped[ReferenceType | None] = mapped_column(String(20), nullable=True)

    reference_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    payment_method: Mapped[PaymentMethod | None] = mapped_column(String(20), nullable=True)

    contact_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    contact_name: Mapped[str | None] = mapped_column(String(200), nullable=True)

    attachments: Mapped[list | None] = mapped_column(JSON, nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    tags: Mapped[list | None] = mapped_column(JSON, nullable=True)

    status: Mapped[TransactionStatus] = mapped_column(
        String(20),
        nullable=False,
        default=TransactionStatus.COMPLETED.value,
    )

    created_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    account: Mapped[FinanceAccount] = relationship()

    def __repr__(self) -> str:
        return f"<FinanceTransaction {self.transaction_number} {self.transaction_type} {self.amount}>"

    def to_dto(self) -> TransactionDTO:
        return TransactionDTO(
            id=self.id,
            transaction_number=self.transaction_number,
            transaction_date=self.transaction_date,
            transaction_type=TransactionType(self.transaction_type),
            account_id=self.account_id,
            category=self.category,
            subcategory=self.subcategory,
            amount=Decimal(self.amount),
            description=self.description,
            reference_type=ReferenceType(self.reference_type) if self.reference_type else None,
            reference_id=self.reference_id,
            payment_method=PaymentMethod(self.payment_method) if self.payment_method else None,
            contact_name=self.contact_name,
            contact_id=self.contact_id,
            notes=self.notes,
            status=TransactionStatus(self.status),
            is_active=self.is_active,
            created_by=self.created_by,
        )
