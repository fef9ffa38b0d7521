"""
Module: ledger_kernel.selectors.transaction_selector
Responsibility: Read-only access to finance transactions by reference key,
    number or id.
Architecture position: Kernel > Selectors.

``active_reference_query`` is shared with the services that lock the same
row before mutating it, so the reference lookup is written once.
"""

from uuid import UUID

from sqlalchemy import Select, select

from ledger_kernel.domain.dtos import TransactionDTO
from ledger_kernel.domain.values import ReferenceType
from ledger_kernel.models.transaction import FinanceTransaction
from ledger_kernel.selectors.base import BaseSelector


def _reference_value(reference_type: ReferenceType | str) -> str:
    return reference_type.value if isinstance(reference_type, ReferenceType) else reference_type


def active_reference_query(
    reference_type: ReferenceType | str,
    reference_id: str,
) -> Select:
    """SELECT the active transaction for a reference key."""
    return select(FinanceTransaction).where(
        FinanceTransaction.reference_type == _reference_value(reference_type),
        FinanceTransaction.reference_id == str(reference_id),
        FinanceTransaction.is_active.is_(True),
    )


class TransactionSelector(BaseSelector):
    """Finance transaction queries returning TransactionDTOs."""

    def get_active_by_reference(
        self,
        reference_type: ReferenceType | str,
        reference_id: str,
    ) -> TransactionDTO | None:
        row = self.session.execute(
            active_reference_query(reference_type, reference_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        return row.to_dto() if row is not None else None

    def list_by_reference(
        self,
        reference_type: ReferenceType | str,
        reference_id: str,
    ) -> list[TransactionDTO]:
        """All transactions for a reference, cancelled ones included."""
        rows = self.session.execute(
            select(FinanceTransaction)
            .where(
                FinanceTransaction.reference_type == _reference_value(reference_type),
                FinanceTransaction.reference_id == str(reference_id),
            )
            .order_by(FinanceTransaction.created_at)
            .execution_options(populate_existing=True)
        ).scalars().all()
        return [row.to_dto() for row in rows]

    def get_by_number(self, transaction_number: str) -> TransactionDTO | None:
        row = self.session.execute(
            select(FinanceTransaction)
            .where(FinanceTransaction.transaction_number == transaction_number)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        return row.to_dto() if row is not None else None

    def get(self, transaction_id: UUID) -> TransactionDTO | None:
        row = self.session.execute(
            select(FinanceTransaction)
            .where(FinanceTransaction.id == transaction_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        return row.to_dto() if row is not None else None
