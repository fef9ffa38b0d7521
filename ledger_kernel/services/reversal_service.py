"""
ReversalService -- undo a posting when its source document is cancelled.

Responsibility:
    Locks the active transaction for a reference key, applies the opposite
    balance change to its account, and soft-deletes the row
    (is_active=False, status=cancelled), all in the caller's transaction.

Architecture position:
    Kernel > Services -- imperative shell.  Shares the atomic balance update
    with LedgerPoster.

Invariants enforced:
    - Balance restoration: income reversal subtracts the amount, expense
      reversal adds it back.  Transfers never moved a balance, so none is
      moved here.
    - Idempotency: only ACTIVE rows are reversed.  A second call finds
      nothing and returns False without side effects.
    - Rows are never deleted.

Failure modes:
    - AccountInactiveError: the account was deactivated after posting; the
      caller's rollback leaves the transaction active.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy.orm import Session

from ledger_kernel.domain.values import ReferenceType, TransactionStatus, TransactionType
from ledger_kernel.logging_config import get_logger
from ledger_kernel.selectors.transaction_selector import active_reference_query
from ledger_kernel.services.ledger_poster import apply_balance_delta

logger = get_logger("services.reversal")


class ReversalService:
    """
    Reverses the active transaction of a reference key.

    Not-found is a normal outcome: ``reverse`` returns False.
    """

    def __init__(self, session: Session):
        self._session = session

    def reverse(self, reference_type: ReferenceType | str, reference_id: str) -> bool:
        transaction = self._session.execute(
            active_reference_query(reference_type, reference_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

        if transaction is None:
            logger.info(
                "reversal_not_found",
                extra={
                    "reference_type": str(getattr(reference_type, "value", reference_type)),
                    "reference_id": str(reference_id),
                },
            )
            return False

        transaction_type = TransactionType(transaction.transaction_type)
        if transaction_type is TransactionType.TRANSFER:
            logger.warning(
                "reversal_transfer_no_balance_change",
                extra={"transaction_number": transaction.transaction_number},
            )
        else:
            delta = -Decimal(transaction.amount) * transaction_type.direction
            apply_balance_delta(self._session, transaction.account_id, delta)

        transaction.is_active = False
        transaction.status = TransactionStatus.CANCELLED.value
        self._session.flush()

        logger.info(
            "reversal_completed",
            extra={
                "transaction_number": transaction.transaction_number,
                "account_id": str(transaction.account_id),
                "transaction_type": transaction_type.value,
                "amount": str(transaction.amount),
            },
        )
        return True
