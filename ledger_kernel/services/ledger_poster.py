"""
LedgerPoster -- the only writer of new finance transactions.

Responsibility:
    Given a PostingRequest, inserts exactly one FinanceTransaction row and
    applies exactly one atomic balance change to the target account, both
    inside the caller's database transaction.

Architecture position:
    Kernel > Services -- imperative shell.  Called by the event adapters;
    uses SequenceService for numbering.

Invariants enforced:
    - Idempotency: at most one active transaction per reference key.  The
      pre-check returns the existing row; the partial unique index
      uq_finance_transaction_active_reference catches concurrent inserts.
    - Balance consistency: the account balance changes by
      ``direction * amount`` through ``UPDATE ... SET balance = balance +
      :delta``.  Never read-modify-write.
    - Flush-only: never commits.  If any step fails the caller's rollback
      discards the row and the balance change together.

Failure modes:
    - InvalidAmountError: amount not positive, finite and cent-precise.
    - AccountInactiveError: the account is missing or inactive when the
      balance update runs.
    - TransactionNumberConflictError: allocated numbers kept colliding with
      existing rows after the counter was moved past them.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import PostingRequest, ReferenceKey, TransactionDTO
from ledger_kernel.domain.values import validate_amount
from ledger_kernel.exceptions import AccountInactiveError, TransactionNumberConflictError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import FinanceAccount
from ledger_kernel.models.transaction import FinanceTransaction
from ledger_kernel.selectors.transaction_selector import (
    TransactionSelector,
    active_reference_query,
)
from ledger_kernel.services.sequence_service import SequenceService

logger = get_logger("services.ledger_poster")


class PostingStatus(str, Enum):
    POSTED = "posted"
    ALREADY_POSTED = "already_posted"


@dataclass(frozen=True)
class PostingResult:
    """Result of LedgerPoster.post()."""

    status: PostingStatus
    transaction: TransactionDTO

    @classmethod
    def posted(cls, transaction: TransactionDTO) -> PostingResult:
        return cls(status=PostingStatus.POSTED, transaction=transaction)

    @classmethod
    def existing(cls, transaction: TransactionDTO) -> PostingResult:
        """Idempotent success: the reference was already posted."""
        return cls(status=PostingStatus.ALREADY_POSTED, transaction=transaction)

    @property
    def already_posted(self) -> bool:
        return self.status == PostingStatus.ALREADY_POSTED


def apply_balance_delta(session: Session, account_id: UUID, delta: Decimal) -> None:
    """
    Atomically add ``delta`` to an active account's balance.

    Raises:
        AccountInactiveError: if no active account has ``account_id``.
    """
    result = session.execute(
        update(FinanceAccount)
        .where(
            FinanceAccount.id == account_id,
            FinanceAccount.is_active.is_(True),
        )
        .values(balance=FinanceAccount.balance + delta)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise AccountInactiveError(str(account_id))


class LedgerPoster:
    """
    Posts a single-sided transaction and moves one account balance.

    Contract:
        ``post(request)`` either returns a POSTED result (one new row, one
        balance change) or an ALREADY_POSTED result (no writes at all).
    """

    MAX_NUMBER_ATTEMPTS = 3

    def __init__(
        self,
        session: Session,
        sequence_service: SequenceService,
        clock: Clock | None = None,
    ):
        self._session = session
        self._sequence = sequence_service
        self._transactions = TransactionSelector(session)
        self._clock = clock or SystemClock()

    def post(self, request: PostingRequest) -> PostingResult:
        amount = validate_amount(request.amount)

        existing = self._find_active(request.reference, for_update=True)
        if existing is not None:
            logger.info(
                "posting_already_exists",
                extra={
                    "reference": str(request.reference),
                    "transaction_number": existing.transaction_number,
                },
            )
            return PostingResult.existing(existing.to_dto())

        for attempt in range(1, self.MAX_NUMBER_ATTEMPTS + 1):
            # Allocation shares the savepoint so a losing insert returns its number
            transaction_number = None
            savepoint = self._session.begin_nested()
            try:
                transaction_number = self._sequence.next_number()
                transaction = self._build(request, amount, transaction_number)
                self._session.add(transaction)
                self._session.flush()
                savepoint.commit()
                break
            except IntegrityError as exc:
                savepoint.rollback()
                conflict = exc

            existing = self._find_active(request.reference)
            if existing is not None:
                logger.warning(
                    "concurrent_insert_conflict",
                    extra={
                        "reference": str(request.reference),
                        "transaction_number": existing.transaction_number,
                    },
                )
                return PostingResult.existing(existing.to_dto())

            if transaction_number is None or self._transactions.get_by_number(
                transaction_number
            ) is None:
                raise conflict

            logger.warning(
                "transaction_number_collision",
                extra={
                    "reference": str(request.reference),
                    "transaction_number": transaction_number,
                    "attempt": attempt,
                },
            )
            self._sequence.skip_used_numbers()
        else:
            raise TransactionNumberConflictError(transaction_number)

        apply_balance_delta(self._session, request.account_id, amount * request.signed_direction)
        self._session.flush()

        logger.info(
            "posting_completed",
            extra={
                "transaction_number": transaction_number,
                "reference": str(request.reference),
                "account_id": str(request.account_id),
                "transaction_type": request.transaction_type.value,
                "amount": str(amount),
            },
        )
        return PostingResult.posted(transaction.to_dto())

    def _build(
        self, request: PostingRequest, amount: Decimal, transaction_number: str
    ) -> FinanceTransaction:
        return FinanceTransaction(
            transaction_number=transaction_number,
            transaction_date=request.transaction_date or self._clock.now(),
            transaction_type=request.transaction_type.value,
            account_id=request.account_id,
            category=request.category,
            subcategory=request.subcategory,
            amount=amount,
            description=request.description,
            reference_type=request.reference.reference_type.value,
            reference_id=request.reference.reference_id,
            payment_method=request.payment_method.value if request.payment_method else None,
            contact_id=request.contact_id,
            contact_name=request.contact_name,
            attachments=list(request.attachments) if request.attachments is not None else None,
            notes=request.notes,
            tags=list(request.tags) if request.tags else None,
            status=request.status.value,
            created_by=request.created_by,
            is_active=True,
        )

    def _find_active(
        self, reference: ReferenceKey, for_update: bool = False
    ) -> FinanceTransaction | None:
        stmt = active_reference_query(reference.reference_type, reference.reference_id)
        if for_update:
            stmt = stmt.with_for_update()
        return self._session.execute(
            stmt.execution_options(populate_existing=True)
        ).scalar_one_or_none()
