"""
Integration entrypoint for producer modules (POS, purchasing, invoicing,
expenses) and for the HTTP layer.

``FinanceIntegrationService`` turns one business event into one committed
ledger posting.  Each call runs in its own atomic unit (see
``ledger_kernel.services.atomic.run_atomic``) with the log context bound to
a fresh correlation id and the event's reference key.

Usage:

    from ledger_config import get_active_config
    from ledger_kernel.db import get_session_factory
    from ledger_services.integration import FinanceIntegrationService

    integration = FinanceIntegrationService(get_session_factory(), get_active_config())
    outcome = integration.post_sale(
        SaleCompleted(sale_id="S-1", amount=Decimal("150000"), payment_method="cash"),
        actor_id="cashier-7",
    )
    outcome.transaction.transaction_number   # "TRX-2026-001"

Producers whose own business event must never fail because of the ledger
wrap the call:

    integration.post_quietly(integration.post_sale, sale, actor_id)
"""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping
from typing import Any
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ledger_config import LedgerConfig, get_active_config
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import TransactionDTO
from ledger_kernel.domain.events import (
    ExpenseRecorded,
    InvoicePaymentReceived,
    ProducerEvent,
    PurchasePaid,
    SaleCompleted,
)
from ledger_kernel.domain.values import ReferenceType
from ledger_kernel.exceptions import LedgerError, UnsupportedEventError, ValidationError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.selectors.account_directory import AccountDirectory
from ledger_kernel.services.atomic import run_atomic
from ledger_kernel.services.ledger_poster import LedgerPoster
from ledger_kernel.services.reversal_service import ReversalService
from ledger_kernel.services.sequence_service import SequenceService
from ledger_kernel.services.update_propagator import UpdatePropagator
from ledger_services.adapters import PostingOutcome, adapter_class_for

logger = get_logger("services.integration")


def _reference_type(value: ReferenceType | str) -> ReferenceType:
    try:
        return ReferenceType(value)
    except ValueError:
        raise ValidationError(f"Unknown reference type: {value}") from None


class FinanceIntegrationService:
    """
    Producer-facing facade over the ledger kernel.

    Contract:
        - ``post_*`` commit exactly one posting (or none for an unpaid
          purchase) and raise LedgerError subclasses on failure.
        - Calling a ``post_*`` method again for the same source document
          returns the existing transaction with ``already_posted=True``.
        - ``update_...`` / ``delete_...`` return None / False when the
          source document has no active transaction.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        config: LedgerConfig | None = None,
        clock: Clock | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._session_factory = session_factory
        self._config = config or get_active_config()
        self._clock = clock or SystemClock()
        self._sleep = sleep
        self._role_criteria = self._config.role_criteria()

    @property
    def config(self) -> LedgerConfig:
        return self._config

    # ------------------------------------------------------------------
    # Posting
    # ------------------------------------------------------------------

    def post_sale(self, event: SaleCompleted, actor_id: str | None = None) -> PostingOutcome:
        return self._post(SaleCompleted, event, actor_id)

    def post_purchase(
        self, event: PurchasePaid, actor_id: str | None = None
    ) -> PostingOutcome | None:
        return self._post(PurchasePaid, event, actor_id)

    def post_invoice_payment(
        self, event: InvoicePaymentReceived, actor_id: str | None = None
    ) -> PostingOutcome:
        return self._post(InvoicePaymentReceived, event, actor_id)

    def post_expense(self, event: ExpenseRecorded, actor_id: str | None = None) -> PostingOutcome:
        return self._post(ExpenseRecorded, event, actor_id)

    def post_event(
        self, event: ProducerEvent, actor_id: str | None = None
    ) -> PostingOutcome | None:
        """Dispatch any producer event to its adapter."""
        adapter_class = adapter_class_for(event)
        reference = adapter_class.reference_for(event)

        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=actor_id,
            producer=adapter_class.producer,
            reference_type=reference.reference_type.value,
            reference_id=reference.reference_id,
        ):
            logger.info(
                "posting_started",
                extra={"event_type": type(event).__name__, "amount": str(event.amount)},
            )

            def work(session: Session) -> PostingOutcome | None:
                directory = AccountDirectory(session, self._role_criteria)
                poster = LedgerPoster(session, self._sequence_service(session), self._clock)
                return adapter_class(directory, poster).post(event, actor_id)

            return self._run(work, operation=f"post_{type(event).__name__}")

    def post_quietly(
        self,
        post_fn: Callable[[Any, str | None], PostingOutcome | None],
        event: ProducerEvent,
        actor_id: str | None = None,
    ) -> PostingOutcome | None:
        """
        Run ``post_fn(event, actor_id)`` without ever raising.

        Failures are logged as ``ledger_posting_failed`` and reported as None
        so the producer's own business event is never blocked.
        """
        try:
            return post_fn(event, actor_id)
        except (LedgerError, SQLAlchemyError) as exc:
            try:
                reference = str(adapter_class_for(event).reference_for(event))
            except UnsupportedEventError:
                reference = None
            logger.error(
                "ledger_posting_failed",
                extra={
                    "event_type": type(event).__name__,
                    "reference": reference,
                    "error_code": getattr(exc, "code", type(exc).__name__),
                    "error": str(exc),
                },
            )
            return None

    # ------------------------------------------------------------------
    # Source document changes
    # ------------------------------------------------------------------

    def update_finance_transaction_from_source(
        self,
        reference_type: ReferenceType | str,
        reference_id: str,
        updates: Mapping[str, Any],
    ) -> TransactionDTO | None:
        """Propagate descriptive edits of a source document to its transaction."""
        ref_type = _reference_type(reference_type)
        with LogContext.bind(
            correlation_id=str(uuid4()),
            reference_type=ref_type.value,
            reference_id=reference_id,
        ):
            result = self._run(
                lambda session: UpdatePropagator(session).patch(ref_type, reference_id, updates),
                operation="update_finance_transaction_from_source",
            )
            if result is None:
                logger.info("patch_target_not_found")
            return result

    def delete_finance_transaction_from_source(
        self,
        reference_type: ReferenceType | str,
        reference_id: str,
    ) -> bool:
        """Reverse the transaction of a cancelled source document."""
        ref_type = _reference_type(reference_type)
        with LogContext.bind(
            correlation_id=str(uuid4()),
            reference_type=ref_type.value,
            reference_id=reference_id,
        ):
            return self._run(
                lambda session: ReversalService(session).reverse(ref_type, reference_id),
                operation="delete_finance_transaction_from_source",
            )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _post(self, expected: type, event: ProducerEvent, actor_id: str | None):
        if not isinstance(event, expected):
            raise UnsupportedEventError(type(event).__name__)
        return self.post_event(event, actor_id)

    def _sequence_service(self, session: Session) -> SequenceService:
        numbering = self._config.numbering
        return SequenceService(
            session,
            self._clock,
            prefix=numbering.prefix,
            width=numbering.width,
            reset_yearly=numbering.reset_yearly,
        )

    def _run(self, work, *, operation: str):
        return run_atomic(
            self._session_factory,
            work,
            operation=operation,
            max_attempts=self._config.retry.max_attempts,
            backoff_seconds=self._config.retry.backoff_seconds,
            sleep=self._sleep,
        )
