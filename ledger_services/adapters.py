"""
Event adapters -- map one producer event to one ledger posting.

Each adapter knows, for its event variant, which account is settled (cash
or bank by payment method), the direction of the balance effect, the
reference key, and the descriptive defaults shown in the finance UI.  The
posting itself is always done by LedgerPoster.

    SaleCompleted           -> income  on CASH/BANK, reference order:<sale id>
    PurchasePaid (paid)     -> expense on CASH/BANK, reference bill:<po id>
    InvoicePaymentReceived  -> income  on CASH/BANK, reference invoice:<id>
    ExpenseRecorded         -> expense on CASH/BANK, reference manual:<id>

Before posting, each adapter also resolves its counterpart account role
(sales revenue or operating expense).  The counterpart balance is not
moved; a missing counterpart aborts the posting with AccountNotFoundError.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import ClassVar

from ledger_kernel.domain.dtos import AccountDTO, PostingRequest, ReferenceKey, TransactionDTO
from ledger_kernel.domain.events import (
    ExpenseRecorded,
    InvoicePaymentReceived,
    ProducerEvent,
    PurchasePaid,
    SaleCompleted,
)
from ledger_kernel.domain.values import AccountRole, ReferenceType, TransactionType
from ledger_kernel.exceptions import UnsupportedEventError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.selectors.account_directory import AccountDirectory
from ledger_kernel.services.ledger_poster import LedgerPoster

logger = get_logger("services.adapters")

WALK_IN_CUSTOMER = "Walk-in Customer"


@dataclass(frozen=True)
class PostingOutcome:
    """What a producer gets back after its event was posted."""

    transaction: TransactionDTO
    account: AccountDTO
    already_posted: bool = False

    @property
    def account_name(self) -> str:
        return self.account.account_name


class EventAdapter(ABC):
    """
    Base adapter.  Subclasses declare the event class they handle and the
    counterpart role, and build the PostingRequest.
    """

    event_class: ClassVar[type]
    counterpart_role: ClassVar[AccountRole]
    producer: ClassVar[str]

    def __init__(self, directory: AccountDirectory, poster: LedgerPoster):
        self._directory = directory
        self._poster = poster

    @classmethod
    @abstractmethod
    def reference_for(cls, event) -> ReferenceKey:
        """Idempotency key of the posting for this event."""

    def should_post(self, event) -> bool:
        return True

    @abstractmethod
    def build_request(
        self, event, account: AccountDTO, actor_id: str | None
    ) -> PostingRequest:
        ...

    def post(self, event, actor_id: str | None = None) -> PostingOutcome | None:
        """
        Post ``event``.  Returns None when the event does not move money yet.

        Raises:
            AccountNotFoundError: settlement or counterpart account missing.
        """
        if not self.should_post(event):
            logger.info(
                "posting_skipped",
                extra={"event_type": type(event).__name__},
            )
            return None

        self._directory.resolve_role(self.counterpart_role)
        account = self._directory.resolve_settlement_account(event.payment_method)

        result = self._poster.post(self.build_request(event, account, actor_id))

        if result.already_posted and result.transaction.account_id != account.id:
            account = self._directory.get(result.transaction.account_id) or account
        return PostingOutcome(
            transaction=result.transaction,
            account=account,
            already_posted=result.already_posted,
        )


class SaleAdapter(EventAdapter):
    event_class = SaleCompleted
    counterpart_role = AccountRole.SALES_REVENUE
    producer = "pos"

    @classmethod
    def reference_for(cls, event: SaleCompleted) -> ReferenceKey:
        return ReferenceKey(ReferenceType.ORDER, event.sale_id)

    def build_request(
        self, event: SaleCompleted, account: AccountDTO, actor_id: str | None
    ) -> PostingRequest:
        label = event.sale_number or event.sale_id
        return PostingRequest(
            account_id=account.id,
            amount=event.amount,
            transaction_type=TransactionType.INCOME,
            reference=self.reference_for(event),
            category="Sales",
            subcategory="POS Sales",
            transaction_date=event.occurred_at,
            description=f"Penjualan POS - {label}",
            payment_method=event.payment_method,
            contact_name=event.customer_name or WALK_IN_CUSTOMER,
            contact_id=event.customer_id,
            notes="Auto-generated from POS transaction",
            created_by=actor_id,
        )


class PurchaseAdapter(EventAdapter):
    event_class = PurchasePaid
    counterpart_role = AccountRole.OPERATING_EXPENSE
    producer = "purchasing"

    @classmethod
    def reference_for(cls, event: PurchasePaid) -> ReferenceKey:
        return ReferenceKey(ReferenceType.BILL, event.purchase_order_id)

    def should_post(self, event: PurchasePaid) -> bool:
        # Unpaid orders have not moved money; they post when paid
        return event.is_paid

    def build_request(
        self, event: PurchasePaid, account: AccountDTO, actor_id: str | None
    ) -> PostingRequest:
        label = event.po_number or event.purchase_order_id
        return PostingRequest(
            account_id=account.id,
            amount=event.amount,
            transaction_type=TransactionType.EXPENSE,
            reference=self.reference_for(event),
            category="Operating",
            subcategory="Inventory Purchase",
            transaction_date=event.order_date,
            description=f"Pembelian Inventory - {label}",
            payment_method=event.payment_method,
            contact_name=event.supplier_name,
            contact_id=event.supplier_id,
            notes="Auto-generated from Purchase Order",
            created_by=actor_id,
        )


class InvoicePaymentAdapter(EventAdapter):
    event_class = InvoicePaymentReceived
    counterpart_role = AccountRole.SALES_REVENUE
    producer = "invoicing"

    @classmethod
    def reference_for(cls, event: InvoicePaymentReceived) -> ReferenceKey:
        return ReferenceKey(ReferenceType.INVOICE, event.reference_id)

    def build_request(
        self, event: InvoicePaymentReceived, account: AccountDTO, actor_id: str | None
    ) -> PostingRequest:
        label = event.invoice_number or event.invoice_id
        return PostingRequest(
            account_id=account.id,
            amount=event.amount,
            transaction_type=TransactionType.INCOME,
            reference=self.reference_for(event),
            category="Sales",
            subcategory="Invoice Payment",
            transaction_date=event.payment_date,
            description=f"Pembayaran Invoice - {label}",
            payment_method=event.payment_method,
            contact_name=event.customer_name,
            contact_id=event.customer_id,
            notes="Auto-generated from Invoice payment",
            created_by=actor_id,
        )


class ExpenseAdapter(EventAdapter):
    event_class = ExpenseRecorded
    counterpart_role = AccountRole.OPERATING_EXPENSE
    producer = "expenses"

    @classmethod
    def reference_for(cls, event: ExpenseRecorded) -> ReferenceKey:
        return ReferenceKey(ReferenceType.MANUAL, event.expense_id)

    def build_request(
        self, event: ExpenseRecorded, account: AccountDTO, actor_id: str | None
    ) -> PostingRequest:
        return PostingRequest(
            account_id=account.id,
            amount=event.amount,
            transaction_type=TransactionType.EXPENSE,
            reference=self.reference_for(event),
            category=event.category or "Operating",
            subcategory=event.subcategory,
            transaction_date=event.expense_date,
            description=event.description or f"Pengeluaran - {event.category}",
            payment_method=event.payment_method,
            contact_name=event.vendor,
            notes=event.notes,
            attachments=event.attachments,
            created_by=actor_id,
        )


ADAPTERS: tuple[type[EventAdapter], ...] = (
    SaleAdapter,
    PurchaseAdapter,
    InvoicePaymentAdapter,
    ExpenseAdapter,
)


def adapter_class_for(event: ProducerEvent) -> type[EventAdapter]:
    """
    Pick the adapter registered for the class of ``event``.

    Raises:
        UnsupportedEventError: no adapter handles this event type.
    """
    for adapter_class in ADAPTERS:
        if isinstance(event, adapter_class.event_class):
            return adapter_class
    raise UnsupportedEventError(type(event).__name__)


def adapter_for(
    event: ProducerEvent, directory: AccountDirectory, poster: LedgerPoster
) -> EventAdapter:
    return adapter_class_for(event)(directory, poster)
