"""
Producer event variants.

One frozen dataclass per business event that moves money.  Producers (or the
HTTP boundary) normalize their payloads into these once; adapters never see
loosely shaped dicts or alternate field names.

Each variant validates its amount and source id on construction, so an
instance that exists is always postable.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from ledger_kernel.domain.values import PaymentMethod, validate_amount


def _require_id(value: object, field_name: str) -> str:
    if value is None or str(value).strip() == "":
        raise ValueError(f"{field_name} is required")
    return str(value)


def _payment_method(value: object, default: PaymentMethod | None) -> PaymentMethod | None:
    if value is None or value == "":
        return default
    return PaymentMethod(value)


@dataclass(frozen=True)
class SaleCompleted:
    """A POS sale reached completion."""

    sale_id: str
    amount: Decimal
    payment_method: PaymentMethod = PaymentMethod.CASH
    sale_number: str | None = None
    customer_name: str | None = None
    customer_id: str | None = None
    occurred_at: datetime | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "sale_id", _require_id(self.sale_id, "sale_id"))
        object.__setattr__(self, "amount", validate_amount(self.amount))
        object.__setattr__(
            self, "payment_method", _payment_method(self.payment_method, PaymentMethod.CASH)
        )


@dataclass(frozen=True)
class PurchasePaid:
    """A purchase order changed payment state (posted only once paid)."""

    purchase_order_id: str
    amount: Decimal
    payment_status: str
    payment_method: PaymentMethod = PaymentMethod.BANK_TRANSFER
    po_number: str | None = None
    supplier_name: str | None = None
    supplier_id: str | None = None
    order_date: datetime | None = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "purchase_order_id",
            _require_id(self.purchase_order_id, "purchase_order_id"),
        )
        object.__setattr__(self, "amount", validate_amount(self.amount))
        object.__setattr__(
            self,
            "payment_method",
            _payment_method(self.payment_method, PaymentMethod.BANK_TRANSFER),
        )

    @property
    def is_paid(self) -> bool:
        return (self.payment_status or "").lower() == "paid"


@dataclass(frozen=True)
class InvoicePaymentReceived:
    """A payment (possibly one of several installments) against an invoice."""

    invoice_id: str
    amount: Decimal
    payment_method: PaymentMethod | None = None
    invoice_number: str | None = None
    customer_name: str | None = None
    customer_id: str | None = None
    payment_id: str | None = None
    payment_date: datetime | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "invoice_id", _require_id(self.invoice_id, "invoice_id"))
        object.__setattr__(self, "amount", validate_amount(self.amount))
        object.__setattr__(self, "payment_method", _payment_method(self.payment_method, None))

    @property
    def reference_id(self) -> str:
        # Installments of one invoice each need their own idempotency key
        if self.payment_id:
            return f"{self.invoice_id}:{self.payment_id}"
        return self.invoice_id


@dataclass(frozen=True)
class ExpenseRecorded:
    """An operating expense was recorded."""

    expense_id: str
    amount: Decimal
    payment_method: PaymentMethod | None = None
    category: str = "Operating"
    subcategory: str | None = None
    description: str | None = None
    vendor: str | None = None
    notes: str | None = None
    expense_date: datetime | None = None
    attachments: tuple[Any, ...] | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "expense_id", _require_id(self.expense_id, "expense_id"))
        object.__setattr__(self, "amount", validate_amount(self.amount))
        object.__setattr__(self, "payment_method", _payment_method(self.payment_method, None))
        if self.attachments is not None:
            object.__setattr__(self, "attachments", tuple(self.attachments))


ProducerEvent = SaleCompleted | PurchasePaid | InvoicePaymentReceived | ExpenseRecorded
