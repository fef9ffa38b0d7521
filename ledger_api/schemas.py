"""
Request and response bodies for the finance integration endpoints.

Producers send camelCase JSON.  Request models accept either ``totalAmount``
or ``total`` and reject a missing, non-numeric or non-positive amount before
any account lookup happens.  ``to_event()`` converts a validated body into
the corresponding producer event.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, field_validator, model_validator
from pydantic.alias_generators import to_camel

from ledger_kernel.domain.events import InvoicePaymentReceived, PurchasePaid, SaleCompleted
from ledger_kernel.domain.values import PaymentMethod, validate_amount
from ledger_kernel.exceptions import InvalidAmountError


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )


def _checked_amount(value: Decimal | None) -> Decimal | None:
    if value is None:
        return None
    try:
        return validate_amount(value)
    except InvalidAmountError as exc:
        raise ValueError(exc.reason) from None


class _TotalAmountBody(CamelModel):
    """Source documents that send ``totalAmount`` or the legacy ``total``."""

    id: str | None = None
    total_amount: Decimal | None = None
    total: Decimal | None = None
    payment_method: PaymentMethod | None = None

    @field_validator("total_amount", "total")
    @classmethod
    def check_amount(cls, value: Decimal | None) -> Decimal | None:
        return _checked_amount(value)

    @model_validator(mode="after")
    def require_amount(self):
        if self.total_amount is None and self.total is None:
            raise ValueError("totalAmount is required")
        return self

    @property
    def amount(self) -> Decimal:
        return self.total_amount if self.total_amount is not None else self.total


# ---------------------------------------------------------------------------
# POST /sale-completed
# ---------------------------------------------------------------------------


class PosTransactionBody(_TotalAmountBody):
    transaction_number: str | None = None
    customer_name: str | None = None
    customer_id: str | None = None
    created_at: datetime | None = None

    @model_validator(mode="after")
    def require_source_id(self):
        if not (self.id or self.transaction_number):
            raise ValueError("id or transactionNumber is required")
        return self


class SaleCompletedRequest(CamelModel):
    pos_transaction: PosTransactionBody

    def to_event(self) -> SaleCompleted:
        pos = self.pos_transaction
        return SaleCompleted(
            sale_id=pos.id or pos.transaction_number,
            amount=pos.amount,
            payment_method=pos.payment_method or PaymentMethod.CASH,
            sale_number=pos.transaction_number,
            customer_name=pos.customer_name,
            customer_id=pos.customer_id,
            occurred_at=pos.created_at,
        )


# ---------------------------------------------------------------------------
# POST /purchase-paid
# ---------------------------------------------------------------------------


class PurchaseOrderBody(_TotalAmountBody):
    payment_status: str
    po_number: str | None = None
    supplier_name: str | None = None
    supplier_id: str | None = None
    order_date: datetime | None = None

    @model_validator(mode="after")
    def require_source_id(self):
        if not (self.id or self.po_number):
            raise ValueError("id or poNumber is required")
        return self


class PurchasePaidRequest(CamelModel):
    purchase_order: PurchaseOrderBody

    def to_event(self) -> PurchasePaid:
        po = self.purchase_order
        return PurchasePaid(
            purchase_order_id=po.id or po.po_number,
            amount=po.amount,
            payment_status=po.payment_status,
            payment_method=po.payment_method or PaymentMethod.BANK_TRANSFER,
            po_number=po.po_number,
            supplier_name=po.supplier_name,
            supplier_id=po.supplier_id,
            order_date=po.order_date,
        )


# ---------------------------------------------------------------------------
# POST /invoice-payment
# ---------------------------------------------------------------------------


class InvoiceBody(CamelModel):
    id: str
    invoice_number: str | None = None
    customer_name: str | None = None
    customer_id: str | None = None


class PaymentBody(CamelModel):
    id: str | None = None
    amount: Decimal
    payment_method: PaymentMethod | None = None
    payment_date: datetime | None = None

    @field_validator("amount")
    @classmethod
    def check_amount(cls, value: Decimal) -> Decimal:
        return _checked_amount(value)


class InvoicePaymentRequest(CamelModel):
    invoice: InvoiceBody
    payment: PaymentBody

    def to_event(self) -> InvoicePaymentReceived:
        return InvoicePaymentReceived(
            invoice_id=self.invoice.id,
            amount=self.payment.amount,
            payment_method=self.payment.payment_method,
            invoice_number=self.invoice.invoice_number,
            customer_name=self.invoice.customer_name,
            customer_id=self.invoice.customer_id,
            payment_id=self.payment.id,
            payment_date=self.payment.payment_date,
        )


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class PostingResponse(CamelModel):
    finance_transaction_id: str | None = None
    transaction_number: str | None = None
    amount: float
    status: str
    account_updated: str | None = None
    already_posted: bool = False


class InvoicePaymentResponse(CamelModel):
    finance_transaction_id: str
    transaction_number: str
    amount: float
    accounts_updated: list[str]
    already_posted: bool = False
