"""
Data transfer objects passed between adapters, selectors and services.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from ledger_kernel.domain.values import (
    AccountType,
    PaymentMethod,
    ReferenceType,
    TransactionStatus,
    TransactionType,
)


@dataclass(frozen=True)
class AccountCriteria:
    """Selection criteria for the Account Directory."""

    account_type: AccountType | None = None
    category: str | None = None
    account_number: str | None = None
    must_be_active: bool = True

    def describe(self) -> str:
        parts = []
        if self.account_number is not None:
            parts.append(f"number={self.account_number}")
        if self.account_type is not None:
            parts.append(f"type={self.account_type.value}")
        if self.category is not None:
            parts.append(f"category={self.category}")
        if self.must_be_active:
            parts.append("active")
        return ", ".join(parts) or "any"


@dataclass(frozen=True)
class ReferenceKey:
    """(reference type, reference id): the idempotency key of a posting."""

    reference_type: ReferenceType
    reference_id: str

    def __str__(self) -> str:
        return f"{self.reference_type.value}:{self.reference_id}"


@dataclass(frozen=True)
class PostingRequest:
    """
    Normalized input to the Ledger Poster.

    ``transaction_type`` fixes the direction of the balance effect:
    income increases the account balance, expense decreases it.
    """

    account_id: UUID
    amount: Decimal
    transaction_type: TransactionType
    reference: ReferenceKey
    category: str
    transaction_date: datetime | None = None
    subcategory: str | None = None
    description: str | None = None
    payment_method: PaymentMethod | None = None
    contact_name: str | None = None
    contact_id: str | None = None
    notes: str | None = None
    attachments: tuple[Any, ...] | None = None
    status: TransactionStatus = TransactionStatus.COMPLETED
    created_by: str | None = None
    tags: tuple[str, ...] = field(default_factory=tuple)

    @property
    def signed_direction(self) -> int:
        return self.transaction_type.direction


@dataclass(frozen=True)
class TransactionDTO:
    """Read-only snapshot of a finance transaction row."""

    id: UUID
    transaction_number: str
    transaction_date: datetime
    transaction_type: TransactionType
    account_id: UUID
    category: str
    subcategory: str | None
    amount: Decimal
    description: str | None
    reference_type: ReferenceType | None
    reference_id: str | None
    payment_method: PaymentMethod | None
    contact_name: str | None
    contact_id: str | None
    notes: str | None
    status: TransactionStatus
    is_active: bool
    created_by: str | None


@dataclass(frozen=True)
class AccountDTO:
    """Read-only snapshot of a finance account row."""

    id: UUID
    account_number: str
    account_name: str
    account_type: AccountType
    category: str | None
    balance: Decimal
    currency: str
    is_active: bool
