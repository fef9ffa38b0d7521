"""
Value types shared by models, services and adapters.

Enumerations mirror the column domains of the finance tables.  Amount
validation lives here so every entry point (poster, adapters, HTTP schemas)
applies the same rule.
"""

from decimal import Decimal, InvalidOperation
from enum import Enum

from ledger_kernel.exceptions import InvalidAmountError

CENT = Decimal("0.01")
# Numeric(15, 2) holds 13 integer digits
MAX_AMOUNT = Decimal("9999999999999.99")


class AccountType(str, Enum):
    """Types of accounts in the chart of accounts."""

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"


class TransactionType(str, Enum):
    """Transaction type; determines the sign of the balance effect."""

    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"

    @property
    def direction(self) -> int:
        """+1 for income, -1 for expense, 0 for transfer."""
        if self is TransactionType.INCOME:
            return 1
        if self is TransactionType.EXPENSE:
            return -1
        return 0


class ReferenceType(str, Enum):
    """Kind of business document a transaction points back to."""

    INVOICE = "invoice"
    BILL = "bill"
    ORDER = "order"
    MANUAL = "manual"
    OTHER = "other"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    E_WALLET = "e_wallet"
    OTHER = "other"


class AccountRole(str, Enum):
    """
    Logical accounts the adapters post against.

    Each role is bound to concrete selection criteria (or a fixed account
    number) by the ledger configuration.
    """

    CASH = "CASH"
    BANK = "BANK"
    SALES_REVENUE = "SALES_REVENUE"
    RECEIVABLES = "RECEIVABLES"
    OPERATING_EXPENSE = "OPERATING_EXPENSE"


def cash_or_bank(payment_method: PaymentMethod | str | None) -> AccountRole:
    """CASH for cash payments, BANK for everything else (including unknown)."""
    value = payment_method.value if isinstance(payment_method, PaymentMethod) else payment_method
    return AccountRole.CASH if value == PaymentMethod.CASH.value else AccountRole.BANK


def validate_amount(amount: object) -> Decimal:
    """
    Coerce and check a posting amount.

    Returns:
        The amount as a Decimal.

    Raises:
        InvalidAmountError: if missing, non-numeric, non-finite, not positive,
            or more precise than one cent.
    """
    if amount is None:
        raise InvalidAmountError(amount, "amount is required")
    if isinstance(amount, bool):
        raise InvalidAmountError(amount, "amount must be numeric")
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise InvalidAmountError(amount, "amount must be numeric") from None

    if not value.is_finite():
        raise InvalidAmountError(amount, "amount must be finite")
    if value <= 0:
        raise InvalidAmountError(amount, "amount must be positive")
    if value > MAX_AMOUNT:
        raise InvalidAmountError(amount, "amount exceeds storage precision")
    if value != value.quantize(CENT):
        raise InvalidAmountError(amount, "amount has more than 2 decimal places")
    return value
