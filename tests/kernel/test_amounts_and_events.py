"""
Amount validation and producer event construction.

Every entry point funnels amounts through validate_amount, so a producer
event that exists is always postable.
"""

from decimal import Decimal

import pytest

from ledger_kernel.domain.dtos import AccountCriteria, PostingRequest, ReferenceKey
from ledger_kernel.domain.events import (
    ExpenseRecorded,
    InvoicePaymentReceived,
    PurchasePaid,
    SaleCompleted,
)
from ledger_kernel.domain.values import (
    AccountRole,
    AccountType,
    PaymentMethod,
    ReferenceType,
    TransactionType,
    cash_or_bank,
    validate_amount,
)
from ledger_kernel.exceptions import InvalidAmountError


class TestValidateAmount:

    @pytest.mark.parametrize("raw, expected", [
        (150000, Decimal("150000")),
        ("150000.50", Decimal("150000.50")),
        (Decimal("0.01"), Decimal("0.01")),
        (12.5, Decimal("12.5")),
    ])
    def test_accepts_positive_cent_amounts(self, raw, expected):
        assert validate_amount(raw) == expected

    @pytest.mark.parametrize("raw, reason", [
        (None, "amount is required"),
        (0, "amount must be positive"),
        (-10, "amount must be positive"),
        ("abc", "amount must be numeric"),
        (True, "amount must be numeric"),
        (Decimal("NaN"), "amount must be finite"),
        (float("inf"), "amount must be finite"),
        (Decimal("10.005"), "amount has more than 2 decimal places"),
        (Decimal("10000000000000"), "amount exceeds storage precision"),
    ])
    def test_rejects_invalid_amounts(self, raw, reason):
        with pytest.raises(InvalidAmountError) as exc_info:
            validate_amount(raw)
        assert exc_info.value.reason == reason
        assert exc_info.value.code == "INVALID_AMOUNT"


class TestCashOrBank:

    def test_cash_goes_to_cash(self):
        assert cash_or_bank(PaymentMethod.CASH) is AccountRole.CASH
        assert cash_or_bank("cash") is AccountRole.CASH

    @pytest.mark.parametrize("method", [
        PaymentMethod.BANK_TRANSFER, PaymentMethod.CREDIT_CARD, "e_wallet", None,
    ])
    def test_everything_else_goes_to_bank(self, method):
        assert cash_or_bank(method) is AccountRole.BANK


class TestTransactionDirection:

    def test_direction_by_type(self):
        assert TransactionType.INCOME.direction == 1
        assert TransactionType.EXPENSE.direction == -1
        assert TransactionType.TRANSFER.direction == 0

    def test_posting_request_signed_direction(self):
        request = PostingRequest(
            account_id=None,
            amount=Decimal("50000"),
            transaction_type=TransactionType.EXPENSE,
            reference=ReferenceKey(ReferenceType.BILL, "PO-1"),
            category="Operating",
        )
        assert request.signed_direction == -1


class TestProducerEvents:

    def test_sale_defaults_to_cash(self):
        sale = SaleCompleted(sale_id="S-1", amount=150000)
        assert sale.payment_method is PaymentMethod.CASH
        assert sale.amount == Decimal("150000")

    def test_sale_payment_method_string_coerced(self):
        sale = SaleCompleted(sale_id="S-1", amount=10, payment_method="debit_card")
        assert sale.payment_method is PaymentMethod.DEBIT_CARD

    def test_unknown_payment_method_rejected(self):
        with pytest.raises(ValueError):
            SaleCompleted(sale_id="S-1", amount=10, payment_method="barter")

    def test_sale_requires_id(self):
        with pytest.raises(ValueError, match="sale_id is required"):
            SaleCompleted(sale_id="  ", amount=10)

    def test_sale_rejects_bad_amount(self):
        with pytest.raises(InvalidAmountError):
            SaleCompleted(sale_id="S-1", amount=-5)

    def test_purchase_defaults_to_bank_transfer(self):
        purchase = PurchasePaid(purchase_order_id="PO-1", amount=50000, payment_status="paid")
        assert purchase.payment_method is PaymentMethod.BANK_TRANSFER
        assert purchase.is_paid

    @pytest.mark.parametrize("status, paid", [
        ("paid", True), ("PAID", True), ("unpaid", False), ("partial", False), ("", False),
    ])
    def test_purchase_is_paid(self, status, paid):
        purchase = PurchasePaid(purchase_order_id="PO-1", amount=1, payment_status=status)
        assert purchase.is_paid is paid

    def test_invoice_reference_id_with_installment(self):
        payment = InvoicePaymentReceived(invoice_id="INV-1", amount=100, payment_id="PAY-2")
        assert payment.reference_id == "INV-1:PAY-2"

    def test_invoice_reference_id_without_installment(self):
        payment = InvoicePaymentReceived(invoice_id="INV-1", amount=100)
        assert payment.reference_id == "INV-1"

    def test_expense_attachments_frozen(self):
        expense = ExpenseRecorded(expense_id="EXP-1", amount=75000, attachments=["a.pdf"])
        assert expense.attachments == ("a.pdf",)
        assert expense.category == "Operating"


class TestAccountCriteria:

    def test_describe(self):
        criteria = AccountCriteria(account_type=AccountType.REVENUE, category="Sales")
        assert criteria.describe() == "type=revenue, category=Sales, active"

    def test_describe_by_number(self):
        criteria = AccountCriteria(account_number="1-1001", must_be_active=False)
        assert criteria.describe() == "number=1-1001"
