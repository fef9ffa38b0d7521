"""Producer-facing integration services built on the ledger kernel."""

from ledger_services.adapters import (
    ExpenseAdapter,
    InvoicePaymentAdapter,
    PostingOutcome,
    PurchaseAdapter,
    SaleAdapter,
    adapter_for,
)
from ledger_services.integration import FinanceIntegrationService

__all__ = [
    "ExpenseAdapter",
    "FinanceIntegrationService",
    "InvoicePaymentAdapter",
    "PostingOutcome",
    "PurchaseAdapter",
    "SaleAdapter",
    "adapter_for",
]
