"""Read-only query selectors for the ledger kernel."""

from ledger_kernel.selectors.account_directory import AccountDirectory
from ledger_kernel.selectors.transaction_selector import (
    TransactionSelector,
    active_reference_query,
)

__all__ = [
    "AccountDirectory",
    "TransactionSelector",
    "active_reference_query",
]
