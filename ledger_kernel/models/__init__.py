"""ORM models for the ledger kernel."""

from ledger_kernel.models.account import FinanceAccount
from ledger_kernel.models.transaction import FinanceTransaction
from ledger_kernel.models.sequence_counter import SequenceCounter

__all__ = [
    "FinanceAccount",
    "FinanceTransaction",
    "SequenceCounter",
]
