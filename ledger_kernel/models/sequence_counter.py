"""
Module: ledger_kernel.models.sequence_counter
Responsibility: Locked counter rows backing transaction numbering.

Each row is a named sequence with its current value.  SequenceService locks
the row (SELECT ... FOR UPDATE) before incrementing it; aggregate
max-plus-one over finance_transactions is never used.
"""

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import Base


class SequenceCounter(Base):
    """Sequence counter table."""

    __tablename__ = "sequence_counters"

    # e.g. "finance_transaction" or "finance_transaction:2026"
    name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
    )

    current_value: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )
