"""
Ledger kernel services.

All services are flush-only and take a caller-owned Session; ``run_atomic``
is the single commit point.
"""

from ledger_kernel.services.atomic import run_atomic
from ledger_kernel.services.ledger_poster import (
    LedgerPoster,
    PostingResult,
    PostingStatus,
    apply_balance_delta,
)
from ledger_kernel.services.reversal_service import ReversalService
from ledger_kernel.services.sequence_service import SequenceService
from ledger_kernel.services.update_propagator import UpdatePropagator

__all__ = [
    "LedgerPoster",
    "PostingResult",
    "PostingStatus",
    "ReversalService",
    "SequenceService",
    "UpdatePropagator",
    "apply_balance_delta",
    "run_atomic",
]
