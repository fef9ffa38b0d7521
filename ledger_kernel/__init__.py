"""
Ledger Kernel

The posting engine behind the retail suite's finance module:
- Single-sided balance postings from business events
- Atomic balance mutation (no lost updates)
- Locked-counter transaction numbering
- Reference-keyed idempotency and soft-delete reversal
"""

__version__ = "0.1.0"
