"""
Typed Exception Hierarchy for the Ledger Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Producers (POS checkout, purchasing, invoicing, expenses) and the HTTP layer
need to react to ledger failures by category, not by message text:

  - a missing account is a configuration problem (alert, do not retry)
  - a bad amount is the caller's fault (reject at the boundary)
  - a concurrent-write conflict is transient (retry locally)

Every exception therefore has a TYPED class, a machine-readable CODE class
attribute, and carries its context as structured attributes.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LedgerError (base)
    |
    +-- AccountError
    |   +-- AccountNotFoundError
    |   +-- AccountInactiveError
    |
    +-- ValidationError
    |   +-- InvalidAmountError
    |   +-- InvalidPatchError
    |   +-- UnsupportedEventError
    |
    +-- ConcurrencyError
    |   +-- TransactionNumberConflictError
    |   +-- TransientPostingError
    |
    +-- ConfigurationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                         | When Raised
----------------|------------------------------|----------------------------------------
Account         | ACCOUNT_NOT_FOUND            | No active account matches the criteria
                | ACCOUNT_INACTIVE             | Target account deactivated mid-posting
----------------|------------------------------|----------------------------------------
Validation      | INVALID_AMOUNT               | Amount missing, <= 0, NaN or too precise
                | INVALID_PATCH                | Unknown field or forbidden status patch
                | UNSUPPORTED_EVENT            | No adapter for the event variant
----------------|------------------------------|----------------------------------------
Concurrency     | TRANSACTION_NUMBER_CONFLICT  | Number collided with an existing row
                | TRANSIENT_FAILURE            | Conflicts persisted after all retries
----------------|------------------------------|----------------------------------------
Configuration   | CONFIGURATION_ERROR          | Ledger YAML missing or malformed

===============================================================================
HANDLING PATTERNS
===============================================================================

1. NOT-FOUND IS NOT AN ERROR: reversing or patching a reference with no
   active transaction returns False / None.

2. PRODUCERS MUST NOT FAIL THEIR OWN EVENT:

    outcome = integration.post_quietly(integration.post_sale, sale, actor_id)
    # None on failure, already logged as ledger_posting_failed

3. CONCURRENCY ERRORS ARE RETRIED BY THE ATOMIC RUNNER; callers only ever
   see TransientPostingError.
===============================================================================
"""


class LedgerError(Exception):
    """
    Base exception for all ledger kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "LEDGER_ERROR"


# Account-related exceptions


class AccountError(LedgerError):
    """Base exception for account-related errors."""

    code: str = "ACCOUNT_ERROR"


class AccountNotFoundError(AccountError):
    """No active account satisfies the selection criteria."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, criteria: str):
        self.criteria = criteria
        super().__init__(f"Account not found: {criteria}")


class AccountInactiveError(AccountError):
    """Account was deactivated between resolution and the balance update."""

    code: str = "ACCOUNT_INACTIVE"

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Account is inactive or missing: {account_id}")


# Validation exceptions


class ValidationError(LedgerError):
    """Base exception for rejected input."""

    code: str = "VALIDATION_ERROR"


class InvalidAmountError(ValidationError):
    """Posting amount is not a positive, finite, cent-precise decimal."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, amount: object, reason: str):
        self.amount = str(amount)
        self.reason = reason
        super().__init__(f"Invalid amount {amount!r}: {reason}")


class InvalidPatchError(ValidationError):
    """Patch request names a field the Update Propagator cannot change."""

    code: str = "INVALID_PATCH"

    def __init__(self, field_name: str, reason: str):
        self.field_name = field_name
        self.reason = reason
        super().__init__(f"Cannot patch field '{field_name}': {reason}")


class UnsupportedEventError(ValidationError):
    """No adapter is registered for the given event variant."""

    code: str = "UNSUPPORTED_EVENT"

    def __init__(self, event_type: str):
        self.event_type = event_type
        super().__init__(f"No ledger adapter for event type: {event_type}")


# Concurrency-related exceptions


class ConcurrencyError(LedgerError):
    """Base exception for concurrent-write conflicts."""

    code: str = "CONCURRENCY_ERROR"


class TransactionNumberConflictError(ConcurrencyError):
    """Allocated transaction number already exists in storage."""

    code: str = "TRANSACTION_NUMBER_CONFLICT"

    def __init__(self, transaction_number: str):
        self.transaction_number = transaction_number
        super().__init__(
            f"Transaction number {transaction_number} is already taken"
        )


class TransientPostingError(ConcurrencyError):
    """Conflicts persisted after every retry attempt was used."""

    code: str = "TRANSIENT_FAILURE"

    def __init__(self, operation: str, attempts: int, last_error: str):
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"{operation} failed after {attempts} attempts: {last_error}"
        )


# Configuration exceptions


class ConfigurationError(LedgerError):
    """Ledger configuration is missing or malformed."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, message: str, source: str | None = None):
        self.source = source
        super().__init__(f"{message} ({source})" if source else message)
