"""
UpdatePropagator -- copy descriptive edits from a source document onto its
active finance transaction.

Financial and identity fields are never patched here: amount changes are a
reversal followed by a new posting, and cancellation is the ReversalService's
job.  Balances are never touched.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from ledger_kernel.domain.dtos import TransactionDTO
from ledger_kernel.domain.values import PaymentMethod, ReferenceType, TransactionStatus
from ledger_kernel.exceptions import InvalidPatchError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.selectors.transaction_selector import active_reference_query

logger = get_logger("services.update_propagator")

PATCHABLE_FIELDS = frozenset({
    "description",
    "notes",
    "category",
    "subcategory",
    "contact_name",
    "contact_id",
    "payment_method",
    "transaction_date",
    "attachments",
    "tags",
    "status",
})

PROTECTED_FIELDS = frozenset({
    "amount",
    "account_id",
    "transaction_type",
    "transaction_number",
    "reference_type",
    "reference_id",
    "is_active",
    "created_by",
    "balance",
})


def _coerce(field_name: str, value: Any) -> Any:
    if field_name == "status":
        try:
            status = TransactionStatus(value)
        except ValueError:
            raise InvalidPatchError(field_name, f"unknown status {value!r}") from None
        if status is TransactionStatus.CANCELLED:
            raise InvalidPatchError(field_name, "cancel through reversal instead")
        return status.value

    if field_name == "payment_method":
        if value is None:
            return None
        try:
            return PaymentMethod(value).value
        except ValueError:
            raise InvalidPatchError(field_name, f"unknown payment method {value!r}") from None

    if field_name == "transaction_date":
        if isinstance(value, datetime):
            return value
        try:
            return datetime.fromisoformat(str(value))
        except ValueError:
            raise InvalidPatchError(field_name, f"not an ISO date: {value!r}") from None

    if field_name == "category" and not value:
        raise InvalidPatchError(field_name, "category cannot be empty")

    if field_name in ("attachments", "tags") and value is not None:
        return list(value)

    return value


class UpdatePropagator:
    """Applies whitelisted field changes to an active transaction."""

    def __init__(self, session: Session):
        self._session = session

    def patch(
        self,
        reference_type: ReferenceType | str,
        reference_id: str,
        fields: Mapping[str, Any],
    ) -> TransactionDTO | None:
        """
        Patch the active transaction for a reference key.

        Returns:
            The updated transaction, or None if no active transaction exists.

        Raises:
            InvalidPatchError: unknown field, cancelled status, or a value
                that does not fit the column's domain.  Nothing is written.
        """
        unknown = sorted(set(fields) - PATCHABLE_FIELDS - PROTECTED_FIELDS)
        if unknown:
            raise InvalidPatchError(unknown[0], "unknown field")

        ignored = sorted(set(fields) & PROTECTED_FIELDS)
        changes = {
            name: _coerce(name, value)
            for name, value in fields.items()
            if name in PATCHABLE_FIELDS
        }

        transaction = self._session.execute(
            active_reference_query(reference_type, reference_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if transaction is None:
            return None

        if ignored:
            logger.warning(
                "patch_protected_fields_ignored",
                extra={
                    "transaction_number": transaction.transaction_number,
                    "fields": ignored,
                },
            )

        for name, value in changes.items():
            setattr(transaction, name, value)
        self._session.flush()

        logger.info(
            "patch_applied",
            extra={
                "transaction_number": transaction.transaction_number,
                "fields": sorted(changes),
            },
        )
        return transaction.to_dto()
