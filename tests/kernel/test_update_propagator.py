"""UpdatePropagator: descriptive fields only, balances never touched."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from ledger_kernel.domain.dtos import PostingRequest, ReferenceKey
from ledger_kernel.domain.values import (
    PaymentMethod,
    ReferenceType,
    TransactionStatus,
    TransactionType,
)
from ledger_kernel.exceptions import InvalidPatchError
from ledger_kernel.selectors.account_directory import AccountDirectory
from ledger_kernel.services.ledger_poster import LedgerPoster
from ledger_kernel.services.reversal_service import ReversalService
from ledger_kernel.services.sequence_service import SequenceService
from ledger_kernel.services.update_propagator import UpdatePropagator


@pytest.fixture
def posted_sale(session, deterministic_clock, standard_accounts):
    poster = LedgerPoster(session, SequenceService(session, deterministic_clock), deterministic_clock)
    return poster.post(PostingRequest(
        account_id=standard_accounts["cash"].id,
        amount=Decimal("150000"),
        transaction_type=TransactionType.INCOME,
        reference=ReferenceKey(ReferenceType.ORDER, "S-1"),
        category="Sales",
        subcategory="POS Sales",
        description="Penjualan POS - S-1",
        payment_method=PaymentMethod.CASH,
    )).transaction


class TestPatch:

    def test_descriptive_fields_updated(self, session, posted_sale):
        updated = UpdatePropagator(session).patch(ReferenceType.ORDER, "S-1", {
            "description": "Penjualan POS - S-1 (koreksi)",
            "notes": "customer asked for receipt",
            "contact_name": "Budi",
            "payment_method": "debit_card",
        })

        assert updated.id == posted_sale.id
        assert updated.description == "Penjualan POS - S-1 (koreksi)"
        assert updated.notes == "customer asked for receipt"
        assert updated.contact_name == "Budi"
        assert updated.payment_method is PaymentMethod.DEBIT_CARD

    def test_status_can_move_to_pending(self, session, posted_sale):
        updated = UpdatePropagator(session).patch("order", "S-1", {"status": "pending"})
        assert updated.status is TransactionStatus.PENDING

    def test_iso_transaction_date_accepted(self, session, posted_sale):
        occurred = datetime(2026, 1, 14, 17, 0, tzinfo=timezone.utc)
        updated = UpdatePropagator(session).patch(
            ReferenceType.ORDER, "S-1", {"transaction_date": occurred.isoformat()}
        )
        assert updated.transaction_date == occurred

    def test_protected_fields_ignored_with_warning(
        self, session, posted_sale, standard_accounts, captured_logs
    ):
        updated = UpdatePropagator(session).patch(ReferenceType.ORDER, "S-1", {
            "amount": "999999",
            "account_id": standard_accounts["bank"].id,
            "notes": "edited",
        })

        assert updated.amount == Decimal("150000")
        assert updated.account_id == standard_accounts["cash"].id
        assert updated.notes == "edited"
        warnings = [
            r for r in captured_logs() if r["message"] == "patch_protected_fields_ignored"
        ]
        assert warnings[0]["fields"] == ["account_id", "amount"]

    def test_balance_unchanged(self, session, posted_sale, standard_accounts):
        UpdatePropagator(session).patch(ReferenceType.ORDER, "S-1", {"amount": "1"})
        balance = AccountDirectory(session).get(standard_accounts["cash"].id).balance
        assert balance == Decimal("1150000")

    def test_missing_reference_returns_none(self, session, standard_accounts):
        assert UpdatePropagator(session).patch(ReferenceType.ORDER, "S-404", {"notes": "x"}) is None

    def test_reversed_transaction_not_patched(self, session, posted_sale):
        ReversalService(session).reverse(ReferenceType.ORDER, "S-1")
        assert UpdatePropagator(session).patch(ReferenceType.ORDER, "S-1", {"notes": "x"}) is None


class TestRejectedPatches:

    @pytest.mark.parametrize("fields, field_name", [
        ({"colour": "red"}, "colour"),
        ({"status": "cancelled"}, "status"),
        ({"status": "archived"}, "status"),
        ({"payment_method": "barter"}, "payment_method"),
        ({"transaction_date": "yesterday"}, "transaction_date"),
        ({"category": ""}, "category"),
    ])
    def test_invalid_patch_raises(self, session, posted_sale, fields, field_name):
        with pytest.raises(InvalidPatchError) as exc_info:
            UpdatePropagator(session).patch(ReferenceType.ORDER, "S-1", fields)
        assert exc_info.value.field_name == field_name
        assert exc_info.value.code == "INVALID_PATCH"

    def test_rejected_patch_writes_nothing(self, session, posted_sale):
        with pytest.raises(InvalidPatchError):
            UpdatePropagator(session).patch(
                ReferenceType.ORDER, "S-1", {"notes": "kept?", "status": "cancelled"}
            )
        unchanged = UpdatePropagator(session).patch(ReferenceType.ORDER, "S-1", {})
        assert unchanged.notes is None
        assert unchanged.status is TransactionStatus.COMPLETED
