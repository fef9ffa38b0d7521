"""
Inbound event endpoints, one per producer domain.

Handlers are plain ``def`` functions: the ledger uses synchronous SQLAlchemy
sessions, so FastAPI runs them in its threadpool.
"""

from fastapi import APIRouter, Depends

from ledger_api.deps import get_api_client, get_integration
from ledger_api.schemas import (
    InvoicePaymentRequest,
    InvoicePaymentResponse,
    PostingResponse,
    PurchasePaidRequest,
    SaleCompletedRequest,
)
from ledger_config import ApiClient
from ledger_services.adapters import PostingOutcome
from ledger_services.integration import FinanceIntegrationService

router = APIRouter(prefix="/api/finance/integration", tags=["finance-integration"])

# The invoice payment moves only the cash or bank balance
INVOICE_ACCOUNTS_UPDATED = ["Cash/Bank"]


def _posting_response(outcome: PostingOutcome) -> PostingResponse:
    transaction = outcome.transaction
    return PostingResponse(
        finance_transaction_id=str(transaction.id),
        transaction_number=transaction.transaction_number,
        amount=float(transaction.amount),
        status=transaction.status.value,
        account_updated=outcome.account_name,
        already_posted=outcome.already_posted,
    )


@router.post("/sale-completed", response_model=PostingResponse)
def sale_completed(
    body: SaleCompletedRequest,
    client: ApiClient = Depends(get_api_client),
    integration: FinanceIntegrationService = Depends(get_integration),
):
    outcome = integration.post_sale(body.to_event(), actor_id=client.actor_id)
    return _posting_response(outcome)


@router.post("/purchase-paid", response_model=PostingResponse)
def purchase_paid(
    body: PurchasePaidRequest,
    client: ApiClient = Depends(get_api_client),
    integration: FinanceIntegrationService = Depends(get_integration),
):
    event = body.to_event()
    outcome = integration.post_purchase(event, actor_id=client.actor_id)
    if outcome is None:
        return PostingResponse(amount=float(event.amount), status="skipped")
    return _posting_response(outcome)


@router.post("/invoice-payment", response_model=InvoicePaymentResponse)
def invoice_payment(
    body: InvoicePaymentRequest,
    client: ApiClient = Depends(get_api_client),
    integration: FinanceIntegrationService = Depends(get_integration),
):
    outcome = integration.post_invoice_payment(body.to_event(), actor_id=client.actor_id)
    transaction = outcome.transaction
    return InvoicePaymentResponse(
        finance_transaction_id=str(transaction.id),
        transaction_number=transaction.transaction_number,
        amount=float(transaction.amount),
        accounts_updated=INVOICE_ACCOUNTS_UPDATED,
        already_posted=outcome.already_posted,
    )
