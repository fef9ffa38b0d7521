"""FastAPI dependencies: the integration service and bearer-token callers."""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ledger_config import ApiClient
from ledger_kernel.logging_config import get_logger
from ledger_services.integration import FinanceIntegrationService

logger = get_logger("api.auth")

_bearer = HTTPBearer(auto_error=False)


def get_integration(request: Request) -> FinanceIntegrationService:
    return request.app.state.integration


def get_api_client(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    integration: FinanceIntegrationService = Depends(get_integration),
) -> ApiClient:
    """
    Resolve the caller from its bearer token.

    Raises:
        HTTPException: 401 when the token is missing or unknown.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )

    client = integration.config.client_for_token(credentials.credentials)
    if client is None:
        logger.warning("api_token_rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return client
