"""
FastAPI application factory for the finance integration endpoints.

Error bodies follow one shape, ``{"success": false, "error": ..., ...}``:

    400  malformed payload or rejected amount (``details`` lists the fields)
    401  missing or unknown bearer token
    500  any ledger or storage failure (``code`` is the LedgerError code)
"""

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from ledger_api.routes import router
from ledger_kernel import __version__
from ledger_kernel.exceptions import LedgerError, ValidationError
from ledger_kernel.logging_config import get_logger
from ledger_services.integration import FinanceIntegrationService

logger = get_logger("api")


def _error(status_code: int, error: str, **fields) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder({"success": False, "error": error, **fields}),
    )


async def _request_validation_error(request: Request, exc: RequestValidationError):
    return _error(
        status.HTTP_400_BAD_REQUEST,
        "Invalid request payload",
        details=exc.errors(),
    )


async def _http_error(request: Request, exc: StarletteHTTPException):
    response = _error(exc.status_code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def _ledger_validation_error(request: Request, exc: ValidationError):
    return _error(status.HTTP_400_BAD_REQUEST, str(exc), code=exc.code)


async def _ledger_error(request: Request, exc: LedgerError):
    logger.error(
        "api_ledger_error",
        extra={"path": request.url.path, "error_code": exc.code, "error": str(exc)},
    )
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc), code=exc.code)


async def _storage_error(request: Request, exc: SQLAlchemyError):
    logger.error(
        "api_storage_error",
        extra={"path": request.url.path, "error": str(exc)},
    )
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc), code="STORAGE_ERROR")


def create_app(integration: FinanceIntegrationService) -> FastAPI:
    """Build the HTTP app around an already configured integration service."""
    app = FastAPI(title="Retail Ledger Integration", version=__version__)
    app.state.integration = integration

    app.add_exception_handler(RequestValidationError, _request_validation_error)
    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(ValidationError, _ledger_validation_error)
    app.add_exception_handler(LedgerError, _ledger_error)
    app.add_exception_handler(SQLAlchemyError, _storage_error)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    app.include_router(router)
    return app
