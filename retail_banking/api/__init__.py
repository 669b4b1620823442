"""
Retail Banking API Application Factory
"""

from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..bank import Bank
from ..config import get_config
from ..exceptions import (
    AuthenticationError, BankingError, FraudSuspicionError, LimitExceededError,
    NotFoundError, StateError, ValidationError
)
from ..logging_config import get_logger, log_action, setup_logging
from .accounts import router as accounts_router, transfers_router
from .admin import router as admin_router
from .customers import router as customers_router
from .loans import router as loans_router


logger = get_logger("retail_banking.api")

# Most specific first: AuthenticationError is also a ValidationError
ERROR_STATUS_CODES = (
    (AuthenticationError, 401),
    (ValidationError, 400),
    (FraudSuspicionError, 403),
    (NotFoundError, 404),
    (StateError, 409),
    (LimitExceededError, 422),
)


def status_code_for(error: BankingError) -> int:
    for error_type, code in ERROR_STATUS_CODES:
        if isinstance(error, error_type):
            return code
    return 500


async def banking_error_handler(request: Request, exc: BankingError) -> JSONResponse:
    """Translate engine errors into JSON responses"""
    code = status_code_for(exc)
    body = {"error": type(exc).__name__, "detail": str(exc)}
    if isinstance(exc, FraudSuspicionError) and exc.alert is not None:
        body["alert_id"] = exc.alert.alert_id

    log_action(
        logger, "warning" if code < 500 else "error",
        f"{request.method} {request.url.path} rejected: {exc}",
        action="api_error", extra={"status_code": code, "error": type(exc).__name__}
    )
    return JSONResponse(status_code=code, content=body)


def create_app(bank: Optional[Bank] = None) -> FastAPI:
    """Create and configure the FastAPI application"""
    config = get_config()
    if bank is None:
        setup_logging(level=config.log_level, fmt=config.log_format, log_file=config.log_file)
        bank = Bank(config=config)

    app = FastAPI(
        title="Retail Banking API",
        description="In-memory retail banking ledger engine",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )
    app.state.bank = bank

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(BankingError, banking_error_handler)

    # Include routers
    app.include_router(customers_router, prefix="/customers", tags=["Customers"])
    app.include_router(accounts_router, prefix="/accounts", tags=["Accounts"])
    app.include_router(transfers_router, prefix="/transfers", tags=["Transfers"])
    app.include_router(loans_router, prefix="/loans", tags=["Loans"])
    app.include_router(admin_router, prefix="/admin", tags=["Admin"])

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "retail_banking_api",
            "bank": bank.name,
            "version": __version__
        }

    return app


def run_server(host: Optional[str] = None, port: Optional[int] = None, debug: bool = False):
    """Run the FastAPI server"""
    config = get_config()
    uvicorn.run(
        "retail_banking.api:create_app",
        factory=True,
        host=host or config.api_host,
        port=port or config.api_port,
        reload=debug,
        log_level=config.log_level.lower()
    )
