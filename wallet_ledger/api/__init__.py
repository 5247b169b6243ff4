"""
Wallet Ledger API Application Factory
"""

from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..config import get_config
from ..errors import (
    AccountNotFound, AuthError, HandleTaken, InputError, InsufficientFunds,
    LedgerError, StoreUnavailable, TransactionTimeout
)
from ..logging_config import setup_logging
from .auth import LedgerSystem, logger
from .accounts import router as accounts_router
from .transactions import router as transactions_router
from .notifications import router as notifications_router

# First match wins
ERROR_STATUS_CODES = (
    (InputError, 400),
    (InsufficientFunds, 400),
    (AccountNotFound, 404),
    (HandleTaken, 409),
    (AuthError, 401),
    (TransactionTimeout, 504),
    (StoreUnavailable, 503),
)


def status_code_for(error: LedgerError) -> int:
    for error_class, status_code in ERROR_STATUS_CODES:
        if isinstance(error, error_class):
            return status_code
    return 500


def create_app(system: Optional[LedgerSystem] = None) -> FastAPI:
    """Create and configure the FastAPI application"""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.ledger_system.start()
        yield
        app.state.ledger_system.shutdown()

    app = FastAPI(
        title="Wallet Ledger API",
        description="Peer-to-peer wallet transfers on an atomic ledger",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )
    app.state.ledger_system = system or LedgerSystem()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, exc: LedgerError):
        status_code = status_code_for(exc)
        if status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(
            status_code=status_code,
            content={"success": False, "error": exc.code, "message": exc.message}
        )

    app.include_router(accounts_router, prefix="/api/auth", tags=["Auth"])
    app.include_router(transactions_router, prefix="/api/transactions", tags=["Transactions"])
    app.include_router(notifications_router, prefix="/api/notifications", tags=["Notifications"])

    @app.get("/health")
    def health_check():
        """Health check endpoint"""
        try:
            app.state.ledger_system.store.ping()
        except StoreUnavailable as e:
            return JSONResponse(
                status_code=503,
                content={"status": "unhealthy", "service": "wallet_ledger_api", "error": e.message}
            )
        return {
            "status": "healthy",
            "service": "wallet_ledger_api",
            "version": __version__
        }

    return app


def run_server(host: Optional[str] = None, port: Optional[int] = None, debug: bool = False):
    """Run the FastAPI server"""
    config = get_config()
    setup_logging(config.log_level, config.log_format, config.log_file)
    uvicorn.run(
        "wallet_ledger.api:create_app",
        factory=True,
        host=host or config.api_host,
        port=port or config.api_port,
        reload=debug,
        log_level=config.log_level.lower()
    )
