"""
Loan Ledger API Application Factory
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import uvicorn

from .. import __version__
from ..config import LedgerConfig, get_config
from ..errors import LedgerError, NotFoundError, StorageError, ValidationError
from ..logging_config import setup_logging, log_action
from .dependencies import LedgerSystem
from .customers import router as customers_router
from .loans import router as loans_router


logger = logging.getLogger(__name__)

STATUS_BY_ERROR = {
    ValidationError: 400,
    NotFoundError: 404,
    StorageError: 500,
}


async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    """Render ledger errors as a stable error payload"""
    status_code = STATUS_BY_ERROR.get(type(exc), 500)
    log_action(
        logger,
        "error" if status_code >= 500 else "info",
        f"{request.method} {request.url.path} failed: {exc.message}",
        action=exc.kind,
        resource=request.url.path,
        extra=exc.details or None
    )
    return JSONResponse(status_code=status_code, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies are reported like any other validation error"""
    errors = exc.errors()
    field = None
    message = "Invalid request body"
    if errors and errors[0].get("type") == "json_invalid":
        # loc holds the parse position, not a field name
        message = "Request body is not valid JSON"
    elif errors and errors[0].get("loc"):
        field = str(errors[0]["loc"][-1])
    return await ledger_error_handler(request, ValidationError(message, field=field))


def create_app(system: Optional[LedgerSystem] = None,
               config: Optional[LedgerConfig] = None) -> FastAPI:
    """Create and configure the FastAPI application"""
    config = config or get_config()
    setup_logging(config.log_level, format_type=config.log_format)

    owns_system = system is None
    if owns_system:
        system = LedgerSystem.from_config(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if owns_system:
            system.close()

    app = FastAPI(
        title="Loan Ledger API",
        description="Loans, payments and derived balances",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )
    app.state.ledger_system = system

    app.add_exception_handler(LedgerError, ledger_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    app.include_router(customers_router, prefix="/api/customers", tags=["Customers"])
    app.include_router(loans_router, prefix="/api/loans", tags=["Loans"])

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "loan_ledger_api",
            "version": __version__,
            "timestamp": datetime.now(timezone.utc).isoformat()
        }

    return app


def run_server(host: Optional[str] = None, port: Optional[int] = None, debug: bool = False):
    """Run the FastAPI server"""
    config = get_config()
    uvicorn.run(
        "loan_ledger.api:create_app",
        factory=True,
        host=host or config.api_host,
        port=port or config.api_port,
        reload=debug,
        log_level=config.log_level.lower()
    )
