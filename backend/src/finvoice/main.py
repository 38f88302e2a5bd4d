"""
FastAPI application entry point.

This is the main application that ties together all components:
- API routes for upload verification, pricing and tokenization
- Database lifecycle management
- CORS configuration for frontend access
- Error handling and logging
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from finvoice import __version__
from finvoice.api.routes import debug, health, invoices, pricing, tokenize, uploads
from finvoice.api.schemas import ErrorResponse, OcrStatusEnum
from finvoice.config import get_settings
from finvoice.domain.errors import (
    DecodeError,
    InvalidTransition,
    ValidationError,
    VerificationIncomplete,
)
from finvoice.infrastructure.database import close_db, init_db

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown tasks:
    - Initialize database tables
    - Close connections on shutdown
    """
    settings = get_settings()

    logger.info(f"Starting Finvoice v{__version__}")
    logger.info(f"XRPL Network: {settings.xrpl_network}")
    logger.info(f"Debug mode: {settings.debug}")

    # Initialize database
    try:
        await init_db()
        logger.info("Database initialized")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        # Continue anyway for development without DB

    yield  # Application runs here

    # Shutdown
    logger.info("Shutting down Finvoice")
    await close_db()


def _error_response(
    status_code: int,
    error: str,
    detail: str | list[str] | None = None,
    ocr_status: OcrStatusEnum | None = None,
) -> JSONResponse:
    body = ErrorResponse(error=error, detail=detail, ocr_status=ocr_status)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", exclude_none=True),
    )


def register_error_handlers(app: FastAPI, debug: bool) -> None:
    """Map pipeline errors to HTTP responses."""

    @app.exception_handler(DecodeError)
    async def decode_error_handler(request: Request, exc: DecodeError):
        return _error_response(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "Document Unreadable",
            str(exc),
            ocr_status=OcrStatusEnum.FAILED,
        )

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return _error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, "Validation Error", exc.problems)

    @app.exception_handler(VerificationIncomplete)
    async def verification_incomplete_handler(request: Request, exc: VerificationIncomplete):
        return _error_response(status.HTTP_409_CONFLICT, "Verification Incomplete", str(exc))

    @app.exception_handler(InvalidTransition)
    async def invalid_transition_handler(request: Request, exc: InvalidTransition):
        return _error_response(status.HTTP_409_CONFLICT, "Invalid Transition", str(exc))

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Catch-all exception handler for unhandled errors."""
        logger.exception(f"Unhandled error: {exc}")

        # Don't expose internal errors in production
        if debug:
            detail = str(exc)
        else:
            detail = "An internal error occurred"

        return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error", detail)


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI instance ready to serve requests.
    """
    settings = get_settings()

    app = FastAPI(
        title="Finvoice API",
        description=(
            "Invoice financing backend.\n\n"
            "Verifies uploaded invoices with OCR, prices them by risk "
            "and prepares invoice tokens on the XRP Ledger."
        ),
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    # CORS configuration
    # In production, replace with specific allowed origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else ["https://finvoice.app"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register routers
    app.include_router(health.router)
    app.include_router(uploads.router, prefix="/api/v1")
    app.include_router(pricing.router, prefix="/api/v1")
    app.include_router(tokenize.router, prefix="/api/v1")
    app.include_router(invoices.router, prefix="/api/v1")

    # Debug router (only in debug mode)
    if settings.debug:
        app.include_router(debug.router, prefix="/api/v1")

    register_error_handlers(app, settings.debug)

    return app


# Create the application instance
app = create_app()


# Development server entry point
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "finvoice.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
