"""
PURPOSE: Main FastAPI application factory and lifecycle management for EA Builder.

Initializes the FastAPI application with:
- The converter API router
- CORS middleware for the web front end
- slowapi rate limiting
- Exception handlers for validation, conversion and unexpected errors
- Startup/shutdown logging
- Metadata from version.json
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from ea_builder.api import api_router
from ea_builder.config.constants import CONVERSION_FAILED_PLACEHOLDER
from ea_builder.config.settings import settings
from ea_builder.converter.exceptions import ConversionError
from ea_builder.core.rate_limit import limiter
from ea_builder.utils.logger import get_logger, setup_logging
from ea_builder.version import get_version


logger = get_logger(__name__)


# ════════════════════════════════════════════════════════════════
# Lifecycle Events
# ════════════════════════════════════════════════════════════════


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    PURPOSE: Manage application lifespan with startup and shutdown logging.

    CALLED BY: FastAPI during application startup and shutdown

    Args:
        app: FastAPI application instance

    Yields:
        None
    """
    setup_logging(settings.LOG_LEVEL)
    logger.info(
        "application_startup_complete",
        version=app.version,
        log_level=settings.LOG_LEVEL,
        app_env=settings.APP_ENV,
    )

    yield

    logger.info("application_shutdown_complete")


# ════════════════════════════════════════════════════════════════
# Exception Handlers
# ════════════════════════════════════════════════════════════════


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """
    PURPOSE: Handle Pydantic validation errors with consistent JSON response.

    CALLED BY: FastAPI when request validation fails (including an unknown
    logicConfig.kind or fields that belong to another kind)

    Args:
        request: HTTP request that failed validation
        exc: RequestValidationError with validation details

    Returns:
        JSONResponse: Formatted error response with validation details
    """
    logger.warning(
        "request_validation_failed",
        path=request.url.path,
        method=request.method,
        error_count=len(exc.errors())
    )

    safe_errors = jsonable_encoder(
        exc.errors(),
        custom_encoder={
            ValueError: lambda e: str(e),
            Exception: lambda e: str(e),
        },
    )

    return JSONResponse(
        status_code=422,
        content={
            "status": "error",
            "detail": "Request validation failed",
            "errors": safe_errors,
        },
    )


async def conversion_exception_handler(
    request: Request,
    exc: ConversionError
) -> JSONResponse:
    """
    PURPOSE: Report a failed EA generation without returning partial code.

    CALLED BY: FastAPI when a route raises ConversionError

    Args:
        request: HTTP request whose payload could not be converted
        exc: ConversionError raised by the generator

    Returns:
        JSONResponse: 422 with the error and the failure placeholder as code
    """
    logger.warning(
        "conversion_failed",
        path=request.url.path,
        error=str(exc),
        exception_type=type(exc).__name__,
    )

    return JSONResponse(
        status_code=422,
        content={
            "status": "error",
            "detail": str(exc),
            "code": CONVERSION_FAILED_PLACEHOLDER,
        },
    )


async def general_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """
    PURPOSE: Handle unexpected exceptions with logging and safe error response.

    CALLED BY: FastAPI exception handler middleware

    Args:
        request: HTTP request that raised exception
        exc: Exception that was raised

    Returns:
        JSONResponse: Safe error response without exposing internals
    """
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        exception_type=type(exc).__name__
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "status": "error",
            "detail": "Internal server error",
        },
    )


# ════════════════════════════════════════════════════════════════
# FastAPI Application Factory
# ════════════════════════════════════════════════════════════════


def create_app() -> FastAPI:
    """
    PURPOSE: Create and configure FastAPI application with routers, middleware, and handlers.

    CALLED BY: Application entrypoint (uvicorn, docker, etc), tests

    Returns:
        FastAPI: Configured FastAPI application ready to run
    """
    try:
        version_data = get_version()
        version = version_data.get("version", "unknown")
        description = f"MQL4 indicator to Expert Advisor converter - {version_data.get('codename', 'Forge')}"
    except Exception as e:
        logger.warning("version_data_unavailable", error=str(e))
        version = "unknown"
        description = "MQL4 indicator to Expert Advisor converter"

    # Interactive docs are only served outside production
    expose_docs = not settings.is_production()

    app = FastAPI(
        title="EA Builder",
        description=description,
        version=version,
        lifespan=lifespan,
        docs_url="/docs" if expose_docs else None,
        redoc_url="/redoc" if expose_docs else None,
        openapi_url="/openapi.json" if expose_docs else None,
    )

    # ────────────────────────────────────────────────────────────
    # Middleware
    # ────────────────────────────────────────────────────────────

    # Limiter state must be on the app before any limited route runs
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-ID"],
    )

    # ────────────────────────────────────────────────────────────
    # Routes
    # ────────────────────────────────────────────────────────────

    app.include_router(api_router)

    @app.get("/", tags=["root"])
    async def root():
        """
        PURPOSE: Root endpoint for API availability check.

        CALLED BY: Load balancers, basic connectivity tests

        Returns:
            dict: Service information and version
        """
        return {
            "status": "ok",
            "service": "EA Builder API",
            "version": version,
        }

    @app.get("/health", tags=["root"])
    async def health():
        """
        PURPOSE: Liveness check.

        Returns:
            dict: {"status": "healthy"}
        """
        return {"status": "healthy"}

    # ────────────────────────────────────────────────────────────
    # Exception Handlers
    # ────────────────────────────────────────────────────────────

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ConversionError, conversion_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    logger.info(
        "fastapi_application_created",
        version=version,
        api_prefix="/api"
    )

    return app


# Create the application
app = create_app()


if __name__ == "__main__":
    """
    PURPOSE: Run FastAPI application with Uvicorn server.

    Usage:
        python -m ea_builder.main
        OR
        uvicorn ea_builder.main:app --host 0.0.0.0 --port 8000 --reload
    """
    import uvicorn

    uvicorn.run(
        "ea_builder.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
