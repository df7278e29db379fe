"""
PURPOSE: Main FastAPI application factory and lifecycle management for the strategy graph engine.

Initializes the FastAPI application with:
- The API router (strategies, backtest)
- CORS middleware for the strategy editor frontend
- Exception handlers mapping domain errors to HTTP status codes
- Startup tasks (logging, DSL catalog load, database tables)
- Metadata from version.json
"""

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from stratgraph.core.exceptions import StratGraphError
from stratgraph.core.rate_limit import limiter
from stratgraph.api import api_router
from stratgraph.config.settings import settings
from stratgraph.db.engine import init_db
from stratgraph.dsl.catalog import Catalog, get_catalog
from stratgraph.utils.logger import setup_logging, get_logger
from stratgraph.version import build_info, get_version


logger = get_logger(__name__)


# ════════════════════════════════════════════════════════════════
# Lifecycle Events
# ════════════════════════════════════════════════════════════════


async def on_startup() -> None:
    """
    PURPOSE: Execute startup tasks.

    CALLED BY: FastAPI lifespan startup

    Tasks:
        1. Setup logging with configured level
        2. Load the DSL catalog (a malformed catalog stops startup)
        3. Create database tables
    """
    try:
        setup_logging(settings.LOG_LEVEL, json_logs=settings.LOG_JSON)
        logger.info(
            "application_startup_starting",
            version=get_version().get("version"),
            log_level=settings.LOG_LEVEL,
            llm_configured=settings.llm_configured(),
        )

        catalog = get_catalog()
        logger.info(
            "dsl_catalog_loaded",
            version=catalog.version,
            functions=len(catalog.function_names()),
            actions=len(catalog.action_names()),
        )

        await init_db()

        if not settings.llm_configured():
            logger.warning(
                "llm_not_configured",
                message="LLM_API_KEY is empty; /api/strategies/interpret will return 503.",
            )

        logger.info("application_startup_complete")

    except Exception as e:
        logger.critical("application_startup_failed", error=str(e))
        raise


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    PURPOSE: Manage application lifespan with startup and shutdown events.

    CALLED BY: FastAPI during application startup and shutdown
    """
    await on_startup()

    yield

    logger.info("application_shutdown_complete")


# ════════════════════════════════════════════════════════════════
# Exception Handlers
# ════════════════════════════════════════════════════════════════


async def domain_exception_handler(
    request: Request,
    exc: StratGraphError
) -> JSONResponse:
    """
    PURPOSE: Map domain errors to their HTTP status code.

    CALLED BY: FastAPI when a route raises a StratGraphError subclass

    Returns:
        JSONResponse: {status, detail, error_code, context}
    """
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "domain_error",
        path=request.url.path,
        method=request.method,
        error_code=type(exc).__name__,
        error=exc.message,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={"status": "error", "detail": exc.message, **exc.to_dict()},
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """
    PURPOSE: Handle Pydantic validation errors with consistent JSON response.

    CALLED BY: FastAPI when request validation fails

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
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "status": "error",
            "detail": "Request validation failed",
            "errors": safe_errors,
        },
    )


async def general_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """
    PURPOSE: Handle unexpected exceptions with logging and safe error response.

    CALLED BY: FastAPI exception handler middleware

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

    CALLED BY: Application entrypoint (uvicorn), tests

    Returns:
        FastAPI: Configured FastAPI application ready to run
    """
    version_data = get_version()
    version = version_data.get("version", "unknown")

    app = FastAPI(
        title="StratGraph",
        description=f"Natural-language trading strategy graphs - {version_data.get('codename', 'Stratgraph')}",
        version=version,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # ────────────────────────────────────────────────────────────
    # Middleware
    # ────────────────────────────────────────────────────────────

    # Limiter state must be on the app before any decorated route runs.
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-ID"],
    )

    # ────────────────────────────────────────────────────────────
    # Routes
    # ────────────────────────────────────────────────────────────

    app.include_router(api_router)

    @app.get("/", tags=["root"])
    async def root(catalog: Catalog = Depends(get_catalog)):
        """
        PURPOSE: Root endpoint for API availability check.

        Returns:
            dict: Service status plus release, DSL and prompt versions
        """
        return {"status": "ok", "service": "StratGraph API", **build_info(catalog)}

    # ────────────────────────────────────────────────────────────
    # Exception Handlers
    # ────────────────────────────────────────────────────────────

    app.add_exception_handler(StratGraphError, domain_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
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
    Usage:
        python -m stratgraph.main
        OR
        uvicorn stratgraph.main:app --host 0.0.0.0 --port 8000 --reload
    """
    import uvicorn

    uvicorn.run(
        "stratgraph.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development(),
        log_level=settings.LOG_LEVEL.lower(),
    )
