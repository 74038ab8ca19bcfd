"""API Service - FastAPI with SQLAlchemy."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import structlog

from . import __version__, routers
from .capabilities import build_capabilities
from .config import get_settings
from .errors import ApiError, ErrorCode
from .logging_config import set_correlation_id, setup_logging

SERVICE_NAME = "Explorable Research API"
SERVICE_DESCRIPTION = "Turns research papers into sandboxed interactive explorables"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    settings = get_settings()
    setup_logging(
        service_name=settings.service_name,
        log_format=settings.log_format,
        log_level=settings.log_level,
    )
    capabilities = build_capabilities(settings)
    app.state.capabilities = capabilities
    yield
    # Shutdown: let background runs finish, then release clients
    await capabilities.aclose()


async def correlation_middleware(request: Request, call_next):
    correlation_id = request.headers.get("X-Correlation-ID", f"req_{uuid.uuid4().hex[:8]}")
    set_correlation_id(correlation_id)
    structlog.contextvars.bind_contextvars(method=request.method, path=request.url.path)

    start = time.time()
    logger = structlog.get_logger()

    try:
        response = await call_next(request)
        duration_ms = (time.time() - start) * 1000

        if response.status_code >= 500:  # noqa: PLR2004
            logger.error(
                "http_request_failed",
                status_code=response.status_code,
                duration_ms=round(duration_ms, 2),
            )
        else:
            logger.info(
                "http_request", status_code=response.status_code, duration_ms=round(duration_ms, 2)
            )

        response.headers["X-Correlation-ID"] = correlation_id
        return response
    except Exception as e:
        duration_ms = (time.time() - start) * 1000
        logger.error(
            "http_request_exception",
            error=str(e),
            error_type=type(e).__name__,
            duration_ms=round(duration_ms, 2),
            exc_info=True,
        )
        raise
    finally:
        structlog.contextvars.clear_contextvars()


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_envelope())


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    error = ApiError(
        ErrorCode.VALIDATION_ERROR,
        "Invalid request parameters",
        details=[
            {"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")}
            for e in exc.errors()
        ],
    )
    return JSONResponse(status_code=error.status_code, content=error.to_envelope())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    structlog.get_logger().error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        exc_info=exc,
    )
    error = ApiError(ErrorCode.INTERNAL_ERROR, "Internal server error")
    return JSONResponse(status_code=error.status_code, content=error.to_envelope())


def create_app() -> FastAPI:
    app = FastAPI(
        title=SERVICE_NAME,
        description=SERVICE_DESCRIPTION,
        version=__version__,
        lifespan=lifespan,
    )
    app.middleware("http")(correlation_middleware)
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    @app.get("/")
    async def root():
        """Root endpoint - API information."""
        return {
            "name": SERVICE_NAME,
            "version": __version__,
            "description": SERVICE_DESCRIPTION,
        }

    app.include_router(routers.health.router)
    app.include_router(routers.v1_projects.router, prefix="/api")
    app.include_router(routers.models.router, prefix="/api")
    app.include_router(routers.projects.router, prefix="/api")
    app.include_router(routers.arxiv.router, prefix="/api")
    app.include_router(routers.pdf.router, prefix="/api")
    return app


app = create_app()
