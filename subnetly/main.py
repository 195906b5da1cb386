"""Main FastAPI application."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from subnetly import __version__
from subnetly.config import settings
from subnetly.core.exceptions import IPAMError
from subnetly.database import async_engine, create_db_and_tables
from subnetly.utils.logger import setup_logging, get_logger
from subnetly.utils.telemetry import setup_telemetry, instrument_app, instrument_sqlalchemy
from subnetly.middleware.rate_limit import limiter
from subnetly.middleware.logging import LoggingMiddleware
from subnetly.api.v1.router import api_router

# Setup logging and telemetry
setup_logging()
setup_telemetry()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan events."""
    # Startup
    logger.info(
        f"Starting {settings.PROJECT_NAME}",
        extra={
            "version": __version__,
            "environment": settings.ENVIRONMENT,
            "debug": settings.DEBUG,
            "api_prefix": settings.API_V1_PREFIX,
        },
    )

    if settings.AUTO_CREATE_TABLES:
        await create_db_and_tables()

    # Instrument FastAPI app and the database engine with OpenTelemetry
    instrument_app(app)
    instrument_sqlalchemy(async_engine.sync_engine)

    yield

    # Shutdown
    await async_engine.dispose()
    logger.info(f"Shutting down {settings.PROJECT_NAME}")


async def ipam_error_handler(request: Request, exc: IPAMError) -> JSONResponse:
    """Render domain errors with the status code they carry."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "Request rejected",
        extra={
            "path": request.url.path,
            "status_code": exc.status_code,
            "error": exc.detail,
            "error_type": type(exc).__name__,
        },
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Create FastAPI application
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=__version__,
    description="IPv4 address management API: subnets, address plans, "
    "device bindings, range schemes and subnet templates",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
    debug=settings.DEBUG,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add custom middleware
app.add_middleware(LoggingMiddleware)

# Add rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Domain errors
app.add_exception_handler(IPAMError, ipam_error_handler)

# Include API routers
app.include_router(api_router, prefix=settings.API_V1_PREFIX)


@app.get("/", tags=["Root"])
async def root() -> dict:
    """Root endpoint with API information."""
    return {
        "name": settings.PROJECT_NAME,
        "version": __version__,
        "environment": settings.ENVIRONMENT,
        "docs_url": "/docs",
        "redoc_url": "/redoc",
        "openapi_url": "/openapi.json",
        "health_check": f"{settings.API_V1_PREFIX}/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "subnetly.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
