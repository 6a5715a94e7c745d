"""FastAPI application setup"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.api.admin_routes import router as admin_router
from src.api.metrics_routes import router as metrics_router
from src.api.middleware import setup_cors, setup_rate_limiting
from src.api.routes import router
from src.config import ENABLE_SWEEPER, LOG_LEVEL, RATE_LIMIT_SWEEP_MINUTES
from src.exceptions import (
    AlreadyCompletedTodayError,
    AuthenticationError,
    AuthorizationError,
    ConnectionError,
    ProgressionError,
    RateLimitedError,
    RecordNotFoundError,
    ValidationError,
)
from src.observability.metrics import errors_total, init_metrics
from src.observability.metrics_middleware import setup_metrics_middleware
from src.scheduler.sweeper import RateLimitSweeper
from src.services.container import create_store, get_container, has_container, init_container

# Configure logging
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=getattr(logging, LOG_LEVEL)
)

logger = logging.getLogger(__name__)

# Most specific class wins (checked along the MRO)
ERROR_STATUS_CODES = {
    AuthenticationError: 401,
    AuthorizationError: 403,
    RecordNotFoundError: 404,
    AlreadyCompletedTodayError: 409,
    ValidationError: 422,
    RateLimitedError: 429,
    ConnectionError: 503,
}


def status_code_for(exc: ProgressionError) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[cls]
    return 500


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for FastAPI application"""
    # Startup
    logger.info("Starting API server...")
    if not has_container():
        init_container(create_store())
    container = get_container()
    await container.store.open()
    logger.info(f"Store opened ({type(container.store).__name__})")

    init_metrics()

    scheduler: Optional[AsyncIOScheduler] = None
    if app.state.enable_sweeper:
        scheduler = AsyncIOScheduler()
        RateLimitSweeper(container.rate_limiter, container.admin_service).schedule(
            scheduler, minutes=RATE_LIMIT_SWEEP_MINUTES
        )
        scheduler.start()

    try:
        yield
    finally:
        # Shutdown
        logger.info("Shutting down API server...")
        if scheduler:
            scheduler.shutdown()
        await container.store.close()
        logger.info("Store closed")


def create_api_application(enable_sweeper: bool = ENABLE_SWEEPER) -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Progression & Rewards API",
        description="Daily games, XP economy and reward issuance for the learning app",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.enable_sweeper = enable_sweeper

    # Setup middleware
    setup_cors(app)
    setup_rate_limiting(app)
    setup_metrics_middleware(app)

    # Include routes
    app.include_router(router)
    app.include_router(admin_router)
    app.include_router(metrics_router)

    @app.exception_handler(ProgressionError)
    async def progression_exception_handler(request: Request, exc: ProgressionError):
        status_code = status_code_for(exc)
        headers = None
        if isinstance(exc, RateLimitedError):
            headers = {"Retry-After": str(exc.retry_after_seconds)}
        if status_code >= 500:
            errors_total.labels(error_type=type(exc).__name__, component="api").inc()
        return JSONResponse(status_code=status_code, content=exc.to_dict(), headers=headers)

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        errors_total.labels(error_type=type(exc).__name__, component="api").inc()
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "detail": str(exc)}
        )

    logger.info("FastAPI application created")

    return app
