"""
FastAPI Application Entry Point

This module initializes the FastAPI application with:
- CORS configuration
- Middleware setup
- Route registration
- Error handlers rendering {"code", "message"} bodies
- Health check endpoints
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from launchpad.core.config import settings
from launchpad.core.exceptions import AppError
from launchpad.db.database import check_db_connection
from launchpad.db.redis import (
    check_redis_connection,
    get_redis_pool,
    close_redis_pool,
)
from launchpad.middleware.logging import LoggingMiddleware
from launchpad.api.v1.router import api_router

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


# ============================================================
# Application Lifespan Events
# ============================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.

    Startup:
    - Check database connection
    - Initialize Redis connection pool (redis rate limiting only)

    Shutdown:
    - Close Redis connections
    """
    # ========== STARTUP ==========
    logger.info(f"Starting {settings.PROJECT_NAME}...")
    logger.info(f"Debug mode: {settings.DEBUG}")

    # Check database connection on startup
    db_healthy = await check_db_connection()
    if db_healthy:
        logger.info("Database connection established successfully")
    else:
        logger.warning("Database connection check failed")

    if settings.RATE_LIMIT_BACKEND == "redis":
        get_redis_pool()  # Creates the pool (singleton)
        if await check_redis_connection():
            logger.info("Redis connection established successfully")
        else:
            logger.warning("Redis connection check failed - dashboard rate limiting will fail")

    yield  # Application runs here

    # ========== SHUTDOWN ==========
    logger.info(f"Shutting down {settings.PROJECT_NAME}...")

    await close_redis_pool()

    logger.info("Shutdown complete")


# ============================================================
# Create FastAPI Application
# ============================================================
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="""
    DevOps Launchpad learner API

    Features:
    - Email/password accounts with email verification
    - Password reset by emailed link
    - Learner dashboard with per-module progress
    - Free-preview lesson gating
    """,
    version="1.0.0",
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# ----------------------------------------------------
# Middleware Configuration
# ----------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.DEBUG else settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
    expose_headers=["*"],
)

if settings.DEBUG:
    app.add_middleware(LoggingMiddleware)


# ----------------------------------------------------
# Health Check Endpoints
# ----------------------------------------------------
@app.get("/", tags=["Health"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": settings.PROJECT_NAME,
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs" if settings.DEBUG else "disabled"
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint for monitoring.

    Checks:
    - Database connectivity
    - Redis connectivity (redis rate limiting only)
    """
    db_healthy = await check_db_connection()
    result = {
        "status": "healthy" if db_healthy else "degraded",
        "database": "connected" if db_healthy else "disconnected",
    }

    if settings.RATE_LIMIT_BACKEND == "redis":
        redis_healthy = await check_redis_connection()
        result["redis"] = "connected" if redis_healthy else "disconnected"
        if not redis_healthy:
            result["status"] = "degraded"

    return result

# ============================================================
# Include API Router
# ============================================================
app.include_router(
    api_router,
    prefix=settings.API_V1_PREFIX
)


# ----------------------------------------------------
# Exception Handlers
# ----------------------------------------------------
def error_response(status_code: int, code: str, message: str, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"code": code, "message": message},
        headers=headers,
    )


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """Handle domain errors raised by services and dependencies."""
    headers = None
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    return error_response(exc.status_code, exc.code, exc.message, headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Report the first failing rule as INVALID_INPUT."""
    return error_response(
        status.HTTP_400_BAD_REQUEST,
        "INVALID_INPUT",
        validation_message(exc.errors()),
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    """Handle framework errors (unknown route, wrong method)."""
    codes = {
        status.HTTP_401_UNAUTHORIZED: "UNAUTHORIZED",
        status.HTTP_404_NOT_FOUND: "NOT_FOUND",
        status.HTTP_429_TOO_MANY_REQUESTS: "RATE_LIMIT",
    }
    code = codes.get(exc.status_code, "INVALID_INPUT" if exc.status_code < 500 else "SERVER_ERROR")
    return error_response(exc.status_code, code, str(exc.detail), getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def internal_error_handler(request: Request, exc: Exception):
    """Handle 500 errors."""
    logger.exception(f"Internal server error on {request.method} {request.url.path}: {exc}")
    message = str(exc) if settings.DEBUG else "Something went wrong"
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "SERVER_ERROR", message)


def validation_message(errors) -> str:
    """
    Message of the first validation error.

    Messages raised by our own validators are passed through verbatim;
    built-in constraint messages are prefixed with the field name.
    """
    if not errors:
        return "Invalid input"

    first = errors[0]
    ctx = first.get("ctx") or {}
    if ctx.get("error") is not None:
        return str(ctx["error"])

    loc = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    field = ".".join(loc)
    return f"{field}: {first.get('msg', 'Invalid value')}" if field else first.get("msg", "Invalid input")
