"""
LUX AI - FastAPI application entry point.

Backend for a student study assistant:
- Conversations and notes stored per user (SQLAlchemy, async)
- Chat replies streamed from an OpenAI-compatible API as Server-Sent Events
- Guest chat without an account or any persistence
- Authentication delegated to a hosted identity provider
- Security hardening (CORS, headers, optional quotas on completion routes)
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from luxai.api.routes import api_router
from luxai.core.config import settings
from luxai.services.database import StoreError, StoreUnavailableError, database
from luxai.services.quota import quota_store

# Configure structured logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("luxai")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
    - Connect to the database and create tables
    - Connect to Redis when completion quotas are enabled

    Shutdown:
    - Close database and Redis connections
    """
    logger.info("Starting up %s...", settings.PROJECT_NAME)

    if not await database.connect():
        logger.error("Database not available - conversation and note routes will answer 503")

    if settings.ENABLE_RATE_LIMITING:
        if not await quota_store.connect():
            logger.error("Rate limiting enabled but Redis is unavailable - chat routes will answer 503")

    if not settings.identity_configured:
        logger.warning("Identity provider not configured - authenticated routes will answer 401")
    if not settings.OPENAI_API_KEY:
        logger.warning("OPENAI_API_KEY not set - chat routes will answer 503")

    yield

    logger.info("Shutting down...")
    await quota_store.close()
    await database.close()
    logger.info("Shutdown complete")


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Study assistant API: conversations, notes and streamed chat replies",
    version="0.1.0",
    openapi_url=f"{settings.API_PREFIX}/openapi.json",
    lifespan=lifespan,
)

# =============================================================================
# Security Middleware
# =============================================================================

# CORS Middleware - Configure origins for production!
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
)


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    """
    Add security headers to all responses.

    Headers:
    - X-Content-Type-Options: Prevent MIME type sniffing
    - X-Frame-Options: Prevent clickjacking
    - Referrer-Policy: Control referrer information
    - Cache-Control: Prevent caching of API responses
    """
    response = await call_next(request)

    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

    if request.url.path.startswith(settings.API_PREFIX) and "Cache-Control" not in response.headers:
        response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, max-age=0"
        response.headers["Pragma"] = "no-cache"

    return response


@app.middleware("http")
async def catch_exceptions_middleware(request: Request, call_next):
    """
    Global exception handler to prevent internal error details leaking.

    Logs full exception for debugging, returns generic error to client.
    Failures inside a streaming body happen after this returns and abort
    the stream instead.
    """
    try:
        return await call_next(request)
    except Exception:
        logger.exception("Unhandled exception during request to %s", request.url.path)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )


# =============================================================================
# Exception Handlers
# =============================================================================


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Invalid or missing fields are a 400, as for any other bad request."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(StoreUnavailableError)
async def store_unavailable_handler(request: Request, exc: StoreUnavailableError):
    logger.error("Database unavailable for %s", request.url.path)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Database not available"},
    )


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.error("Database failure during request to %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# =============================================================================
# Routes
# =============================================================================

app.include_router(api_router, prefix=settings.API_PREFIX)


@app.get("/health")
async def health_check():
    """Health check endpoint for container orchestration."""
    return {
        "status": "healthy",
        "database_connected": database.is_available,
        "identity_configured": settings.identity_configured,
        "rate_limiting_enabled": settings.ENABLE_RATE_LIMITING,
        "redis_connected": quota_store.is_available,
    }
