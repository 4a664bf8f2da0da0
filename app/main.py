"""
Teekoob Messaging - Main FastAPI Application

Entry point for the API server and the random book broadcast scheduler.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import InterfaceError, OperationalError

from app.config import get_settings
from app.core.exceptions import StoreUnavailableError
from app.database import close_db, create_tables
from app.notifications.push import ExpoPushProvider
from app.notifications.scheduler import BroadcastScheduler
from app.notifications.token_cache import TokenCache
from app.rate_limit import limiter

from app.inbox import inbox_router
from app.notifications.router import router as notifications_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.
    Runs startup and shutdown logic.
    """
    # Startup
    logger.info(f"[Startup] Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"[Startup] Debug mode: {settings.debug}")

    # Create database tables
    try:
        await create_tables()
        logger.info("[Startup] Database tables created/verified")
    except Exception as e:
        logger.error(f"[Startup] Database initialization failed: {e}")
        # Don't fail startup - tables might already exist

    if settings.broadcast_enabled:
        app.state.broadcast_scheduler.start()
    else:
        logger.info("[Startup] Random book broadcast disabled")

    yield

    # Shutdown
    logger.info("[Shutdown] Application shutting down...")
    app.state.broadcast_scheduler.shutdown()
    await app.state.push_provider.aclose()
    await close_db()


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    Teekoob Messaging API - push notifications and in-app inbox.

    ## Features

    * **Push tokens** - Register and disable device push tokens
    * **Preferences** - Per-user notification preferences
    * **Random book broadcast** - Periodic localized book promotion to opted-in devices
    * **Inbox** - Durable admin messages with read tracking

    ## Architecture

    Built with FastAPI, SQLAlchemy 2.0 (async), and PostgreSQL.
    Uses a 3-layer architecture: Router → Service → Repository.
    """,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

# Shared notification state
app.state.token_cache = TokenCache()
app.state.push_provider = ExpoPushProvider(
    settings.expo_push_url,
    access_token=settings.expo_access_token,
    timeout=settings.push_timeout_seconds,
)
app.state.broadcast_scheduler = BroadcastScheduler(
    app.state.push_provider, settings, token_cache=app.state.token_cache
)

# Rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StoreUnavailableError)
@app.exception_handler(OperationalError)
@app.exception_handler(InterfaceError)
async def store_unavailable_handler(request: Request, exc: Exception):
    """The database could not be reached."""
    logger.error(f"[Store] Unavailable while handling {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"error": "Service temporarily unavailable", "code": "STORE_UNAVAILABLE"},
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle uncaught exceptions globally."""
    logger.exception(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error", "code": "INTERNAL_ERROR"},
    )


# Health check endpoints
@app.get("/", tags=["Health"])
async def root():
    """Root endpoint - API info."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": "running",
    }


@app.get("/health", tags=["Health"])
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


# API v1 routes
API_V1_PREFIX = "/api/v1"


@app.get(f"{API_V1_PREFIX}/health", tags=["Health"])
async def api_health():
    """API health check with version and scheduler state."""
    return {
        "status": "healthy",
        "version": settings.app_version,
        "broadcast": app.state.broadcast_scheduler.state.value,
    }


# Include routers
app.include_router(notifications_router, prefix=API_V1_PREFIX)
app.include_router(inbox_router, prefix=API_V1_PREFIX)
