"""
FastAPI application entry point.

Run with:
    uvicorn backend.app.main:app --reload --port 8000

Or from the project root:
    python -m uvicorn backend.app.main:app --reload
"""

import asyncio
import contextlib
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

# ── Core infrastructure ──
from backend.app.core.config import settings
from backend.app.core.logging_config import setup_logging, get_logger
from backend.app.core.errors import register_error_handlers
from backend.app.core.middleware import RequestLoggingMiddleware
from backend.app.core.rate_limit import RateLimiter, run_periodic_sweep
from backend.app.notifications.channels import SUPPORTED_SCHEMES
from backend.app.notifications.dispatcher import close_dispatcher

# ── API routers ──
from backend.app.api.v1.devices import router as devices_router
from backend.app.api.v1.notifications import router as notifications_router
from backend.app.api.v1.public import router as public_router

# ── Initialise logging ──
setup_logging()
logger = get_logger(__name__)


# ── Application lifespan (startup / shutdown) ──

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Own the rate limiter, its sweep task and the notification HTTP client."""
    logger.info(
        "Starting %s v%s [%s]",
        settings.APP_NAME, settings.APP_VERSION, settings.ENVIRONMENT,
    )
    sweeper = None
    if settings.RATE_LIMIT_ENABLED:
        app.state.rate_limiter = RateLimiter(max_entries=settings.RATE_LIMIT_MAX_ENTRIES)
        sweeper = asyncio.create_task(
            run_periodic_sweep(app.state.rate_limiter, settings.RATE_LIMIT_SWEEP_SECONDS)
        )
    yield
    if sweeper is not None:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
    await close_dispatcher()
    logger.info("Shutting down %s", settings.APP_NAME)


# ── Create application ──

app = FastAPI(
    title=settings.APP_NAME,
    description=(
        "Self-hosted lost & found tracker. Owners register devices and print "
        "QR codes linking to public device pages; scans and finder messages "
        "are pushed to the owner through ntfy, Telegram, Discord, Slack, "
        "Pushover or any JSON webhook."
    ),
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# ── Middleware stack (last added is outermost) ──

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS if not settings.CORS_ALLOW_ALL else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

# ── Error handlers ──
register_error_handlers(app)

# ── Register routers ──
app.include_router(devices_router)
app.include_router(notifications_router)
app.include_router(public_router)


# ── Root, config & health endpoints ──

@app.get("/", tags=["root"])
async def root():
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "notification_schemes": list(SUPPORTED_SCHEMES),
        "docs": "/docs",
    }


@app.get("/api/v1/config", tags=["root"])
async def public_config():
    """Configuration the owner dashboard needs to build QR links."""
    return {"public_portal_url": settings.PUBLIC_PORTAL_URL}


@app.get("/health", tags=["health"])
async def health_check(request: Request):
    limiter = getattr(request.app.state, "rate_limiter", None)
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "rate_limiter": {
            "enabled": limiter is not None,
            "tracked_clients": len(limiter) if limiter is not None else 0,
        },
    }


@app.get("/health/live", tags=["health"])
async def liveness():
    """Liveness probe."""
    return {"status": "alive"}
