"""FastAPI application entry point."""
import asyncio
import contextlib
import logging
from datetime import timedelta

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from app.config import settings
from app.database import Database
from app.errors import register_exception_handlers
from app.routers import admin, chat, interviews, realtime, usage
from app.services.ai_gateway import AIGateway
from app.services.notifier import RealtimeNotifier
from app.services.rate_limit_service import AiRateLimiter, RateLimitConfig
from app.utils.logger import configure_logging

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    await Database.connect()
    app.state.gateway = AIGateway.from_settings(settings)
    app.state.notifier = RealtimeNotifier()
    app.state.rate_limiter = AiRateLimiter(
        limits=RateLimitConfig(
            max_requests_per_minute=settings.rate_limit_per_minute,
            max_requests_per_hour=settings.rate_limit_per_hour,
            max_requests_per_day=settings.rate_limit_per_day,
        ),
        sweep_interval=timedelta(seconds=settings.rate_limit_sweep_seconds),
    )
    sweeper = asyncio.create_task(app.state.rate_limiter.run_sweeper(settings.rate_limit_sweep_seconds))
    logger.info("%s %s started", settings.app_name, settings.app_version)
    yield
    # Shutdown
    sweeper.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await sweeper
    await app.state.notifier.drain()
    await Database.disconnect()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include routers
app.include_router(interviews.router)
app.include_router(chat.router)
app.include_router(usage.router)
app.include_router(admin.router)
app.include_router(realtime.router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Interview Prep Platform API",
        "version": settings.app_version,
        "docs": "/docs"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
