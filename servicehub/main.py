"""FastAPI application entry point for ServiceHub."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from servicehub.api.routes import geo, messages, tracking
from servicehub.config import get_settings
from servicehub.db.session import close_db, init_db
from servicehub.services.cache import cache_service
from servicehub.services.geocoding import geocoding_service

settings = get_settings()

# Configure logging - PRIVACY: never log message content or coordinates
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle management."""
    # Startup
    logger.info("Starting ServiceHub...")
    await init_db()
    await cache_service.connect()
    await geocoding_service.start()
    logger.info("ServiceHub ready")

    yield

    # Shutdown
    logger.info("Shutting down ServiceHub...")
    await geocoding_service.stop()
    await cache_service.disconnect()
    await close_db()
    logger.info("ServiceHub stopped")


app = FastAPI(
    title="ServiceHub",
    description="Chat content filtering and geofenced check-in for home-service bookings",
    version="0.1.0",
    lifespan=lifespan,
)

# Include routers
app.include_router(messages.router)
app.include_router(tracking.router)
app.include_router(geo.router)


@app.get("/health")
async def health_check() -> dict:
    """
    Health check endpoint.

    Returns:
    - status: API health status
    - cache_available: Redis connection status
    - geocoding: geocoding cache/API counters
    """
    return {
        "status": "healthy",
        "cache_available": cache_service.is_available,
        "geocoding": geocoding_service.stats,
        "version": "0.1.0",
    }


@app.get("/")
async def root() -> dict:
    """Root endpoint with API info."""
    return {
        "name": "ServiceHub",
        "description": "Chat content filtering and geofenced check-in",
        "version": "0.1.0",
        "endpoints": {
            "health": "/health",
            "filter_message": "POST /api/v1/messages/filter",
            "send_message": "POST /api/v1/conversations/{id}/messages",
            "check_in": "POST /api/v1/bookings/{booking_id}/check-in",
            "check_out": "POST /api/v1/tracking/{tracking_id}/check-out",
            "ping": "POST /api/v1/bookings/{booking_id}/pings",
            "geocode": "POST /api/v1/geo/geocode",
            "docs": "/docs",
        },
    }
