import logging
from dataclasses import asdict

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from functools import partial

from .core.config import settings
from .core.logging import setup_logging
from .db.database import init_db, AsyncSessionLocal
from .db.registry import list_fingerprints
from .api.routes import router as api_router
from .api.schemas import HealthResponse
from .scanner.resolver import select_resolver
from .scanner.scheduler import PresenceScanner

logger = logging.getLogger(__name__)

# Global scanner instance
scanner = PresenceScanner(
    resolver=select_resolver(settings),
    fingerprint_source=partial(list_fingerprints, AsyncSessionLocal),
    grace=settings.COLLECT_GRACE,
    hash_iterations=settings.HASH_ITERATIONS,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    setup_logging(settings.LOG_LEVEL)
    logger.info("Starting %s v%s", settings.APP_NAME, settings.APP_VERSION)

    await init_db()
    logger.info("Database initialized")

    # First cycle runs before the first request is served
    await scanner.start(settings.SCAN_INTERFACE, settings.SCAN_RANGE, settings.SCAN_INTERVAL)
    logger.info(
        "Background scanning started on %s %s (interval: %ss)",
        settings.SCAN_INTERFACE, settings.SCAN_RANGE, settings.SCAN_INTERVAL,
    )

    yield

    logger.info("Shutting down...")
    await scanner.stop()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Shows which users are present on the local network",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api", tags=["API"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running"
    }


@app.get("/health", response_model=HealthResponse)
async def health():
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        scanner_running=scanner.running,
        last_cycle=asdict(scanner.last_cycle) if scanner.last_cycle else None,
    )
