"""Mileage Tracker API: Strava activity sync with monthly and seasonal mileage goals."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings
from app.database import create_tables
from app.jobs.scheduler import ProgressScheduler
from app.routers import activities, progress

API_VERSION = "1.0.0"

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables, then run the batch scheduler for the app's lifetime when enabled."""
    create_tables()

    scheduler = ProgressScheduler(settings) if settings.SCHEDULER_ENABLED else None
    if scheduler:
        scheduler.start()
    else:
        logger.info("Batch scheduler disabled")

    try:
        yield
    finally:
        if scheduler:
            scheduler.shutdown()


app = FastAPI(
    title="Mileage Tracker API",
    description="Syncs runs, walks and hikes from Strava and tracks mileage against monthly and seasonal goals",
    version=API_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(activities.router, prefix="/api/activities", tags=["Activities"])
app.include_router(progress.router, prefix="/api/progress", tags=["Progress"])
app.include_router(progress.goals_router, prefix="/api/goals", tags=["Goals"])


@app.get("/", tags=["Health"])
async def root():
    return {"name": app.title, "version": API_VERSION, "status": "running"}


@app.get("/health", tags=["Health"])
@app.get("/api/health", tags=["Health"])
async def health_check():
    """Liveness probe."""
    return {"status": "healthy"}
