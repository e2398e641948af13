"""
FastAPI app entrypoint.

Runs the two recurring availability syncs (provider schedule, appointment find) and exposes a small
operator surface for on-demand and range re-syncs.
"""
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI

# Load .env from backend/ before any app code
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from caresync.api.routes import system
from caresync.config import settings
from caresync.services.availability.sync_manager import build_sync_managers

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    managers = build_sync_managers()
    app.state.sync_managers = managers
    if settings.availability_sync_enabled:
        for manager in managers.values():
            manager.start()
        logger.info("Availability sync started for %s", ", ".join(managers))
    else:
        logger.info("Availability sync disabled (AVAILABILITY_SYNC_ENABLED=false); managers not started")
    yield
    for manager in managers.values():
        manager.stop()


app = FastAPI(title="CareSync Availability", version="0.1.0", lifespan=lifespan)

app.include_router(system.router, tags=["system"])


@app.get("/", include_in_schema=False)
def root():
    return {"message": "CareSync availability sync", "docs": "/docs", "health": "/health"}
