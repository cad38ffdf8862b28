import asyncio
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse

from aggregation import build_overview
from backend import registry
from constants import PLUGIN_ASSET, PRUNE_INTERVAL_SECONDS
from logging_config import get_logger, setup_logging
from routers.rooms import rooms_router
from status_page import render_status_page

# Setup logging
log_level = os.getenv("LOG_LEVEL", "INFO")
log_file = os.getenv("LOG_FILE", None)
setup_logging(log_level=log_level, log_file=log_file)
logger = get_logger(__name__)


async def prune_periodically(interval_seconds: float):
    """Background sweep so stale clients disappear even when no request arrives."""
    logger.info(f"Starting background prune every {interval_seconds}s")
    try:
        while True:
            await asyncio.sleep(interval_seconds)
            removed = registry.prune()
            if removed:
                logger.debug(f"Background prune removed {removed} clients")
    except asyncio.CancelledError:
        logger.info("Background prune task cancelled")


@asynccontextmanager
async def lifespan(app: FastAPI):
    prune_task = None
    if PRUNE_INTERVAL_SECONDS > 0:
        prune_task = asyncio.create_task(prune_periodically(PRUNE_INTERVAL_SECONDS))
    yield
    if prune_task:
        prune_task.cancel()
        await prune_task


app = FastAPI(title="Cooldown relay", lifespan=lifespan)

# Configure CORS to allow all origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(rooms_router)

logger.info("FastAPI application initialized")


@app.get("/health")
async def health():
    return {"ok": True}


@app.get("/", response_class=HTMLResponse)
async def status_page():
    now, rooms = registry.overview()
    overview = build_overview(rooms, now, live_cutoff_ms=registry.liveness_cutoff_ms)
    server_time = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M")
    logger.debug(f"Rendering status page: {overview.total_rooms} rooms, {overview.total_peers} clients")
    return HTMLResponse(render_status_page(overview, server_time, f"/download/{PLUGIN_ASSET}"))
