# =============================================================================
# FastAPI Main Application
# =============================================================================
# Entry point for the backfill tooling webapp.
# =============================================================================

import logging

from fastapi import FastAPI

from app import __version__
from app.routers import backfill, health

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Application instance
app = FastAPI(
    title="Province Backfill Tooling",
    description="Preview, run, steer, validate and roll back the province backfill.",
    version=__version__,
)

# Include routers
app.include_router(health.router)
app.include_router(backfill.router)
