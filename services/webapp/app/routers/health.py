# =============================================================================
# Health Check Router
# =============================================================================
# Liveness and readiness of the backfill tooling. Readiness means the
# document store answers a single-document read.
# =============================================================================

from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel

from app.config import get_settings

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    version: str
    store_backend: str


class ReadyResponse(BaseModel):
    """Document store reachability, probed through the first registered collection."""

    status: str
    store: str
    probed_collection: Optional[str] = None


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Liveness probe. Never touches the document store."""
    from app import __version__

    return HealthResponse(
        status="healthy",
        version=__version__,
        store_backend=get_settings().backfill_store,
    )


@router.get("/ready", response_model=ReadyResponse)
def readiness_check() -> ReadyResponse:
    from app.services.backfill_service import get_backfill_service

    backfill = get_backfill_service().backfill
    first = next(iter(backfill.registry), None)
    if first is None:
        return ReadyResponse(status="degraded", store="no collections registered")

    try:
        backfill.store.probe(first.path)
    except Exception as exc:
        return ReadyResponse(status="degraded", store=f"error: {exc}", probed_collection=first.path)
    return ReadyResponse(status="ready", store="ok", probed_collection=first.path)
