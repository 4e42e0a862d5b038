# =============================================================================
# Backfill Router
# =============================================================================
# Endpoints behind the migration dashboard: collection listing, sample
# preview, background runs with pause/resume/cancel, validation, rollback.
# =============================================================================

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, HTTPException, status
from pydantic import BaseModel, Field

from libs.backfill import SELECTION_PRESETS
from libs.models import BackfillRequest, RATE_LIMIT_PRESETS

from app.config import get_settings
from app.services.backfill_service import RunInProgressError, get_backfill_service

router = APIRouter(prefix="/backfill", tags=["backfill"])


class CollectionItem(BaseModel):
    name: str
    path: str


class CollectionListResponse(BaseModel):
    """Registered collections plus the selection and rate-limit presets."""

    collections: list[CollectionItem]
    count: int
    presets: dict[str, list[str]]
    modes: list[str]


class PreviewRequest(BaseModel):
    collections: Optional[list[str]] = Field(None, description="Collections to sample (all when omitted)")
    limit: Optional[int] = Field(None, ge=1, le=50, description="Documents per collection")


class RunAcceptedResponse(BaseModel):
    status: str
    selected_collections: Optional[list[str]]


class ControlResponse(BaseModel):
    state: str
    applied: bool


@router.get("/collections", response_model=CollectionListResponse)
async def list_collections() -> CollectionListResponse:
    """List the collections a backfill can target."""
    registry = get_backfill_service().backfill.registry
    return CollectionListResponse(
        collections=[CollectionItem(name=c.name, path=c.path) for c in registry],
        count=len(registry),
        presets={name: registry.preset(name) for name in SELECTION_PRESETS},
        modes=list(RATE_LIMIT_PRESETS),
    )


@router.post("/preview")
def preview(request: PreviewRequest) -> dict:
    """
    Show what a backfill would write for the first documents of each collection.

    Read-only. Unknown collection names are ignored.
    """
    limit = request.limit or get_settings().preview_limit
    previews = get_backfill_service().backfill.preview(request.collections, limit=limit)
    return {
        "collections": [p.model_dump(mode="json") for p in previews],
        "count": len(previews),
    }


@router.post("/runs", status_code=status.HTTP_202_ACCEPTED, response_model=RunAcceptedResponse)
async def start_run(request: BackfillRequest, background_tasks: BackgroundTasks) -> RunAcceptedResponse:
    """
    Start a backfill in the background.

    Only one run may be active; poll /backfill/progress for its state.
    """
    service = get_backfill_service()
    try:
        selected = service.start_run(request)
    except RunInProgressError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    background_tasks.add_task(service.execute_run, request)
    return RunAcceptedResponse(status="accepted", selected_collections=selected)


@router.get("/progress")
async def get_progress() -> dict:
    """Current run state, latest progress event and the last finished result."""
    return get_backfill_service().progress()


@router.post("/pause", response_model=ControlResponse)
async def pause_run() -> ControlResponse:
    """Pause the active run after its current batch."""
    service = get_backfill_service()
    applied = service.pause()
    return ControlResponse(state=service.state.value, applied=applied)


@router.post("/resume", response_model=ControlResponse)
async def resume_run() -> ControlResponse:
    service = get_backfill_service()
    applied = service.resume()
    return ControlResponse(state=service.state.value, applied=applied)


@router.post("/cancel", response_model=ControlResponse)
async def cancel_run() -> ControlResponse:
    """Cancel the active run at its next page or batch boundary."""
    service = get_backfill_service()
    applied = service.cancel()
    return ControlResponse(state=service.state.value, applied=applied)


@router.get("/runs/last")
def get_last_run() -> dict:
    """The persisted audit record of the last run."""
    try:
        record = get_backfill_service().backfill.last_run()
    except Exception as exc:
        raise HTTPException(
            status_code=503,
            detail=f"Failed to read the run record: {exc}",
        ) from exc

    if record is None:
        raise HTTPException(status_code=404, detail="No backfill run recorded yet")
    return record.model_dump(mode="json")


@router.post("/validate")
def validate() -> dict:
    """Count documents with and without the province across every collection."""
    report = get_backfill_service().backfill.validate_migration()
    return {"is_valid": report.is_valid, **report.model_dump(mode="json")}


@router.post("/rollback")
def rollback() -> dict:
    """Remove the backfilled fields from every document the backfill wrote."""
    try:
        result = get_backfill_service().rollback()
    except RunInProgressError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return result.model_dump(mode="json")
