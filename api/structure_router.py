"""
Structure API Router - operator and cron endpoints.

AUTHENTICATION: every endpoint requires STRUCTURE_ADMIN_SECRET, sent as
x-index-admin-secret or Authorization: Bearer.

Usage in server.py:
    from api.structure_router import structure_router
    app.include_router(structure_router, prefix="/api/structure")
"""

import logging
import sqlite3
from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from api.auth import require_admin_secret
from api.response_models import (
    DirectionResponse,
    DispatchRequest,
    DispatchResponse,
    HealthResponse,
    ProcessJobsRequest,
    ProcessJobsResponse,
    ShiftsResponse,
)
from structure_engine.config import StructureConfig, load_config
from structure_engine.health import structure_health_summary
from structure_engine.jobs import dispatch_structure_recompute, process_structure_job_queue
from structure_engine.projection import load_direction, load_shifts
from structure_engine.store import StructureStore, get_store

logger = logging.getLogger(__name__)

# Router - ALL endpoints require the admin secret
structure_router = APIRouter(
    tags=["Structure"],
    dependencies=[Depends(require_admin_secret)],
)


@lru_cache(maxsize=1)
def get_config() -> StructureConfig:
    """Process-wide structure config (loaded once)."""
    return load_config()


# =============================================================================
# QUEUE ENDPOINTS
# =============================================================================


@structure_router.post(
    "/jobs/process", response_model=ProcessJobsResponse, response_model_exclude_none=True
)
def process_jobs(
    body: ProcessJobsRequest | None = None,
    store: StructureStore = Depends(get_store),
    config: StructureConfig = Depends(get_config),
):
    """
    Run up to `limit` queued structure jobs, oldest first.

    Stuck running jobs are swept to failed first. One failing job does not
    stop the batch; failures are listed in `failed`.
    """
    limit = body.limit if body else None
    try:
        result = process_structure_job_queue(store, limit=limit, config=config)
    except sqlite3.Error as e:
        logger.error(f"Structure queue processing failed: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to process jobs: {e}")
    return result.to_dict()


@structure_router.get("/cron/jobs", response_model=ProcessJobsResponse)
def cron_process_jobs(
    store: StructureStore = Depends(get_store),
    config: StructureConfig = Depends(get_config),
):
    """Cron entry point: same as /jobs/process with the cron batch size."""
    try:
        result = process_structure_job_queue(store, limit=config.cron_batch_limit, config=config)
    except sqlite3.Error as e:
        logger.error(f"Structure cron run failed: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to process jobs: {e}")
    return {"ok": True, **result.to_dict()}


@structure_router.post("/dispatch", response_model=DispatchResponse)
def dispatch(
    body: DispatchRequest,
    store: StructureStore = Depends(get_store),
    config: StructureConfig = Depends(get_config),
):
    """
    Request a structure recompute for a user.

    A request inside the debounce window of an in-flight job returns
    status "debounced" (200), not an error.
    """
    try:
        result = dispatch_structure_recompute(
            store,
            user_id=body.user_id,
            reason=body.reason,
            scope=body.scope,
            debounce_key=body.debounce_key,
            config=config,
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except sqlite3.Error as e:
        logger.error(f"Structure dispatch failed: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to enqueue job: {e}")
    return result.to_dict()


# =============================================================================
# READ-ONLY ENDPOINTS
# =============================================================================


@structure_router.get("/direction", response_model=DirectionResponse)
def direction(
    user_id: str = Query(..., min_length=1),
    scope: str = Query("global", description="global | project | user"),
    store: StructureStore = Depends(get_store),
):
    """Direction projection of the latest snapshot (null before the first one)."""
    try:
        projection = load_direction(store, user_id, scope)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {
        "user_id": user_id,
        "scope": scope,
        "direction": projection.to_dict() if projection else None,
    }


@structure_router.get("/shifts", response_model=ShiftsResponse)
def shifts(
    user_id: str = Query(..., min_length=1),
    scope: str = Query("global", description="global | project | user"),
    store: StructureStore = Depends(get_store),
):
    """Shifts between the two latest snapshots."""
    try:
        projection = load_shifts(store, user_id, scope)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"user_id": user_id, "scope": scope, **projection.to_dict()}


@structure_router.get("/health", response_model=HealthResponse)
def health(
    response: Response,
    store: StructureStore = Depends(get_store),
    config: StructureConfig = Depends(get_config),
):
    """Queue and snapshot freshness diagnostics. Never cached."""
    response.headers["Cache-Control"] = "no-store"
    summary = structure_health_summary(store, stuck_threshold_seconds=config.stuck_after_seconds)
    return summary.to_dict()
