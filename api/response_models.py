"""
Pydantic request/response models for the structure API.

These give FastAPI accurate OpenAPI schemas for every route.
"""

from typing import Any

from pydantic import BaseModel, Field

# ==== Requests ====


class ProcessJobsRequest(BaseModel):
    """Body for POST /api/structure/jobs/process."""

    limit: int | None = Field(default=None, description="Jobs to run (default 5, clamped to 1..25)")


class DispatchRequest(BaseModel):
    """Body for POST /api/structure/dispatch."""

    user_id: str = Field(min_length=1, description="User whose structure should be recomputed")
    scope: str = Field(default="user", description="Structure scope")
    reason: str = Field(description="ingestion | decision_change | manual | backfill")
    debounce_key: str | None = Field(default=None, description="Defaults to <scope>:<reason>")


# ==== Responses ====


class ProcessJobsResponse(BaseModel):
    """Summary of one queue-draining pass."""

    processed: int = Field(description="Number of jobs attempted")
    job_ids: list[str] = Field(default_factory=list, description="Attempted job ids, oldest first")
    succeeded: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)
    swept: list[str] = Field(default_factory=list, description="Stuck running jobs failed first")
    ok: bool | None = Field(default=None, description="Set by the cron route")


class DispatchResponse(BaseModel):
    status: str = Field(description="queued or debounced")
    job_id: str | None = Field(default=None, description="New job, or the in-flight job")
    debounce_key: str


class DirectionResponse(BaseModel):
    user_id: str
    scope: str
    direction: dict[str, Any] | None = Field(
        default=None, description="Null when no snapshot exists yet"
    )


class ShiftsResponse(BaseModel):
    user_id: str
    scope: str
    has_shift: bool
    shift_types: list[str] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Structure health summary."""

    now: str
    ok: bool
    jobs: dict[str, Any]
    snapshots: dict[str, Any]
    warnings: list[str] = Field(default_factory=list)
