"""Structure job queue: types, debounce, enqueue, dispatch, processor, runner, sweep."""

from .dedupe import find_inflight_job
from .dispatch import dispatch_structure_recompute
from .enqueue import EnqueueResult, enqueue_structure_job, generate_debounce_key
from .processor import StructureCycleResult, run_structure_cycle, run_structure_job, truncate_error
from .queue import ProcessQueueResult, process_structure_job_queue, select_queued_job_ids
from .sweep import sweep_stuck_jobs
from .types import (
    ALLOWED_TRANSITIONS,
    IN_FLIGHT_STATUSES,
    JobStatus,
    JobType,
    RecomputeReason,
    StructureJobPayload,
    StructureJobRow,
    StructureScope,
    can_transition,
    load_job,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "IN_FLIGHT_STATUSES",
    "EnqueueResult",
    "JobStatus",
    "JobType",
    "ProcessQueueResult",
    "RecomputeReason",
    "StructureCycleResult",
    "StructureJobPayload",
    "StructureJobRow",
    "StructureScope",
    "can_transition",
    "dispatch_structure_recompute",
    "enqueue_structure_job",
    "find_inflight_job",
    "generate_debounce_key",
    "load_job",
    "process_structure_job_queue",
    "run_structure_cycle",
    "run_structure_job",
    "select_queued_job_ids",
    "sweep_stuck_jobs",
    "truncate_error",
]
