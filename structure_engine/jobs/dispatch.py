"""
Recompute trigger for ingestion and mutation code.

Never raises on a debounce skip; raises ValueError on bad input and lets
storage errors propagate.
"""

from datetime import datetime
from typing import Optional

from structure_engine.config import DEFAULT_CONFIG, StructureConfig
from structure_engine.jobs.enqueue import EnqueueResult, enqueue_structure_job, generate_debounce_key
from structure_engine.jobs.types import RecomputeReason, StructureJobPayload, StructureScope
from structure_engine.store import StructureStore


def dispatch_structure_recompute(
    store: StructureStore,
    user_id: str,
    reason: str,
    scope: str = StructureScope.USER,
    debounce_key: Optional[str] = None,
    now: Optional[datetime] = None,
    config: StructureConfig = DEFAULT_CONFIG,
) -> EnqueueResult:
    payload = StructureJobPayload(
        user_id=user_id,
        reason=RecomputeReason(reason),
        scope=StructureScope(scope),
        debounce_key=debounce_key or generate_debounce_key(scope, reason),
    )
    return enqueue_structure_job(store, payload, now=now, config=config)
