"""
Development-only ordering checks for structural payloads.

Never mutates and never raises. Logs a structured warning with reason codes
and length metadata; payload contents are never logged.
"""

import logging
from collections.abc import Mapping, Sequence

from structure_engine.config import is_dev_env
from structure_engine.hashing.types import LIST_FIELDS, NUMERIC_MAP_FIELDS, STRING_MAP_FIELDS

logger = logging.getLogger(__name__)


def _is_sorted(values: Sequence) -> bool:
    if not all(isinstance(v, str) for v in values):
        return False
    return all(values[i - 1] <= values[i] for i in range(1, len(values)))


def _keys_sorted(record: Mapping) -> bool:
    keys = list(record)
    return _is_sorted(keys)


def find_ordering_violations(payload: Mapping) -> list[str]:
    """Reason codes for every list or map in the payload that is out of order."""
    reasons = []
    for name in LIST_FIELDS:
        values = payload.get(name)
        if not isinstance(values, list) or not _is_sorted(values):
            reasons.append(f"unordered_{name}")
    for name in STRING_MAP_FIELDS + NUMERIC_MAP_FIELDS:
        record = payload.get(name)
        if not isinstance(record, Mapping) or not _keys_sorted(record):
            reasons.append(f"unordered_{name}_keys")
    return reasons


def dev_assert_deterministic_payload(payload: Mapping, context: str) -> list[str]:
    """Warn (development only) when the payload is not in canonical order."""
    if not is_dev_env():
        return []

    reasons = find_ordering_violations(payload)
    if not reasons:
        return []

    meta = {}
    for name in LIST_FIELDS:
        values = payload.get(name)
        meta[f"{name}_length"] = len(values) if isinstance(values, list) else None
    for name in STRING_MAP_FIELDS + NUMERIC_MAP_FIELDS:
        record = payload.get(name)
        meta[f"{name}_key_count"] = len(record) if isinstance(record, Mapping) else 0

    logger.warning(
        "Structural payload ordering is non-deterministic",
        extra={"context": context, "reasons": reasons, "meta": meta},
    )
    return reasons
