"""
Bucketing helpers that reduce precision so hashes stay stable.

round_bucket rounds half toward +infinity on n * 10**decimals (the
Math.round rule other consumers of stored payloads apply), not Python's
banker's rounding: 3 / 40 buckets to 0.08 where round() gives 0.07.
"""

import math
from datetime import datetime

from structure_engine.errors import StateNormalizationError
from structure_engine.timeutil import format_iso, parse_iso

BUCKET_WINDOWS = ("hour", "day")


def bucket_timestamp(iso: str, window: str = "hour") -> str:
    """Truncate a timestamp to its hour or day, e.g. 2024-01-15T14:00:00.000Z."""
    if not iso or not isinstance(iso, str):
        raise StateNormalizationError(f"bucket_timestamp: invalid ISO string: {iso!r}")
    if window not in BUCKET_WINDOWS:
        raise StateNormalizationError(f"bucket_timestamp: invalid window: {window!r}")

    try:
        dt: datetime = parse_iso(iso)
    except ValueError as e:
        raise StateNormalizationError(f"bucket_timestamp: invalid date: {iso!r}") from e

    if window == "hour":
        dt = dt.replace(minute=0, second=0, microsecond=0)
    else:
        dt = dt.replace(hour=0, minute=0, second=0, microsecond=0)
    return format_iso(dt)


def day_bucket(iso: str) -> str:
    return bucket_timestamp(iso, "day")


def round_bucket(n: float, decimals: int = 2) -> float:
    """Round to `decimals` places. Rejects non-numbers, NaN and infinities."""
    if isinstance(n, bool) or not isinstance(n, (int, float)):
        raise StateNormalizationError(f"round_bucket: invalid number: {n!r}")
    if math.isnan(n):
        raise StateNormalizationError("round_bucket: NaN detected")
    if math.isinf(n):
        raise StateNormalizationError(f"round_bucket: Infinity detected: {n}")

    factor = 10**decimals
    return math.floor(n * factor + 0.5) / factor
