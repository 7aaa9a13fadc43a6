"""State hashing: payload type, buckets, normalization, digest."""

from .assertions import dev_assert_deterministic_payload, find_ordering_violations
from .bucket import bucket_timestamp, day_bucket, round_bucket
from .compute import canonical_json, compute_state_hash
from .normalize import normalize_structural_state
from .types import PAYLOAD_FIELDS, StructuralStatePayload, empty_payload

__all__ = [
    "PAYLOAD_FIELDS",
    "StructuralStatePayload",
    "bucket_timestamp",
    "canonical_json",
    "compute_state_hash",
    "day_bucket",
    "dev_assert_deterministic_payload",
    "empty_payload",
    "find_ordering_violations",
    "normalize_structural_state",
    "round_bucket",
]
