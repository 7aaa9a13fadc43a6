"""Deterministic state hash: SHA-256 over the canonical JSON of the normalized payload."""

import hashlib
import json

from structure_engine.hashing.normalize import normalize_structural_state
from structure_engine.hashing.types import StructuralStatePayload


def canonical_json(normalized: StructuralStatePayload) -> str:
    """Compact JSON with sorted keys. Input must already be normalized."""
    return json.dumps(
        normalized,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )


def compute_state_hash(payload: StructuralStatePayload) -> str:
    """
    Hash a structural payload.

    Normalizes first, so any two payloads that differ only in list order or
    key order produce the same hex digest.
    """
    normalized = normalize_structural_state(payload)
    return hashlib.sha256(canonical_json(normalized).encode("utf-8")).hexdigest()
