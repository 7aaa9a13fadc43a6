"""
Normalization of the structural state payload.

Rules:
- every field present with the right type (no None, NaN or Infinity)
- id/type lists sorted lexically
- map keys sorted lexically
- numeric buckets rounded to 2 decimals

normalize_structural_state is a fixed point: normalizing a normalized
payload returns an equal payload.
"""

from typing import Any

from structure_engine.errors import StateNormalizationError
from structure_engine.hashing.bucket import round_bucket
from structure_engine.hashing.types import (
    LIST_FIELDS,
    NUMBER_FIELDS,
    NUMERIC_MAP_FIELDS,
    STRING_MAP_FIELDS,
    StructuralStatePayload,
)


def _require_field(payload: dict, name: str) -> Any:
    if name not in payload or payload[name] is None:
        raise StateNormalizationError(f"normalize_structural_state: missing {name}")
    return payload[name]


def _normalize_list(name: str, values: Any) -> list[str]:
    if not isinstance(values, list):
        raise StateNormalizationError(f"normalize_structural_state: {name} must be a list")
    for value in values:
        if not isinstance(value, str):
            raise StateNormalizationError(
                f"normalize_structural_state: {name} must contain only strings"
            )
    return sorted(values)


def _normalize_string_map(name: str, record: Any) -> dict[str, str]:
    if not isinstance(record, dict):
        raise StateNormalizationError(f"normalize_structural_state: {name} must be a mapping")
    normalized = {}
    for key in sorted(record, key=_map_key):
        value = record[key]
        if value is None:
            raise StateNormalizationError(
                f"normalize_structural_state: null value in {name} for key: {key}"
            )
        if not isinstance(value, str):
            raise StateNormalizationError(
                f"normalize_structural_state: invalid value in {name} for key: {key}"
            )
        normalized[key] = value
    return normalized


def _normalize_numeric_map(name: str, record: Any) -> dict[str, float]:
    if not isinstance(record, dict):
        raise StateNormalizationError(f"normalize_structural_state: {name} must be a mapping")
    normalized = {}
    for key in sorted(record, key=_map_key):
        try:
            normalized[key] = round_bucket(record[key])
        except StateNormalizationError as e:
            raise StateNormalizationError(
                f"normalize_structural_state: invalid number in {name} for key: {key}"
            ) from e
    return normalized


def _map_key(key: Any) -> str:
    if not isinstance(key, str):
        raise StateNormalizationError(f"normalize_structural_state: map keys must be strings, got {key!r}")
    return key


def normalize_structural_state(payload: StructuralStatePayload) -> StructuralStatePayload:
    """Validate and canonicalize a payload. Raises StateNormalizationError."""
    if not isinstance(payload, dict):
        raise StateNormalizationError("normalize_structural_state: payload must be a mapping")

    normalized: dict[str, Any] = {}
    for name in LIST_FIELDS:
        normalized[name] = _normalize_list(name, _require_field(payload, name))
    for name in STRING_MAP_FIELDS:
        normalized[name] = _normalize_string_map(name, _require_field(payload, name))
    for name in NUMERIC_MAP_FIELDS:
        normalized[name] = _normalize_numeric_map(name, _require_field(payload, name))
    for name in NUMBER_FIELDS:
        try:
            normalized[name] = round_bucket(_require_field(payload, name))
        except StateNormalizationError as e:
            raise StateNormalizationError(
                f"normalize_structural_state: {name} must be a valid number"
            ) from e

    # Top-level keys in sorted order too
    return StructuralStatePayload(**{key: normalized[key] for key in sorted(normalized)})
