"""
Structure Config - segmentation and job-queue thresholds.

DEFAULTS:
========

arc_gap_days = 14
  - A run of signals with no gap longer than this is one Arc.

arc_active_window_days = 45
  - An Arc whose last signal is at most this old is active, else compressed.

phase_gap_days = 7 / phase_active_window_days = 21
  - Same rules, finer grain, applied inside one Arc.

debounce_window_seconds = 60
  - Recompute requests for the same user + debounce key inside this window
    coalesce into one queued job.

stuck_after_seconds = 600
  - A running job older than this is considered stuck (health + sweep).

Override any value in structure.yaml:

    segmentation:
      arc_gap_days: 14
    jobs:
      debounce_window_seconds: 60
"""

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path

import yaml

from structure_engine import paths
from structure_engine.errors import ConfigError

logger = logging.getLogger(__name__)

DEV_ENV_VARS = ("STRUCTURE_ENGINE_ENV", "APP_ENV")

_SECTIONS = {
    "segmentation": (
        "arc_gap_days",
        "arc_active_window_days",
        "phase_gap_days",
        "phase_active_window_days",
    ),
    "jobs": (
        "debounce_window_seconds",
        "stuck_after_seconds",
        "default_batch_limit",
        "max_batch_limit",
        "cron_batch_limit",
        "error_max_chars",
    ),
}


@dataclass(frozen=True)
class StructureConfig:
    """Thresholds for one structure engine process."""

    arc_gap_days: float = 14
    arc_active_window_days: float = 45
    phase_gap_days: float = 7
    phase_active_window_days: float = 21

    debounce_window_seconds: int = 60
    stuck_after_seconds: int = 600
    default_batch_limit: int = 5
    max_batch_limit: int = 25
    cron_batch_limit: int = 10
    error_max_chars: int = 1000

    def clamp_batch_limit(self, limit: int | None) -> int:
        """Clamp a requested batch size to 1..max_batch_limit."""
        if limit is None:
            return self.default_batch_limit
        return min(max(1, int(limit)), self.max_batch_limit)


DEFAULT_CONFIG = StructureConfig()


def _validate(key: str, value) -> float | int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"structure config: {key} must be a number, got {value!r}")
    if value <= 0:
        raise ConfigError(f"structure config: {key} must be positive, got {value!r}")
    return value


def config_from_dict(data: dict) -> StructureConfig:
    """Build a StructureConfig from the parsed YAML mapping."""
    if not isinstance(data, dict):
        raise ConfigError("structure config: top level must be a mapping")

    overrides: dict[str, float | int] = {}
    for section, values in data.items():
        if section not in _SECTIONS:
            raise ConfigError(f"structure config: unknown section {section!r}")
        if values is None:
            continue
        if not isinstance(values, dict):
            raise ConfigError(f"structure config: section {section!r} must be a mapping")
        for key, value in values.items():
            if key not in _SECTIONS[section]:
                raise ConfigError(f"structure config: unknown key {section}.{key}")
            overrides[key] = _validate(f"{section}.{key}", value)

    int_fields = {f.name for f in fields(StructureConfig) if f.type in (int, "int")}
    for key in int_fields & overrides.keys():
        overrides[key] = int(overrides[key])

    config = replace(DEFAULT_CONFIG, **overrides)
    if config.default_batch_limit > config.max_batch_limit:
        raise ConfigError("structure config: default_batch_limit exceeds max_batch_limit")
    return config


def load_config(config_path: Path | None = None) -> StructureConfig:
    """Load structure config from YAML, falling back to defaults if absent."""
    path = config_path or paths.config_path()
    if not path.exists():
        logger.info("Structure config not found at %s, using defaults", path)
        return DEFAULT_CONFIG

    with open(path) as f:
        data = yaml.safe_load(f) or {}
    config = config_from_dict(data)
    logger.info("Loaded structure config from %s", path)
    return config


def is_dev_env() -> bool:
    return any(os.environ.get(var) == "development" for var in DEV_ENV_VARS)
