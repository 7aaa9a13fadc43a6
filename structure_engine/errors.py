"""
Error taxonomy for the structure engine.

- MissingThinkingTimeError: a source event cannot be placed in thinking time
- JobNotFoundError / JobStateError: structure job queue invariants violated
- StateNormalizationError: malformed structural payload (types, NaN, Infinity)
- ConfigError: invalid structure config file

Storage failures surface as sqlite3.Error and are not wrapped.
"""

from typing import Any


class StructureError(Exception):
    """Base class for structure engine errors."""


class MissingThinkingTimeError(StructureError):
    """Raised when thinking time for a source event cannot be determined."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        if not message.startswith("Missing thinking time"):
            message = f"Missing thinking time: {message}"
        super().__init__(message)
        self.context = context or {}


class JobNotFoundError(StructureError):
    """Raised when a structure job does not exist."""

    def __init__(self, job_id: str):
        super().__init__(f"Job not found: {job_id}")
        self.job_id = job_id


class JobStateError(StructureError):
    """Raised when a structure job is in the wrong state for an operation."""

    def __init__(self, job_id: str, expected_status: str, actual_status: str):
        super().__init__(
            f"Job {job_id} is in state {actual_status}, expected {expected_status}"
        )
        self.job_id = job_id
        self.expected_status = expected_status
        self.actual_status = actual_status


class StateNormalizationError(StructureError, ValueError):
    """Raised when a structural state payload fails validation."""


class ConfigError(StructureError, ValueError):
    """Raised when the structure config file is invalid."""
