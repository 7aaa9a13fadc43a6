"""
Structural signal types.

A signal is a minimal structural fact derived from source tables: a kind,
a thinking-time timestamp and an optional project. Signals carry no
editorial content and are rebuilt from scratch on every run.
"""

import hashlib
import logging
from dataclasses import asdict, dataclass
from enum import StrEnum
from typing import Optional

from structure_engine.config import is_dev_env
from structure_engine.timeutil import canonical_iso, format_iso, from_epoch_ms, parse_iso, to_epoch_ms

logger = logging.getLogger(__name__)


class SignalKind(StrEnum):
    """Structural change kinds. Ingestion events never produce signals."""

    DECISION = "decision"
    RESULT = "result"
    PROJECT_REACTIVATED = "project_reactivated"


@dataclass(frozen=True)
class StructuralSignal:
    id: str
    user_id: str
    kind: SignalKind
    occurred_at: str  # thinking time, canonical ISO
    project_id: Optional[str] = None
    source_id: Optional[str] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["kind"] = str(self.kind)
        return data


def generate_signal_id(
    kind: str,
    source_id: Optional[str],
    occurred_at: str,
    project_id: Optional[str],
) -> str:
    """Deterministic signal ID: sha256 of kind:source_id:occurred_at:project_id, 16 hex chars."""
    hash_input = ":".join([str(kind), source_id or "", occurred_at, project_id or ""])
    return hashlib.sha256(hash_input.encode("utf-8")).hexdigest()[:16]


def midpoint(start: Optional[str] = None, end: Optional[str] = None) -> str:
    """
    Midpoint of a thinking window.

    With both bounds, returns the millisecond midpoint. With one bound,
    returns that bound. Raises ValueError when neither is given.
    """
    if not start and not end:
        raise ValueError("midpoint() requires at least one of start or end")

    if start and end:
        mid_ms = (to_epoch_ms(start) + to_epoch_ms(end)) // 2
        return format_iso(from_epoch_ms(mid_ms))

    return canonical_iso(start or end)


def assert_thinking_time(occurred_at: Optional[str], context: str) -> None:
    """Reject a missing occurred_at; in development also reject unparseable ones."""
    if not occurred_at:
        raise ValueError(f"[signals] Missing occurred_at in {context}")

    if is_dev_env():
        try:
            parse_iso(occurred_at)
        except ValueError as e:
            raise ValueError(f"[signals] Invalid occurred_at in {context}: {occurred_at}") from e


def make_signal(
    user_id: str,
    kind: SignalKind,
    occurred_at: str,
    project_id: Optional[str] = None,
    source_id: Optional[str] = None,
) -> StructuralSignal:
    """Build a signal with its deterministic ID."""
    return StructuralSignal(
        id=generate_signal_id(kind, source_id, occurred_at, project_id),
        user_id=user_id,
        kind=kind,
        occurred_at=occurred_at,
        project_id=project_id,
        source_id=source_id,
    )
