"""Thinking-time timestamp helpers.

All timestamps the engine writes use one canonical form,
``YYYY-MM-DDTHH:MM:SS.mmmZ`` (UTC, millisecond precision), so lexical
order of stored strings equals time order.
"""

from datetime import UTC, datetime, timedelta

MS_PER_DAY = 24 * 60 * 60 * 1000
EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def parse_iso(value: str) -> datetime:
    """Parse an ISO timestamp into an aware UTC datetime.

    Naive timestamps are taken as UTC. Raises ValueError on bad input.
    """
    if not isinstance(value, str) or not value:
        raise ValueError(f"invalid ISO timestamp: {value!r}")
    text = value.strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def format_iso(dt: datetime) -> str:
    """Format a datetime in canonical millisecond ``...Z`` form."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    dt = dt.astimezone(UTC)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def to_epoch_ms(value: str | datetime) -> int:
    dt = parse_iso(value) if isinstance(value, str) else value
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    delta = dt - EPOCH
    return (delta.days * 86_400 + delta.seconds) * 1000 + delta.microseconds // 1000


def from_epoch_ms(ms: int) -> datetime:
    return EPOCH + timedelta(milliseconds=ms)


def canonical_iso(value: str) -> str:
    return format_iso(parse_iso(value))


def days_between(first: str | datetime, second: str | datetime) -> float:
    """Absolute distance between two timestamps in (fractional) days."""
    return abs(to_epoch_ms(second) - to_epoch_ms(first)) / MS_PER_DAY


def utc_now() -> datetime:
    return datetime.now(UTC)


def now_iso(now: datetime | None = None) -> str:
    return format_iso(now or utc_now())
