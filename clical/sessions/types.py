"""Session data types."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


DEFAULT_SUMMARY = "Work Block"


def now() -> datetime:
    """Return the current local time, tz-aware, truncated to whole seconds."""
    return datetime.now().astimezone().replace(microsecond=0)


def to_rfc3339(value: datetime) -> str:
    """Render an aware datetime as an RFC3339 string (second precision)."""
    if value.tzinfo is None:
        raise ValueError("RFC3339 timestamps need a timezone-aware datetime.")
    return value.replace(microsecond=0).isoformat()


def parse_rfc3339(value: str) -> datetime:
    """Parse an RFC3339 timestamp (``Z`` suffix allowed)."""
    parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        raise ValueError(f"Timestamp has no UTC offset: {value!r}")
    return parsed


@dataclass(frozen=True, slots=True)
class Session:
    """One open work interval, recorded at clock-in."""

    started_at: datetime
    summary: str = DEFAULT_SUMMARY

    @property
    def start_rfc3339(self) -> str:
        return to_rfc3339(self.started_at)
