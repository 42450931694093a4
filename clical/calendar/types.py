"""Calendar data types."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional


DEFAULT_CALENDAR_ID = "primary"


@dataclass(slots=True)
class CalendarEvent:
    """Event payload built from a finished session. Never persisted."""

    start: str  # RFC3339
    end: str  # RFC3339
    summary: str
    calendar_id: str = DEFAULT_CALENDAR_ID

    def to_body(self) -> Dict[str, Any]:
        """Request body for the Calendar API events.insert call."""
        return {
            "summary": self.summary,
            "start": {"dateTime": self.start},
            "end": {"dateTime": self.end},
        }


@dataclass(slots=True)
class InsertedEvent:
    """Reference to an event created on the remote calendar."""

    id: str
    calendar_id: str
    html_link: Optional[str] = None


@dataclass(slots=True)
class UpcomingEvent:
    """Read-only view of an event returned by the list call."""

    id: str
    summary: str
    start: datetime
    end: datetime
    is_all_day: bool = False
    creator_email: Optional[str] = None
    created: Optional[datetime] = None
    html_link: Optional[str] = None
