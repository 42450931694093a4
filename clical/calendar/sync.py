"""Publish finished sessions to the calendar and classify the outcome."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Literal, Optional, Protocol, Tuple

from ..sessions.types import Session, to_rfc3339
from .credentials import CredentialProvider
from .google_calendar import CalendarAuthError, CalendarError
from .types import DEFAULT_CALENDAR_ID, CalendarEvent, InsertedEvent


logger = logging.getLogger(__name__)

SyncStatus = Literal["synced", "auth_expired", "failed"]


class EventInserter(Protocol):
    def insert_event(self, event: CalendarEvent) -> InsertedEvent: ...


@dataclass(slots=True)
class SyncResult:
    """Outcome of one publish attempt."""

    status: SyncStatus
    event: CalendarEvent
    inserted: Optional[InsertedEvent] = None
    error: Optional[CalendarError] = None


def read_calendar_id_file(path: Path) -> Optional[str]:
    """Return the first non-blank line of the calendar-id file, if any."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    for line in text.splitlines():
        if line.strip():
            return line.strip()
    return None


def resolve_calendar_id(
    override: Optional[str],
    calendar_id_file: Optional[Path] = None,
) -> Tuple[str, bool]:
    """Pick the target calendar.

    Args:
        override: Explicitly configured calendar ID (environment)
        calendar_id_file: Optional single-line file naming the calendar

    Returns:
        ``(calendar_id, is_default)``; the default is ``"primary"``.
    """
    if override and override.strip():
        return override.strip(), False
    if calendar_id_file is not None:
        from_file = read_calendar_id_file(calendar_id_file)
        if from_file:
            return from_file, False
    logger.info(f"No calendar ID configured; using {DEFAULT_CALENDAR_ID!r}")
    return DEFAULT_CALENDAR_ID, True


def build_event(session: Session, ended_at: datetime, calendar_id: str) -> CalendarEvent:
    return CalendarEvent(
        start=session.start_rfc3339,
        end=to_rfc3339(ended_at),
        summary=session.summary,
        calendar_id=calendar_id,
    )


class CalendarSync:
    """Turns a finished session into a calendar event."""

    def __init__(
        self,
        client: EventInserter,
        credentials: CredentialProvider,
        calendar_id: str = DEFAULT_CALENDAR_ID,
    ) -> None:
        self.client = client
        self.credentials = credentials
        self.calendar_id = calendar_id

    def publish(self, session: Session, ended_at: datetime) -> SyncResult:
        """Submit the session and classify the result. Never raises CalendarError."""
        event = build_event(session, ended_at, self.calendar_id)
        try:
            inserted = self.client.insert_event(event)
        except CalendarAuthError as exc:
            logger.warning(f"Calendar credential rejected: {exc}")
            return SyncResult(status="auth_expired", event=event, error=exc)
        except CalendarError as exc:
            logger.error(f"Calendar insert failed: {exc}")
            return SyncResult(status="failed", event=event, error=exc)

        logger.info(f"Created event {inserted.id} on calendar {inserted.calendar_id}")
        return SyncResult(status="synced", event=event, inserted=inserted)

    def discard_credentials(self) -> None:
        self.credentials.invalidate()
