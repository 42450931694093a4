"""Google Calendar integration for clical.

This module provides:
- Event insert and upcoming-event listing against the Calendar v3 API
- OAuth2 credential caching and refresh
- Publishing finished work sessions as events
"""
from __future__ import annotations

from .types import (
    DEFAULT_CALENDAR_ID,
    CalendarEvent,
    InsertedEvent,
    UpcomingEvent,
)

from .google_calendar import (
    CalendarError,
    CalendarAuthError,
    GoogleCalendarClient,
    is_auth_failure,
)

from .credentials import (
    SCOPES,
    CredentialError,
    CredentialProvider,
    GoogleCredentialProvider,
)

from .sync import (
    CalendarSync,
    SyncResult,
    build_event,
    read_calendar_id_file,
    resolve_calendar_id,
)

__all__ = [
    "DEFAULT_CALENDAR_ID",
    "CalendarEvent",
    "InsertedEvent",
    "UpcomingEvent",
    "CalendarError",
    "CalendarAuthError",
    "GoogleCalendarClient",
    "is_auth_failure",
    "SCOPES",
    "CredentialError",
    "CredentialProvider",
    "GoogleCredentialProvider",
    "CalendarSync",
    "SyncResult",
    "build_event",
    "read_calendar_id_file",
    "resolve_calendar_id",
]
