"""Clock-in / clock-out state machine.

There are two states, Idle and Active, and no flag recording which one we
are in: a session present in the store *is* the Active state. The
controller reports failures by raising; it never exits the process.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from ..calendar.google_calendar import CalendarError
from ..calendar.sync import CalendarSync
from ..calendar.types import CalendarEvent, InsertedEvent
from .store import NoActiveSession, SessionAlreadyActive, SessionStore, SessionStoreError
from .types import DEFAULT_SUMMARY, Session, now


logger = logging.getLogger(__name__)


class ClockError(RuntimeError):
    """Base class for clock-in/clock-out failures."""


class AlreadyClockedIn(ClockError):
    """Clock-in attempted while a session is open."""

    def __init__(self, session: Session) -> None:
        super().__init__(f"Already clocked in since {session.start_rfc3339}.")
        self.session = session

    @property
    def started_at(self) -> datetime:
        return self.session.started_at


class NotClockedIn(ClockError):
    """Clock-out attempted with no open session."""


class CredentialExpired(ClockError):
    """The calendar rejected the credential; session and token were discarded."""

    def __init__(
        self,
        session: Session,
        ended_at: datetime,
        cause: CalendarError,
        *,
        cleanup_error: Optional[SessionStoreError] = None,
    ) -> None:
        super().__init__(
            f"Calendar credential expired or revoked; discarded session started "
            f"{session.start_rfc3339}."
        )
        self.session = session
        self.ended_at = ended_at
        self.cause = cause
        self.cleanup_error = cleanup_error


class SyncFailed(ClockError):
    """Publishing failed for a reason other than auth; the session is kept."""

    def __init__(self, session: Session, cause: CalendarError) -> None:
        super().__init__(f"Failed to create an event on Google Calendar: {cause}")
        self.session = session
        self.cause = cause


@dataclass(slots=True)
class ClockOutResult:
    """A session that was published and cleared."""

    session: Session
    ended_at: datetime
    event: CalendarEvent
    inserted: InsertedEvent

    @property
    def calendar_id(self) -> str:
        return self.event.calendar_id


class SessionController:
    """Drives the Idle/Active lifecycle over a session store."""

    def __init__(
        self,
        store: SessionStore,
        sync: Optional[CalendarSync] = None,
        *,
        clock: Callable[[], datetime] = now,
    ) -> None:
        self.store = store
        self.sync = sync
        self.clock = clock

    def status(self) -> Optional[Session]:
        """Return the open session, or None when idle."""
        try:
            return self.store.get()
        except NoActiveSession:
            return None

    def clock_in(self, summary: Optional[str] = None) -> Session:
        """Open a new session.

        Raises:
            AlreadyClockedIn: if a session is already open; it is left untouched.
        """
        session = Session(
            started_at=self.clock(),
            summary=(summary or "").strip() or DEFAULT_SUMMARY,
        )
        try:
            self.store.put(session)
        except SessionAlreadyActive as exc:
            raise AlreadyClockedIn(exc.session) from exc
        logger.info(f"Clocked in at {session.start_rfc3339} ({session.summary!r})")
        return session

    def clock_out(self) -> ClockOutResult:
        """Close the open session and publish it to the calendar.

        Raises:
            NotClockedIn: if no session is open; nothing is changed.
            CredentialExpired: the store and cached credential were cleared.
            SyncFailed: the session is still stored so clock-out can be retried.
        """
        if self.sync is None:
            raise ClockError("Clock-out needs a calendar sync to publish to.")

        try:
            session = self.store.get()
        except NoActiveSession as exc:
            raise NotClockedIn("Not clocked in.") from exc

        ended_at = self.clock()
        result = self.sync.publish(session, ended_at)

        if result.status == "synced":
            self.store.clear()
            logger.info(f"Clocked out at {ended_at.isoformat()}")
            return ClockOutResult(
                session=session,
                ended_at=ended_at,
                event=result.event,
                inserted=result.inserted,
            )

        if result.status == "auth_expired":
            # Token first: if removing it fails the session is still stored.
            self.sync.discard_credentials()
            try:
                self.store.clear()
            except SessionStoreError as exc:
                # Records may be half gone; the caller must still echo the start time.
                logger.error(f"Unable to clear session after credential reset: {exc}")
                raise CredentialExpired(
                    session, ended_at, result.error, cleanup_error=exc
                ) from exc
            raise CredentialExpired(session, ended_at, result.error)

        raise SyncFailed(session, result.error)
