"""Durable storage for the single in-progress work session.

The file store keeps no state between invocations. Each call rescans the
state directory for records that follow the naming convention below:

    session-start-<token>.txt     RFC3339 clock-in time (authoritative)
    session-summary-<token>.txt   event summary text (optional)

A start record alone means "clocked in"; a summary record without a start
record is a leftover from an interrupted write and is ignored.
"""
from __future__ import annotations

import logging
import os
import re
import tempfile
import uuid
from pathlib import Path
from typing import List, Optional, Protocol

from .types import DEFAULT_SUMMARY, Session, parse_rfc3339


logger = logging.getLogger(__name__)

START_PATTERN = re.compile(r"^session-start-(?P<token>[0-9a-f]+)\.txt$")
SUMMARY_PATTERN = re.compile(r"^session-summary-(?P<token>[0-9a-f]+)\.txt$")


class SessionStoreError(RuntimeError):
    """Base class for session storage errors."""


class SessionAlreadyActive(SessionStoreError):
    """Raised by ``put`` when a session is already recorded."""

    def __init__(self, session: Session) -> None:
        super().__init__(f"A session is already active since {session.start_rfc3339}.")
        self.session = session


class NoActiveSession(SessionStoreError):
    """Raised by ``get`` when no session is recorded."""


class StorageError(SessionStoreError):
    """Raised when session records cannot be read or written."""


class SessionStore(Protocol):
    """Storage for at most one active session."""

    def put(self, session: Session) -> None: ...

    def get(self) -> Session: ...

    def clear(self) -> None: ...

    def is_active(self) -> bool: ...


class FileSessionStore:
    """Session store backed by small text files in a state directory."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def __repr__(self) -> str:
        return f"FileSessionStore({str(self.root)!r})"

    # ------------------------------------------------------------------
    # Public contract
    # ------------------------------------------------------------------

    def put(self, session: Session) -> None:
        """Persist ``session`` unless one is already active.

        The summary record is written before the start record so that an
        interrupted write never looks like an active session.

        Raises:
            SessionAlreadyActive: if a start record already exists.
            StorageError: if the records cannot be written.
        """
        if self._scan(START_PATTERN):
            raise SessionAlreadyActive(self.get())

        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"Unable to create state directory {self.root}: {exc}") from exc

        # Drop summaries orphaned by an earlier interrupted clock-in.
        for _, stale in self._scan(SUMMARY_PATTERN):
            self._remove(stale)

        token = uuid.uuid4().hex
        self._write_atomic(self.root / f"session-summary-{token}.txt", session.summary)
        self._write_atomic(self.root / f"session-start-{token}.txt", session.start_rfc3339)
        logger.debug(f"Stored session {token} started at {session.start_rfc3339}")

    def get(self) -> Session:
        """Return the active session.

        Raises:
            NoActiveSession: if no start record exists.
            StorageError: if the start record is unreadable or malformed.
        """
        starts = self._scan(START_PATTERN)
        if not starts:
            raise NoActiveSession(f"No active session in {self.root}.")

        sessions = [self._load(token, path) for token, path in starts]
        if len(sessions) > 1:
            logger.warning(
                f"Found {len(sessions)} active session records in {self.root}; "
                "using the earliest clock-in"
            )
        return min(sessions, key=lambda s: s.started_at)

    def clear(self) -> None:
        """Remove every session record. Safe to call when nothing is stored."""
        for pattern in (START_PATTERN, SUMMARY_PATTERN):
            for _, path in self._scan(pattern):
                self._remove(path)

    def is_active(self) -> bool:
        return bool(self._scan(START_PATTERN))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _scan(self, pattern: re.Pattern[str]) -> List[tuple[str, Path]]:
        """List ``(token, path)`` pairs for files whose name matches ``pattern``."""
        if not self.root.is_dir():
            return []
        try:
            names = sorted(os.listdir(self.root))
        except OSError as exc:
            raise StorageError(f"Unable to read state directory {self.root}: {exc}") from exc

        matches = []
        for name in names:
            match = pattern.match(name)
            if match:
                matches.append((match.group("token"), self.root / name))
        return matches

    def _load(self, token: str, start_path: Path) -> Session:
        try:
            raw_start = start_path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StorageError(f"Unable to read clock-in record {start_path}: {exc}") from exc

        try:
            started_at = parse_rfc3339(raw_start)
        except ValueError as exc:
            raise StorageError(
                f"Clock-in record {start_path} holds an invalid timestamp: {raw_start!r}"
            ) from exc

        summary_path = self.root / f"session-summary-{token}.txt"
        summary = self._read_summary(summary_path)
        return Session(started_at=started_at, summary=summary)

    def _read_summary(self, path: Path) -> str:
        try:
            summary = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.info(f"No summary record for this session; using {DEFAULT_SUMMARY!r}")
            return DEFAULT_SUMMARY
        except OSError as exc:
            raise StorageError(f"Unable to read summary record {path}: {exc}") from exc
        return summary or DEFAULT_SUMMARY

    def _write_atomic(self, path: Path, content: str) -> None:
        tmp_name: Optional[str] = None
        try:
            fd, tmp_name = tempfile.mkstemp(prefix=".", suffix=".partial", dir=self.root)
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(content)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, path)
        except OSError as exc:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise StorageError(f"Unable to write session record {path}: {exc}") from exc

    @staticmethod
    def _remove(path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"Unable to remove session record {path}: {exc}") from exc


class MemorySessionStore:
    """In-process session store with the same contract as ``FileSessionStore``."""

    def __init__(self, session: Optional[Session] = None) -> None:
        self._session = session

    def put(self, session: Session) -> None:
        if self._session is not None:
            raise SessionAlreadyActive(self._session)
        self._session = session

    def get(self) -> Session:
        if self._session is None:
            raise NoActiveSession("No active session.")
        return self._session

    def clear(self) -> None:
        self._session = None

    def is_active(self) -> bool:
        return self._session is not None
