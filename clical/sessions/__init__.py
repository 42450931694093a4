"""Local work-session state: data types and durable storage."""
from __future__ import annotations

from .types import DEFAULT_SUMMARY, Session, now, parse_rfc3339, to_rfc3339
from .store import (
    FileSessionStore,
    MemorySessionStore,
    NoActiveSession,
    SessionAlreadyActive,
    SessionStore,
    SessionStoreError,
    StorageError,
)

__all__ = [
    "DEFAULT_SUMMARY",
    "Session",
    "now",
    "parse_rfc3339",
    "to_rfc3339",
    "FileSessionStore",
    "MemorySessionStore",
    "NoActiveSession",
    "SessionAlreadyActive",
    "SessionStore",
    "SessionStoreError",
    "StorageError",
]
