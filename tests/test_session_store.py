"""Tests for the session stores."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from clical.sessions import (
    DEFAULT_SUMMARY,
    FileSessionStore,
    MemorySessionStore,
    NoActiveSession,
    Session,
    SessionAlreadyActive,
    StorageError,
)


EST = timezone(timedelta(hours=-5))
STARTED = datetime(2025, 11, 3, 9, 15, 0, tzinfo=EST)


@pytest.fixture(params=["file", "memory"])
def store(request, tmp_path):
    """Each contract test runs against both store implementations."""
    if request.param == "file":
        return FileSessionStore(tmp_path / "state")
    return MemorySessionStore()


class TestStoreContract:
    """Behaviour shared by every SessionStore."""

    def test_get_when_empty_raises(self, store):
        with pytest.raises(NoActiveSession):
            store.get()
        assert store.is_active() is False

    def test_put_then_get(self, store):
        store.put(Session(started_at=STARTED, summary="Deep work"))

        session = store.get()

        assert session.started_at == STARTED
        assert session.summary == "Deep work"
        assert store.is_active() is True

    def test_second_put_rejected_and_original_kept(self, store):
        store.put(Session(started_at=STARTED, summary="First"))

        with pytest.raises(SessionAlreadyActive) as excinfo:
            store.put(Session(started_at=STARTED + timedelta(hours=1), summary="Second"))

        assert excinfo.value.session.started_at == STARTED
        assert store.get() == Session(started_at=STARTED, summary="First")

    def test_clear_removes_session(self, store):
        store.put(Session(started_at=STARTED))

        store.clear()

        with pytest.raises(NoActiveSession):
            store.get()

    def test_clear_is_idempotent(self, store):
        store.put(Session(started_at=STARTED))
        store.clear()
        store.clear()

    def test_clear_on_empty_store(self, store):
        store.clear()
        assert store.is_active() is False

    def test_put_after_clear(self, store):
        store.put(Session(started_at=STARTED, summary="Morning"))
        store.clear()
        store.put(Session(started_at=STARTED + timedelta(hours=4), summary="Afternoon"))

        assert store.get().summary == "Afternoon"


class TestFileSessionStore:
    """File layout and recovery behaviour."""

    def test_records_match_naming_convention(self, tmp_path):
        store = FileSessionStore(tmp_path)
        store.put(Session(started_at=STARTED, summary="Deep work"))

        names = sorted(p.name for p in tmp_path.iterdir())

        assert len(names) == 2
        assert names[0].startswith("session-start-") and names[0].endswith(".txt")
        assert names[1].startswith("session-summary-") and names[1].endswith(".txt")
        # Start and summary records share a token.
        assert names[0][len("session-start-"):] == names[1][len("session-summary-"):]

    def test_start_record_is_rfc3339(self, tmp_path):
        store = FileSessionStore(tmp_path)
        store.put(Session(started_at=STARTED))

        start_file = next(tmp_path.glob("session-start-*.txt"))

        assert start_file.read_text(encoding="utf-8") == "2025-11-03T09:15:00-05:00"

    def test_no_partial_files_left_behind(self, tmp_path):
        store = FileSessionStore(tmp_path)
        store.put(Session(started_at=STARTED))

        assert not list(tmp_path.glob(".*.partial"))

    def test_missing_summary_uses_default(self, tmp_path):
        store = FileSessionStore(tmp_path)
        store.put(Session(started_at=STARTED, summary="Deep work"))
        next(tmp_path.glob("session-summary-*.txt")).unlink()

        session = store.get()

        assert session.started_at == STARTED
        assert session.summary == DEFAULT_SUMMARY

    def test_orphan_summary_is_not_active(self, tmp_path):
        (tmp_path / "session-summary-abc123.txt").write_text("Leftover", encoding="utf-8")
        store = FileSessionStore(tmp_path)

        assert store.is_active() is False
        with pytest.raises(NoActiveSession):
            store.get()

    def test_put_drops_orphan_summary(self, tmp_path):
        (tmp_path / "session-summary-abc123.txt").write_text("Leftover", encoding="utf-8")
        store = FileSessionStore(tmp_path)

        store.put(Session(started_at=STARTED, summary="Fresh"))

        assert not (tmp_path / "session-summary-abc123.txt").exists()
        assert store.get().summary == "Fresh"

    def test_unrelated_files_are_ignored(self, tmp_path):
        (tmp_path / "token.json").write_text("{}", encoding="utf-8")
        (tmp_path / "calendar_id.txt").write_text("work@example.com", encoding="utf-8")
        (tmp_path / "session-start-notes.md").write_text("x", encoding="utf-8")
        store = FileSessionStore(tmp_path)

        assert store.is_active() is False
        store.put(Session(started_at=STARTED))
        store.clear()

        assert (tmp_path / "token.json").exists()
        assert (tmp_path / "calendar_id.txt").exists()
        assert (tmp_path / "session-start-notes.md").exists()

    def test_state_survives_new_store_instance(self, tmp_path):
        FileSessionStore(tmp_path).put(Session(started_at=STARTED, summary="Carry over"))

        session = FileSessionStore(tmp_path).get()

        assert session == Session(started_at=STARTED, summary="Carry over")

    def test_missing_directory_is_empty_store(self, tmp_path):
        store = FileSessionStore(tmp_path / "does-not-exist")

        assert store.is_active() is False
        store.clear()

    def test_put_creates_directory(self, tmp_path):
        root = tmp_path / "nested" / "state"
        FileSessionStore(root).put(Session(started_at=STARTED))

        assert root.is_dir()

    def test_corrupt_start_record_raises_storage_error(self, tmp_path):
        (tmp_path / "session-start-deadbeef.txt").write_text("not a time", encoding="utf-8")

        with pytest.raises(StorageError, match="invalid timestamp"):
            FileSessionStore(tmp_path).get()

    def test_multiple_start_records_use_earliest(self, tmp_path):
        (tmp_path / "session-start-aaaa.txt").write_text(
            "2025-11-03T10:00:00-05:00", encoding="utf-8"
        )
        (tmp_path / "session-start-bbbb.txt").write_text(
            "2025-11-03T08:00:00-05:00", encoding="utf-8"
        )
        (tmp_path / "session-summary-bbbb.txt").write_text("Early", encoding="utf-8")

        session = FileSessionStore(tmp_path).get()

        assert session.started_at == datetime(2025, 11, 3, 8, 0, tzinfo=EST)
        assert session.summary == "Early"

    def test_clear_removes_all_records(self, tmp_path):
        (tmp_path / "session-start-aaaa.txt").write_text(
            "2025-11-03T10:00:00-05:00", encoding="utf-8"
        )
        (tmp_path / "session-start-bbbb.txt").write_text(
            "2025-11-03T08:00:00-05:00", encoding="utf-8"
        )
        (tmp_path / "session-summary-cccc.txt").write_text("Orphan", encoding="utf-8")

        FileSessionStore(tmp_path).clear()

        assert list(tmp_path.iterdir()) == []
