#!/usr/bin/env python3
"""clical CLI: clock in and out of work, logging each block to Google Calendar."""
from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime, timedelta

from dotenv import load_dotenv

from . import __version__
from .calendar.credentials import CredentialError, GoogleCredentialProvider
from .calendar.google_calendar import CalendarAuthError, CalendarError, GoogleCalendarClient
from .calendar.sync import CalendarSync, resolve_calendar_id
from .config import ConfigError, Settings, load_settings
from .sessions.controller import (
    AlreadyClockedIn,
    CredentialExpired,
    NotClockedIn,
    SessionController,
    SyncFailed,
)
from .sessions.store import FileSessionStore, SessionStoreError
from .sessions.types import DEFAULT_SUMMARY, now


EXIT_OK = 0
EXIT_FAILURE = 1
# argparse owns 2 for usage errors.
EXIT_CREDENTIAL_RESET = 3

COMMANDS = {
    "clockin": "clockin",
    "ci": "clockin",
    "clockout": "clockout",
    "co": "clockout",
    "status": "status",
    "st": "status",
    "upcoming": "upcoming",
    "up": "upcoming",
}

ANSIC = "%a %b %d %H:%M:%S %Y"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clical",
        description="Clock in and out of work; each work block becomes a Google Calendar event.",
        epilog=(
            "Commands:\n"
            "  clockin, ci    clock in to work\n"
            "  clockout, co   clock out of work and create the calendar event\n"
            "  status, st     show the open work block, if any\n"
            "  upcoming, up   list the next events on the target calendar"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "command",
        choices=sorted(COMMANDS),
        metavar="command",
        help="One of: clockin (ci), clockout (co), status (st), upcoming (up).",
    )
    parser.add_argument(
        "-s",
        "--summary",
        default=DEFAULT_SUMMARY,
        help="Summary (title) of the event on Google Calendar. Used by clockin.",
    )
    parser.add_argument(
        "--state-dir",
        help="Directory holding the session, token and calendar ID files "
        "(default: $CLICAL_STATE_DIR or ~/.clical).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log debug output to stderr.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    load_dotenv()

    try:
        settings = load_settings(state_dir=args.state_dir)
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return EXIT_FAILURE

    command = COMMANDS[args.command]
    if command == "clockin":
        return _cmd_clockin(settings, summary=args.summary)
    if command == "clockout":
        return _cmd_clockout(settings)
    if command == "status":
        return _cmd_status(settings)
    return _cmd_upcoming(settings)


def _build_credentials(settings: Settings) -> GoogleCredentialProvider:
    return GoogleCredentialProvider(settings.client_secrets_path, settings.token_path)


def _build_client(settings: Settings, credentials) -> GoogleCalendarClient:
    return GoogleCalendarClient(credentials, timeout=settings.http_timeout)


def _cmd_clockin(settings: Settings, summary: str) -> int:
    store = FileSessionStore(settings.state_dir)
    controller = SessionController(store)

    try:
        if not store.is_active():
            # Authorize up front so clock-out never waits on a browser.
            _build_credentials(settings).ensure_authorized()
        session = controller.clock_in(summary)
    except AlreadyClockedIn as exc:
        print(
            f"Already clocked in. Last clocked in: {_local(exc.started_at).strftime(ANSIC)}",
            file=sys.stderr,
        )
        return EXIT_FAILURE
    except (CredentialError, CalendarError) as exc:
        print(f"Unable to authorize Google Calendar access: {exc}", file=sys.stderr)
        return EXIT_FAILURE
    except SessionStoreError as exc:
        print(f"Unable to record clock-in: {exc}", file=sys.stderr)
        return EXIT_FAILURE

    print(f"Clocked in at: {_local(session.started_at):%H:%M:%S}.")
    return EXIT_OK


def _cmd_clockout(settings: Settings) -> int:
    try:
        calendar_id, is_default = resolve_calendar_id(
            settings.calendar_id, settings.calendar_id_path
        )
    except OSError as exc:
        print(f"Unable to read calendar ID file: {exc}", file=sys.stderr)
        return EXIT_FAILURE

    credentials = _build_credentials(settings)
    sync = CalendarSync(_build_client(settings, credentials), credentials, calendar_id)
    controller = SessionController(FileSessionStore(settings.state_dir), sync)

    try:
        result = controller.clock_out()
    except NotClockedIn:
        print("Not clocked in. Run `clical clockin` first.", file=sys.stderr)
        return EXIT_FAILURE
    except CredentialExpired as exc:
        print(
            "\nWARNING: Failed to create an event on Google Calendar:"
            "\n\t*Your Google OAuth token has expired or was revoked.*"
            "\n\tPlease clock-in again to restart the authentication token process."
            "\n\tYour last clock-in time was erased, but here it is for your records: "
            f"{exc.session.start_rfc3339}"
            f"\n\t(summary: {exc.session.summary!r}, clocked out: {exc.ended_at.isoformat()})",
            file=sys.stderr,
        )
        if exc.cleanup_error is not None:
            print(
                f"\tSome session records under {settings.state_dir} could not be removed: "
                f"{exc.cleanup_error}",
                file=sys.stderr,
            )
        return EXIT_CREDENTIAL_RESET
    except SyncFailed as exc:
        print(str(exc), file=sys.stderr)
        print(
            f"Your clock-in at {_local(exc.session.started_at).strftime(ANSIC)} is still "
            "recorded; run `clical clockout` again to retry.",
            file=sys.stderr,
        )
        return EXIT_FAILURE
    except (CredentialError, SessionStoreError) as exc:
        print(f"Clock-out failed: {exc}", file=sys.stderr)
        return EXIT_FAILURE

    if is_default:
        print("No calendar ID provided. Event created on 'primary' calendar.")
    print(f"Clocked out at: {_local(result.ended_at):%H:%M:%S}")
    print(f"Worked {_format_elapsed(result.ended_at - result.session.started_at)}.")
    if result.inserted.html_link:
        print(f"See the new work block on your Google Calendar: {result.inserted.html_link}")
    return EXIT_OK


def _cmd_status(settings: Settings) -> int:
    controller = SessionController(FileSessionStore(settings.state_dir))
    try:
        session = controller.status()
    except SessionStoreError as exc:
        print(f"Unable to read session state: {exc}", file=sys.stderr)
        return EXIT_FAILURE

    if session is None:
        print("Not clocked in.")
        return EXIT_OK

    elapsed = now() - session.started_at
    print(
        f"Clocked in since {_local(session.started_at).strftime(ANSIC)} "
        f"({session.summary}), {_format_elapsed(elapsed)} so far."
    )
    return EXIT_OK


def _cmd_upcoming(settings: Settings, limit: int = 10) -> int:
    try:
        calendar_id, _ = resolve_calendar_id(settings.calendar_id, settings.calendar_id_path)
    except OSError as exc:
        print(f"Unable to read calendar ID file: {exc}", file=sys.stderr)
        return EXIT_FAILURE

    client = _build_client(settings, _build_credentials(settings))
    try:
        events = client.list_events(calendar_id, max_results=limit)
    except CalendarAuthError as exc:
        print(
            f"Google rejected the cached token: {exc}\n"
            f"Delete {settings.token_path} and run `clical clockin` to re-authorize.",
            file=sys.stderr,
        )
        return EXIT_FAILURE
    except (CalendarError, CredentialError) as exc:
        print(f"Unable to retrieve upcoming events: {exc}", file=sys.stderr)
        return EXIT_FAILURE

    print("Upcoming events:")
    if not events:
        print("No upcoming events found")
        return EXIT_OK

    for event in events:
        if event.is_all_day:
            print(f"{event.summary} {{ all day on {event.start:%Y-%m-%d} }}")
        else:
            print(
                f"{event.summary} {{ {_local(event.start):%a %b %d %H:%M} - "
                f"{_local(event.end):%H:%M} }}"
            )
    return EXIT_OK


def _local(value: datetime) -> datetime:
    return value.astimezone() if value.tzinfo else value


def _format_elapsed(delta: timedelta) -> str:
    minutes = max(0, int(delta.total_seconds()) // 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h {minutes:02d}m"
    return f"{minutes}m"


if __name__ == "__main__":
    raise SystemExit(main())
