"""Google Calendar API client."""
from __future__ import annotations

import http.client
import json
import logging
from datetime import datetime, timezone
from typing import List, Optional, Protocol
from urllib import error as urlerror
from urllib import parse as urlparse
from urllib import request as urlrequest

from .types import DEFAULT_CALENDAR_ID, CalendarEvent, InsertedEvent, UpcomingEvent


logger = logging.getLogger(__name__)

CALENDAR_API_BASE = "https://www.googleapis.com/calendar/v3"

# Server-side messages Google returns for a dead refresh/access token.
AUTH_FAILURE_MARKERS = (
    "Token has been expired or revoked",
    "invalid_grant",
)


class CalendarError(RuntimeError):
    """Raised when Calendar API operations fail."""


class CalendarAuthError(CalendarError):
    """Raised when the stored credential is expired or revoked."""


class TokenSource(Protocol):
    def access_token(self) -> str: ...


def is_auth_failure(status: Optional[int], detail: str) -> bool:
    """Classify an API failure as an expired/revoked credential."""
    if status == 401:
        return True
    return any(marker in detail for marker in AUTH_FAILURE_MARKERS)


class GoogleCalendarClient:
    """Minimal Calendar v3 client for inserting and listing events."""

    def __init__(self, credentials: TokenSource, *, timeout: float = 30.0) -> None:
        self.credentials = credentials
        self.timeout = timeout

    def _make_request(
        self,
        endpoint: str,
        method: str = "GET",
        params: Optional[dict] = None,
        body: Optional[dict] = None,
    ) -> dict:
        """Make an authenticated request to the Calendar API."""
        access_token = self.credentials.access_token()

        url = f"{CALENDAR_API_BASE}{endpoint}"
        if params:
            url = f"{url}?{urlparse.urlencode(params)}"

        headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }

        data = json.dumps(body).encode("utf-8") if body else None
        req = urlrequest.Request(url, data=data, headers=headers, method=method)
        logger.debug(f"{method} {url}")

        try:
            with urlrequest.urlopen(req, timeout=self.timeout) as resp:
                if resp.status == 204:  # No content
                    return {}
                return json.loads(resp.read().decode("utf-8"))
        except urlerror.HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="ignore")
            if is_auth_failure(exc.code, detail):
                raise CalendarAuthError(
                    f"Calendar API rejected the credential ({exc.code}): {detail}"
                ) from exc
            raise CalendarError(
                f"Calendar API request failed ({exc.code}): {detail}"
            ) from exc
        except urlerror.URLError as exc:
            raise CalendarError(f"Calendar API network error: {exc}") from exc
        except TimeoutError as exc:
            raise CalendarError(f"Calendar API timed out after {self.timeout}s") from exc
        except (OSError, http.client.HTTPException) as exc:
            raise CalendarError(f"Calendar API connection error: {exc!r}") from exc
        except ValueError as exc:
            raise CalendarError(f"Calendar API returned an unreadable response: {exc}") from exc

    # ============================================================================
    # Event Operations
    # ============================================================================

    def insert_event(self, event: CalendarEvent) -> InsertedEvent:
        """Create ``event`` on its target calendar.

        Returns:
            InsertedEvent with the remote id and browser link
        """
        encoded_id = urlparse.quote(event.calendar_id, safe="")
        response = self._make_request(
            f"/calendars/{encoded_id}/events",
            method="POST",
            body=event.to_body(),
        )
        if "id" not in response:
            raise CalendarError("Calendar insert response missing event id.")

        return InsertedEvent(
            id=response["id"],
            calendar_id=event.calendar_id,
            html_link=response.get("htmlLink"),
        )

    def list_events(
        self,
        calendar_id: str = DEFAULT_CALENDAR_ID,
        *,
        time_min: Optional[datetime] = None,
        max_results: int = 10,
    ) -> List[UpcomingEvent]:
        """List upcoming events, expanded and ordered by start time.

        Args:
            calendar_id: Calendar ID (or "primary")
            time_min: Lower bound for event start time (defaults to now)
            max_results: Maximum events to return (1-2500)
        """
        if time_min is None:
            time_min = datetime.now(timezone.utc)

        params = {
            "maxResults": str(max(1, min(max_results, 2500))),
            "singleEvents": "true",
            "orderBy": "startTime",
            "showDeleted": "false",
            "timeMin": time_min.isoformat(),
        }

        encoded_id = urlparse.quote(calendar_id, safe="")
        response = self._make_request(f"/calendars/{encoded_id}/events", params=params)

        events = []
        for item in response.get("items", []):
            # Skip cancelled events
            if item.get("status") == "cancelled":
                continue
            events.append(_parse_event(item))
        return events


def _parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _parse_event(item: dict) -> UpcomingEvent:
    """Parse a Google Calendar API event response into UpcomingEvent."""
    start_data = item.get("start", {})
    end_data = item.get("end", {})

    is_all_day = "date" in start_data
    if is_all_day:
        start = datetime.fromisoformat(start_data["date"])
        end = datetime.fromisoformat(end_data["date"])
    else:
        start = _parse_timestamp(start_data.get("dateTime", ""))
        end = _parse_timestamp(end_data.get("dateTime", ""))

    created = None
    if item.get("created"):
        created = _parse_timestamp(item["created"])

    return UpcomingEvent(
        id=item["id"],
        summary=item.get("summary", "(No title)"),
        start=start,
        end=end,
        is_all_day=is_all_day,
        creator_email=item.get("creator", {}).get("email"),
        created=created,
        html_link=item.get("htmlLink"),
    )
