from __future__ import annotations
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timedelta
import logging
import os
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Tuple
from zoneinfo import ZoneInfo

import httplib2
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_httplib2 import AuthorizedHttp
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build

from .models import Boundary, CalendarMeta, RawEvent

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/calendar.readonly"]

HttpFactory = Callable[[], Any]


class AuthError(Exception):
    """The stored Google token is missing or can no longer be used."""


def authorize(credentials_path: str, token_path: str) -> Credentials:
    """Run the one-time consent flow and store the token for scheduled runs."""
    flow = InstalledAppFlow.from_client_secrets_file(credentials_path, SCOPES)
    creds = flow.run_local_server(port=0)
    token_dir = os.path.dirname(token_path)
    if token_dir:
        os.makedirs(token_dir, exist_ok=True)
    with open(token_path, "w", encoding="utf-8") as f:
        f.write(creds.to_json())
    logger.info("Token stored to %s", token_path)
    return creds


def load_credentials(token_path: str) -> Credentials:
    if not os.path.exists(token_path):
        raise AuthError(
            f"No Google token at {token_path}; run `calnotion auth` locally before deploying."
        )
    try:
        creds = Credentials.from_authorized_user_file(token_path, SCOPES)
    except (ValueError, OSError) as e:
        raise AuthError(f"Unreadable Google token at {token_path}: {e}") from e

    if creds.valid:
        return creds
    if not creds.refresh_token:
        raise AuthError(f"Google token at {token_path} is expired and has no refresh token")
    try:
        creds.refresh(Request())
    except GoogleAuthError as e:
        raise AuthError(f"Refreshing Google token failed: {e}") from e

    with open(token_path, "w", encoding="utf-8") as f:
        f.write(creds.to_json())
    return creds


def authorized_http_factory(creds: Credentials, timeout: float) -> HttpFactory:
    # httplib2 objects are not thread safe; hand out one per request.
    return lambda: AuthorizedHttp(creds, http=httplib2.Http(timeout=timeout))


def build_calendar_service(creds: Credentials, timeout: float) -> Any:
    http = authorized_http_factory(creds, timeout)()
    return build("calendar", "v3", http=http, cache_discovery=False)


def parse_boundary(obj: Dict[str, Any]) -> Boundary:
    # All-day events have "date" not "dateTime"
    if "dateTime" in obj:
        return datetime.fromisoformat(obj["dateTime"])
    return date.fromisoformat(obj["date"])


def _execute(request: Any, http: Any = None) -> Dict[str, Any]:
    if http is None:
        return request.execute()
    return request.execute(http=http)


def list_calendars(service: Any) -> List[CalendarMeta]:
    calendars: List[CalendarMeta] = []
    page_token: Optional[str] = None
    while True:
        resp = _execute(service.calendarList().list(pageToken=page_token))
        for item in resp.get("items", []):
            calendars.append(CalendarMeta(
                id=item["id"],
                summary=item.get("summary", ""),
                summary_override=item.get("summaryOverride"),
            ))
        page_token = resp.get("nextPageToken")
        if not page_token:
            return calendars


def list_events_in_range(
    service: Any,
    calendar: CalendarMeta,
    time_min: datetime,
    time_max: datetime,
    http: Any = None,
) -> List[RawEvent]:
    events: List[RawEvent] = []
    page_token: Optional[str] = None
    while True:
        resp = _execute(
            service.events().list(
                calendarId=calendar.id,
                timeMin=time_min.isoformat(),
                timeMax=time_max.isoformat(),
                singleEvents=True,
                orderBy="startTime",
                pageToken=page_token,
            ),
            http,
        )

        for item in resp.get("items", []):
            events.append(RawEvent(
                title=item.get("summary"),
                start=parse_boundary(item.get("start", {})),
                end=parse_boundary(item.get("end", {})),
                calendar_name=calendar.display_name,
                description=item.get("description"),
                location=item.get("location"),
                link=item.get("htmlLink"),
            ))

        page_token = resp.get("nextPageToken")
        if not page_token:
            return events


def today_window(now: datetime, tz: ZoneInfo) -> Tuple[datetime, datetime]:
    local = now.astimezone(tz)
    day_start = local.replace(hour=0, minute=0, second=0, microsecond=0)
    return day_start, day_start + timedelta(days=1)


def fetch_today_events(
    service: Any,
    excluded_names: FrozenSet[str],
    now: datetime,
    tz: ZoneInfo,
    http_factory: Optional[HttpFactory] = None,
    max_workers: int = 8,
) -> List[RawEvent]:
    """Fetch today's events from every calendar not named in ``excluded_names``.

    Calendars are queried concurrently. Any failed request is raised to the
    caller; no partial result is returned.
    """
    calendars = [c for c in list_calendars(service) if c.summary not in excluded_names]
    day_start, day_end = today_window(now, tz)

    def fetch(cal: CalendarMeta) -> List[RawEvent]:
        http = http_factory() if http_factory else None
        return list_events_in_range(service, cal, day_start, day_end, http)

    events: List[RawEvent] = []
    if calendars:
        with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(calendars)))) as pool:
            futures = [pool.submit(fetch, cal) for cal in calendars]
            for future in futures:
                events.extend(future.result())

    logger.info("Fetched %d events from %d calendars at %s", len(events), len(calendars), now.isoformat())
    return events
