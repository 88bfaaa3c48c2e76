from __future__ import annotations
from datetime import datetime
import logging
from zoneinfo import ZoneInfo

from .models import Boundary, EventSummary, EventTimeFields, RawEvent

logger = logging.getLogger(__name__)

def _fmt_time(dt: datetime) -> str:
    # "5:00pm"
    return dt.strftime("%-I:%M%p").lower()

def _is_timed(boundary: Boundary) -> bool:
    return isinstance(boundary, datetime)

def normalize(start: Boundary, end: Boundary, now: datetime, tz: ZoneInfo) -> EventTimeFields:
    """Resolve an event's boundaries against the current day in ``tz``.

    Date-only boundaries always give an all-day event. Timed events are
    converted into ``tz`` and count as all-day only when they started
    before today and end after it.
    """
    if not (_is_timed(start) and _is_timed(end)):
        if _is_timed(start) or _is_timed(end):
            logger.warning("Mixed date/dateTime boundaries (%s, %s); treating as all day", start, end)
        return EventTimeFields(all_day=True)

    today = now.astimezone(tz).date()
    local_start = start.astimezone(tz)
    local_end = end.astimezone(tz)
    starts_before = local_start.date() != today
    ends_after = local_end.date() != today

    return EventTimeFields(
        all_day=starts_before and ends_after,
        start=local_start,
        end=local_end,
        starts_before=starts_before,
        ends_after=ends_after,
        start_formatted=_fmt_time(local_start),
        end_formatted=_fmt_time(local_end),
    )

def format_display_date(fields: EventTimeFields) -> str:
    # all_day also covers the starts_before + ends_after case
    if fields.all_day:
        return "All Day"
    if fields.starts_before:
        return f"Ends {fields.end_formatted}"
    if fields.ends_after:
        return fields.start_formatted or ""
    return f"{fields.start_formatted} - {fields.end_formatted}"

def summarize(raw: RawEvent, now: datetime, tz: ZoneInfo) -> EventSummary:
    times = normalize(raw.start, raw.end, now, tz)
    return EventSummary(
        name=raw.title,
        description=raw.description or "",
        location=raw.location or "",
        link=raw.link,
        calendar_name=raw.calendar_name,
        times=times,
        display_date=format_display_date(times),
    )
