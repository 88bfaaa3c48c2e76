from __future__ import annotations
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Union

# A Google boundary is either a whole day ("date") or an instant ("dateTime").
Boundary = Union[date, datetime]

@dataclass(frozen=True)
class CalendarMeta:
    id: str
    summary: str                          # primary name, used for exclusion
    summary_override: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.summary_override or self.summary

@dataclass(frozen=True)
class RawEvent:
    title: Optional[str]
    start: Boundary
    end: Boundary
    calendar_name: str
    description: Optional[str] = None
    location: Optional[str] = None
    link: Optional[str] = None

@dataclass(frozen=True)
class EventTimeFields:
    all_day: bool
    start: Optional[datetime] = None      # timezone-aware, timed events only
    end: Optional[datetime] = None
    starts_before: bool = False
    ends_after: bool = False
    start_formatted: Optional[str] = None
    end_formatted: Optional[str] = None

    @property
    def start_iso(self) -> Optional[str]:
        return self.start.isoformat() if self.start else None

    @property
    def end_iso(self) -> Optional[str]:
        return self.end.isoformat() if self.end else None

@dataclass(frozen=True)
class EventSummary:
    name: Optional[str]
    description: str
    location: str
    link: Optional[str]
    calendar_name: str
    times: EventTimeFields
    display_date: str

    @property
    def all_day(self) -> bool:
        return self.times.all_day
