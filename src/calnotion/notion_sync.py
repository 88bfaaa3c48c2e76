"""
notion_sync.py: replaces the rows of a Notion database with today's events.

Every run deletes all existing rows first, then creates one row per event.
Nothing is diffed and nothing is rolled back: a failure part way through
leaves the database with whatever was written before it.

Public API:
    make_notion_client(token, timeout_seconds)                     -> Client
    NotionTableStore(client)
    build_properties(summary, tz)                                  -> dict
    run_in_order(tasks)                                            -> list
    replace_all(store, database_id, summaries, tz, ...)            -> (deleted, created)
"""
from __future__ import annotations
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar
from zoneinfo import ZoneInfo

from notion_client import Client

from .models import EventSummary

logger = logging.getLogger(__name__)

T = TypeVar("T")

NOTION_PAGE_SIZE = 100
NOTION_TEXT_LIMIT = 2000


def make_notion_client(token: str, timeout_seconds: float) -> Client:
    return Client(auth=token, timeout_ms=int(timeout_seconds * 1000))


class NotionTableStore:
    """Row-level access to a Notion database."""

    def __init__(self, client: Client):
        self.client = client

    def query_rows(
        self,
        database_id: str,
        page_size: int = NOTION_PAGE_SIZE,
        start_cursor: Optional[str] = None,
    ) -> Tuple[List[str], Optional[str]]:
        body: Dict[str, Any] = {"database_id": database_id, "page_size": page_size}
        if start_cursor:
            body["start_cursor"] = start_cursor
        res = self.client.databases.query(**body)
        row_ids = [page["id"] for page in res.get("results", [])]
        next_cursor = res.get("next_cursor") if res.get("has_more") else None
        return row_ids, next_cursor

    def delete_row(self, row_id: str) -> None:
        self.client.blocks.delete(block_id=row_id)

    def create_row(self, database_id: str, properties: Dict[str, Any]) -> None:
        self.client.pages.create(
            parent={"type": "database_id", "database_id": database_id},
            properties=properties,
        )


# ── Property helpers ──────────────────────────────────────────────────────────

def _text_chunks(value: str) -> List[dict]:
    # Notion rejects text objects longer than NOTION_TEXT_LIMIT characters.
    if not value:
        return [{"text": {"content": ""}}]
    return [
        {"text": {"content": value[i:i + NOTION_TEXT_LIMIT]}}
        for i in range(0, len(value), NOTION_TEXT_LIMIT)
    ]


def _title(value: str) -> dict:
    return {"title": _text_chunks(value)}


def _rich_text(value: str) -> dict:
    return {"rich_text": _text_chunks(value)}


def _checkbox(value: bool) -> dict:
    return {"checkbox": bool(value)}


def _url(value: Optional[str]) -> dict:
    return {"url": value}


def build_properties(summary: EventSummary, tz: ZoneInfo) -> Dict[str, Any]:
    props = {
        "Name":         _title(summary.name or ""),
        "Description":  _rich_text(summary.description),
        "Location":     _rich_text(summary.location),
        "Calendar":     _rich_text(summary.calendar_name),
        "Display Date": _rich_text(summary.display_date),
        "All Day":      _checkbox(summary.all_day),
        "Link":         _url(summary.link),
    }
    times = summary.times
    if not summary.all_day and times.start and times.end:
        props["Date"] = {
            "date": {
                "start": times.start.astimezone(tz).isoformat(timespec="seconds"),
                "end": times.end.astimezone(tz).isoformat(timespec="seconds"),
            }
        }
    return props


def run_in_order(tasks: Iterable[Callable[[], T]]) -> List[T]:
    """Run each task to completion before starting the next.

    The first exception stops the sequence and is re-raised.
    """
    return [task() for task in tasks]


def _existing_row_ids(store: NotionTableStore, database_id: str, page_size: int, paginate: bool) -> List[str]:
    row_ids, cursor = store.query_rows(database_id, page_size)
    while paginate and cursor:
        more, cursor = store.query_rows(database_id, page_size, cursor)
        row_ids.extend(more)
    return row_ids


def replace_all(
    store: NotionTableStore,
    database_id: str,
    summaries: Sequence[EventSummary],
    tz: ZoneInfo,
    page_size: int = NOTION_PAGE_SIZE,
    paginate: bool = True,
) -> Tuple[int, int]:
    """Delete every existing row, then add one row per event summary.

    Returns (deleted, created) counts.
    """
    row_ids = _existing_row_ids(store, database_id, page_size, paginate)
    run_in_order(lambda row_id=row_id: store.delete_row(row_id) for row_id in row_ids)
    logger.info("Deleted %d previous rows", len(row_ids))

    def create(summary: EventSummary) -> None:
        store.create_row(database_id, build_properties(summary, tz))
        logger.info("Added %s to the database", summary.name)

    run_in_order(lambda s=s: create(s) for s in summaries)
    return len(row_ids), len(summaries)
