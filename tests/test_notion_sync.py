from datetime import date, datetime
from types import SimpleNamespace
from zoneinfo import ZoneInfo

import pytest

from calnotion.event_time import summarize
from calnotion.models import RawEvent
from calnotion.notion_sync import NotionTableStore, build_properties, replace_all, run_in_order

NY = ZoneInfo("America/New_York")
NOW = datetime(2024, 3, 1, 12, 0, tzinfo=NY)


class RecordingStore:
    def __init__(self, pages, fail_on_create=None):
        self.pages = pages
        self.fail_on_create = fail_on_create
        self.calls = []

    def query_rows(self, database_id, page_size=100, start_cursor=None):
        index = int(start_cursor or 0)
        self.calls.append(("query", start_cursor))
        next_cursor = str(index + 1) if index + 1 < len(self.pages) else None
        return list(self.pages[index]), next_cursor

    def delete_row(self, row_id):
        self.calls.append(("delete", row_id))

    def create_row(self, database_id, properties):
        name = properties["Name"]["title"][0]["text"]["content"]
        if name == self.fail_on_create:
            raise RuntimeError("create failed")
        self.calls.append(("create", name))


def _summary(title, start, end, **kwargs):
    return summarize(RawEvent(title=title, start=start, end=end, calendar_name="Work", **kwargs), NOW, NY)


def _timed(title, hour):
    return _summary(
        title,
        datetime(2024, 3, 1, hour, 0, tzinfo=NY),
        datetime(2024, 3, 1, hour + 1, 0, tzinfo=NY),
    )


def test_replace_all_deletes_every_row_before_creating():
    store = RecordingStore([["r1", "r2"]])

    deleted, created = replace_all(store, "db", [_timed("A", 9), _timed("B", 11), _timed("C", 13)], NY)

    assert (deleted, created) == (2, 3)
    assert [c for c in store.calls if c[0] != "query"] == [
        ("delete", "r1"),
        ("delete", "r2"),
        ("create", "A"),
        ("create", "B"),
        ("create", "C"),
    ]


def test_replace_all_pages_through_existing_rows():
    store = RecordingStore([["r1"], ["r2"], ["r3"]])

    deleted, _ = replace_all(store, "db", [], NY)

    assert deleted == 3
    assert [c for c in store.calls if c[0] == "query"] == [("query", None), ("query", "1"), ("query", "2")]


def test_replace_all_can_stop_at_first_page():
    store = RecordingStore([["r1"], ["r2"]])

    deleted, _ = replace_all(store, "db", [], NY, paginate=False)

    assert deleted == 1
    assert ("delete", "r2") not in store.calls


def test_failed_create_stops_remaining_rows():
    store = RecordingStore([["r1"]], fail_on_create="B")

    with pytest.raises(RuntimeError, match="create failed"):
        replace_all(store, "db", [_timed("A", 9), _timed("B", 11), _timed("C", 13)], NY)

    assert store.calls[-1] == ("create", "A")


def test_run_in_order_runs_tasks_sequentially():
    seen = []

    results = run_in_order(lambda i=i: seen.append(i) or i * 2 for i in range(3))

    assert seen == [0, 1, 2]
    assert results == [0, 2, 4]


def test_timed_event_properties_include_offset_date_range():
    summary = _summary(
        "Dinner",
        datetime(2024, 3, 1, 22, 0, tzinfo=ZoneInfo("UTC")),
        datetime(2024, 3, 2, 0, 30, tzinfo=ZoneInfo("UTC")),
        description="Table for two",
        location="Bistro",
        link="https://calendar.google.com/dinner",
    )

    props = build_properties(summary, NY)

    assert props["Name"] == {"title": [{"text": {"content": "Dinner"}}]}
    assert props["Description"] == {"rich_text": [{"text": {"content": "Table for two"}}]}
    assert props["Location"] == {"rich_text": [{"text": {"content": "Bistro"}}]}
    assert props["Calendar"] == {"rich_text": [{"text": {"content": "Work"}}]}
    assert props["Display Date"] == {"rich_text": [{"text": {"content": "5:00pm - 7:30pm"}}]}
    assert props["All Day"] == {"checkbox": False}
    assert props["Link"] == {"url": "https://calendar.google.com/dinner"}
    assert props["Date"] == {
        "date": {"start": "2024-03-01T17:00:00-05:00", "end": "2024-03-01T19:30:00-05:00"}
    }


def test_all_day_event_properties_omit_date():
    props = build_properties(_summary("Offsite", date(2024, 3, 1), date(2024, 3, 2)), NY)

    assert "Date" not in props
    assert props["All Day"] == {"checkbox": True}
    assert props["Display Date"] == {"rich_text": [{"text": {"content": "All Day"}}]}
    assert props["Description"] == {"rich_text": [{"text": {"content": ""}}]}


def test_spanning_timed_event_is_stored_as_all_day():
    summary = _summary(
        "Conference",
        datetime(2024, 2, 29, 9, 0, tzinfo=NY),
        datetime(2024, 3, 2, 17, 0, tzinfo=NY),
    )

    props = build_properties(summary, NY)

    assert "Date" not in props
    assert props["All Day"] == {"checkbox": True}


def test_notion_table_store_maps_calls_to_client():
    calls = []
    client = SimpleNamespace(
        databases=SimpleNamespace(
            query=lambda **kw: calls.append(("query", kw)) or {
                "results": [{"id": "p1"}, {"id": "p2"}],
                "has_more": True,
                "next_cursor": "c2",
            }
        ),
        blocks=SimpleNamespace(delete=lambda **kw: calls.append(("delete", kw))),
        pages=SimpleNamespace(create=lambda **kw: calls.append(("create", kw))),
    )
    store = NotionTableStore(client)

    rows, cursor = store.query_rows("db", 100)
    store.delete_row("p1")
    store.create_row("db", {"Name": {"title": []}})

    assert rows == ["p1", "p2"]
    assert cursor == "c2"
    assert calls == [
        ("query", {"database_id": "db", "page_size": 100}),
        ("delete", {"block_id": "p1"}),
        ("create", {
            "parent": {"type": "database_id", "database_id": "db"},
            "properties": {"Name": {"title": []}},
        }),
    ]


def test_long_description_is_split_into_notion_sized_chunks():
    description = "x" * 4500
    summary = _summary(
        "Planning",
        datetime(2024, 3, 1, 9, 0, tzinfo=NY),
        datetime(2024, 3, 1, 10, 0, tzinfo=NY),
        description=description,
    )

    chunks = build_properties(summary, NY)["Description"]["rich_text"]

    assert [len(c["text"]["content"]) for c in chunks] == [2000, 2000, 500]
    assert "".join(c["text"]["content"] for c in chunks) == description
