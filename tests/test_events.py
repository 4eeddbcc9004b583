import json
from datetime import datetime, timezone

import httpx
import pytest

from app.calendar_export import parse_event_date_time
from app.events import (
    SEED_EVENTS,
    EventNotFound,
    EventSpeaker,
    EventStore,
    EventStoreError,
    event_from_row,
    format_event_date,
    format_event_time,
)

ROW = {
    "id": 7,
    "title": "Building an AI Content Pipeline",
    "category": "AI & Automation",
    "date": "Feb 6, 2025",
    "time": "9:00 AM PST",
    "duration": "75 minutes",
    "location": "Virtual webinar",
    "status": "past",
    "description": "Ship trustworthy content.",
    "tags": '["LLM", "Content Ops"]',
    "speaker_name": "Riley Patel",
    "speaker_title": "Marketing Ops Lead",
    "speaker_company": "DeltaWorks",
}


def test_event_from_row_free_text_columns():
    event = event_from_row(ROW)
    assert event.id == "7"
    assert (event.date, event.time) == ("Feb 6, 2025", "9:00 AM PST")
    assert event.status == "on-demand"
    assert event.tags == ["LLM", "Content Ops"]
    assert event.speakers == [EventSpeaker("Riley Patel", "Marketing Ops Lead", "DeltaWorks")]
    assert event.summary is None


def test_event_from_row_defaults():
    event = event_from_row({"id": "x"})
    assert (event.title, event.date, event.time, event.duration, event.location) == ("", "", "", "", "")
    assert event.status == "upcoming"
    assert event.tags == []
    assert event.speakers == []


def test_event_from_row_start_time_round_trips_through_parser():
    start = datetime(2025, 3, 14, 21, 5, tzinfo=timezone.utc)
    event = event_from_row({**ROW, "start_time": start.isoformat()})
    assert parse_event_date_time(event.date, event.time) == start.astimezone().replace(tzinfo=None)


@pytest.mark.parametrize("tags, expected", [
    (["a", "b"], ["a", "b"]),
    ("design, research", ["design", "research"]),
    ('["x"]', ["x"]),
    (None, []),
])
def test_event_from_row_tags(tags, expected):
    assert event_from_row({**ROW, "tags": tags}).tags == expected


def test_event_from_row_speakers_json():
    speakers = [{"name": "Ava Chen", "title": "Director", "avatarUrl": "/ava.png"}]
    event = event_from_row({**ROW, "speakers": json.dumps(speakers)})
    assert event.speakers == [EventSpeaker("Ava Chen", "Director", None, "/ava.png")]


@pytest.mark.parametrize("dt, date, time", [
    (datetime(2025, 1, 24, 10, 0), "Jan 24, 2025", "10:00 AM"),
    (datetime(2025, 9, 2, 0, 7), "Sep 2, 2025", "12:07 AM"),
    (datetime(2025, 12, 31, 12, 30), "Dec 31, 2025", "12:30 PM"),
    (datetime(2025, 6, 1, 23, 45), "Jun 1, 2025", "11:45 PM"),
])
def test_format_event_date_time(dt, date, time):
    assert format_event_date(dt) == date
    assert format_event_time(dt) == time
    assert parse_event_date_time(date, time) == dt


# ── EventStore ─────────────────────────────────────────────

def test_store_without_url_serves_seed_catalog():
    store = EventStore(url="")
    assert [e.id for e in store.list_events()] == [e.id for e in SEED_EVENTS]
    assert store.get_event("analytics").title == "Product Analytics That Drives Roadmaps"
    with pytest.raises(EventNotFound):
        store.get_event("missing")


def mock_store(handler) -> EventStore:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return EventStore(url="https://db.example.com/", api_key="anon", client=client)


def test_store_get_event_queries_rest_endpoint():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[ROW])

    event = mock_store(handler).get_event("7")
    assert event.title == ROW["title"]
    request = seen[0]
    assert request.url.path == "/rest/v1/events"
    assert request.url.params["id"] == "eq.7"
    assert request.url.params["select"] == "*"
    assert request.headers["apikey"] == "anon"
    assert request.headers["authorization"] == "Bearer anon"


def test_store_get_event_missing():
    store = mock_store(lambda request: httpx.Response(200, json=[]))
    with pytest.raises(EventNotFound):
        store.get_event("nope")


def test_store_list_events():
    store = mock_store(lambda request: httpx.Response(200, json=[ROW, {**ROW, "id": 8}]))
    assert [e.id for e in store.list_events()] == ["7", "8"]


def test_store_http_error():
    store = mock_store(lambda request: httpx.Response(500, json={"message": "boom"}))
    with pytest.raises(EventStoreError):
        store.list_events()


def test_event_from_row_bad_start_time_uses_text_columns():
    event = event_from_row({**ROW, "start_time": "next tuesday"})
    assert (event.date, event.time) == ("Feb 6, 2025", "9:00 AM PST")
