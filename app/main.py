"""
Event Hub — webinar catalog with "Add to calendar" export

pip install fastapi uvicorn icalendar httpx python-dotenv
uvicorn app.main:app --reload
"""

from fastapi import FastAPI, HTTPException

from . import config
from .calendar_export import DateTimeUnparseable, generate_ics, ics_filename, ics_response
from .events import Event, EventNotFound, EventStore, EventStoreError

CALENDAR_ERROR = "Unable to generate calendar file. Please try again."

# ─────────────────────────────────────────────────────────────
# FastAPI
# ─────────────────────────────────────────────────────────────

app = FastAPI(title="Event Hub")

store = EventStore()


def load_event(event_id: str) -> Event:
    try:
        return store.get_event(event_id)
    except EventNotFound:
        raise HTTPException(404, f"No event {event_id!r}")
    except EventStoreError:
        raise HTTPException(502, "Event store unavailable")


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/events")
def list_events():
    try:
        return store.list_events()
    except EventStoreError:
        raise HTTPException(502, "Event store unavailable")


@app.get("/events/{event_id}")
def get_event(event_id: str):
    return load_event(event_id)


@app.get("/events/{event_id}/calendar.ics")
def download_calendar(event_id: str):
    event = load_event(event_id)
    try:
        content = generate_ics(event, stable_uid=config.STABLE_UID, zone_aware=config.ZONE_AWARE)
    except DateTimeUnparseable as e:
        print(f"[ICS ERROR] {e}")
        raise HTTPException(422, CALENDAR_ERROR)

    filename = ics_filename(event.title)
    print(f"[ICS] {event.id} -> {filename}")
    return ics_response(content, filename)
