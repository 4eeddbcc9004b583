"""
events.py — Event records and the read-only events table client

Rows come from the backend-as-a-service REST endpoint (PostgREST style,
`/rest/v1/events`). Without a configured URL the built-in catalog is served.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime

import httpx

from . import config
from .calendar_export import MONTH_NAMES


class EventNotFound(LookupError):
    pass


class EventStoreError(RuntimeError):
    pass


@dataclass(frozen=True)
class EventSpeaker:
    name: str
    title: str = ""
    company: str | None = None
    avatar_url: str | None = None


@dataclass(frozen=True)
class Event:
    id: str
    title: str
    date: str
    time: str
    duration: str
    location: str = ""
    description: str = ""
    summary: str | None = None
    category: str = ""
    level: str | None = None
    status: str = "upcoming"
    image: str | None = None
    tags: list[str] = field(default_factory=list)
    speakers: list[EventSpeaker] = field(default_factory=list)


# ─────────────────────────────────────────────────────────────
# Row mapping
# ─────────────────────────────────────────────────────────────

def format_event_date(dt: datetime) -> str:
    """datetime -> 'Jan 24, 2025'"""
    return f"{MONTH_NAMES[dt.month - 1][:3].title()} {dt.day}, {dt.year}"


def format_event_time(dt: datetime) -> str:
    """datetime -> '10:00 AM'"""
    hour = dt.hour % 12 or 12
    return f"{hour}:{dt.minute:02d} {'AM' if dt.hour < 12 else 'PM'}"


def _parse_tags(raw) -> list[str]:
    if not raw:
        return []
    if isinstance(raw, list):
        return raw
    if isinstance(raw, str):
        try:
            tags = json.loads(raw)
        except json.JSONDecodeError:
            return [t.strip() for t in raw.split(",")]
        return tags if isinstance(tags, list) else [str(tags)]
    return []


def _speaker(data: dict) -> EventSpeaker:
    return EventSpeaker(
        name=data.get("name") or "",
        title=data.get("title") or "",
        company=data.get("company"),
        avatar_url=data.get("avatarUrl") or data.get("avatar_url"),
    )


def _parse_speakers(row: dict) -> list[EventSpeaker]:
    raw = row.get("speakers")
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            raw = None
    if isinstance(raw, list):
        return [_speaker(s) for s in raw if isinstance(s, dict)]
    if row.get("speaker_name"):
        return [EventSpeaker(
            name=row["speaker_name"],
            title=row.get("speaker_title") or "",
            company=row.get("speaker_company"),
            avatar_url=row.get("speaker_avatar_url"),
        )]
    return []


def event_from_row(row: dict) -> Event:
    """
    Map a raw events-table row to an Event.

    A `start_time` timestamp wins over the free-text `date`/`time` columns
    and is rendered in host-local time, the same shape as hand-entered rows.
    An unreadable `start_time` falls back to those columns.
    """
    date = row.get("date") or ""
    time = row.get("time") or ""
    if row.get("start_time"):
        try:
            start = datetime.fromisoformat(str(row["start_time"]).replace("Z", "+00:00"))
            if start.tzinfo is not None:
                start = start.astimezone()
        except (ValueError, OverflowError) as e:
            print(f"[STORE ERROR] event {row.get('id')}: bad start_time {row['start_time']!r}: {e}")
        else:
            date = format_event_date(start)
            time = format_event_time(start)

    return Event(
        id=str(row.get("id") or ""),
        title=row.get("title") or "",
        date=date,
        time=time,
        duration=row.get("duration") or "",
        location=row.get("location") or "",
        description=row.get("description") or "",
        summary=row.get("summary"),
        category=row.get("category") or "",
        level=row.get("level"),
        status="on-demand" if row.get("status") == "past" else "upcoming",
        image=row.get("image"),
        tags=_parse_tags(row.get("tags")),
        speakers=_parse_speakers(row),
    )


# ─────────────────────────────────────────────────────────────
# Built-in catalog
# ─────────────────────────────────────────────────────────────

SEED_EVENTS = [
    Event(
        id="ux-masterclass",
        title="Designing for Human Attention",
        category="UX Strategy",
        date="Jan 24, 2025",
        time="10:00 AM PST",
        duration="90 minutes",
        location="Virtual webinar",
        level="Intermediate",
        summary="A live teardown of real-world flows to reduce friction and increase engagement.",
        description=(
            "Learn proven techniques for designing interfaces that respect human attention. "
            "We will review onboarding, notification, and retention flows from leading SaaS "
            "products, and distill repeatable patterns you can apply immediately."
        ),
        tags=["Product Design", "Research", "Conversion"],
        image="/window.svg",
        speakers=[
            EventSpeaker("Ava Chen", "Director of Product Design", "Northwind"),
            EventSpeaker("Luis Romero", "Head of Research", "Skyline Labs"),
        ],
    ),
    Event(
        id="ai-content",
        title="Building an AI Content Pipeline",
        category="AI & Automation",
        date="Feb 6, 2025",
        time="9:00 AM PST",
        duration="75 minutes",
        location="Virtual webinar",
        level="Beginner",
        summary="From prompts to publishing: see the exact stack we use to keep quality high.",
        description=(
            "See how modern marketing teams combine LLMs, editorial workflows, and QA to ship "
            "trustworthy content at scale. We will cover tooling, review checklists, and "
            "guardrails for brand safety."
        ),
        tags=["LLM", "Content Ops", "Automation"],
        image="/globe.svg",
        speakers=[
            EventSpeaker("Riley Patel", "Marketing Ops Lead", "DeltaWorks"),
            EventSpeaker("Morgan Lee", "Staff ML Engineer", "Helix"),
        ],
    ),
    Event(
        id="analytics",
        title="Product Analytics That Drives Roadmaps",
        category="Data",
        date="Feb 19, 2025",
        time="11:00 AM PST",
        duration="80 minutes",
        location="Virtual webinar",
        level="Advanced",
        status="on-demand",
        summary="Map metrics to decisions and make instrumentation a habit, not a sprint.",
        description=(
            "This session shows how leading teams connect analytics to product bets. We will "
            "walk through defining north-star metrics, building durable dashboards, and running "
            "experiments without slowing delivery."
        ),
        tags=["Analytics", "Experimentation", "Product"],
        image="/file.svg",
        speakers=[
            EventSpeaker("Jamie Fox", "VP of Product", "Harbor"),
            EventSpeaker("Tessa Nguyen", "Principal Data Scientist", "Signalry"),
        ],
    ),
]


# ─────────────────────────────────────────────────────────────
# Store
# ─────────────────────────────────────────────────────────────

class EventStore:
    """Read-only access to the events table."""

    def __init__(self, url: str | None = None, api_key: str | None = None,
                 client: httpx.Client | None = None, timeout: float | None = None):
        self.url     = (config.SUPABASE_URL if url is None else url).rstrip("/")
        self.api_key = config.SUPABASE_ANON_KEY if api_key is None else api_key
        self.timeout = config.HTTP_TIMEOUT if timeout is None else timeout
        self._client = client

    @property
    def remote(self) -> bool:
        return bool(self.url)

    def _fetch(self, params: dict) -> list[dict]:
        client = self._client or httpx.Client(timeout=self.timeout)
        try:
            r = client.get(
                f"{self.url}/rest/v1/events",
                params={"select": "*", **params},
                headers={"apikey": self.api_key, "Authorization": f"Bearer {self.api_key}"},
            )
            r.raise_for_status()
            rows = r.json()
        except (httpx.HTTPError, ValueError) as e:
            print(f"[STORE ERROR] {e}")
            raise EventStoreError(f"events fetch failed: {e}") from e
        finally:
            if self._client is None:
                client.close()
        print(f"[STORE] {len(rows)} row(s) for {params or 'all'}")
        return rows

    def list_events(self) -> list[Event]:
        if not self.remote:
            return list(SEED_EVENTS)
        return [event_from_row(row) for row in self._fetch({})]

    def get_event(self, event_id: str) -> Event:
        if not self.remote:
            for event in SEED_EVENTS:
                if event.id == event_id:
                    return event
            raise EventNotFound(event_id)
        rows = self._fetch({"id": f"eq.{event_id}"})
        if not rows:
            raise EventNotFound(event_id)
        return event_from_row(rows[0])
