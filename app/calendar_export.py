"""
calendar_export.py — convert an Event Hub event to an .ics file
pip install icalendar

Event records carry free-text date, time and duration strings
("Jan 24, 2025", "10:00 AM PST", "1 hour 30 minutes"). They are parsed
here into a start/end pair and written as a single VEVENT calendar.
"""

import re
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Mapping

from fastapi.responses import Response
from icalendar import Calendar, Event as VEvent
from icalendar.prop import vText

ICS_MIME_TYPE    = "text/calendar; charset=utf-8"
DEFAULT_FILENAME = "event.ics"
PRODID           = "-//Event Hub//EN"
UID_DOMAIN       = "event-hub"
DEFAULT_DURATION = 60

MONTH_NAMES = [
    "january", "february", "march", "april", "may", "june",
    "july", "august", "september", "october", "november", "december",
]

DATE_RE     = re.compile(r"(\w+)\s+(\d+),\s+(\d+)")
TIME_RE     = re.compile(r"(\d+):(\d+)\s*(AM|PM)", re.IGNORECASE)
HOURS_RE    = re.compile(r"(\d+)\s*h(?:our)?s?")
MINUTES_RE  = re.compile(r"(\d+)\s*m(?:inute)?s?")
NUMBER_RE   = re.compile(r"(\d+)")
FILENAME_RE = re.compile(r"[^a-z0-9]", re.IGNORECASE)

Emitter = Callable[[bytes, str, str], object]

# Applied in order; CRLF goes before the bare newline so it yields one \n.
TEXT_ESCAPES = [
    ("\\", "\\\\"),
    (";", "\\;"),
    (",", "\\,"),
    ("\r\n", "\\n"),
    ("\n", "\\n"),
]


class DateTimeUnparseable(ValueError):
    """Raised when an event's date/time text can't be turned into a datetime."""

    def __init__(self, date: str | None, time: str | None, reason: str = ""):
        self.date = date
        self.time = time
        msg = f"Unable to parse event date and time: {date!r} {time!r}"
        if reason:
            msg = f"{msg} ({reason})"
        super().__init__(msg)


# ─────────────────────────────────────────────────────────────
# Parsing
# ─────────────────────────────────────────────────────────────

def parse_event_date_time(date: str, time: str) -> datetime:
    """
    Combine "Jan 24, 2025" and "10:00 AM PST" into a naive local datetime.

    The month word is matched by prefix against the full month names in
    calendar order, so "Sept" and "September" both work and "Ju" is June.
    Anything after the AM/PM marker (a zone abbreviation) is ignored.
    """
    date_match = DATE_RE.search(date or "")
    if not date_match:
        raise DateTimeUnparseable(date, time, "date not recognised")

    word = date_match.group(1).lower()
    month = next((i + 1 for i, name in enumerate(MONTH_NAMES) if name.startswith(word)), None)
    if month is None:
        raise DateTimeUnparseable(date, time, f"unknown month {date_match.group(1)!r}")

    day  = int(date_match.group(2), 10)
    year = int(date_match.group(3), 10)

    time_match = TIME_RE.search(time or "")
    if not time_match:
        raise DateTimeUnparseable(date, time, "time not recognised")

    hour     = int(time_match.group(1), 10)
    minute   = int(time_match.group(2), 10)
    meridiem = time_match.group(3).upper()

    if meridiem == "PM" and hour != 12:
        hour += 12
    elif meridiem == "AM" and hour == 12:
        hour = 0

    try:
        return datetime(year, month, day, hour, minute)
    except (ValueError, OverflowError) as e:
        raise DateTimeUnparseable(date, time, str(e)) from e


def parse_duration(duration: str | None) -> int:
    """Best-effort minutes from "90 minutes", "1 hour 30 minutes", "2 hours" or "90"."""
    text = (duration or "").lower()
    minutes = 0

    hours = HOURS_RE.search(text)
    if hours:
        minutes += int(hours.group(1), 10) * 60

    mins = MINUTES_RE.search(text)
    if mins:
        minutes += int(mins.group(1), 10)

    if minutes == 0:
        number = NUMBER_RE.search(text)
        minutes = int(number.group(1), 10) if number else DEFAULT_DURATION

    return minutes


# ─────────────────────────────────────────────────────────────
# Formatting
# ─────────────────────────────────────────────────────────────

def to_ics_instant(value: datetime, zone_aware: bool = False) -> datetime:
    """
    Turn a parsed event datetime into the UTC instant written to the file.

    By default naive wall-clock fields are labelled UTC as-is, so
    "9:00 AM PST" is exported as 09:00Z (the stated zone is never applied).
    With zone_aware, naive values are read as host-local time and converted.
    """
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc)
    if zone_aware:
        return value.astimezone().astimezone(timezone.utc)
    return value.replace(tzinfo=timezone.utc)


def build_uid(event_id: str, now: datetime, stable: bool = False) -> str:
    if stable:
        return f"{event_id}@{UID_DOMAIN}"
    return f"{event_id}-{int(now.timestamp() * 1000)}@{UID_DOMAIN}"


def ics_filename(title: str | None) -> str:
    """'Q&A Session' -> 'q_a_session.ics'"""
    if not title:
        return DEFAULT_FILENAME
    return FILENAME_RE.sub("_", title).lower() + ".ics"


class EscapedText(vText):
    """TEXT value escaped with TEXT_ESCAPES only."""

    def to_ical(self) -> bytes:
        text = str(self)
        for old, new in TEXT_ESCAPES:
            text = text.replace(old, new)
        return text.encode("utf-8")


def _field(event, name: str):
    if isinstance(event, Mapping):
        return event.get(name)
    return getattr(event, name, None)


# ─────────────────────────────────────────────────────────────
# Calendar document
# ─────────────────────────────────────────────────────────────

def build_calendar(event, now: datetime | None = None,
                   stable_uid: bool = False, zone_aware: bool = False) -> Calendar:
    """
    Build the VCALENDAR for one event.
    event: an app.events.Event or a dict with the same keys.
    now:   export time, used only for DTSTAMP and UID.
    """
    date    = _field(event, "date")
    time    = _field(event, "time")
    start   = parse_event_date_time(date, time)
    minutes = parse_duration(_field(event, "duration"))
    try:
        dtstart = to_ics_instant(start, zone_aware)
        dtend   = to_ics_instant(start + timedelta(minutes=minutes), zone_aware)
    except OverflowError as e:
        raise DateTimeUnparseable(date, time, f"{minutes} minute(s) out of range: {e}") from e

    now = now or datetime.now(timezone.utc)

    cal = Calendar()
    cal.add("version", "2.0")
    cal.add("prodid", PRODID)
    cal.add("calscale", "GREGORIAN")
    cal.add("method", "PUBLISH")

    vevent = VEvent()
    vevent.add("uid", build_uid(_field(event, "id"), now, stable=stable_uid))
    vevent.add("dtstamp", to_ics_instant(now.replace(microsecond=0)))
    vevent.add("dtstart", dtstart)
    vevent.add("dtend", dtend)
    vevent.add("summary", EscapedText(_field(event, "title") or ""))
    vevent.add("description", EscapedText(_field(event, "description") or _field(event, "summary") or ""))
    vevent.add("location", EscapedText(_field(event, "location") or ""))
    vevent.add("status", "CONFIRMED")
    vevent.add("sequence", 0)

    cal.add_component(vevent)
    return cal


def generate_ics(event, now: datetime | None = None,
                 stable_uid: bool = False, zone_aware: bool = False) -> str:
    """
    Return the .ics text for an event, CRLF line endings.
    Raises DateTimeUnparseable if the event's date or time can't be read.
    """
    cal = build_calendar(event, now=now, stable_uid=stable_uid, zone_aware=zone_aware)
    return cal.to_ical(sorted=False).decode("utf-8")


# ─────────────────────────────────────────────────────────────
# Emitters
# ─────────────────────────────────────────────────────────────

def save_file(data: bytes, filename: str, mime_type: str = ICS_MIME_TYPE,
              output_dir: str = "/tmp") -> Path:
    """Save bytes to disk and return path."""
    path = Path(output_dir) / Path(filename).name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


def download_ics(content: str, filename: str = DEFAULT_FILENAME,
                 emit: Emitter | None = None) -> None:
    """
    Hand generated .ics text to an emitter as UTF-8 bytes.
    emit(data, filename, mime_type) defaults to save_file.
    """
    (emit or save_file)(content.encode("utf-8"), filename, ICS_MIME_TYPE)


def ics_response(content: str, filename: str = DEFAULT_FILENAME) -> Response:
    """HTTP flavour of download_ics: an attachment response."""
    return Response(
        content=content.encode("utf-8"),
        media_type=ICS_MIME_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
