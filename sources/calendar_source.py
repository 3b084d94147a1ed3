"""Calendar source -- merges a shared calendar and a holiday calendar.

Both feeds are plain ICS URLs. Each is filtered to its own look-ahead
window, then the two are merged, sorted by start time and cut down to
the handful of entries the dashboard has room for.

Config example (in homeboard.yaml):
    calendar:
      shared:
        url: "https://calendar.google.com/calendar/ical/.../basic.ics"
        type: "VEVENT"
        days: 14
      holiday:
        url: "https://www.officeholidays.com/ics/norway"
        type: "VEVENT"
        days: 60
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

import requests
from icalendar import Calendar

from core.data_source import Source
from core.registry import register_source

logger = logging.getLogger(__name__)

MAX_EVENTS = 7
DEFAULT_TYPE = "VEVENT"
FEEDS = ("shared", "holiday")


@dataclass
class CalendarEvent:
    """One upcoming entry, normalized from either feed."""

    start: datetime
    summary: str
    source: str
    end: Optional[datetime] = None
    uid: str = ""
    location: str = ""
    all_day: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat() if self.end else None,
            "summary": self.summary,
            "source": self.source,
            "uid": self.uid,
            "location": self.location,
            "all_day": self.all_day,
        }


def to_datetime(value) -> datetime:
    """Aware datetime for an ICS date or datetime. Floating times are local."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.astimezone()
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day).astimezone()
    raise ValueError(f"not a date: {value!r}")


def days_until(start: datetime, now: datetime) -> int:
    """Whole days from now until start, truncated toward zero."""
    return int((start - now).total_seconds() / 86400)


def plain_text(value) -> str:
    """Plain text of a summary property.

    icalendar hands back a ``vText`` (a str subclass) even when the
    property carries parameters such as LANGUAGE, so the parameters are
    dropped by the ``str()`` conversion. Summaries that arrive as JSON
    mappings carry the text under ``"val"``.
    """
    if isinstance(value, dict):
        value = value.get("val")
    return "" if value is None else str(value)


def parse_feed(
    ics_text: str,
    source: str,
    event_type: str = DEFAULT_TYPE,
    days: int = 7,
    now: Optional[datetime] = None,
) -> List[CalendarEvent]:
    """Parse one feed and keep entries starting within [now, now + days)."""
    now = now or datetime.now(timezone.utc)
    cal = Calendar.from_ical(ics_text)

    events = []
    for component in cal.walk():
        if component.name != event_type or component.get("dtstart") is None:
            continue

        raw_start = component.decoded("dtstart")
        start = to_datetime(raw_start)
        diff = days_until(start, now)
        if not 0 <= diff < days:
            continue

        end = component.get("dtend")
        events.append(CalendarEvent(
            start=start,
            end=to_datetime(component.decoded("dtend")) if end is not None else None,
            summary=plain_text(component.get("summary")),
            source=source,
            uid=str(component.get("uid", "")),
            location=str(component.get("location", "")),
            all_day=not isinstance(raw_start, datetime),
        ))
    return events


def merge_events(*feeds: List[CalendarEvent], limit: int = MAX_EVENTS) -> List[CalendarEvent]:
    """Concatenate feeds, sort ascending by start and keep the first ``limit``."""
    merged = [event for feed in feeds for event in feed]
    merged.sort(key=lambda event: event.start)
    return merged[:limit]


@register_source("calendar")
class CalendarSource(Source):
    """Fetches and merges the configured ICS feeds."""

    def __init__(self, source_id: str, bus, config: Dict, session=None):
        super().__init__(source_id, bus, config)
        self.feeds = {
            name: self.config.get(name) or {}
            for name in FEEDS
        }
        self._enabled = any(feed.get("url") for feed in self.feeds.values())
        self._session = session or requests.Session()

    def _fetch_feed(self, name: str, now: datetime) -> List[CalendarEvent]:
        feed = self.feeds[name]
        resp = self._session.get(feed["url"], timeout=self.timeout)
        resp.raise_for_status()
        events = parse_feed(
            resp.text,
            source=name,
            event_type=feed.get("type", DEFAULT_TYPE),
            days=feed.get("days", 7),
            now=now,
        )
        logger.debug("Calendar %s: %d upcoming", name, len(events))
        return events

    def fetch(self, now: Optional[datetime] = None) -> Optional[List[Dict[str, Any]]]:
        """Merged upcoming events as JSON-ready dicts.

        Any feed failure raises, so a failed merge never broadcasts a
        partial list.
        """
        if not self.enabled:
            return None
        now = now or datetime.now(timezone.utc)

        results = [
            self._fetch_feed(name, now)
            for name in FEEDS
            if self.feeds[name].get("url")
        ]
        merged = merge_events(*results)
        logger.info("Calendar update (%d events)", len(merged))
        return [event.to_dict() for event in merged]
