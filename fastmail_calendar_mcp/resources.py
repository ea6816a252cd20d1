"""Read-only ``calendar://`` resources: one per calendar, plus an index."""

import json
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional
from urllib.parse import quote, unquote

from .session import CalendarSession

RESOURCE_SCHEME = "calendar://"
INDEX_URI = RESOURCE_SCHEME + "index"
DEFAULT_DATE_RANGE_DAYS = 30


def calendar_uri(calendar_url: str) -> str:
    return RESOURCE_SCHEME + quote(calendar_url, safe="")


def calendar_url_from_key(key: str, known_urls: Iterable[str] = ()) -> str:
    """Decode the part of a resource uri that follows ``calendar://``.

    The transport may already have percent-decoded ``key`` once, so a key that
    is itself a known calendar url is returned unchanged.
    """
    decoded = unquote(key)
    known = set(known_urls)
    if decoded not in known and key in known:
        return key
    return decoded


async def calendar_index(session: CalendarSession) -> str:
    session = await session.ensure_connected()
    entries = [
        {
            "uri": calendar_uri(cal.url),
            "name": cal.display_name or "Unnamed Calendar",
            "description": cal.description or f"Calendar: {cal.display_name}",
            "mimeType": "application/json",
        }
        for cal in session.calendars
    ]
    return json.dumps(entries, indent=2)


async def calendar_contents(
    session: CalendarSession,
    calendar_url: str,
    now: Optional[datetime] = None,
    days: int = DEFAULT_DATE_RANGE_DAYS,
) -> str:
    """Upcoming events of one calendar as JSON.

    Raises:
        NotFound: If the calendar is not one of the account's calendars
    """
    session = await session.ensure_connected()
    calendar = session.find_calendar(calendar_url)

    start = now or datetime.now(timezone.utc)
    end = start + timedelta(days=days)
    objects = await session.gateway.fetch_calendar_objects(calendar.url, start=start, end=end)
    events = [obj.to_record() for obj in objects]

    return json.dumps(
        {
            "calendar": calendar.to_record(),
            "events": events,
            "eventCount": len(events),
            "dateRange": {"start": start.isoformat(), "end": end.isoformat()},
        },
        indent=2,
    )
