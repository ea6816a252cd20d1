"""Find an event by url when its owning calendar is unknown."""

import logging

from .errors import NotFound
from .models import CalendarObject
from .session import CalendarSession

logger = logging.getLogger(__name__)


async def locate_calendar_object(session: CalendarSession, event_url: str) -> CalendarObject:
    """Scan the session's calendars in order and return the event at ``event_url``.

    CalDAV cannot fetch an object by url alone without its collection, so each
    calendar's full object set is fetched in turn until a match is found.
    Calendars after the match are not queried.

    Raises:
        NotFound: If no calendar contains the event
    """
    for calendar in session.calendars:
        objects = await session.gateway.fetch_calendar_objects(calendar.url)
        for calendar_object in objects:
            if calendar_object.url == event_url:
                logger.debug("Located %s in calendar %s", event_url, calendar.url)
                return calendar_object
    raise NotFound(f"Event not found: {event_url}")
