"""CalDAV access for the server, backed by the ``caldav`` library.

``caldav`` is synchronous, so every network call is pushed to a worker thread
to keep the MCP event loop responsive. Library and transport failures are
translated into the tool error taxonomy here, at the boundary.
"""

import asyncio
import logging
from contextlib import contextmanager
from datetime import datetime
from functools import partial
from typing import Dict, Iterator, List, Optional

import caldav
from caldav.elements import cdav, dav
from caldav.lib.error import AuthorizationError, DAVError, NotFoundError

from .config import ServerConfig
from .errors import AuthenticationError, NotFound, RemoteFailure
from .models import CalendarInfo, CalendarObject

logger = logging.getLogger(__name__)

ICAL_CONTENT_TYPE = "text/calendar; charset=utf-8"
_SUCCESS_STATUSES = (200, 201, 204)
_PRECONDITION_FAILED = 412


async def run_caldav_async(func, *args, **kwargs):
    """Run a blocking CalDAV operation in a thread pool.

    Args:
        func: Blocking function to execute
        *args: Positional arguments for the function
        **kwargs: Keyword arguments for the function

    Returns:
        Result from the blocking function
    """
    if kwargs:
        return await asyncio.to_thread(partial(func, **kwargs), *args)
    return await asyncio.to_thread(func, *args)


@contextmanager
def translate_errors(action: str) -> Iterator[None]:
    """Map ``caldav`` and transport exceptions onto the tool error taxonomy."""
    try:
        yield
    except AuthorizationError as e:
        raise AuthenticationError(
            f"Authentication failed while trying to {action}. Check that "
            "FASTMAIL_USERNAME is your Fastmail address and FASTMAIL_APP_PASSWORD "
            "is an app password (not your main password)."
        ) from e
    except NotFoundError as e:
        raise NotFound(f"Not found while trying to {action}: {e}") from e
    except (DAVError, OSError) as e:
        raise RemoteFailure(f"Failed to {action}: {e}") from e


def _check_response(response, action: str, url: str) -> None:
    status = getattr(response, "status", None)
    if status in _SUCCESS_STATUSES:
        return
    reason = getattr(response, "reason", "") or ""
    if status == 404:
        raise NotFound(f"Event not found: {url}")
    if status == _PRECONDITION_FAILED:
        raise RemoteFailure(
            f"Failed to {action}: the event was modified on the server "
            f"(etag mismatch, HTTP 412 {reason}). Fetch it again with list_events."
        )
    raise RemoteFailure(f"Failed to {action}: HTTP {status} {reason}".rstrip())


class CalDAVGateway:
    """Authenticated CalDAV connection for one account."""

    def __init__(self, client: caldav.DAVClient, principal=None):
        self._client = client
        self._principal = principal
        self._collections: Dict[str, caldav.Calendar] = {}

    @classmethod
    async def connect(cls, config: ServerConfig) -> "CalDAVGateway":
        """Authenticate against the CalDAV server and resolve the principal.

        Raises:
            AuthenticationError: If the credentials are rejected
            RemoteFailure: If the server cannot be reached
        """
        logger.info("Connecting to %s as %s", config.server_url, config.username)
        client = caldav.DAVClient(
            url=config.server_url,
            username=str(config.username),
            password=config.app_password,
        )
        with translate_errors("connect to the CalDAV server"):
            principal = await run_caldav_async(client.principal)
        return cls(client, principal)

    # ------------------------------------------------------------------
    # Calendars
    # ------------------------------------------------------------------

    async def fetch_calendars(self) -> List[CalendarInfo]:
        with translate_errors("list calendars"):
            collections = await run_caldav_async(self._principal.calendars)
            calendars = []
            for collection in collections:
                info = await run_caldav_async(self._describe, collection)
                self._collections[info.url] = collection
                calendars.append(info)
        logger.info("Fetched %d calendars", len(calendars))
        return calendars

    @staticmethod
    def _describe(collection) -> CalendarInfo:
        props = collection.get_properties(
            [dav.DisplayName(), cdav.CalendarDescription(), cdav.CalendarTimeZone()]
        )
        return CalendarInfo(
            display_name=props.get(dav.DisplayName.tag) or collection.name or "",
            url=str(collection.url),
            description=props.get(cdav.CalendarDescription.tag) or "",
            timezone=props.get(cdav.CalendarTimeZone.tag) or "",
        )

    def _collection(self, calendar_url: str):
        collection = self._collections.get(calendar_url)
        if collection is None:
            collection = self._client.calendar(url=calendar_url)
            self._collections[calendar_url] = collection
        return collection

    # ------------------------------------------------------------------
    # Calendar objects
    # ------------------------------------------------------------------

    async def fetch_calendar_objects(
        self,
        calendar_url: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[CalendarObject]:
        """Fetch the events of a calendar, optionally limited to a time range."""
        collection = self._collection(calendar_url)
        search = {"event": True, "props": [dav.GetEtag()]}
        if start is not None and end is not None:
            search.update(start=start, end=end)

        with translate_errors("fetch events"):
            results = await run_caldav_async(collection.search, **search)

        objects = [
            CalendarObject(
                url=str(result.url),
                etag=(result.props or {}).get(dav.GetEtag.tag) or "",
                data=result.data or "",
            )
            for result in results
        ]
        logger.debug("Fetched %d objects from %s", len(objects), calendar_url)
        return objects

    async def create_calendar_object(self, calendar_url: str, ical: str) -> str:
        """Store a new event and return its url."""
        collection = self._collection(calendar_url)
        with translate_errors("create event"):
            event = await run_caldav_async(collection.save_event, ical=ical)
        logger.info("Created event %s", event.url)
        return str(event.url)

    async def update_calendar_object(self, calendar_object: CalendarObject) -> None:
        """Overwrite an event, guarded by its etag (``If-Match``)."""
        headers = {"Content-Type": ICAL_CONTENT_TYPE}
        if calendar_object.etag:
            headers["If-Match"] = calendar_object.etag
        with translate_errors("update event"):
            response = await run_caldav_async(
                self._client.put, calendar_object.url, calendar_object.data, headers
            )
        _check_response(response, "update event", calendar_object.url)
        logger.info("Updated event %s", calendar_object.url)

    async def delete_calendar_object(self, url: str, etag: str) -> None:
        """Delete an event, guarded by its etag (``If-Match``)."""
        with translate_errors("delete event"):
            response = await run_caldav_async(
                self._client.request, url, "DELETE", "", {"If-Match": etag}
            )
        _check_response(response, "delete event", url)
        logger.info("Deleted event %s", url)
