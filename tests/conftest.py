"""
Pytest fixtures for the Fastmail Calendar MCP tests.
An in-memory gateway stands in for the CalDAV server; no test touches the network.
"""

import asyncio
from typing import Dict, List, Optional

import pytest

from fastmail_calendar_mcp.config import ServerConfig
from fastmail_calendar_mcp.errors import NotFound, RemoteFailure
from fastmail_calendar_mcp.models import CalendarInfo, CalendarObject
from fastmail_calendar_mcp.session import CalendarSession

WORK_URL = "https://caldav.fastmail.com/dav/calendars/user/me@fastmail.com/work/"
HOME_URL = "https://caldav.fastmail.com/dav/calendars/user/me@fastmail.com/home/"

SAMPLE_EVENT = (
    "BEGIN:VCALENDAR\r\n"
    "VERSION:2.0\r\n"
    "PRODID:-//Fastmail Calendar MCP//EN\r\n"
    "BEGIN:VEVENT\r\n"
    "UID:1700000000000@fastmail-mcp\r\n"
    "DTSTAMP:20241201T090000Z\r\n"
    "DTSTART:20241215T100000Z\r\n"
    "DTEND:20241215T110000Z\r\n"
    "SUMMARY:Team Meeting\r\n"
    "END:VEVENT\r\n"
    "END:VCALENDAR"
)


class FakeGateway:
    """In-memory CalDAV gateway that records every call it receives."""

    def __init__(self, calendars: List[CalendarInfo], objects: Optional[Dict[str, List[CalendarObject]]] = None):
        self._calendars = calendars
        self.objects = {cal.url: [] for cal in calendars}
        self.objects.update(objects or {})
        self.calls = []
        self._counter = 0

    async def fetch_calendars(self):
        self.calls.append(("fetch_calendars",))
        return list(self._calendars)

    async def fetch_calendar_objects(self, calendar_url, start=None, end=None):
        self.calls.append(("fetch_calendar_objects", calendar_url, start, end))
        return list(self.objects.get(calendar_url, []))

    async def create_calendar_object(self, calendar_url, ical):
        self.calls.append(("create_calendar_object", calendar_url, ical))
        self._counter += 1
        url = f"{calendar_url}event-{self._counter}.ics"
        self.objects.setdefault(calendar_url, []).append(
            CalendarObject(url=url, etag=f'"etag-{self._counter}"', data=ical)
        )
        return url

    def _find(self, url):
        for calendar_url, objects in self.objects.items():
            for index, obj in enumerate(objects):
                if obj.url == url:
                    return calendar_url, index, obj
        raise NotFound(f"Event not found: {url}")

    async def update_calendar_object(self, calendar_object):
        self.calls.append(("update_calendar_object", calendar_object))
        calendar_url, index, stored = self._find(calendar_object.url)
        if calendar_object.etag != stored.etag:
            raise RemoteFailure("Failed to update event: etag mismatch, HTTP 412")
        self.objects[calendar_url][index] = calendar_object.model_copy(
            update={"etag": stored.etag + "-updated"}
        )

    async def delete_calendar_object(self, url, etag):
        self.calls.append(("delete_calendar_object", url, etag))
        calendar_url, index, stored = self._find(url)
        if etag != stored.etag:
            raise RemoteFailure("Failed to delete event: etag mismatch, HTTP 412")
        del self.objects[calendar_url][index]

    def network_calls(self, name=None):
        return [call for call in self.calls if name is None or call[0] == name]


class FakeConnector:
    """Connector that counts handshakes and yields to the event loop once."""

    def __init__(self, gateway: FakeGateway):
        self.gateway = gateway
        self.handshakes = 0

    async def __call__(self, config):
        self.handshakes += 1
        await asyncio.sleep(0)
        return self.gateway


@pytest.fixture
def config():
    return ServerConfig(username="me@fastmail.com", app_password="abcdefghijklmnop")


@pytest.fixture
def calendars():
    return [
        CalendarInfo(display_name="Work", url=WORK_URL, description="Office", timezone=""),
        CalendarInfo(display_name="Home", url=HOME_URL),
    ]


@pytest.fixture
def sample_event():
    return CalendarObject(url=HOME_URL + "team.ics", etag='"abc"', data=SAMPLE_EVENT)


@pytest.fixture
def gateway(calendars, sample_event):
    return FakeGateway(calendars, {HOME_URL: [sample_event]})


@pytest.fixture
def connector(gateway):
    return FakeConnector(gateway)


@pytest.fixture
def session(config, connector):
    return CalendarSession(config, connector=connector)
