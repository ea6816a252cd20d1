"""One authenticated CalDAV session per process, with its calendar list."""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from .caldav_gateway import CalDAVGateway
from .config import ServerConfig
from .errors import NotFound
from .models import CalendarInfo

logger = logging.getLogger(__name__)

Connector = Callable[[ServerConfig], Awaitable[CalDAVGateway]]


class CalendarSession:
    """Lazily connects once and caches the account's calendars.

    The calendar list is fetched on first use and kept for the lifetime of the
    process; it is never refreshed. Concurrent first callers share a single
    authentication handshake.
    """

    def __init__(self, config: ServerConfig, connector: Optional[Connector] = None):
        self.config = config
        self._connector = connector or CalDAVGateway.connect
        self._pending: Optional[asyncio.Future] = None
        self._gateway: Optional[CalDAVGateway] = None
        self._calendars: List[CalendarInfo] = []

    @property
    def connected(self) -> bool:
        return self._gateway is not None

    @property
    def gateway(self) -> CalDAVGateway:
        if self._gateway is None:
            raise RuntimeError("CalendarSession.ensure_connected() has not completed")
        return self._gateway

    @property
    def calendars(self) -> List[CalendarInfo]:
        return list(self._calendars)

    async def ensure_connected(self) -> "CalendarSession":
        """Authenticate and fetch calendars on first call; no-op afterwards.

        Raises:
            AuthenticationError: If the credentials are rejected (not retried)
            RemoteFailure: If the server cannot be reached
        """
        if self._gateway is not None:
            return self
        if self._pending is None:
            self._pending = asyncio.ensure_future(self._connect())
        # Callers waiting on the same handshake share its result or its error.
        await asyncio.shield(self._pending)
        return self

    async def _connect(self) -> None:
        try:
            gateway = await self._connector(self.config)
            self._calendars = await gateway.fetch_calendars()
            self._gateway = gateway
            logger.info(
                "Session ready with calendars: %s",
                ", ".join(cal.display_name or cal.url for cal in self._calendars),
            )
        finally:
            self._pending = None

    def find_calendar(self, calendar_url: str) -> CalendarInfo:
        for calendar in self._calendars:
            if calendar.url == calendar_url:
                return calendar
        raise NotFound(f"Calendar not found: {calendar_url}")
