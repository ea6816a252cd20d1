#!/usr/bin/env python3
"""
Fastmail Calendar MCP Server

This MCP server exposes Fastmail calendars to an AI assistant over the CalDAV
protocol: list calendars, list events, and create, update or delete events.

Authentication Requirements:
- Fastmail email address
- App password (Settings > Privacy & Security > Integrations > New app password)

Setup:
1. Create an app password with CalDAV access
2. Set environment variables (or put them in a .env file):
   - FASTMAIL_USERNAME: Your Fastmail address (e.g., user@fastmail.com)
   - FASTMAIL_APP_PASSWORD: Your app password
3. Run: fastmail-calendar-mcp
"""

import logging
import os
import sys
from typing import Annotated, Optional

from dotenv import load_dotenv
from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from pydantic import Field, ValidationError

from . import prompts
from .config import ServerConfig, load_config
from .dispatcher import ToolDispatcher
from .errors import ConfigurationError
from .resources import INDEX_URI, calendar_contents, calendar_index, calendar_url_from_key
from .session import CalendarSession

logger = logging.getLogger(__name__)

SERVER_NAME = "fastmail-calendar-mcp"
LOG_LEVEL_ENV = "FASTMAIL_MCP_LOG_LEVEL"


def create_server(config: ServerConfig, session: Optional[CalendarSession] = None) -> FastMCP:
    """Build the FastMCP server with its tools, prompts and resources."""
    mcp = FastMCP(SERVER_NAME)
    session = session or CalendarSession(config)
    dispatcher = ToolDispatcher(session)

    async def call(name: str, **arguments) -> str:
        result = await dispatcher.handle(
            name, {key: value for key, value in arguments.items() if value is not None}
        )
        if result.is_error:
            # FastMCP adds its own "Error executing tool" prefix.
            raise ToolError(result.message)
        return result.text

    # ========================================================================
    # Tools
    # ========================================================================

    @mcp.tool(
        name="list_calendars",
        description=(
            "STEP 1 - ALWAYS CALL THIS FIRST. Lists all calendars in the user's Fastmail "
            "account. Returns an array of calendars with displayName (human-readable name "
            'like "Work", "Personal", "Family"), url (required for other operations), and '
            "timezone. You MUST call this before list_events, create_event, update_event, or "
            "delete_event to get the calendar URL."
        ),
        annotations={
            "title": "List Calendars",
            "readOnlyHint": True,
            "destructiveHint": False,
            "idempotentHint": True,
            "openWorldHint": False,
        },
    )
    async def list_calendars() -> str:
        return await call("list_calendars")

    @mcp.tool(
        name="list_events",
        description=(
            "STEP 2 - Get events from a calendar. PREREQUISITE: call list_calendars first to "
            "get the calendarUrl. Returns events within the date range. Each event contains: "
            "url (needed for update/delete), etag (needed for delete), and data (iCalendar "
            "text with SUMMARY=title, DTSTART=start, DTEND=end, LOCATION, DESCRIPTION)."
        ),
        annotations={
            "title": "List Events",
            "readOnlyHint": True,
            "destructiveHint": False,
            "idempotentHint": True,
            "openWorldHint": False,
        },
    )
    async def list_events(
        calendarUrl: Annotated[str, Field(description="REQUIRED. The calendar URL from list_calendars output.")],
        startDate: Annotated[str, Field(description="REQUIRED. Start of range in ISO format, e.g. '2024-12-01' or '2024-12-01T00:00:00Z'")],
        endDate: Annotated[str, Field(description="REQUIRED. End of range in ISO format. For a single day, use the next day.")],
    ) -> str:
        return await call("list_events", calendarUrl=calendarUrl, startDate=startDate, endDate=endDate)

    @mcp.tool(
        name="create_event",
        description=(
            "Create a new calendar event. PREREQUISITE: call list_calendars first to get the "
            "calendarUrl. Creates an event with the given title, times, and optional "
            "description/location."
        ),
        annotations={
            "title": "Create Event",
            "readOnlyHint": False,
            "destructiveHint": False,
            "idempotentHint": False,
            "openWorldHint": False,
        },
    )
    async def create_event(
        calendarUrl: Annotated[str, Field(description="REQUIRED. The calendar URL where the event will be created.")],
        summary: Annotated[str, Field(description="REQUIRED. The event title, e.g. 'Team Meeting'")],
        startDate: Annotated[str, Field(description="REQUIRED. Event start in ISO format, e.g. '2024-12-15T10:00:00Z'")],
        endDate: Annotated[str, Field(description="REQUIRED. Event end in ISO format. Must be after startDate.")],
        description: Annotated[Optional[str], Field(description="Optional. Notes or agenda for the event.")] = None,
        location: Annotated[Optional[str], Field(description="Optional. Where the event takes place.")] = None,
    ) -> str:
        return await call(
            "create_event",
            calendarUrl=calendarUrl,
            summary=summary,
            startDate=startDate,
            endDate=endDate,
            description=description,
            location=location,
        )

    @mcp.tool(
        name="update_event",
        description=(
            "Modify an existing event. PREREQUISITE: call list_calendars, then list_events to "
            "get the eventUrl. Only include fields you want to change; omitted fields stay the same."
        ),
        annotations={
            "title": "Update Event",
            "readOnlyHint": False,
            "destructiveHint": False,
            "idempotentHint": True,
            "openWorldHint": False,
        },
    )
    async def update_event(
        eventUrl: Annotated[str, Field(description="REQUIRED. The event URL from list_events output.")],
        summary: Annotated[Optional[str], Field(description="Optional. New title for the event.")] = None,
        description: Annotated[Optional[str], Field(description="Optional. New description/notes.")] = None,
        startDate: Annotated[Optional[str], Field(description="Optional. New start time in ISO format.")] = None,
        endDate: Annotated[Optional[str], Field(description="Optional. New end time in ISO format.")] = None,
        location: Annotated[Optional[str], Field(description="Optional. New location.")] = None,
    ) -> str:
        return await call(
            "update_event",
            eventUrl=eventUrl,
            summary=summary,
            description=description,
            startDate=startDate,
            endDate=endDate,
            location=location,
        )

    @mcp.tool(
        name="delete_event",
        description=(
            "PERMANENTLY DELETE an event. PREREQUISITE: call list_calendars, then list_events "
            "to get both the eventUrl AND etag. WARNING: This cannot be undone. Always confirm "
            "with the user before deleting."
        ),
        annotations={
            "title": "Delete Event",
            "readOnlyHint": False,
            "destructiveHint": True,
            "idempotentHint": True,
            "openWorldHint": False,
        },
    )
    async def delete_event(
        eventUrl: Annotated[str, Field(description="REQUIRED. The event URL from list_events output.")],
        etag: Annotated[str, Field(description="REQUIRED. The etag from list_events output; prevents deleting a modified event.")],
    ) -> str:
        return await call("delete_event", eventUrl=eventUrl, etag=etag)

    # ========================================================================
    # Prompts
    # ========================================================================

    @mcp.prompt(name="schedule_meeting", description="Help schedule a new meeting or appointment on your calendar")
    def schedule_meeting(topic: str, duration: Optional[str] = None) -> str:
        return prompts.schedule_meeting(topic, duration, default_calendar=config.default_calendar)

    @mcp.prompt(name="daily_agenda", description="Get your agenda for today or a specific date")
    def daily_agenda(date: Optional[str] = None) -> str:
        return prompts.daily_agenda(date)

    @mcp.prompt(name="find_free_time", description="Find available time slots in your calendar")
    def find_free_time(duration: str, within_days: Optional[str] = None) -> str:
        return prompts.find_free_time(duration, within_days)

    @mcp.prompt(name="weekly_summary", description="Get a summary of your upcoming week's schedule")
    def weekly_summary() -> str:
        return prompts.weekly_summary()

    # ========================================================================
    # Resources
    # ========================================================================

    @mcp.resource(INDEX_URI, name="calendars", description="All calendars of the account", mime_type="application/json")
    async def calendars_resource() -> str:
        return await calendar_index(session)

    @mcp.resource("calendar://{key}", name="calendar", description="Events of one calendar for the next 30 days", mime_type="application/json")
    async def calendar_resource(key: str) -> str:
        await session.ensure_connected()
        calendar_url = calendar_url_from_key(key, (cal.url for cal in session.calendars))
        return await calendar_contents(session, calendar_url)

    return mcp


# ============================================================================
# Main Entry Point
# ============================================================================


def main() -> int:
    load_dotenv()
    logging.basicConfig(
        level=os.environ.get(LOG_LEVEL_ENV, "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        config = load_config()
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        print("Set these environment variables or configure via MCP client.", file=sys.stderr)
        return 1
    except ValidationError as e:
        print(f"Error: invalid configuration\n{e}", file=sys.stderr)
        return 1

    server = create_server(config)
    logger.info("Fastmail Calendar MCP server running on stdio")
    server.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
