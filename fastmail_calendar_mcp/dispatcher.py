"""Routes tool calls to their handlers and shapes results and errors."""

import json
import logging
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from .errors import CalendarToolError, InvalidArgument, UnknownOperation
from .ical_patch import EventPatch, apply_patch, build_event_body, new_uid
from .locator import locate_calendar_object
from .models import (
    OPERATION_MODELS,
    CreateEventInput,
    DeleteEventInput,
    ListCalendarsInput,
    ListEventsInput,
    UpdateEventInput,
)
from .session import CalendarSession

logger = logging.getLogger(__name__)

ERROR_PREFIX = "Error: "


class ToolResult(BaseModel):
    """Outcome of one tool call: the text payload and whether it is an error."""

    model_config = ConfigDict(frozen=True)

    text: str
    is_error: bool = False

    @classmethod
    def error(cls, message: str) -> "ToolResult":
        return cls(text=ERROR_PREFIX + message, is_error=True)

    @property
    def message(self) -> str:
        """The text without the ``Error: `` prefix of error results."""
        if self.is_error and self.text.startswith(ERROR_PREFIX):
            return self.text[len(ERROR_PREFIX):]
        return self.text


def _invalid_argument(exc: ValidationError) -> InvalidArgument:
    """Convert the first pydantic error into an ``InvalidArgument``."""
    error = exc.errors()[0]
    loc = error.get("loc") or ()
    field = str(loc[0]) if loc else None

    if error.get("type") == "missing":
        return InvalidArgument(f"Missing required argument: {field}", field)

    cause = (error.get("ctx") or {}).get("error")
    if isinstance(cause, ValueError):
        message = str(cause)
    elif field:
        message = f"Invalid {field}: {error.get('msg')}"
    else:
        message = str(error.get("msg"))
    return InvalidArgument(message, field)


class ToolDispatcher:
    """Validates arguments, runs the matching operation, never raises."""

    def __init__(self, session: CalendarSession):
        self.session = session
        self._handlers: Dict[str, Callable[[Any], Awaitable[str]]] = {
            "list_calendars": self._list_calendars,
            "list_events": self._list_events,
            "create_event": self._create_event,
            "update_event": self._update_event,
            "delete_event": self._delete_event,
        }

    def validate(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> BaseModel:
        """Validate raw tool arguments into the operation's input model.

        Raises:
            UnknownOperation: If ``name`` is not a known tool
            InvalidArgument: If an argument is missing or malformed
        """
        model = OPERATION_MODELS.get(name)
        if model is None:
            raise UnknownOperation(f"Unknown tool: {name}")
        try:
            return model.model_validate(
                dict(arguments or {}),
                context={"default_tz": self.session.config.zone},
            )
        except ValidationError as e:
            raise _invalid_argument(e) from e

    async def handle(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> ToolResult:
        """Run one tool call and return its result; failures become error results."""
        try:
            params = self.validate(name, arguments)
            text = await self._handlers[name](params)
        except CalendarToolError as e:
            logger.warning("Tool %s failed: %s", name, e)
            return ToolResult.error(str(e))
        except Exception as e:
            logger.exception("Unexpected failure in tool %s", name)
            return ToolResult.error(f"Failed to run {name}: {e}")
        return ToolResult(text=text)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def _list_calendars(self, params: ListCalendarsInput) -> str:
        session = await self.session.ensure_connected()
        return json.dumps([cal.to_record() for cal in session.calendars], indent=2)

    async def _list_events(self, params: ListEventsInput) -> str:
        session = await self.session.ensure_connected()
        calendar = session.find_calendar(params.calendar_url)
        objects = await session.gateway.fetch_calendar_objects(
            calendar.url, start=params.start, end=params.end
        )
        return json.dumps([obj.to_record() for obj in objects], indent=2)

    async def _create_event(self, params: CreateEventInput) -> str:
        session = await self.session.ensure_connected()
        calendar = session.find_calendar(params.calendar_url)
        body = build_event_body(
            uid=new_uid(),
            summary=params.summary,
            start=params.start,
            end=params.end,
            description=params.description,
            location=params.location,
        )
        url = await session.gateway.create_calendar_object(calendar.url, body)
        return f"Event created successfully: {params.summary}\nURL: {url}"

    async def _update_event(self, params: UpdateEventInput) -> str:
        session = await self.session.ensure_connected()
        existing = await locate_calendar_object(session, params.event_url)
        patch = EventPatch(
            summary=params.summary,
            description=params.description,
            location=params.location,
            start=params.start,
            end=params.end,
        )
        updated = existing.model_copy(update={"data": apply_patch(existing.data, patch)})
        await session.gateway.update_calendar_object(updated)
        return f"Event updated successfully: {params.event_url}"

    async def _delete_event(self, params: DeleteEventInput) -> str:
        session = await self.session.ensure_connected()
        await session.gateway.delete_calendar_object(params.event_url, params.etag)
        return f"Event deleted successfully: {params.event_url}"
