"""Calendar records and per-operation tool input models."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional, Type

from dateutil.parser import isoparse
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)

# ============================================================================
# Records returned by the CalDAV gateway
# ============================================================================


class CalendarInfo(BaseModel):
    """A calendar collection of the account. ``url`` is an opaque key."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    display_name: str = Field(default="", alias="displayName")
    url: str
    description: str = ""
    timezone: str = ""

    def to_record(self) -> Dict[str, str]:
        return self.model_dump(by_alias=True)


class CalendarObject(BaseModel):
    """One stored event: its url, concurrency token and raw iCalendar text."""

    model_config = ConfigDict(frozen=True)

    url: str
    etag: str = ""
    data: str = ""

    def to_record(self) -> Dict[str, str]:
        return self.model_dump()


# ============================================================================
# Date handling
# ============================================================================

_DATE_FIELD_LABELS = {"start": "start date", "end": "end date"}


def parse_instant(value: Any, default_tz=None) -> datetime:
    """Parse an ISO 8601 date or date-time into an aware UTC datetime.

    Naive values are read in ``default_tz`` when given, otherwise as UTC.

    Raises:
        ValueError: If ``value`` is not an ISO 8601 string
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        parsed = isoparse(value.strip())
    else:
        raise ValueError(f"not an ISO 8601 date: {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=default_tz or timezone.utc)
    return parsed.astimezone(timezone.utc)


class _ToolInput(BaseModel):
    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    @field_validator("start", "end", mode="before", check_fields=False)
    @classmethod
    def _parse_dates(cls, value: Any, info: ValidationInfo) -> Optional[datetime]:
        if value is None:
            return None
        default_tz = (info.context or {}).get("default_tz")
        try:
            return parse_instant(value, default_tz)
        except (ValueError, OverflowError):
            label = _DATE_FIELD_LABELS.get(info.field_name, info.field_name)
            raise ValueError(f"Invalid {label}: {value}")


# ============================================================================
# Tool inputs
# ============================================================================


class ListCalendarsInput(_ToolInput):
    """Input for listing calendars (takes no arguments)."""


class ListEventsInput(_ToolInput):
    """Input for listing the events of one calendar within a date range."""

    calendar_url: str = Field(..., alias="calendarUrl", min_length=1)
    start: datetime = Field(..., alias="startDate")
    end: datetime = Field(..., alias="endDate")


class CreateEventInput(_ToolInput):
    """Input for creating an event."""

    calendar_url: str = Field(..., alias="calendarUrl", min_length=1)
    summary: str = Field(..., min_length=1)
    start: datetime = Field(..., alias="startDate")
    end: datetime = Field(..., alias="endDate")
    description: Optional[str] = None
    location: Optional[str] = None

    @model_validator(mode="after")
    def _end_after_start(self) -> "CreateEventInput":
        if self.end <= self.start:
            raise ValueError("End date must be after start date")
        return self


class UpdateEventInput(_ToolInput):
    """Input for updating an event. Omitted fields are left unchanged."""

    event_url: str = Field(..., alias="eventUrl", min_length=1)
    summary: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    start: Optional[datetime] = Field(default=None, alias="startDate")
    end: Optional[datetime] = Field(default=None, alias="endDate")

    @field_validator("summary")
    @classmethod
    def _blank_summary_is_unchanged(cls, value: Optional[str]) -> Optional[str]:
        # An event always keeps a title; an empty one means "leave as is".
        return value or None


class DeleteEventInput(_ToolInput):
    """Input for deleting an event guarded by its etag."""

    event_url: str = Field(..., alias="eventUrl", min_length=1)
    etag: str = Field(..., min_length=1)


OPERATION_MODELS: Dict[str, Type[_ToolInput]] = {
    "list_calendars": ListCalendarsInput,
    "list_events": ListEventsInput,
    "create_event": CreateEventInput,
    "update_event": UpdateEventInput,
    "delete_event": DeleteEventInput,
}
