"""Tests for date parsing and the per-operation input models."""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest
from pydantic import ValidationError

from fastmail_calendar_mcp.models import (
    OPERATION_MODELS,
    CalendarInfo,
    CreateEventInput,
    ListEventsInput,
    UpdateEventInput,
    parse_instant,
)


def test_parse_instant_date_only_is_utc_midnight():
    assert parse_instant("2024-12-01") == datetime(2024, 12, 1, tzinfo=timezone.utc)


def test_parse_instant_normalises_offsets_to_utc():
    assert parse_instant("2024-12-15T10:00:00+02:00") == datetime(2024, 12, 15, 8, 0, tzinfo=timezone.utc)
    assert parse_instant("2024-12-15T10:00:00Z") == datetime(2024, 12, 15, 10, 0, tzinfo=timezone.utc)


def test_parse_instant_naive_uses_default_zone():
    parsed = parse_instant("2024-07-01T09:00:00", ZoneInfo("America/New_York"))
    assert parsed == datetime(2024, 7, 1, 13, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize("value", ["tomorrow", "2024-13-01", "", None, 42])
def test_parse_instant_rejects_non_iso(value):
    with pytest.raises(ValueError):
        parse_instant(value)


def test_list_events_input_uses_wire_names():
    params = ListEventsInput.model_validate(
        {"calendarUrl": " https://cal/ ", "startDate": "2024-12-01", "endDate": "2024-12-02"}
    )
    assert params.calendar_url == "https://cal/"
    assert params.end == datetime(2024, 12, 2, tzinfo=timezone.utc)


def test_invalid_date_error_names_the_field():
    with pytest.raises(ValidationError) as exc_info:
        ListEventsInput.model_validate(
            {"calendarUrl": "https://cal/", "startDate": "soon", "endDate": "2024-12-02"}
        )
    error = exc_info.value.errors()[0]
    assert error["loc"] == ("startDate",)
    assert "Invalid start date: soon" in error["msg"]


def test_create_requires_end_after_start():
    with pytest.raises(ValidationError, match="End date must be after start date"):
        CreateEventInput.model_validate(
            {
                "calendarUrl": "https://cal/",
                "summary": "Standup",
                "startDate": "2024-12-15T10:00:00Z",
                "endDate": "2024-12-15T10:00:00Z",
            }
        )


def test_update_fields_default_to_none():
    params = UpdateEventInput.model_validate({"eventUrl": "https://cal/e.ics", "location": "Room A"})
    assert params.location == "Room A"
    assert params.summary is None
    assert params.start is None


def test_update_blank_summary_means_no_change():
    params = UpdateEventInput.model_validate({"eventUrl": "https://cal/e.ics", "summary": "   "})
    assert params.summary is None


def test_operation_models_cover_all_tools():
    assert set(OPERATION_MODELS) == {
        "list_calendars",
        "list_events",
        "create_event",
        "update_event",
        "delete_event",
    }


def test_calendar_record_uses_display_name_key():
    record = CalendarInfo(display_name="Work", url="https://cal/").to_record()
    assert record == {"displayName": "Work", "url": "https://cal/", "description": "", "timezone": ""}
