"""Prompt templates that walk the assistant through the calendar tools."""

from datetime import date, timedelta
from typing import Optional


def schedule_meeting(topic: str, duration: Optional[str] = None, default_calendar: Optional[str] = None) -> str:
    text = f'Help me schedule a meeting about "{topic or "a topic"}".'
    if duration:
        text += f" It should be {duration} long."
    text += (
        "\n\nFirst, use list_calendars to see available calendars, then help me create "
        "the event with create_event. Ask me for the date and time if I haven't specified them."
    )
    if default_calendar:
        text += f' Unless I say otherwise, use the "{default_calendar}" calendar.'
    return text


def daily_agenda(day: Optional[str] = None, today: Optional[date] = None) -> str:
    agenda_date = day or (today or date.today()).isoformat()
    return (
        f"Show me my agenda for {agenda_date}.\n\n"
        "Use list_calendars to get my calendars, then use list_events with the date range "
        "for that day to show all my events. Format them nicely with times and titles."
    )


def find_free_time(duration: str, within_days: Optional[str] = None) -> str:
    return (
        f"Help me find {duration or 'some'} free time in my calendar over the next "
        f"{within_days or '7'} days.\n\n"
        "Use list_calendars and list_events to check my schedule, then identify gaps "
        "where I'm free. Present the available slots clearly."
    )


def weekly_summary(today: Optional[date] = None) -> str:
    start = today or date.today()
    end = start + timedelta(days=7)
    return (
        f"Give me a summary of my schedule for the next 7 days "
        f"({start.isoformat()} to {end.isoformat()}).\n\n"
        "Use list_calendars and list_events to fetch my events, then organize them by day "
        "and provide a helpful overview."
    )
