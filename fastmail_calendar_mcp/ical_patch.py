"""Line-oriented editing of iCalendar event bodies.

Event bodies are edited in place rather than parsed and re-serialized, so
every property this module does not touch (including vendor X- properties and
the server's own formatting) stays byte-identical.

Properties are matched inside the first VEVENT only; nested components such as
VALARM (which carries its own DESCRIPTION) are never edited. A property is its
content line plus any folded continuation lines.
"""

import logging
import re
import time
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from icalendar import vText
from icalendar.parser import foldline
from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

CRLF = "\r\n"
PRODID = "-//Fastmail Calendar MCP//EN"
UID_DOMAIN = "fastmail-mcp"

_NAME_RE = re.compile(r"([A-Za-z0-9-]+)[:;]")


class EventPatch(BaseModel):
    """Field changes for an event: a set field replaces, ``None`` preserves."""

    model_config = ConfigDict(frozen=True)

    summary: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None


def format_ical_datetime(dt: datetime) -> str:
    """Format as a compact UTC timestamp, e.g. ``20241215T100000Z``.

    Naive datetimes are taken as UTC; sub-second precision is dropped.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def escape_text(value: str) -> str:
    """Escape a TEXT property value (backslash, semicolon, comma, newline)."""
    return vText(value).to_ical().decode("utf-8")


def content_line(name: str, value: str, terminator: str = CRLF) -> str:
    """Render ``NAME:value`` folded at 75 octets and terminated."""
    fold_sep = (terminator or CRLF) + " "
    return foldline(f"{name}:{value}", fold_sep=fold_sep) + terminator


def new_uid(now: Optional[float] = None) -> str:
    millis = int((time.time() if now is None else now) * 1000)
    return f"{millis}@{UID_DOMAIN}"


def build_event_body(
    uid: str,
    summary: str,
    start: datetime,
    end: datetime,
    description: Optional[str] = None,
    location: Optional[str] = None,
    stamp: Optional[datetime] = None,
) -> str:
    """Build the minimal VCALENDAR document used to create an event."""
    stamp = stamp or datetime.now(timezone.utc)
    lines = [
        "BEGIN:VCALENDAR" + CRLF,
        "VERSION:2.0" + CRLF,
        f"PRODID:{PRODID}" + CRLF,
        "BEGIN:VEVENT" + CRLF,
        content_line("UID", uid),
        content_line("DTSTAMP", format_ical_datetime(stamp)),
        content_line("DTSTART", format_ical_datetime(start)),
        content_line("DTEND", format_ical_datetime(end)),
        content_line("SUMMARY", escape_text(summary)),
    ]
    if description:
        lines.append(content_line("DESCRIPTION", escape_text(description)))
    if location:
        lines.append(content_line("LOCATION", escape_text(location)))
    lines.append("END:VEVENT" + CRLF)
    # No terminator after the final line.
    lines.append("END:VCALENDAR")
    return "".join(lines)


# ============================================================================
# Patching
# ============================================================================


def _split_lines(body: str) -> List[str]:
    parts = body.split("\n")
    lines = [part + "\n" for part in parts[:-1]]
    if parts[-1]:
        lines.append(parts[-1])
    return lines


def _group_properties(lines: List[str]) -> List[List[str]]:
    """Group physical lines into properties (a line plus its continuations)."""
    units: List[List[str]] = []
    for line in lines:
        if units and line[:1] in (" ", "\t"):
            units[-1].append(line)
        else:
            units.append([line])
    return units


def _terminator(line: str) -> str:
    if line.endswith("\r\n"):
        return "\r\n"
    if line.endswith("\n"):
        return "\n"
    return ""


def _property_name(unit: List[str]) -> str:
    match = _NAME_RE.match(unit[0])
    return match.group(1).upper() if match else ""


def _unit_value(unit: List[str]) -> str:
    return unit[0].rstrip("\r\n").strip().upper()


def _event_scope(units: List[List[str]]) -> List[int]:
    """Indexes of the properties that belong directly to the first VEVENT."""
    scope: List[int] = []
    depth = 0
    inside = False
    for index, unit in enumerate(units):
        value = _unit_value(unit)
        if not inside:
            if value == "BEGIN:VEVENT":
                inside = True
                depth = 1
            continue
        if value.startswith("BEGIN:"):
            depth += 1
        elif value.startswith("END:"):
            depth -= 1
            if depth == 0:
                return scope
        elif depth == 1:
            scope.append(index)
    if inside:
        return scope
    # A bare property list without a VEVENT wrapper.
    return [
        index
        for index, unit in enumerate(units)
        if not _unit_value(unit).startswith(("BEGIN:", "END:"))
    ]


def _find(units: List[List[str]], name: str) -> Optional[int]:
    for index in _event_scope(units):
        if _property_name(units[index]) == name:
            return index
    return None


def _render(name: str, value: str, terminator: str) -> List[str]:
    return _split_lines(content_line(name, value, terminator))


def _replace(units: List[List[str]], name: str, value: str) -> bool:
    index = _find(units, name)
    if index is None:
        return False
    units[index] = _render(name, value, _terminator(units[index][-1]))
    return True


def _insert_after_summary(units: List[List[str]], name: str, value: str) -> bool:
    anchor = _find(units, "SUMMARY")
    if anchor is None:
        return False
    last = units[anchor][-1]
    terminator = _terminator(last)
    if terminator:
        units.insert(anchor + 1, _render(name, value, terminator))
    else:
        # SUMMARY was the final line of the body.
        units[anchor][-1] = last + CRLF
        units.insert(anchor + 1, _render(name, value, ""))
    return True


def _replace_or_insert(units: List[List[str]], name: str, value: str) -> bool:
    return _replace(units, name, value) or _insert_after_summary(units, name, value)


def apply_patch(body: str, patch: EventPatch) -> str:
    """Apply ``patch`` to an iCalendar body and return the edited text.

    - summary: replaces SUMMARY
    - description / location: replace the property, or insert it right after
      SUMMARY when absent. When both are inserted the order is
      SUMMARY, DESCRIPTION, LOCATION.
    - start / end: replace DTSTART / DTEND with a compact UTC timestamp

    A property that cannot be found (or an insert with no SUMMARY to anchor
    on) leaves the body unchanged for that field. Applying the same patch
    twice gives the same result as applying it once.
    """
    units = _group_properties(_split_lines(body))

    edits: List[Tuple[str, Optional[str], bool]] = [
        ("SUMMARY", _escaped(patch.summary), False),
        # LOCATION before DESCRIPTION so two fresh inserts end up in create order.
        ("LOCATION", _escaped(patch.location), True),
        ("DESCRIPTION", _escaped(patch.description), True),
        ("DTSTART", _timestamp(patch.start), False),
        ("DTEND", _timestamp(patch.end), False),
    ]

    for name, value, insertable in edits:
        if value is None:
            continue
        if insertable:
            applied = _replace_or_insert(units, name, value)
        else:
            applied = _replace(units, name, value)
        if not applied:
            logger.warning("Event body has no %s property; left unchanged", name)

    return "".join(line for unit in units for line in unit)


def _escaped(value: Optional[str]) -> Optional[str]:
    return None if value is None else escape_text(value)


def _timestamp(value: Optional[datetime]) -> Optional[str]:
    return None if value is None else format_ical_datetime(value)
