"""MCP server exposing Fastmail calendars over CalDAV."""

__version__ = "1.0.0"
