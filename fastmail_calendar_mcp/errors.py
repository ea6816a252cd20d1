"""Error taxonomy shared by the dispatcher, the locator and the CalDAV gateway."""

from typing import Optional


class CalendarToolError(Exception):
    """Base class for failures reported back to the assistant as tool errors."""


class AuthenticationError(CalendarToolError):
    """The CalDAV server rejected the configured credentials."""


class InvalidArgument(CalendarToolError):
    """A tool argument is missing or malformed."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class NotFound(CalendarToolError):
    """An unknown calendar url or event url."""


class RemoteFailure(CalendarToolError):
    """Network or server error while talking to the CalDAV server."""


class UnknownOperation(CalendarToolError):
    """The dispatcher was asked for a tool it does not implement."""


class ConfigurationError(Exception):
    """Required startup configuration is missing."""
