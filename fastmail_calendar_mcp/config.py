"""Process configuration.

Credentials come from the environment (optionally a ``.env`` file):

- ``FASTMAIL_USERNAME``: Fastmail email address (required)
- ``FASTMAIL_APP_PASSWORD``: Fastmail app password (required, 16+ characters)
- ``FASTMAIL_DEFAULT_CALENDAR``: default calendar name (optional)
- ``FASTMAIL_TIMEZONE``: IANA timezone for naive date-times (optional)
- ``FASTMAIL_CALDAV_URL``: CalDAV endpoint override (optional)
"""

import os
from typing import Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from .errors import ConfigurationError

CALDAV_URL = "https://caldav.fastmail.com"
MIN_APP_PASSWORD_LENGTH = 16

USERNAME_ENV = "FASTMAIL_USERNAME"
APP_PASSWORD_ENV = "FASTMAIL_APP_PASSWORD"
DEFAULT_CALENDAR_ENV = "FASTMAIL_DEFAULT_CALENDAR"
TIMEZONE_ENV = "FASTMAIL_TIMEZONE"
CALDAV_URL_ENV = "FASTMAIL_CALDAV_URL"


class ServerConfig(BaseModel):
    """Validated server configuration."""

    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    username: EmailStr = Field(
        ...,
        description="Fastmail email address (e.g., user@fastmail.com)",
    )
    app_password: str = Field(
        ...,
        description="Fastmail app password. Create one at Settings > Privacy & Security > Integrations",
        min_length=MIN_APP_PASSWORD_LENGTH,
    )
    default_calendar: Optional[str] = Field(
        default=None,
        description="Default calendar name to use when not specified",
    )
    timezone: Optional[str] = Field(
        default=None,
        description="Default timezone for events, e.g. 'America/New_York'",
    )
    server_url: str = Field(default=CALDAV_URL, min_length=1)

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: Optional[str]) -> Optional[str]:
        if value:
            try:
                ZoneInfo(value)
            except (ZoneInfoNotFoundError, ValueError):
                raise ValueError(f"Unknown timezone: {value}")
        return value or None

    @property
    def zone(self) -> Optional[ZoneInfo]:
        return ZoneInfo(self.timezone) if self.timezone else None


def load_config(environ: Optional[Mapping[str, str]] = None) -> ServerConfig:
    """Build a ``ServerConfig`` from environment variables.

    Raises:
        ConfigurationError: If the username or app password is not set
        pydantic.ValidationError: If a value is malformed
    """
    env = os.environ if environ is None else environ

    username = env.get(USERNAME_ENV, "")
    app_password = env.get(APP_PASSWORD_ENV, "")
    if not username or not app_password:
        raise ConfigurationError(
            f"{USERNAME_ENV} and {APP_PASSWORD_ENV} environment variables are required."
        )

    return ServerConfig(
        username=username,
        app_password=app_password,
        default_calendar=env.get(DEFAULT_CALENDAR_ENV) or None,
        timezone=env.get(TIMEZONE_ENV) or None,
        server_url=env.get(CALDAV_URL_ENV) or CALDAV_URL,
    )
