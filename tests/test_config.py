"""Tests for fastmail_calendar_mcp.config."""

import pytest
from pydantic import ValidationError

from fastmail_calendar_mcp.config import CALDAV_URL, load_config
from fastmail_calendar_mcp.errors import ConfigurationError

VALID_ENV = {
    "FASTMAIL_USERNAME": "me@fastmail.com",
    "FASTMAIL_APP_PASSWORD": "abcdefghijklmnop",
}


def test_load_config_defaults():
    config = load_config(VALID_ENV)
    assert config.username == "me@fastmail.com"
    assert config.server_url == CALDAV_URL
    assert config.default_calendar is None
    assert config.zone is None


def test_load_config_optional_hints():
    config = load_config(
        {**VALID_ENV, "FASTMAIL_DEFAULT_CALENDAR": "Work", "FASTMAIL_TIMEZONE": "Europe/Berlin"}
    )
    assert config.default_calendar == "Work"
    assert config.zone.key == "Europe/Berlin"


@pytest.mark.parametrize("missing", ["FASTMAIL_USERNAME", "FASTMAIL_APP_PASSWORD"])
def test_missing_secret_is_a_configuration_error(missing):
    env = {key: value for key, value in VALID_ENV.items() if key != missing}
    with pytest.raises(ConfigurationError):
        load_config(env)


def test_username_must_be_an_email():
    with pytest.raises(ValidationError):
        load_config({**VALID_ENV, "FASTMAIL_USERNAME": "not-an-email"})


def test_app_password_minimum_length():
    with pytest.raises(ValidationError):
        load_config({**VALID_ENV, "FASTMAIL_APP_PASSWORD": "short"})


def test_unknown_timezone_rejected():
    with pytest.raises(ValidationError):
        load_config({**VALID_ENV, "FASTMAIL_TIMEZONE": "Mars/Olympus"})
