"""Tests for the lazily connected calendar session."""

import asyncio

import pytest
from conftest import HOME_URL, WORK_URL

from fastmail_calendar_mcp.errors import AuthenticationError, NotFound
from fastmail_calendar_mcp.session import CalendarSession


@pytest.mark.asyncio
async def test_first_call_connects_and_caches_calendars(session, connector, gateway):
    assert not session.connected
    await session.ensure_connected()
    assert session.connected
    assert [cal.url for cal in session.calendars] == [WORK_URL, HOME_URL]
    assert connector.handshakes == 1
    assert gateway.network_calls("fetch_calendars") == [("fetch_calendars",)]


@pytest.mark.asyncio
async def test_later_calls_are_noops(session, connector, gateway):
    await session.ensure_connected()
    await session.ensure_connected()
    assert connector.handshakes == 1
    assert len(gateway.network_calls("fetch_calendars")) == 1


@pytest.mark.asyncio
async def test_concurrent_first_calls_share_one_handshake(session, connector):
    first, second = await asyncio.gather(session.ensure_connected(), session.ensure_connected())
    assert connector.handshakes == 1
    assert first.calendars == second.calendars


@pytest.mark.asyncio
async def test_authentication_error_propagates_and_is_not_cached(config):
    attempts = []

    async def rejecting(cfg):
        attempts.append(cfg)
        raise AuthenticationError("Authentication failed")

    session = CalendarSession(config, connector=rejecting)
    with pytest.raises(AuthenticationError):
        await session.ensure_connected()
    assert not session.connected
    assert len(attempts) == 1


@pytest.mark.asyncio
async def test_concurrent_first_calls_share_a_failed_handshake(config):
    attempts = []

    async def rejecting(cfg):
        attempts.append(cfg)
        await asyncio.sleep(0)
        raise AuthenticationError("Authentication failed")

    session = CalendarSession(config, connector=rejecting)
    results = await asyncio.gather(
        session.ensure_connected(), session.ensure_connected(), return_exceptions=True
    )
    assert len(attempts) == 1
    assert all(isinstance(result, AuthenticationError) for result in results)

    # A later call starts a fresh handshake.
    with pytest.raises(AuthenticationError):
        await session.ensure_connected()
    assert len(attempts) == 2


def test_gateway_requires_connection(session):
    with pytest.raises(RuntimeError):
        session.gateway


@pytest.mark.asyncio
async def test_find_calendar(session):
    await session.ensure_connected()
    assert session.find_calendar(WORK_URL).display_name == "Work"
    with pytest.raises(NotFound, match="Calendar not found"):
        session.find_calendar("https://elsewhere/")
