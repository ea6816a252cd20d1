#!/usr/bin/env python3
"""
Setup Helper for the Fastmail Calendar MCP Server

This script helps you configure the server by:
1. Checking for required packages
2. Checking the Fastmail credentials
3. Testing the connection to Fastmail's CalDAV server
4. Discovering your calendars
5. Writing an MCP client configuration snippet
"""

import asyncio
import importlib
import json
import os
import sys
from pathlib import Path
from typing import List, Mapping, Optional, Sequence

from dotenv import load_dotenv
from pydantic import ValidationError

from .config import APP_PASSWORD_ENV, USERNAME_ENV, ServerConfig, load_config
from .errors import CalendarToolError, ConfigurationError
from .models import CalendarInfo
from .session import CalendarSession

REQUIRED_PACKAGES = ("caldav", "icalendar", "pydantic", "mcp", "dotenv", "dateutil")


def print_header(text):
    """Print a formatted header."""
    print("\n" + "=" * 70)
    print(f"  {text}")
    print("=" * 70 + "\n")


def print_step(number, text):
    """Print a formatted step."""
    print(f"\n{'─' * 70}")
    print(f"  Step {number}: {text}")
    print('─' * 70 + "\n")


def check_dependencies(packages: Sequence[str] = REQUIRED_PACKAGES) -> bool:
    """Check if required Python packages are installed."""
    print_step(1, "Checking Dependencies")

    missing = []
    for package in packages:
        try:
            importlib.import_module(package)
            print(f"✓ {package:<20} installed")
        except ImportError:
            print(f"✗ {package:<20} MISSING")
            missing.append(package)

    if missing:
        print(f"\nWarning: Missing packages: {', '.join(missing)}")
        print("\nInstall them with:")
        print("  pip install fastmail-calendar-mcp")
        return False

    print("\nAll dependencies installed!")
    return True


def check_credentials(environ: Optional[Mapping[str, str]] = None) -> Optional[ServerConfig]:
    """Check that Fastmail credentials are configured and well-formed."""
    print_step(2, "Checking Fastmail Credentials")

    env = os.environ if environ is None else environ
    username = env.get(USERNAME_ENV)
    print(f"✓ {USERNAME_ENV}: {username}" if username else f"✗ {USERNAME_ENV}: Not set")
    print(
        f"✓ {APP_PASSWORD_ENV}: {'*' * 16} (hidden)"
        if env.get(APP_PASSWORD_ENV)
        else f"✗ {APP_PASSWORD_ENV}: Not set"
    )

    try:
        config = load_config(env)
    except ConfigurationError as e:
        print(f"\n{e}")
        print("\nTo set them up:")
        print("  1. In Fastmail, go to Settings → Privacy & Security → Integrations")
        print("  2. Create a new app password with CalDAV access")
        print("  3. Set environment variables:")
        print(f'     export {USERNAME_ENV}="you@fastmail.com"')
        print(f'     export {APP_PASSWORD_ENV}="xxxxxxxxxxxxxxxx"')
        return None
    except ValidationError as e:
        print(f"\nInvalid credentials format:\n{e}")
        return None

    print("\nCredentials configured!")
    return config


async def _connect(session: CalendarSession) -> List[CalendarInfo]:
    await session.ensure_connected()
    return session.calendars


def check_connection(config: ServerConfig, session: Optional[CalendarSession] = None) -> Optional[List[CalendarInfo]]:
    """Connect to the CalDAV server and fetch the calendar list."""
    print_step(3, "Testing Connection to Fastmail")

    print(f"Connecting to: {config.server_url}")
    print(f"Username: {config.username}")
    print("Testing authentication...")

    try:
        calendars = asyncio.run(_connect(session or CalendarSession(config)))
    except CalendarToolError as e:
        print(f"\nConnection failed: {e}")
        print("\nPossible issues:")
        print("  1. Incorrect email address or app password")
        print("  2. The app password does not grant CalDAV access")
        print("  3. Network connectivity issues")
        return None

    print("\nConnection successful!")
    return calendars


def discover_calendars(calendars: List[CalendarInfo]) -> None:
    """Print the discovered calendars."""
    print_step(4, "Discovering Calendars")

    print(f"Found {len(calendars)} calendar(s):\n")
    for i, cal in enumerate(calendars, 1):
        print(f"  {i}. {cal.display_name or 'Unnamed Calendar'}")
        print(f"     {cal.url}")


def create_mcp_config(config: ServerConfig, output_dir: Optional[Path] = None) -> Path:
    """Generate and save the MCP client configuration."""
    print_step(5, "MCP Client Configuration")

    mcp_config = {
        "mcpServers": {
            "fastmail-calendar": {
                "command": "fastmail-calendar-mcp",
                "args": [],
                "env": {
                    USERNAME_ENV: str(config.username),
                    APP_PASSWORD_ENV: config.app_password,
                },
            }
        }
    }
    config_text = json.dumps(mcp_config, indent=2)

    print("Add this to your MCP client configuration:\n")
    print(config_text)

    config_file = (output_dir or Path.cwd()) / "mcp_config.json"
    config_file.write_text(config_text)

    print(f"\nConfiguration saved to: {config_file}")
    print("Copy this into your MCP client config file.")
    return config_file


def main():
    """Main setup flow."""
    load_dotenv()
    print_header("Fastmail Calendar MCP Server - Setup")

    if not check_dependencies():
        print("\nSetup aborted. Please install dependencies and try again.")
        return 1

    config = check_credentials()
    if config is None:
        print("\nSetup aborted. Please configure credentials and try again.")
        return 1

    calendars = check_connection(config)
    if calendars is None:
        print("\nSetup aborted. Please fix connection issues and try again.")
        return 1

    discover_calendars(calendars)
    if not calendars:
        print("\nWarning: No calendars found.")

    create_mcp_config(config)

    print_header("Setup Complete!")
    print("Next steps:")
    print("  1. Add the configuration to your MCP client config file")
    print("  2. Restart your MCP client")
    print("  3. Test: Ask your assistant to 'list my Fastmail calendars'")
    print("\n" + "=" * 70 + "\n")
    return 0


def run():
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\n\nSetup cancelled by user.")
        sys.exit(1)


if __name__ == "__main__":
    run()
