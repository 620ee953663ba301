"""Shared fixtures for pg_ical tests."""

import logging
from collections.abc import Generator
from typing import Any

import pytest

from pg_ical.core.settings import ParserSettings
from pg_ical.ical_logging import PGICAL_MODULES
from tests.fixtures.ics_data import ics


def pytest_configure(config: Any) -> None:
    config.addinivalue_line("markers", "unit: fast, isolated unit tests")


@pytest.fixture(autouse=True)
def clean_parser_environment(monkeypatch: Any) -> Generator[None, Any, None]:
    """Keep PGICAL_* variables from the host out of the tests."""
    for name in (
        "PGICAL_STRICT",
        "PGICAL_DEBUG",
        "PGICAL_LOG_LEVEL",
        "PGICAL_CHUNK_SIZE",
        "PGICAL_DECODE_ERRORS",
    ):
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def lenient_settings() -> ParserSettings:
    return ParserSettings(strict=False)


@pytest.fixture
def strict_settings() -> ParserSettings:
    return ParserSettings(strict=True)


@pytest.fixture
def simple_ics() -> str:
    """Minimal calendar with one UTC event."""
    return ics(
        "BEGIN:VCALENDAR",
        "BEGIN:VEVENT",
        "UID:1",
        "DTSTART:20240101T120000Z",
        "SUMMARY:Test",
        "END:VEVENT",
        "END:VCALENDAR",
    )


@pytest.fixture
def team_calendar_ics() -> str:
    """Calendar exercising timezones, alarms, todos and vendor properties."""
    return ics(
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "PRODID:-//Example Corp//Team Calendar//EN",
        "METHOD:PUBLISH",
        "X-WR-CALNAME:Team",
        "X-WR-TIMEZONE:Europe/Paris",
        "BEGIN:VTIMEZONE",
        "TZID:Europe/Paris",
        "BEGIN:STANDARD",
        "DTSTART:19701025T030000",
        "TZOFFSETFROM:+0200",
        "TZOFFSETTO:+0100",
        "RRULE:FREQ=YEARLY;BYMONTH=10;BYDAY=-1SU",
        "END:STANDARD",
        "BEGIN:DAYLIGHT",
        "DTSTART:19700329T020000",
        "TZOFFSETFROM:+0100",
        "TZOFFSETTO:+0200",
        "RRULE:FREQ=YEARLY;BYMONTH=3;BYDAY=-1SU",
        "END:DAYLIGHT",
        "END:VTIMEZONE",
        "BEGIN:VEVENT",
        "UID:standup@example.com",
        "DTSTAMP:20240102T080000Z",
        "DTSTART;TZID=Europe/Paris:20240108T093000",
        "DTEND;TZID=Europe/Paris:20240108T094500",
        "SUMMARY:Daily standup",
        "LOCATION:Room 4\\, second floor",
        "CATEGORIES:Meeting,Team",
        "CATEGORIES:Recurring",
        "RRULE:FREQ=WEEKLY;BYDAY=MO,TU,WE,TH,FR;UNTIL=20240630T220000Z",
        "EXDATE;TZID=Europe/Paris:20240115T093000,20240122T093000",
        "ATTENDEE;CN=Ana;ROLE=REQ-PARTICIPANT:mailto:ana@example.com",
        "ATTENDEE;CN=\"Bo, Jr.\":mailto:bo@example.com",
        "ORGANIZER;CN=Lead:mailto:lead@example.com",
        "X-MICROSOFT-CDO-BUSYSTATUS:BUSY",
        "BEGIN:VALARM",
        "ACTION:DISPLAY",
        "DESCRIPTION:Standup soon",
        "TRIGGER:-PT10M",
        "END:VALARM",
        "END:VEVENT",
        "BEGIN:VTODO",
        "UID:todo-1@example.com",
        "DTSTAMP:20240102T080000Z",
        "DUE;VALUE=DATE:20240131",
        "SUMMARY:Write report",
        "PRIORITY:1",
        "PERCENT-COMPLETE:40",
        "STATUS:IN-PROCESS",
        "END:VTODO",
        "END:VCALENDAR",
    )


@pytest.fixture
def restore_logging() -> Generator[None, Any, None]:
    """Put logger levels back after a test reconfigures them."""
    names = [None, *PGICAL_MODULES]
    levels = {name: logging.getLogger(name).level for name in names}
    yield
    for name, level in levels.items():
        logging.getLogger(name).setLevel(level)
