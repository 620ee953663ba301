"""pg_ical - iCalendar (RFC 5545) to typed relational rows.

Parses iCalendar text into an immutable component tree of typed values and
flattens it into rows for a relational consumer. Fetching calendars and
registering SQL functions are left to the caller.
"""

__version__ = "0.1.0"

from collections.abc import Iterator
from typing import Optional

from .calendar import (
    Component,
    ComponentKind,
    Diagnostic,
    DiagnosticKind,
    ICalParser,
    ParseResult,
    Property,
    parse_calendar,
    serialize_component,
)
from .core.settings import ParserSettings, load_settings
from .exceptions import (
    ICalError,
    InvalidValueError,
    MalformedInputError,
    MalformedLineError,
    UnbalancedNestingError,
)
from .rows import CalendarRow, Classification, Status, project_rows


def parse_rows(
    source,
    strict: Optional[bool] = None,
    settings: Optional[ParserSettings] = None,
) -> tuple[list[CalendarRow], list[Diagnostic]]:
    """Parse iCalendar input straight to rows.

    Returns:
        (rows, diagnostics)
    """
    result = parse_calendar(source, strict=strict, settings=settings)
    return list(project_rows(result.calendar)), result.diagnostics


def iter_rows(source, strict: Optional[bool] = None) -> Iterator[CalendarRow]:
    """Parse iCalendar input and yield its rows."""
    yield from project_rows(parse_calendar(source, strict=strict).calendar)


__all__ = [
    "CalendarRow",
    "Classification",
    "Component",
    "ComponentKind",
    "Diagnostic",
    "DiagnosticKind",
    "ICalError",
    "ICalParser",
    "InvalidValueError",
    "MalformedInputError",
    "MalformedLineError",
    "ParseResult",
    "ParserSettings",
    "Property",
    "Status",
    "UnbalancedNestingError",
    "iter_rows",
    "load_settings",
    "parse_calendar",
    "parse_rows",
    "project_rows",
    "serialize_component",
]
