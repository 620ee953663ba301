"""Row projection of a parsed calendar.

Flattens the component tree into one row per calendar item (VEVENT, VTODO,
VJOURNAL, VFREEBUSY). Well-known properties get dedicated columns; everything
else lands in the ``extra`` catch-all, as do repeats of properties that have
a single-valued column. VALARM children and the VTIMEZONE definitions a row
refers to travel with the row as structured sub-values.

The number of columns may grow over time. Consumers should select columns by
name rather than by position.
"""

import logging
from collections.abc import Iterator
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from .calendar.model import Component, ComponentKind, Property
from .calendar.parser import iter_components
from .calendar.values import (
    DateTimeValue,
    IntegerValue,
    ListValue,
    PeriodValue,
    TextListValue,
    TextValue,
    Value,
)

logger = logging.getLogger(__name__)

ROW_KINDS = (
    ComponentKind.VEVENT,
    ComponentKind.VTODO,
    ComponentKind.VJOURNAL,
    ComponentKind.VFREEBUSY,
)

# Column name -> property name, single-valued columns
SCALAR_COLUMNS: dict[str, str] = {
    "uid": "UID",
    "dtstart": "DTSTART",
    "dtend": "DTEND",
    "due": "DUE",
    "duration": "DURATION",
    "summary": "SUMMARY",
    "description": "DESCRIPTION",
    "location": "LOCATION",
    "status": "STATUS",
    "classification": "CLASS",
    "transp": "TRANSP",
    "url": "URL",
    "organizer": "ORGANIZER",
    "geo": "GEO",
    "priority": "PRIORITY",
    "percent_complete": "PERCENT-COMPLETE",
    "sequence": "SEQUENCE",
    "created": "CREATED",
    "dtstamp": "DTSTAMP",
    "last_modified": "LAST-MODIFIED",
    "completed": "COMPLETED",
    "recurrence_id": "RECURRENCE-ID",
    "rrule": "RRULE",
}

# Column name -> property name, one entry per property occurrence
SEQUENCE_COLUMNS: dict[str, str] = {
    "comments": "COMMENT",
    "attachments": "ATTACH",
    "attendees": "ATTENDEE",
    "contacts": "CONTACT",
    "exdates": "EXDATE",
    "rdates": "RDATE",
    "freebusy": "FREEBUSY",
}

# Column name -> property name, TEXT list items flattened across occurrences
TEXT_LIST_COLUMNS: dict[str, str] = {
    "categories": "CATEGORIES",
    "resources": "RESOURCES",
}

_SCALAR_PROPERTIES = frozenset(SCALAR_COLUMNS.values())

PROMOTED_PROPERTIES = frozenset(
    [*SCALAR_COLUMNS.values(), *SEQUENCE_COLUMNS.values(), *TEXT_LIST_COLUMNS.values()]
)


class Status(str, Enum):
    """STATUS values defined for VEVENT, VTODO and VJOURNAL."""

    TENTATIVE = "TENTATIVE"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    NEEDS_ACTION = "NEEDS-ACTION"
    COMPLETED = "COMPLETED"
    IN_PROCESS = "IN-PROCESS"
    DRAFT = "DRAFT"
    FINAL = "FINAL"


class Classification(str, Enum):
    """CLASS values; vendor classes have no member."""

    PUBLIC = "PUBLIC"
    PRIVATE = "PRIVATE"
    CONFIDENTIAL = "CONFIDENTIAL"


class CalendarRow(BaseModel):
    """One calendar item flattened for relational consumption."""

    component_type: ComponentKind

    uid: Optional[Value] = None
    dtstart: Optional[Value] = None
    dtend: Optional[Value] = None
    due: Optional[Value] = None
    duration: Optional[Value] = None
    summary: Optional[Value] = None
    description: Optional[Value] = None
    location: Optional[Value] = None
    status: Optional[Value] = None
    classification: Optional[Value] = None
    transp: Optional[Value] = None
    url: Optional[Value] = None
    organizer: Optional[Value] = None
    geo: Optional[Value] = None
    priority: Optional[Value] = None
    percent_complete: Optional[Value] = None
    sequence: Optional[Value] = None
    created: Optional[Value] = None
    dtstamp: Optional[Value] = None
    last_modified: Optional[Value] = None
    completed: Optional[Value] = None
    recurrence_id: Optional[Value] = None
    rrule: Optional[Value] = None

    # Derived from STATUS, CLASS and SEQUENCE
    status_code: Optional[Status] = None
    class_code: Optional[Classification] = None
    sequence_number: int = 0

    categories: tuple[str, ...] = ()
    resources: tuple[str, ...] = ()
    comments: tuple[Value, ...] = ()
    attachments: tuple[Value, ...] = ()
    attendees: tuple[Value, ...] = ()
    contacts: tuple[Value, ...] = ()
    exdates: tuple[Value, ...] = ()
    rdates: tuple[Value, ...] = ()
    freebusy: tuple[Value, ...] = ()

    # Calendar-level properties, repeated on every row
    calendar_prodid: Optional[str] = None
    calendar_version: Optional[str] = None
    calendar_method: Optional[str] = None
    calendar_name: Optional[str] = None
    calendar_timezone: Optional[str] = None

    alarms: tuple[Component, ...] = ()
    timezones: tuple[Component, ...] = ()
    unknown_components: tuple[Component, ...] = ()
    extra: dict[str, tuple[Property, ...]] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    def as_record(self) -> dict[str, Any]:
        """Return the JSON-compatible mapping handed to the relational layer."""
        return self.model_dump(mode="json")


def _text(component: Component, name: str) -> Optional[str]:
    value = component.value(name)
    return value.text if isinstance(value, TextValue) else None


def _code(component: Component, name: str, enum: type[Enum]) -> Optional[Any]:
    text = _text(component, name)
    if text is None:
        return None
    try:
        return enum(text.strip().upper())
    except ValueError:
        return None


def _sequence_number(component: Component) -> int:
    value = component.value("SEQUENCE")
    return value.value if isinstance(value, IntegerValue) else 0


def _text_items(component: Component, name: str) -> tuple[str, ...]:
    items: list[str] = []
    for prop in component.get_all(name):
        if isinstance(prop.value, TextListValue):
            items.extend(prop.value.items)
        elif isinstance(prop.value, TextValue):
            items.append(prop.value.text)
    return tuple(items)


def _referenced_tzids(component: Component) -> set[str]:
    tzids: set[str] = set()
    for props in component.properties.values():
        for prop in props:
            tzid = prop.get_parameter("TZID")
            if tzid:
                tzids.add(tzid)
            tzids.update(_value_tzids(prop.value))
    return tzids


def _value_tzids(value: Value) -> set[str]:
    if isinstance(value, DateTimeValue):
        return {value.tzid} if value.tzid else set()
    if isinstance(value, PeriodValue):
        return _value_tzids(value.start)
    if isinstance(value, ListValue):
        found: set[str] = set()
        for item in value.items:
            found |= _value_tzids(item)
        return found
    return set()


def _timezone_index(calendar: Component) -> dict[str, Component]:
    index: dict[str, Component] = {}
    for timezone in calendar.components(ComponentKind.VTIMEZONE):
        tzid = _text(timezone, "TZID")
        if tzid and tzid not in index:
            index[tzid] = timezone
    return index


def _extra(component: Component) -> dict[str, tuple[Property, ...]]:
    extra: dict[str, tuple[Property, ...]] = {}
    for name, props in component.properties.items():
        if name not in PROMOTED_PROPERTIES:
            extra[name] = props
        elif name in _SCALAR_PROPERTIES and len(props) > 1:
            # A scalar column holds the first occurrence only
            extra[name] = props[1:]
    return extra


def project_row(
    component: Component,
    calendar: Optional[Component] = None,
    timezones: Optional[dict[str, Component]] = None,
) -> CalendarRow:
    """Flatten one calendar item into a row.

    Args:
        component: VEVENT, VTODO, VJOURNAL or VFREEBUSY component
        calendar: Enclosing VCALENDAR for calendar-level columns
        timezones: TZID -> VTIMEZONE index of the calendar
    """
    columns: dict[str, Any] = {"component_type": component.kind}

    for column, prop_name in SCALAR_COLUMNS.items():
        columns[column] = component.value(prop_name)
    columns["status_code"] = _code(component, "STATUS", Status)
    columns["class_code"] = _code(component, "CLASS", Classification)
    columns["sequence_number"] = _sequence_number(component)
    for column, prop_name in SEQUENCE_COLUMNS.items():
        columns[column] = tuple(prop.value for prop in component.get_all(prop_name))
    for column, prop_name in TEXT_LIST_COLUMNS.items():
        columns[column] = _text_items(component, prop_name)

    if calendar is not None:
        columns["calendar_prodid"] = _text(calendar, "PRODID")
        columns["calendar_version"] = _text(calendar, "VERSION")
        columns["calendar_method"] = _text(calendar, "METHOD")
        columns["calendar_name"] = _text(calendar, "X-WR-CALNAME")
        columns["calendar_timezone"] = _text(calendar, "X-WR-TIMEZONE")

    if timezones:
        referenced = _referenced_tzids(component)
        columns["timezones"] = tuple(
            timezones[tzid] for tzid in sorted(referenced) if tzid in timezones
        )

    columns["alarms"] = tuple(component.components(ComponentKind.VALARM))
    columns["unknown_components"] = tuple(component.components(ComponentKind.UNKNOWN))
    columns["extra"] = _extra(component)
    return CalendarRow(**columns)


def project_rows(calendar: Component) -> Iterator[CalendarRow]:
    """Yield one row per calendar item in the tree, in document order."""
    timezones = _timezone_index(calendar)
    count = 0
    for component in iter_components(calendar, *ROW_KINDS):
        count += 1
        yield project_row(component, calendar=calendar, timezones=timezones)
    logger.debug("Projected %d rows", count)
