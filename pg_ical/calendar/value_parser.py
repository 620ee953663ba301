"""Value interpretation for iCalendar properties.

Resolves the value type of a property (explicit ``VALUE`` parameter first,
then the property's default type, then TEXT) and converts the raw value
string into one of the typed models in :mod:`pg_ical.calendar.values`.
"""

import base64
import binascii
import datetime
import logging
import re
from collections.abc import Callable, Mapping, Sequence
from typing import NamedTuple, Optional

from pydantic import ValidationError

from ..exceptions import InvalidValueError
from .values import (
    BinaryValue,
    BooleanValue,
    CalAddressValue,
    DateTimeValue,
    DateValue,
    DurationValue,
    FloatValue,
    Frequency,
    GeoValue,
    IntegerValue,
    ListValue,
    PeriodValue,
    RecurrenceRuleValue,
    TextListValue,
    TextValue,
    TimeForm,
    UnknownValue,
    UriValue,
    UtcOffsetValue,
    Value,
    ValueType,
    Weekday,
    WeekdayNum,
)

logger = logging.getLogger(__name__)

Parameters = Mapping[str, Sequence[str]]


class PropertyType(NamedTuple):
    """Default value type of a property.

    ``multi`` marks properties whose value is a comma-separated list of
    values of that type. ``date_or_time`` marks DATE-TIME properties that
    fall back to DATE when the value has no time part.
    """

    value_type: ValueType
    multi: bool = False
    date_or_time: bool = False


_TEXT = PropertyType(ValueType.TEXT)
_TEXT_LIST = PropertyType(ValueType.TEXT, multi=True)
_INTEGER = PropertyType(ValueType.INTEGER)
_URI = PropertyType(ValueType.URI)
_CAL_ADDRESS = PropertyType(ValueType.CAL_ADDRESS)
_DATE_TIME = PropertyType(ValueType.DATE_TIME)
_DATE_OR_TIME = PropertyType(ValueType.DATE_TIME, date_or_time=True)
_DATE_OR_TIME_LIST = PropertyType(ValueType.DATE_TIME, multi=True, date_or_time=True)
_DURATION = PropertyType(ValueType.DURATION)
_UTC_OFFSET = PropertyType(ValueType.UTC_OFFSET)

# Default value types per property name (RFC 5545 section 3.8, RFC 7986)
PROPERTY_TYPES: dict[str, PropertyType] = {
    # Calendar properties
    "CALSCALE": _TEXT,
    "METHOD": _TEXT,
    "PRODID": _TEXT,
    "VERSION": _TEXT,
    # Descriptive
    "ATTACH": _URI,
    "CATEGORIES": _TEXT_LIST,
    "CLASS": _TEXT,
    "COMMENT": _TEXT,
    "DESCRIPTION": _TEXT,
    "GEO": PropertyType(ValueType.GEO),
    "LOCATION": _TEXT,
    "PERCENT-COMPLETE": _INTEGER,
    "PRIORITY": _INTEGER,
    "RESOURCES": _TEXT_LIST,
    "STATUS": _TEXT,
    "SUMMARY": _TEXT,
    # Date and time
    "COMPLETED": _DATE_TIME,
    "DTEND": _DATE_OR_TIME,
    "DUE": _DATE_OR_TIME,
    "DTSTART": _DATE_OR_TIME,
    "DURATION": _DURATION,
    "FREEBUSY": PropertyType(ValueType.PERIOD, multi=True),
    "TRANSP": _TEXT,
    # Time zone
    "TZID": _TEXT,
    "TZNAME": _TEXT,
    "TZOFFSETFROM": _UTC_OFFSET,
    "TZOFFSETTO": _UTC_OFFSET,
    "TZURL": _URI,
    # Relationship
    "ATTENDEE": _CAL_ADDRESS,
    "CONTACT": _TEXT,
    "ORGANIZER": _CAL_ADDRESS,
    "RECURRENCE-ID": _DATE_OR_TIME,
    "RELATED-TO": _TEXT,
    "URL": _URI,
    "UID": _TEXT,
    # Recurrence
    "EXDATE": _DATE_OR_TIME_LIST,
    "EXRULE": PropertyType(ValueType.RECUR),
    "RDATE": _DATE_OR_TIME_LIST,
    "RRULE": PropertyType(ValueType.RECUR),
    # Alarm
    "ACTION": _TEXT,
    "REPEAT": _INTEGER,
    "TRIGGER": _DURATION,
    # Change management
    "CREATED": _DATE_TIME,
    "DTSTAMP": _DATE_TIME,
    "LAST-MODIFIED": _DATE_TIME,
    "SEQUENCE": _INTEGER,
    # Miscellaneous
    "REQUEST-STATUS": _TEXT,
    # RFC 7986
    "NAME": _TEXT,
    "REFRESH-INTERVAL": _DURATION,
    "SOURCE": _URI,
    "COLOR": _TEXT,
    "IMAGE": _URI,
    "CONFERENCE": _URI,
}

_RE_DATE = re.compile(r"(\d{4})(\d{2})(\d{2})")
_RE_DATE_TIME = re.compile(r"(\d{4})(\d{2})(\d{2})T(\d{2})(\d{2})(\d{2})(Z?)")
_RE_DURATION = re.compile(
    r"([+-])?P(?:(\d+)W)?(?:(\d+)D)?(?:T(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?)?"
)
_RE_UTC_OFFSET = re.compile(r"([+-])(\d{2})(\d{2})(\d{2})?")
_RE_INTEGER = re.compile(r"[+-]?\d+")
_RE_FLOAT = re.compile(r"[+-]?\d+(?:\.\d+)?")
_RE_WEEKDAY_NUM = re.compile(r"([+-]?\d{1,2})?([A-Za-z]{2})")

_TEXT_ESCAPES = {"\\": "\\", ";": ";", ",": ",", "n": "\n", "N": "\n"}


def resolve_type(name: str, parameters: Parameters, raw_value: str) -> tuple[str, bool]:
    """Resolve the value type name of a property.

    Returns:
        (value type name, multi-valued flag)
    """
    prop_type = PROPERTY_TYPES.get(name.upper(), _TEXT)
    explicit = _last(parameters, "VALUE")
    if explicit:
        return explicit.upper(), prop_type.multi

    value_type = prop_type.value_type.value
    if prop_type.date_or_time:
        first = raw_value.split(",", 1)[0]
        if "T" not in first.upper():
            value_type = ValueType.DATE.value
    elif name.upper() == "ATTACH" and (_last(parameters, "ENCODING") or "").upper() == "BASE64":
        value_type = ValueType.BINARY.value
    return value_type, prop_type.multi


def interpret_value(name: str, parameters: Parameters, raw_value: str) -> Value:
    """Convert a raw property value into a typed value.

    Args:
        name: Property name (any case)
        parameters: Parameter mapping with upper-cased names
        raw_value: Value text exactly as it appeared after the ':'

    Returns:
        A typed value; UnknownValue for unrecognized value types

    Raises:
        InvalidValueError: If the value does not match its resolved type
    """
    value_type, multi = resolve_type(name, parameters, raw_value)
    parser = _PARSERS.get(value_type)
    if parser is None:
        logger.debug("Unrecognized value type %s on %s, keeping raw text", value_type, name)
        return UnknownValue(text=raw_value, value_type=value_type)

    try:
        if value_type == ValueType.TEXT.value and multi:
            return TextListValue(items=tuple(split_text_list(raw_value)))
        if multi and value_type in _LIST_TYPES:
            items = tuple(parser(piece, parameters) for piece in raw_value.split(","))
            return ListValue(items=items)
        return parser(raw_value, parameters)
    except InvalidValueError as e:
        e.property_name = name.upper()
        e.value_type = value_type
        raise
    except ValidationError as e:
        raise InvalidValueError(
            f"invalid {value_type} value {raw_value!r}: {e.errors()[0]['msg']}",
            property_name=name.upper(),
            value_type=value_type,
        ) from e


def salvage_value(name: str, parameters: Parameters, raw_value: str) -> UnknownValue:
    """Build the UnknownValue kept in place of a value that failed to parse.

    Recurrence rules keep whatever KEY=VALUE pairs can still be read.
    """
    value_type, _ = resolve_type(name, parameters, raw_value)
    salvaged = None
    if value_type == ValueType.RECUR.value:
        salvaged = tuple(_split_recur_pairs(raw_value))
    return UnknownValue(text=raw_value, value_type=value_type, salvaged_parts=salvaged)


# --- TEXT -----------------------------------------------------------------


def unescape_text(raw: str) -> str:
    """Resolve TEXT backslash escapes in a single left-to-right pass.

    Unknown escape sequences and a trailing lone backslash are kept verbatim.
    """
    if "\\" not in raw:
        return raw

    out: list[str] = []
    i = 0
    length = len(raw)
    while i < length:
        char = raw[i]
        if char == "\\" and i + 1 < length and raw[i + 1] in _TEXT_ESCAPES:
            out.append(_TEXT_ESCAPES[raw[i + 1]])
            i += 2
            continue
        out.append(char)
        i += 1
    return "".join(out)


def split_text_list(raw: str) -> list[str]:
    """Split a TEXT list on unescaped commas and unescape each item."""
    items: list[str] = []
    start = 0
    i = 0
    length = len(raw)
    while i < length:
        char = raw[i]
        if char == "\\":
            i += 2
            continue
        if char == ",":
            items.append(unescape_text(raw[start:i]))
            start = i + 1
        i += 1
    items.append(unescape_text(raw[start:]))
    return items


def _parse_text(raw: str, parameters: Parameters) -> TextValue:
    return TextValue(text=unescape_text(raw))


# --- Numbers and simple scalars -------------------------------------------


def _parse_integer(raw: str, parameters: Parameters) -> IntegerValue:
    text = raw.strip()
    if not _RE_INTEGER.fullmatch(text):
        raise InvalidValueError(f"invalid INTEGER value {raw!r}")
    return IntegerValue(value=int(text))


def _parse_float(raw: str, parameters: Parameters) -> FloatValue:
    return FloatValue(value=_float(raw))


def _float(raw: str) -> float:
    text = raw.strip()
    if not _RE_FLOAT.fullmatch(text):
        raise InvalidValueError(f"invalid FLOAT value {raw!r}")
    return float(text)


def _parse_geo(raw: str, parameters: Parameters) -> GeoValue:
    parts = raw.split(";")
    if len(parts) != 2:
        raise InvalidValueError(f"GEO needs 'latitude;longitude', got {raw!r}")
    latitude, longitude = _float(parts[0]), _float(parts[1])
    if not -90.0 <= latitude <= 90.0 or not -180.0 <= longitude <= 180.0:
        raise InvalidValueError(f"GEO coordinates out of range: {raw!r}")
    return GeoValue(latitude=latitude, longitude=longitude)


def _parse_boolean(raw: str, parameters: Parameters) -> BooleanValue:
    text = raw.strip().upper()
    if text == "TRUE":
        return BooleanValue(value=True)
    if text == "FALSE":
        return BooleanValue(value=False)
    raise InvalidValueError(f"invalid BOOLEAN value {raw!r}")


def _parse_uri(raw: str, parameters: Parameters) -> UriValue:
    if not raw.strip():
        raise InvalidValueError("empty URI value")
    return UriValue(uri=raw)


def _parse_cal_address(raw: str, parameters: Parameters) -> CalAddressValue:
    if not raw.strip():
        raise InvalidValueError("empty CAL-ADDRESS value")
    return CalAddressValue(uri=raw)


def _parse_binary(raw: str, parameters: Parameters) -> BinaryValue:
    encoding = (_last(parameters, "ENCODING") or "").upper()
    if encoding != "BASE64":
        raise InvalidValueError(f"BINARY value requires ENCODING=BASE64, got {encoding or 'none'}")
    try:
        data = base64.b64decode(raw.strip(), validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidValueError(f"invalid base64 data: {e}") from e
    return BinaryValue(data=data, encoding=encoding)


def _parse_utc_offset(raw: str, parameters: Parameters) -> UtcOffsetValue:
    match = _RE_UTC_OFFSET.fullmatch(raw.strip())
    if not match:
        raise InvalidValueError(f"invalid UTC-OFFSET value {raw!r}")
    sign, hours, minutes, seconds = match.groups()
    if int(minutes) > 59 or int(seconds or 0) > 59:
        raise InvalidValueError(f"invalid UTC-OFFSET value {raw!r}")
    total = int(hours) * 3600 + int(minutes) * 60 + int(seconds or 0)
    return UtcOffsetValue(seconds=-total if sign == "-" else total)


# --- Dates, times, durations, periods -------------------------------------


def parse_date(raw: str) -> datetime.date:
    match = _RE_DATE.fullmatch(raw.strip())
    if not match:
        raise InvalidValueError(f"invalid DATE value {raw!r}")
    year, month, day = (int(part) for part in match.groups())
    try:
        return datetime.date(year, month, day)
    except ValueError as e:
        raise InvalidValueError(f"invalid DATE value {raw!r}: {e}") from e


def parse_date_time(raw: str, tzid: Optional[str] = None) -> DateTimeValue:
    """Parse a DATE-TIME, keeping its floating, UTC or zoned form."""
    match = _RE_DATE_TIME.fullmatch(raw.strip())
    if not match:
        raise InvalidValueError(f"invalid DATE-TIME value {raw!r}")
    *parts, utc_marker = match.groups()
    try:
        value = datetime.datetime(*(int(part) for part in parts))
    except ValueError as e:
        raise InvalidValueError(f"invalid DATE-TIME value {raw!r}: {e}") from e

    if utc_marker:
        if tzid:
            raise InvalidValueError(f"UTC DATE-TIME {raw!r} cannot also carry TZID={tzid}")
        return DateTimeValue(value=value, form=TimeForm.UTC)
    if tzid:
        return DateTimeValue(value=value, form=TimeForm.ZONED, tzid=tzid)
    return DateTimeValue(value=value, form=TimeForm.FLOATING)


def parse_duration(raw: str) -> DurationValue:
    text = raw.strip()
    match = _RE_DURATION.fullmatch(text)
    if not match or not any(match.groups()[1:]) or text.endswith("T"):
        raise InvalidValueError(f"invalid DURATION value {raw!r}")
    sign, weeks, days, hours, minutes, seconds = match.groups()
    return DurationValue(
        negative=sign == "-",
        weeks=int(weeks or 0),
        days=int(days or 0),
        hours=int(hours or 0),
        minutes=int(minutes or 0),
        seconds=int(seconds or 0),
    )


def _parse_date(raw: str, parameters: Parameters) -> DateValue:
    return DateValue(date=parse_date(raw))


def _parse_date_time(raw: str, parameters: Parameters) -> DateTimeValue:
    return parse_date_time(raw, _last(parameters, "TZID"))


def _parse_duration(raw: str, parameters: Parameters) -> DurationValue:
    return parse_duration(raw)


def _parse_period(raw: str, parameters: Parameters) -> PeriodValue:
    start_text, sep, end_text = raw.partition("/")
    if not sep:
        raise InvalidValueError(f"PERIOD needs 'start/end' or 'start/duration', got {raw!r}")
    tzid = _last(parameters, "TZID")
    start = parse_date_time(start_text, tzid)
    if end_text.lstrip("+-").startswith("P"):
        return PeriodValue(start=start, duration=parse_duration(end_text))
    return PeriodValue(start=start, end=parse_date_time(end_text, tzid))


# --- RECUR ----------------------------------------------------------------

_BY_RANGES: dict[str, tuple[str, int, int, bool]] = {
    # key: (field, min, max, signed)
    "BYSECOND": ("by_second", 0, 60, False),
    "BYMINUTE": ("by_minute", 0, 59, False),
    "BYHOUR": ("by_hour", 0, 23, False),
    "BYMONTHDAY": ("by_month_day", 1, 31, True),
    "BYYEARDAY": ("by_year_day", 1, 366, True),
    "BYWEEKNO": ("by_week_no", 1, 53, True),
    "BYMONTH": ("by_month", 1, 12, False),
    "BYSETPOS": ("by_set_pos", 1, 366, True),
}


def _split_recur_pairs(raw: str) -> list[tuple[str, str]]:
    pairs = []
    for part in raw.split(";"):
        key, sep, value = part.partition("=")
        if sep and key.strip():
            pairs.append((key.strip().upper(), value.strip()))
    return pairs


def _int_list(key: str, value: str, low: int, high: int, signed: bool) -> tuple[int, ...]:
    numbers = []
    for item in value.split(","):
        item = item.strip()
        if not _RE_INTEGER.fullmatch(item):
            raise InvalidValueError(f"{key} expects integers, got {item!r}")
        number = int(item)
        magnitude = abs(number) if signed else number
        if (item.startswith("-") and not signed) or not low <= magnitude <= high:
            raise InvalidValueError(f"{key} value {number} out of range")
        numbers.append(number)
    return tuple(numbers)


def _weekday(key: str, text: str) -> Weekday:
    try:
        return Weekday(text.upper())
    except ValueError:
        raise InvalidValueError(f"{key} has unknown weekday {text!r}") from None


def parse_weekday_num(text: str) -> WeekdayNum:
    """Parse a BYDAY entry such as ``MO``, ``2TU`` or ``-1FR``."""
    match = _RE_WEEKDAY_NUM.fullmatch(text.strip())
    if not match:
        raise InvalidValueError(f"invalid BYDAY entry {text!r}")
    ordinal_text, day = match.groups()
    ordinal = int(ordinal_text) if ordinal_text else None
    if ordinal is not None and not 1 <= abs(ordinal) <= 53:
        raise InvalidValueError(f"BYDAY ordinal out of range in {text!r}")
    return WeekdayNum(ordinal=ordinal, weekday=_weekday("BYDAY", day))


def parse_recurrence_rule(raw: str) -> RecurrenceRuleValue:
    """Parse an RRULE/EXRULE value into a structured rule.

    Raises:
        InvalidValueError: On a missing FREQ, both UNTIL and COUNT, duplicate
            or unknown keys, or malformed parts
    """
    fields: dict = {}
    seen: set[str] = set()

    for part in raw.strip().split(";"):
        if not part:
            continue
        key, sep, value = part.partition("=")
        key = key.strip().upper()
        if not sep or not key:
            raise InvalidValueError(f"recurrence rule part {part!r} is not KEY=VALUE")
        if key in seen:
            raise InvalidValueError(f"duplicate {key} in recurrence rule")
        seen.add(key)
        value = value.strip()

        if key == "FREQ":
            try:
                fields["freq"] = Frequency(value.upper())
            except ValueError:
                raise InvalidValueError(f"unknown FREQ {value!r}") from None
        elif key == "UNTIL":
            if "T" in value.upper():
                fields["until"] = parse_date_time(value)
            else:
                fields["until"] = DateValue(date=parse_date(value))
        elif key in ("COUNT", "INTERVAL"):
            if not value.isdigit() or int(value) < 1:
                raise InvalidValueError(f"{key} must be a positive integer, got {value!r}")
            fields[key.lower()] = int(value)
        elif key == "BYDAY":
            fields["by_day"] = tuple(parse_weekday_num(item) for item in value.split(","))
        elif key == "WKST":
            fields["wkst"] = _weekday(key, value)
        elif key in _BY_RANGES:
            field_name, low, high, signed = _BY_RANGES[key]
            fields[field_name] = _int_list(key, value, low, high, signed)
        else:
            raise InvalidValueError(f"unknown recurrence rule part {key}")

    if "freq" not in fields:
        raise InvalidValueError("recurrence rule without FREQ")
    if "until" in fields and "count" in fields:
        raise InvalidValueError("recurrence rule has both UNTIL and COUNT")
    return RecurrenceRuleValue(**fields)


def _parse_recur(raw: str, parameters: Parameters) -> RecurrenceRuleValue:
    return parse_recurrence_rule(raw)


# --- Dispatch -------------------------------------------------------------


def _last(parameters: Parameters, name: str) -> Optional[str]:
    values = parameters.get(name)
    return values[-1] if values else None


_PARSERS: dict[str, Callable[[str, Parameters], Value]] = {
    ValueType.BINARY.value: _parse_binary,
    ValueType.BOOLEAN.value: _parse_boolean,
    ValueType.CAL_ADDRESS.value: _parse_cal_address,
    ValueType.DATE.value: _parse_date,
    ValueType.DATE_TIME.value: _parse_date_time,
    ValueType.DURATION.value: _parse_duration,
    ValueType.FLOAT.value: _parse_float,
    ValueType.INTEGER.value: _parse_integer,
    ValueType.PERIOD.value: _parse_period,
    ValueType.RECUR.value: _parse_recur,
    ValueType.TEXT.value: _parse_text,
    ValueType.URI.value: _parse_uri,
    ValueType.UTC_OFFSET.value: _parse_utc_offset,
    ValueType.GEO.value: _parse_geo,
}

# Types that may appear as items of a multi-valued property
_LIST_TYPES = frozenset(
    {ValueType.DATE.value, ValueType.DATE_TIME.value, ValueType.PERIOD.value}
)
