"""Render a component tree back to RFC 5545 text."""

import base64
import re
from collections.abc import Mapping, Sequence
from decimal import Decimal

from .model import Component, Property
from .values import (
    BinaryValue,
    BooleanValue,
    CalAddressValue,
    DateTimeValue,
    DateValue,
    DurationValue,
    FloatValue,
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
    WeekdayNum,
)

CRLF = "\r\n"
FOLD_OCTETS = 75
_UNSAFE_PARAM_RE = re.compile(r"[,:;]")


def escape_text(text: str) -> str:
    return (
        text.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
    )


def format_date(value: DateValue) -> str:
    day = value.date
    return f"{day.year:04d}{day.month:02d}{day.day:02d}"


def format_date_time(value: DateTimeValue) -> str:
    moment = value.value
    text = (
        f"{moment.year:04d}{moment.month:02d}{moment.day:02d}"
        f"T{moment.hour:02d}{moment.minute:02d}{moment.second:02d}"
    )
    return text + "Z" if value.form == TimeForm.UTC else text


def format_duration(value: DurationValue) -> str:
    out = "-P" if value.negative else "P"
    if value.weeks:
        out += f"{value.weeks}W"
    if value.days:
        out += f"{value.days}D"
    if value.hours or value.minutes or value.seconds:
        out += "T"
        if value.hours:
            out += f"{value.hours}H"
        if value.minutes:
            out += f"{value.minutes}M"
        if value.seconds:
            out += f"{value.seconds}S"
    if out.endswith("P"):
        out += "T0S"
    return out


def format_utc_offset(value: UtcOffsetValue) -> str:
    sign = "-" if value.seconds < 0 else "+"
    total = abs(value.seconds)
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    out = f"{sign}{hours:02d}{minutes:02d}"
    return out + f"{seconds:02d}" if seconds else out


def format_float(number: float) -> str:
    """Fixed-point text for a float, never exponent notation."""
    return format(Decimal(repr(number)), "f")


def _format_weekday_num(entry: WeekdayNum) -> str:
    prefix = "" if entry.ordinal is None else str(entry.ordinal)
    return prefix + entry.weekday.value


def format_recurrence_rule(rule: RecurrenceRuleValue) -> str:
    parts = [f"FREQ={rule.freq.value}"]
    if rule.until is not None:
        until = rule.until
        parts.append(
            "UNTIL=" + (format_date(until) if isinstance(until, DateValue) else format_date_time(until))
        )
    if rule.count is not None:
        parts.append(f"COUNT={rule.count}")
    if rule.interval is not None:
        parts.append(f"INTERVAL={rule.interval}")
    for key, numbers in (
        ("BYSECOND", rule.by_second),
        ("BYMINUTE", rule.by_minute),
        ("BYHOUR", rule.by_hour),
    ):
        if numbers:
            parts.append(f"{key}={','.join(str(n) for n in numbers)}")
    if rule.by_day:
        parts.append("BYDAY=" + ",".join(_format_weekday_num(entry) for entry in rule.by_day))
    for key, numbers in (
        ("BYMONTHDAY", rule.by_month_day),
        ("BYYEARDAY", rule.by_year_day),
        ("BYWEEKNO", rule.by_week_no),
        ("BYMONTH", rule.by_month),
        ("BYSETPOS", rule.by_set_pos),
    ):
        if numbers:
            parts.append(f"{key}={','.join(str(n) for n in numbers)}")
    if rule.wkst is not None:
        parts.append(f"WKST={rule.wkst.value}")
    return ";".join(parts)


def format_value(value: Value) -> str:
    """Render a typed value as the text after the ':' of a content line."""
    if isinstance(value, TextValue):
        return escape_text(value.text)
    if isinstance(value, TextListValue):
        return ",".join(escape_text(item) for item in value.items)
    if isinstance(value, IntegerValue):
        return str(value.value)
    if isinstance(value, FloatValue):
        return format_float(value.value)
    if isinstance(value, GeoValue):
        return f"{format_float(value.latitude)};{format_float(value.longitude)}"
    if isinstance(value, BooleanValue):
        return "TRUE" if value.value else "FALSE"
    if isinstance(value, (CalAddressValue, UriValue)):
        return value.uri
    if isinstance(value, DateValue):
        return format_date(value)
    if isinstance(value, DateTimeValue):
        return format_date_time(value)
    if isinstance(value, DurationValue):
        return format_duration(value)
    if isinstance(value, PeriodValue):
        start = format_date_time(value.start)
        if value.end is not None:
            return f"{start}/{format_date_time(value.end)}"
        return f"{start}/{format_duration(value.duration)}"  # type: ignore[arg-type]
    if isinstance(value, RecurrenceRuleValue):
        return format_recurrence_rule(value)
    if isinstance(value, UtcOffsetValue):
        return format_utc_offset(value)
    if isinstance(value, BinaryValue):
        return base64.b64encode(value.data).decode("ascii")
    if isinstance(value, ListValue):
        return ",".join(format_value(item) for item in value.items)
    if isinstance(value, UnknownValue):
        return value.text
    raise TypeError(f"cannot serialize {type(value).__name__}")


def _format_parameters(parameters: Mapping[str, Sequence[str]]) -> str:
    out = []
    for name, values in parameters.items():
        rendered = [f'"{value}"' if _UNSAFE_PARAM_RE.search(value) else value for value in values]
        out.append(f";{name}={','.join(rendered)}")
    return "".join(out)


def format_property(prop: Property) -> str:
    """Render one property as an unfolded content line."""
    return f"{prop.name}{_format_parameters(prop.parameters)}:{format_value(prop.value)}"


def fold_line(line: str, limit: int = FOLD_OCTETS) -> str:
    """Fold a content line at ``limit`` octets without splitting a character.

    Continuation lines start with a single space, which counts toward the
    limit.
    """
    if len(line.encode("utf-8")) <= limit:
        return line

    pieces = []
    current = ""
    current_size = 0
    budget = limit
    for char in line:
        size = len(char.encode("utf-8"))
        if current_size + size > budget:
            pieces.append(current)
            current = ""
            current_size = 0
            budget = limit - 1
        current += char
        current_size += size
    pieces.append(current)
    return (CRLF + " ").join(pieces)


def serialize_component(component: Component) -> str:
    """Render a component and its descendants as CRLF-terminated text."""
    lines = [f"BEGIN:{component.name}"]
    for props in component.properties.values():
        lines.extend(fold_line(format_property(prop)) for prop in props)
    body = CRLF.join(lines) + CRLF
    for child in component.children:
        body += serialize_component(child)
    return body + f"END:{component.name}" + CRLF
