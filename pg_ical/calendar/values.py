"""Typed iCalendar property values.

Every interpreted property value is one of the frozen models below. They form
a closed union discriminated by the ``kind`` field, with ``UnknownValue`` as
the fallback for unrecognized value types and for values that failed to parse
in lenient mode.
"""

import datetime
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..core.timezone_utils import resolve_tzid
from ..exceptions import InvalidValueError


class ValueType(str, Enum):
    """RFC 5545 value type names, plus GEO for the float pair of GEO."""

    BINARY = "BINARY"
    BOOLEAN = "BOOLEAN"
    CAL_ADDRESS = "CAL-ADDRESS"
    DATE = "DATE"
    DATE_TIME = "DATE-TIME"
    DURATION = "DURATION"
    FLOAT = "FLOAT"
    INTEGER = "INTEGER"
    PERIOD = "PERIOD"
    RECUR = "RECUR"
    TEXT = "TEXT"
    URI = "URI"
    UTC_OFFSET = "UTC-OFFSET"
    GEO = "GEO"


class TimeForm(str, Enum):
    """How a DATE-TIME relates to a time zone."""

    FLOATING = "floating"
    UTC = "utc"
    ZONED = "zoned"


class Frequency(str, Enum):
    SECONDLY = "SECONDLY"
    MINUTELY = "MINUTELY"
    HOURLY = "HOURLY"
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"


class Weekday(str, Enum):
    SU = "SU"
    MO = "MO"
    TU = "TU"
    WE = "WE"
    TH = "TH"
    FR = "FR"
    SA = "SA"


class _FrozenValue(BaseModel):
    model_config = ConfigDict(frozen=True, ser_json_bytes="base64")


class TextValue(_FrozenValue):
    kind: Literal["text"] = "text"
    text: str


class TextListValue(_FrozenValue):
    kind: Literal["text_list"] = "text_list"
    items: tuple[str, ...] = ()


class IntegerValue(_FrozenValue):
    kind: Literal["integer"] = "integer"
    value: int


class FloatValue(_FrozenValue):
    kind: Literal["float"] = "float"
    value: float


class GeoValue(_FrozenValue):
    kind: Literal["geo"] = "geo"
    latitude: float
    longitude: float


class BooleanValue(_FrozenValue):
    kind: Literal["boolean"] = "boolean"
    value: bool


class CalAddressValue(_FrozenValue):
    kind: Literal["cal_address"] = "cal_address"
    uri: str


class UriValue(_FrozenValue):
    kind: Literal["uri"] = "uri"
    uri: str


class DateValue(_FrozenValue):
    kind: Literal["date"] = "date"
    date: datetime.date


class DateTimeValue(_FrozenValue):
    """A DATE-TIME in one of three mutually exclusive forms.

    ``value`` is always the naive wall-clock reading from the source text.
    A ZONED value carries its TZID reference verbatim; resolving it against a
    VTIMEZONE definition is left to the consumer.
    """

    kind: Literal["date_time"] = "date_time"
    value: datetime.datetime
    form: TimeForm = TimeForm.FLOATING
    tzid: Optional[str] = None

    @model_validator(mode="after")
    def _check_form(self) -> "DateTimeValue":
        if self.value.tzinfo is not None:
            raise ValueError("DateTimeValue holds a naive wall-clock datetime")
        if self.form == TimeForm.ZONED and not self.tzid:
            raise ValueError("zoned date-time requires a TZID")
        if self.form != TimeForm.ZONED and self.tzid is not None:
            raise ValueError(f"{self.form.value} date-time cannot carry a TZID")
        return self

    @property
    def is_utc(self) -> bool:
        return self.form == TimeForm.UTC

    @property
    def is_floating(self) -> bool:
        return self.form == TimeForm.FLOATING

    def to_datetime(self) -> datetime.datetime:
        """Return a Python datetime for this value.

        UTC values become aware in UTC, floating values stay naive, and zoned
        values are localized by resolving the TZID as an IANA or common
        Windows zone name.

        Raises:
            InvalidValueError: If a zoned value's TZID cannot be resolved
        """
        if self.form == TimeForm.UTC:
            return self.value.replace(tzinfo=datetime.timezone.utc)
        if self.form == TimeForm.FLOATING:
            return self.value
        zone = resolve_tzid(self.tzid or "")
        if zone is None:
            raise InvalidValueError(
                f"cannot resolve TZID {self.tzid!r}", value_type=ValueType.DATE_TIME.value
            )
        return self.value.replace(tzinfo=zone)


class DurationValue(_FrozenValue):
    kind: Literal["duration"] = "duration"
    negative: bool = False
    weeks: int = 0
    days: int = 0
    hours: int = 0
    minutes: int = 0
    seconds: int = 0

    def to_timedelta(self) -> datetime.timedelta:
        delta = datetime.timedelta(
            weeks=self.weeks,
            days=self.days,
            hours=self.hours,
            minutes=self.minutes,
            seconds=self.seconds,
        )
        return -delta if self.negative else delta


class PeriodValue(_FrozenValue):
    """A period given by start and either an end or a duration."""

    kind: Literal["period"] = "period"
    start: DateTimeValue
    end: Optional[DateTimeValue] = None
    duration: Optional[DurationValue] = None

    @model_validator(mode="after")
    def _check_bounds(self) -> "PeriodValue":
        if (self.end is None) == (self.duration is None):
            raise ValueError("period needs exactly one of end or duration")
        return self


class WeekdayNum(_FrozenValue):
    """A BYDAY entry such as ``MO`` or ``-1FR``."""

    ordinal: Optional[int] = None
    weekday: Weekday


class RecurrenceRuleValue(_FrozenValue):
    kind: Literal["recur"] = "recur"
    freq: Frequency
    interval: Optional[int] = None
    until: Optional[Annotated[Union[DateValue, DateTimeValue], Field(discriminator="kind")]] = None
    count: Optional[int] = None
    by_second: tuple[int, ...] = ()
    by_minute: tuple[int, ...] = ()
    by_hour: tuple[int, ...] = ()
    by_day: tuple[WeekdayNum, ...] = ()
    by_month_day: tuple[int, ...] = ()
    by_year_day: tuple[int, ...] = ()
    by_week_no: tuple[int, ...] = ()
    by_month: tuple[int, ...] = ()
    by_set_pos: tuple[int, ...] = ()
    wkst: Optional[Weekday] = None

    @model_validator(mode="after")
    def _check_terminator(self) -> "RecurrenceRuleValue":
        if self.until is not None and self.count is not None:
            raise ValueError("UNTIL and COUNT are mutually exclusive")
        return self


class UtcOffsetValue(_FrozenValue):
    kind: Literal["utc_offset"] = "utc_offset"
    seconds: int

    def to_timedelta(self) -> datetime.timedelta:
        return datetime.timedelta(seconds=self.seconds)


class BinaryValue(_FrozenValue):
    kind: Literal["binary"] = "binary"
    data: bytes
    encoding: str = "BASE64"


class UnknownValue(_FrozenValue):
    """Raw text kept for unrecognized value types and failed parses.

    ``salvaged_parts`` holds the KEY=VALUE pairs that could still be read
    from an invalid recurrence rule.
    """

    kind: Literal["unknown"] = "unknown"
    text: str
    value_type: Optional[str] = None
    salvaged_parts: Optional[tuple[tuple[str, str], ...]] = None


ListItem = Annotated[
    Union[DateValue, DateTimeValue, PeriodValue, UnknownValue],
    Field(discriminator="kind"),
]


class ListValue(_FrozenValue):
    """Values of a multi-valued property such as EXDATE, RDATE or FREEBUSY."""

    kind: Literal["list"] = "list"
    items: tuple[ListItem, ...] = ()


Value = Annotated[
    Union[
        TextValue,
        TextListValue,
        IntegerValue,
        FloatValue,
        GeoValue,
        BooleanValue,
        CalAddressValue,
        UriValue,
        DateValue,
        DateTimeValue,
        DurationValue,
        PeriodValue,
        RecurrenceRuleValue,
        UtcOffsetValue,
        BinaryValue,
        ListValue,
        UnknownValue,
    ],
    Field(discriminator="kind"),
]
