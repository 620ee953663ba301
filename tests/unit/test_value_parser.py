"""Unit tests for pg_ical.calendar.value_parser."""

import datetime

import pytest

from pg_ical.calendar.value_parser import (
    interpret_value,
    parse_duration,
    parse_recurrence_rule,
    parse_weekday_num,
    resolve_type,
    salvage_value,
    split_text_list,
    unescape_text,
)
from pg_ical.calendar.values import (
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
    Weekday,
    WeekdayNum,
)
from pg_ical.exceptions import InvalidValueError

pytestmark = pytest.mark.unit


class TestTypeResolution:
    """Tests for picking a property's value type."""

    def test_explicit_value_parameter_wins(self):
        assert resolve_type("DTSTART", {"VALUE": ["DATE"]}, "20240101T000000") == ("DATE", False)

    def test_default_type_from_table(self):
        assert resolve_type("PRIORITY", {}, "1") == ("INTEGER", False)

    def test_unknown_property_defaults_to_text(self):
        assert resolve_type("X-ANYTHING", {}, "1") == ("TEXT", False)

    def test_date_or_time_property_without_time_is_date(self):
        assert resolve_type("DTSTART", {}, "20240101") == ("DATE", False)
        assert resolve_type("EXDATE", {}, "20240101,20240102") == ("DATE", True)

    def test_attach_with_base64_is_binary(self):
        assert resolve_type("ATTACH", {"ENCODING": ["BASE64"]}, "aGk=") == ("BINARY", False)
        assert resolve_type("ATTACH", {}, "https://example.com/a.pdf") == ("URI", False)

    def test_unrecognized_value_type_kept_as_unknown(self):
        value = interpret_value("X-WHEN", {"VALUE": ["TIME"]}, "120000")

        assert value == UnknownValue(text="120000", value_type="TIME")


class TestTextValues:
    """Tests for TEXT unescaping and TEXT lists."""

    def test_escaped_text_decoded(self):
        value = interpret_value("SUMMARY", {}, "Foo\\,Bar\\;Baz\\\\Qux")

        assert value == TextValue(text="Foo,Bar;Baz\\Qux")

    def test_newline_escapes(self):
        assert unescape_text("a\\nb\\Nc") == "a\nb\nc"

    def test_single_pass_unescape(self):
        """An escaped backslash never starts another escape."""
        assert unescape_text("\\\\n") == "\\n"

    def test_unknown_escape_kept_verbatim(self):
        assert unescape_text("C:\\temp\\") == "C:\\temp\\"

    def test_text_list_splits_on_unescaped_commas(self):
        assert split_text_list("a,b\\,c,d") == ["a", "b,c", "d"]

    def test_categories_are_text_list(self):
        value = interpret_value("CATEGORIES", {}, "Work,Travel\\, abroad")

        assert value == TextListValue(items=("Work", "Travel, abroad"))

    def test_plain_text_keeps_commas_literal(self):
        """Only list properties split on commas."""
        assert interpret_value("SUMMARY", {}, "a,b") == TextValue(text="a,b")


class TestDateAndTime:
    """Tests for DATE, DATE-TIME and their three forms."""

    def test_utc_date_time(self):
        value = interpret_value("DTSTART", {}, "20240101T120000Z")

        assert value == DateTimeValue(value=datetime.datetime(2024, 1, 1, 12, 0, 0), form=TimeForm.UTC)
        assert value.is_utc

    def test_zoned_date_time(self):
        value = interpret_value("DTSTART", {"TZID": ["America/New_York"]}, "20240101T120000")

        assert value.form == TimeForm.ZONED
        assert value.tzid == "America/New_York"
        assert value.value == datetime.datetime(2024, 1, 1, 12, 0, 0)

    def test_floating_date_time(self):
        value = interpret_value("DTSTART", {}, "20240101T120000")

        assert value.form == TimeForm.FLOATING
        assert value.tzid is None
        assert value.is_floating

    def test_utc_with_tzid_is_invalid(self):
        with pytest.raises(InvalidValueError) as exc_info:
            interpret_value("DTSTART", {"TZID": ["Europe/Paris"]}, "20240101T120000Z")

        assert exc_info.value.property_name == "DTSTART"
        assert exc_info.value.value_type == "DATE-TIME"

    def test_date_value(self):
        assert interpret_value("DTSTART", {"VALUE": ["DATE"]}, "20240229") == DateValue(
            date=datetime.date(2024, 2, 29)
        )

    @pytest.mark.parametrize(
        "raw", ["2024-01-01T12:00:00", "20240230T120000", "20240101T250000", "20240101T1200"]
    )
    def test_invalid_date_times(self, raw):
        with pytest.raises(InvalidValueError):
            interpret_value("DTSTAMP", {}, raw)

    def test_invalid_date(self):
        with pytest.raises(InvalidValueError):
            interpret_value("DTSTART", {"VALUE": ["DATE"]}, "20241301")

    def test_exdate_list_with_tzid(self):
        value = interpret_value("EXDATE", {"TZID": ["Europe/Paris"]}, "20240115T093000,20240122T093000")

        assert isinstance(value, ListValue)
        assert [item.value.day for item in value.items] == [15, 22]
        assert all(item.tzid == "Europe/Paris" for item in value.items)

    def test_rdate_list_of_dates(self):
        value = interpret_value("RDATE", {}, "20240101,20240201")

        assert value == ListValue(
            items=(DateValue(date=datetime.date(2024, 1, 1)), DateValue(date=datetime.date(2024, 2, 1)))
        )

    def test_period_with_end_and_duration(self):
        value = interpret_value(
            "FREEBUSY", {}, "20240101T090000Z/20240101T100000Z,20240101T140000Z/PT30M"
        )

        first, second = value.items
        assert isinstance(first, PeriodValue)
        assert first.end.value == datetime.datetime(2024, 1, 1, 10, 0, 0)
        assert second.duration == DurationValue(minutes=30)

    def test_period_without_separator_is_invalid(self):
        with pytest.raises(InvalidValueError):
            interpret_value("FREEBUSY", {}, "20240101T090000Z")


class TestDurations:
    """Tests for DURATION parsing."""

    def test_full_duration(self):
        assert parse_duration("P1W2DT3H4M5S") == DurationValue(weeks=1, days=2, hours=3, minutes=4, seconds=5)

    def test_negative_duration(self):
        value = parse_duration("-PT15M")

        assert value.negative
        assert value.to_timedelta() == -datetime.timedelta(minutes=15)

    def test_trigger_default_type_is_duration(self):
        assert interpret_value("TRIGGER", {}, "-PT10M") == DurationValue(negative=True, minutes=10)

    @pytest.mark.parametrize("raw", ["P", "PT", "P1DT", "1D", "P1H", "PT1D"])
    def test_invalid_durations(self, raw):
        with pytest.raises(InvalidValueError):
            parse_duration(raw)


class TestScalars:
    """Tests for the remaining scalar types."""

    def test_integer(self):
        assert interpret_value("PRIORITY", {}, "5") == IntegerValue(value=5)

    def test_invalid_integer(self):
        with pytest.raises(InvalidValueError):
            interpret_value("SEQUENCE", {}, "two")

    def test_float(self):
        assert interpret_value("X-RATIO", {"VALUE": ["FLOAT"]}, "-1.5") == FloatValue(value=-1.5)

    def test_boolean(self):
        assert interpret_value("X-FLAG", {"VALUE": ["BOOLEAN"]}, "true") == BooleanValue(value=True)
        assert interpret_value("X-FLAG", {"VALUE": ["BOOLEAN"]}, "FALSE") == BooleanValue(value=False)

    def test_invalid_boolean(self):
        with pytest.raises(InvalidValueError):
            interpret_value("X-FLAG", {"VALUE": ["BOOLEAN"]}, "yes")

    def test_geo(self):
        assert interpret_value("GEO", {}, "37.386013;-122.082932") == GeoValue(
            latitude=37.386013, longitude=-122.082932
        )

    @pytest.mark.parametrize("raw", ["37.386013", "north;west", "91.0;0.0"])
    def test_invalid_geo(self, raw):
        with pytest.raises(InvalidValueError):
            interpret_value("GEO", {}, raw)

    def test_cal_address_and_uri(self):
        assert interpret_value("ORGANIZER", {}, "mailto:a@example.com") == CalAddressValue(
            uri="mailto:a@example.com"
        )
        assert interpret_value("URL", {}, "https://example.com") == UriValue(uri="https://example.com")

    def test_utc_offset(self):
        assert interpret_value("TZOFFSETFROM", {}, "-0500") == UtcOffsetValue(seconds=-18000)
        assert interpret_value("TZOFFSETTO", {}, "+053030") == UtcOffsetValue(seconds=19830)

    def test_invalid_utc_offset(self):
        with pytest.raises(InvalidValueError):
            interpret_value("TZOFFSETTO", {}, "0100")

    def test_binary_attachment(self):
        value = interpret_value("ATTACH", {"ENCODING": ["BASE64"], "VALUE": ["BINARY"]}, "aGVsbG8=")

        assert value == BinaryValue(data=b"hello")

    def test_binary_requires_base64_encoding(self):
        with pytest.raises(InvalidValueError):
            interpret_value("ATTACH", {"VALUE": ["BINARY"]}, "aGVsbG8=")

    def test_binary_rejects_bad_base64(self):
        with pytest.raises(InvalidValueError):
            interpret_value("ATTACH", {"ENCODING": ["BASE64"]}, "not base64!")


class TestRecurrenceRules:
    """Tests for RECUR parsing."""

    def test_weekly_rule(self):
        rule = parse_recurrence_rule("FREQ=WEEKLY;INTERVAL=2;BYDAY=MO,-1FR;WKST=SU;COUNT=10")

        assert rule.freq == Frequency.WEEKLY
        assert rule.interval == 2
        assert rule.count == 10
        assert rule.wkst == Weekday.SU
        assert rule.by_day == (
            WeekdayNum(weekday=Weekday.MO),
            WeekdayNum(ordinal=-1, weekday=Weekday.FR),
        )

    def test_until_date_time(self):
        rule = parse_recurrence_rule("FREQ=DAILY;UNTIL=20240630T220000Z")

        assert rule.until == DateTimeValue(value=datetime.datetime(2024, 6, 30, 22, 0, 0), form=TimeForm.UTC)

    def test_until_date(self):
        rule = parse_recurrence_rule("FREQ=DAILY;UNTIL=20240630")

        assert rule.until == DateValue(date=datetime.date(2024, 6, 30))

    def test_by_parts(self):
        rule = parse_recurrence_rule("FREQ=YEARLY;BYMONTH=3,10;BYMONTHDAY=-1;BYSETPOS=1;BYHOUR=9")

        assert rule.by_month == (3, 10)
        assert rule.by_month_day == (-1,)
        assert rule.by_set_pos == (1,)
        assert rule.by_hour == (9,)

    def test_keys_are_case_insensitive(self):
        assert parse_recurrence_rule("freq=monthly").freq == Frequency.MONTHLY

    def test_rrule_through_interpret_value(self):
        value = interpret_value("RRULE", {}, "FREQ=DAILY;COUNT=3")

        assert isinstance(value, RecurrenceRuleValue)
        assert value.count == 3

    @pytest.mark.parametrize(
        "raw",
        [
            "INTERVAL=2",
            "FREQ=DAILY;COUNT=5;UNTIL=20240101T000000Z",
            "FREQ=DAILY;FREQ=WEEKLY",
            "FREQ=DAILY;FOO=BAR",
            "FREQ=FORTNIGHTLY",
            "FREQ=DAILY;COUNT=0",
            "FREQ=DAILY;INTERVAL=-1",
            "FREQ=MONTHLY;BYMONTHDAY=32",
            "FREQ=YEARLY;BYMONTH=13",
            "FREQ=DAILY;BYHOUR=-1",
            "FREQ=WEEKLY;BYDAY=XX",
            "FREQ=MONTHLY;BYDAY=54MO",
            "FREQ=DAILY;COUNT",
        ],
    )
    def test_invalid_rules(self, raw):
        with pytest.raises(InvalidValueError):
            parse_recurrence_rule(raw)

    def test_weekday_num(self):
        assert parse_weekday_num("+2TU") == WeekdayNum(ordinal=2, weekday=Weekday.TU)

    def test_until_and_count_rejected_by_model(self):
        """The model itself refuses a rule with both terminators."""
        with pytest.raises(ValueError):
            RecurrenceRuleValue(
                freq=Frequency.DAILY,
                count=1,
                until=DateValue(date=datetime.date(2024, 1, 1)),
            )


class TestSalvage:
    """Tests for the lenient-mode fallback value."""

    def test_salvaged_recurrence_parts(self):
        value = salvage_value("RRULE", {}, "FREQ=DAILY;COUNT=5;UNTIL=20240101T000000Z")

        assert value.value_type == "RECUR"
        assert value.text == "FREQ=DAILY;COUNT=5;UNTIL=20240101T000000Z"
        assert value.salvaged_parts == (
            ("FREQ", "DAILY"),
            ("COUNT", "5"),
            ("UNTIL", "20240101T000000Z"),
        )

    def test_salvaged_scalar_has_no_parts(self):
        value = salvage_value("PRIORITY", {}, "high")

        assert value == UnknownValue(text="high", value_type="INTEGER")
