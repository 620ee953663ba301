"""Unit tests for TZID resolution and DateTimeValue.to_datetime."""

import datetime
import zoneinfo

import pytest

from pg_ical.calendar.values import DateTimeValue, TimeForm
from pg_ical.core.timezone_utils import WINDOWS_TZ_MAP, resolve_tzid, windows_tz_to_iana
from pg_ical.exceptions import InvalidValueError

pytestmark = pytest.mark.unit


class TestWindowsTimezoneMapping:
    """Tests for Windows to IANA name conversion."""

    @pytest.mark.parametrize(
        ("windows_name", "iana_name"),
        [
            ("Pacific Standard Time", "America/Los_Angeles"),
            ("Eastern Standard Time", "America/New_York"),
            ("GMT Standard Time", "Europe/London"),
            ("Tokyo Standard Time", "Asia/Tokyo"),
        ],
    )
    def test_known_names(self, windows_name, iana_name):
        assert windows_tz_to_iana(windows_name) == iana_name

    def test_surrounding_whitespace_ignored(self):
        assert windows_tz_to_iana("  Central Standard Time ") == "America/Chicago"

    def test_unknown_name(self):
        assert windows_tz_to_iana("Mars Standard Time") is None

    def test_every_mapped_zone_exists(self):
        for iana_name in WINDOWS_TZ_MAP.values():
            zoneinfo.ZoneInfo(iana_name)


class TestResolveTzid:
    """Tests for resolve_tzid."""

    def test_iana_name(self):
        assert resolve_tzid("Europe/Paris") == zoneinfo.ZoneInfo("Europe/Paris")

    def test_windows_name(self):
        assert resolve_tzid("Pacific Standard Time") == zoneinfo.ZoneInfo("America/Los_Angeles")

    def test_mozilla_prefix(self):
        assert resolve_tzid("/mozilla.org/20050126_1/Europe/Berlin") == zoneinfo.ZoneInfo("Europe/Berlin")

    def test_leading_slash(self):
        assert resolve_tzid("/America/Denver") == zoneinfo.ZoneInfo("America/Denver")

    @pytest.mark.parametrize("tzid", ["", "Not/AZone", "Mars Standard Time"])
    def test_unknown_returns_none(self, tzid):
        assert resolve_tzid(tzid) is None


class TestToDatetime:
    """Tests for converting DateTimeValue to Python datetimes."""

    def test_utc_is_aware(self):
        value = DateTimeValue(value=datetime.datetime(2024, 1, 1, 12, 0), form=TimeForm.UTC)

        assert value.to_datetime() == datetime.datetime(2024, 1, 1, 12, 0, tzinfo=datetime.timezone.utc)

    def test_floating_stays_naive(self):
        value = DateTimeValue(value=datetime.datetime(2024, 1, 1, 12, 0))

        assert value.to_datetime().tzinfo is None

    def test_zoned_localized(self):
        value = DateTimeValue(
            value=datetime.datetime(2024, 7, 1, 9, 0), form=TimeForm.ZONED, tzid="Europe/Paris"
        )

        result = value.to_datetime()

        assert result.utcoffset() == datetime.timedelta(hours=2)
        assert result.astimezone(datetime.timezone.utc).hour == 7

    def test_zoned_windows_name(self):
        value = DateTimeValue(
            value=datetime.datetime(2024, 1, 15, 9, 0), form=TimeForm.ZONED, tzid="Eastern Standard Time"
        )

        assert value.to_datetime().utcoffset() == datetime.timedelta(hours=-5)

    def test_unresolvable_tzid_raises(self):
        value = DateTimeValue(value=datetime.datetime(2024, 1, 1), form=TimeForm.ZONED, tzid="Custom Zone")

        with pytest.raises(InvalidValueError):
            value.to_datetime()


class TestDateTimeValueForms:
    """Tests for the form/TZID consistency rules."""

    def test_zoned_requires_tzid(self):
        with pytest.raises(ValueError):
            DateTimeValue(value=datetime.datetime(2024, 1, 1), form=TimeForm.ZONED)

    def test_utc_rejects_tzid(self):
        with pytest.raises(ValueError):
            DateTimeValue(value=datetime.datetime(2024, 1, 1), form=TimeForm.UTC, tzid="UTC")

    def test_aware_value_rejected(self):
        with pytest.raises(ValueError):
            DateTimeValue(value=datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc))
