"""Tests for time zone conversion helpers."""

from datetime import datetime, timedelta, timezone

import pytest

from rytetime.engine.timezones import (
    as_utc,
    format_utc_offset,
    is_dst,
    to_instant,
    to_naive_utc,
    to_wall_clock,
    to_zoned_time,
    validate_timezone,
)
from rytetime.errors import InvalidTimeZone

ZONES = [
    "UTC",
    "America/New_York",
    "America/Los_Angeles",
    "Europe/London",
    "Europe/Berlin",
    "Asia/Kolkata",
    "Asia/Kathmandu",
    "Australia/Lord_Howe",
    "Pacific/Chatham",
]

INSTANTS = [
    datetime(2025, 3, 9, 6, 59, tzinfo=timezone.utc),    # before US spring-forward
    datetime(2025, 3, 9, 7, 0, tzinfo=timezone.utc),     # US spring-forward
    datetime(2025, 3, 30, 1, 0, tzinfo=timezone.utc),    # EU spring-forward
    datetime(2025, 11, 2, 5, 30, tzinfo=timezone.utc),   # first 01:30 in New York
    datetime(2025, 11, 2, 6, 30, tzinfo=timezone.utc),   # second 01:30 in New York
    datetime(2025, 10, 26, 1, 15, tzinfo=timezone.utc),  # EU fall-back hour
    datetime(2024, 2, 29, 23, 59, 59, tzinfo=timezone.utc),
]


class TestRoundTrip:
    """Instant -> zoned -> instant is the identity."""

    @pytest.mark.parametrize("zone", ZONES)
    @pytest.mark.parametrize("instant", INSTANTS)
    def test_aware_round_trip(self, instant, zone):
        assert to_instant(to_zoned_time(instant, zone), zone) == instant

    @pytest.mark.parametrize("zone", ZONES)
    @pytest.mark.parametrize("instant", INSTANTS)
    def test_wall_clock_round_trip_keeps_fold(self, instant, zone):
        wall = to_wall_clock(instant, zone)
        assert wall.tzinfo is None
        assert to_instant(wall, zone) == instant

    @pytest.mark.parametrize("from_zone", ["Asia/Tokyo", "America/New_York"])
    @pytest.mark.parametrize("to_zone", ["Europe/Paris", "Australia/Sydney"])
    def test_cross_zone_round_trip(self, from_zone, to_zone):
        instant = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)
        zoned = to_zoned_time(to_zoned_time(instant, from_zone), to_zone)
        assert to_instant(zoned, to_zone) == instant


class TestConversions:
    def test_naive_input_is_wall_clock_in_zone(self):
        instant = to_instant(datetime(2025, 3, 9, 6, 0), "America/New_York")
        assert instant == datetime(2025, 3, 9, 10, 0, tzinfo=timezone.utc)

    def test_ambiguous_wall_time_uses_fold(self):
        first = to_instant(datetime(2025, 11, 2, 1, 30, fold=0), "America/New_York")
        second = to_instant(datetime(2025, 11, 2, 1, 30, fold=1), "America/New_York")
        assert second - first == timedelta(hours=1)

    def test_zoned_time_is_aware_in_requested_zone(self):
        zoned = to_zoned_time(datetime(2025, 1, 1, 0, 0, tzinfo=timezone.utc), "Asia/Kolkata")
        assert (zoned.hour, zoned.minute) == (5, 30)
        assert format_utc_offset(zoned) == "+05:30"
        assert is_dst(zoned) is False

    def test_negative_offset_formatting(self):
        zoned = to_zoned_time(datetime(2025, 7, 1, 12, 0, tzinfo=timezone.utc), "America/Los_Angeles")
        assert format_utc_offset(zoned) == "-07:00"
        assert is_dst(zoned) is True

    def test_as_utc_treats_naive_as_utc(self):
        assert as_utc(datetime(2025, 1, 1, 12, 0)) == datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def test_to_naive_utc_strips_zone_after_normalizing(self):
        zoned = to_zoned_time(datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc), "Europe/Berlin")
        assert to_naive_utc(zoned) == datetime(2025, 1, 1, 12, 0)


class TestInvalidZones:
    @pytest.mark.parametrize("zone", ["", "   ", "Mars/Olympus_Mons", "Not a zone", "../etc/passwd", None])
    def test_invalid_zone_raises(self, zone):
        with pytest.raises(InvalidTimeZone):
            to_zoned_time(datetime(2025, 1, 1, tzinfo=timezone.utc), zone)

    def test_to_instant_validates_zone_for_aware_input(self):
        with pytest.raises(InvalidTimeZone):
            to_instant(datetime(2025, 1, 1, tzinfo=timezone.utc), "Nowhere/City")

    def test_validate_timezone_returns_name(self):
        assert validate_timezone("Europe/London") == "Europe/London"
