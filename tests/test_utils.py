"""
Tests for rounding, coercion and timestamp helpers.
"""

import math
from datetime import datetime, timezone

import pytest

from linebalancer.utils import (
    cutoff_timestamp,
    format_timestamp,
    round_half_up,
    round_int,
    safe_float,
    station_number,
)


class TestRounding:

    @pytest.mark.parametrize("value, expected", [
        (2.5, 3),
        (3.5, 4),
        (-2.5, -2),
        (18.75, 19),
        (0.49, 0),
    ])
    def test_round_int_goes_half_up(self, value, expected):
        assert round_int(value) == expected

    def test_one_decimal(self):
        assert round_half_up(41.666, 1) == 41.7
        assert round_half_up(80.19, 1) == 80.2


class TestCoercion:

    @pytest.mark.parametrize("value, expected", [
        ("12.5", 12.5),
        (" 7 ", 7.0),
        (3, 3.0),
        ("", None),
        ("n/a", None),
        (None, None),
        (math.nan, None),
        (math.inf, None),
    ])
    def test_safe_float(self, value, expected):
        assert safe_float(value) == expected

    @pytest.mark.parametrize("station_id, expected", [
        ("ST003", 3),
        ("ST010", 10),
        ("LINE-7", 7),
        ("WELD", 0),
        ("", 0),
    ])
    def test_station_number(self, station_id, expected):
        assert station_number(station_id) == expected


class TestTimestamps:

    def test_storage_format_is_utc(self):
        ts = datetime(2026, 3, 2, 14, 30, 5, tzinfo=timezone.utc)
        assert format_timestamp(ts) == "2026-03-02 14:30:05"

    def test_cutoff(self):
        now = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)
        assert cutoff_timestamp(24, now) == "2026-03-01 12:00:00"

