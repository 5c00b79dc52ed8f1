"""Tests for replayer/shift.py"""

from datetime import timedelta

import pytest

from replayer.errors import InvalidShift
from replayer.shift import SHIFT_UNITS, parse_shift


class TestParseShift:
    @pytest.mark.parametrize(
        "expr, expected",
        [
            ("2s", timedelta(seconds=2)),
            ("5s", timedelta(seconds=5)),
            ("2m", timedelta(minutes=2)),
            ("2h", timedelta(hours=2)),
            ("2d", timedelta(days=2)),
            ("2w", timedelta(weeks=2)),
            ("0s", timedelta(0)),
            ("90m", timedelta(minutes=90)),
        ],
    )
    def test_valid(self, expr, expected):
        assert parse_shift(expr) == expected

    def test_unit_factors(self):
        assert SHIFT_UNITS == {"s": 1, "m": 60, "h": 3600, "d": 86400, "w": 604800}
        for unit, factor in SHIFT_UNITS.items():
            assert parse_shift(f"7{unit}").total_seconds() == 7 * factor

    @pytest.mark.parametrize(
        "expr",
        ["", "2", "2t", "s", "-5m", "1.5h", "1d2h", " 5m", "5M", "five m", "+5s", "5\ns", "\u0665s"],
    )
    def test_invalid(self, expr):
        with pytest.raises(InvalidShift):
            parse_shift(expr)

    def test_out_of_range(self):
        with pytest.raises(InvalidShift, match="too large"):
            parse_shift("99999999999w")

    def test_error_mentions_expression(self):
        with pytest.raises(InvalidShift, match="2t"):
            parse_shift("2t")
