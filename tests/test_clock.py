"""Tests for clock-value parsing and formatting."""

import pytest

from svgframes.clock import ClockForm, ClockValue, parse_clock_value


# ---------------------------------------------------------------------------
# parse_clock_value
# ---------------------------------------------------------------------------

class TestParseClockForm:
    def test_minutes_and_seconds(self):
        v = parse_clock_value("01:10")
        assert v.seconds == 70
        assert v.source_form is ClockForm.CLOCK

    def test_single_digit_minutes_without_hours(self):
        assert parse_clock_value("1:10").seconds == 70

    def test_hours(self):
        assert parse_clock_value("1:02:03").seconds == 3723
        assert parse_clock_value("10:00:00").seconds == 36000

    def test_single_digit_minutes_with_hours_rejected(self):
        assert parse_clock_value("1:2:03") is None

    def test_fractional_seconds(self):
        assert parse_clock_value("0:01.25").seconds == 1.25

    def test_out_of_range_components_rejected(self):
        assert parse_clock_value("1:60") is None
        assert parse_clock_value("60:00") is None

    def test_whitespace_anywhere(self):
        assert parse_clock_value(" - 1 : 30 ").seconds == -90

    def test_explicit_plus(self):
        v = parse_clock_value("+1:00")
        assert v.seconds == 60
        assert v.explicit_plus is True


class TestParseTimecount:
    @pytest.mark.parametrize("text", ["70", "70s", "70000ms", "01:10", "1.16666666666666666667min"])
    def test_seventy_seconds(self, text):
        assert parse_clock_value(text).seconds == pytest.approx(70)

    def test_exact_spellings_of_seventy(self):
        assert parse_clock_value("70").seconds == 70
        assert parse_clock_value("70s").seconds == 70
        assert parse_clock_value("70000ms").seconds == 70

    def test_no_unit_means_seconds(self):
        v = parse_clock_value("12")
        assert v.seconds == 12
        assert v.metric is None
        assert v.source_form is ClockForm.TIMECOUNT

    def test_bare_m_is_minutes(self):
        v = parse_clock_value("2m")
        assert v.seconds == 120
        assert v.metric == "min"

    def test_units_case_insensitive(self):
        v = parse_clock_value("1.5H")
        assert v.seconds == 5400
        assert v.metric == "h"
        assert parse_clock_value("250MS").seconds == 0.25

    def test_leading_fraction(self):
        assert parse_clock_value(".5s").seconds == 0.5

    def test_negative(self):
        assert parse_clock_value("-3s").seconds == -3

    @pytest.mark.parametrize("text", ["", "abc", "5x", "1.s", "--5", "1:2", "5 s s"])
    def test_invalid(self, text):
        assert parse_clock_value(text) is None

    def test_overflow_is_invalid(self):
        assert parse_clock_value("9" * 400) is None


# ---------------------------------------------------------------------------
# to_string_representation
# ---------------------------------------------------------------------------

class TestToStringClockForm:
    def test_preserves_input(self):
        assert parse_clock_value("1:10").to_string_representation() == "1:10"
        assert parse_clock_value("1:10.1").to_string_representation() == "1:10.1"

    def test_renders_hours(self):
        assert parse_clock_value("01:10").to_string_representation(3723) == "1:02:03"

    def test_pads_seconds(self):
        assert parse_clock_value("01:10").to_string_representation(65) == "1:05"
        assert parse_clock_value("01:10").to_string_representation(3605) == "1:00:05"

    def test_seconds_only(self):
        v = parse_clock_value("1:10")
        assert v.to_string_representation(5) == "5"
        assert v.to_string_representation(5, allow_no_metric=False) == "5s"

    def test_negative(self):
        assert parse_clock_value("-1:10").to_string_representation() == "-1:10"


class TestToStringTimecount:
    def test_keeps_unit(self):
        assert parse_clock_value("70000ms").to_string_representation(1.5) == "1500ms"
        assert parse_clock_value("2min").to_string_representation(90) == "1.5min"

    def test_no_metric(self):
        v = parse_clock_value("70")
        assert v.to_string_representation() == "70"
        assert v.to_string_representation(allow_no_metric=False) == "70s"

    def test_plus_sign(self):
        v = parse_clock_value("+5s")
        assert v.to_string_representation(3) == "+3s"
        assert v.to_string_representation(3, allow_explicit_plus_sign=False) == "3s"
        assert v.to_string_representation(-3) == "-3s"

    def test_no_plus_without_explicit_input(self):
        assert parse_clock_value("5s").to_string_representation(3) == "3s"

    def test_never_exponent_notation(self):
        text = parse_clock_value("1s").to_string_representation(1e-7)
        assert "e" not in text.lower().rstrip("s")
        assert parse_clock_value(text).seconds == 1e-7

    def test_default_renders_own_seconds(self):
        v = ClockValue(seconds=4.0, source_form=ClockForm.TIMECOUNT, metric="s")
        assert v.to_string_representation() == "4s"


class TestRoundTrip:
    @pytest.mark.parametrize(
        "text",
        [
            "0", "70", "70s", "70000ms", "01:10", "1:10.1", "1:02:03.25", "+5s",
            "-2.5min", "1h", "0.3h", ".001s", "123456789ms", "-0:00.5", "2m",
        ],
    )
    def test_parse_render_parse(self, text):
        v = parse_clock_value(text)
        again = parse_clock_value(v.to_string_representation(v.seconds))
        assert again.seconds == v.seconds

    @pytest.mark.parametrize("fmt", ["1:10", "1h", "5min", "100ms", "3s", "7"])
    @pytest.mark.parametrize("seconds", [0.0, 0.1, 1 / 3, 59.999, 61.1, 3599.5, 86400.0, -12.34, 1e-9])
    def test_any_seconds_in_any_format(self, fmt, seconds):
        v = parse_clock_value(fmt)
        for allow_no_metric in (True, False):
            text = v.to_string_representation(seconds, allow_no_metric=allow_no_metric)
            assert parse_clock_value(text).seconds == seconds
