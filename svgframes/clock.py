"""SMIL clock-value parsing and formatting.

Accepts the offset-value syntax from https://www.w3.org/TR/smil-animation/#Timing-OffsetValueSyntax
with a few relaxations:

- whitespace is allowed anywhere
- minutes may be a single digit when no hours are given
- ``m`` is accepted as an alias for ``min``
- the leading digit before a fraction is optional (``.5s``)
"""

import math
import re
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


class ClockForm(str, Enum):
    CLOCK = "clock"
    TIMECOUNT = "timecount"


_WHITESPACE_RE = re.compile(r"\s+")
_CLOCK_RE = re.compile(r"^([+-]?)(?:(\d+):)?([0-5]\d|(?<!:)\d):([0-5]\d(?:\.\d+)?)$")
_TIMECOUNT_RE = re.compile(r"^([+-]?)(\d+(?:\.\d+)?|\.\d+)(h|min|s|ms|m)?$", re.IGNORECASE)

# metric -> (numerator, denominator) of seconds per unit
_UNIT_SCALE: dict[str, tuple[int, int]] = {
    "h": (3600, 1),
    "min": (60, 1),
    "s": (1, 1),
    "ms": (1, 1000),
}

_PRETTY_DIGITS = 9


def _format_number(value: float) -> str:
    """Shortest round-tripping decimal, never in exponent notation."""
    text = format(Decimal(repr(value)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def _sign_prefix(seconds: float, plus: bool) -> str:
    if seconds < 0:
        return "-"
    return "+" if plus else ""


@dataclass(frozen=True)
class ClockValue:
    """A parsed offset value and the format it was written in."""

    seconds: float
    source_form: ClockForm
    metric: str | None = None
    explicit_plus: bool = False

    def to_string_representation(
        self,
        seconds: float | None = None,
        allow_no_metric: bool = True,
        allow_explicit_plus_sign: bool = True,
    ) -> str:
        """Render ``seconds`` (default: this value) in the format of the original input."""
        if seconds is None:
            seconds = self.seconds
        sign = _sign_prefix(seconds, self.explicit_plus and allow_explicit_plus_sign)
        magnitude = abs(seconds)

        # Prefer a rounded rendering, but only if it still parses back exactly.
        for digits in (_PRETTY_DIGITS, None):
            if self.source_form is ClockForm.CLOCK:
                body = _format_clock(magnitude, allow_no_metric, digits)
            else:
                body = self._format_timecount(magnitude, allow_no_metric, digits)
            reparsed = parse_clock_value(sign + body)
            if reparsed is not None and reparsed.seconds == seconds:
                return sign + body

        # Unit conversion lost precision; plain seconds always round-trip.
        return sign + _format_number(magnitude) + ("" if allow_no_metric else "s")

    def _format_timecount(
        self, magnitude: float, allow_no_metric: bool, digits: int | None = None
    ) -> str:
        numerator, denominator = _UNIT_SCALE[self.metric or "s"]
        value = magnitude * denominator / numerator
        if digits is not None:
            value = round(value, digits)
        if self.metric:
            suffix = self.metric
        else:
            suffix = "" if allow_no_metric else "s"
        return _format_number(value) + suffix


def _format_clock(magnitude: float, allow_no_metric: bool, digits: int | None = None) -> str:
    hours = int(magnitude // 3600)
    rest = magnitude - hours * 3600
    minutes = int(rest // 60)
    secs = rest - minutes * 60
    if digits is not None:
        secs = round(secs, digits)

    secs_text = _format_number(secs)
    if hours or minutes:
        if secs < 10:
            secs_text = "0" + secs_text
        if hours:
            return f"{hours}:{minutes:02d}:{secs_text}"
        return f"{minutes}:{secs_text}"
    return secs_text + ("" if allow_no_metric else "s")


def parse_clock_value(text: str) -> ClockValue | None:
    """Parse a clock value into seconds.

    Returns None if ``text`` matches neither the clock nor the timecount
    grammar. Callers decide what a missing value defaults to.
    """
    value = _WHITESPACE_RE.sub("", text)

    m = _CLOCK_RE.match(value)
    if m:
        sign = -1 if m.group(1) == "-" else 1
        hours = float(m.group(2) or 0)
        minutes = int(m.group(3))
        secs = float(m.group(4))
        seconds = sign * ((hours * 60 + minutes) * 60 + secs)
        if not math.isfinite(seconds):
            return None
        return ClockValue(
            seconds=seconds,
            source_form=ClockForm.CLOCK,
            explicit_plus=m.group(1) == "+",
        )

    m = _TIMECOUNT_RE.match(value)
    if m:
        sign = -1 if m.group(1) == "-" else 1
        metric = m.group(3).lower() if m.group(3) else None
        if metric == "m":
            metric = "min"
        numerator, denominator = _UNIT_SCALE[metric or "s"]
        seconds = sign * (float(m.group(2)) * numerator / denominator)
        if not math.isfinite(seconds):
            return None
        return ClockValue(
            seconds=seconds,
            source_form=ClockForm.TIMECOUNT,
            metric=metric,
            explicit_plus=m.group(1) == "+",
        )

    return None
