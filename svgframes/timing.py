"""Start/duration/end reconciliation under a lock, and frame-rate derivation."""

import math
from dataclasses import dataclass

from svgframes.clock import ClockForm, ClockValue, parse_clock_value
from svgframes.models import (
    FrameRateDriver,
    FrameRateState,
    PlaybackState,
    TimingField,
    TimingState,
)

MIN_FPS = 0.001
MAX_FPS = 65536.0
DEFAULT_FPS = 30.0
DURATION_EPSILON = 1e-6

FORMAT_HINT = "use format like 70 or 70s or 70000ms or 01:10"

# Absorbs float noise such as 0.1 * 30 == 2.9999999999999996
_FLOOR_TOLERANCE = 1e-9

_DEFAULT_FORMAT = ClockValue(seconds=0.0, source_form=ClockForm.TIMECOUNT, metric="s")


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(value, high))


def _coerce_number(value) -> float | None:
    """Best-effort float conversion; None for anything unusable (NaN included)."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number):
        return None
    return number


def frames_for(fps: float, duration: float) -> int:
    if duration <= DURATION_EPSILON:
        return 1
    return max(1, math.floor(fps * duration + _FLOOR_TOLERANCE))


class FrameRateResolver:
    """Keeps fps and total frame count consistent with the current duration.

    Whichever of the two the user set last is held fixed when the duration
    changes; the other one is recomputed.
    """

    def __init__(
        self,
        duration: float,
        fps: float = DEFAULT_FPS,
        playback: PlaybackState | None = None,
    ):
        self.state = FrameRateState(fps=clamp(fps, MIN_FPS, MAX_FPS))
        self.playback = playback
        self._duration = max(0.0, duration)
        self._requested_total: int | None = None
        self._recompute()

    @property
    def duration(self) -> float:
        return self._duration

    @property
    def fps(self) -> float:
        return self.state.fps

    @property
    def total_frames(self) -> int:
        return self.state.total_frames

    @property
    def degenerate(self) -> bool:
        return self._duration <= DURATION_EPSILON

    def set_fps(self, value) -> FrameRateState:
        fps = _coerce_number(value)
        if fps is not None:
            self.state.fps = clamp(fps, MIN_FPS, MAX_FPS)
        self.state.last_driven_by = FrameRateDriver.FPS
        self._requested_total = None
        self._recompute()
        return self.state

    def set_total_frames(self, value) -> FrameRateState:
        total = _coerce_number(value)
        if total is not None and math.isfinite(total):
            self._requested_total = max(1, math.floor(total))
        self.state.last_driven_by = FrameRateDriver.TOTAL_FRAMES
        self._recompute()
        return self.state

    def attach_playback(self, playback: PlaybackState | None) -> None:
        self.playback = playback
        self._recompute()

    def set_duration(self, duration: float) -> FrameRateState:
        self._duration = max(0.0, duration)
        self._recompute()
        return self.state

    def _recompute(self) -> None:
        s = self.state
        if self.degenerate:
            s.total_frames = 1
        elif s.last_driven_by is FrameRateDriver.FPS:
            s.total_frames = frames_for(s.fps, self._duration)
        else:
            total = self._requested_total or s.total_frames
            s.total_frames = total
            s.fps = clamp(total / self._duration, MIN_FPS, MAX_FPS)

        if self.playback is not None:
            self.playback.current_frame = int(
                clamp(self.playback.current_frame, 1, s.total_frames)
            )


@dataclass
class TimingUpdate:
    """Result of a timing edit: the settled state, or the field that failed to parse."""

    state: TimingState
    invalid_field: TimingField | None = None
    hint: str | None = None

    @property
    def ok(self) -> bool:
        return self.invalid_field is None


class TimingSolver:
    """Owns the timing and frame-rate state of one animation.

    Exactly one of start/duration/end is locked, i.e. computed from the other
    two. Every setter settles all derived values before returning.
    """

    def __init__(
        self,
        start: str = "0s",
        duration: str = "1s",
        end: str | None = None,
        lock: TimingField = TimingField.END,
        fps: float = DEFAULT_FPS,
        total_frames: int | None = None,
        driver: TimingField | None = None,
        playback: PlaybackState | None = None,
    ):
        self.timing = TimingState(
            texts={
                TimingField.START: "0s",
                TimingField.DURATION: "1s",
                TimingField.END: "1s",
            }
        )
        self.frames = FrameRateResolver(self.timing.duration, fps, playback)
        self._formats: dict[TimingField, ClockValue] = {}

        self.set_start(start, finalize=True)
        self.set_duration(duration, finalize=True)
        if lock is not TimingField.END:
            self.set_lock(lock)
            if end is not None:
                self.set_end(end, finalize=True)
        if driver is not None and driver is not self.timing.locked:
            self.timing.driver = driver

        if total_frames is not None:
            self.frames.set_total_frames(total_frames)

    @property
    def playback(self) -> PlaybackState | None:
        return self.frames.playback

    @playback.setter
    def playback(self, state: PlaybackState | None) -> None:
        self.frames.attach_playback(state)

    @property
    def total_frames(self) -> int:
        return self.frames.total_frames

    def set_start(self, text: str, finalize: bool = False) -> TimingUpdate:
        return self._edit(TimingField.START, text, finalize)

    def set_duration(self, text: str, finalize: bool = False) -> TimingUpdate:
        return self._edit(TimingField.DURATION, text, finalize)

    def set_end(self, text: str, finalize: bool = False) -> TimingUpdate:
        return self._edit(TimingField.END, text, finalize)

    def set_lock(self, field: TimingField) -> TimingUpdate:
        """Make ``field`` the computed one."""
        t = self.timing
        if field is t.locked:
            return TimingUpdate(t)
        previous = t.locked
        t.locked = field
        if t.driver is field:
            t.driver = previous
        self._recompute_locked()
        return TimingUpdate(t)

    def set_fps(self, value) -> FrameRateState:
        return self.frames.set_fps(value)

    def set_total_frames(self, value) -> FrameRateState:
        return self.frames.set_total_frames(value)

    def time_at(self, frame: int) -> float:
        """Animation time in seconds at which ``frame`` (1-based) is sampled."""
        t = self.timing
        return t.start + t.duration * (frame - 1) / self.frames.total_frames

    def as_dict(self) -> dict:
        t = self.timing
        f = self.frames.state
        return {
            "start": t.start,
            "duration": t.duration,
            "end": t.end,
            "texts": {k.value: v for k, v in t.texts.items()},
            "lock": t.locked.value,
            "driver": t.driver.value,
            "fps": f.fps,
            "total_frames": f.total_frames,
            "frame_rate_driver": f.last_driven_by.value,
        }

    def _edit(self, field: TimingField, text: str, finalize: bool) -> TimingUpdate:
        t = self.timing
        value = parse_clock_value(text)
        if value is None or (field is TimingField.DURATION and value.seconds < 0):
            if not finalize:
                return TimingUpdate(t, invalid_field=field, hint=FORMAT_HINT)
            # Leaving the field with garbage in it: restore it from its siblings.
            self._derive(field)
            self._render_text(field)
            return TimingUpdate(t)

        if field is t.locked:
            t.locked = next(f for f in TimingField if f is not field and f is not t.driver)

        self._formats[field] = value
        setattr(t, field.value, value.seconds)
        t.texts[field] = text.strip()
        t.driver = field

        # Endpoints never cross: drag the other one along.
        if t.locked is TimingField.DURATION:
            if field is TimingField.START and t.start > t.end:
                t.end = t.start
                self._render_text(TimingField.END)
            elif field is TimingField.END and t.end < t.start:
                t.start = t.end
                self._render_text(TimingField.START)

        self._recompute_locked()
        return TimingUpdate(t)

    def _derive(self, field: TimingField) -> None:
        t = self.timing
        if field is TimingField.START:
            t.start = t.end - t.duration
        elif field is TimingField.DURATION:
            t.duration = max(0.0, t.end - t.start)
        else:
            t.end = t.start + t.duration

    def _recompute_locked(self) -> None:
        self._derive(self.timing.locked)
        self._render_text(self.timing.locked)
        self.frames.set_duration(self.timing.duration)

    def _render_text(self, field: TimingField) -> None:
        fmt = self._formats.get(field, _DEFAULT_FORMAT)
        self.timing.texts[field] = fmt.to_string_representation(
            self.timing.value(field),
            allow_no_metric=True,
            allow_explicit_plus_sign=field is not TimingField.DURATION,
        )
