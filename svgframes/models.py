"""Shared data types used across SVG Frames."""

from dataclasses import dataclass, field
from enum import Enum


class TimingField(str, Enum):
    """One of the three reconciled timing quantities."""

    START = "start"
    DURATION = "duration"
    END = "end"


class FrameRateDriver(str, Enum):
    FPS = "fps"
    TOTAL_FRAMES = "total_frames"


class PlaybackMode(str, Enum):
    REAL_TIME = "real_time"
    EXHAUSTIVE = "exhaustive"


@dataclass
class TimingState:
    """Start/duration/end in seconds. ``end == start + duration`` once settled."""

    start: float = 0.0
    duration: float = 1.0
    end: float = 1.0
    locked: TimingField = TimingField.END
    driver: TimingField = TimingField.DURATION
    texts: dict[TimingField, str] = field(default_factory=dict)

    def value(self, which: TimingField) -> float:
        return getattr(self, which.value)


@dataclass
class FrameRateState:
    fps: float = 30.0
    total_frames: int = 30
    last_driven_by: FrameRateDriver = FrameRateDriver.FPS


@dataclass
class PlaybackState:
    current_frame: int = 1
    is_playing: bool = False
    mode: PlaybackMode = PlaybackMode.REAL_TIME


@dataclass(frozen=True)
class MsDosDateTime:
    """Legacy packed 16-bit time and date words."""

    time: int
    date: int


@dataclass(frozen=True)
class ArchiveEntry:
    """A stored entry as written into the archive body."""

    name_bytes: bytes
    crc32: int
    size: int
    offset: int
    timestamp: MsDosDateTime

    @property
    def name(self) -> str:
        return self.name_bytes.decode("ascii")


@dataclass(frozen=True)
class ImageSize:
    width: int
    height: int


@dataclass(frozen=True)
class RasterImage:
    """A rendered frame: pixel dimensions plus its PNG encoding."""

    width: int
    height: int
    data: bytes
    time: float = 0.0

    def encode(self) -> bytes:
        return self.data
