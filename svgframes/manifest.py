"""JSON export manifest — the contract between CLI/API and the exporter."""

import json
from dataclasses import dataclass, field
from pathlib import Path

from svgframes.models import PlaybackState, TimingField
from svgframes.timing import DEFAULT_FPS, TimingSolver


@dataclass
class AnimationConfig:
    """Timing of an animated export. ``end`` is ignored while it is the locked field."""

    enabled: bool = False
    start: str = "0s"
    duration: str = "1s"
    end: str | None = None
    lock: str = "end"
    fps: float = DEFAULT_FPS
    total_frames: int | None = None


@dataclass
class ExportManifest:
    """Top-level export manifest."""

    input: Path
    output: Path
    version: str = "1"
    width: int | None = None
    height: int | None = None
    lock_aspect: bool = True
    animation: AnimationConfig = field(default_factory=AnimationConfig)


def parse_lock(value: str) -> TimingField:
    try:
        return TimingField(value)
    except ValueError:
        raise ValueError(
            f"Invalid lock {value!r}; expected one of: start, duration, end"
        ) from None


def build_solver(config: AnimationConfig, playback: PlaybackState | None = None) -> TimingSolver:
    """Create the timing solver an animation config describes.

    A disabled animation exports a single still frame at ``start``.
    """
    if not config.enabled:
        return TimingSolver(start=config.start, duration="0s", playback=playback)
    return TimingSolver(
        start=config.start,
        duration=config.duration,
        end=config.end,
        lock=parse_lock(config.lock),
        fps=float(config.fps),
        total_frames=config.total_frames,
        playback=playback,
    )


def load_manifest(path: str | Path) -> ExportManifest:
    """Load and validate a manifest from a JSON file."""
    path = Path(path)
    data = json.loads(path.read_text())

    if "input" not in data or "output" not in data:
        raise ValueError("Manifest must contain 'input' and 'output' fields")

    animation = AnimationConfig(**data["animation"]) if "animation" in data else AnimationConfig()
    parse_lock(animation.lock)

    return ExportManifest(
        version=data.get("version", "1"),
        input=Path(data["input"]),
        output=Path(data["output"]),
        width=data.get("width"),
        height=data.get("height"),
        lock_aspect=data.get("lock_aspect", True),
        animation=animation,
    )
