"""Export pipeline: renders every frame of an animation and packs it for saving."""

import asyncio
import inspect
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Awaitable, Callable

from svgframes.archive import ArchiveError, ArchiveWriter
from svgframes.manifest import ExportManifest, build_solver
from svgframes.models import ImageSize, PlaybackMode, RasterImage
from svgframes.playback import PlaybackScheduler
from svgframes.rasterize import SvgRasterizer, check_ffmpeg
from svgframes.sizing import SizeSolver
from svgframes.svgdoc import load_svg
from svgframes.timing import TimingSolver

logger = logging.getLogger(__name__)

RenderFrame = Callable[[float], RasterImage | Awaitable[RasterImage]]
SaveFile = Callable[[bytes, str], None]


class ExportCancelled(RuntimeError):
    """Playback was paused before the last frame was rendered."""


@dataclass
class ExportResult:
    filename: str
    frame_count: int
    byte_size: int
    output_path: Path | None = None
    entries: list[str] = field(default_factory=list)

    @property
    def archived(self) -> bool:
        return self.frame_count > 1


def frame_name(frame: int, total_frames: int) -> str:
    return f"frame-{frame:0{len(str(total_frames))}d}.png"


async def _resolve(result):
    if inspect.isawaitable(result):
        return await result
    return result


class SequenceExporter:
    """Renders frames 1..N in order and saves them as one file.

    A single frame is saved as ``<basename>.png``; several frames are stored
    in ``<basename>.zip``. If the archive refuses an entry the export stops
    and nothing is saved.
    """

    def __init__(
        self,
        solver: TimingSolver,
        render_frame: RenderFrame,
        save: SaveFile,
        on_progress: Callable[[str, float], None] | None = None,
        set_controls_enabled: Callable[[bool], None] | None = None,
        scheduler: PlaybackScheduler | None = None,
    ):
        self.solver = solver
        self.render_frame = render_frame
        self.save = save
        self.on_progress = on_progress
        self.set_controls_enabled = set_controls_enabled
        self.scheduler = scheduler or PlaybackScheduler(solver)

    def _progress(self, stage: str, frac: float) -> None:
        if self.on_progress:
            self.on_progress(stage, frac)

    def _controls(self, enabled: bool) -> None:
        if self.set_controls_enabled:
            self.set_controls_enabled(enabled)

    async def export(self, basename: str) -> ExportResult:
        total = self.solver.total_frames
        if total == 1:
            return await self._export_still(basename)
        return await self._export_sequence(basename, total)

    async def _export_still(self, basename: str) -> ExportResult:
        self._progress("Rendering image", 0.0)
        image = await _resolve(self.render_frame(self.solver.timing.start))
        data = image.encode()
        filename = f"{basename}.png"

        self._progress("Saving", 0.95)
        self.save(data, filename)
        self._progress("Done", 1.0)
        return ExportResult(filename=filename, frame_count=1, byte_size=len(data))

    async def _export_sequence(self, basename: str, total: int) -> ExportResult:
        writer = ArchiveWriter()

        async def on_frame(frame: int) -> None:
            image = await _resolve(self.render_frame(self.solver.time_at(frame)))
            writer.append_entry(image.encode(), frame_name(frame, total))
            self._progress(f"Rendering frame {frame}/{total}", 0.95 * frame / total)

        self._controls(False)
        self.scheduler.state.current_frame = 1
        self._progress(f"Rendering frame 1/{total}", 0.0)
        try:
            await self.scheduler.run(PlaybackMode.EXHAUSTIVE, on_frame)
        except ArchiveError:
            logger.error("Export aborted at frame %d", self.scheduler.state.current_frame)
            self.scheduler.pause()
            raise
        finally:
            self._controls(True)

        if len(writer) != total:
            raise ExportCancelled(f"Export stopped after {len(writer)} of {total} frames")

        self._progress("Writing archive", 0.95)
        data = writer.finalize()
        filename = f"{basename}.zip"
        self.save(data, filename)
        self._progress("Done", 1.0)
        return ExportResult(
            filename=filename,
            frame_count=total,
            byte_size=len(data),
            entries=[e.name for e in writer.entries],
        )


def resolve_size(intrinsic: ImageSize, manifest: ExportManifest) -> ImageSize:
    """Output size from the manifest, defaulting to the SVG's own size.

    When both dimensions are given they are used as-is; with only one, the
    other follows the aspect ratio if ``lock_aspect`` is set.
    """
    both = manifest.width is not None and manifest.height is not None
    sizer = SizeSolver(
        intrinsic.width, intrinsic.height, lock_aspect=manifest.lock_aspect and not both
    )
    if manifest.width is not None:
        sizer.set_width(str(manifest.width), finalize=True)
    if manifest.height is not None:
        sizer.set_height(str(manifest.height), finalize=True)
    return sizer.size


def process(
    manifest: ExportManifest,
    on_progress: Callable[[str, float], None] | None = None,
) -> ExportResult:
    """Execute the full export pipeline.

    Args:
        manifest: Validated export manifest.
        on_progress: Optional callback(stage_name, fraction_complete).
    """
    check_ffmpeg()

    if on_progress:
        on_progress("Loading SVG", 0.0)
    document = load_svg(manifest.input)
    size = resolve_size(document.size, manifest)

    animation = manifest.animation
    if animation.enabled and not document.is_animated:
        logger.warning("%s has no animation elements; exporting a still image", manifest.input)
        animation = replace(animation, enabled=False)
    solver = build_solver(animation)

    output_dir = manifest.output
    output_dir.mkdir(parents=True, exist_ok=True)
    saved: list[Path] = []

    def save(data: bytes, filename: str) -> None:
        path = output_dir / filename
        path.write_bytes(data)
        saved.append(path)

    exporter = SequenceExporter(
        solver,
        SvgRasterizer(manifest.input, size),
        save,
        on_progress=on_progress,
    )
    result = asyncio.run(exporter.export(manifest.input.stem))
    result.output_path = saved[-1]
    return result
