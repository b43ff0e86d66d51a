"""FFmpeg subprocess helpers for rasterizing SVG files."""

import asyncio
import logging
import shutil
import subprocess
import tempfile
from pathlib import Path

from svgframes.models import ImageSize, RasterImage
from svgframes.svgdoc import freeze_svg

logger = logging.getLogger(__name__)


class FFmpegNotFoundError(RuntimeError):
    pass


def check_ffmpeg() -> None:
    """Raise FFmpegNotFoundError if ffmpeg is not on PATH."""
    if shutil.which("ffmpeg") is None:
        raise FFmpegNotFoundError("ffmpeg not found on PATH")


def render_png(svg_path: Path, size: ImageSize) -> bytes:
    """Rasterize an SVG through ffmpeg's librsvg decoder and return PNG bytes."""
    cmd = [
        "ffmpeg",
        "-v", "error",
        "-i", str(svg_path),
        "-vf", f"scale={size.width}:{size.height}",
        "-frames:v", "1",
        "-f", "image2pipe",
        "-c:v", "png",
        "-",
    ]
    result = subprocess.run(cmd, capture_output=True, check=True)
    if not result.stdout:
        raise RuntimeError(f"ffmpeg produced no image for {svg_path}")
    return result.stdout


def render_png_at(svg_text: str, time: float, size: ImageSize) -> bytes:
    """Freeze the document's animation at ``time`` and rasterize the result.

    librsvg draws the static document only, so the animated attributes are
    written into a temporary copy first.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        frame_path = Path(tmpdir) / "frame.svg"
        frame_path.write_text(freeze_svg(svg_text, time), encoding="utf-8")
        return render_png(frame_path, size)


class SvgRasterizer:
    """``render_frame(time)`` collaborator backed by ffmpeg."""

    def __init__(self, svg_path: Path, size: ImageSize):
        self.svg_path = Path(svg_path)
        self.size = size
        self._text: str | None = None

    async def __call__(self, time: float) -> RasterImage:
        if self._text is None:
            self._text = self.svg_path.read_text(encoding="utf-8")
        logger.debug("Rendering %s at t=%.4fs", self.svg_path.name, time)
        # Run the blocking subprocess off the event loop
        data = await asyncio.to_thread(render_png_at, self._text, time, self.size)
        return RasterImage(width=self.size.width, height=self.size.height, data=data, time=time)
