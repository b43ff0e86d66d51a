"""Command-line entry point: builds an ExportManifest and hands it to the exporter."""

import argparse
import asyncio
import logging
import sys
import time
from pathlib import Path

from svgframes.export import process, resolve_size
from svgframes.manifest import AnimationConfig, ExportManifest, build_solver, load_manifest
from svgframes.models import PlaybackMode, RasterImage
from svgframes.playback import PlaybackScheduler
from svgframes.rasterize import SvgRasterizer, check_ffmpeg
from svgframes.svgdoc import load_svg

# Browsers clamp zero-delay timers to about this much
PREVIEW_TICK_SECONDS = 0.004


def _add_timing_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--width", type=int, help="Output width in pixels")
    parser.add_argument("--height", type=int, help="Output height in pixels")
    parser.add_argument("--no-lock-aspect", action="store_true", help="Do not keep the SVG aspect ratio")
    parser.add_argument("--start", default="0s", help="Animation start (e.g. 0, 1.5s, 00:02)")
    parser.add_argument("--duration", default="1s", help="Animation duration (e.g. 70, 70s, 70000ms, 01:10)")
    parser.add_argument("--end", help="Animation end; only used when another field is locked")
    parser.add_argument("--lock", choices=["start", "duration", "end"], default="end", help="Field computed from the other two")
    parser.add_argument("--fps", type=float, default=30.0, help="Frames per second")
    parser.add_argument("--frames", type=int, help="Total frame count (overrides --fps)")


def _manifest_from_args(args: argparse.Namespace, animate: bool) -> ExportManifest:
    output = args.output if getattr(args, "output", None) else args.svg.parent
    return ExportManifest(
        input=args.svg,
        output=output,
        width=args.width,
        height=args.height,
        lock_aspect=not args.no_lock_aspect,
        animation=AnimationConfig(
            enabled=animate,
            start=args.start,
            duration=args.duration,
            end=args.end,
            lock=args.lock,
            fps=args.fps,
            total_frames=args.frames,
        ),
    )


def _preview(manifest: ExportManifest, seconds: float, output: Path | None) -> dict:
    """Play the animation in real time for ``seconds`` and report what was shown."""
    check_ffmpeg()
    document = load_svg(manifest.input)
    solver = build_solver(manifest.animation)
    render = SvgRasterizer(manifest.input, resolve_size(document.size, manifest))
    deadline = time.monotonic() + seconds
    shown: list[int] = []
    latest: list[RasterImage] = []

    async def on_frame(frame: int) -> None:
        latest[:] = [await render(solver.time_at(frame))]
        shown.append(frame)

    scheduler = PlaybackScheduler(
        solver,
        is_enabled=lambda: time.monotonic() < deadline,
        tick_interval=PREVIEW_TICK_SECONDS,
    )
    asyncio.run(scheduler.run(PlaybackMode.REAL_TIME, on_frame))

    if output and latest:
        output.write_bytes(latest[0].encode())
    expected = max(1, int(seconds * solver.total_frames / max(solver.timing.duration, 1e-6)))
    return {
        "frames_shown": len(shown),
        "frames_expected": expected,
        "last_frame": scheduler.state.current_frame,
        "total_frames": solver.total_frames,
    }


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="svgframes",
        description="SVG Frames — rasterize SVGs and export animation frames.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output")
    sub = parser.add_subparsers(dest="command")

    export = sub.add_parser("export", help="Export an SVG as PNG, or its animation as a ZIP of PNG frames")
    export.add_argument("svg", nargs="?", type=Path, help="Input SVG file")
    export.add_argument("--manifest", "-m", type=Path, help="Path to a JSON manifest file")
    export.add_argument("--output", "-o", type=Path, help="Output directory")
    export.add_argument("--animate", action="store_true", help="Export every animation frame")
    _add_timing_arguments(export)

    preview = sub.add_parser("preview", help="Play an animation in real time and report frame pacing")
    preview.add_argument("svg", type=Path, help="Input SVG file")
    preview.add_argument("--seconds", type=float, default=3.0, help="How long to play")
    preview.add_argument("--output", "-o", type=Path, help="Write the last shown frame to this PNG")
    _add_timing_arguments(preview)

    serve = sub.add_parser("serve", help="Launch the web UI")
    serve.add_argument("--port", type=int, default=8321, help="Port to listen on")
    serve.add_argument("--host", type=str, default="127.0.0.1", help="Host to bind to")

    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "serve":
        from svgframes.web import create_app
        app = create_app()
        print(f"SVG Frames web UI: http://{args.host}:{args.port}")
        app.run(host=args.host, port=args.port, debug=False)
        return

    if args.command == "preview":
        stats = _preview(_manifest_from_args(args, animate=True), args.seconds, args.output)
        print(stats)
        return

    if args.manifest:
        m = load_manifest(args.manifest)
    elif args.svg:
        m = _manifest_from_args(args, animate=args.animate)
    else:
        print("Error: provide either an SVG argument or --manifest.", file=sys.stderr)
        sys.exit(1)

    def on_progress(stage: str, frac: float) -> None:
        print(f"  [{frac:3.0%}] {stage}")

    result = process(m, on_progress=on_progress)

    print()
    print(f"Done! Output: {result.output_path}")
    if result.archived:
        print(f"  Frames: {result.frame_count}")
    print(f"  Size: {result.byte_size} bytes")
