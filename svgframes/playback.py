"""Cooperative frame scheduler for real-time preview and exhaustive export."""

import asyncio
import inspect
import logging
import time
from typing import Awaitable, Callable

from svgframes.models import PlaybackMode, PlaybackState
from svgframes.timing import DURATION_EPSILON, TimingSolver

logger = logging.getLogger(__name__)

FrameCallback = Callable[[int], Awaitable[None] | None]


class PlaybackScheduler:
    """Advances ``PlaybackState.current_frame`` on an asyncio loop.

    REAL_TIME follows the wall clock and skips frames rather than falling
    behind. EXHAUSTIVE delivers every frame exactly once, in order, and stops
    after the last one.

    ``on_frame`` may be a coroutine function; it is awaited before the next
    tick, so at most one frame is ever in flight. ``pause()`` is cooperative:
    a frame already being rendered finishes, nothing after it is scheduled.
    """

    def __init__(
        self,
        solver: TimingSolver,
        state: PlaybackState | None = None,
        is_enabled: Callable[[], bool] | None = None,
        clock: Callable[[], float] = time.monotonic,
        tick_interval: float = 0.0,
    ):
        self.solver = solver
        self.state = state or solver.playback or PlaybackState()
        solver.playback = self.state
        self.is_enabled = is_enabled
        self.clock = clock
        self.tick_interval = tick_interval
        self._stop: asyncio.Event | None = None
        self._task: asyncio.Task | None = None

    @property
    def is_playing(self) -> bool:
        return self.state.is_playing

    def play(self, mode: PlaybackMode, on_frame: FrameCallback) -> asyncio.Task:
        """Start playback as a task on the running loop."""
        stop = self._begin(mode)
        self._task = asyncio.get_running_loop().create_task(self._play(mode, on_frame, stop))
        return self._task

    def pause(self) -> None:
        if self._stop is None or self._stop.is_set():
            return
        logger.debug("Pausing at frame %d", self.state.current_frame)
        self._stop.set()
        self.state.is_playing = False

    async def wait(self) -> None:
        if self._task is not None:
            await self._task

    async def run(self, mode: PlaybackMode, on_frame: FrameCallback) -> None:
        """Play until paused (or, in EXHAUSTIVE mode, until the last frame)."""
        await self._play(mode, on_frame, self._begin(mode))

    def _begin(self, mode: PlaybackMode) -> asyncio.Event:
        self.pause()
        stop = asyncio.Event()
        self._stop = stop
        self.state.mode = mode
        self.state.is_playing = True
        logger.debug("Playing from frame %d in %s mode", self.state.current_frame, mode.value)
        return stop

    async def _play(self, mode: PlaybackMode, on_frame: FrameCallback, stop: asyncio.Event) -> None:
        try:
            if mode is PlaybackMode.EXHAUSTIVE:
                await self._run_exhaustive(on_frame, stop)
            else:
                await self._run_real_time(on_frame, stop)
        finally:
            if not stop.is_set():
                stop.set()
                self.state.is_playing = False

    async def _run_exhaustive(self, on_frame: FrameCallback, stop: asyncio.Event) -> None:
        while not stop.is_set():
            frame = self.state.current_frame
            await _deliver(on_frame, frame)
            if stop.is_set() or frame >= self.solver.total_frames:
                break
            await asyncio.sleep(self.tick_interval)
            if stop.is_set():
                break
            self.state.current_frame = frame + 1

    async def _run_real_time(self, on_frame: FrameCallback, stop: asyncio.Event) -> None:
        await _deliver(on_frame, self.state.current_frame)
        last_advance = self.clock()

        while not stop.is_set():
            await asyncio.sleep(self.tick_interval)
            if stop.is_set():
                break
            if self.is_enabled is not None and not self.is_enabled():
                logger.debug("Animation disabled, stopping playback")
                break

            total = self.solver.total_frames
            duration = self.solver.timing.duration
            if duration <= DURATION_EPSILON:
                # A single still frame; nothing to advance to.
                last_advance = self.clock()
                continue

            ms_per_frame = 1000.0 * duration / total
            elapsed_ms = (self.clock() - last_advance) * 1000.0
            if elapsed_ms < ms_per_frame:
                continue

            advance = int(elapsed_ms // ms_per_frame)
            if advance > 1:
                logger.debug("Skipping %d frames to keep up", advance - 1)
            last_advance += advance * ms_per_frame / 1000.0
            self.state.current_frame = (self.state.current_frame - 1 + advance) % total + 1
            await _deliver(on_frame, self.state.current_frame)


async def _deliver(on_frame: FrameCallback, frame: int) -> None:
    result = on_frame(frame)
    if inspect.isawaitable(result):
        await result
