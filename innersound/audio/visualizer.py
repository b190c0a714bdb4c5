"""Real-time frequency visualization driven by a frame clock."""

import logging
import queue
import threading
import time
from typing import Callable, Optional

import numpy as np

from ..models.audio import VisualizationFrame

logger = logging.getLogger(__name__)

FrameCallback = Callable[[float], None]


class FrameClock:
    """Display-refresh clock: runs each requested callback once on the next frame.

    Callbacks run on a single daemon thread, one per frame at ``fps``.
    """

    def __init__(self, fps: float = 60.0):
        if fps <= 0:
            raise ValueError(f"fps must be positive, got {fps}")
        self.interval = 1.0 / fps
        self._pending: "queue.Queue[FrameCallback]" = queue.Queue()
        self._shutdown_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._thread_lock = threading.Lock()

    def request_frame(self, callback: FrameCallback) -> None:
        """Schedule ``callback(timestamp)`` for the next frame."""
        self._ensure_running()
        self._pending.put(callback)

    def _ensure_running(self) -> None:
        with self._thread_lock:
            if self._thread and self._thread.is_alive():
                return
            self._shutdown_event.clear()
            self._thread = threading.Thread(target=self._run, daemon=True)
            self._thread.name = "FrameClockThread"
            self._thread.start()

    def _run(self) -> None:
        next_frame = time.monotonic()
        while not self._shutdown_event.is_set():
            try:
                callback = self._pending.get(timeout=0.1)
            except queue.Empty:
                continue

            next_frame = max(next_frame + self.interval, time.monotonic())
            delay = next_frame - time.monotonic()
            if delay > 0:
                time.sleep(delay)
            try:
                callback(time.time())
            except Exception as e:
                logger.error(f"Frame callback failed: {e}", exc_info=True)

    def shutdown(self, timeout: float = 1.0) -> None:
        self._shutdown_event.set()
        if self._thread is threading.current_thread():
            return
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning("Frame clock thread did not stop cleanly")


class StreamingVisualizer:
    """Pulls a frequency snapshot on every frame and hands out VisualizationFrames.

    The magnitude buffer is allocated once and reused for every frame.
    ``cancel()`` is single-shot: once it returns no further frame is emitted
    and no further callback is scheduled.
    """

    def __init__(self,
                 source,
                 on_frame: Callable[[VisualizationFrame], None],
                 clock: Optional[FrameClock] = None):
        """Initialize the visualizer.

        Args:
            source: Live frequency source with ``frequency_bin_count`` and
                ``read_magnitudes(buffer)``
            on_frame: Receives each frame on the clock thread
            clock: Frame clock, a private 60 fps clock when omitted
        """
        self.source = source
        self.on_frame = on_frame
        self.clock = clock or FrameClock()
        self._owns_clock = clock is None

        self._buffer = np.zeros(source.frequency_bin_count, dtype=np.uint8)
        self._view = self._buffer.view()
        self._view.flags.writeable = False

        self._lock = threading.RLock()
        self._cancelled = threading.Event()
        self._started = False
        self.frames_rendered = 0

    @property
    def is_running(self) -> bool:
        return self._started and not self._cancelled.is_set()

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()

    def start(self) -> None:
        with self._lock:
            if self._started:
                logger.warning("Visualizer already started")
                return
            self._started = True
            logger.info(f"Starting visualizer: {len(self._buffer)} bins")
            self._schedule()

    def cancel(self) -> None:
        with self._lock:
            if self._cancelled.is_set():
                return
            self._cancelled.set()
        logger.info(f"Visualizer cancelled after {self.frames_rendered} frames")
        if self._owns_clock:
            self.clock.shutdown()

    def _schedule(self) -> None:
        if self._cancelled.is_set():
            return
        self.clock.request_frame(self._tick)

    def _tick(self, timestamp: float) -> None:
        with self._lock:
            if self._cancelled.is_set():
                return
            self.source.read_magnitudes(self._buffer)
            frame = VisualizationFrame(
                sequence=self.frames_rendered,
                timestamp=timestamp,
                magnitudes=self._view,
            )
            self.frames_rendered += 1
            try:
                self.on_frame(frame)
            finally:
                self._schedule()
