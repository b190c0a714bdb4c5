"""Audio capture loop with timed chunk emission and live sample feed."""

import time
import logging
from threading import Thread, Event
from typing import Optional, Callable
from datetime import datetime

import numpy as np

from ..models.audio import AudioStats, ChunkEvent


logger = logging.getLogger(__name__)


class AudioCapture:
    """Reads an open capture handle in a background thread.

    Every block read is handed to ``on_block`` (live analysis). Blocks are
    accumulated and emitted as one encoded chunk every ``timeslice_ms``;
    whatever is pending when recording stops is emitted as a final chunk,
    which may be empty.
    """

    def __init__(
        self,
        handle,
        encoder,
        callback: Callable[[ChunkEvent], None],
        on_block: Optional[Callable[[np.ndarray], None]] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
        timeslice_ms: int = 250,
        block_size: int = 1024,
    ):
        """Initialize audio capture.

        Args:
            handle: Open capture handle (``read(frames)``, ``sample_rate``, ``channels``)
            encoder: Chunk encoder (``encode(pcm)``, ``mime_type``)
            callback: Receives every emitted chunk
            on_block: Receives mono float samples of every block read
            on_error: Called once if reading the device fails
            timeslice_ms: Chunk emission interval
            block_size: Frames per device read
        """
        if timeslice_ms <= 0:
            raise ValueError(f"timeslice_ms must be positive, got {timeslice_ms}")
        self.handle = handle
        self.encoder = encoder
        self.chunk_callback = callback
        self.on_block = on_block
        self.on_error = on_error
        self.sample_rate = handle.sample_rate
        self.channels = handle.channels
        self.timeslice_ms = timeslice_ms
        self.block_size = block_size
        self.frames_per_chunk = max(1, int(self.sample_rate * timeslice_ms / 1000))

        # Recording thread management
        self.recording_thread: Optional[Thread] = None
        self.stop_event = Event()
        self.is_recording = False

        # Statistics tracking
        self.start_time: Optional[datetime] = None
        self.total_blocks = 0
        self.total_chunks = 0
        self.total_bytes = 0

        self._pending = bytearray()
        self._pending_frames = 0

    def start_recording(self) -> None:
        """Start continuous recording in background thread."""
        if self.is_recording:
            logger.warning("Recording already in progress")
            return

        logger.info(f"Starting audio capture: {self.timeslice_ms}ms chunks of "
                    f"{self.frames_per_chunk} frames, {self.encoder.mime_type}")
        self.stop_event.clear()
        self.start_time = datetime.now()
        self.total_blocks = 0
        self.total_chunks = 0
        self.total_bytes = 0

        self.recording_thread = Thread(target=self._record_continuously, daemon=True)
        self.recording_thread.name = "AudioCaptureThread"
        self.is_recording = True
        self.recording_thread.start()

    def stop_recording(self) -> None:
        """Stop recording; returns after the final chunk was emitted."""
        if not self.is_recording:
            logger.warning("No recording in progress")
            return

        logger.info("Stopping audio capture")
        self.stop_event.set()

        if self.recording_thread and self.recording_thread.is_alive():
            self.recording_thread.join(timeout=2.0)
            if self.recording_thread.is_alive():
                logger.warning("Recording thread did not stop cleanly")

        self.is_recording = False
        logger.info(f"Capture stopped. Total chunks: {self.total_chunks}, bytes: {self.total_bytes}")

    def _read_block(self) -> bytes:
        block = self.handle.read(self.block_size)
        self.total_blocks += 1
        return block

    def _feed_block(self, block: bytes) -> None:
        if not block:
            return
        self._pending.extend(block)
        self._pending_frames += len(block) // (2 * self.channels)
        if self.on_block:
            samples = np.frombuffer(block, dtype=np.int16)
            usable = len(samples) - len(samples) % self.channels
            mono = samples[:usable].reshape(-1, self.channels)[:, 0] / 32768.0
            self.on_block(mono)

    def _emit_chunk(self, final: bool = False) -> None:
        data = self.encoder.encode(bytes(self._pending))
        self._pending.clear()
        self._pending_frames = 0

        self.total_chunks += 1
        self.total_bytes += len(data)
        event = ChunkEvent(
            chunk_id=f"chunk_{self.total_chunks}",
            data=data,
            timestamp=time.time(),
            sequence_number=self.total_chunks,
            mime_type=self.encoder.mime_type,
            sample_rate=self.sample_rate,
            channels=self.channels,
            final=final,
        )
        self.chunk_callback(event)

    def _record_continuously(self) -> None:
        """Internal method: continuous recording loop in background thread."""
        try:
            while not self.stop_event.is_set():
                self._feed_block(self._read_block())
                if self._pending_frames >= self.frames_per_chunk:
                    self._emit_chunk()
        except Exception as e:
            logger.error(f"Error reading audio: {e}", exc_info=True)
            if self.on_error:
                self.on_error(e)
        finally:
            # Flush what is left so consumers see the end of the recording
            self._emit_chunk(final=True)

    def get_recording_stats(self) -> AudioStats:
        """Get current recording statistics."""
        duration = 0.0
        if self.start_time:
            duration = (datetime.now() - self.start_time).total_seconds()

        return AudioStats(
            is_recording=self.is_recording,
            duration_seconds=duration,
            sample_rate=self.sample_rate,
            block_size=self.block_size,
            total_blocks=self.total_blocks,
            total_chunks=self.total_chunks,
            total_bytes=self.total_bytes,
        )
