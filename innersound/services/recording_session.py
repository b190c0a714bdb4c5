"""Recording session: device acquisition, chunked capture and analysis handoff."""

import logging
import random
import string
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from ..analysis.pipeline import AnalysisPipeline
from ..audio.analyser import FrequencyAnalyser
from ..audio.capture import AudioCapture
from ..audio.codecs import DEFAULT_PREFERRED_FORMATS, EncoderRegistry
from ..audio.frame_pub import FramePublisher
from ..audio.visualizer import FrameClock, StreamingVisualizer
from ..exceptions import AcquisitionError, AnalysisError
from ..models.analysis import AnalysisReport
from ..models.audio import AudioStats, ChunkEvent
from ..models.session import (
    CaptureConfig,
    CapturedClip,
    FailureReason,
    SessionFailure,
    SessionState,
    StatusKind,
    StatusMessage,
)
from .status import DEFAULT_STATUS_TOPIC, StatusChannel

logger = logging.getLogger(__name__)

STATUS_TEXTS = {
    StatusKind.REQUESTING: "Requesting microphone access...",
    StatusKind.GRANTED: "Mic access granted",
    StatusKind.CAPTURE_STARTED: "Recording in progress...",
    StatusKind.STOPPING: "Stopping recording...",
    StatusKind.DECODING: "Processing recording...",
    StatusKind.COMPLETE: "Recording complete!",
}

FAILURE_PREFIXES = {
    FailureReason.PERMISSION_DENIED: "Error starting recording: ",
    FailureReason.DEVICE_NOT_FOUND: "Error starting recording: ",
    FailureReason.ACQUISITION_FAILED: "Error starting recording: ",
    FailureReason.ANALYSIS_FAILED: "Analysis error: ",
}


def generate_session_id() -> str:
    """Timestamp-based session id with a random suffix."""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    random_suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=4))
    return f"{timestamp}_{random_suffix}"


@dataclass
class SessionSettings:
    """Tunable parameters of a recording session."""
    capture_config: CaptureConfig = field(default_factory=CaptureConfig)
    preferred_formats: Sequence[str] = tuple(DEFAULT_PREFERRED_FORMATS)
    timeslice_ms: int = 250
    block_size: int = 1024
    fft_size: int = 256
    smoothing_time_constant: float = 0.8
    min_decibels: float = -100.0
    max_decibels: float = -30.0
    fps: float = 60.0
    status_topic: str = DEFAULT_STATUS_TOPIC
    frame_topic: str = "visualizer.frame"

    @classmethod
    def from_config(cls, config) -> "SessionSettings":
        return cls(
            capture_config=CaptureConfig(
                echo_cancellation=config.get('capture.echo_cancellation', True),
                noise_suppression=config.get('capture.noise_suppression', True),
                auto_gain_control=config.get('capture.auto_gain_control', True),
            ),
            preferred_formats=tuple(config.get('encoding.preferred_formats', DEFAULT_PREFERRED_FORMATS)),
            timeslice_ms=config.get('audio.timeslice_ms', 250),
            block_size=config.get('audio.block_size', 1024),
            fft_size=config.get('visualizer.fft_size', 256),
            smoothing_time_constant=config.get('visualizer.smoothing_time_constant', 0.8),
            min_decibels=config.get('visualizer.min_decibels', -100.0),
            max_decibels=config.get('visualizer.max_decibels', -30.0),
            fps=config.get('visualizer.fps', 60),
        )


class RecordingSession:
    """One capture-to-score lifecycle.

    ``IDLE -> REQUESTING -> CAPTURING -> STOPPING -> DECODING -> COMPLETE``,
    or ``FAILED`` from any non-terminal state. ``start()`` and ``stop()`` are
    no-ops outside IDLE and CAPTURING respectively, so UI triggers can call
    them freely. A finished session cannot be restarted.
    """

    def __init__(self,
                 device,
                 pipeline: Optional[AnalysisPipeline] = None,
                 settings: Optional[SessionSettings] = None,
                 encoders: Optional[EncoderRegistry] = None,
                 clock: Optional[FrameClock] = None,
                 session_id: Optional[str] = None):
        """Initialize a session.

        Args:
            device: Capture collaborator with ``acquire(config)`` and ``release(handle)``
            pipeline: Analysis run over the captured clip
            settings: Session parameters, defaults when omitted
            encoders: Codec probe used to pick the encoding
            clock: Frame clock for the visualizer; the session runs its own when omitted
            session_id: Identifier used in status messages and storage
        """
        self.device = device
        self.pipeline = pipeline or AnalysisPipeline()
        self.settings = settings or SessionSettings()
        self.encoders = encoders or EncoderRegistry()
        self.session_id = session_id or generate_session_id()
        self.created_at = datetime.now()

        self.status_channel = StatusChannel(self.settings.status_topic)
        self.frame_publisher = FramePublisher(self.settings.frame_topic)

        self.state = SessionState.IDLE
        self.encoding_format: Optional[str] = None
        self.failure: Optional[SessionFailure] = None
        self.clip: Optional[CapturedClip] = None
        self.report: Optional[AnalysisReport] = None

        self._clock = clock
        self._owns_clock = clock is None
        self._handle = None
        self._released = False
        self._capture: Optional[AudioCapture] = None
        self.analyser: Optional[FrequencyAnalyser] = None
        self.visualizer: Optional[StreamingVisualizer] = None

        self._chunks: List[bytes] = []
        self._chunks_lock = threading.Lock()
        self._finalized = False
        self.discarded_chunks = 0

        # Guards state transitions; re-entrant so status listeners may call back in
        self._lock = threading.RLock()

    @property
    def chunks(self) -> Tuple[bytes, ...]:
        with self._chunks_lock:
            return tuple(self._chunks)

    @property
    def status(self) -> Optional[str]:
        latest = self.status_channel.latest
        return latest.text if latest else None

    @property
    def status_history(self) -> List[StatusMessage]:
        return list(self.status_channel.history)

    def start(self) -> None:
        """Acquire the microphone and begin capturing."""
        with self._lock:
            if self.state is not SessionState.IDLE:
                logger.debug(f"start() ignored in state {self.state.value}")
                return
            self._transition(SessionState.REQUESTING, StatusKind.REQUESTING)

        try:
            self._handle = self.device.acquire(self.settings.capture_config)
        except AcquisitionError as e:
            logger.error(f"Microphone acquisition failed: {e.reason.value}: {e}")
            self._fail(e.reason, e.message or e.reason.value)
            return
        except Exception as e:
            logger.error(f"Microphone acquisition failed: {e}", exc_info=True)
            self._fail(FailureReason.ACQUISITION_FAILED, str(e))
            return

        self.encoding_format = self.encoders.select(self.settings.preferred_formats)
        if self.encoding_format is None:
            self._release_device()
            self._fail(FailureReason.ACQUISITION_FAILED,
                       f"No supported encoding among {list(self.settings.preferred_formats)}")
            return

        try:
            self._prepare_capture()
        except Exception as e:
            logger.error(f"Capture setup failed: {e}", exc_info=True)
            self._release_device()
            self._fail(FailureReason.ACQUISITION_FAILED, str(e) or type(e).__name__)
            return

        with self._lock:
            self._transition(SessionState.CAPTURING, StatusKind.GRANTED)
            self._capture.start_recording()
            self.visualizer.start()
            self._notify(StatusKind.CAPTURE_STARTED, STATUS_TEXTS[StatusKind.CAPTURE_STARTED])

    def _prepare_capture(self) -> None:
        """Build the encoder, analyser, capture loop and visualizer for the acquired handle."""
        encoder = self.encoders.create(self.encoding_format, self._handle.sample_rate,
                                       self._handle.channels)
        self.encoding_format = encoder.mime_type
        logger.info(f"Session {self.session_id} encoding as {self.encoding_format}")

        self.analyser = FrequencyAnalyser(
            fft_size=self.settings.fft_size,
            smoothing_time_constant=self.settings.smoothing_time_constant,
            min_decibels=self.settings.min_decibels,
            max_decibels=self.settings.max_decibels,
        )
        self._capture = AudioCapture(
            handle=self._handle,
            encoder=encoder,
            callback=self._on_chunk,
            on_block=self.analyser.write,
            on_error=self._on_capture_error,
            timeslice_ms=self.settings.timeslice_ms,
            block_size=self.settings.block_size,
        )
        if self._clock is None:
            self._clock = FrameClock(fps=self.settings.fps)
        self.visualizer = StreamingVisualizer(self.analyser, self.frame_publisher.publish_frame,
                                              clock=self._clock)

    def stop(self) -> None:
        """Stop capturing, release the microphone and analyze the clip."""
        with self._lock:
            if self.state is not SessionState.CAPTURING:
                logger.debug(f"stop() ignored in state {self.state.value}")
                return
            self._transition(SessionState.STOPPING, StatusKind.STOPPING)

        self.visualizer.cancel()
        if self._owns_clock:
            self._clock.shutdown()
        self._capture.stop_recording()
        self._release_device()
        self._decode()

    def _decode(self) -> None:
        with self._lock:
            self._transition(SessionState.DECODING, StatusKind.DECODING)

        with self._chunks_lock:
            self._finalized = True
            chunk_count = len(self._chunks)
            data = b"".join(self._chunks)
            self._chunks = []
        self.clip = CapturedClip(data=data, mime_type=self.encoding_format, chunk_count=chunk_count)
        logger.info(f"Session {self.session_id} captured {chunk_count} chunks, {len(data)} bytes")

        try:
            report = self.pipeline.analyze(self.clip.data, self.clip.mime_type)
        except AnalysisError as e:
            self._fail(FailureReason.ANALYSIS_FAILED, str(e))
            return
        except Exception as e:
            logger.error(f"Unexpected analysis failure: {e}", exc_info=True)
            self._fail(FailureReason.ANALYSIS_FAILED, str(e) or type(e).__name__)
            return

        with self._lock:
            self.report = report
            self._transition(SessionState.COMPLETE, StatusKind.COMPLETE)

    def _on_chunk(self, event: ChunkEvent) -> None:
        with self._chunks_lock:
            if event.size == 0:
                self.discarded_chunks += 1
                logger.debug(f"Discarding empty chunk {event.chunk_id}")
                return
            if self._finalized:
                logger.warning(f"Chunk {event.chunk_id} arrived after the clip was finalized")
                return
            self._chunks.append(event.data)

    def _on_capture_error(self, error: Exception) -> None:
        with self._lock:
            self._notify(StatusKind.RECORDING_ERROR, f"Recording error: {error}")

    def _release_device(self) -> None:
        if self._handle is None or self._released:
            return
        self._released = True
        try:
            self.device.release(self._handle)
        except Exception as e:
            logger.warning(f"Error releasing capture device: {e}")

    def _fail(self, reason: FailureReason, message: str) -> None:
        with self._lock:
            self.failure = SessionFailure(reason=reason, message=message)
            text = FAILURE_PREFIXES[reason] + message
            self.state = SessionState.FAILED
            self._notify(StatusKind.for_failure(reason), text)

    def _transition(self, state: SessionState, kind: StatusKind) -> None:
        logger.debug(f"Session {self.session_id}: {self.state.value} -> {state.value}")
        self.state = state
        self._notify(kind, STATUS_TEXTS[kind])

    def _notify(self, kind: StatusKind, text: str) -> None:
        self.status_channel.publish(StatusMessage(
            session_id=self.session_id,
            state=self.state,
            kind=kind,
            text=text,
        ))

    def get_recording_stats(self) -> Optional[AudioStats]:
        """Get capture statistics, None before capture started."""
        if self._capture:
            return self._capture.get_recording_stats()
        return None


def probe_microphone(device, capture_config: Optional[CaptureConfig] = None) -> str:
    """Open and immediately release the microphone, returning a status line."""
    try:
        handle = device.acquire(capture_config or CaptureConfig())
    except Exception as e:
        logger.warning(f"Microphone test failed: {e}")
        return f"Mic test failed: {e}"
    device.release(handle)
    return "Microphone test successful!"
