"""Session-related data models."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class SessionState(Enum):
    """Lifecycle states of a recording session."""
    IDLE = "idle"
    REQUESTING = "requesting"
    CAPTURING = "capturing"
    STOPPING = "stopping"
    DECODING = "decoding"
    COMPLETE = "complete"
    FAILED = "failed"


class FailureReason(Enum):
    """Reasons a session can end in FAILED."""
    PERMISSION_DENIED = "PermissionDenied"
    DEVICE_NOT_FOUND = "DeviceNotFound"
    ACQUISITION_FAILED = "AcquisitionFailed"
    ANALYSIS_FAILED = "AnalysisFailed"


class StatusKind(Enum):
    """What a status message reports."""
    REQUESTING = "requesting"
    GRANTED = "granted"
    CAPTURE_STARTED = "capture_started"
    STOPPING = "stopping"
    DECODING = "decoding"
    COMPLETE = "complete"
    RECORDING_ERROR = "recording_error"
    PERMISSION_DENIED = "permission_denied"
    DEVICE_NOT_FOUND = "device_not_found"
    ACQUISITION_FAILED = "acquisition_failed"
    ANALYSIS_FAILED = "analysis_failed"

    @classmethod
    def for_failure(cls, reason: FailureReason) -> "StatusKind":
        return {
            FailureReason.PERMISSION_DENIED: cls.PERMISSION_DENIED,
            FailureReason.DEVICE_NOT_FOUND: cls.DEVICE_NOT_FOUND,
            FailureReason.ACQUISITION_FAILED: cls.ACQUISITION_FAILED,
            FailureReason.ANALYSIS_FAILED: cls.ANALYSIS_FAILED,
        }[reason]


@dataclass(frozen=True)
class CaptureConfig:
    """Capture constraints handed to the device collaborator as-is."""
    echo_cancellation: bool = True
    noise_suppression: bool = True
    auto_gain_control: bool = True


@dataclass(frozen=True)
class SessionFailure:
    """Why a session ended in FAILED."""
    reason: FailureReason
    message: str


@dataclass(frozen=True)
class StatusMessage:
    """A single human-readable status update emitted by a session."""
    session_id: str
    state: SessionState
    kind: StatusKind
    text: str
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class CapturedClip:
    """All chunks of a session joined into one encoded buffer."""
    data: bytes
    mime_type: str
    chunk_count: int = 0

    @property
    def size_bytes(self) -> int:
        return len(self.data)


@dataclass
class SessionInfo:
    """Information about a stored session."""
    session_id: str
    start_time: datetime
    state: str
    mime_type: Optional[str]
    clip_size_bytes: int
    total_chunks: int
    audio_file: Optional[str] = None
    report_file: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["start_time"] = self.start_time.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionInfo":
        return cls(**{**data, "start_time": datetime.fromisoformat(data["start_time"])})
