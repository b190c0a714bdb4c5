"""Services layer for InnerSound application logic."""

from .recording_session import RecordingSession, SessionSettings, probe_microphone
from .status import StatusChannel

__all__ = [
    "RecordingSession",
    "SessionSettings",
    "probe_microphone",
    "StatusChannel",
]
