"""Data models for the InnerSound application."""

from .analysis import (
    UNDETECTED_PITCH,
    AudioClip,
    AudioFeatures,
    AnalysisResult,
    Grade,
    GRADES,
    BreakdownField,
    ScoreBreakdown,
    Score,
    AnalysisReport,
)
from .audio import AudioStats, ChunkEvent, VisualizationFrame
from .session import (
    SessionState,
    FailureReason,
    StatusKind,
    CaptureConfig,
    SessionFailure,
    StatusMessage,
    CapturedClip,
    SessionInfo,
)

__all__ = [
    "UNDETECTED_PITCH",
    "AudioClip",
    "AudioFeatures",
    "AnalysisResult",
    "Grade",
    "GRADES",
    "BreakdownField",
    "ScoreBreakdown",
    "Score",
    "AnalysisReport",
    "AudioStats",
    "ChunkEvent",
    "VisualizationFrame",
    "SessionState",
    "FailureReason",
    "StatusKind",
    "CaptureConfig",
    "SessionFailure",
    "StatusMessage",
    "CapturedClip",
    "SessionInfo",
]
