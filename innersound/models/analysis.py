"""Analysis data models: decoded clips, extracted features and scores."""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Sequence, Tuple

import numpy as np


UNDETECTED_PITCH = -1.0


@dataclass(frozen=True)
class AudioClip:
    """Decoded PCM audio, one float array per channel in [-1, 1]."""
    sample_rate: int
    channels: Tuple[np.ndarray, ...]

    def __post_init__(self):
        if self.sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {self.sample_rate}")
        if not self.channels:
            raise ValueError("AudioClip needs at least one channel")
        frozen = []
        for channel in self.channels:
            array = np.array(channel, dtype=np.float64)
            array.flags.writeable = False
            frozen.append(array)
        object.__setattr__(self, "channels", tuple(frozen))

    @classmethod
    def mono(cls, samples: Sequence[float], sample_rate: int) -> "AudioClip":
        return cls(sample_rate=sample_rate, channels=(np.asarray(samples),))

    @property
    def first_channel(self) -> np.ndarray:
        return self.channels[0]

    @property
    def sample_count(self) -> int:
        return len(self.channels[0])

    @property
    def channel_count(self) -> int:
        return len(self.channels)


@dataclass(frozen=True)
class AudioFeatures:
    """Features extracted from the first channel of a clip."""
    duration_seconds: float
    sample_rate: int
    rms: float
    peak: float


@dataclass(frozen=True)
class AnalysisResult:
    """Everything measured about one clip."""
    duration_seconds: float
    sample_rate: int
    rms: float
    peak: float
    fundamental_freq_hz: float = UNDETECTED_PITCH

    def __post_init__(self):
        if self.fundamental_freq_hz < 0 and self.fundamental_freq_hz != UNDETECTED_PITCH:
            raise ValueError(
                f"fundamental_freq_hz must be >= 0 or {UNDETECTED_PITCH}, "
                f"got {self.fundamental_freq_hz}")

    @classmethod
    def from_features(cls, features: AudioFeatures, fundamental_freq_hz: float) -> "AnalysisResult":
        return cls(
            duration_seconds=features.duration_seconds,
            sample_rate=features.sample_rate,
            rms=features.rms,
            peak=features.peak,
            fundamental_freq_hz=fundamental_freq_hz,
        )

    @property
    def pitch_detected(self) -> bool:
        return self.fundamental_freq_hz > 0

    def to_dict(self) -> Dict[str, float]:
        return {
            "durationSeconds": self.duration_seconds,
            "sampleRate": self.sample_rate,
            "rms": self.rms,
            "peak": self.peak,
            "fundamentalFreqHz": self.fundamental_freq_hz,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, float]) -> "AnalysisResult":
        return cls(
            duration_seconds=float(data["durationSeconds"]),
            sample_rate=int(data["sampleRate"]),
            rms=float(data["rms"]),
            peak=float(data["peak"]),
            fundamental_freq_hz=float(data["fundamentalFreqHz"]),
        )


class Grade(Enum):
    """Letter grade, lowest first."""
    F = "F"
    D = "D"
    C = "C"
    B = "B"
    A = "A"


GRADES = (Grade.F, Grade.D, Grade.C, Grade.B, Grade.A)


class BreakdownField(Enum):
    """Aspects of a score, in display order."""
    VOLUME = "volume"
    DURATION = "duration"
    CLARITY = "clarity"
    PITCH = "pitch"

    @property
    def label(self) -> str:
        return f"{self.value.capitalize()} Level"


@dataclass(frozen=True)
class ScoreBreakdown:
    """Per-aspect scores, each in [0, 100]."""
    volume: int
    duration: int
    clarity: int
    pitch: int

    def get(self, field: BreakdownField) -> int:
        return getattr(self, field.value)

    def to_dict(self) -> Dict[str, int]:
        return {field.value: self.get(field) for field in BreakdownField}


@dataclass(frozen=True)
class Score:
    """Overall score derived from an AnalysisResult."""
    total: int
    breakdown: ScoreBreakdown
    grade: Grade

    def to_dict(self) -> Dict[str, object]:
        return {
            "total": self.total,
            "breakdown": self.breakdown.to_dict(),
            "grade": self.grade.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "Score":
        breakdown = data["breakdown"]
        return cls(
            total=int(data["total"]),
            breakdown=ScoreBreakdown(
                volume=int(breakdown["volume"]),
                duration=int(breakdown["duration"]),
                clarity=int(breakdown["clarity"]),
                pitch=int(breakdown["pitch"]),
            ),
            grade=Grade(data["grade"]),
        )


@dataclass(frozen=True)
class AnalysisReport:
    """An AnalysisResult together with its Score."""
    result: AnalysisResult
    score: Score
