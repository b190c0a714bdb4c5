"""Offline analysis: features, pitch and scoring."""

from .features import extract_features
from .pitch import PitchEstimator, estimate_pitch
from .scoring import score_analysis
from .pipeline import AnalysisPipeline

__all__ = [
    "extract_features",
    "PitchEstimator",
    "estimate_pitch",
    "score_analysis",
    "AnalysisPipeline",
]
