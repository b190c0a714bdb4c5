"""Maps analysis results to a 0-100 score and a letter grade."""

import math

from ..models.analysis import AnalysisResult, GRADES, Grade, Score, ScoreBreakdown

PITCH_DETECTED_SCORE = 75
PITCH_UNDETECTED_SCORE = 25


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp(value: float, low: float = 0, high: float = 100) -> float:
    return max(low, min(high, value))


def grade_for(raw_total: float) -> Grade:
    """Grade for an unrounded total; the clamp happens before the division."""
    index = int(math.floor(clamp(raw_total) / 20))
    return GRADES[min(index, len(GRADES) - 1)]


def score_analysis(result: AnalysisResult) -> Score:
    """Score a clip. Pure and deterministic."""
    volume_raw = result.rms * 1000
    duration_raw = result.duration_seconds * 10
    raw_total = volume_raw + duration_raw

    breakdown = ScoreBreakdown(
        volume=int(clamp(round_half_up(volume_raw))),
        duration=int(clamp(round_half_up(duration_raw))),
        clarity=int(clamp(round_half_up(result.peak * 100))),
        pitch=PITCH_DETECTED_SCORE if result.fundamental_freq_hz > 0 else PITCH_UNDETECTED_SCORE,
    )
    return Score(
        total=int(clamp(round_half_up(raw_total))),
        breakdown=breakdown,
        grade=grade_for(raw_total),
    )
