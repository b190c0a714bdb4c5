"""Autocorrelation pitch estimation for monophonic vocal tones."""

import logging

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from ..models.analysis import UNDETECTED_PITCH
from .features import compute_rms

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = 2048
DEFAULT_SILENCE_THRESHOLD = 0.01
DEFAULT_CORRELATION_THRESHOLD = 0.9


class PitchEstimator:
    """Estimates the fundamental frequency from the start of a clip.

    The first ``window`` samples are compared against lagged copies of
    themselves using a mean absolute difference. The lag with the highest
    correlation above ``correlation_threshold`` is the period. This is an
    O(window^2) scan, fine for one post-hoc analysis but not per frame.

    Clips shorter than ``window`` samples are reported as undetected rather
    than padded.
    """

    def __init__(self,
                 window: int = DEFAULT_WINDOW,
                 silence_threshold: float = DEFAULT_SILENCE_THRESHOLD,
                 correlation_threshold: float = DEFAULT_CORRELATION_THRESHOLD):
        if window < 4 or window % 2:
            raise ValueError(f"Pitch window must be an even number >= 4, got {window}")
        self.window = window
        self.max_lag = window // 2
        self.silence_threshold = silence_threshold
        self.correlation_threshold = correlation_threshold

    def correlations(self, samples: np.ndarray) -> np.ndarray:
        """Correlation for every lag in [1, window/2), index 0 is lag 1."""
        frame = np.asarray(samples[:self.window], dtype=np.float64)
        half = self.max_lag
        # Row k holds frame[k:k+half]; rows 1..half-1 are the lagged copies.
        lagged = sliding_window_view(frame, half)[1:half]
        differences = np.abs(lagged - frame[:half]).sum(axis=1)
        return 1.0 - differences / half

    def estimate(self, samples: np.ndarray, sample_rate: int) -> float:
        """Return the fundamental frequency in Hz, or -1 when undetected."""
        if len(samples) < self.window:
            logger.debug(f"Clip has {len(samples)} samples, fewer than the {self.window}-sample "
                         f"pitch window; pitch undetected")
            return UNDETECTED_PITCH

        rms = compute_rms(samples[:self.window])
        if rms < self.silence_threshold:
            logger.debug(f"Window rms {rms:.4f} below silence threshold; pitch undetected")
            return UNDETECTED_PITCH

        correlations = self.correlations(samples)
        best_index = int(np.argmax(correlations))
        best_correlation = float(correlations[best_index])
        if best_correlation <= self.correlation_threshold:
            logger.debug(f"Best correlation {best_correlation:.3f} not above "
                         f"{self.correlation_threshold}; pitch undetected")
            return UNDETECTED_PITCH

        best_lag = best_index + 1
        frequency = sample_rate / best_lag
        logger.debug(f"Estimated pitch: {frequency:.2f} Hz (lag {best_lag}, "
                     f"correlation {best_correlation:.3f})")
        return frequency


def estimate_pitch(samples: np.ndarray, sample_rate: int) -> float:
    """Estimate pitch with the default window and thresholds."""
    return PitchEstimator().estimate(samples, sample_rate)
