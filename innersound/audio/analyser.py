"""Live frequency analysis of the most recent captured samples."""

import logging
import threading

import numpy as np
from scipy.signal import get_window

logger = logging.getLogger(__name__)


class FrequencyAnalyser:
    """Byte-scaled magnitude spectrum of the latest ``fft_size`` samples.

    Behaves like a browser analyser node: Blackman window, magnitudes
    smoothed over time, converted to decibels and mapped linearly from
    [min_decibels, max_decibels] onto [0, 255].

    The capture thread calls ``write()``; the visualizer calls
    ``read_magnitudes()`` from the frame clock thread.
    """

    def __init__(self,
                 fft_size: int = 256,
                 smoothing_time_constant: float = 0.8,
                 min_decibels: float = -100.0,
                 max_decibels: float = -30.0):
        if fft_size < 32 or fft_size & (fft_size - 1):
            raise ValueError(f"fft_size must be a power of two >= 32, got {fft_size}")
        if not 0.0 <= smoothing_time_constant <= 1.0:
            raise ValueError(f"smoothing_time_constant must be in [0, 1], got {smoothing_time_constant}")
        if min_decibels >= max_decibels:
            raise ValueError("min_decibels must be lower than max_decibels")

        self.fft_size = fft_size
        self.smoothing_time_constant = smoothing_time_constant
        self.min_decibels = min_decibels
        self.max_decibels = max_decibels

        self._window = get_window("blackman", fft_size)
        self._samples = np.zeros(fft_size, dtype=np.float64)
        self._smoothed = np.zeros(self.frequency_bin_count, dtype=np.float64)
        self._lock = threading.Lock()
        self.samples_written = 0

    @property
    def frequency_bin_count(self) -> int:
        return self.fft_size // 2

    def write(self, samples: np.ndarray) -> None:
        """Push new mono float samples, keeping only the latest fft_size."""
        count = len(samples)
        if count == 0:
            return
        with self._lock:
            if count >= self.fft_size:
                self._samples[:] = samples[-self.fft_size:]
            else:
                self._samples[:-count] = self._samples[count:]
                self._samples[-count:] = samples
            self.samples_written += count

    def read_magnitudes(self, buffer: np.ndarray) -> None:
        """Fill ``buffer`` (uint8, at most frequency_bin_count long) in place."""
        bins = min(len(buffer), self.frequency_bin_count)
        with self._lock:
            spectrum = np.fft.rfft(self._samples * self._window)
            magnitude = np.abs(spectrum[:self.frequency_bin_count]) / self.fft_size
            tau = self.smoothing_time_constant
            self._smoothed *= tau
            self._smoothed += (1.0 - tau) * magnitude
            smoothed = self._smoothed[:bins]

        with np.errstate(divide="ignore"):
            decibels = 20.0 * np.log10(smoothed)
        scale = 255.0 / (self.max_decibels - self.min_decibels)
        scaled = np.clip((decibels - self.min_decibels) * scale, 0, 255)
        np.copyto(buffer[:bins], scaled.astype(np.uint8), casting="unsafe")

    def reset(self) -> None:
        with self._lock:
            self._samples.fill(0.0)
            self._smoothed.fill(0.0)
            self.samples_written = 0
