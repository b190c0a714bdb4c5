"""Feature extraction over decoded audio clips."""

import logging

import numpy as np

from ..models.analysis import AudioClip, AudioFeatures

logger = logging.getLogger(__name__)


def compute_rms(samples: np.ndarray) -> float:
    """Root-mean-square of ``samples``; 0.0 for an empty array."""
    if len(samples) == 0:
        return 0.0
    samples = np.asarray(samples, dtype=np.float64)
    return float(np.sqrt(np.mean(samples * samples)))


def compute_peak(samples: np.ndarray) -> float:
    """Largest absolute amplitude; 0.0 for an empty array."""
    if len(samples) == 0:
        return 0.0
    return float(np.max(np.abs(samples)))


def extract_features(clip: AudioClip) -> AudioFeatures:
    """Extract duration, rms and peak from the first channel of ``clip``.

    Only the first channel is analyzed, whatever the channel count.

    Args:
        clip: Decoded audio clip

    Returns:
        AudioFeatures for the clip
    """
    samples = clip.first_channel
    if clip.channel_count > 1:
        logger.debug(f"Clip has {clip.channel_count} channels, analyzing the first one only")

    features = AudioFeatures(
        duration_seconds=clip.sample_count / clip.sample_rate,
        sample_rate=clip.sample_rate,
        rms=compute_rms(samples),
        peak=min(1.0, compute_peak(samples)),
    )
    logger.debug(f"Extracted features: {features}")
    return features
