"""Analysis pipeline: decode, extract features, estimate pitch, score."""

import logging
from pathlib import Path
from typing import Optional

from ..audio.codecs import AudioDecoder, guess_format
from ..exceptions import AnalysisError, DecodeError
from ..models.analysis import AnalysisReport, AnalysisResult, AudioClip
from .features import extract_features
from .pitch import PitchEstimator
from .scoring import score_analysis

logger = logging.getLogger(__name__)


class AnalysisPipeline:
    """Turns encoded audio into an AnalysisReport.

    Shared by the recording session and the file ingestion path, so both
    produce identical results for identical audio.
    """

    def __init__(self,
                 decoder: Optional[AudioDecoder] = None,
                 pitch_estimator: Optional[PitchEstimator] = None):
        self.decoder = decoder or AudioDecoder()
        self.pitch_estimator = pitch_estimator or PitchEstimator()

    @classmethod
    def from_config(cls, config) -> "AnalysisPipeline":
        return cls(pitch_estimator=PitchEstimator(
            window=config.get('analysis.pitch_window', 2048),
            silence_threshold=config.get('analysis.silence_threshold', 0.01),
            correlation_threshold=config.get('analysis.correlation_threshold', 0.9),
        ))

    def analyze(self, data: bytes, format_hint: str) -> AnalysisReport:
        """Decode and analyze encoded audio.

        Raises:
            AnalysisError: wrapping the DecodeError or any extraction failure
        """
        try:
            clip = self.decoder.decode(data, format_hint)
        except DecodeError as e:
            logger.error(f"Decoding {format_hint} failed: {e}")
            raise AnalysisError(str(e)) from e
        return self.analyze_clip(clip)

    def analyze_clip(self, clip: AudioClip) -> AnalysisReport:
        try:
            features = extract_features(clip)
            frequency = self.pitch_estimator.estimate(clip.first_channel, clip.sample_rate)
            result = AnalysisResult.from_features(features, frequency)
            score = score_analysis(result)
        except (ValueError, ArithmeticError) as e:
            logger.error(f"Analysis failed: {e}", exc_info=True)
            raise AnalysisError(str(e)) from e

        logger.info(f"Analysis complete: {result.duration_seconds:.2f}s, rms={result.rms:.4f}, "
                    f"peak={result.peak:.3f}, pitch={result.fundamental_freq_hz:.1f}Hz -> "
                    f"{score.total}/100 ({score.grade.value})")
        return AnalysisReport(result=result, score=score)

    def analyze_file(self, path: str, format_hint: Optional[str] = None) -> AnalysisReport:
        """Analyze an audio file directly, bypassing capture.

        Args:
            path: Path to the audio file
            format_hint: MIME type; guessed from the extension when omitted

        Raises:
            AnalysisError: if the file cannot be read, decoded or analyzed
        """
        file_path = Path(path)
        format_hint = format_hint or guess_format(str(file_path))
        if not format_hint:
            raise AnalysisError(f"Cannot determine audio format of {file_path.name}")

        try:
            data = file_path.read_bytes()
        except OSError as e:
            raise AnalysisError(f"Cannot read {file_path}: {e}") from e

        logger.info(f"Analyzing {file_path} ({len(data)} bytes, {format_hint})")
        return self.analyze(data, format_hint)
