"""Chunk encoders, the codec probe and the decoder used by analysis."""

import io
import logging
from pathlib import Path
from typing import Dict, Optional, Tuple, Type

import numpy as np
import soundfile as sf
from scipy.io import wavfile

from ..exceptions import DecodeError
from ..models.analysis import AudioClip

logger = logging.getLogger(__name__)

L16 = "audio/L16"
WAV_TYPES = ("audio/wav", "audio/x-wav", "audio/wave")

DEFAULT_PREFERRED_FORMATS = ["audio/webm", "audio/mp4", L16]

# Container formats read through libsndfile
SOUNDFILE_TYPES = {
    "audio/flac": "FLAC",
    "audio/x-flac": "FLAC",
    "audio/ogg": "OGG",
    "audio/vorbis": "OGG",
    "audio/opus": "OGG",
    "audio/aiff": "AIFF",
    "audio/x-aiff": "AIFF",
    "audio/mpeg": "MP3",
    "audio/mp3": "MP3",
}

EXTENSION_FORMATS = {
    ".wav": "audio/wav",
    ".wave": "audio/wav",
    ".l16": L16,
    ".pcm": L16,
    ".flac": "audio/flac",
    ".ogg": "audio/ogg",
    ".oga": "audio/ogg",
    ".opus": "audio/opus",
    ".aif": "audio/aiff",
    ".aiff": "audio/aiff",
    ".mp3": "audio/mpeg",
}


def parse_mime(mime_type: str) -> Tuple[str, Dict[str, str]]:
    """Split ``audio/L16;rate=16000;channels=1`` into base type and parameters."""
    parts = [part.strip() for part in mime_type.split(";") if part.strip()]
    if not parts:
        return "", {}
    params = {}
    for part in parts[1:]:
        key, _, value = part.partition("=")
        params[key.strip().lower()] = value.strip().strip('"')
    return parts[0].lower(), params


def guess_format(path: str) -> Optional[str]:
    """Guess a MIME type from a file extension."""
    return EXTENSION_FORMATS.get(Path(path).suffix.lower())


class L16Encoder:
    """Encodes native int16 PCM as network byte order linear PCM (RFC 2586).

    Chunks of L16 concatenate into a valid stream, so a session can join its
    chunks without re-encoding.
    """

    def __init__(self, sample_rate: int, channels: int = 1):
        self.sample_rate = sample_rate
        self.channels = channels

    @property
    def mime_type(self) -> str:
        return f"{L16};rate={self.sample_rate};channels={self.channels}"

    def encode(self, pcm: bytes) -> bytes:
        if not pcm:
            return b""
        return np.frombuffer(pcm, dtype=np.int16).astype(">i2").tobytes()


class EncoderRegistry:
    """Codec probe: answers which encodings the capture loop can produce."""

    def __init__(self, encoders: Optional[Dict[str, Type]] = None):
        self.encoders = dict(encoders) if encoders is not None else {L16.lower(): L16Encoder}

    def supports(self, format_name: str) -> bool:
        base, _ = parse_mime(format_name)
        return base in self.encoders

    def select(self, preferred_formats) -> Optional[str]:
        """First supported format in priority order, or None."""
        for format_name in preferred_formats:
            supported = self.supports(format_name)
            logger.debug(f"Encoding {format_name}: {'supported' if supported else 'not supported'}")
            if supported:
                return format_name
        return None

    def create(self, format_name: str, sample_rate: int, channels: int = 1):
        base, _ = parse_mime(format_name)
        if base not in self.encoders:
            raise ValueError(f"Unsupported encoding: {format_name}")
        return self.encoders[base](sample_rate, channels)


class AudioDecoder:
    """Decodes L16, WAV and libsndfile containers into float samples in [-1, 1]."""

    def decode(self, data: bytes, format_hint: str) -> AudioClip:
        """Decode ``data`` according to ``format_hint``.

        Raises:
            DecodeError: if the bytes are empty, corrupt or of an unsupported format
        """
        if not data:
            raise DecodeError("No audio data to decode")

        base, params = parse_mime(format_hint or "")
        if base == L16.lower():
            clip = self._decode_l16(data, params)
        elif base in WAV_TYPES:
            clip = self._decode_wav(data)
        elif base in SOUNDFILE_TYPES:
            clip = self._decode_soundfile(data, SOUNDFILE_TYPES[base])
        else:
            raise DecodeError(f"Unsupported audio format: {format_hint or 'unknown'}")

        logger.info(f"Decoded {len(data)} bytes of {base}: {clip.sample_count} samples, "
                    f"{clip.channel_count} channel(s) at {clip.sample_rate}Hz")
        return clip

    def _decode_l16(self, data: bytes, params: Dict[str, str]) -> AudioClip:
        try:
            sample_rate = int(params.get("rate", "8000"))
            channels = int(params.get("channels", "1"))
        except ValueError as e:
            raise DecodeError(f"Invalid L16 parameters: {params}") from e
        if sample_rate <= 0 or channels <= 0:
            raise DecodeError(f"Invalid L16 parameters: {params}")

        frame_bytes = 2 * channels
        if len(data) % frame_bytes:
            raise DecodeError(f"Truncated L16 data: {len(data)} bytes is not a multiple of {frame_bytes}")

        samples = np.frombuffer(data, dtype=">i2").astype(np.float64) / 32768.0
        return self._make_clip(sample_rate, samples.reshape(-1, channels))

    def _decode_wav(self, data: bytes) -> AudioClip:
        try:
            sample_rate, samples = wavfile.read(io.BytesIO(data))
        except (ValueError, EOFError, OSError) as e:
            raise DecodeError(f"Unable to decode WAV data: {e}") from e

        if samples.ndim == 1:
            samples = samples[:, np.newaxis]
        return self._make_clip(sample_rate, self._normalize(samples))

    def _decode_soundfile(self, data: bytes, container: str) -> AudioClip:
        try:
            samples, sample_rate = sf.read(io.BytesIO(data), dtype="float64", always_2d=True)
        except (RuntimeError, TypeError, ValueError) as e:
            # LibsndfileError subclasses RuntimeError
            raise DecodeError(f"Unable to decode {container} data: {e}") from e
        return self._make_clip(sample_rate, samples)

    def _make_clip(self, sample_rate, frames: np.ndarray) -> AudioClip:
        """Build a clip from a (samples, channels) array, rejecting what analysis cannot use."""
        if not np.all(np.isfinite(frames)):
            raise DecodeError("Audio data contains NaN or infinite samples")
        try:
            return AudioClip(sample_rate=int(sample_rate),
                             channels=tuple(frames[:, i] for i in range(frames.shape[1])))
        except ValueError as e:
            raise DecodeError(f"Invalid audio stream: {e}") from e

    def _normalize(self, samples: np.ndarray) -> np.ndarray:
        if samples.dtype == np.uint8:
            return (samples.astype(np.float64) - 128.0) / 128.0
        if samples.dtype == np.int16:
            return samples.astype(np.float64) / 32768.0
        if samples.dtype == np.int32:
            return samples.astype(np.float64) / 2147483648.0
        if np.issubdtype(samples.dtype, np.floating):
            return np.clip(samples.astype(np.float64), -1.0, 1.0)
        raise DecodeError(f"Unsupported WAV sample type: {samples.dtype}")
