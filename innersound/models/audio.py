"""Audio-related data models."""

from dataclasses import dataclass

import numpy as np


@dataclass
class AudioStats:
    """Audio recording statistics."""
    is_recording: bool
    duration_seconds: float
    sample_rate: int
    block_size: int
    total_blocks: int
    total_chunks: int
    total_bytes: int


@dataclass
class ChunkEvent:
    """Encoded audio chunk emitted by the capture loop."""
    chunk_id: str
    data: bytes
    timestamp: float  # Unix timestamp when the chunk was emitted
    sequence_number: int
    mime_type: str
    sample_rate: int = 44100
    channels: int = 1
    final: bool = False  # True for the flush emitted on stop

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class VisualizationFrame:
    """One visualizer tick.

    ``magnitudes`` is a read-only view of the visualizer's reused buffer and is
    only valid during the frame callback. Use ``to_bytes()`` to keep a copy.
    """
    sequence: int
    timestamp: float
    magnitudes: np.ndarray

    @property
    def bin_count(self) -> int:
        return len(self.magnitudes)

    def to_bytes(self) -> bytes:
        return self.magnitudes.tobytes()
