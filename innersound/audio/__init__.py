"""Audio capture, live analysis and codecs.

The PyAudio device lives in ``innersound.audio.device`` and is imported
explicitly where a real microphone is needed.
"""

from .analyser import FrequencyAnalyser
from .capture import AudioCapture
from .codecs import AudioDecoder, EncoderRegistry, L16Encoder
from .frame_pub import FramePublisher
from .visualizer import FrameClock, StreamingVisualizer

__all__ = [
    'FrequencyAnalyser',
    'AudioCapture',
    'AudioDecoder',
    'EncoderRegistry',
    'L16Encoder',
    'FramePublisher',
    'FrameClock',
    'StreamingVisualizer',
]
