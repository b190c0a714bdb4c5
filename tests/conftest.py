"""Pytest configuration and fixtures for InnerSound tests."""

import pytest
import tempfile
import threading
import time
import logging
from pathlib import Path
from typing import List, Optional
from unittest.mock import Mock, patch
import numpy as np
import wave


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without audio hardware")
    config.addinivalue_line("markers", "integration: tests spanning several components")
    config.addinivalue_line("markers", "slow: tests that take more than a second")
    config.addinivalue_line("markers", "hardware: tests that need a real microphone")


def periodic_tone(sample_rate: int = 8000, period: int = 40, seconds: float = 1.0,
                  amplitude: float = 0.5) -> np.ndarray:
    """Sine tiled from one exact period, so every lag multiple of ``period`` matches bit for bit."""
    one_period = amplitude * np.sin(2 * np.pi * np.arange(period) / period)
    repeats = int(np.ceil(seconds * sample_rate / period))
    return np.tile(one_period, repeats)[:int(seconds * sample_rate)]


def to_pcm16(samples: np.ndarray, byteorder: str = '<') -> bytes:
    """Float samples in [-1, 1] as 16-bit PCM bytes."""
    pcm = np.clip(np.round(samples * 32767), -32768, 32767)
    return pcm.astype(f'{byteorder}i2').tobytes()


class FakeHandle:
    """Capture handle that plays back one period of a tone forever."""

    def __init__(self, sample_rate: int = 8000, channels: int = 1, period: int = 40,
                 amplitude: float = 0.5, read_delay: float = 0.002,
                 fail_after: Optional[int] = None):
        self.sample_rate = sample_rate
        self.channels = channels
        self.read_delay = read_delay
        self.fail_after = fail_after
        self.reads = 0
        self.closed = False
        self.close_calls = 0
        one_period = amplitude * np.sin(2 * np.pi * np.arange(period) / period)
        self._period = np.round(one_period * 32767).astype(np.int16)
        self._position = 0

    def read(self, frames: int) -> bytes:
        if self.fail_after is not None and self.reads >= self.fail_after:
            raise OSError("Input overflowed")
        self.reads += 1
        time.sleep(self.read_delay)
        indices = (self._position + np.arange(frames)) % len(self._period)
        self._position += frames
        mono = self._period[indices]
        return np.repeat(mono, self.channels).tobytes()

    def close(self) -> None:
        self.close_calls += 1
        self.closed = True


class FakeCaptureDevice:
    """Device collaborator handing out FakeHandles or raising a configured error."""

    def __init__(self, error: Optional[Exception] = None, **handle_kwargs):
        self.error = error
        self.handle_kwargs = handle_kwargs
        self.acquired: List[FakeHandle] = []
        self.configs = []
        self.release_calls = 0

    def acquire(self, config):
        self.configs.append(config)
        if self.error is not None:
            raise self.error
        handle = FakeHandle(**self.handle_kwargs)
        self.acquired.append(handle)
        return handle

    def release(self, handle) -> None:
        self.release_calls += 1
        handle.close()


class ManualFrameClock:
    """Frame clock advanced by the test, one frame per ``tick()``."""

    def __init__(self):
        self.pending = []
        self.shutdown_calls = 0
        self._lock = threading.Lock()

    def request_frame(self, callback) -> None:
        with self._lock:
            self.pending.append(callback)

    def tick(self, timestamp: float = 0.0) -> int:
        with self._lock:
            callbacks, self.pending = self.pending, []
        for callback in callbacks:
            callback(timestamp)
        return len(callbacks)

    def shutdown(self, timeout: float = 1.0) -> None:
        self.shutdown_calls += 1


def wait_for(condition, timeout: float = 5.0, interval: float = 0.01) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(interval)
    return condition()


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def tone():
    """Factory for exactly periodic test tones."""
    return periodic_tone


@pytest.fixture
def fake_device():
    """Factory for fake capture devices."""
    return FakeCaptureDevice


@pytest.fixture
def manual_clock():
    return ManualFrameClock()


@pytest.fixture
def sample_wav_file(temp_data_dir):
    """One second of a 200 Hz tone at 8 kHz as a 16-bit mono WAV file."""
    file_path = Path(temp_data_dir) / "tone.wav"
    with wave.open(str(file_path), 'wb') as wf:
        wf.setnchannels(1)  # Mono
        wf.setsampwidth(2)  # 16-bit
        wf.setframerate(8000)
        wf.writeframes(to_pcm16(periodic_tone(8000, 40, 1.0)))
    return str(file_path)


@pytest.fixture
def test_config(temp_data_dir):
    """Configuration file pointing storage and logs into the temp directory."""
    config_path = Path(temp_data_dir) / "innersound.yaml"
    config_path.write_text(
        "audio:\n"
        "  sample_rate: 8000\n"
        "  timeslice_ms: 100\n"
        "visualizer:\n"
        "  fps: 30\n"
        "storage:\n"
        "  data_directory: data\n"
        "logging:\n"
        "  file_path: data/logs/test.log\n"
        "  console_output: false\n",
        encoding='utf-8',
    )
    return str(config_path)


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    pytest.importorskip("pyaudio")
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        # Configure mock stream
        mock_stream.read.return_value = b'\x00' * 2048  # Silent audio
        mock_stream.stop_stream.return_value = None
        mock_stream.close.return_value = None

        # Configure mock PyAudio instance
        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.terminate.return_value = None
        mock_pyaudio_instance.get_default_input_device_info.return_value = {"name": "Test Mic"}

        # Configure mock PyAudio class
        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }


@pytest.fixture
def pcm16():
    return to_pcm16


@pytest.fixture
def wait_until():
    """Poll a condition until it holds or the timeout expires."""
    return wait_for
