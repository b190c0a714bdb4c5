"""Real hardware tests for microphone capture.

These tests require an actual microphone and verify that a full session
runs against PortAudio. They skip when PyAudio or an input device is missing.

Run with: pytest tests/hardware/ -v -s -m hardware
"""

import pytest
import time
import wave
from pathlib import Path
from innersound.exceptions import AcquisitionError
from innersound.models.session import CaptureConfig, SessionState
from innersound.services.recording_session import RecordingSession, probe_microphone
from innersound.storage.file_manager import FileManager

device_module = pytest.importorskip("innersound.audio.device")


@pytest.fixture
def microphone():
    device = device_module.PyAudioDevice(sample_rate=16000, channels=1, block_size=1024)
    try:
        handle = device.acquire(CaptureConfig())
    except AcquisitionError as e:
        pytest.skip(f"No usable microphone: {e}")
    device.release(handle)
    return device


@pytest.mark.hardware
@pytest.mark.slow
class TestRealAudioHardware:
    """Tests that require real audio hardware to run."""

    def test_probe_microphone(self, microphone):
        assert probe_microphone(microphone) == "Microphone test successful!"

    def test_real_microphone_session(self, microphone, temp_data_dir):
        """Record three seconds, analyze, and store the session."""
        print("\n" + "=" * 60)
        print("HARDWARE TEST: 3-second microphone session")
        print("=" * 60)

        session = RecordingSession(device=microphone)
        session.start()
        assert session.state is SessionState.CAPTURING

        time.sleep(3.0)
        session.stop()

        stats = session.get_recording_stats()
        print(f"Chunks: {stats.total_chunks}, bytes: {stats.total_bytes}")
        print(f"Frames rendered: {session.visualizer.frames_rendered}")
        print(f"Final status: {session.status}")

        assert session.state is SessionState.COMPLETE
        assert session.visualizer.frames_rendered > 0
        # 3 s at 16 kHz, 16-bit mono, minus start-up latency
        assert session.clip.size_bytes >= 2 * 16000 * 2
        assert session.report.result.duration_seconds >= 2.0

        file_manager = FileManager(temp_data_dir)
        info = file_manager.save_session(session)
        audio_path = Path(temp_data_dir) / "sessions" / session.session_id / info.audio_file
        with wave.open(str(audio_path), 'rb') as wf:
            assert wf.getframerate() == 16000
            assert wf.getnchannels() == 1
            assert wf.getsampwidth() == 2
        print(f"Audio saved to: {audio_path}")
