"""Unit tests for FileManager class."""

import pytest
import os
import json
import wave
from pathlib import Path
from datetime import datetime
from unittest.mock import Mock, patch
from innersound.analysis.scoring import score_analysis
from innersound.models.analysis import AnalysisReport, AnalysisResult
from innersound.models.session import CapturedClip, SessionInfo, SessionState
from innersound.storage.exporter import parse_export
from innersound.storage.file_manager import FileManager


@pytest.fixture
def l16_clip(pcm16, tone):
    return CapturedClip(data=pcm16(tone(8000, 40, 0.5), byteorder='>'),
                        mime_type="audio/L16;rate=8000;channels=1", chunk_count=2)


@pytest.fixture
def report():
    result = AnalysisResult(duration_seconds=0.5, sample_rate=8000, rms=0.35, peak=0.5,
                            fundamental_freq_hz=200.0)
    return AnalysisReport(result=result, score=score_analysis(result))


def make_info(session_id, **overrides):
    fields = dict(
        session_id=session_id,
        start_time=datetime.now(),
        state="complete",
        mime_type="audio/L16;rate=8000;channels=1",
        clip_size_bytes=8000,
        total_chunks=2,
        audio_file="recording.wav",
        report_file="audio-analysis.json",
    )
    fields.update(overrides)
    return SessionInfo(**fields)


@pytest.mark.unit
class TestFileManager:
    """Test cases for FileManager class."""

    def test_initialization(self, temp_data_dir):
        """Test FileManager initialization."""
        fm = FileManager(temp_data_dir)

        assert fm.data_dir == Path(temp_data_dir)
        assert fm.sessions_dir == Path(temp_data_dir) / "sessions"
        assert fm.logs_dir == Path(temp_data_dir) / "logs"

        # Check directories were created
        assert fm.sessions_dir.exists()
        assert fm.logs_dir.exists()

    def test_initialization_default_path(self):
        """Test FileManager initialization with default path."""
        with patch.object(Path, 'mkdir') as mock_mkdir:
            fm = FileManager()

            assert fm.data_dir == Path("./data")
            assert mock_mkdir.call_count >= 3

    def test_save_clip_as_wav(self, temp_data_dir, l16_clip):
        fm = FileManager(temp_data_dir)

        filepath = fm.save_clip(l16_clip, "session_1")

        assert os.path.exists(filepath)
        assert os.path.basename(filepath) == "recording_session_1.wav"
        with wave.open(filepath, 'rb') as wf:
            assert wf.getnchannels() == 1
            assert wf.getsampwidth() == 2
            assert wf.getframerate() == 8000
            assert wf.getnframes() == 4000

    def test_save_clip_adds_wav_extension(self, temp_data_dir, l16_clip):
        fm = FileManager(temp_data_dir)
        filepath = fm.save_clip(l16_clip, "session_1", "take")

        assert filepath.endswith("take.wav")

    def test_saved_wav_matches_clip(self, temp_data_dir, l16_clip):
        fm = FileManager(temp_data_dir)
        filepath = fm.save_clip(l16_clip, "session_1")

        original = fm.decoder.decode(l16_clip.data, l16_clip.mime_type)
        saved = fm.decoder.decode(Path(filepath).read_bytes(), "audio/wav")
        assert saved.sample_rate == original.sample_rate
        assert (saved.first_channel == original.first_channel).all()

    def test_save_report(self, temp_data_dir, report):
        fm = FileManager(temp_data_dir)
        filepath = fm.save_report(report, "session_1")

        assert Path(filepath).name == "audio-analysis.json"
        score, result, _ = parse_export(Path(filepath).read_bytes())
        assert score == report.score
        assert result == report.result

    def test_save_session(self, temp_data_dir, l16_clip, report):
        fm = FileManager(temp_data_dir)
        session = Mock()
        session.session_id = "20240101_120000_abcd"
        session.created_at = datetime(2024, 1, 1, 12, 0, 0)
        session.state = SessionState.COMPLETE
        session.encoding_format = l16_clip.mime_type
        session.clip = l16_clip
        session.report = report

        info = fm.save_session(session)

        assert info.state == "complete"
        assert info.clip_size_bytes == l16_clip.size_bytes
        assert info.total_chunks == 2
        assert info.audio_file == "recording_20240101_120000_abcd.wav"
        assert info.report_file == "audio-analysis.json"
        assert fm.load_session_info(session.session_id) == info

    def test_save_failed_session_without_report(self, temp_data_dir, l16_clip):
        fm = FileManager(temp_data_dir)
        session = Mock()
        session.session_id = "failed_session"
        session.created_at = datetime.now()
        session.state = SessionState.FAILED
        session.encoding_format = l16_clip.mime_type
        session.clip = l16_clip
        session.report = None

        info = fm.save_session(session)

        assert info.state == "failed"
        assert info.audio_file is not None
        assert info.report_file is None

    def test_save_session_keeps_undecodable_clip_raw(self, temp_data_dir):
        fm = FileManager(temp_data_dir)
        clip = CapturedClip(data=b"\x00\x01\x02", mime_type="audio/L16;rate=8000;channels=1",
                            chunk_count=1)
        session = Mock()
        session.session_id = "truncated_session"
        session.created_at = datetime.now()
        session.state = SessionState.FAILED
        session.encoding_format = clip.mime_type
        session.clip = clip
        session.report = None

        info = fm.save_session(session)

        assert info.audio_file == "recording_truncated_session.raw"
        assert info.mime_type == "audio/L16;rate=8000;channels=1"
        raw_file = fm.get_session_path("truncated_session") / info.audio_file
        assert raw_file.read_bytes() == b"\x00\x01\x02"
        assert fm.load_session_info("truncated_session") == info

    def test_save_and_load_session_info(self, temp_data_dir):
        """Test saving and loading session information."""
        fm = FileManager(temp_data_dir)
        session_info = make_info("session_1")

        info_path = fm.save_session_info(session_info)

        with open(info_path, 'r') as f:
            saved = json.load(f)
        assert saved['session_id'] == "session_1"
        assert saved['start_time'] == session_info.start_time.isoformat()
        assert fm.load_session_info("session_1") == session_info

    def test_load_nonexistent_session_info(self, temp_data_dir):
        fm = FileManager(temp_data_dir)
        assert fm.load_session_info("nonexistent") is None

    def test_load_corrupted_session_info(self, temp_data_dir):
        fm = FileManager(temp_data_dir)
        info_file = fm.get_session_path("broken") / "session_info.json"
        info_file.write_text("{ invalid json")

        assert fm.load_session_info("broken") is None

    def test_list_sessions(self, temp_data_dir):
        fm = FileManager(temp_data_dir)
        fm.save_session_info(make_info("20240102_000000_bbbb"))
        fm.save_session_info(make_info("20240101_000000_aaaa"))
        fm.get_session_path("no_info")

        assert fm.list_sessions() == ["20240101_000000_aaaa", "20240102_000000_bbbb"]
