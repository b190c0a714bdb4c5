"""File management for captured clips, reports and session metadata."""

import json
import logging
import wave
from pathlib import Path
from typing import Optional, List

import numpy as np

from ..audio.codecs import AudioDecoder
from ..exceptions import DecodeError
from ..models.analysis import AnalysisReport
from ..models.session import CapturedClip, SessionInfo
from .exporter import export_report


logger = logging.getLogger(__name__)

SESSION_INFO_FILE = "session_info.json"


class FileManager:
    """Manages file storage and organization for recordings and analysis results."""

    def __init__(self, data_dir: str = "./data"):
        """Initialize file manager with data directory.

        Args:
            data_dir: Base directory for storing all data
        """
        self.data_dir = Path(data_dir)
        self.sessions_dir = self.data_dir / "sessions"
        self.logs_dir = self.data_dir / "logs"
        self.decoder = AudioDecoder()

        # Create directory structure
        self._ensure_directories()

        logger.info(f"FileManager initialized with data_dir: {self.data_dir}")

    def _ensure_directories(self) -> None:
        """Ensure all required directories exist."""
        for directory in [self.data_dir, self.sessions_dir, self.logs_dir]:
            directory.mkdir(parents=True, exist_ok=True)
            logger.debug(f"Ensured directory exists: {directory}")

    def get_session_path(self, session_id: str) -> Path:
        """Get full path to a session directory, creating it if needed."""
        session_path = self.sessions_dir / session_id
        session_path.mkdir(exist_ok=True)
        return session_path

    def save_clip(self, clip: CapturedClip, session_id: str, filename: Optional[str] = None) -> str:
        """Save a captured clip as a 16-bit WAV file for playback.

        Args:
            clip: Captured clip in any decodable format
            session_id: Session identifier
            filename: Optional custom filename

        Returns:
            Full path to saved audio file

        Raises:
            DecodeError: if the clip cannot be decoded
        """
        filename = filename or f"recording_{session_id}.wav"
        if not filename.endswith('.wav'):
            filename += '.wav'
        return self.write_wav(clip, self.get_session_path(session_id) / filename)

    def write_wav(self, clip: CapturedClip, path: Path) -> str:
        """Decode ``clip`` and write it to ``path`` as 16-bit PCM WAV."""
        decoded = self.decoder.decode(clip.data, clip.mime_type)
        frames = np.stack(decoded.channels, axis=1)
        pcm = np.clip(np.round(frames * 32768.0), -32768, 32767).astype('<i2')

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with wave.open(str(path), 'wb') as wf:
            wf.setnchannels(decoded.channel_count)
            wf.setsampwidth(2)
            wf.setframerate(decoded.sample_rate)
            wf.writeframes(pcm.tobytes())

        logger.info(f"Audio saved to {path} ({decoded.sample_count} frames)")
        return str(path)

    def save_raw_clip(self, clip: CapturedClip, session_id: str) -> str:
        """Save the clip bytes exactly as captured, for clips that cannot be decoded."""
        raw_file = self.get_session_path(session_id) / f"recording_{session_id}.raw"
        raw_file.write_bytes(clip.data)
        logger.info(f"Raw {clip.mime_type} clip saved to {raw_file} ({clip.size_bytes} bytes)")
        return str(raw_file)

    def save_report(self, report: AnalysisReport, session_id: str,
                    filename: str = "audio-analysis.json") -> str:
        """Save the JSON export of a report into the session directory."""
        report_file = self.get_session_path(session_id) / filename
        report_file.write_bytes(export_report(report))
        logger.info(f"Analysis report saved: {report_file}")
        return str(report_file)

    def save_session(self, session) -> SessionInfo:
        """Persist everything a finished session produced.

        The clip is saved even when analysis failed, so it can still be
        played back or exported. Clips that do not decode are kept as raw
        bytes; ``mime_type`` in the session info says how to read them.
        """
        audio_file = None
        report_file = None
        if session.clip is not None and session.clip.data:
            try:
                audio_file = Path(self.save_clip(session.clip, session.session_id)).name
            except DecodeError as e:
                logger.warning(f"Clip of session {session.session_id} does not decode ({e}); "
                               f"keeping the raw bytes")
                audio_file = Path(self.save_raw_clip(session.clip, session.session_id)).name
        if session.report is not None:
            report_file = Path(self.save_report(session.report, session.session_id)).name

        session_info = SessionInfo(
            session_id=session.session_id,
            start_time=session.created_at,
            state=session.state.value,
            mime_type=session.clip.mime_type if session.clip else session.encoding_format,
            clip_size_bytes=session.clip.size_bytes if session.clip else 0,
            total_chunks=session.clip.chunk_count if session.clip else 0,
            audio_file=audio_file,
            report_file=report_file,
        )
        self.save_session_info(session_info)
        return session_info

    def save_session_info(self, session_info: SessionInfo) -> str:
        """Write ``session_info.json`` next to the session's audio and report."""
        info_file = self.get_session_path(session_info.session_id) / SESSION_INFO_FILE
        info_file.write_text(json.dumps(session_info.to_dict(), indent=2), encoding='utf-8')
        logger.info(f"Session info saved: {info_file}")
        return str(info_file)

    def load_session_info(self, session_id: str) -> Optional[SessionInfo]:
        """Read back a session's metadata, None if missing or unreadable."""
        info_file = self.sessions_dir / session_id / SESSION_INFO_FILE
        if not info_file.exists():
            logger.warning(f"No session info for {session_id}")
            return None

        try:
            return SessionInfo.from_dict(json.loads(info_file.read_text(encoding='utf-8')))
        except (OSError, ValueError, TypeError, KeyError) as e:
            logger.error(f"Unreadable session info {info_file}: {e}")
            return None

    def list_sessions(self) -> List[str]:
        """Ids of stored sessions, oldest first (ids start with their timestamp)."""
        return sorted(
            path.name for path in self.sessions_dir.iterdir()
            if (path / SESSION_INFO_FILE).is_file()
        )
