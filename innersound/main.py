"""Main application entry point for InnerSound."""

import sys
import time
import argparse
import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.live import Live

from .analysis.pipeline import AnalysisPipeline
from .config import InnerSoundConfig, reload_config
from .exceptions import AnalysisError, DecodeError, InnerSoundError
from .models.session import SessionState
from .services.recording_session import RecordingSession, SessionSettings, probe_microphone
from .storage.exporter import export_report
from .storage.file_manager import FileManager
from .ui.console_view import SpectrumMonitor, print_report

logger = logging.getLogger(__name__)


class Server:

    def __init__(self, config_path: Optional[str], log_level: Optional[str] = None):
        # Load configuration
        self.config = reload_config(config_path)
        # Set up logging (override config with command line if specified)
        level = log_level or self.config.get('logging.level', 'INFO')
        setup_logging(self.config, level)
        self.console = Console()
        self.pipeline = AnalysisPipeline.from_config(self.config)
        self.file_manager = FileManager(self.config.get_data_directory())

    def _create_device(self):
        # Imported here so analysis works on machines without PortAudio
        from .audio.device import PyAudioDevice
        return PyAudioDevice.from_config(self.config)

    def record(self, duration: float, export_path: Optional[str] = None,
               audio_path: Optional[str] = None) -> int:
        session = RecordingSession(
            device=self._create_device(),
            pipeline=self.pipeline,
            settings=SessionSettings.from_config(self.config),
        )
        monitor = SpectrumMonitor(session.settings.frame_topic, session.settings.status_topic)
        try:
            with Live(monitor.render(), console=self.console, refresh_per_second=20) as live:
                session.start()
                deadline = time.monotonic() + duration
                while session.state is SessionState.CAPTURING and time.monotonic() < deadline:
                    live.update(monitor.render())
                    time.sleep(0.05)
                session.stop()
                live.update(monitor.render())
        except KeyboardInterrupt:
            session.stop()
        finally:
            monitor.close()

        info = self.file_manager.save_session(session)
        logger.info(f"Session saved: {info}")

        if session.clip is not None and audio_path:
            try:
                self.file_manager.write_wav(session.clip, Path(audio_path))
            except DecodeError as e:
                logger.warning(f"Not writing {audio_path}: {e}")
                self.console.print(f"[yellow]Recording not saved to {audio_path}: {e}[/yellow]")
        if session.state is not SessionState.COMPLETE:
            self.console.print(f"[red]{session.status}[/red]")
            return 1

        print_report(session.report, self.console)
        if export_path:
            Path(export_path).write_bytes(export_report(session.report))
            self.console.print(f"Results written to {export_path}")
        return 0

    def analyze(self, path: str, format_hint: Optional[str] = None,
                export_path: Optional[str] = None) -> int:
        try:
            report = self.pipeline.analyze_file(path, format_hint)
        except AnalysisError as e:
            logger.error(f"Analysis of {path} failed: {e}")
            self.console.print(f"[red]Error analyzing audio: {e}[/red]")
            return 1

        print_report(report, self.console)
        if export_path:
            Path(export_path).write_bytes(export_report(report))
            self.console.print(f"Results written to {export_path}")
        return 0

    def test_microphone(self) -> int:
        settings = SessionSettings.from_config(self.config)
        message = probe_microphone(self._create_device(), settings.capture_config)
        self.console.print(message)
        return 0 if message.startswith("Microphone test successful") else 1


def setup_logging(config: InnerSoundConfig, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    # Get log file path from config
    log_file_path = config.get('logging.file_path', 'data/logs/innersound.log')
    console_output = config.get('logging.console_output', True)

    # Create logs directory if it doesn't exist
    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    # Set up handlers
    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    handlers.append(file_handler)

    # Console handler - only if enabled in config
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)  # Only show warnings and above on console
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("=" * 50)
    logger.info("InnerSound starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="InnerSound - record or load a short vocal clip and score it",
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: looks for innersound.yaml)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: from config, INFO)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version="InnerSound v0.1.0"
    )

    commands = parser.add_subparsers(dest="command", required=True)

    record = commands.add_parser("record", help="Record from the microphone and score the clip")
    record.add_argument("--duration", type=float, default=5.0,
                        help="Recording duration in seconds (default: 5)")
    record.add_argument("--export", type=str, help="Write the JSON results to this path")
    record.add_argument("--save-audio", type=str, help="Write the recording as WAV to this path")

    analyze = commands.add_parser("analyze", help="Score an existing audio file")
    analyze.add_argument("file", type=str, help="Audio file (WAV or raw L16)")
    analyze.add_argument("--format", type=str,
                         help="MIME type, e.g. 'audio/L16;rate=16000;channels=1' (default: from extension)")
    analyze.add_argument("--export", type=str, help="Write the JSON results to this path")

    commands.add_parser("test-mic", help="Check that the microphone can be opened")

    return parser


def main(argv=None) -> None:
    """Main entry point for InnerSound."""
    args = build_parser().parse_args(argv)

    try:
        server = Server(args.config, args.log_level)
        if args.command == "record":
            code = server.record(args.duration, args.export, args.save_audio)
        elif args.command == "analyze":
            code = server.analyze(args.file, args.format, args.export)
        else:
            code = server.test_microphone()
    except KeyboardInterrupt:
        print("\nGoodbye!")
        code = 130
    except (InnerSoundError, OSError, ValueError) as e:
        print(f"Error: {e}")
        logging.error(f"Application error: {e}")
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
