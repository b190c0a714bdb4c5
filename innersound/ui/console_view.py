"""Console rendering of live spectrum frames and analysis results."""

import logging
import threading
from typing import Optional

import numpy as np
from pubsub import pub
from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..models.analysis import AnalysisReport, BreakdownField
from ..models.audio import VisualizationFrame
from ..models.session import StatusMessage

logger = logging.getLogger(__name__)

BAR_LEVELS = " ▁▂▃▄▅▆▇█"

BREAKDOWN_STYLES = {
    BreakdownField.VOLUME: "blue",
    BreakdownField.DURATION: "green",
    BreakdownField.CLARITY: "magenta",
    BreakdownField.PITCH: "yellow",
}


def spectrum_bars(magnitudes: np.ndarray, columns: int = 64) -> str:
    """Collapse byte magnitudes into ``columns`` block characters."""
    if len(magnitudes) == 0:
        return ""
    columns = min(columns, len(magnitudes))
    groups = np.array_split(np.asarray(magnitudes, dtype=np.float64), columns)
    levels = len(BAR_LEVELS) - 1
    return "".join(BAR_LEVELS[int(round(group.max() / 255.0 * levels))] for group in groups)


class SpectrumMonitor:
    """Keeps the latest frame and status line for a live console display."""

    def __init__(self, frame_topic: str = "visualizer.frame",
                 status_topic: str = "session.status", columns: int = 64):
        self.frame_topic = frame_topic
        self.status_topic = status_topic
        self.columns = columns
        self.bars = ""
        self.status_text = ""
        self.frames_seen = 0
        self._lock = threading.Lock()
        pub.subscribe(self._on_frame, frame_topic)
        pub.subscribe(self._on_status, status_topic)

    def _on_frame(self, frame: VisualizationFrame) -> None:
        bars = spectrum_bars(frame.magnitudes, self.columns)
        with self._lock:
            self.bars = bars
            self.frames_seen += 1

    def _on_status(self, status: StatusMessage) -> None:
        with self._lock:
            self.status_text = status.text

    def render(self) -> Panel:
        with self._lock:
            bars = Text(self.bars or " " * self.columns, style="bold cyan")
            status = Text(self.status_text, style="italic")
        return Panel(Group(bars, status), title="Live Audio Visualization", border_style="green")

    def close(self) -> None:
        pub.unsubscribe(self._on_frame, self.frame_topic)
        pub.unsubscribe(self._on_status, self.status_topic)


def render_report(report: AnalysisReport) -> Panel:
    result = report.result
    score = report.score

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Aspect", style="cyan")
    table.add_column("Score", justify="right")
    table.add_column("", min_width=20)
    for field in BreakdownField:
        value = score.breakdown.get(field)
        table.add_row(field.label, f"{value}%",
                      Text("█" * (value // 5), style=BREAKDOWN_STYLES[field]))

    pitch = (f"{round(result.fundamental_freq_hz)} Hz" if result.pitch_detected
             else "Not detected")
    summary = Text.assemble(
        (f"Overall Score: {score.total}/100   Grade: {score.grade.value}\n", "bold"),
        f"Duration: {result.duration_seconds:.2f}s   Pitch: {pitch}   "
        f"RMS: {result.rms:.4f}   Peak: {result.peak:.3f}",
    )
    return Panel(Group(summary, table), title="Analysis Results", border_style="blue")


def print_report(report: AnalysisReport, console: Optional[Console] = None) -> None:
    (console or Console()).print(render_report(report))
