"""Console presentation for the CLI."""

from .console_view import SpectrumMonitor, render_report, print_report

__all__ = ["SpectrumMonitor", "render_report", "print_report"]
